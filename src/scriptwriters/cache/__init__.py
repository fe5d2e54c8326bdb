"""Plan digests and store manifests."""

from .keys import canonical_json, payload_digest, short_digest
from .store import StoreManifests, tree_digest

__all__ = [
    "StoreManifests",
    "canonical_json",
    "payload_digest",
    "short_digest",
    "tree_digest",
]
