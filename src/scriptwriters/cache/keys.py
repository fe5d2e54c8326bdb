"""Plan digest derivation."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Mapping
from typing import Any


def canonical_json(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def payload_digest(payload: Mapping[str, Any]) -> str:
    """Content address of a canonical plan payload."""
    return hashlib.sha256(canonical_json(payload).encode("utf-8")).hexdigest()


def short_digest(digest: str) -> str:
    return digest[:32]
