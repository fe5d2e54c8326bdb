"""Store manifests: record and verify realized plan outputs."""

from __future__ import annotations

import hashlib
import json
import os
from pathlib import Path
from typing import TYPE_CHECKING

from scriptwriters.errors import StoreIntegrityError

if TYPE_CHECKING:
    from scriptwriters.models import BuildPlan

MANIFEST_DIR = ".manifests"


class StoreManifests:
    def __init__(self, store_dir: str | Path) -> None:
        self.root = Path(store_dir) / MANIFEST_DIR

    def manifest_path(self, plan: BuildPlan) -> Path:
        return self.root / f"{plan.digest}-{plan.name}.json"

    def pending_path(self, plan: BuildPlan) -> Path:
        return self.root / f"{plan.digest}-{plan.name}.pending"

    def exists(self, plan: BuildPlan) -> bool:
        return self.manifest_path(plan).exists()

    def is_pending(self, plan: BuildPlan) -> bool:
        return self.pending_path(plan).exists()

    def mark_pending(self, plan: BuildPlan) -> None:
        """Flag an output as under construction until it is recorded."""
        self.root.mkdir(parents=True, exist_ok=True)
        self.pending_path(plan).touch()

    def record(self, plan: BuildPlan) -> Path:
        self.root.mkdir(parents=True, exist_ok=True)
        manifest_path = self.manifest_path(plan)
        manifest = {
            "digest": plan.digest,
            "plan": plan._payload(),
            "tree_sha256": tree_digest(Path(plan.path)),
        }
        manifest_path.write_text(
            json.dumps(manifest, indent=2, sort_keys=True) + "\n",
            encoding="utf-8",
        )
        self.pending_path(plan).unlink(missing_ok=True)
        return manifest_path

    def verify(self, plan: BuildPlan) -> None:
        manifest_path = self.manifest_path(plan)
        manifest = self._read_manifest(manifest_path)
        if manifest.get("digest") != plan.digest or manifest.get("plan") != plan._payload():
            raise StoreIntegrityError(
                "Store manifest does not match the plan it was recorded for.",
                hint="Delete the output and its manifest, then realize again.",
                context={"operation": "store_verify", "plan": plan.name, "path": plan.path},
            )
        actual = tree_digest(Path(plan.path))
        if manifest.get("tree_sha256") != actual:
            raise StoreIntegrityError(
                "Store output was modified after it was realized.",
                hint="Delete the output and its manifest, then realize again.",
                context={"operation": "store_verify", "plan": plan.name, "path": plan.path},
            )

    def _read_manifest(self, path: Path) -> dict[str, object]:
        try:
            parsed = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise StoreIntegrityError(
                "Store manifest is not valid JSON.",
                hint="Delete the output and its manifest, then realize again.",
                context={"operation": "store_verify", "path": str(path)},
            ) from exc
        if not isinstance(parsed, dict):
            raise StoreIntegrityError(
                "Store manifest has invalid structure.",
                hint="Delete the output and its manifest, then realize again.",
                context={"operation": "store_verify", "path": str(path)},
            )
        return parsed


def tree_digest(root: Path) -> str:
    """Digest of a file or directory tree: paths, executable bits, contents, link targets."""
    digest = hashlib.sha256()
    if root.is_symlink() or root.is_file():
        _update_entry(digest, root, "")
        return digest.hexdigest()
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        current = Path(dirpath)
        rel_dir = current.relative_to(root).as_posix()
        digest.update(f"d {rel_dir}\n".encode())
        entries = sorted(filenames) + sorted(name for name in dirnames if (current / name).is_symlink())
        for name in entries:
            _update_entry(digest, current / name, f"{rel_dir}/{name}")
    return digest.hexdigest()


def _update_entry(digest: hashlib._Hash, path: Path, rel: str) -> None:
    if path.is_symlink():
        digest.update(f"l {rel} {os.readlink(path)}\n".encode())
        return
    executable = os.access(path, os.X_OK)
    digest.update(f"f {rel} {int(executable)}\n".encode())
    digest.update(hashlib.sha256(path.read_bytes()).digest())
