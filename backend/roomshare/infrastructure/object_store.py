"""Local Object Store — filesystem bucket with public URL issuance.

Invariants:
    - Every object path resolves inside <root>/<bucket>; traversal outside raises ObjectStoreError
    - Public URLs have the form <public_base_url>/storage/v1/object/public/<bucket>/<path>
    - remove() is idempotent: removing an absent object succeeds
    - remove_prefix() deletes a whole directory of objects, also idempotent
    - All filesystem errors surface as ObjectStoreError

Design Decisions:
    - Blocking file IO runs in asyncio.to_thread: the event loop never blocks on disk
    - URL layout matches a hosted storage bucket so stored URLs stay valid if the
      adapter is swapped
"""

import asyncio
import logging
import shutil
from collections.abc import Iterable
from pathlib import Path
from urllib.parse import quote

from roomshare.core.errors import ObjectStoreError

logger = logging.getLogger(__name__)

PUBLIC_URL_SEGMENT = "/storage/v1/object/public/"


class LocalObjectStore:
    """Bucket stored under a local directory."""

    def __init__(self, root: str | Path, bucket: str, public_base_url: str):
        self.bucket = bucket
        self.public_base_url = public_base_url.rstrip("/")
        self._bucket_root = (Path(root) / bucket).resolve()

    def resolve(self, path: str) -> Path:
        """Absolute filesystem location of an object path (traversal-checked)."""
        candidate = (self._bucket_root / path.lstrip("/")).resolve()
        if candidate == self._bucket_root or self._bucket_root not in candidate.parents:
            raise ObjectStoreError(f"invalid object path '{path}'", "resolve")
        return candidate

    async def upload(self, path: str, data: bytes) -> None:
        target = self.resolve(path)
        if target.exists():
            raise ObjectStoreError(f"object '{path}' already exists", "upload")
        try:
            await asyncio.to_thread(_write_bytes, target, data)
        except OSError as e:
            logger.error(f"Object upload failed for {path}: {e}")
            raise ObjectStoreError(str(e), "upload")

    def get_public_url(self, path: str) -> str:
        return f"{self.public_base_url}{PUBLIC_URL_SEGMENT}{self.bucket}/{quote(path)}"

    async def remove(self, paths: Iterable[str]) -> None:
        targets = [self.resolve(p) for p in paths]
        try:
            await asyncio.to_thread(_unlink_all, targets)
        except OSError as e:
            logger.error(f"Object removal failed: {e}")
            raise ObjectStoreError(str(e), "remove")

    async def remove_prefix(self, prefix: str) -> int:
        """Remove every object under prefix. Returns how many objects went away."""
        directory = self.resolve(prefix)
        try:
            return await asyncio.to_thread(_remove_tree, directory)
        except OSError as e:
            logger.error(f"Object sweep failed for {prefix}: {e}")
            raise ObjectStoreError(str(e), "remove")

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(self.resolve(path).is_file)


def _write_bytes(target: Path, data: bytes) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    target.write_bytes(data)


def _unlink_all(targets: list[Path]) -> None:
    for target in targets:
        target.unlink(missing_ok=True)


def _remove_tree(directory: Path) -> int:
    if not directory.is_dir():
        return 0
    removed = sum(1 for p in directory.rglob("*") if p.is_file())
    shutil.rmtree(directory)
    return removed


_store: LocalObjectStore | None = None


def init_object_store(root: str | Path, bucket: str, public_base_url: str) -> LocalObjectStore:
    global _store
    _store = LocalObjectStore(root, bucket, public_base_url)
    return _store


def get_object_store() -> LocalObjectStore:
    if _store is None:
        raise RuntimeError("Object store not initialized")
    return _store
