"""Storage Route — public blob download for the local object store.

Invariants:
    - Only objects of the configured bucket are served; other buckets → 404
    - Paths escaping the bucket root are answered like missing objects (404)
"""

import logging

from fastapi import APIRouter
from fastapi.responses import FileResponse

from roomshare.core.errors import ObjectStoreError, ResourceNotFoundError
from roomshare.infrastructure.object_store import get_object_store

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/storage/v1/object/public", tags=["storage"])


@router.get("/{bucket}/{path:path}")
async def download_object(bucket: str, path: str):
    store = get_object_store()
    if bucket != store.bucket:
        raise ResourceNotFoundError("Bucket", bucket)
    try:
        target = store.resolve(path)
    except ObjectStoreError:
        raise ResourceNotFoundError("Object", path)
    if not target.is_file():
        raise ResourceNotFoundError("Object", path)
    # stored names carry a "<ms>_" prefix; downloads use the original name
    download_name = target.name.split("_", 1)[-1]
    return FileResponse(target, filename=download_name)
