"""Health & Readiness Probes — liveness plus database and storage readiness.

Invariants:
    - GET /health/ answers 200 while the process is up and reports live client sessions
    - GET /health/ready answers 503 when the database or the storage bucket is unusable
"""

import logging

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import roomshare.infrastructure.database as db_module
import roomshare.infrastructure.object_store as store_module
import roomshare.services.client_session as client_session_module
from roomshare.core.errors import ObjectStoreError

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {
        "status": "healthy",
        "service": "roomshare-api",
        "version": "1.0.0",
        "clients": len(client_session_module._clients),
    }


async def _storage_ok() -> bool:
    store = store_module._store
    if store is None:
        return False
    try:
        store.resolve(".probe")
    except ObjectStoreError:
        logger.warning("Storage bucket unusable", exc_info=True)
        return False
    return True


@router.get("/ready")
async def readiness_check():
    manager = db_module.db_manager
    checks = {
        "database": await manager.health_check() if manager else False,
        "storage": await _storage_ok(),
    }
    report = {name: "healthy" if ok else "unavailable" for name, ok in checks.items()}
    if not all(checks.values()):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": report},
        )
    return {"status": "ready", "checks": report}
