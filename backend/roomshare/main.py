"""RoomShare API — FastAPI application entry point.

Invariants:
    - Routes registered explicitly (no auto-discovery)
    - Global error handlers map RoomShareError → structured JSON responses
    - CORS configured from settings (not hardcoded)
    - Database, object store and change feed initialized on startup via lifespan
    - Shutdown closes every client session (feed subscriptions released) before disposing the pool

Design Decisions:
    - Lifespan over @app.on_event: FastAPI recommended pattern, cleaner cleanup
    - Error handlers live in api/error_handlers.py; main only registers them
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from roomshare.api.error_handlers import register_error_handlers
from roomshare.api.routes import clients, health, room_content, rooms, storage
from roomshare.config import get_settings
from roomshare.infrastructure.change_feed import get_change_feed
from roomshare.infrastructure.database import init_db
from roomshare.infrastructure.object_store import init_object_store
from roomshare.infrastructure.observability import setup_logging
from roomshare.services.client_session import close_all_clients

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle."""
    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    db = init_db(
        settings.database_url,
        pool_size=settings.database_pool_size,
        max_overflow=settings.database_max_overflow,
    )
    if settings.database_create_all:
        await db.create_all()
    init_object_store(
        settings.storage_root, settings.storage_bucket, settings.public_base_url,
    )
    feed = get_change_feed()
    logger.info("RoomShare API started")
    yield
    logger.info("RoomShare API shutting down")
    close_all_clients()
    feed.close()
    await db.dispose()


app = FastAPI(
    title="RoomShare API", version="1.0.0", lifespan=lifespan,
)

settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(clients.router)
app.include_router(rooms.router)
app.include_router(room_content.router)
app.include_router(storage.router)

register_error_handlers(app)
