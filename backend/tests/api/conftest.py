"""API test fixtures — FastAPI app over a temp database, storage root and feed.

Invariants:
    - Process-wide singletons (db_manager, object store, change feed, client registry)
      are patched per test and restored afterwards
    - Every client opened during a test is closed at teardown

Design Decisions:
    - ASGITransport does not run the lifespan, so fixtures install what startup would
    - open_client patched at the route module with the minimum bcrypt cost and test settings
"""

from functools import partial

import pytest
from httpx import ASGITransport, AsyncClient

import roomshare.api.routes.clients as clients_routes
import roomshare.infrastructure.change_feed as feed_module
import roomshare.infrastructure.database as db_module
import roomshare.infrastructure.object_store as store_module
import roomshare.services.client_session as client_session_module
from roomshare.config import Settings
from roomshare.infrastructure.change_feed import InMemoryChangeFeed
from roomshare.infrastructure.database import DatabaseSessionManager
from roomshare.infrastructure.object_store import LocalObjectStore
from roomshare.main import app


@pytest.fixture
def api_settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'api.db'}",
        storage_root=str(tmp_path / "storage"),
        local_state_dir=str(tmp_path / "ledgers"),
        public_base_url="http://testserver",
    )


@pytest.fixture
async def client(api_settings, monkeypatch):
    """httpx client bound to the app with every platform adapter swapped in."""
    manager = DatabaseSessionManager(api_settings.database_url)
    await manager.create_all()
    feed = InMemoryChangeFeed()
    store = LocalObjectStore(
        api_settings.storage_root, api_settings.storage_bucket, api_settings.public_base_url,
    )

    monkeypatch.setattr(db_module, "db_manager", manager)
    monkeypatch.setattr(feed_module, "_feed", feed)
    monkeypatch.setattr(store_module, "_store", store)
    monkeypatch.setattr(client_session_module, "_clients", {})
    monkeypatch.setattr(
        clients_routes, "open_client",
        partial(client_session_module.open_client, settings=api_settings, password_rounds=4),
    )

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://testserver") as ac:
        yield ac

    client_session_module.close_all_clients()
    feed.close()
    await manager.dispose()
