"""Service test fixtures — file-backed SQLite, in-process feed, tmp object store.

Invariants:
    - Every test gets a fresh database file, storage root and ledger directory
    - Every change feed is closed at teardown (no pump task outlives its test)
    - Clients built here are started (LOADING resolved) before the test sees them

Design Decisions:
    - SQLite file over :memory:: concurrent sessions (asyncio.gather loads) need
      separate connections that see the same tables
    - bcrypt at its minimum cost: sign-up/sign-in stay fast without changing the algorithm
"""

import pytest

from roomshare.config import Settings
from roomshare.infrastructure.change_feed import InMemoryChangeFeed
from roomshare.infrastructure.database import DatabaseSessionManager
from roomshare.infrastructure.local_state import JsonNavigationLedger
from roomshare.infrastructure.object_store import LocalObjectStore
from roomshare.services.app_context import build_app_context
from roomshare.services.client_session import ClientSession

TEST_ROUNDS = 4
PASSWORD = "secret-pass"


@pytest.fixture
async def db(tmp_path):
    manager = DatabaseSessionManager(f"sqlite+aiosqlite:///{tmp_path / 'roomshare.db'}")
    await manager.create_all()
    yield manager
    await manager.dispose()


@pytest.fixture
async def feed():
    change_feed = InMemoryChangeFeed()
    yield change_feed
    change_feed.close()


@pytest.fixture
def objects(tmp_path):
    return LocalObjectStore(tmp_path / "storage", "uploads", "http://testserver")


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        storage_root=str(tmp_path / "storage"),
        local_state_dir=str(tmp_path / "ledgers"),
        public_base_url="http://testserver",
        max_upload_bytes=1024,
    )


@pytest.fixture
def make_ctx(db, feed, objects, settings, tmp_path):
    """Factory: a fresh AppContext (own identity session and ledger) per call."""
    counter = iter(range(1_000))

    def _make(name: str | None = None):
        ledger_name = name or f"client-{next(counter)}"
        return build_app_context(
            db, feed, objects,
            JsonNavigationLedger(tmp_path / "ledgers" / f"{ledger_name}.json"),
            settings,
            password_rounds=TEST_ROUNDS,
        )

    return _make


@pytest.fixture
def make_client(make_ctx):
    """Factory: a started ClientSession; closed at teardown."""
    clients: list[ClientSession] = []

    async def _make(name: str):
        client = ClientSession(name, make_ctx(name))
        await client.start()
        clients.append(client)
        return client

    yield _make
    for client in clients:
        client.close()


@pytest.fixture
def signed_up(make_client):
    """Factory: a client signed up as <name>@example.com with username <name>."""

    async def _make(name: str):
        client = await make_client(name)
        await client.sign_up(f"{name}@example.com", PASSWORD)
        await client.set_username(name)
        return client

    return _make
