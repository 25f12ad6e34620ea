"""Client Session — per-client composition of controller, services and open-room reconciler.

Invariants:
    - One ClientSession per client id; the registry never holds two for the same id
    - The reconciler is open exactly while the visible location is an accessible room screen:
      leaving the room (navigation, back, redirect, sign-out) closes it synchronously
    - Every mutating operation returns the resulting view (state, location, open room)
    - Dashboard, room and room-content operations need a complete profile: anonymous
      clients get NotAuthenticatedError, clients without a username ProfileIncompleteError
    - Locally created records are applied to the replica immediately; their feed echoes
      merge without duplicating them

Design Decisions:
    - In-memory registry dict (same shape as a per-session state cache): client sessions
      are ephemeral, the navigation ledger on disk is what survives a restart
    - A client may reconnect with its previous id to reload its ledger
"""

import logging
import re
import secrets
from pathlib import Path

from roomshare.config import Settings, get_settings
from roomshare.core.domain_types import (
    DASHBOARD_PATH, ChangeKind, RouteKind, SessionStatus, room_path,
)
from roomshare.core.errors import (
    InputValidationError, NotAuthenticatedError, ProfileIncompleteError, ResourceNotFoundError,
)
from roomshare.core.records import CommentRecord, FileRecord, Room
from roomshare.core.route_guard import parse_room_id, parse_route
from roomshare.infrastructure.change_feed import get_change_feed
from roomshare.infrastructure.database import get_db_manager
from roomshare.infrastructure.local_state import JsonNavigationLedger
from roomshare.infrastructure.object_store import get_object_store
from roomshare.services.app_context import AppContext, build_app_context
from roomshare.services.comment_service import CommentService
from roomshare.services.file_service import FileService, UploadItem, UploadOutcome
from roomshare.services.realtime_reconciler import RealtimeReconciler
from roomshare.services.room_service import (
    DashboardView, JoinResult, RoomDetails, RoomService, require_room_id,
)
from roomshare.services.session_controller import SessionController

logger = logging.getLogger(__name__)

_CLIENT_ID_RE = re.compile(r"^[A-Za-z0-9_-]{8,64}$")


class ClientSession:
    """Everything one connected client sees and does."""

    def __init__(self, client_id: str, ctx: AppContext):
        self.client_id = client_id
        self.ctx = ctx
        self.controller = SessionController(ctx)
        self.rooms = RoomService(ctx)
        self.files = FileService(ctx)
        self.comments = CommentService(ctx)
        self.reconciler = RealtimeReconciler(ctx, self.comments)
        self._location_handle = self.controller.history.add_change_listener(
            self._on_location_change,
        )

    @property
    def location(self) -> str:
        return self.controller.location

    def view(self) -> dict:
        return {
            "client_id": self.client_id,
            "state": self.controller.state.to_dict(),
            "location": self.location,
            "room": self.reconciler.snapshot() if self.reconciler.is_open else None,
        }

    async def start(self) -> dict:
        await self.controller.start()
        await self._sync_room_screen()
        return self.view()

    def close(self) -> None:
        self.reconciler.close()
        self.controller.stop()
        self.controller.history.remove_listener(self._location_handle)

    # -- Session -----------------------------------------------------------

    async def sign_up(self, email: str, password: str) -> dict:
        await self.controller.sign_up(email, password)
        return self.view()

    async def sign_in(self, email: str, password: str) -> dict:
        await self.controller.sign_in(email, password)
        return self.view()

    async def sign_out(self) -> dict:
        await self.controller.sign_out()
        return self.view()

    async def set_username(self, username: str) -> dict:
        await self.controller.set_username(username)
        return self.view()

    async def navigate(self, path: str, replace: bool = False) -> dict:
        self.controller.navigate(path, replace=replace)
        await self._sync_room_screen()
        return self.view()

    async def back(self) -> dict:
        self.controller.back()
        await self._sync_room_screen()
        return self.view()

    # -- Rooms -------------------------------------------------------------

    async def dashboard(self) -> DashboardView:
        self._require_complete()
        return await self.rooms.list_dashboard()

    async def create_room(self, name: str) -> Room:
        self._require_complete()
        room = await self.rooms.create_room(name)
        self.controller.record_room_created(room.id)
        self.controller.navigate(room_path(room.id), replace=True)
        await self._sync_room_screen()
        return room

    async def join_room(self, code: str) -> JoinResult:
        self._require_complete()
        result = await self.rooms.join_room(code)
        self.controller.navigate(room_path(result.room.id))
        await self._sync_room_screen()
        return result

    async def enter_room(self, room_id) -> RoomDetails | None:
        """Navigate to a room screen; None when the guard sends the client elsewhere."""
        room_id = require_room_id(room_id)
        target = room_path(room_id)
        if self.location != target:
            self.controller.navigate(target)
        if self.location != target:
            return None
        details = await self.rooms.open_room(room_id)
        await self._sync_room_screen()
        return details

    async def delete_room(self, room_id) -> None:
        self._require_complete()
        await self.rooms.delete_room(room_id)
        self.controller.record_room_deleted(room_id)
        if self.location != DASHBOARD_PATH:
            self.controller.navigate(DASHBOARD_PATH)

    # -- Room content ------------------------------------------------------

    async def upload_files(self, room_id, items: list[UploadItem], category=None) -> UploadOutcome:
        self._require_complete()
        outcome = await self.files.upload(room_id, items, category)
        for record in outcome.uploaded:
            self.reconciler.apply_local_file(record)
        return outcome

    async def delete_file(self, room_id, storage_path: str) -> FileRecord | None:
        self._require_complete()
        record = await self.files.delete(room_id, storage_path)
        if record is not None:
            self.reconciler.apply_local_file(record, ChangeKind.DELETE)
        return record

    async def post_comment(self, room_id, content: str) -> CommentRecord:
        self._require_complete()
        record = await self.comments.post(room_id, content)
        self.reconciler.apply_local_comment(record)
        return record

    # -- Internals ---------------------------------------------------------

    def _require_complete(self) -> None:
        status = self.controller.status
        if status is SessionStatus.INCOMPLETE_PROFILE:
            raise ProfileIncompleteError()
        if status is not SessionStatus.COMPLETE:
            raise NotAuthenticatedError()

    def _on_location_change(self, location: str) -> None:
        if not self.reconciler.is_open:
            return
        route = parse_route(location)
        if route.kind is not RouteKind.ROOM or route.room_id != str(self.reconciler.room_id):
            self.reconciler.close()

    async def _sync_room_screen(self) -> None:
        route = parse_route(self.location)
        if (
            route.kind is RouteKind.ROOM
            and self.controller.status is SessionStatus.COMPLETE
            and parse_room_id(route.room_id) is not None
        ):
            await self.reconciler.open(route.room_id)
        elif self.reconciler.is_open:
            self.reconciler.close()


# ─── Registry ───────────────────────────────────────────────────

_clients: dict[str, ClientSession] = {}


def _ledger_path(settings: Settings, client_id: str) -> Path:
    return Path(settings.local_state_dir) / f"{client_id}.json"


async def open_client(
    client_id: str | None = None,
    settings: Settings | None = None,
    password_rounds: int | None = None,
) -> ClientSession:
    """Create (or resume) a client session wired to the process-wide adapters."""
    if client_id is not None and not _CLIENT_ID_RE.match(client_id):
        raise InputValidationError("Client id is invalid.", "client_id")
    existing = _clients.get(client_id) if client_id else None
    if existing is not None:
        return existing

    settings = settings or get_settings()
    client_id = client_id or secrets.token_urlsafe(16)
    ctx = build_app_context(
        db=get_db_manager(),
        feed=get_change_feed(),
        objects=get_object_store(),
        ledger=JsonNavigationLedger(_ledger_path(settings, client_id)),
        settings=settings,
        password_rounds=password_rounds,
    )
    client = ClientSession(client_id, ctx)
    await client.start()
    _clients[client_id] = client
    logger.info("Client session opened", extra={"client_id": client_id})
    return client


def get_client(client_id: str) -> ClientSession:
    client = _clients.get(client_id)
    if client is None:
        raise ResourceNotFoundError("Client", client_id)
    return client


def close_client(client_id: str) -> bool:
    client = _clients.pop(client_id, None)
    if client is None:
        return False
    client.close()
    logger.info("Client session closed", extra={"client_id": client_id})
    return True


def close_all_clients() -> None:
    for client_id in list(_clients):
        close_client(client_id)
