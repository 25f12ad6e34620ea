"""Room Service — create, join, list, open and delete rooms for the signed-in user.

Invariants:
    - Every operation requires an identity session (NotAuthenticatedError otherwise)
    - join_room() is idempotent: an existing membership (or a concurrent insert of the
      same pair) is reported as already_member, never as an error
    - Only the creator sees the join code and may delete the room
    - delete_room() runs list_files → remove_objects → delete_comments → delete_files →
      delete_memberships → delete_room → sweep_objects in that order; any failing step
      raises PartialDeletionError naming it, and every step is safe to re-run
    - sweep_objects removes blobs of uploads that raced the deletion; uploads landing
      after it fail their record insert and remove their own blob
    - Joined rooms on the dashboard exclude rooms the user created

Design Decisions:
    - Room metadata and identity fetched concurrently with asyncio.gather (room entry)
    - Explicit dependent deletes instead of relying on FK cascades alone:
      blobs live outside the database and must be removed by the application
"""

import asyncio
import logging
from dataclasses import dataclass, field

from roomshare.core.domain_types import RoomId, UserId
from roomshare.core.errors import (
    ErrorContext, InputValidationError, NotAuthenticatedError, PartialDeletionError,
    PermissionDeniedError, ResourceNotFoundError, RoomShareError, UniquenessViolationError,
)
from roomshare.core.join_codes import normalize_join_code
from roomshare.core.records import Room
from roomshare.core.route_guard import parse_room_id
from roomshare.services.app_context import AppContext, require_session
from roomshare.services.room_allocator import JoinCodeAllocator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinResult:
    room: Room
    already_member: bool


@dataclass(frozen=True)
class DashboardView:
    username: str | None
    created_rooms: list[Room] = field(default_factory=list)
    joined_rooms: list[Room] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "username": self.username,
            "created_rooms": [r.to_dict() for r in self.created_rooms],
            "joined_rooms": [r.to_dict() for r in self.joined_rooms],
        }


@dataclass(frozen=True)
class RoomDetails:
    room: Room
    viewer_id: UserId

    @property
    def is_creator(self) -> bool:
        return self.room.created_by == self.viewer_id

    def to_dict(self) -> dict:
        data = self.room.to_dict(include_join_code=self.is_creator)
        data["is_creator"] = self.is_creator
        return data


def require_room_id(raw) -> RoomId:
    room_id = parse_room_id(str(raw) if raw is not None else None)
    if room_id is None:
        raise InputValidationError("Invalid room ID.", "room_id")
    return RoomId(room_id)


def room_storage_prefix(room_id: RoomId) -> str:
    return f"rooms/{room_id}"


def _room_not_found(key: str) -> ResourceNotFoundError:
    return ResourceNotFoundError(
        "Room", key, ErrorContext(user_message="Room not found!"),
    )


async def require_room_member(ctx: AppContext, room_id: RoomId, user_id: UserId) -> Room:
    """The room, when it still exists and user_id created or joined it."""
    room = await ctx.rooms.get(room_id)
    if room is None:
        raise _room_not_found(str(room_id))
    if room.created_by != user_id and await ctx.memberships.get(room_id, user_id) is None:
        raise PermissionDeniedError(
            "post in this room",
            ErrorContext(
                room_id=str(room_id), user_id=str(user_id),
                user_message="Join this room before posting.",
            ),
        )
    return room


class RoomService:
    """Room lifecycle operations over an AppContext."""

    def __init__(self, ctx: AppContext, allocator: JoinCodeAllocator | None = None):
        self._ctx = ctx
        self._allocator = allocator or JoinCodeAllocator(
            ctx.rooms,
            code_length=ctx.settings.join_code_length,
            probe_attempts=ctx.settings.join_code_probe_attempts,
            create_attempts=ctx.settings.room_create_attempts,
        )

    async def create_room(self, name: str) -> Room:
        session = await self._ctx.identity.get_current_session()
        return await self._allocator.allocate_and_create_room(
            name, session.user_id if session else None,
        )

    async def join_room(self, raw_code: str) -> JoinResult:
        code = normalize_join_code(raw_code or "")
        if not code:
            raise InputValidationError("Join code cannot be empty.", "join_code")
        session = await require_session(self._ctx)

        room = await self._ctx.rooms.get_by_join_code(code)
        if room is None:
            raise _room_not_found(code)

        if await self._ctx.memberships.get(room.id, session.user_id) is not None:
            return JoinResult(room, already_member=True)
        try:
            await self._ctx.memberships.add(room.id, session.user_id)
        except UniquenessViolationError:
            return JoinResult(room, already_member=True)

        logger.info(
            f"Joined room: {room.name}",
            extra={"room_id": str(room.id), "user_id": str(session.user_id)},
        )
        return JoinResult(room, already_member=False)

    async def list_dashboard(self) -> DashboardView:
        session = await require_session(self._ctx)
        user_id = session.user_id

        username = None
        try:
            profile = await self._ctx.profiles.get(user_id)
            username = profile.username if profile else None
        except RoomShareError as e:
            logger.warning(
                f"Profile lookup failed for dashboard greeting: {e.message}",
                extra={"user_id": str(user_id), "error_code": e.code},
            )

        created = await self._ctx.rooms.list_created_by(user_id)
        member_of = await self._ctx.memberships.list_room_ids(user_id)
        joined = await self._ctx.rooms.list_by_ids(member_of, exclude_created_by=user_id)
        return DashboardView(username, created, joined)

    async def open_room(self, raw_room_id) -> RoomDetails:
        room_id = require_room_id(raw_room_id)
        room, session = await asyncio.gather(
            self._ctx.rooms.get(room_id),
            self._ctx.identity.get_current_session(),
        )
        if session is None:
            raise NotAuthenticatedError()
        if room is None:
            raise _room_not_found(str(room_id))
        return RoomDetails(room, session.user_id)

    async def delete_room(self, raw_room_id) -> None:
        """Creator-only cascading delete of blobs, comments, files, memberships and the room."""
        room_id = require_room_id(raw_room_id)
        session = await require_session(self._ctx)
        room = await self._ctx.rooms.get(room_id)
        if room is None:
            raise _room_not_found(str(room_id))
        if room.created_by != session.user_id:
            raise PermissionDeniedError(
                "delete this room",
                ErrorContext(room_id=str(room_id), user_id=str(session.user_id)),
            )

        completed: list[str] = []
        paths: list[str] = []

        async def list_files():
            paths.extend(f.storage_path for f in await self._ctx.files.list_for_room(room_id))

        async def remove_objects():
            if paths:
                await self._ctx.objects.remove(paths)

        async def delete_comments():
            await self._ctx.comments.delete_for_room(room_id)

        async def delete_files():
            await self._ctx.files.delete_for_room(room_id)

        async def delete_memberships():
            await self._ctx.memberships.delete_for_room(room_id)

        async def delete_room_row():
            await self._ctx.rooms.delete(room_id, session.user_id)

        async def sweep_objects():
            swept = await self._ctx.objects.remove_prefix(room_storage_prefix(room_id))
            if swept:
                logger.warning(
                    f"Swept {swept} blobs uploaded during room deletion",
                    extra={"room_id": str(room_id)},
                )

        steps = [
            ("list_files", list_files),
            ("remove_objects", remove_objects),
            ("delete_comments", delete_comments),
            ("delete_files", delete_files),
            ("delete_memberships", delete_memberships),
            ("delete_room", delete_room_row),
            ("sweep_objects", sweep_objects),
        ]
        for name, step in steps:
            try:
                await step()
            except RoomShareError as e:
                logger.error(
                    f"Room deletion failed at {name}: {e.message}",
                    extra={"room_id": str(room_id), "error_code": e.code},
                )
                raise PartialDeletionError(str(room_id), name, list(completed)) from e
            completed.append(name)

        logger.info(
            f"Room deleted with {len(paths)} files",
            extra={"room_id": str(room_id), "user_id": str(session.user_id)},
        )
