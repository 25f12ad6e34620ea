"""Comment Service — post and list room comments with author usernames.

Invariants:
    - Content is trimmed; empty or over-long content is rejected before any store call
    - Username lookup failure or a missing profile yields "Anonymous", never an error
    - list_for_room() returns comments in (created_at, id) order
    - Only the creator or a member may post, and only while the room exists
"""

import logging
from dataclasses import replace

from roomshare.core.domain_types import UserId
from roomshare.core.errors import InputValidationError, RoomShareError
from roomshare.core.reconciler import ANONYMOUS_USERNAME
from roomshare.core.records import CommentRecord
from roomshare.services.app_context import AppContext, require_session
from roomshare.services.room_service import require_room_id, require_room_member

logger = logging.getLogger(__name__)

MAX_COMMENT_LENGTH = 2000


class CommentService:
    def __init__(self, ctx: AppContext):
        self._ctx = ctx
        self._usernames: dict[UserId, str] = {}

    async def post(self, raw_room_id, content: str) -> CommentRecord:
        room_id = require_room_id(raw_room_id)
        content = (content or "").strip()
        if not content:
            raise InputValidationError("Comment cannot be empty.", "content")
        if len(content) > MAX_COMMENT_LENGTH:
            raise InputValidationError(
                f"Comment must be at most {MAX_COMMENT_LENGTH} characters.", "content",
            )
        session = await require_session(self._ctx)
        await require_room_member(self._ctx, room_id, session.user_id)
        record = await self._ctx.comments.create(room_id, session.user_id, content)
        return await self.enrich(record)

    async def list_for_room(self, raw_room_id) -> list[CommentRecord]:
        room_id = require_room_id(raw_room_id)
        rows = await self._ctx.comments.list_for_room(room_id)
        enriched = [await self.enrich(r) for r in rows]
        return sorted(enriched, key=lambda c: (c.created_at, str(c.id)))

    async def enrich(self, record: CommentRecord) -> CommentRecord:
        if record.username:
            return record
        return replace(record, username=await self.resolve_username(record.user_id))

    async def resolve_username(self, user_id: UserId) -> str:
        cached = self._usernames.get(user_id)
        if cached is not None:
            return cached
        try:
            profile = await self._ctx.profiles.get(user_id)
        except RoomShareError as e:
            logger.warning(
                f"Username lookup failed, showing {ANONYMOUS_USERNAME}: {e.message}",
                extra={"user_id": str(user_id), "error_code": e.code},
            )
            return ANONYMOUS_USERNAME
        if profile is None or not profile.is_complete:
            return ANONYMOUS_USERNAME
        self._usernames[user_id] = profile.username
        return profile.username
