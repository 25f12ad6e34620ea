"""Realtime Reconciler — keeps one open room's files and comments in sync with the change feed.

Invariants:
    - At most one room open at a time; open() on another room closes the previous one first
    - Feed subscriptions are taken before the initial load, so no change is missed;
      the loaded snapshot is merged into (never replaces) what events already applied
    - close() always releases both subscriptions, is idempotent, and bumps the generation
    - Work tagged with an older generation (late events, slow loads) is discarded
    - Local optimistic writes and feed echoes merge through the same RoomReplica methods:
      the echo of a local write never duplicates it
    - Comment usernames resolved before apply; lookup failure shows "Anonymous"

Design Decisions:
    - Generation counter over task cancellation: a stale coroutine may still finish,
      but its result is dropped, which is all navigation needs
    - watch() is the scoped form (async with) for callers with a bounded lifetime
    - Change listeners are plain callables; the SSE stream turns them into asyncio.Event wakeups
"""

import asyncio
import logging
from collections.abc import Callable
from contextlib import asynccontextmanager
from functools import partial
from itertools import count

from roomshare.core.domain_types import ChangeKind, FeedTable, RoomId
from roomshare.core.reconciler import RoomReplica
from roomshare.core.records import ChangeEvent, CommentRecord, FileRecord
from roomshare.core.repository_protocols import Subscription
from roomshare.services.app_context import AppContext
from roomshare.services.comment_service import CommentService
from roomshare.services.room_service import require_room_id

logger = logging.getLogger(__name__)

ReplicaListener = Callable[[], None]


class RealtimeReconciler:
    """Open-room replica plus its change feed subscriptions."""

    def __init__(self, ctx: AppContext, comments: CommentService):
        self._ctx = ctx
        self._comments = comments
        self.replica = RoomReplica()
        self.room_id: RoomId | None = None
        self._generation = 0
        self._subscriptions: list[Subscription] = []
        self._listeners: dict[int, ReplicaListener] = {}
        self._ids = count(1)

    @property
    def is_open(self) -> bool:
        return self.room_id is not None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def subscription_count(self) -> int:
        return sum(1 for s in self._subscriptions if s.active)

    async def open(self, raw_room_id) -> None:
        room_id = require_room_id(raw_room_id)
        if self.room_id == room_id and self._subscriptions:
            return
        self.close()
        self._generation += 1
        generation = self._generation
        self.room_id = room_id
        self.replica = RoomReplica()

        feed = self._ctx.feed
        self._subscriptions = [
            feed.subscribe(FeedTable.FILES, room_id, partial(self._on_file_event, generation)),
            feed.subscribe(FeedTable.COMMENTS, room_id, partial(self._on_comment_event, generation)),
        ]
        logger.debug("Room opened", extra={"room_id": str(room_id)})

        try:
            files, comments = await asyncio.gather(
                self._ctx.files.list_for_room(room_id),
                self._comments.list_for_room(room_id),
            )
        except BaseException:
            if generation == self._generation:
                self.close()
            raise
        if generation != self._generation:
            logger.debug("Discarding stale room load", extra={"room_id": str(room_id)})
            return
        self.replica.load_files(files)
        self.replica.load_comments(comments)
        self._notify()

    def close(self) -> None:
        self._generation += 1
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        was_open = self.room_id is not None
        if was_open:
            logger.debug("Room closed", extra={"room_id": str(self.room_id)})
        self._subscriptions = []
        self.room_id = None
        if was_open:
            self._notify()

    @asynccontextmanager
    async def watch(self, raw_room_id):
        """Open a room for the duration of the block; always unsubscribes on exit."""
        try:
            await self.open(raw_room_id)
            yield self
        finally:
            self.close()

    # -- Local optimistic writes -------------------------------------------

    def apply_local_file(self, record: FileRecord, kind: ChangeKind = ChangeKind.INSERT) -> bool:
        if record.room_id != self.room_id:
            return False
        changed = self.replica.apply_file_change(kind, record)
        if changed:
            self._notify()
        return changed

    def apply_local_comment(
        self, record: CommentRecord, kind: ChangeKind = ChangeKind.INSERT,
    ) -> bool:
        if record.room_id != self.room_id:
            return False
        changed = self.replica.apply_comment_change(kind, record)
        if changed:
            self._notify()
        return changed

    # -- Listeners ---------------------------------------------------------

    def add_listener(self, listener: ReplicaListener) -> int:
        handle = next(self._ids)
        self._listeners[handle] = listener
        return handle

    def remove_listener(self, handle: int) -> None:
        self._listeners.pop(handle, None)

    def snapshot(self) -> dict:
        return {
            "room_id": str(self.room_id) if self.room_id else None,
            **self.replica.to_dict(),
        }

    # -- Feed callbacks ----------------------------------------------------

    async def _on_file_event(self, generation: int, event: ChangeEvent) -> None:
        if generation != self._generation:
            return
        if self.replica.apply_file_change(event.kind, event.row):
            self._notify()

    async def _on_comment_event(self, generation: int, event: ChangeEvent) -> None:
        if generation != self._generation:
            return
        row = event.row
        if event.kind is not ChangeKind.DELETE:
            row = await self._comments.enrich(row)
            if generation != self._generation:
                return
        if self.replica.apply_comment_change(event.kind, row):
            self._notify()

    def _notify(self) -> None:
        for handle, listener in list(self._listeners.items()):
            if handle not in self._listeners:
                continue
            try:
                listener()
            except Exception as e:
                logger.error(f"Replica listener failed: {e}", exc_info=True)
