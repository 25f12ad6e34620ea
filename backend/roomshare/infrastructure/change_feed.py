"""In-Process Change Feed — room-scoped pub/sub for file and comment row changes.

Invariants:
    - Subscriptions are keyed by (table, room_id); events for other rooms never reach them
    - Each subscription owns a FIFO queue and one pump task: per-subscription order is
      the publish order, and publishers never wait on subscriber callbacks
    - unsubscribe() is idempotent and cancels the pump; queued events are dropped
    - A failing callback is logged and does not stop later deliveries

Design Decisions:
    - Connection registry keyed by topic, broadcast by iteration (same shape as a
      websocket connection manager), with queues instead of sockets
    - flush() exists so tests and graceful shutdown can wait for delivery
      deterministically instead of sleeping
"""

import asyncio
import logging
from uuid import UUID, uuid4

from roomshare.core.domain_types import FeedTable, RoomId
from roomshare.core.records import ChangeEvent
from roomshare.core.repository_protocols import ChangeCallback

logger = logging.getLogger(__name__)


class FeedSubscription:
    """Live channel for one (table, room) pair."""

    def __init__(
        self,
        feed: "InMemoryChangeFeed",
        table: FeedTable,
        room_id: RoomId,
        callback: ChangeCallback,
    ):
        self.id: UUID = uuid4()
        self.table = table
        self.room_id = room_id
        self._feed = feed
        self._callback = callback
        self._queue: asyncio.Queue[ChangeEvent] = asyncio.Queue()
        self._task: asyncio.Task | None = asyncio.get_running_loop().create_task(
            self._pump(), name=f"feed-{table.value}-{room_id}",
        )

    @property
    def active(self) -> bool:
        return self._task is not None

    def unsubscribe(self) -> None:
        self._feed.unsubscribe(self)

    def deliver(self, event: ChangeEvent) -> None:
        if self.active:
            self._queue.put_nowait(event)

    async def drained(self) -> None:
        if self.active:
            await self._queue.join()

    def _cancel(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        while not self._queue.empty():
            self._queue.get_nowait()
            self._queue.task_done()

    async def _pump(self) -> None:
        while True:
            event = await self._queue.get()
            try:
                await self._callback(event)
            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(
                    f"Change feed callback failed: {e}",
                    exc_info=True,
                    extra={"room_id": str(self.room_id)},
                )
            finally:
                self._queue.task_done()


class InMemoryChangeFeed:
    """Process-wide change feed shared by every client viewing a room."""

    def __init__(self):
        self._channels: dict[tuple[FeedTable, RoomId], dict[UUID, FeedSubscription]] = {}

    def subscribe(
        self, table: FeedTable, room_id: RoomId, callback: ChangeCallback,
    ) -> FeedSubscription:
        subscription = FeedSubscription(self, table, room_id, callback)
        self._channels.setdefault((table, room_id), {})[subscription.id] = subscription
        logger.debug(
            f"Subscribed to {table.value} changes",
            extra={"room_id": str(room_id)},
        )
        return subscription

    def unsubscribe(self, subscription: FeedSubscription) -> None:
        key = (subscription.table, subscription.room_id)
        channel = self._channels.get(key)
        if channel is not None:
            channel.pop(subscription.id, None)
            if not channel:
                del self._channels[key]
        subscription._cancel()

    async def publish(self, event: ChangeEvent) -> int:
        """Queue the event for every subscriber of its (table, room). Returns fan-out."""
        channel = self._channels.get((event.table, event.room_id), {})
        for subscription in list(channel.values()):
            subscription.deliver(event)
        return len(channel)

    def subscriber_count(self, table: FeedTable, room_id: RoomId) -> int:
        return len(self._channels.get((table, room_id), {}))

    async def flush(self) -> None:
        """Wait until every queued event has been handled by its callback."""
        for channel in list(self._channels.values()):
            for subscription in list(channel.values()):
                await subscription.drained()

    def close(self) -> None:
        for channel in list(self._channels.values()):
            for subscription in list(channel.values()):
                self.unsubscribe(subscription)


_feed: InMemoryChangeFeed | None = None


def get_change_feed() -> InMemoryChangeFeed:
    """Singleton feed — every client in the process sees the same channels."""
    global _feed
    if _feed is None:
        _feed = InMemoryChangeFeed()
    return _feed
