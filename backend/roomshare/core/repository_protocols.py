"""Boundary Protocols — contracts between core/services and the external platform.

Invariants:
    - Core NEVER imports from infrastructure — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by the shell via the AppContext
    - Data store writes that collide on a unique constraint raise UniquenessViolationError;
      every other store failure raises StoreError / ObjectStoreError

Design Decisions:
    - Protocol over ABC: structural subtyping, test doubles need no inheritance
    - Async in Protocol: boundary methods are async because implementations do IO;
      subscription and URL methods are sync because they only touch local state
"""

from collections.abc import Awaitable, Callable, Iterable, Sequence
from typing import Protocol

from roomshare.core.domain_types import FeedTable, FileCategory, RoomId, UserId
from roomshare.core.records import (
    AuthSession, ChangeEvent, CommentRecord, FileRecord, Membership, Profile, Room,
)

SessionCallback = Callable[[AuthSession | None], Awaitable[None]]
ChangeCallback = Callable[[ChangeEvent], Awaitable[None]]


class Subscription(Protocol):
    """Handle returned by subscribe calls — release with unsubscribe()."""
    @property
    def active(self) -> bool: ...
    def unsubscribe(self) -> None: ...


class IdentityProvider(Protocol):
    """Contract for the identity provider — sessions are observed, never mutated."""
    async def get_current_session(self) -> AuthSession | None: ...
    def on_session_change(self, callback: SessionCallback) -> Subscription: ...
    async def sign_up(self, email: str, password: str) -> AuthSession: ...
    async def sign_in(self, email: str, password: str) -> AuthSession: ...
    async def sign_out(self) -> None: ...


class ProfileRepository(Protocol):
    async def get(self, user_id: UserId) -> Profile | None: ...
    async def create(self, user_id: UserId, username: str) -> Profile: ...


class RoomRepository(Protocol):
    async def create(self, name: str, created_by: UserId, join_code: str) -> Room: ...
    async def get(self, room_id: RoomId) -> Room | None: ...
    async def get_by_join_code(self, join_code: str) -> Room | None: ...
    async def join_code_exists(self, join_code: str) -> bool: ...
    async def list_created_by(self, user_id: UserId) -> list[Room]: ...
    async def list_by_ids(
        self, room_ids: Sequence[RoomId], exclude_created_by: UserId | None = None,
    ) -> list[Room]: ...
    async def delete(self, room_id: RoomId, created_by: UserId) -> int: ...


class MembershipRepository(Protocol):
    async def get(self, room_id: RoomId, user_id: UserId) -> Membership | None: ...
    async def add(self, room_id: RoomId, user_id: UserId) -> Membership: ...
    async def list_room_ids(self, user_id: UserId) -> list[RoomId]: ...
    async def delete_for_room(self, room_id: RoomId) -> int: ...


class FileRepository(Protocol):
    async def create(
        self,
        room_id: RoomId,
        uploaded_by: UserId,
        file_name: str,
        storage_path: str,
        file_url: str,
        file_size: int,
        category: FileCategory,
    ) -> FileRecord: ...
    async def get_by_path(self, storage_path: str) -> FileRecord | None: ...
    async def list_for_room(self, room_id: RoomId) -> list[FileRecord]: ...
    async def delete_by_path(self, storage_path: str) -> int: ...
    async def delete_for_room(self, room_id: RoomId) -> int: ...


class CommentRepository(Protocol):
    async def create(
        self, room_id: RoomId, user_id: UserId, content: str,
    ) -> CommentRecord: ...
    async def list_for_room(self, room_id: RoomId) -> list[CommentRecord]: ...
    async def delete_for_room(self, room_id: RoomId) -> int: ...


class ObjectStore(Protocol):
    """Contract for binary blob storage with public URLs."""
    async def upload(self, path: str, data: bytes) -> None: ...
    def get_public_url(self, path: str) -> str: ...
    async def remove(self, paths: Iterable[str]) -> None: ...
    async def remove_prefix(self, prefix: str) -> int: ...


class ChangeFeed(Protocol):
    """Contract for row-level change notifications filtered by room."""
    def subscribe(
        self, table: FeedTable, room_id: RoomId, callback: ChangeCallback,
    ) -> Subscription: ...
    def unsubscribe(self, subscription: Subscription) -> None: ...
    async def publish(self, event: ChangeEvent) -> int: ...


class NavigationLedger(Protocol):
    """Client-local created/deleted room ids — advisory, survives reloads."""
    @property
    def created_rooms(self) -> frozenset[str]: ...
    @property
    def deleted_rooms(self) -> frozenset[str]: ...
    def add_created(self, room_id: str) -> None: ...
    def add_deleted(self, room_id: str) -> None: ...
    def reset(self) -> None: ...
