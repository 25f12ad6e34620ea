"""Records — immutable row values exchanged between adapters, services and the API.

Invariants:
    - Records are frozen: services derive new values with dataclasses.replace()
    - Records never reference ORM objects (adapters convert at the boundary)
    - FileRecord.storage_path is the reconciliation key for files; CommentRecord.id for comments

Design Decisions:
    - Frozen dataclasses over Pydantic models: core stays dependency-free and hashable
    - to_dict() on each record: single place for the JSON shape used by API and SSE
"""

from dataclasses import dataclass
from datetime import datetime

from roomshare.core.domain_types import (
    ChangeKind, CommentId, FeedTable, FileCategory, FileId, RoomId, UserId,
)


@dataclass(frozen=True)
class AuthSession:
    """Identity provider session — observed, never mutated, by the controller."""
    user_id: UserId
    email: str
    access_token: str
    authenticated: bool = True


@dataclass(frozen=True)
class Profile:
    user_id: UserId
    username: str | None

    @property
    def is_complete(self) -> bool:
        return bool(self.username and self.username.strip())


@dataclass(frozen=True)
class Room:
    id: RoomId
    name: str
    created_by: UserId
    join_code: str
    created_at: datetime

    def to_dict(self, include_join_code: bool = True) -> dict:
        data = {
            "id": str(self.id),
            "name": self.name,
            "created_by": str(self.created_by),
            "created_at": self.created_at.isoformat(),
        }
        if include_join_code:
            data["join_code"] = self.join_code
        return data


@dataclass(frozen=True)
class Membership:
    room_id: RoomId
    user_id: UserId


@dataclass(frozen=True)
class FileRecord:
    id: FileId
    room_id: RoomId
    uploaded_by: UserId
    file_name: str
    storage_path: str
    file_url: str
    file_size: int
    category: FileCategory
    created_at: datetime

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "room_id": str(self.room_id),
            "uploaded_by": str(self.uploaded_by),
            "file_name": self.file_name,
            "storage_path": self.storage_path,
            "file_url": self.file_url,
            "file_size": self.file_size,
            "category": self.category.value,
            "created_at": self.created_at.isoformat(),
        }


@dataclass(frozen=True)
class CommentRecord:
    id: CommentId
    room_id: RoomId
    user_id: UserId
    content: str
    created_at: datetime
    username: str | None = None

    def to_dict(self) -> dict:
        return {
            "id": str(self.id),
            "room_id": str(self.room_id),
            "user_id": str(self.user_id),
            "content": self.content,
            "created_at": self.created_at.isoformat(),
            "username": self.username,
        }


@dataclass(frozen=True)
class ChangeEvent:
    """One row-level mutation pushed on the change feed."""
    table: FeedTable
    kind: ChangeKind
    room_id: RoomId
    row: FileRecord | CommentRecord
