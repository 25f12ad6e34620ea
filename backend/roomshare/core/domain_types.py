"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - UserId, RoomId, CommentId, FileId wrap UUIDs — never use bare UUID in domain logic
    - All valid states encoded as Enums — no raw string matching
    - Screen paths are defined once here and reused by guard, controller and API

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: serialize to JSON without custom encoders
"""

from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

UserId = NewType("UserId", UUID)
RoomId = NewType("RoomId", UUID)
FileId = NewType("FileId", UUID)
CommentId = NewType("CommentId", UUID)


# ─── Screen Paths ────────────────────────────────────────────────

ENTRY_PATH = "/"
USERNAME_PATH = "/username"
DASHBOARD_PATH = "/dashboard"
CREATE_ROOM_PATH = "/create-room"
ROOM_PATH_PREFIX = "/room/"


def room_path(room_id: UUID | str) -> str:
    return f"{ROOM_PATH_PREFIX}{room_id}"


# ─── Enums ───────────────────────────────────────────────────────

class SessionStatus(str, Enum):
    """Client session states driving the route guard."""
    LOADING = "loading"
    ANONYMOUS = "anonymous"
    INCOMPLETE_PROFILE = "authenticated_incomplete_profile"
    COMPLETE = "authenticated_complete"


class RouteKind(str, Enum):
    """Screen classification for a location path."""
    ENTRY = "entry"
    USERNAME = "username"
    DASHBOARD = "dashboard"
    CREATE_ROOM = "create_room"
    ROOM = "room"
    UNKNOWN = "unknown"


class FileCategory(str, Enum):
    """What a room file is for — shown as a tag next to the file."""
    ASSIGNMENT = "assignment"
    NOTES = "notes"


class ChangeKind(str, Enum):
    """Row-level mutation kinds pushed by the change feed."""
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"


class FeedTable(str, Enum):
    """Tables whose mutations are published on the change feed."""
    FILES = "files"
    COMMENTS = "comments"
