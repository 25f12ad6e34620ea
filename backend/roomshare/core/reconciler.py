"""Room Replica — idempotent merge-by-key of files and comments for one open room.

Invariants:
    - Files keyed by storage_path, comments keyed by id: at most one entry per key
    - INSERT adds only when the key is absent; DELETE removes only when present;
      UPDATE replaces only when present — every operation is idempotent
    - Local optimistic writes and feed echoes go through the same apply functions,
      so the order in which they arrive does not matter
    - Keys are never reused (timestamped paths, UUID ids), so a delete is final:
      a late insert echo or snapshot row for a deleted key is ignored and
      insert/delete commute per key
    - ordered_comments is sorted by (created_at, id) after every change

Design Decisions:
    - Pure dataclass (no IO, no asyncio): the realtime service owns one per open room
    - Append-then-resort for comments: simplest correct ordering for late arrivals
    - Username enrichment happens before apply; the replica only stores what it is given
"""

from collections.abc import Iterable
from dataclasses import dataclass, field

from roomshare.core.domain_types import ChangeKind
from roomshare.core.records import CommentRecord, FileRecord

ANONYMOUS_USERNAME = "Anonymous"


@dataclass
class RoomReplica:
    """Local copy of a room's files and comments."""

    files: dict[str, FileRecord] = field(default_factory=dict)
    comments: dict[str, CommentRecord] = field(default_factory=dict)
    _deleted_files: set[str] = field(default_factory=set)
    _deleted_comments: set[str] = field(default_factory=set)
    _ordered: list[CommentRecord] = field(default_factory=list)

    @property
    def file_list(self) -> list[FileRecord]:
        return list(self.files.values())

    @property
    def ordered_comments(self) -> list[CommentRecord]:
        return list(self._ordered)

    # -- Files -----------------------------------------------------------

    def apply_file_change(self, kind: ChangeKind, row: FileRecord) -> bool:
        """Apply one file mutation. Returns True when local state changed."""
        key = row.storage_path
        if kind is ChangeKind.INSERT:
            if key in self.files or key in self._deleted_files:
                return False
            self.files[key] = row
            return True
        if kind is ChangeKind.DELETE:
            self._deleted_files.add(key)
            return self.files.pop(key, None) is not None
        if key not in self.files:
            return False
        self.files[key] = row
        return True

    def load_files(self, rows: Iterable[FileRecord]) -> None:
        for row in rows:
            if row.storage_path not in self._deleted_files:
                self.files.setdefault(row.storage_path, row)

    # -- Comments --------------------------------------------------------

    def apply_comment_change(self, kind: ChangeKind, row: CommentRecord) -> bool:
        """Apply one comment mutation. Returns True when local state changed."""
        key = str(row.id)
        if kind is ChangeKind.INSERT:
            if key in self.comments or key in self._deleted_comments:
                return False
            self.comments[key] = row
        elif kind is ChangeKind.DELETE:
            self._deleted_comments.add(key)
            if self.comments.pop(key, None) is None:
                return False
        else:
            if key not in self.comments:
                return False
            self.comments[key] = row
        self._resort()
        return True

    def load_comments(self, rows: Iterable[CommentRecord]) -> None:
        for row in rows:
            key = str(row.id)
            if key not in self._deleted_comments:
                self.comments.setdefault(key, row)
        self._resort()

    def _resort(self) -> None:
        self._ordered = sorted(
            self.comments.values(), key=lambda c: (c.created_at, str(c.id)),
        )

    def to_dict(self) -> dict:
        return {
            "files": [f.to_dict() for f in self.file_list],
            "comments": [c.to_dict() for c in self.ordered_comments],
        }
