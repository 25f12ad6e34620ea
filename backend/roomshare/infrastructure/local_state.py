"""Local Navigation Ledger — client-persisted sets of created and deleted room ids.

Invariants:
    - A room id is never in both sets: recording one side removes it from the other
    - Every mutation is written through to disk before returning
    - A missing or corrupt file loads as two empty sets (advisory data, never fatal)

Design Decisions:
    - One small JSON file per client, like browser localStorage keys "createdRooms"
      and "deletedRooms"
    - Writes go to a temp file and are renamed into place so a crash never leaves
      half-written JSON
"""

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

_CREATED_KEY = "createdRooms"
_DELETED_KEY = "deletedRooms"


class JsonNavigationLedger:
    """Created/deleted room ids for one client, persisted as JSON."""

    def __init__(self, path: str | Path):
        self._path = Path(path)
        self._created: list[str] = []
        self._deleted: list[str] = []
        self._load()

    @property
    def created_rooms(self) -> frozenset[str]:
        return frozenset(self._created)

    @property
    def deleted_rooms(self) -> frozenset[str]:
        return frozenset(self._deleted)

    def add_created(self, room_id: str) -> None:
        room_id = str(room_id)
        if room_id not in self._created:
            self._created.append(room_id)
        self._deleted = [r for r in self._deleted if r != room_id]
        self._save()

    def add_deleted(self, room_id: str) -> None:
        room_id = str(room_id)
        if room_id not in self._deleted:
            self._deleted.append(room_id)
        self._created = [r for r in self._created if r != room_id]
        self._save()

    def reset(self) -> None:
        self._created = []
        self._deleted = []
        self._save()

    def _load(self) -> None:
        if not self._path.exists():
            return
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
            self._created = [str(r) for r in data.get(_CREATED_KEY, [])]
            self._deleted = [str(r) for r in data.get(_DELETED_KEY, [])]
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable navigation ledger {self._path}: {e}")
            self._created, self._deleted = [], []

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(".tmp")
        tmp.write_text(
            json.dumps({_CREATED_KEY: self._created, _DELETED_KEY: self._deleted}),
            encoding="utf-8",
        )
        tmp.replace(self._path)
