"""Join-Code Allocator — creates a room under a join code that is unique at insert time.

Invariants:
    - Name validated before any store call (trimmed, non-empty, <= 100 chars)
    - Probe loop bounded by probe_attempts; a still-colliding code gets a timestamp suffix
    - Insert-time UniquenessViolationError restarts the whole creation, bounded by
      create_attempts; exhaustion raises JoinCodeExhaustedError (logged)
    - Store failures other than uniqueness propagate unchanged
    - Success inserts exactly one Room row

Design Decisions:
    - Iterative bounded loops instead of recursion: attempt counts are explicit and logged
    - rng and clock injected so tests can force collisions and pin the suffix
    - The probe is advisory; the unique index on rooms.join_code is the real guarantee
"""

import logging
import random
import time
from collections.abc import Callable

from roomshare.core.domain_types import UserId
from roomshare.core.errors import (
    InputValidationError, JoinCodeExhaustedError, NotAuthenticatedError,
    UniquenessViolationError,
)
from roomshare.core.join_codes import (
    DEFAULT_JOIN_CODE_LENGTH, generate_join_code, with_timestamp_suffix,
)
from roomshare.core.records import Room
from roomshare.core.repository_protocols import RoomRepository

logger = logging.getLogger(__name__)

MAX_ROOM_NAME_LENGTH = 100


def _now_ms() -> int:
    return time.time_ns() // 1_000_000


def validate_room_name(name: str | None) -> str:
    name = (name or "").strip()
    if not name:
        raise InputValidationError("Room name cannot be empty.", "name")
    if len(name) > MAX_ROOM_NAME_LENGTH:
        raise InputValidationError(
            f"Room name must be at most {MAX_ROOM_NAME_LENGTH} characters.", "name",
        )
    return name


class JoinCodeAllocator:
    """Bounded-retry join-code allocation and room insert."""

    def __init__(
        self,
        rooms: RoomRepository,
        code_length: int = DEFAULT_JOIN_CODE_LENGTH,
        probe_attempts: int = 3,
        create_attempts: int = 3,
        rng: random.Random | None = None,
        clock: Callable[[], int] | None = None,
    ):
        self._rooms = rooms
        self._code_length = code_length
        self._probe_attempts = probe_attempts
        self._create_attempts = create_attempts
        self._rng = rng or random.SystemRandom()
        self._clock = clock or _now_ms

    async def allocate_and_create_room(
        self, name: str, creator_id: UserId | None,
    ) -> Room:
        name = validate_room_name(name)
        if creator_id is None:
            raise NotAuthenticatedError()

        for attempt in range(1, self._create_attempts + 1):
            code = await self._allocate_code()
            try:
                room = await self._rooms.create(name, creator_id, code)
            except UniquenessViolationError:
                logger.warning(
                    "Join code taken at insert time, retrying room creation",
                    extra={"attempt": attempt, "join_code": code, "user_id": str(creator_id)},
                )
                continue
            logger.info(
                f"Room created: {room.name}",
                extra={"room_id": str(room.id), "join_code": code, "attempt": attempt},
            )
            return room

        logger.error(
            f"Join code allocation exhausted after {self._create_attempts} attempts",
            extra={"user_id": str(creator_id), "error_code": "JOIN_CODE_EXHAUSTED"},
        )
        raise JoinCodeExhaustedError(self._create_attempts)

    async def _allocate_code(self) -> str:
        """Probe for a free code; fall back to a timestamp-suffixed one."""
        code = generate_join_code(self._code_length, self._rng)
        for attempt in range(1, self._probe_attempts + 1):
            if not await self._rooms.join_code_exists(code):
                return code
            logger.debug(
                "Join code collision on probe",
                extra={"attempt": attempt, "join_code": code},
            )
            code = generate_join_code(self._code_length, self._rng)
        return with_timestamp_suffix(code, self._clock())
