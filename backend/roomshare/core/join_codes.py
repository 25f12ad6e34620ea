"""Join Codes — generation, timestamp fallback and normalization of room join codes.

Invariants:
    - Generated codes have exactly `length` characters from JOIN_CODE_ALPHABET
    - Every character is drawn uniformly from the alphabet (no modulo bias)
    - with_timestamp_suffix() always returns a code longer than its input
    - normalize_join_code() is idempotent

Design Decisions:
    - Random source injected (random.Random protocol): SystemRandom in production,
      seeded or scripted sources in tests
    - Suffix is the tail of the base-36 millisecond timestamp: short, readable,
      different for calls at least one millisecond apart
"""

import random
import string

JOIN_CODE_ALPHABET = string.ascii_uppercase + string.digits
DEFAULT_JOIN_CODE_LENGTH = 6
TIMESTAMP_SUFFIX_LENGTH = 4

_BASE36 = string.digits + string.ascii_uppercase


def generate_join_code(
    length: int = DEFAULT_JOIN_CODE_LENGTH,
    rng: random.Random | None = None,
) -> str:
    source = rng or random.SystemRandom()
    return "".join(source.choice(JOIN_CODE_ALPHABET) for _ in range(length))


def to_base36(value: int) -> str:
    if value < 0:
        raise ValueError("base36 encoding needs a non-negative integer")
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def with_timestamp_suffix(code: str, now_ms: int) -> str:
    """Disambiguate a colliding code deterministically from the clock."""
    suffix = to_base36(now_ms)[-TIMESTAMP_SUFFIX_LENGTH:]
    return f"{code}{suffix.rjust(TIMESTAMP_SUFFIX_LENGTH, '0')}"


def normalize_join_code(raw: str) -> str:
    return "".join(raw.split()).upper()
