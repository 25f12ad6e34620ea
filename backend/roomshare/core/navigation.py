"""Navigation History — in-memory model of a browser history stack.

Invariants:
    - index always points at an existing entry; the stack is never empty
    - push() truncates forward entries, replace() overwrites the current one
    - back() at the first entry is a no-op and fires no popstate
    - Popstate listeners fire only on back(); change listeners fire on every move
    - A removed listener is never called again (remove is idempotent)

Design Decisions:
    - Plain class, no IO: the controller owns one per client and tests drive it directly
    - Listeners are called over a snapshot of the registry so a listener may
      remove itself (or add another) while being notified
"""

from collections.abc import Callable
from itertools import count

from roomshare.core.domain_types import ENTRY_PATH

LocationListener = Callable[[str], None]


class NavigationHistory:
    """History stack with popstate and location-change listeners."""

    def __init__(self, initial: str = ENTRY_PATH):
        self._entries: list[str] = [initial]
        self._index = 0
        self._ids = count(1)
        self._popstate: dict[int, LocationListener] = {}
        self._changes: dict[int, LocationListener] = {}

    @property
    def current(self) -> str:
        return self._entries[self._index]

    @property
    def entries(self) -> list[str]:
        return list(self._entries[: self._index + 1])

    @property
    def depth(self) -> int:
        return self._index + 1

    @property
    def popstate_listener_count(self) -> int:
        return len(self._popstate)

    def push(self, path: str) -> None:
        del self._entries[self._index + 1:]
        self._entries.append(path)
        self._index += 1
        self._notify(self._changes)

    def replace(self, path: str) -> None:
        if self._entries[self._index] == path:
            return
        self._entries[self._index] = path
        self._notify(self._changes)

    def back(self) -> bool:
        """Move one entry back. Returns False when already at the first entry."""
        if self._index == 0:
            return False
        self._index -= 1
        self._notify(self._changes)
        self._notify(self._popstate)
        return True

    def add_popstate_listener(self, listener: LocationListener) -> int:
        handle = next(self._ids)
        self._popstate[handle] = listener
        return handle

    def add_change_listener(self, listener: LocationListener) -> int:
        handle = next(self._ids)
        self._changes[handle] = listener
        return handle

    def remove_listener(self, handle: int) -> None:
        self._popstate.pop(handle, None)
        self._changes.pop(handle, None)

    def _notify(self, registry: dict[int, LocationListener]) -> None:
        location = self.current
        for handle, listener in list(registry.items()):
            if handle in registry:
                listener(location)
