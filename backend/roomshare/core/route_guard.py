"""Route Guard — pure navigation policy: which screen may the client see right now.

Invariants:
    - LOADING never redirects (nothing is known yet)
    - ANONYMOUS only ever sees the entry screen
    - INCOMPLETE_PROFILE only ever sees the username-setup screen
    - COMPLETE never sees the entry or username-setup screens
    - A room id in the deleted set is never shown; a room id in the created or
      deleted set turns backward navigation into a forward jump to the dashboard

Design Decisions:
    - evaluate_route() returns a RouteDecision value, the controller performs it:
      policy is testable without a history or listeners
    - Unknown paths send the client to its state's home screen
    - Room ids compared as strings: the local ledger persists them as JSON strings
"""

from collections.abc import Collection
from dataclasses import dataclass
from uuid import UUID

from roomshare.core.domain_types import (
    CREATE_ROOM_PATH, DASHBOARD_PATH, ENTRY_PATH, ROOM_PATH_PREFIX,
    USERNAME_PATH, RouteKind, SessionStatus,
)


@dataclass(frozen=True)
class ParsedRoute:
    kind: RouteKind
    room_id: str | None = None


@dataclass(frozen=True)
class RouteDecision:
    """redirect_to: replace the current entry; intercept_back_to: popstate target."""
    redirect_to: str | None = None
    intercept_back_to: str | None = None


_PROTECTED = frozenset({RouteKind.DASHBOARD, RouteKind.CREATE_ROOM, RouteKind.ROOM})

_HOME = {
    SessionStatus.ANONYMOUS: ENTRY_PATH,
    SessionStatus.INCOMPLETE_PROFILE: USERNAME_PATH,
    SessionStatus.COMPLETE: DASHBOARD_PATH,
}


def parse_route(path: str) -> ParsedRoute:
    """Classify a location path. Query string and fragment are ignored."""
    clean = path.split("?", 1)[0].split("#", 1)[0] or ENTRY_PATH
    if clean == ENTRY_PATH:
        return ParsedRoute(RouteKind.ENTRY)
    if clean == USERNAME_PATH:
        return ParsedRoute(RouteKind.USERNAME)
    if clean.startswith(DASHBOARD_PATH):
        return ParsedRoute(RouteKind.DASHBOARD)
    if clean.startswith(CREATE_ROOM_PATH):
        return ParsedRoute(RouteKind.CREATE_ROOM)
    if clean.startswith(ROOM_PATH_PREFIX):
        room_id = clean[len(ROOM_PATH_PREFIX):].strip("/")
        return ParsedRoute(RouteKind.ROOM, room_id or None)
    return ParsedRoute(RouteKind.UNKNOWN)


def parse_room_id(raw: str | None) -> UUID | None:
    """Room ids are UUIDs; anything else renders as an invalid room."""
    if not raw:
        return None
    try:
        return UUID(raw)
    except ValueError:
        return None


def evaluate_route(
    status: SessionStatus,
    path: str,
    created_rooms: Collection[str] = (),
    deleted_rooms: Collection[str] = (),
) -> RouteDecision:
    """Decide what happens when the client sits on `path` in `status`."""
    if status is SessionStatus.LOADING:
        return RouteDecision()

    route = parse_route(path)
    home = _HOME[status]

    if status is SessionStatus.ANONYMOUS:
        if route.kind is RouteKind.ENTRY:
            return RouteDecision()
        return RouteDecision(redirect_to=ENTRY_PATH)

    if status is SessionStatus.INCOMPLETE_PROFILE:
        if route.kind is RouteKind.USERNAME:
            return RouteDecision()
        return RouteDecision(redirect_to=USERNAME_PATH)

    # COMPLETE
    if route.kind not in _PROTECTED:
        return RouteDecision(redirect_to=home)
    if route.kind is RouteKind.ROOM and route.room_id:
        if route.room_id in deleted_rooms:
            return RouteDecision(redirect_to=DASHBOARD_PATH)
        if route.room_id in created_rooms:
            return RouteDecision(intercept_back_to=DASHBOARD_PATH)
    return RouteDecision()
