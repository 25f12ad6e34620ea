"""Route Guard — tests for the pure navigation policy.

Tests cover:
    - LOADING never redirects
    - ANONYMOUS confined to the entry screen
    - INCOMPLETE_PROFILE confined to the username screen
    - COMPLETE kept off entry/username/unknown screens
    - Created/deleted room sets: back interception and deleted-room redirect
    - Path parsing (query strings, fragments, room ids)
"""

from uuid import uuid4

import pytest

from roomshare.core.domain_types import (
    CREATE_ROOM_PATH, DASHBOARD_PATH, ENTRY_PATH, USERNAME_PATH,
    RouteKind, SessionStatus, room_path,
)
from roomshare.core.route_guard import (
    RouteDecision, evaluate_route, parse_room_id, parse_route,
)

ALL_PATHS = [
    ENTRY_PATH, USERNAME_PATH, DASHBOARD_PATH, CREATE_ROOM_PATH,
    room_path(uuid4()), "/nowhere",
]


@pytest.mark.parametrize("path", ALL_PATHS)
def test_loading_never_redirects(path):
    assert evaluate_route(SessionStatus.LOADING, path) == RouteDecision()


@pytest.mark.parametrize("path", ALL_PATHS[1:])
def test_anonymous_is_sent_to_entry(path):
    decision = evaluate_route(SessionStatus.ANONYMOUS, path)
    assert decision.redirect_to == ENTRY_PATH


def test_anonymous_may_stay_on_entry():
    assert evaluate_route(SessionStatus.ANONYMOUS, ENTRY_PATH).redirect_to is None


@pytest.mark.parametrize(
    "path", [ENTRY_PATH, DASHBOARD_PATH, CREATE_ROOM_PATH, room_path(uuid4()), "/x"],
)
def test_incomplete_profile_is_sent_to_username(path):
    decision = evaluate_route(SessionStatus.INCOMPLETE_PROFILE, path)
    assert decision.redirect_to == USERNAME_PATH


def test_incomplete_profile_may_stay_on_username():
    decision = evaluate_route(SessionStatus.INCOMPLETE_PROFILE, USERNAME_PATH)
    assert decision == RouteDecision()


@pytest.mark.parametrize("path", [ENTRY_PATH, USERNAME_PATH, "/nowhere"])
def test_complete_is_sent_to_dashboard(path):
    decision = evaluate_route(SessionStatus.COMPLETE, path)
    assert decision.redirect_to == DASHBOARD_PATH


@pytest.mark.parametrize("path", [DASHBOARD_PATH, CREATE_ROOM_PATH, room_path(uuid4())])
def test_complete_may_visit_protected_screens(path):
    assert evaluate_route(SessionStatus.COMPLETE, path) == RouteDecision()


def test_created_room_installs_back_interceptor():
    room_id = str(uuid4())
    decision = evaluate_route(
        SessionStatus.COMPLETE, room_path(room_id), created_rooms={room_id},
    )
    assert decision.redirect_to is None
    assert decision.intercept_back_to == DASHBOARD_PATH


def test_deleted_room_redirects_to_dashboard():
    room_id = str(uuid4())
    decision = evaluate_route(
        SessionStatus.COMPLETE, room_path(room_id), deleted_rooms={room_id},
    )
    assert decision.redirect_to == DASHBOARD_PATH


def test_other_rooms_are_not_intercepted():
    decision = evaluate_route(
        SessionStatus.COMPLETE, room_path(uuid4()), created_rooms={str(uuid4())},
    )
    assert decision.intercept_back_to is None


def test_parse_route_ignores_query_and_fragment():
    assert parse_route("/dashboard?tab=joined#top").kind is RouteKind.DASHBOARD
    assert parse_route("?x=1").kind is RouteKind.ENTRY


def test_parse_route_extracts_room_id():
    room_id = str(uuid4())
    route = parse_route(room_path(room_id) + "/")
    assert route.kind is RouteKind.ROOM
    assert route.room_id == room_id


def test_parse_room_id_rejects_garbage():
    assert parse_room_id("not-a-uuid") is None
    assert parse_room_id(None) is None
    assert parse_room_id("") is None
