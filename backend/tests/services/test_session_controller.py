"""Session Controller — sign-up/sign-in/sign-out flows and route guard enforcement.

Tests cover:
    - New accounts land on username setup, then the dashboard
    - Guard redirects for every status (entry, username, protected, unknown paths)
    - Back navigation never escapes the guard
    - Sign-out resets the ledger and lands on the entry screen
    - Profile lookup failure fails closed to INCOMPLETE_PROFILE
    - Username validation and uniqueness
"""

from uuid import uuid4

import pytest

from roomshare.core.domain_types import (
    CREATE_ROOM_PATH, DASHBOARD_PATH, ENTRY_PATH, USERNAME_PATH, SessionStatus, room_path,
)
from roomshare.core.errors import (
    AuthenticationError, InputValidationError, NotAuthenticatedError, StoreError,
    UsernameTakenError,
)
from roomshare.services.session_controller import SessionController

PASSWORD = "secret-pass"


class FailingProfiles:
    """Profile repository double whose reads always fail."""

    async def get(self, user_id):
        raise StoreError("connection refused", "execute")

    async def create(self, user_id, username):
        raise StoreError("connection refused", "execute")


async def test_fresh_client_resolves_to_anonymous_entry(make_ctx):
    controller = SessionController(make_ctx())
    assert controller.status is SessionStatus.LOADING
    await controller.start()
    assert controller.status is SessionStatus.ANONYMOUS
    assert controller.location == ENTRY_PATH


async def test_sign_up_then_username_reaches_dashboard(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()

    await controller.sign_up("alice@example.com", PASSWORD)
    assert controller.status is SessionStatus.INCOMPLETE_PROFILE
    assert controller.location == USERNAME_PATH

    await controller.set_username("  alice ")
    assert controller.status is SessionStatus.COMPLETE
    assert controller.location == DASHBOARD_PATH


async def test_sign_in_with_complete_profile_lands_on_dashboard(make_ctx):
    first = SessionController(make_ctx())
    await first.start()
    await first.sign_up("bob@example.com", PASSWORD)
    await first.set_username("bob")

    second = SessionController(make_ctx())
    await second.start()
    await second.sign_in("BOB@example.com", PASSWORD)
    assert second.status is SessionStatus.COMPLETE
    assert second.location == DASHBOARD_PATH
    assert second.history.entries == [DASHBOARD_PATH]


async def test_sign_in_without_username_lands_on_username(make_ctx):
    first = SessionController(make_ctx())
    await first.start()
    await first.sign_up("carol@example.com", PASSWORD)

    second = SessionController(make_ctx())
    await second.start()
    await second.sign_in("carol@example.com", PASSWORD)
    assert second.status is SessionStatus.INCOMPLETE_PROFILE
    assert second.location == USERNAME_PATH


async def test_wrong_password_is_rejected(make_ctx):
    first = SessionController(make_ctx())
    await first.start()
    await first.sign_up("dave@example.com", PASSWORD)

    second = SessionController(make_ctx())
    await second.start()
    with pytest.raises(AuthenticationError):
        await second.sign_in("dave@example.com", "wrong-password")
    assert second.status is SessionStatus.ANONYMOUS


async def test_short_password_rejected_before_provider_call(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()
    with pytest.raises(InputValidationError) as exc_info:
        await controller.sign_up("eve@example.com", "123")
    assert exc_info.value.field == "password"


async def test_anonymous_is_kept_on_entry(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()
    for path in (DASHBOARD_PATH, CREATE_ROOM_PATH, USERNAME_PATH, "/nowhere"):
        assert controller.navigate(path) == ENTRY_PATH


async def test_incomplete_profile_is_kept_on_username(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()
    await controller.sign_up("frank@example.com", PASSWORD)
    assert controller.navigate(DASHBOARD_PATH) == USERNAME_PATH
    assert controller.navigate(ENTRY_PATH) == USERNAME_PATH


async def test_complete_is_kept_off_entry_and_username(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()
    await controller.sign_up("grace@example.com", PASSWORD)
    await controller.set_username("grace")
    assert controller.navigate(ENTRY_PATH) == DASHBOARD_PATH
    assert controller.navigate(USERNAME_PATH) == DASHBOARD_PATH
    assert controller.navigate("/unknown") == DASHBOARD_PATH
    assert controller.navigate(CREATE_ROOM_PATH) == CREATE_ROOM_PATH


async def test_complete_on_entry_goes_to_dashboard_from_deep_history(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()
    await controller.sign_up("ivan@example.com", PASSWORD)
    await controller.set_username("ivan")
    for path in (
        CREATE_ROOM_PATH, room_path(uuid4()), DASHBOARD_PATH,
        room_path(uuid4()), CREATE_ROOM_PATH, room_path(uuid4()),
    ):
        assert controller.navigate(path) == path
    depth = controller.history.depth

    assert controller.navigate(ENTRY_PATH) == DASHBOARD_PATH
    assert controller.history.depth >= depth
    assert controller.location == DASHBOARD_PATH


async def test_back_from_dashboard_never_reaches_username(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()
    await controller.sign_up("heidi@example.com", PASSWORD)
    await controller.set_username("heidi")
    assert controller.back() == DASHBOARD_PATH


async def test_sign_out_resets_ledger_and_lands_on_entry(make_ctx):
    ctx = make_ctx()
    controller = SessionController(ctx)
    await controller.start()
    await controller.sign_up("ivan@example.com", PASSWORD)
    await controller.set_username("ivan")
    controller.record_room_created("11111111-1111-1111-1111-111111111111")

    assert await controller.sign_out() == ENTRY_PATH
    assert controller.status is SessionStatus.ANONYMOUS
    assert ctx.ledger.created_rooms == frozenset()
    assert controller.back() == ENTRY_PATH


async def test_external_session_expiry_is_observed(make_ctx):
    ctx = make_ctx()
    controller = SessionController(ctx)
    await controller.start()
    await controller.sign_up("judy@example.com", PASSWORD)
    await controller.set_username("judy")

    await ctx.identity.expire()
    assert controller.status is SessionStatus.ANONYMOUS
    assert controller.location == ENTRY_PATH


async def test_profile_lookup_failure_fails_closed(make_ctx):
    first = SessionController(make_ctx())
    await first.start()
    await first.sign_up("kim@example.com", PASSWORD)
    await first.set_username("kim")

    ctx = make_ctx()
    ctx.profiles = FailingProfiles()
    controller = SessionController(ctx)
    await controller.start()
    await controller.sign_in("kim@example.com", PASSWORD)
    assert controller.status is SessionStatus.INCOMPLETE_PROFILE
    assert controller.location == USERNAME_PATH


async def test_empty_username_is_rejected(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()
    await controller.sign_up("leo@example.com", PASSWORD)
    with pytest.raises(InputValidationError) as exc_info:
        await controller.set_username("   ")
    assert exc_info.value.message == "Username cannot be empty."
    assert controller.status is SessionStatus.INCOMPLETE_PROFILE


async def test_taken_username_is_rejected(make_ctx):
    first = SessionController(make_ctx())
    await first.start()
    await first.sign_up("mia@example.com", PASSWORD)
    await first.set_username("mia")

    second = SessionController(make_ctx())
    await second.start()
    await second.sign_up("mia2@example.com", PASSWORD)
    with pytest.raises(UsernameTakenError):
        await second.set_username("mia")
    assert second.location == USERNAME_PATH


async def test_username_without_session_is_rejected(make_ctx):
    controller = SessionController(make_ctx())
    await controller.start()
    with pytest.raises(NotAuthenticatedError):
        await controller.set_username("nobody")


async def test_stop_releases_subscription(make_ctx):
    ctx = make_ctx()
    controller = SessionController(ctx)
    await controller.start()
    controller.stop()
    await ctx.identity.sign_up("olga@example.com", PASSWORD)
    assert controller.status is SessionStatus.ANONYMOUS
