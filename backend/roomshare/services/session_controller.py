"""Session Controller — single source of truth for what screen the client may see.

Invariants:
    - state starts LOADING and is resolved exactly once by start()
    - Every state or location change re-runs the route guard (evaluate_route)
    - Guard redirects always replace the current history entry (bounded hop count)
    - At most one back-navigation interceptor is installed at any time; it is removed
      before the next evaluation installs a new one, and on stop()
    - Profile lookup failure resolves to INCOMPLETE_PROFILE, never to an error
    - Session termination resets the navigation ledger and lands on the entry screen

Design Decisions:
    - Impureim sandwich: identity/profile IO here, policy in core/route_guard.py,
      state transitions in core/session_state.py
    - Navigation is synchronous (history is local); only identity and profile calls await
"""

import logging

from roomshare.core.domain_types import (
    DASHBOARD_PATH, ENTRY_PATH, USERNAME_PATH, SessionStatus, UserId,
)
from roomshare.core.errors import (
    InputValidationError, NotAuthenticatedError, RoomShareError,
    UniquenessViolationError, UsernameTakenError,
)
from roomshare.core.navigation import NavigationHistory
from roomshare.core.records import AuthSession
from roomshare.core.repository_protocols import Subscription
from roomshare.core.route_guard import RouteDecision, evaluate_route
from roomshare.core.session_state import (
    SessionState, after_sign_up, mark_username_set, resolve_session_state, signed_out,
)
from roomshare.services.app_context import AppContext

logger = logging.getLogger(__name__)

MAX_REDIRECT_HOPS = 3
MAX_USERNAME_LENGTH = 32


class SessionController:
    """Route guard and session state for one client."""

    def __init__(self, ctx: AppContext, history: NavigationHistory | None = None):
        self._ctx = ctx
        self.history = history or NavigationHistory()
        self.state = SessionState()
        self._auth_subscription: Subscription | None = None
        self._back_interceptor: int | None = None

    @property
    def location(self) -> str:
        return self.history.current

    @property
    def status(self) -> SessionStatus:
        return self.state.status

    # -- Lifecycle -------------------------------------------------------

    async def start(self) -> str:
        """Resolve LOADING from the current session and start observing changes."""
        session = await self._ctx.identity.get_current_session()
        await self._refresh(session)
        if self._auth_subscription is None:
            self._auth_subscription = self._ctx.identity.on_session_change(
                self._on_session_change,
            )
        return self._apply_guard()

    def stop(self) -> None:
        if self._auth_subscription is not None:
            self._auth_subscription.unsubscribe()
            self._auth_subscription = None
        self._remove_back_interceptor()

    # -- Auth flows ------------------------------------------------------

    async def sign_up(self, email: str, password: str) -> str:
        session = await self._ctx.identity.sign_up(email, password)
        self.state = after_sign_up(session)
        return self._go(USERNAME_PATH)

    async def sign_in(self, email: str, password: str) -> str:
        session = await self._ctx.identity.sign_in(email, password)
        await self._refresh(session)
        return self._go(DASHBOARD_PATH)

    async def set_username(self, username: str) -> str:
        """Persist the profile username; the only way out of INCOMPLETE_PROFILE."""
        username = (username or "").strip()
        if not username:
            raise InputValidationError("Username cannot be empty.", "username")
        if len(username) > MAX_USERNAME_LENGTH:
            raise InputValidationError(
                f"Username must be at most {MAX_USERNAME_LENGTH} characters.", "username",
            )
        session = await self._ctx.identity.get_current_session()
        if session is None:
            raise NotAuthenticatedError("User not found. Please log in.")
        try:
            await self._ctx.profiles.create(session.user_id, username)
        except UniquenessViolationError:
            raise UsernameTakenError(username)
        logger.info("Username set", extra={"user_id": str(session.user_id)})
        self.state = mark_username_set(self.state)
        return self._go(DASHBOARD_PATH)

    async def sign_out(self) -> str:
        await self._ctx.identity.sign_out()
        if self.state.status is not SessionStatus.ANONYMOUS:
            self._handle_signed_out()
        return self.location

    # -- Navigation ------------------------------------------------------

    def navigate(self, path: str, replace: bool = False) -> str:
        """Move to path, then let the guard decide what is actually visible."""
        if replace:
            self.history.replace(path)
        else:
            self.history.push(path)
        return self._apply_guard()

    def back(self) -> str:
        self.history.back()
        return self._apply_guard()

    def record_room_created(self, room_id) -> None:
        self._ctx.ledger.add_created(str(room_id))
        self._apply_guard()

    def record_room_deleted(self, room_id) -> None:
        self._ctx.ledger.add_deleted(str(room_id))
        self._apply_guard()

    # -- Internals -------------------------------------------------------

    async def _on_session_change(self, session: AuthSession | None) -> None:
        await self._refresh(session)
        if session is None:
            self._handle_signed_out()
        else:
            self._apply_guard()

    def _go(self, path: str) -> str:
        """Push path unless a session-change redirect already landed there."""
        if self.history.current == path:
            return self._apply_guard()
        return self.navigate(path)

    def _handle_signed_out(self) -> None:
        self.state = signed_out()
        self._ctx.ledger.reset()
        logger.info("Session ended, returning to entry screen")
        self.navigate(ENTRY_PATH, replace=True)

    async def _refresh(self, session: AuthSession | None) -> None:
        complete = (
            await self._profile_complete(session.user_id) if session else False
        )
        self.state = resolve_session_state(session, complete)

    async def _profile_complete(self, user_id: UserId) -> bool:
        try:
            profile = await self._ctx.profiles.get(user_id)
        except RoomShareError as e:
            logger.warning(
                f"Profile lookup failed, treating profile as incomplete: {e.message}",
                extra={"user_id": str(user_id), "error_code": e.code},
            )
            return False
        return profile is not None and profile.is_complete

    def _apply_guard(self) -> str:
        decision = RouteDecision()
        for _ in range(MAX_REDIRECT_HOPS):
            decision = evaluate_route(
                self.state.status,
                self.history.current,
                self._ctx.ledger.created_rooms,
                self._ctx.ledger.deleted_rooms,
            )
            if decision.redirect_to is None or decision.redirect_to == self.history.current:
                break
            logger.debug(
                f"Redirecting {self.history.current} -> {decision.redirect_to}",
                extra={"location": self.history.current},
            )
            self.history.replace(decision.redirect_to)
        self._install_back_interceptor(decision.intercept_back_to)
        return self.history.current

    def _install_back_interceptor(self, target: str | None) -> None:
        self._remove_back_interceptor()
        if target is None:
            return

        def _redirect_forward(_location: str) -> None:
            self.history.replace(target)

        self._back_interceptor = self.history.add_popstate_listener(_redirect_forward)

    def _remove_back_interceptor(self) -> None:
        if self._back_interceptor is not None:
            self.history.remove_listener(self._back_interceptor)
            self._back_interceptor = None
