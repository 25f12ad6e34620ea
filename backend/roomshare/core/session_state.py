"""Session State — pure state machine for the client's authentication/profile status.

Invariants:
    - LOADING is left exactly once, via resolve_session_state()
    - INCOMPLETE_PROFILE → COMPLETE only through mark_username_set()
    - A missing session always yields ANONYMOUS, whatever the profile flag says
    - Transitions never mutate: each returns a new SessionState

Design Decisions:
    - Frozen dataclass + transition functions: deterministic, testable without mocks
    - Profile lookup failure is expressed by the caller passing profile_complete=False
      (fail closed toward the lower-privilege state)
"""

from dataclasses import dataclass, replace

from roomshare.core.domain_types import SessionStatus, UserId
from roomshare.core.records import AuthSession


@dataclass(frozen=True)
class SessionState:
    """What the route guard needs to know about the current client."""
    status: SessionStatus = SessionStatus.LOADING
    user_id: UserId | None = None
    email: str | None = None

    @property
    def is_authenticated(self) -> bool:
        return self.status in (
            SessionStatus.INCOMPLETE_PROFILE, SessionStatus.COMPLETE,
        )

    def to_dict(self) -> dict:
        return {
            "status": self.status.value,
            "user_id": str(self.user_id) if self.user_id else None,
            "email": self.email,
        }


def resolve_session_state(
    session: AuthSession | None, profile_complete: bool,
) -> SessionState:
    """Derive the state from an identity session and profile completeness."""
    if session is None or not session.authenticated:
        return SessionState(status=SessionStatus.ANONYMOUS)
    status = (
        SessionStatus.COMPLETE if profile_complete
        else SessionStatus.INCOMPLETE_PROFILE
    )
    return SessionState(status=status, user_id=session.user_id, email=session.email)


def after_sign_up(session: AuthSession) -> SessionState:
    """A fresh account never has a username yet."""
    return resolve_session_state(session, profile_complete=False)


def mark_username_set(state: SessionState) -> SessionState:
    if state.status is not SessionStatus.INCOMPLETE_PROFILE:
        return state
    return replace(state, status=SessionStatus.COMPLETE)


def signed_out() -> SessionState:
    return SessionState(status=SessionStatus.ANONYMOUS)
