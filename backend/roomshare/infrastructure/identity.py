"""Local Identity Provider — per-client session over a shared account directory.

Invariants:
    - One provider instance per client: it holds at most one current session
    - Listeners are notified after every session change (sign-up, sign-in, sign-out, expiry)
    - A listener failure is logged and never blocks the other listeners
    - Passwords stored only as bcrypt hashes
    - Credential errors use the same message for unknown email and wrong password

Design Decisions:
    - Stand-in for a hosted identity provider: sign-up signs the user in immediately
      (email confirmation disabled), matching the hosted default the app was built on
    - bcrypt work runs in asyncio.to_thread so hashing never stalls the event loop
    - Subscriptions are explicit handles; unsubscribe() is idempotent
"""

import asyncio
import logging
import secrets
from itertools import count

import bcrypt

from roomshare.core.domain_types import UserId
from roomshare.core.errors import (
    AuthenticationError, InputValidationError, UniquenessViolationError,
)
from roomshare.core.records import AuthSession
from roomshare.core.repository_protocols import SessionCallback
from roomshare.infrastructure.sql_repositories import SqlAccountRepository

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 12
MIN_PASSWORD_LENGTH = 6
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = BCRYPT_ROUNDS) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, encoded: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), encoded.encode("utf-8"))
    except ValueError:
        return False


def validate_credentials(email: str, password: str) -> str:
    """Reject malformed credentials before any provider call. Returns normalized email."""
    normalized = (email or "").strip().lower()
    if "@" not in normalized or normalized.startswith("@") or normalized.endswith("@"):
        raise InputValidationError("Please enter a valid email address.", "email")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise InputValidationError(
            f"Password should be at least {MIN_PASSWORD_LENGTH} characters.", "password",
        )
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InputValidationError(
            f"Password should be at most {MAX_PASSWORD_BYTES} bytes.", "password",
        )
    return normalized


class AuthSubscription:
    """Handle for an on_session_change registration."""

    def __init__(self, provider: "LocalIdentityProvider", handle: int):
        self._provider = provider
        self._handle = handle

    @property
    def active(self) -> bool:
        return self._handle in self._provider._listeners

    def unsubscribe(self) -> None:
        self._provider._listeners.pop(self._handle, None)


class LocalIdentityProvider:
    """Identity provider adapter holding one client's session."""

    def __init__(self, accounts: SqlAccountRepository, rounds: int = BCRYPT_ROUNDS):
        self._accounts = accounts
        self._rounds = rounds
        self._session: AuthSession | None = None
        self._listeners: dict[int, SessionCallback] = {}
        self._ids = count(1)

    async def get_current_session(self) -> AuthSession | None:
        return self._session

    def on_session_change(self, callback: SessionCallback) -> AuthSubscription:
        handle = next(self._ids)
        self._listeners[handle] = callback
        return AuthSubscription(self, handle)

    async def sign_up(self, email: str, password: str) -> AuthSession:
        normalized = validate_credentials(email, password)
        try:
            account = await self._accounts.create(
                normalized, await asyncio.to_thread(hash_password, password, self._rounds),
            )
        except UniquenessViolationError:
            raise AuthenticationError("User already registered")
        logger.info("Account created", extra={"user_id": str(account.id)})
        return await self._set_session(UserId(account.id), normalized)

    async def sign_in(self, email: str, password: str) -> AuthSession:
        normalized = validate_credentials(email, password)
        account = await self._accounts.get_by_email(normalized)
        if account is None or not await asyncio.to_thread(
            verify_password, password, account.password_hash,
        ):
            raise AuthenticationError("Invalid login credentials")
        return await self._set_session(UserId(account.id), normalized)

    async def sign_out(self) -> None:
        if self._session is None:
            return
        self._session = None
        await self._notify()

    async def expire(self) -> None:
        """Session ended outside the client's control (token expiry, revocation)."""
        await self.sign_out()

    async def _set_session(self, user_id: UserId, email: str) -> AuthSession:
        self._session = AuthSession(
            user_id=user_id, email=email, access_token=secrets.token_urlsafe(32),
        )
        await self._notify()
        return self._session

    async def _notify(self) -> None:
        session = self._session
        for handle, callback in list(self._listeners.items()):
            if handle not in self._listeners:
                continue
            try:
                await callback(session)
            except Exception as e:
                logger.error(f"Session listener failed: {e}", exc_info=True)
