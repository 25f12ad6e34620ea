"""Local Identity Provider — credentials, session notifications and password hashing."""

import pytest

from roomshare.core.errors import AuthenticationError, InputValidationError
from roomshare.infrastructure.identity import (
    LocalIdentityProvider, hash_password, validate_credentials, verify_password,
)
from roomshare.infrastructure.sql_repositories import SqlAccountRepository

ROUNDS = 4


def test_password_hash_round_trip():
    encoded = hash_password("correct horse", rounds=ROUNDS)
    assert encoded.startswith("$2b$04$")
    assert verify_password("correct horse", encoded)
    assert not verify_password("wrong horse", encoded)
    assert not verify_password("correct horse", "garbage")


def test_credentials_are_validated_and_normalized():
    assert validate_credentials("  Ann@Example.COM ", "123456") == "ann@example.com"
    with pytest.raises(InputValidationError) as exc_info:
        validate_credentials("not-an-email", "123456")
    assert exc_info.value.field == "email"
    with pytest.raises(InputValidationError):
        validate_credentials("ann@example.com", "12345")
    with pytest.raises(InputValidationError) as too_long:
        validate_credentials("ann@example.com", "é" * 40)
    assert too_long.value.field == "password"


async def test_stored_hash_is_bcrypt_and_signs_back_in(db):
    accounts = SqlAccountRepository(db)
    await LocalIdentityProvider(accounts, rounds=ROUNDS).sign_up("ann@example.com", "123456")
    account = await accounts.get_by_email("ann@example.com")
    assert account.password_hash.startswith("$2b$")
    assert "123456" not in account.password_hash

    session = await LocalIdentityProvider(accounts, rounds=ROUNDS).sign_in("ann@example.com", "123456")
    assert session.email == "ann@example.com"


async def test_sign_up_notifies_listeners_with_session(db):
    provider = LocalIdentityProvider(SqlAccountRepository(db), rounds=ROUNDS)
    seen = []

    async def listener(session):
        seen.append(session)

    provider.on_session_change(listener)
    session = await provider.sign_up("ann@example.com", "123456")
    assert seen == [session]
    assert await provider.get_current_session() == session

    await provider.sign_out()
    assert seen[-1] is None
    assert await provider.get_current_session() is None


async def test_duplicate_sign_up_is_rejected(db):
    accounts = SqlAccountRepository(db)
    await LocalIdentityProvider(accounts, rounds=ROUNDS).sign_up("ann@example.com", "123456")
    with pytest.raises(AuthenticationError):
        await LocalIdentityProvider(accounts, rounds=ROUNDS).sign_up(
            "ANN@example.com", "654321",
        )


async def test_unknown_email_and_wrong_password_look_the_same(db):
    accounts = SqlAccountRepository(db)
    await LocalIdentityProvider(accounts, rounds=ROUNDS).sign_up("ann@example.com", "123456")
    provider = LocalIdentityProvider(accounts, rounds=ROUNDS)

    with pytest.raises(AuthenticationError) as unknown:
        await provider.sign_in("nobody@example.com", "123456")
    with pytest.raises(AuthenticationError) as wrong:
        await provider.sign_in("ann@example.com", "000000")
    assert unknown.value.message == wrong.value.message


async def test_failing_listener_does_not_block_others(db):
    provider = LocalIdentityProvider(SqlAccountRepository(db), rounds=ROUNDS)
    seen = []

    async def broken(session):
        raise RuntimeError("listener exploded")

    async def healthy(session):
        seen.append(session)

    provider.on_session_change(broken)
    provider.on_session_change(healthy)
    await provider.sign_up("ann@example.com", "123456")
    assert len(seen) == 1


async def test_unsubscribed_listener_is_not_called(db):
    provider = LocalIdentityProvider(SqlAccountRepository(db), rounds=ROUNDS)
    seen = []

    async def listener(session):
        seen.append(session)

    subscription = provider.on_session_change(listener)
    subscription.unsubscribe()
    assert not subscription.active
    await provider.sign_up("ann@example.com", "123456")
    assert seen == []
