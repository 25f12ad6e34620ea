"""App Context — the injectable bundle of collaborators one client works with.

Invariants:
    - Services reach the external platform only through an AppContext
    - identity and ledger are per client; repositories, object store and feed are shared
    - AppContext holds no mutable session state of its own

Design Decisions:
    - Explicit context object instead of module singletons inside services:
      tests build one from fakes or from an in-memory database
    - build_app_context() is the single place that wires SQL adapters together
"""

from dataclasses import dataclass, field

from roomshare.config import Settings
from roomshare.core.errors import NotAuthenticatedError
from roomshare.core.records import AuthSession
from roomshare.core.repository_protocols import (
    ChangeFeed, CommentRepository, FileRepository, IdentityProvider,
    MembershipRepository, NavigationLedger, ObjectStore, ProfileRepository,
    RoomRepository,
)
from roomshare.infrastructure.database import DatabaseSessionManager
from roomshare.infrastructure.identity import LocalIdentityProvider
from roomshare.infrastructure.sql_repositories import (
    SqlAccountRepository, SqlCommentRepository, SqlFileRepository,
    SqlMembershipRepository, SqlProfileRepository, SqlRoomRepository,
)


@dataclass
class AppContext:
    identity: IdentityProvider
    profiles: ProfileRepository
    rooms: RoomRepository
    memberships: MembershipRepository
    files: FileRepository
    comments: CommentRepository
    objects: ObjectStore
    feed: ChangeFeed
    ledger: NavigationLedger
    settings: Settings = field(default_factory=Settings)


def build_app_context(
    db: DatabaseSessionManager,
    feed: ChangeFeed,
    objects: ObjectStore,
    ledger: NavigationLedger,
    settings: Settings,
    password_rounds: int | None = None,
) -> AppContext:
    """Wire SQL-backed repositories and a fresh identity session for one client."""
    accounts = SqlAccountRepository(db)
    identity = (
        LocalIdentityProvider(accounts, rounds=password_rounds)
        if password_rounds else LocalIdentityProvider(accounts)
    )
    return AppContext(
        identity=identity,
        profiles=SqlProfileRepository(db),
        rooms=SqlRoomRepository(db),
        memberships=SqlMembershipRepository(db),
        files=SqlFileRepository(db, feed),
        comments=SqlCommentRepository(db, feed),
        objects=objects,
        feed=feed,
        ledger=ledger,
        settings=settings,
    )


async def require_session(ctx: AppContext) -> AuthSession:
    """Current identity session, or NotAuthenticatedError before any store call."""
    session = await ctx.identity.get_current_session()
    if session is None:
        raise NotAuthenticatedError()
    return session
