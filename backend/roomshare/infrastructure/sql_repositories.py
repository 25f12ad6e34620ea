"""SQL Repositories — SQLAlchemy implementations of the data store Protocols.

Invariants:
    - Every method opens its own session and commits before returning (one call = one
      atomic store operation, like a hosted row API)
    - Domain repositories return frozen records; only SqlAccountRepository hands
      ORM rows out, and only to the identity adapter
    - File and comment writes publish a ChangeEvent only after a successful commit
    - Deletes are idempotent: deleting an absent row returns 0 and publishes nothing
    - Timestamps returned as timezone-aware UTC (SQLite drops tzinfo on read)

Design Decisions:
    - Repositories depend on DatabaseSessionManager, not on a request session:
      services call them from request handlers, feed callbacks and background work alike
    - Publishing lives here because a hosted platform emits row changes from the
      database itself; the in-process feed mirrors that placement
"""

from collections.abc import Sequence
from datetime import datetime, timezone

from sqlalchemy import delete, exists, select

from roomshare.core.domain_types import (
    ChangeKind, CommentId, FeedTable, FileCategory, FileId, RoomId, UserId,
)
from roomshare.core.records import (
    ChangeEvent, CommentRecord, FileRecord, Membership, Profile, Room,
)
from roomshare.core.repository_protocols import ChangeFeed
from roomshare.infrastructure.database import DatabaseSessionManager
from roomshare.models.account import Account
from roomshare.models.comment import CommentRow
from roomshare.models.membership import MembershipRow
from roomshare.models.profile import ProfileRow
from roomshare.models.room import RoomRow
from roomshare.models.room_file import RoomFileRow


def _utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _room(row: RoomRow) -> Room:
    return Room(
        id=RoomId(row.id), name=row.name, created_by=UserId(row.created_by),
        join_code=row.join_code, created_at=_utc(row.created_at),
    )


def _file(row: RoomFileRow) -> FileRecord:
    return FileRecord(
        id=FileId(row.id), room_id=RoomId(row.room_id),
        uploaded_by=UserId(row.uploaded_by), file_name=row.file_name,
        storage_path=row.storage_path, file_url=row.file_url,
        file_size=row.file_size, category=FileCategory(row.category),
        created_at=_utc(row.created_at),
    )


def _comment(row: CommentRow) -> CommentRecord:
    return CommentRecord(
        id=CommentId(row.id), room_id=RoomId(row.room_id),
        user_id=UserId(row.user_id), content=row.content,
        created_at=_utc(row.created_at),
    )


# ─── Accounts (identity adapter) ────────────────────────────────

class SqlAccountRepository:
    """Credential rows for the local identity provider."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create(self, email: str, password_hash: str) -> Account:
        async with self._db.session() as session:
            account = Account(email=email, password_hash=password_hash)
            session.add(account)
            await session.commit()
            return account

    async def get_by_email(self, email: str) -> Account | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(Account).where(Account.email == email),
            )
            return result.scalar_one_or_none()


# ─── Profiles ───────────────────────────────────────────────────

class SqlProfileRepository:

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def get(self, user_id: UserId) -> Profile | None:
        async with self._db.session() as session:
            row = await session.get(ProfileRow, user_id)
            if row is None:
                return None
            return Profile(user_id=UserId(row.id), username=row.username)

    async def create(self, user_id: UserId, username: str) -> Profile:
        """Insert the profile row. A second insert for the same id or name collides."""
        async with self._db.session() as session:
            session.add(ProfileRow(id=user_id, username=username))
            await session.commit()
            return Profile(user_id=user_id, username=username)


# ─── Rooms ──────────────────────────────────────────────────────

class SqlRoomRepository:

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def create(self, name: str, created_by: UserId, join_code: str) -> Room:
        async with self._db.session() as session:
            row = RoomRow(name=name, created_by=created_by, join_code=join_code)
            session.add(row)
            await session.commit()
            return _room(row)

    async def get(self, room_id: RoomId) -> Room | None:
        async with self._db.session() as session:
            row = await session.get(RoomRow, room_id)
            return _room(row) if row else None

    async def get_by_join_code(self, join_code: str) -> Room | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(RoomRow).where(RoomRow.join_code == join_code),
            )
            row = result.scalar_one_or_none()
            return _room(row) if row else None

    async def join_code_exists(self, join_code: str) -> bool:
        async with self._db.session() as session:
            result = await session.execute(
                select(exists().where(RoomRow.join_code == join_code)),
            )
            return bool(result.scalar())

    async def list_created_by(self, user_id: UserId) -> list[Room]:
        async with self._db.session() as session:
            result = await session.execute(
                select(RoomRow)
                .where(RoomRow.created_by == user_id)
                .order_by(RoomRow.created_at),
            )
            return [_room(r) for r in result.scalars().all()]

    async def list_by_ids(
        self, room_ids: Sequence[RoomId], exclude_created_by: UserId | None = None,
    ) -> list[Room]:
        if not room_ids:
            return []
        query = select(RoomRow).where(RoomRow.id.in_(list(room_ids)))
        if exclude_created_by is not None:
            query = query.where(RoomRow.created_by != exclude_created_by)
        async with self._db.session() as session:
            result = await session.execute(query.order_by(RoomRow.created_at))
            return [_room(r) for r in result.scalars().all()]

    async def delete(self, room_id: RoomId, created_by: UserId) -> int:
        async with self._db.session() as session:
            result = await session.execute(
                delete(RoomRow)
                .where(RoomRow.id == room_id)
                .where(RoomRow.created_by == created_by),
            )
            await session.commit()
            return result.rowcount or 0


# ─── Memberships ────────────────────────────────────────────────

class SqlMembershipRepository:

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    async def get(self, room_id: RoomId, user_id: UserId) -> Membership | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(MembershipRow)
                .where(MembershipRow.room_id == room_id)
                .where(MembershipRow.user_id == user_id),
            )
            row = result.scalar_one_or_none()
            return Membership(room_id=room_id, user_id=user_id) if row else None

    async def add(self, room_id: RoomId, user_id: UserId) -> Membership:
        async with self._db.session() as session:
            session.add(MembershipRow(room_id=room_id, user_id=user_id))
            await session.commit()
            return Membership(room_id=room_id, user_id=user_id)

    async def list_room_ids(self, user_id: UserId) -> list[RoomId]:
        async with self._db.session() as session:
            result = await session.execute(
                select(MembershipRow.room_id).where(MembershipRow.user_id == user_id),
            )
            return [RoomId(r) for r in result.scalars().all()]

    async def delete_for_room(self, room_id: RoomId) -> int:
        async with self._db.session() as session:
            result = await session.execute(
                delete(MembershipRow).where(MembershipRow.room_id == room_id),
            )
            await session.commit()
            return result.rowcount or 0


# ─── Files ──────────────────────────────────────────────────────

class SqlFileRepository:
    """File metadata rows; publishes to the change feed after each commit."""

    def __init__(self, db: DatabaseSessionManager, feed: ChangeFeed | None = None):
        self._db = db
        self._feed = feed

    async def create(
        self,
        room_id: RoomId,
        uploaded_by: UserId,
        file_name: str,
        storage_path: str,
        file_url: str,
        file_size: int,
        category: FileCategory,
    ) -> FileRecord:
        async with self._db.session() as session:
            row = RoomFileRow(
                room_id=room_id, uploaded_by=uploaded_by, file_name=file_name,
                storage_path=storage_path, file_url=file_url,
                file_size=file_size, category=category.value,
            )
            session.add(row)
            await session.commit()
            record = _file(row)
        await self._publish(ChangeKind.INSERT, record)
        return record

    async def get_by_path(self, storage_path: str) -> FileRecord | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(RoomFileRow).where(RoomFileRow.storage_path == storage_path),
            )
            row = result.scalar_one_or_none()
            return _file(row) if row else None

    async def list_for_room(self, room_id: RoomId) -> list[FileRecord]:
        async with self._db.session() as session:
            result = await session.execute(
                select(RoomFileRow)
                .where(RoomFileRow.room_id == room_id)
                .order_by(RoomFileRow.created_at),
            )
            return [_file(r) for r in result.scalars().all()]

    async def delete_by_path(self, storage_path: str) -> int:
        async with self._db.session() as session:
            result = await session.execute(
                select(RoomFileRow).where(RoomFileRow.storage_path == storage_path),
            )
            row = result.scalar_one_or_none()
            if row is None:
                return 0
            record = _file(row)
            await session.delete(row)
            await session.commit()
        await self._publish(ChangeKind.DELETE, record)
        return 1

    async def delete_for_room(self, room_id: RoomId) -> int:
        async with self._db.session() as session:
            result = await session.execute(
                select(RoomFileRow).where(RoomFileRow.room_id == room_id),
            )
            rows = list(result.scalars().all())
            records = [_file(r) for r in rows]
            await session.execute(
                delete(RoomFileRow).where(RoomFileRow.room_id == room_id),
            )
            await session.commit()
        for record in records:
            await self._publish(ChangeKind.DELETE, record)
        return len(records)

    async def _publish(self, kind: ChangeKind, record: FileRecord) -> None:
        if self._feed is None:
            return
        await self._feed.publish(
            ChangeEvent(FeedTable.FILES, kind, record.room_id, record),
        )


# ─── Comments ───────────────────────────────────────────────────

class SqlCommentRepository:
    """Comment rows; publishes to the change feed after each commit."""

    def __init__(self, db: DatabaseSessionManager, feed: ChangeFeed | None = None):
        self._db = db
        self._feed = feed

    async def create(
        self, room_id: RoomId, user_id: UserId, content: str,
    ) -> CommentRecord:
        async with self._db.session() as session:
            row = CommentRow(room_id=room_id, user_id=user_id, content=content)
            session.add(row)
            await session.commit()
            record = _comment(row)
        await self._publish(ChangeKind.INSERT, record)
        return record

    async def list_for_room(self, room_id: RoomId) -> list[CommentRecord]:
        async with self._db.session() as session:
            result = await session.execute(
                select(CommentRow)
                .where(CommentRow.room_id == room_id)
                .order_by(CommentRow.created_at.asc()),
            )
            return [_comment(r) for r in result.scalars().all()]

    async def delete_for_room(self, room_id: RoomId) -> int:
        async with self._db.session() as session:
            result = await session.execute(
                select(CommentRow).where(CommentRow.room_id == room_id),
            )
            records = [_comment(r) for r in result.scalars().all()]
            await session.execute(
                delete(CommentRow).where(CommentRow.room_id == room_id),
            )
            await session.commit()
        for record in records:
            await self._publish(ChangeKind.DELETE, record)
        return len(records)

    async def _publish(self, kind: ChangeKind, record: CommentRecord) -> None:
        if self._feed is None:
            return
        await self._feed.publish(
            ChangeEvent(FeedTable.COMMENTS, kind, record.room_id, record),
        )
