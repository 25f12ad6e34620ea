"""Room ORM — named collaboration space with a unique join code.

Invariants:
    - join_code is unique: it resolves to at most one room
    - created_by is immutable; only the creator deletes the room
    - cascade delete for memberships, files, comments (second line of defence;
      services delete dependents explicitly so blobs are removed too)
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, relationship
from sqlalchemy.dialects.postgresql import UUID

from roomshare.db.base import Base


class RoomRow(Base):
    """Room aggregate root."""
    __tablename__ = "rooms"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_by: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    join_code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    members: Mapped[list["MembershipRow"]] = relationship(
        "MembershipRow", back_populates="room",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    files: Mapped[list["RoomFileRow"]] = relationship(
        "RoomFileRow", back_populates="room",
        cascade="all, delete-orphan", passive_deletes=True,
    )
    comments: Mapped[list["CommentRow"]] = relationship(
        "CommentRow", back_populates="room",
        cascade="all, delete-orphan", passive_deletes=True,
    )
