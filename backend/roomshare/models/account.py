"""Account ORM — credentials held by the local identity provider adapter.

Invariants:
    - email is unique and stored lower-cased
    - password_hash is a bcrypt hash ("$2b$<rounds>$..."), never plaintext

Design Decisions:
    - Separate from profiles: identity belongs to the provider, profiles to the app
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from roomshare.db.base import Base


class Account(Base):
    """Identity provider account."""
    __tablename__ = "accounts"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    password_hash: Mapped[str] = mapped_column(String(256), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
