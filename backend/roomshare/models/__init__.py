"""ORM Models — SQLAlchemy declarative models for all persisted entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Room is the aggregate root for memberships, files and comments

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before create_all/autogenerate
"""

from roomshare.models.account import Account  # noqa: F401
from roomshare.models.profile import ProfileRow  # noqa: F401
from roomshare.models.room import RoomRow  # noqa: F401
from roomshare.models.membership import MembershipRow  # noqa: F401
from roomshare.models.room_file import RoomFileRow  # noqa: F401
from roomshare.models.comment import CommentRow  # noqa: F401
