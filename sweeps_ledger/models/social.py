"""Friendship graph."""

from enum import Enum

from sqlalchemy import Boolean, ForeignKey, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sweeps_ledger.models.base import Base, TimestampMixin, UUIDMixin, enum_column


class FriendshipStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"


class Friendship(Base, UUIDMixin, TimestampMixin):
    """Directed friend request; accepted rows are mutual friendships.

    Rejected or cancelled requests are deleted so they can be re-sent.
    """

    __tablename__ = "friendships"

    requester_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    addressee_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    status: Mapped[FriendshipStatus] = mapped_column(
        enum_column(FriendshipStatus),
        default=FriendshipStatus.PENDING,
        nullable=False,
    )
    bonus_paid: Mapped[bool] = mapped_column(
        Boolean,
        default=False,
        nullable=False,
        comment="Friendship bonus is paid once per pair",
    )

    __table_args__ = (
        UniqueConstraint("requester_id", "addressee_id", name="uq_friendships_pair"),
    )
