"""Promotional bonuses and the players' claims on them."""

from datetime import datetime
from enum import Enum

from sqlalchemy import JSON, BigInteger, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sweeps_ledger.models.base import Base, TimestampMixin, UUIDMixin, enum_column, utcnow


class BonusType(str, Enum):
    DEPOSIT_MATCH = "deposit_match"
    FREE_SPINS = "free_spins"
    CASHBACK = "cashback"
    LOYALTY = "loyalty"


# Claiming one of these credits the reward right away
INSTANT_CREDIT_TYPES = frozenset({BonusType.LOYALTY, BonusType.FREE_SPINS})


class BonusStatus(str, Enum):
    """Only ``active`` bonuses can be claimed. ``deleted`` is a soft delete."""

    ACTIVE = "active"
    PAUSED = "paused"
    DELETED = "deleted"


class PlayerBonusStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Bonus(Base, UUIDMixin, TimestampMixin):
    """Admin-defined promotion. Rewards are in minor units."""

    __tablename__ = "bonuses"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    bonus_type: Mapped[BonusType] = mapped_column(enum_column(BonusType), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    code: Mapped[str | None] = mapped_column(String(50), unique=True, nullable=True)

    reward_gc: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    reward_sc: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    min_deposit: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    wagering_requirement: Mapped[int] = mapped_column(
        Integer,
        default=0,
        nullable=False,
        comment="Multiple of reward_sc to wager before the bonus completes",
    )
    game_eligibility: Mapped[list[str] | None] = mapped_column(
        JSON,
        nullable=True,
        comment="Eligible game slugs; NULL means every game",
    )
    max_win: Mapped[int | None] = mapped_column(BigInteger, nullable=True)
    expiration_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    status: Mapped[BonusStatus] = mapped_column(
        enum_column(BonusStatus),
        default=BonusStatus.ACTIVE,
        nullable=False,
        index=True,
    )

    def __repr__(self) -> str:
        return f"<Bonus {self.name} status={self.status.value}>"


class PlayerBonus(Base, UUIDMixin):
    """One claim of a bonus by a player."""

    __tablename__ = "player_bonuses"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=False,
    )
    bonus_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("bonuses.id", ondelete="RESTRICT"),
        nullable=False,
    )
    status: Mapped[PlayerBonusStatus] = mapped_column(
        enum_column(PlayerBonusStatus),
        default=PlayerBonusStatus.ACTIVE,
        nullable=False,
    )
    wagering_target: Mapped[int] = mapped_column(BigInteger, nullable=False)
    expires_at: Mapped[datetime | None] = mapped_column(DateTime(), nullable=True)
    claimed_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(), nullable=True)

    __table_args__ = (
        Index("ix_player_bonuses_player_bonus", "player_id", "bonus_id", "status"),
    )

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at is not None and self.expires_at <= now
