"""Scratch and pull-tab ticket models."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import (
    JSON,
    BigInteger,
    Boolean,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from sweeps_ledger.models.base import Base, TimestampMixin, UUIDMixin, enum_column, utcnow


class TicketKind(str, Enum):
    SCRATCH = "scratch"
    PULLTAB = "pulltab"


class TicketStatus(str, Enum):
    """purchased -> revealed -> claimed | saved (saved requires a win)."""

    PURCHASED = "purchased"
    REVEALED = "revealed"
    CLAIMED = "claimed"
    SAVED = "saved"


class TicketType(Base, UUIDMixin, TimestampMixin):
    """A sellable ticket design with its prize table."""

    __tablename__ = "ticket_types"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[TicketKind] = mapped_column(enum_column(TicketKind), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    price_sc: Mapped[int] = mapped_column(BigInteger, nullable=False)
    win_probability: Mapped[float] = mapped_column(Float, nullable=False)
    min_prize: Mapped[int] = mapped_column(BigInteger, nullable=False)
    max_prize: Mapped[int] = mapped_column(BigInteger, nullable=False)
    remaining_tickets: Mapped[int | None] = mapped_column(
        Integer,
        nullable=True,
        comment="Finite stock; NULL means unlimited",
    )
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<TicketType {self.name}>"


class TicketPurchase(Base, UUIDMixin, TimestampMixin):
    """A bought ticket. The outcome is fixed at purchase time."""

    __tablename__ = "ticket_purchases"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=False,
    )
    ticket_type_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("ticket_types.id", ondelete="RESTRICT"),
        nullable=False,
    )
    cost_sc: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        enum_column(TicketStatus),
        default=TicketStatus.PURCHASED,
        nullable=False,
    )
    is_win: Mapped[bool] = mapped_column(Boolean, nullable=False)
    win_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    outcome: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    __table_args__ = (
        Index("ix_ticket_purchases_player_created", "player_id", "created_at"),
    )


class SavedWin(Base, UUIDMixin):
    """A winning ticket kept for showing off; its prize is claimed later."""

    __tablename__ = "saved_wins"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    purchase_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("ticket_purchases.id", ondelete="RESTRICT"),
        nullable=False,
        unique=True,
    )
    ticket_name: Mapped[str] = mapped_column(String(100), nullable=False)
    amount_won: Mapped[int] = mapped_column(BigInteger, nullable=False)
    image_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    claimed: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    claimed_at: Mapped[datetime | None] = mapped_column(DateTime(), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)
