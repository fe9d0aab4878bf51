"""Game catalog and settled wager results."""

from datetime import datetime
from enum import Enum
from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Float, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from sweeps_ledger.models.base import Base, UUIDMixin, enum_column, utcnow
from sweeps_ledger.models.player import Currency


class GameKind(str, Enum):
    SLOTS = "slots"
    DICE = "dice"


class Game(Base, UUIDMixin):
    """Wagering game with its house parameters."""

    __tablename__ = "games"

    slug: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    kind: Mapped[GameKind] = mapped_column(enum_column(GameKind), nullable=False)
    rtp: Mapped[float] = mapped_column(
        Float,
        default=96.0,
        nullable=False,
        comment="Return-to-player percent (slots only)",
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    def __repr__(self) -> str:
        return f"<Game {self.slug}>"


class GameResult(Base, UUIDMixin):
    """One row per settled wager. Immutable once written."""

    __tablename__ = "game_results"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    game_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("games.id", ondelete="RESTRICT"),
        nullable=False,
    )
    bet_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    win_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[Currency] = mapped_column(enum_column(Currency, 2), nullable=False)
    multiplier_bp: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Win multiplier in basis points (0 on a loss)",
    )
    outcome: Mapped[dict[str, Any]] = mapped_column(
        JSON,
        nullable=False,
        comment="Raw draws and parameters for audit/replay",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=utcnow,
        nullable=False,
    )
