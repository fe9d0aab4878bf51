"""Tournament and participant models."""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sweeps_ledger.models.base import Base, TimestampMixin, UUIDMixin, enum_column, utcnow
from sweeps_ledger.models.player import Currency


class TournamentStatus(str, Enum):
    """Lifecycle states. Transitions only move forward."""

    UPCOMING = "upcoming"
    ACTIVE = "active"
    COMPLETED = "completed"


class ScoringRule(str, Enum):
    """How qualifying wagers move a participant's score.

    HIGHEST_WIN_MULTIPLIER keeps the best multiplier (basis points),
    TOTAL_WAGERED adds the bet, TOTAL_WINS adds the payout (minor units).
    """

    HIGHEST_WIN_MULTIPLIER = "highest_win_multiplier"
    TOTAL_WAGERED = "total_wagered"
    TOTAL_WINS = "total_wins"


class Tournament(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "tournaments"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    game_slug: Mapped[str] = mapped_column(String(64), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(), nullable=False)
    entry_fee: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    prize_pool: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[Currency] = mapped_column(enum_column(Currency, 2), nullable=False)
    status: Mapped[TournamentStatus] = mapped_column(
        enum_column(TournamentStatus),
        default=TournamentStatus.UPCOMING,
        nullable=False,
    )
    scoring_rule: Mapped[ScoringRule] = mapped_column(
        enum_column(ScoringRule),
        default=ScoringRule.HIGHEST_WIN_MULTIPLIER,
        nullable=False,
    )
    max_participants: Mapped[int] = mapped_column(Integer, default=100, nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(), nullable=True)

    __table_args__ = (
        Index("ix_tournaments_status_start", "status", "start_time"),
        Index("ix_tournaments_status_end", "status", "end_time"),
    )

    def __repr__(self) -> str:
        return f"<Tournament {self.name} status={self.status.value}>"


class TournamentParticipant(Base):
    """(tournament, player) registration with running score and final rank."""

    __tablename__ = "tournament_participants"

    tournament_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tournaments.id", ondelete="RESTRICT"),
        primary_key=True,
    )
    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        primary_key=True,
    )
    score: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    rank: Mapped[int | None] = mapped_column(Integer, nullable=True)
    prize_amount: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    joined_at: Mapped[datetime] = mapped_column(DateTime(), default=utcnow, nullable=False)

    __table_args__ = (
        Index("ix_tournament_participants_player", "player_id"),
    )
