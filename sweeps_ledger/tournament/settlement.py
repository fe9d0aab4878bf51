"""
Tournament Settlement Service.

Completes an ended tournament and pays out its prize pool.

Features:
- Final ranking by score, ties broken by earliest join then player id
- Prize split by rank (default 50/30/20 percent of the pool)
- Completion, ranks and every payout commit in one transaction
- Per-winner notification after commit

Usage:
    settlement = TournamentSettlement(store, engine)
    summary = await settlement.complete_tournament(tournament_id)
"""

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select

from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.tournament import (
    Tournament,
    TournamentParticipant,
    TournamentStatus,
)
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.services.settlement import LedgerEntry, SettlementEngine
from sweeps_ledger.utils.db import LedgerStore
from sweeps_ledger.utils.money import format_coins, percent_of

logger = get_logger(__name__)

DEFAULT_PRIZE_SPLIT = (50, 30, 20)


@dataclass
class PayoutResult:
    """Prize paid to one ranked participant."""

    player_id: str
    rank: int
    score: int
    prize_amount: int
    percentage: int
    transaction_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "rank": self.rank,
            "score": self.score,
            "prize_amount": self.prize_amount,
            "percentage": self.percentage,
            "transaction_id": self.transaction_id,
        }


@dataclass
class SettlementSummary:
    """Outcome of completing one tournament."""

    tournament_id: str
    tournament_name: str
    currency: str
    total_prize_pool: int
    participant_count: int = 0
    total_paid: int = 0
    payouts: list[PayoutResult] = field(default_factory=list)
    settled_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict:
        return {
            "tournament_id": self.tournament_id,
            "tournament_name": self.tournament_name,
            "currency": self.currency,
            "total_prize_pool": self.total_prize_pool,
            "participant_count": self.participant_count,
            "total_paid": self.total_paid,
            "payouts": [p.to_dict() for p in self.payouts],
            "settled_at": self.settled_at.isoformat(),
        }


def rank_participants(
    participants: Sequence[TournamentParticipant],
) -> list[TournamentParticipant]:
    """Order by score descending, then earliest join, then player id."""
    return sorted(
        participants,
        key=lambda p: (-p.score, p.joined_at, p.player_id),
    )


def calculate_payouts(
    prize_pool: int,
    ranking: Sequence[TournamentParticipant],
    prize_split: Sequence[int] = DEFAULT_PRIZE_SPLIT,
) -> list[PayoutResult]:
    """Prize per rank. Ranks beyond the split get nothing.

    The unpaid share of the pool (rounding, unfilled ranks) is forfeited.
    """
    payouts = []
    for rank, participant in enumerate(ranking, 1):
        if rank > len(prize_split):
            break
        percentage = prize_split[rank - 1]
        payouts.append(
            PayoutResult(
                player_id=participant.player_id,
                rank=rank,
                score=participant.score,
                prize_amount=percent_of(prize_pool, percentage),
                percentage=percentage,
            )
        )
    return payouts


class TournamentSettlement:
    """Completes tournaments and distributes prize pools."""

    def __init__(
        self,
        store: LedgerStore,
        settlement: SettlementEngine,
        prize_split: Sequence[int] = DEFAULT_PRIZE_SPLIT,
    ) -> None:
        self.store = store
        self.settlement = settlement
        self.prize_split = tuple(prize_split)

    async def complete_tournament(
        self,
        tournament_id: str,
        now: datetime | None = None,
    ) -> SettlementSummary | None:
        """Complete an ended tournament and pay its winners.

        Everything happens in one transaction: the status flip, final ranks
        and every winner credit. A tournament that is no longer ``active``
        (already completed by an earlier sweep) is skipped and returns None.

        Args:
            tournament_id: Tournament ID
            now: Current time (defaults to utcnow)

        Returns:
            SettlementSummary, or None if there was nothing to complete
        """
        now = now or utcnow()

        async with self.store.transaction() as uow:
            result = await uow.session.execute(
                uow.for_update(select(Tournament).where(Tournament.id == tournament_id))
                .execution_options(populate_existing=True)
            )
            tournament = result.scalar_one_or_none()
            if (
                tournament is None
                or tournament.status != TournamentStatus.ACTIVE
                or tournament.end_time > now
            ):
                return None

            # Player rows before participant rows, as in a wager
            player_ids = await uow.session.scalars(
                select(TournamentParticipant.player_id).where(
                    TournamentParticipant.tournament_id == tournament_id
                )
            )
            await uow.lock_players(player_ids)

            result = await uow.session.execute(
                uow.for_update(
                    select(TournamentParticipant).where(
                        TournamentParticipant.tournament_id == tournament_id
                    )
                )
            )
            ranking = rank_participants(list(result.scalars().all()))
            for rank, participant in enumerate(ranking, 1):
                participant.rank = rank

            summary = SettlementSummary(
                tournament_id=tournament.id,
                tournament_name=tournament.name,
                currency=tournament.currency.value,
                total_prize_pool=tournament.prize_pool,
                participant_count=len(ranking),
            )

            prizes = {p.player_id: p for p in ranking}
            for payout in calculate_payouts(tournament.prize_pool, ranking, self.prize_split):
                if payout.prize_amount <= 0:
                    continue

                new_balance = await self.settlement.settle(
                    uow,
                    payout.player_id,
                    tournament.currency,
                    credit=payout.prize_amount,
                    entry=LedgerEntry(
                        tx_type=TransactionType.TOURNAMENT_WIN,
                        description=f"Won place #{payout.rank} in {tournament.name}",
                        reference_id=tournament.id,
                    ),
                    require_active=False,
                )
                payout.transaction_id = new_balance.transaction_id
                prizes[payout.player_id].prize_amount = payout.prize_amount
                summary.payouts.append(payout)
                summary.total_paid += payout.prize_amount

                uow.notify(
                    payout.player_id,
                    "success",
                    f"You won {format_coins(payout.prize_amount, tournament.currency.value)} "
                    f"in {tournament.name}!",
                )

            tournament.status = TournamentStatus.COMPLETED
            tournament.completed_at = now
            await uow.session.flush()

        logger.info(
            "tournament_completed",
            tournament_id=tournament_id,
            participants=summary.participant_count,
            total_paid=summary.total_paid,
            winners=[p.player_id for p in summary.payouts],
        )
        return summary
