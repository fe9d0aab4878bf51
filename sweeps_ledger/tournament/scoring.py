"""Tournament scoring rules."""

from dataclasses import dataclass

from sqlalchemy import select

from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.player import Currency
from sweeps_ledger.models.tournament import (
    ScoringRule,
    Tournament,
    TournamentParticipant,
    TournamentStatus,
)
from sweeps_ledger.utils.db import UnitOfWork

logger = get_logger(__name__)


@dataclass(frozen=True)
class ScoreEvent:
    """A settled wager that may count toward tournament scores."""

    game_slug: str
    bet_amount: int
    win_amount: int
    multiplier_bp: int


def next_score(rule: ScoringRule, current: int, event: ScoreEvent) -> int:
    """Score after applying ``event``. Never lower than ``current``."""
    if rule == ScoringRule.HIGHEST_WIN_MULTIPLIER:
        return max(current, event.multiplier_bp)
    if rule == ScoringRule.TOTAL_WAGERED:
        return current + max(event.bet_amount, 0)
    if rule == ScoringRule.TOTAL_WINS:
        return current + max(event.win_amount, 0)
    raise ValueError(f"Unknown scoring rule: {rule}")


class TournamentScorer:
    """Updates participant scores from settled wagers.

    Called by the settlement engine inside the wager's transaction, so a
    score change commits or rolls back together with the balance change.
    """

    async def apply_score(
        self,
        uow: UnitOfWork,
        player_id: str,
        currency: Currency,
        event: ScoreEvent,
    ) -> None:
        query = uow.for_update(
            select(TournamentParticipant, Tournament.scoring_rule)
            .join(Tournament, Tournament.id == TournamentParticipant.tournament_id)
            .where(
                TournamentParticipant.player_id == player_id,
                Tournament.game_slug == event.game_slug,
                Tournament.currency == currency,
                Tournament.status == TournamentStatus.ACTIVE,
            ),
            of=TournamentParticipant,
        )
        result = await uow.session.execute(query)

        for participant, rule in result.all():
            score = next_score(rule, participant.score, event)
            if score != participant.score:
                logger.debug(
                    "tournament_score_updated",
                    tournament_id=participant.tournament_id,
                    player_id=player_id,
                    rule=rule.value,
                    old_score=participant.score,
                    new_score=score,
                )
                participant.score = score

        await uow.session.flush()
