"""Game play service.

Runs a pure outcome generator, then settles the bet and payout through the
settlement engine and records the GameResult, all in one transaction.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Any

from sqlalchemy import select

from sweeps_ledger.game.outcomes import (
    DiceDirection,
    RandomSource,
    WagerOutcome,
    roll_dice,
    spin_slot,
    system_random,
)
from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import new_id
from sweeps_ledger.models.game import Game, GameKind, GameResult
from sweeps_ledger.models.player import Currency
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.services.settlement import LedgerEntry, SettlementEngine
from sweeps_ledger.tournament.scoring import ScoreEvent
from sweeps_ledger.utils.db import LedgerStore
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class WagerReceipt:
    """Settled wager as returned to the player."""

    result_id: str
    is_win: bool
    bet_amount: int
    win_amount: int
    multiplier_bp: int
    currency: Currency
    new_balance: int
    transaction_id: str
    details: dict[str, Any]


class GameService:
    def __init__(
        self,
        store: LedgerStore,
        settlement: SettlementEngine,
        rng: RandomSource = system_random,
    ) -> None:
        self.store = store
        self.settlement = settlement
        self.rng = rng

    async def list_games(self) -> list[Game]:
        async with self.store.session() as session:
            result = await session.execute(
                select(Game).where(Game.is_active.is_(True)).order_by(Game.slug)
            )
            return list(result.scalars().all())

    async def create_game(
        self,
        slug: str,
        name: str,
        kind: GameKind,
        rtp: float = 96.0,
    ) -> Game:
        if not 0 <= rtp <= 100:
            raise ValidationError("RTP must be between 0 and 100")

        async with self.store.transaction() as uow:
            existing = await uow.session.scalar(select(Game.id).where(Game.slug == slug))
            if existing is not None:
                raise ConflictError(
                    f"Game {slug} already exists",
                    code=ErrorCode.ALREADY_EXISTS,
                )
            game = Game(slug=slug, name=name, kind=kind, rtp=rtp, is_active=True)
            uow.session.add(game)
            await uow.session.flush()

        logger.info("game_created", game_id=game.id, slug=slug, kind=kind.value, rtp=rtp)
        return game

    async def spin_slot(
        self,
        player_id: str,
        game_slug: str,
        bet_amount: int,
        currency: Currency,
    ) -> WagerReceipt:
        """Play one slot spin."""
        game = await self._load_game(game_slug, GameKind.SLOTS)
        outcome = spin_slot(bet_amount, game.rtp, self.rng)
        return await self._settle_wager(player_id, game, bet_amount, currency, outcome)

    async def roll_dice(
        self,
        player_id: str,
        game_slug: str,
        bet_amount: int,
        currency: Currency,
        target: Decimal,
        direction: DiceDirection,
    ) -> WagerReceipt:
        """Play one dice roll."""
        game = await self._load_game(game_slug, GameKind.DICE)
        outcome = roll_dice(bet_amount, target, direction, self.rng)
        return await self._settle_wager(player_id, game, bet_amount, currency, outcome)

    async def _load_game(self, slug: str, kind: GameKind) -> Game:
        async with self.store.session() as session:
            game = await session.scalar(select(Game).where(Game.slug == slug))

        if game is None or not game.is_active:
            raise NotFoundError("Game", slug, ErrorCode.GAME_NOT_FOUND)
        if game.kind != kind:
            raise ValidationError(
                f"Game {slug} is not a {kind.value} game",
                details={"gameKind": game.kind.value},
            )
        return game

    async def _settle_wager(
        self,
        player_id: str,
        game: Game,
        bet_amount: int,
        currency: Currency,
        outcome: WagerOutcome,
    ) -> WagerReceipt:
        # The ledger row references the result, so the id is fixed up front
        result_id = new_id()

        async with self.store.transaction() as uow:
            new_balance = await self.settlement.settle(
                uow,
                player_id,
                currency,
                debit=bet_amount,
                credit=outcome.payout,
                entry=LedgerEntry(
                    tx_type=TransactionType.WAGER_RESULT,
                    description=f"{game.name}: {'win' if outcome.is_win else 'loss'}",
                    reference_id=result_id,
                ),
                wagered=bet_amount,
                score_event=ScoreEvent(
                    game_slug=game.slug,
                    bet_amount=bet_amount,
                    win_amount=outcome.payout,
                    multiplier_bp=outcome.multiplier_bp,
                ),
            )

            uow.session.add(
                GameResult(
                    id=result_id,
                    player_id=player_id,
                    game_id=game.id,
                    bet_amount=bet_amount,
                    win_amount=outcome.payout,
                    currency=currency,
                    multiplier_bp=outcome.multiplier_bp,
                    outcome=outcome.details,
                )
            )
            await uow.session.flush()

        logger.info(
            "wager_settled",
            player_id=player_id,
            game_slug=game.slug,
            currency=currency.value,
            bet_amount=bet_amount,
            win_amount=outcome.payout,
            multiplier_bp=outcome.multiplier_bp,
        )

        return WagerReceipt(
            result_id=result_id,
            is_win=outcome.is_win,
            bet_amount=bet_amount,
            win_amount=outcome.payout,
            multiplier_bp=outcome.multiplier_bp,
            currency=currency,
            new_balance=new_balance.of(currency),
            transaction_id=new_balance.transaction_id,
            details=outcome.details,
        )
