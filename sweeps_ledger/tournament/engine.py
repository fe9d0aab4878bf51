"""Tournament registration and administration."""

from datetime import datetime

from sqlalchemy import func, select

from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.game import Game
from sweeps_ledger.models.player import Currency, PlayerStatus
from sweeps_ledger.models.tournament import (
    ScoringRule,
    Tournament,
    TournamentParticipant,
    TournamentStatus,
)
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.services.settlement import LedgerEntry, SettlementEngine
from sweeps_ledger.tournament.settlement import rank_participants
from sweeps_ledger.utils.db import LedgerStore, UnitOfWork
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)

logger = get_logger(__name__)


class TournamentEngine:
    """Creates tournaments and registers participants.

    State transitions are not driven from here; see TournamentScheduler.
    """

    def __init__(self, store: LedgerStore, settlement: SettlementEngine) -> None:
        self.store = store
        self.settlement = settlement

    async def create_tournament(
        self,
        *,
        name: str,
        game_slug: str,
        start_time: datetime,
        end_time: datetime,
        prize_pool: int,
        currency: Currency,
        entry_fee: int = 0,
        scoring_rule: ScoringRule = ScoringRule.HIGHEST_WIN_MULTIPLIER,
        max_participants: int = 100,
    ) -> Tournament:
        """Create an upcoming tournament.

        Raises:
            ValidationError: Invalid window, amounts or capacity
            NotFoundError: Unknown game
        """
        if not name.strip():
            raise ValidationError("Tournament name is required")
        if start_time >= end_time:
            raise ValidationError(
                "Tournament start_time must be before end_time",
                details={"startTime": start_time.isoformat(), "endTime": end_time.isoformat()},
            )
        if entry_fee < 0 or prize_pool < 0:
            raise ValidationError(
                "Entry fee and prize pool must be non-negative",
                code=ErrorCode.INVALID_AMOUNT,
            )
        if max_participants < 1:
            raise ValidationError("max_participants must be at least 1")

        async with self.store.transaction() as uow:
            game = await uow.session.scalar(select(Game).where(Game.slug == game_slug))
            if game is None:
                raise NotFoundError("Game", game_slug, ErrorCode.GAME_NOT_FOUND)

            tournament = Tournament(
                name=name.strip(),
                game_slug=game_slug,
                start_time=start_time,
                end_time=end_time,
                entry_fee=entry_fee,
                prize_pool=prize_pool,
                currency=currency,
                status=TournamentStatus.UPCOMING,
                scoring_rule=scoring_rule,
                max_participants=max_participants,
            )
            uow.session.add(tournament)
            await uow.session.flush()

        logger.info(
            "tournament_created",
            tournament_id=tournament.id,
            game_slug=game_slug,
            start_time=start_time.isoformat(),
            end_time=end_time.isoformat(),
            prize_pool=prize_pool,
            currency=currency.value,
        )
        return tournament

    async def join(self, tournament_id: str, player_id: str) -> TournamentParticipant:
        """Register a player, debiting the entry fee in the same transaction.

        Raises:
            NotFoundError: Unknown tournament or player
            ConflictError: Completed, already joined or full
            InsufficientBalanceError: Balance below the entry fee
        """
        async with self.store.transaction() as uow:
            tournament = await self._lock_tournament(uow, tournament_id)

            if tournament.status == TournamentStatus.COMPLETED:
                raise ConflictError(
                    "Tournament ended",
                    code=ErrorCode.TOURNAMENT_CLOSED,
                    details={"tournamentId": tournament_id},
                )

            existing = await uow.session.get(
                TournamentParticipant, (tournament_id, player_id)
            )
            if existing is not None:
                raise ConflictError(
                    "Already joined",
                    code=ErrorCode.ALREADY_JOINED,
                    details={"tournamentId": tournament_id},
                )

            count = await uow.session.scalar(
                select(func.count())
                .select_from(TournamentParticipant)
                .where(TournamentParticipant.tournament_id == tournament_id)
            )
            if count >= tournament.max_participants:
                raise ConflictError(
                    "Tournament is full",
                    code=ErrorCode.TOURNAMENT_FULL,
                    details={"maxParticipants": tournament.max_participants},
                )

            if tournament.entry_fee > 0:
                await self.settlement.settle(
                    uow,
                    player_id,
                    tournament.currency,
                    debit=tournament.entry_fee,
                    entry=LedgerEntry(
                        tx_type=TransactionType.TOURNAMENT_ENTRY,
                        description=f"Entry fee for {tournament.name}",
                        reference_id=tournament.id,
                    ),
                )
            else:
                player = await uow.lock_player(player_id)
                if player.status != PlayerStatus.ACTIVE:
                    raise ConflictError(
                        "Player account is disabled",
                        code=ErrorCode.INVALID_STATE,
                        details={"playerId": player_id},
                    )

            participant = TournamentParticipant(
                tournament_id=tournament_id,
                player_id=player_id,
                score=0,
                joined_at=utcnow(),
            )
            uow.session.add(participant)
            await uow.session.flush()

        logger.info(
            "tournament_joined",
            tournament_id=tournament_id,
            player_id=player_id,
            entry_fee=tournament.entry_fee,
        )
        return participant

    async def get_tournament(self, tournament_id: str) -> Tournament:
        async with self.store.session() as session:
            tournament = await session.get(Tournament, tournament_id)
        if tournament is None:
            raise NotFoundError("Tournament", tournament_id, ErrorCode.TOURNAMENT_NOT_FOUND)
        return tournament

    async def list_tournaments(
        self, status: TournamentStatus | None = None
    ) -> list[Tournament]:
        query = select(Tournament).order_by(Tournament.start_time)
        if status:
            query = query.where(Tournament.status == status)
        async with self.store.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def get_leaderboard(self, tournament_id: str) -> list[TournamentParticipant]:
        """Participants in current ranking order."""
        await self.get_tournament(tournament_id)
        async with self.store.session() as session:
            result = await session.execute(
                select(TournamentParticipant).where(
                    TournamentParticipant.tournament_id == tournament_id
                )
            )
            participants = list(result.scalars().all())
        return rank_participants(participants)

    @staticmethod
    async def _lock_tournament(uow: UnitOfWork, tournament_id: str) -> Tournament:
        result = await uow.session.execute(
            uow.for_update(select(Tournament).where(Tournament.id == tournament_id))
        )
        tournament = result.scalar_one_or_none()
        if tournament is None:
            raise NotFoundError("Tournament", tournament_id, ErrorCode.TOURNAMENT_NOT_FOUND)
        return tournament
