"""Tests for tournament creation, registration and live scoring."""

from datetime import timedelta

import pytest

from conftest import make_game, make_player
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.player import Currency, PlayerStatus
from sweeps_ledger.models.tournament import ScoringRule, TournamentStatus
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.utils.errors import (
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)


async def open_tournament(services, **overrides):
    now = utcnow()
    params = dict(
        name="Weekend Slots",
        game_slug="lucky-7s",
        start_time=now - timedelta(minutes=5),
        end_time=now + timedelta(hours=1),
        prize_pool=100000,
        currency=Currency.GC,
        scoring_rule=ScoringRule.HIGHEST_WIN_MULTIPLIER,
        max_participants=10,
    )
    params.update(overrides)
    tournament = await services.tournaments.create_tournament(**params)
    await services.scheduler.sweep(now=now)
    return await services.tournaments.get_tournament(tournament.id)


class TestCreateTournament:
    @pytest.mark.asyncio
    async def test_created_upcoming(self, services):
        await make_game(services)
        now = utcnow()

        tournament = await services.tournaments.create_tournament(
            name="Night Owl",
            game_slug="lucky-7s",
            start_time=now + timedelta(hours=1),
            end_time=now + timedelta(hours=2),
            prize_pool=5000,
            currency=Currency.SC,
        )

        assert tournament.status == TournamentStatus.UPCOMING
        assert tournament.scoring_rule == ScoringRule.HIGHEST_WIN_MULTIPLIER

    @pytest.mark.asyncio
    async def test_window_validation(self, services):
        await make_game(services)
        now = utcnow()

        with pytest.raises(ValidationError):
            await services.tournaments.create_tournament(
                name="Backwards",
                game_slug="lucky-7s",
                start_time=now,
                end_time=now,
                prize_pool=0,
                currency=Currency.GC,
            )

    @pytest.mark.asyncio
    async def test_unknown_game(self, services):
        now = utcnow()
        with pytest.raises(NotFoundError):
            await services.tournaments.create_tournament(
                name="Ghost",
                game_slug="missing",
                start_time=now,
                end_time=now + timedelta(hours=1),
                prize_pool=0,
                currency=Currency.GC,
            )


class TestJoin:
    @pytest.mark.asyncio
    async def test_entry_fee_debited(self, services):
        await make_game(services)
        player = await make_player(services, "alice", gc=1000)
        tournament = await open_tournament(services, entry_fee=250)

        participant = await services.tournaments.join(tournament.id, player.id)

        assert participant.score == 0
        assert await services.wallet.get_balance(player.id) == (750, 0)
        [tx] = await services.wallet.get_transactions(
            player.id, tx_type=TransactionType.TOURNAMENT_ENTRY
        )
        assert tx.reference_id == tournament.id

    @pytest.mark.asyncio
    async def test_join_twice(self, services):
        await make_game(services)
        player = await make_player(services, "bob")
        tournament = await open_tournament(services)
        await services.tournaments.join(tournament.id, player.id)

        with pytest.raises(ConflictError) as exc_info:
            await services.tournaments.join(tournament.id, player.id)
        assert exc_info.value.code == "ALREADY_JOINED"

    @pytest.mark.asyncio
    async def test_capacity(self, services):
        await make_game(services)
        first = await make_player(services, "carol")
        second = await make_player(services, "dave")
        tournament = await open_tournament(services, max_participants=1)
        await services.tournaments.join(tournament.id, first.id)

        with pytest.raises(ConflictError) as exc_info:
            await services.tournaments.join(tournament.id, second.id)
        assert exc_info.value.code == "TOURNAMENT_FULL"

    @pytest.mark.asyncio
    async def test_insufficient_entry_fee(self, services):
        await make_game(services)
        player = await make_player(services, "erin", gc=100)
        tournament = await open_tournament(services, entry_fee=250)

        with pytest.raises(InsufficientBalanceError):
            await services.tournaments.join(tournament.id, player.id)

        assert await services.tournaments.get_leaderboard(tournament.id) == []

    @pytest.mark.asyncio
    async def test_completed_tournament_closed(self, services):
        await make_game(services)
        player = await make_player(services, "frank")
        tournament = await open_tournament(services)
        await services.scheduler.sweep(now=tournament.end_time)

        with pytest.raises(ConflictError) as exc_info:
            await services.tournaments.join(tournament.id, player.id)
        assert exc_info.value.code == "TOURNAMENT_CLOSED"

    @pytest.mark.asyncio
    async def test_disabled_player_cannot_join(self, services):
        await make_game(services)
        player = await make_player(services, "gina")
        await services.players.set_player_status(player.id, PlayerStatus.DISABLED, "admin-1")
        tournament = await open_tournament(services)

        with pytest.raises(ConflictError):
            await services.tournaments.join(tournament.id, player.id)


class TestLiveScoring:
    @pytest.mark.asyncio
    async def test_best_multiplier_never_decreases(self, services, draws):
        await make_game(services, rtp=100.0)
        player = await make_player(services, "alice", gc=10000)
        tournament = await open_tournament(services)
        await services.tournaments.join(tournament.id, player.id)

        draws.queue(0.0, 0.05, 0.1, 0.1, 0.1)  # 10x
        await services.games.spin_slot(player.id, "lucky-7s", 100, Currency.GC)
        draws.queue(0.0, 0.5)  # 2x
        await services.games.spin_slot(player.id, "lucky-7s", 100, Currency.GC)

        [entry] = await services.tournaments.get_leaderboard(tournament.id)
        assert entry.score == 100000

    @pytest.mark.asyncio
    async def test_total_wagered_accumulates(self, services):
        await make_game(services, "cold-reels", rtp=0.0)
        player = await make_player(services, "bob", gc=10000)
        tournament = await open_tournament(
            services, game_slug="cold-reels", scoring_rule=ScoringRule.TOTAL_WAGERED
        )
        await services.tournaments.join(tournament.id, player.id)

        await services.games.spin_slot(player.id, "cold-reels", 100, Currency.GC)
        await services.games.spin_slot(player.id, "cold-reels", 250, Currency.GC)

        [entry] = await services.tournaments.get_leaderboard(tournament.id)
        assert entry.score == 350

    @pytest.mark.asyncio
    async def test_other_currency_or_game_does_not_score(self, services):
        await make_game(services, rtp=0.0)
        await make_game(services, "other-game", rtp=0.0)
        player = await make_player(services, "carol", gc=10000, sc=10000)
        tournament = await open_tournament(services, scoring_rule=ScoringRule.TOTAL_WAGERED)
        await services.tournaments.join(tournament.id, player.id)

        await services.games.spin_slot(player.id, "lucky-7s", 100, Currency.SC)
        await services.games.spin_slot(player.id, "other-game", 100, Currency.GC)

        [entry] = await services.tournaments.get_leaderboard(tournament.id)
        assert entry.score == 0

    @pytest.mark.asyncio
    async def test_upcoming_tournament_does_not_score(self, services):
        await make_game(services, rtp=0.0)
        player = await make_player(services, "dave", gc=10000)
        now = utcnow()
        tournament = await services.tournaments.create_tournament(
            name="Later",
            game_slug="lucky-7s",
            start_time=now + timedelta(hours=1),
            end_time=now + timedelta(hours=2),
            prize_pool=0,
            currency=Currency.GC,
            scoring_rule=ScoringRule.TOTAL_WAGERED,
        )
        await services.tournaments.join(tournament.id, player.id)

        await services.games.spin_slot(player.id, "lucky-7s", 100, Currency.GC)

        [entry] = await services.tournaments.get_leaderboard(tournament.id)
        assert entry.score == 0
