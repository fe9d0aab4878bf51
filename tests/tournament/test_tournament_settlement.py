"""Tests for tournament completion and prize distribution."""

from datetime import datetime, timedelta

import pytest

from conftest import make_game, make_player
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.player import Currency, PlayerStatus
from sweeps_ledger.models.tournament import TournamentParticipant, TournamentStatus
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.tournament.settlement import calculate_payouts, rank_participants
from sweeps_ledger.utils.db import UnitOfWork


def participant(player_id: str, score: int, joined_minute: int) -> TournamentParticipant:
    return TournamentParticipant(
        tournament_id="t-1",
        player_id=player_id,
        score=score,
        joined_at=datetime(2026, 1, 1, 12, joined_minute),
    )


async def set_scores(store, tournament_id: str, scores: dict[str, int]) -> None:
    async with store.transaction() as uow:
        for player_id, score in scores.items():
            entry = await uow.session.get(TournamentParticipant, (tournament_id, player_id))
            entry.score = score


async def running_tournament(services, prize_pool: int = 100000, currency=Currency.GC):
    await make_game(services)
    now = utcnow()
    tournament = await services.tournaments.create_tournament(
        name="Weekend Slots",
        game_slug="lucky-7s",
        start_time=now - timedelta(hours=1),
        end_time=now + timedelta(minutes=30),
        prize_pool=prize_pool,
        currency=currency,
    )
    await services.scheduler.sweep(now=now)
    return tournament


class TestRanking:
    def test_score_then_join_time_then_id(self):
        ranked = rank_participants(
            [
                participant("p-c", 10, 5),
                participant("p-b", 30, 9),
                participant("p-a", 30, 9),
                participant("p-d", 30, 1),
            ]
        )
        assert [p.player_id for p in ranked] == ["p-d", "p-a", "p-b", "p-c"]

    def test_payouts_follow_split(self):
        ranked = [participant(f"p-{i}", 100 - i, i) for i in range(5)]

        payouts = calculate_payouts(100000, ranked, (50, 30, 20))

        assert [(p.rank, p.prize_amount) for p in payouts] == [(1, 50000), (2, 30000), (3, 20000)]

    def test_fewer_participants_than_places(self):
        """Unfilled places are not redistributed."""
        payouts = calculate_payouts(100000, [participant("p-1", 5, 0)], (50, 30, 20))

        assert [(p.player_id, p.prize_amount) for p in payouts] == [("p-1", 50000)]

    def test_rounding_down(self):
        payouts = calculate_payouts(99, [participant(f"p-{i}", 3 - i, i) for i in range(3)])
        assert [p.prize_amount for p in payouts] == [49, 29, 19]


class TestCompleteTournament:
    @pytest.mark.asyncio
    async def test_prize_pool_distribution(self, services, store, notifier):
        """Scores 50/30/10/5 on a 100000 pool pay 50000/30000/20000/0."""
        tournament = await running_tournament(services)
        players = [await make_player(services, name) for name in ("ann", "ben", "cat", "dan")]
        for player in players:
            await services.tournaments.join(tournament.id, player.id)
        await set_scores(
            store,
            tournament.id,
            {p.id: s for p, s in zip(players, (50, 30, 10, 5))},
        )

        result = await services.scheduler.sweep(now=tournament.end_time)

        [summary] = result.completed
        assert summary.total_paid == 100000
        assert [(p.player_id, p.prize_amount) for p in summary.payouts] == [
            (players[0].id, 50000),
            (players[1].id, 30000),
            (players[2].id, 20000),
        ]
        balances = [await services.wallet.get_balance(p.id) for p in players]
        assert balances == [(50000, 0), (30000, 0), (20000, 0), (0, 0)]

        completed = await services.tournaments.get_tournament(tournament.id)
        assert completed.status == TournamentStatus.COMPLETED
        assert completed.completed_at == tournament.end_time

        board = await services.tournaments.get_leaderboard(tournament.id)
        assert [(p.player_id, p.rank, p.prize_amount) for p in board] == [
            (players[0].id, 1, 50000),
            (players[1].id, 2, 30000),
            (players[2].id, 3, 20000),
            (players[3].id, 4, 0),
        ]

        for player in players[:3]:
            [tx] = await services.wallet.get_transactions(
                player.id, tx_type=TransactionType.TOURNAMENT_WIN
            )
            assert tx.reference_id == tournament.id
            assert notifier.messages_for(player.id)[-1][0] == "success"
        assert notifier.messages_for(players[3].id) == []

    @pytest.mark.asyncio
    async def test_completed_once(self, services):
        tournament = await running_tournament(services)
        player = await make_player(services, "ann")
        await services.tournaments.join(tournament.id, player.id)

        first = await services.scheduler.sweep(now=tournament.end_time)
        second = await services.scheduler.sweep(now=tournament.end_time + timedelta(minutes=1))
        direct = await services.tournament_settlement.complete_tournament(
            tournament.id, now=tournament.end_time + timedelta(minutes=2)
        )

        assert len(first.completed) == 1
        assert second.completed == []
        assert direct is None
        assert await services.wallet.get_balance(player.id) == (50000, 0)

    @pytest.mark.asyncio
    async def test_disabled_winner_still_paid(self, services):
        tournament = await running_tournament(services, prize_pool=1000, currency=Currency.SC)
        player = await make_player(services, "ann")
        await services.tournaments.join(tournament.id, player.id)
        await services.players.set_player_status(player.id, PlayerStatus.DISABLED, "admin-1")

        await services.scheduler.sweep(now=tournament.end_time)

        assert await services.wallet.get_balance(player.id) == (0, 500)

    @pytest.mark.asyncio
    async def test_not_ended_is_skipped(self, services):
        tournament = await running_tournament(services)

        summary = await services.tournament_settlement.complete_tournament(
            tournament.id, now=tournament.end_time - timedelta(seconds=1)
        )

        assert summary is None
        current = await services.tournaments.get_tournament(tournament.id)
        assert current.status == TournamentStatus.ACTIVE


class TestCompletionFailure:
    @pytest.mark.asyncio
    async def test_failure_after_first_credit_rolls_back_all(self, services, store, monkeypatch):
        """Should undo the first winner's credit when the second one fails."""
        tournament = await running_tournament(services)
        ann = await make_player(services, "ann")
        ben = await make_player(services, "ben")
        for player in (ann, ben):
            await services.tournaments.join(tournament.id, player.id)
        await set_scores(store, tournament.id, {ann.id: 50, ben.id: 30})

        engine = services.tournament_settlement.settlement
        settle = engine.settle
        calls = {"count": 0, "fail": True}

        async def flaky_settle(*args, **kwargs):
            calls["count"] += 1
            if calls["fail"] and calls["count"] == 2:
                raise RuntimeError("credit failed")
            return await settle(*args, **kwargs)

        monkeypatch.setattr(engine, "settle", flaky_settle)

        result = await services.scheduler.sweep(now=tournament.end_time)

        assert result.completed == []
        assert len(result.failed) == 1
        assert await services.wallet.get_balance(ann.id) == (0, 0)
        assert await services.wallet.get_balance(ben.id) == (0, 0)
        assert await services.wallet.get_transactions(
            ann.id, tx_type=TransactionType.TOURNAMENT_WIN
        ) == []
        current = await services.tournaments.get_tournament(tournament.id)
        assert current.status == TournamentStatus.ACTIVE

        calls["fail"] = False
        retry = await services.scheduler.sweep(now=tournament.end_time + timedelta(minutes=1))

        [summary] = retry.completed
        assert summary.total_paid == 80000
        assert await services.wallet.get_balance(ann.id) == (50000, 0)
        assert await services.wallet.get_balance(ben.id) == (30000, 0)


class TestCompletionLockOrder:
    @pytest.mark.asyncio
    async def test_player_rows_locked_before_credits(self, services, monkeypatch):
        """Should lock every participant's player row, in id order, before paying."""
        tournament = await running_tournament(services)
        players = [await make_player(services, name) for name in ("cat", "ann", "ben")]
        for player in players:
            await services.tournaments.join(tournament.id, player.id)

        events = []
        lock_players = UnitOfWork.lock_players

        async def recording_lock_players(uow, player_ids):
            locked = await lock_players(uow, player_ids)
            events.append(("lock_players", [p.id for p in locked]))
            return locked

        engine = services.tournament_settlement.settlement
        settle = engine.settle

        async def recording_settle(uow, player_id, *args, **kwargs):
            events.append(("settle", player_id))
            return await settle(uow, player_id, *args, **kwargs)

        monkeypatch.setattr(UnitOfWork, "lock_players", recording_lock_players)
        monkeypatch.setattr(engine, "settle", recording_settle)

        await services.scheduler.sweep(now=tournament.end_time)

        assert events[0] == ("lock_players", sorted(p.id for p in players))
        assert [kind for kind, _ in events[1:]] == ["settle"] * 3
