"""Tests for the pure wager outcome generators."""

from decimal import Decimal

import pytest

from sweeps_ledger.game.outcomes import (
    DiceDirection,
    dice_multiplier_bp,
    draw_ticket,
    roll_dice,
    spin_slot,
)
from sweeps_ledger.utils.errors import ValidationError


def fixed(*values: float):
    """RNG yielding ``values`` in order, then 0.5."""
    it = iter(values)
    return lambda: next(it, 0.5)


class TestSpinSlot:
    def test_forced_win_base_tier(self):
        """With RTP 100 every spin wins; a high tier draw pays 2x."""
        outcome = spin_slot(100, 100.0, fixed(0.3, 0.5))

        assert outcome.is_win is True
        assert outcome.multiplier_bp == 20000
        assert outcome.payout == 200

    @pytest.mark.parametrize(
        ("tier_draw", "multiplier_bp"),
        [(0.005, 500000), (0.05, 100000), (0.10, 20000), (0.99, 20000)],
    )
    def test_tiers(self, tier_draw, multiplier_bp):
        outcome = spin_slot(100, 96.0, fixed(0.0, tier_draw))
        assert outcome.multiplier_bp == multiplier_bp
        assert outcome.payout == 100 * multiplier_bp // 10000

    def test_rtp_zero_always_loses(self):
        outcome = spin_slot(100, 0.0, fixed(0.0))

        assert outcome.is_win is False
        assert outcome.multiplier_bp == 0
        assert outcome.payout == 0
        assert outcome.details["tier_draw"] is None

    def test_loss_when_draw_at_threshold(self):
        """Win requires the draw to be strictly below rtp/100."""
        assert spin_slot(100, 50.0, fixed(0.5)).is_win is False

    def test_same_draws_same_outcome(self):
        first = spin_slot(250, 90.0, fixed(0.2, 0.04, 0.1, 0.2, 0.3))
        second = spin_slot(250, 90.0, fixed(0.2, 0.04, 0.1, 0.2, 0.3))
        assert first == second
        assert first.details["reels"] == [0, 1, 2]

    @pytest.mark.parametrize("bet", [0, -100])
    def test_non_positive_bet_rejected(self, bet):
        with pytest.raises(ValidationError):
            spin_slot(bet, 96.0, fixed())

    def test_rtp_out_of_range_rejected(self):
        with pytest.raises(ValidationError):
            spin_slot(100, 100.5, fixed())


class TestRollDice:
    def test_over_wins(self):
        outcome = roll_dice(100, Decimal("50"), DiceDirection.OVER, fixed(0.75))

        assert outcome.is_win is True
        assert outcome.multiplier_bp == 19800
        assert outcome.payout == 198
        assert outcome.details["roll"] == 75.0

    def test_under_loses_on_high_roll(self):
        outcome = roll_dice(100, Decimal("50"), DiceDirection.UNDER, fixed(0.75))

        assert outcome.is_win is False
        assert outcome.payout == 0

    def test_roll_equal_to_target_loses_both_ways(self):
        for direction in DiceDirection:
            assert roll_dice(100, Decimal("50"), direction, fixed(0.5)).is_win is False

    def test_multiplier_uses_win_chance(self):
        """Under 25 wins 25% of the time and pays 99/25."""
        assert dice_multiplier_bp(Decimal("25"), DiceDirection.UNDER) == 39600
        assert dice_multiplier_bp(Decimal("25"), DiceDirection.OVER) == 13200

    @pytest.mark.parametrize("target", ["0", "100", "-1", "150"])
    def test_target_bounds(self, target):
        with pytest.raises(ValidationError):
            roll_dice(100, Decimal(target), DiceDirection.OVER, fixed())


class TestDrawTicket:
    def test_win_prize_within_range(self):
        draw = draw_ticket(1.0, 100, 300, fixed(0.2, 0.5))

        assert draw.is_win is True
        assert draw.win_amount == 200

    def test_prize_bounds(self):
        assert draw_ticket(1.0, 100, 300, fixed(0.0, 0.0)).win_amount == 100
        assert draw_ticket(1.0, 100, 300, fixed(0.0, 0.9999)).win_amount == 300

    def test_prize_values_get_equal_share_of_draws(self):
        """Should give each of 0, 1, 2 a third of [0, 1), the endpoints included."""
        prizes = [
            draw_ticket(1.0, 0, 2, fixed(0.0, draw)).win_amount
            for draw in (0.0, 0.3, 0.34, 0.5, 0.66, 0.67, 0.9, 0.9999)
        ]

        assert prizes == [0, 0, 1, 1, 1, 2, 2, 2]

    def test_single_value_prize_range(self):
        assert draw_ticket(1.0, 250, 250, fixed(0.0, 0.9999)).win_amount == 250

    def test_zero_probability_never_wins(self):
        draw = draw_ticket(0.0, 100, 300, fixed(0.0))

        assert draw.is_win is False
        assert draw.win_amount == 0

    def test_invalid_prize_range(self):
        with pytest.raises(ValidationError):
            draw_ticket(0.5, 300, 100, fixed())

    def test_invalid_probability(self):
        with pytest.raises(ValidationError):
            draw_ticket(1.5, 100, 300, fixed())
