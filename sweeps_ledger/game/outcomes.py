"""Wager outcome generators.

Every generator is a pure function of its inputs and the values drawn from
``rng``. Production code uses a CSPRNG; tests inject fixed draws.

Amounts are minor units. Multipliers are basis points (see utils.money).
"""

import secrets
from collections.abc import Callable
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any

from sweeps_ledger.utils.errors import ErrorCode, ValidationError
from sweeps_ledger.utils.money import MULTIPLIER_SCALE, apply_multiplier, multiplier_to_bp

# Uniform draw in [0, 1)
RandomSource = Callable[[], float]

_system_random = secrets.SystemRandom()


def system_random() -> float:
    """CSPRNG draw in [0, 1)."""
    return _system_random.random()


# Slot payout tiers, checked in order against the second draw
SLOT_TIERS: tuple[tuple[float, int], ...] = (
    (0.01, 50),
    (0.10, 10),
)
SLOT_BASE_MULTIPLIER = 2
SLOT_REELS = 3
SLOT_SYMBOLS = 7

# 99 / win_chance leaves a 1% house edge for any target
DICE_PAYOUT_NUMERATOR = Decimal(99)


class DiceDirection(str, Enum):
    OVER = "over"
    UNDER = "under"


@dataclass(frozen=True)
class WagerOutcome:
    """Result of one wager. ``details`` is stored verbatim for audit."""

    is_win: bool
    multiplier_bp: int
    payout: int
    details: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TicketDraw:
    is_win: bool
    win_amount: int
    details: dict[str, Any] = field(default_factory=dict)


def _check_bet(bet: int) -> None:
    if bet <= 0:
        raise ValidationError("Bet amount must be positive", code=ErrorCode.INVALID_AMOUNT)


def spin_slot(bet: int, rtp: float, rng: RandomSource = system_random) -> WagerOutcome:
    """Spin the slot.

    Win iff the first draw is below rtp/100. On a win a second draw picks
    the tier: < 0.01 pays 50x, < 0.10 pays 10x, anything else 2x. The
    reel symbols are cosmetic and drawn after the outcome is fixed.
    """
    _check_bet(bet)
    if not 0 <= rtp <= 100:
        raise ValidationError("RTP must be between 0 and 100", code=ErrorCode.INVALID_REQUEST)

    win_draw = rng()
    is_win = win_draw < rtp / 100

    multiplier = 0
    tier_draw = None
    if is_win:
        tier_draw = rng()
        multiplier = SLOT_BASE_MULTIPLIER
        for threshold, tier_multiplier in SLOT_TIERS:
            if tier_draw < threshold:
                multiplier = tier_multiplier
                break

    multiplier_bp = multiplier * MULTIPLIER_SCALE
    reels = [int(rng() * SLOT_SYMBOLS) for _ in range(SLOT_REELS)]

    return WagerOutcome(
        is_win=is_win,
        multiplier_bp=multiplier_bp,
        payout=apply_multiplier(bet, multiplier_bp),
        details={
            "win_draw": win_draw,
            "tier_draw": tier_draw,
            "rtp": rtp,
            "reels": reels,
        },
    )


def dice_multiplier_bp(target: Decimal, direction: DiceDirection) -> int:
    """Payout multiplier for a winning roll, in basis points."""
    win_chance = target if direction == DiceDirection.UNDER else 100 - target
    return multiplier_to_bp(DICE_PAYOUT_NUMERATOR / win_chance)


def roll_dice(
    bet: int,
    target: Decimal,
    direction: DiceDirection,
    rng: RandomSource = system_random,
) -> WagerOutcome:
    """Roll in [0, 100). Over wins on roll > target, under on roll < target."""
    _check_bet(bet)
    target = Decimal(str(target))
    if not 0 < target < 100:
        raise ValidationError(
            "Dice target must be strictly between 0 and 100",
            code=ErrorCode.INVALID_REQUEST,
            details={"target": str(target)},
        )

    roll = rng() * 100
    roll_dec = Decimal(str(roll))
    if direction == DiceDirection.OVER:
        is_win = roll_dec > target
    else:
        is_win = roll_dec < target

    multiplier_bp = dice_multiplier_bp(target, direction) if is_win else 0

    return WagerOutcome(
        is_win=is_win,
        multiplier_bp=multiplier_bp,
        payout=apply_multiplier(bet, multiplier_bp),
        details={
            "roll": round(roll, 2),
            "target": str(target),
            "direction": direction.value,
        },
    )


def draw_ticket(
    win_probability: float,
    min_prize: int,
    max_prize: int,
    rng: RandomSource = system_random,
) -> TicketDraw:
    """Fix a ticket's outcome. Winning prizes are uniform in [min_prize, max_prize]."""
    if not 0 <= win_probability <= 1:
        raise ValidationError(
            "win_probability must be between 0 and 1", code=ErrorCode.INVALID_REQUEST
        )
    if min_prize < 0 or max_prize < min_prize:
        raise ValidationError("Invalid prize range", code=ErrorCode.INVALID_AMOUNT)

    win_draw = rng()
    if win_draw >= win_probability:
        return TicketDraw(is_win=False, win_amount=0, details={"win_draw": win_draw})

    prize_draw = rng()
    span = max_prize - min_prize
    win_amount = min_prize + min(int(prize_draw * (span + 1)), span)
    return TicketDraw(
        is_win=True,
        win_amount=win_amount,
        details={"win_draw": win_draw, "prize_draw": prize_draw},
    )
