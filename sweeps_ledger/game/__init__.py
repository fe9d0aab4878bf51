"""Pure wager outcome generators."""

from sweeps_ledger.game.outcomes import (
    DiceDirection,
    RandomSource,
    TicketDraw,
    WagerOutcome,
    draw_ticket,
    roll_dice,
    spin_slot,
    system_random,
)

__all__ = [
    "DiceDirection",
    "RandomSource",
    "TicketDraw",
    "WagerOutcome",
    "draw_ticket",
    "roll_dice",
    "spin_slot",
    "system_random",
]
