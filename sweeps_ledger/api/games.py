"""Game play endpoints (slot spin, dice roll)."""

from decimal import Decimal

from fastapi import APIRouter
from pydantic import BaseModel, Field

from sweeps_ledger.api.deps import CurrentPlayerId, Services
from sweeps_ledger.api.serializers import coins
from sweeps_ledger.game.outcomes import DiceDirection
from sweeps_ledger.models.player import Currency
from sweeps_ledger.services.games import WagerReceipt
from sweeps_ledger.utils.money import bp_to_multiplier, to_minor

router = APIRouter(prefix="/games", tags=["Games"])


class SpinRequest(BaseModel):
    bet: Decimal = Field(..., gt=0, decimal_places=2)
    currency: Currency


class DiceRequest(BaseModel):
    bet: Decimal = Field(..., gt=0, decimal_places=2)
    currency: Currency
    target: Decimal = Field(..., gt=0, lt=100)
    direction: DiceDirection


def _receipt_dict(receipt: WagerReceipt) -> dict:
    return {
        "resultId": receipt.result_id,
        "isWin": receipt.is_win,
        "bet": coins(receipt.bet_amount),
        "winAmount": coins(receipt.win_amount),
        "multiplier": str(bp_to_multiplier(receipt.multiplier_bp)),
        "currency": receipt.currency.value,
        "newBalance": coins(receipt.new_balance),
        "outcome": receipt.details,
    }


@router.get("")
async def list_games(services: Services) -> dict:
    games = await services.games.list_games()
    return {
        "games": [
            {"slug": g.slug, "name": g.name, "kind": g.kind.value, "rtp": g.rtp}
            for g in games
        ]
    }


@router.post("/{slug}/spin")
async def spin(
    slug: str, body: SpinRequest, player_id: CurrentPlayerId, services: Services
) -> dict:
    receipt = await services.games.spin_slot(
        player_id, slug, to_minor(body.bet), body.currency
    )
    return _receipt_dict(receipt)


@router.post("/{slug}/roll")
async def roll(
    slug: str, body: DiceRequest, player_id: CurrentPlayerId, services: Services
) -> dict:
    receipt = await services.games.roll_dice(
        player_id,
        slug,
        to_minor(body.bet),
        body.currency,
        body.target,
        body.direction,
    )
    return _receipt_dict(receipt)
