"""Player bonus endpoints.

Endpoints:
- GET /bonuses/available - Bonuses that can be claimed
- GET /bonuses/my - Own claims, most recent first
- POST /bonuses/claim - Claim by bonus id or promo code
"""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from sweeps_ledger.api.deps import CurrentPlayerId, Services
from sweeps_ledger.api.serializers import bonus_dict, coins, player_bonus_dict

router = APIRouter(prefix="/bonuses", tags=["Bonuses"])


class ClaimBonusRequest(BaseModel):
    bonus_id: str | None = Field(default=None, alias="bonusId")
    code: str | None = Field(default=None, max_length=50)


@router.get("/available")
async def list_available(player_id: CurrentPlayerId, services: Services) -> dict:
    bonuses = await services.bonuses.list_available()
    return {"bonuses": [bonus_dict(b) for b in bonuses]}


@router.get("/my")
async def list_my_bonuses(player_id: CurrentPlayerId, services: Services) -> dict:
    claims = await services.bonuses.list_player_bonuses(player_id)
    return {"bonuses": [player_bonus_dict(claim, bonus) for claim, bonus in claims]}


@router.post("/claim", status_code=status.HTTP_201_CREATED)
async def claim_bonus(
    body: ClaimBonusRequest, player_id: CurrentPlayerId, services: Services
) -> dict:
    claim = await services.bonuses.claim(player_id, bonus_id=body.bonus_id, code=body.code)
    gc_balance, sc_balance = await services.wallet.get_balance(player_id)
    return {
        "playerBonusId": claim.id,
        "wageringTarget": coins(claim.wagering_target),
        "expiresAt": claim.expires_at.isoformat() if claim.expires_at else None,
        "gcBalance": coins(gc_balance),
        "scBalance": coins(sc_balance),
    }
