"""Wallet API endpoints.

Endpoints:
- POST /players - Register a player (signup bonus, optional referral)
- GET /players/me - Current player profile
- GET /wallet/balance - GC/SC balance
- GET /wallet/transactions - Transaction history
- GET /wallet/packages - Coin packages
- POST /wallet/purchase - Buy a coin package
- POST /wallet/daily-bonus - Claim the daily bonus
- POST /wallet/redeem - Request an SC redemption
- GET /wallet/redemptions - Own redemption requests
- POST /wallet/kyc - Submit for KYC verification
"""

from decimal import Decimal

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from sweeps_ledger.api.deps import CurrentPlayerId, Services
from sweeps_ledger.api.serializers import (
    balance_dict,
    coins,
    package_dict,
    player_dict,
    redemption_dict,
    transaction_dict,
)
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.utils.money import to_minor

router = APIRouter(tags=["Wallet"])


# ============================================================
# Request Schemas
# ============================================================


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=3, max_length=50)
    email: str = Field(..., min_length=3, max_length=255)
    referral_code: str | None = Field(default=None, alias="referralCode")


class PurchaseRequest(BaseModel):
    package_id: str = Field(..., alias="packageId")
    payment_method: str = Field(..., min_length=1, max_length=50, alias="paymentMethod")


class RedeemRequest(BaseModel):
    amount: Decimal = Field(..., gt=0, decimal_places=2, description="SC amount")
    payment_method: str = Field(..., min_length=1, max_length=50, alias="paymentMethod")
    payment_details: str | None = Field(default=None, alias="paymentDetails")


# ============================================================
# Endpoints
# ============================================================


@router.post("/players", status_code=status.HTTP_201_CREATED)
async def register_player(body: RegisterRequest, services: Services) -> dict:
    player = await services.players.register(
        username=body.username,
        email=body.email,
        referral_code=body.referral_code,
    )
    return player_dict(player)


@router.get("/players/me")
async def get_me(player_id: CurrentPlayerId, services: Services) -> dict:
    player = await services.players.get_player(player_id)
    return player_dict(player)


@router.get("/wallet/balance")
async def get_balance(player_id: CurrentPlayerId, services: Services) -> dict:
    gc_balance, sc_balance = await services.wallet.get_balance(player_id)
    return {"gcBalance": coins(gc_balance), "scBalance": coins(sc_balance)}


@router.get("/wallet/transactions")
async def get_transactions(
    player_id: CurrentPlayerId,
    services: Services,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
    tx_type: TransactionType | None = Query(None, alias="type"),
) -> dict:
    transactions = await services.wallet.get_transactions(
        player_id, limit=limit, offset=offset, tx_type=tx_type
    )
    return {"transactions": [transaction_dict(tx) for tx in transactions]}


@router.get("/wallet/packages")
async def list_packages(services: Services) -> dict:
    packages = await services.wallet.list_packages()
    return {"packages": [package_dict(p) for p in packages]}


@router.post("/wallet/purchase")
async def purchase_package(
    body: PurchaseRequest, player_id: CurrentPlayerId, services: Services
) -> dict:
    balance = await services.wallet.purchase_package(
        player_id, body.package_id, body.payment_method
    )
    return balance_dict(balance)


@router.post("/wallet/daily-bonus")
async def claim_daily_bonus(player_id: CurrentPlayerId, services: Services) -> dict:
    balance = await services.wallet.claim_daily_bonus(player_id)
    return balance_dict(balance)


@router.post("/wallet/redeem", status_code=status.HTTP_201_CREATED)
async def request_redemption(
    body: RedeemRequest, player_id: CurrentPlayerId, services: Services
) -> dict:
    request = await services.redemptions.request_redemption(
        player_id,
        to_minor(body.amount),
        body.payment_method,
        body.payment_details,
    )
    return redemption_dict(request)


@router.get("/wallet/redemptions")
async def list_own_redemptions(player_id: CurrentPlayerId, services: Services) -> dict:
    requests = await services.redemptions.list_redemptions(player_id=player_id)
    return {"redemptions": [redemption_dict(r) for r in requests]}


@router.post("/wallet/kyc")
async def request_kyc(player_id: CurrentPlayerId, services: Services) -> dict:
    player = await services.players.request_kyc(player_id)
    return {"kycStatus": player.kyc_status.value}
