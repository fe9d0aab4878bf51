"""Admin API endpoints.

Every route requires ``X-Player-Role: admin``.

Endpoints:
- GET /admin/players - List players
- POST /admin/players/{id}/adjust - Signed GC/SC balance adjustment
- POST /admin/players/{id}/kyc - Set KYC status
- POST /admin/players/{id}/status - Enable or disable an account
- GET /admin/players/{id}/audit - Reconcile balance with the ledger
- POST /admin/rain - Credit every active player
- GET /admin/redemptions - List redemption requests
- POST /admin/redemptions/{id} - Approve, pay or reject a redemption
- POST /admin/packages - Create a coin package
- PATCH /admin/packages/{id} - Update a coin package
- DELETE /admin/packages/{id} - Delete a coin package
- GET /admin/bonuses - List bonuses (deleted excluded)
- POST /admin/bonuses - Create a bonus
- PATCH /admin/bonuses/{id} - Update or pause a bonus
- DELETE /admin/bonuses/{id} - Soft-delete a bonus
- POST /admin/games - Register a game
- POST /admin/ticket-types - Create a ticket type
- PATCH /admin/ticket-types/{id} - Update a ticket type
- POST /admin/tournaments - Create a tournament
- POST /admin/tournaments/sweep - Run a lifecycle sweep now
"""

from datetime import datetime, timezone
from decimal import Decimal

from fastapi import APIRouter, Query, status
from pydantic import BaseModel, Field

from sweeps_ledger.api.deps import AdminId, Services
from sweeps_ledger.api.serializers import (
    balance_dict,
    bonus_dict,
    package_dict,
    player_dict,
    redemption_dict,
    ticket_type_dict,
    tournament_dict,
)
from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.bonus import BonusStatus, BonusType
from sweeps_ledger.models.game import GameKind
from sweeps_ledger.models.player import Currency, KycStatus, PlayerStatus
from sweeps_ledger.models.redemption import RedemptionStatus
from sweeps_ledger.models.ticket import TicketKind
from sweeps_ledger.models.tournament import ScoringRule
from sweeps_ledger.utils.money import to_minor

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================================
# Request Schemas
# ============================================================


class AdjustBalanceRequest(BaseModel):
    gc: Decimal = Field(default=Decimal(0), decimal_places=2)
    sc: Decimal = Field(default=Decimal(0), decimal_places=2)
    reason: str | None = Field(default=None, max_length=500)


class RainRequest(BaseModel):
    gc: Decimal = Field(default=Decimal(0), ge=0, decimal_places=2)
    sc: Decimal = Field(default=Decimal(0), ge=0, decimal_places=2)


class KycUpdateRequest(BaseModel):
    status: KycStatus


class PlayerStatusRequest(BaseModel):
    status: PlayerStatus


class ProcessRedemptionRequest(BaseModel):
    status: RedemptionStatus
    note: str | None = Field(default=None, max_length=1000)


class CreatePackageRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    gc: Decimal = Field(..., ge=0, decimal_places=2)
    sc: Decimal = Field(..., ge=0, decimal_places=2)
    price_cents: int = Field(..., ge=0, alias="priceCents")
    is_featured: bool = Field(default=False, alias="isFeatured")


class UpdatePackageRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    gc: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    sc: Decimal | None = Field(default=None, ge=0, decimal_places=2)
    price_cents: int | None = Field(default=None, ge=0, alias="priceCents")
    is_featured: bool | None = Field(default=None, alias="isFeatured")


class CreateBonusRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    type: BonusType
    description: str | None = None
    code: str | None = Field(default=None, min_length=1, max_length=50)
    reward_gc: Decimal = Field(default=Decimal(0), ge=0, decimal_places=2, alias="rewardGc")
    reward_sc: Decimal = Field(default=Decimal(0), ge=0, decimal_places=2, alias="rewardSc")
    min_deposit: Decimal = Field(default=Decimal(0), ge=0, decimal_places=2, alias="minDeposit")
    wagering_requirement: int = Field(default=0, ge=0, alias="wageringRequirement")
    game_eligibility: list[str] | None = Field(default=None, alias="gameEligibility")
    max_win: Decimal | None = Field(default=None, ge=0, decimal_places=2, alias="maxWin")
    expiration_days: int | None = Field(default=None, ge=0, alias="expirationDays")


class UpdateBonusRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    description: str | None = None
    code: str | None = Field(default=None, min_length=1, max_length=50)
    reward_gc: Decimal | None = Field(default=None, ge=0, decimal_places=2, alias="rewardGc")
    reward_sc: Decimal | None = Field(default=None, ge=0, decimal_places=2, alias="rewardSc")
    min_deposit: Decimal | None = Field(
        default=None, ge=0, decimal_places=2, alias="minDeposit"
    )
    wagering_requirement: int | None = Field(default=None, ge=0, alias="wageringRequirement")
    game_eligibility: list[str] | None = Field(default=None, alias="gameEligibility")
    max_win: Decimal | None = Field(default=None, ge=0, decimal_places=2, alias="maxWin")
    expiration_days: int | None = Field(default=None, ge=0, alias="expirationDays")
    status: BonusStatus | None = None


class CreateGameRequest(BaseModel):
    slug: str = Field(..., min_length=1, max_length=64)
    name: str = Field(..., min_length=1, max_length=100)
    kind: GameKind
    rtp: float = Field(default=96.0, ge=0, le=100)


class CreateTicketTypeRequest(BaseModel):
    kind: TicketKind
    price_sc: Decimal = Field(..., gt=0, decimal_places=2, alias="priceSc")
    win_probability: float = Field(..., ge=0, le=1, alias="winProbability")
    min_prize: Decimal = Field(..., ge=0, decimal_places=2, alias="minPrize")
    max_prize: Decimal = Field(..., ge=0, decimal_places=2, alias="maxPrize")
    name: str | None = Field(default=None, max_length=100)
    description: str | None = None
    remaining_tickets: int | None = Field(default=None, ge=0, alias="remainingTickets")


class UpdateTicketTypeRequest(BaseModel):
    is_active: bool | None = Field(default=None, alias="isActive")
    price_sc: Decimal | None = Field(default=None, gt=0, decimal_places=2, alias="priceSc")
    win_probability: float | None = Field(default=None, ge=0, le=1, alias="winProbability")


class CreateTournamentRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    game_slug: str = Field(..., alias="gameSlug")
    start_time: datetime = Field(..., alias="startTime")
    end_time: datetime = Field(..., alias="endTime")
    prize_pool: Decimal = Field(..., ge=0, decimal_places=2, alias="prizePool")
    entry_fee: Decimal = Field(default=Decimal(0), ge=0, decimal_places=2, alias="entryFee")
    currency: Currency
    scoring_rule: ScoringRule = Field(
        default=ScoringRule.HIGHEST_WIN_MULTIPLIER, alias="scoringRule"
    )
    max_participants: int = Field(default=100, ge=1, alias="maxParticipants")


def _minor_or_none(value: Decimal | None) -> int | None:
    return to_minor(value) if value is not None else None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# ============================================================
# Players
# ============================================================


@router.get("/players")
async def list_players(
    admin_id: AdminId,
    services: Services,
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> dict:
    players = await services.players.list_players(limit=limit, offset=offset)
    return {"players": [player_dict(p) for p in players]}


@router.post("/players/{player_id}/adjust")
async def adjust_balance(
    player_id: str, body: AdjustBalanceRequest, admin_id: AdminId, services: Services
) -> dict:
    balance = await services.wallet.admin_adjust_balance(
        player_id,
        gc_delta=to_minor(body.gc),
        sc_delta=to_minor(body.sc),
        admin_id=admin_id,
        reason=body.reason,
    )
    return balance_dict(balance)


@router.post("/players/{player_id}/kyc")
async def set_kyc_status(
    player_id: str, body: KycUpdateRequest, admin_id: AdminId, services: Services
) -> dict:
    player = await services.players.set_kyc_status(player_id, body.status, admin_id)
    return player_dict(player)


@router.post("/players/{player_id}/status")
async def set_player_status(
    player_id: str, body: PlayerStatusRequest, admin_id: AdminId, services: Services
) -> dict:
    player = await services.players.set_player_status(player_id, body.status, admin_id)
    return player_dict(player)


@router.get("/players/{player_id}/audit")
async def audit_player(player_id: str, admin_id: AdminId, services: Services) -> dict:
    audit = await services.wallet.verify_ledger(player_id)
    return audit.to_dict()


@router.post("/rain")
async def rain(body: RainRequest, admin_id: AdminId, services: Services) -> dict:
    credited = await services.wallet.rain(to_minor(body.gc), to_minor(body.sc), admin_id)
    return {"playersCredited": credited}


# ============================================================
# Redemptions
# ============================================================


@router.get("/redemptions")
async def list_redemptions(
    admin_id: AdminId,
    services: Services,
    redemption_status: RedemptionStatus | None = Query(None, alias="status"),
    limit: int = Query(50, ge=1, le=100),
    offset: int = Query(0, ge=0),
) -> dict:
    requests = await services.redemptions.list_redemptions(
        status=redemption_status, limit=limit, offset=offset
    )
    return {"redemptions": [redemption_dict(r) for r in requests]}


@router.post("/redemptions/{request_id}")
async def process_redemption(
    request_id: str,
    body: ProcessRedemptionRequest,
    admin_id: AdminId,
    services: Services,
) -> dict:
    request = await services.redemptions.process(
        request_id, body.status, admin_id, admin_note=body.note
    )
    return redemption_dict(request)


# ============================================================
# Catalog
# ============================================================


@router.post("/packages", status_code=status.HTTP_201_CREATED)
async def create_package(
    body: CreatePackageRequest, admin_id: AdminId, services: Services
) -> dict:
    package = await services.wallet.create_package(
        name=body.name,
        gc_amount=to_minor(body.gc),
        sc_amount=to_minor(body.sc),
        price_cents=body.price_cents,
        is_featured=body.is_featured,
    )
    return package_dict(package)


@router.patch("/packages/{package_id}")
async def update_package(
    package_id: str, body: UpdatePackageRequest, admin_id: AdminId, services: Services
) -> dict:
    package = await services.wallet.update_package(
        package_id,
        name=body.name,
        gc_amount=_minor_or_none(body.gc),
        sc_amount=_minor_or_none(body.sc),
        price_cents=body.price_cents,
        is_featured=body.is_featured,
    )
    return package_dict(package)


@router.delete("/packages/{package_id}")
async def delete_package(package_id: str, admin_id: AdminId, services: Services) -> dict:
    await services.wallet.delete_package(package_id)
    return {"success": True}


@router.get("/bonuses")
async def list_bonuses(admin_id: AdminId, services: Services) -> dict:
    bonuses = await services.bonuses.list_bonuses()
    return {"bonuses": [bonus_dict(b) for b in bonuses]}


@router.post("/bonuses", status_code=status.HTTP_201_CREATED)
async def create_bonus(body: CreateBonusRequest, admin_id: AdminId, services: Services) -> dict:
    bonus = await services.bonuses.create_bonus(
        name=body.name,
        bonus_type=body.type,
        description=body.description,
        code=body.code,
        reward_gc=to_minor(body.reward_gc),
        reward_sc=to_minor(body.reward_sc),
        min_deposit=to_minor(body.min_deposit),
        wagering_requirement=body.wagering_requirement,
        game_eligibility=body.game_eligibility,
        max_win=_minor_or_none(body.max_win),
        expiration_days=body.expiration_days,
    )
    return bonus_dict(bonus)


@router.patch("/bonuses/{bonus_id}")
async def update_bonus(
    bonus_id: str, body: UpdateBonusRequest, admin_id: AdminId, services: Services
) -> dict:
    bonus = await services.bonuses.update_bonus(
        bonus_id,
        name=body.name,
        description=body.description,
        code=body.code,
        reward_gc=_minor_or_none(body.reward_gc),
        reward_sc=_minor_or_none(body.reward_sc),
        min_deposit=_minor_or_none(body.min_deposit),
        wagering_requirement=body.wagering_requirement,
        game_eligibility=body.game_eligibility,
        max_win=_minor_or_none(body.max_win),
        expiration_days=body.expiration_days,
        status=body.status,
    )
    return bonus_dict(bonus)


@router.delete("/bonuses/{bonus_id}")
async def delete_bonus(bonus_id: str, admin_id: AdminId, services: Services) -> dict:
    await services.bonuses.delete_bonus(bonus_id)
    return {"success": True}


@router.post("/games", status_code=status.HTTP_201_CREATED)
async def create_game(body: CreateGameRequest, admin_id: AdminId, services: Services) -> dict:
    game = await services.games.create_game(body.slug, body.name, body.kind, body.rtp)
    return {"id": game.id, "slug": game.slug, "name": game.name, "kind": game.kind.value}


@router.post("/ticket-types", status_code=status.HTTP_201_CREATED)
async def create_ticket_type(
    body: CreateTicketTypeRequest, admin_id: AdminId, services: Services
) -> dict:
    ticket_type = await services.tickets.create_ticket_type(
        kind=body.kind,
        price_sc=to_minor(body.price_sc),
        win_probability=body.win_probability,
        min_prize=to_minor(body.min_prize),
        max_prize=to_minor(body.max_prize),
        name=body.name,
        description=body.description,
        remaining_tickets=body.remaining_tickets,
    )
    return ticket_type_dict(ticket_type)


@router.patch("/ticket-types/{ticket_type_id}")
async def update_ticket_type(
    ticket_type_id: str,
    body: UpdateTicketTypeRequest,
    admin_id: AdminId,
    services: Services,
) -> dict:
    ticket_type = await services.tickets.update_ticket_type(
        ticket_type_id,
        is_active=body.is_active,
        price_sc=_minor_or_none(body.price_sc),
        win_probability=body.win_probability,
    )
    return ticket_type_dict(ticket_type)


# ============================================================
# Tournaments
# ============================================================


@router.post("/tournaments", status_code=status.HTTP_201_CREATED)
async def create_tournament(
    body: CreateTournamentRequest, admin_id: AdminId, services: Services
) -> dict:
    tournament = await services.tournaments.create_tournament(
        name=body.name,
        game_slug=body.game_slug,
        start_time=_naive_utc(body.start_time),
        end_time=_naive_utc(body.end_time),
        prize_pool=to_minor(body.prize_pool),
        currency=body.currency,
        entry_fee=to_minor(body.entry_fee),
        scoring_rule=body.scoring_rule,
        max_participants=body.max_participants,
    )
    return tournament_dict(tournament)


@router.post("/tournaments/sweep")
async def trigger_sweep(admin_id: AdminId, services: Services) -> dict:
    logger.info("tournament_sweep_triggered", admin_id=admin_id)
    result = await services.scheduler.sweep()
    return result.to_dict()
