"""Scratch and pull-tab ticket endpoints."""

from fastapi import APIRouter, status

from sweeps_ledger.api.deps import CurrentPlayerId, Services
from sweeps_ledger.api.serializers import purchase_dict, saved_win_dict, ticket_type_dict

router = APIRouter(prefix="/tickets", tags=["Tickets"])


@router.get("/types")
async def list_ticket_types(services: Services) -> dict:
    types = await services.tickets.list_ticket_types(active_only=True)
    return {"types": [ticket_type_dict(t) for t in types]}


@router.post("/types/{ticket_type_id}/purchase", status_code=status.HTTP_201_CREATED)
async def purchase_ticket(
    ticket_type_id: str, player_id: CurrentPlayerId, services: Services
) -> dict:
    purchase = await services.tickets.purchase(player_id, ticket_type_id)
    return purchase_dict(purchase, reveal=False)


@router.post("/{purchase_id}/reveal")
async def reveal_ticket(
    purchase_id: str, player_id: CurrentPlayerId, services: Services
) -> dict:
    purchase = await services.tickets.reveal(player_id, purchase_id)
    return purchase_dict(purchase, reveal=True)


@router.post("/{purchase_id}/claim")
async def claim_ticket(
    purchase_id: str, player_id: CurrentPlayerId, services: Services
) -> dict:
    purchase = await services.tickets.claim(player_id, purchase_id)
    return purchase_dict(purchase, reveal=True)


@router.post("/{purchase_id}/save", status_code=status.HTTP_201_CREATED)
async def save_ticket(
    purchase_id: str, player_id: CurrentPlayerId, services: Services
) -> dict:
    saved = await services.tickets.save(player_id, purchase_id)
    return saved_win_dict(saved)


@router.get("/saved-wins")
async def list_saved_wins(player_id: CurrentPlayerId, services: Services) -> dict:
    wins = await services.tickets.list_saved_wins(player_id)
    return {"wins": [saved_win_dict(w) for w in wins]}


@router.post("/saved-wins/{saved_win_id}/claim")
async def claim_saved_win(
    saved_win_id: str, player_id: CurrentPlayerId, services: Services
) -> dict:
    saved = await services.tickets.claim_saved_win(player_id, saved_win_id)
    return saved_win_dict(saved)
