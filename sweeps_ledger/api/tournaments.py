"""Tournament endpoints for players.

State transitions are driven by the scheduler only; players can list,
inspect and join.
"""

from fastapi import APIRouter, Query, status

from sweeps_ledger.api.deps import CurrentPlayerId, Services
from sweeps_ledger.api.serializers import participant_dict, tournament_dict
from sweeps_ledger.models.tournament import TournamentStatus

router = APIRouter(prefix="/tournaments", tags=["Tournaments"])


@router.get("")
async def list_tournaments(
    services: Services,
    tournament_status: TournamentStatus | None = Query(None, alias="status"),
) -> dict:
    tournaments = await services.tournaments.list_tournaments(tournament_status)
    return {"tournaments": [tournament_dict(t) for t in tournaments]}


@router.get("/{tournament_id}")
async def get_tournament(tournament_id: str, services: Services) -> dict:
    tournament = await services.tournaments.get_tournament(tournament_id)
    return tournament_dict(tournament)


@router.get("/{tournament_id}/leaderboard")
async def get_leaderboard(tournament_id: str, services: Services) -> dict:
    tournament = await services.tournaments.get_tournament(tournament_id)
    participants = await services.tournaments.get_leaderboard(tournament_id)
    return {
        "tournament": tournament_dict(tournament),
        "participants": [participant_dict(p, tournament) for p in participants],
    }


@router.post("/{tournament_id}/join", status_code=status.HTTP_201_CREATED)
async def join_tournament(
    tournament_id: str, player_id: CurrentPlayerId, services: Services
) -> dict:
    participant = await services.tournaments.join(tournament_id, player_id)
    return {
        "tournamentId": participant.tournament_id,
        "playerId": participant.player_id,
        "joinedAt": participant.joined_at.isoformat(),
    }
