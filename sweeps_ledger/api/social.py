"""Friend request endpoints."""

from fastapi import APIRouter, status
from pydantic import BaseModel, Field

from sweeps_ledger.api.deps import CurrentPlayerId, Services

router = APIRouter(prefix="/friends", tags=["Social"])


class FriendRequestBody(BaseModel):
    friend_id: str = Field(..., alias="friendId")


@router.get("")
async def list_friends(player_id: CurrentPlayerId, services: Services) -> dict:
    entries = await services.social.list_friends(player_id)
    return {
        "friends": [
            {
                "friendshipId": e.friendship_id,
                "playerId": e.player_id,
                "username": e.username,
                "status": e.status.value,
                "outgoing": e.outgoing,
            }
            for e in entries
        ]
    }


@router.post("/requests", status_code=status.HTTP_201_CREATED)
async def send_friend_request(
    body: FriendRequestBody, player_id: CurrentPlayerId, services: Services
) -> dict:
    friendship = await services.social.send_request(player_id, body.friend_id)
    return {"friendshipId": friendship.id, "status": friendship.status.value}


@router.post("/requests/{friendship_id}/accept")
async def accept_friend_request(
    friendship_id: str, player_id: CurrentPlayerId, services: Services
) -> dict:
    friendship = await services.social.accept(player_id, friendship_id)
    return {"friendshipId": friendship.id, "status": friendship.status.value}


@router.post("/requests/{friendship_id}/reject")
async def reject_friend_request(
    friendship_id: str, player_id: CurrentPlayerId, services: Services
) -> dict:
    await services.social.reject(player_id, friendship_id)
    return {"friendshipId": friendship_id, "status": "removed"}
