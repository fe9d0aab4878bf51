"""API dependencies for caller identity and service access.

Identity is established upstream by the auth collaborator and forwarded in
the ``X-Player-Id`` and ``X-Player-Role`` headers, which are trusted as-is.
"""

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status

from sweeps_ledger.container import LedgerServices
from sweeps_ledger.models.player import PlayerRole
from sweeps_ledger.utils.errors import PermissionDeniedError


def get_services(request: Request) -> LedgerServices:
    return request.app.state.services


def get_current_player_id(
    x_player_id: Annotated[str | None, Header()] = None,
) -> str:
    """Player id supplied by the auth collaborator (required)."""
    if not x_player_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "AUTH_REQUIRED",
                    "message": "Authentication required",
                    "details": {},
                }
            },
        )
    return x_player_id


def get_current_role(
    x_player_role: Annotated[str | None, Header()] = None,
) -> PlayerRole:
    if x_player_role == PlayerRole.ADMIN.value:
        return PlayerRole.ADMIN
    return PlayerRole.PLAYER


def require_admin(
    player_id: Annotated[str, Depends(get_current_player_id)],
    role: Annotated[PlayerRole, Depends(get_current_role)],
) -> str:
    """Admin id, or 403 for any other role."""
    if role != PlayerRole.ADMIN:
        raise PermissionDeniedError("Admin access required")
    return player_id


# Type aliases for dependency injection
Services = Annotated[LedgerServices, Depends(get_services)]
CurrentPlayerId = Annotated[str, Depends(get_current_player_id)]
AdminId = Annotated[str, Depends(require_admin)]
