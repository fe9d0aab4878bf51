"""API routers."""

from sweeps_ledger.api.admin import router as admin_router
from sweeps_ledger.api.bonuses import router as bonuses_router
from sweeps_ledger.api.games import router as games_router
from sweeps_ledger.api.social import router as social_router
from sweeps_ledger.api.tickets import router as tickets_router
from sweeps_ledger.api.tournaments import router as tournaments_router
from sweeps_ledger.api.wallet import router as wallet_router

__all__ = [
    "admin_router",
    "bonuses_router",
    "games_router",
    "social_router",
    "tickets_router",
    "tournaments_router",
    "wallet_router",
]
