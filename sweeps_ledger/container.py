"""Wiring of the ledger store, settlement engine and services."""

from dataclasses import dataclass

from sweeps_ledger.config import SiteSettings
from sweeps_ledger.game.outcomes import RandomSource, system_random
from sweeps_ledger.services.bonuses import BonusService
from sweeps_ledger.services.games import GameService
from sweeps_ledger.services.players import PlayerService
from sweeps_ledger.services.redemption import RedemptionService
from sweeps_ledger.services.settlement import SettlementEngine
from sweeps_ledger.services.social import SocialService
from sweeps_ledger.services.tickets import ThemeNamer, TicketService
from sweeps_ledger.services.wallet import WalletService
from sweeps_ledger.tournament.engine import TournamentEngine
from sweeps_ledger.tournament.scheduler import TournamentScheduler
from sweeps_ledger.tournament.scoring import TournamentScorer
from sweeps_ledger.tournament.settlement import TournamentSettlement
from sweeps_ledger.utils.db import LedgerStore


@dataclass
class LedgerServices:
    store: LedgerStore
    settlement: SettlementEngine
    players: PlayerService
    wallet: WalletService
    bonuses: BonusService
    games: GameService
    tickets: TicketService
    redemptions: RedemptionService
    social: SocialService
    tournaments: TournamentEngine
    tournament_settlement: TournamentSettlement
    scheduler: TournamentScheduler


def build_services(
    store: LedgerStore,
    site: SiteSettings,
    *,
    sweep_interval_seconds: float = 60,
    rng: RandomSource = system_random,
    namer: ThemeNamer | None = None,
) -> LedgerServices:
    settlement = SettlementEngine(score_hook=TournamentScorer())
    tournament_settlement = TournamentSettlement(
        store, settlement, prize_split=site.tournament_prize_split
    )
    return LedgerServices(
        store=store,
        settlement=settlement,
        players=PlayerService(store, settlement, site),
        wallet=WalletService(store, settlement, site),
        bonuses=BonusService(store, settlement),
        games=GameService(store, settlement, rng=rng),
        tickets=TicketService(store, settlement, site, namer=namer, rng=rng),
        redemptions=RedemptionService(store, settlement, site),
        social=SocialService(store, settlement, site),
        tournaments=TournamentEngine(store, settlement),
        tournament_settlement=tournament_settlement,
        scheduler=TournamentScheduler(
            store, tournament_settlement, interval_seconds=sweep_interval_seconds
        ),
    )
