"""Database models."""

from sweeps_ledger.models.base import Base, TimestampMixin, UUIDMixin, utcnow
from sweeps_ledger.models.bonus import (
    Bonus,
    BonusStatus,
    BonusType,
    PlayerBonus,
    PlayerBonusStatus,
)
from sweeps_ledger.models.game import Game, GameKind, GameResult
from sweeps_ledger.models.player import (
    Currency,
    KycStatus,
    Player,
    PlayerRole,
    PlayerStatus,
)
from sweeps_ledger.models.redemption import RedemptionRequest, RedemptionStatus
from sweeps_ledger.models.social import Friendship, FriendshipStatus
from sweeps_ledger.models.ticket import (
    SavedWin,
    TicketKind,
    TicketPurchase,
    TicketStatus,
    TicketType,
)
from sweeps_ledger.models.tournament import (
    ScoringRule,
    Tournament,
    TournamentParticipant,
    TournamentStatus,
)
from sweeps_ledger.models.wallet import CoinPackage, TransactionType, WalletTransaction

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "utcnow",
    # Player
    "Player",
    "Currency",
    "KycStatus",
    "PlayerRole",
    "PlayerStatus",
    # Wallet
    "WalletTransaction",
    "TransactionType",
    "CoinPackage",
    # Bonuses
    "Bonus",
    "BonusType",
    "BonusStatus",
    "PlayerBonus",
    "PlayerBonusStatus",
    # Games
    "Game",
    "GameKind",
    "GameResult",
    # Tickets
    "TicketType",
    "TicketKind",
    "TicketPurchase",
    "TicketStatus",
    "SavedWin",
    # Tournaments
    "Tournament",
    "TournamentParticipant",
    "TournamentStatus",
    "ScoringRule",
    # Redemptions
    "RedemptionRequest",
    "RedemptionStatus",
    # Social
    "Friendship",
    "FriendshipStatus",
]
