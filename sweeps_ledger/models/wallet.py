"""Wallet transaction log and coin store packages.

WalletTransaction rows are append-only. For every player the sum of
``gc_delta`` equals ``gc_balance`` and the sum of ``sc_delta`` equals
``sc_balance``.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, Boolean, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sweeps_ledger.models.base import Base, UUIDMixin, enum_column, utcnow


class TransactionType(str, Enum):
    """Transaction types for wallet operations."""

    BONUS = "bonus"
    PURCHASE = "purchase"
    REFERRAL = "referral"

    # Game operations
    WAGER_RESULT = "wager_result"
    TICKET_PURCHASE = "ticket_purchase"
    TICKET_WIN = "ticket_win"

    # Tournaments
    TOURNAMENT_ENTRY = "tournament_entry"
    TOURNAMENT_WIN = "tournament_win"

    # Redemptions
    REDEMPTION_REQUEST = "redemption_request"
    REDEMPTION_REFUND = "redemption_refund"

    # Admin operations
    ADMIN_ADJUSTMENT = "admin_adjustment"


class WalletTransaction(Base, UUIDMixin):
    """Immutable ledger entry with full audit trail."""

    __tablename__ = "wallet_transactions"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=False,
    )

    tx_type: Mapped[TransactionType] = mapped_column(
        enum_column(TransactionType),
        nullable=False,
        index=True,
    )

    gc_delta: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        comment="Signed GC change in minor units",
    )
    sc_delta: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        comment="Signed SC change in minor units",
    )
    gc_balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sc_balance_after: Mapped[int] = mapped_column(BigInteger, nullable=False)

    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    reference_id: Mapped[str | None] = mapped_column(
        String(36),
        nullable=True,
        comment="Game result, ticket purchase, tournament or redemption id",
    )

    integrity_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 hash for tamper detection",
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(),
        default=utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("ix_wallet_transactions_player_created", "player_id", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<WalletTransaction {self.id[:8]}... type={self.tx_type.value} "
            f"gc={self.gc_delta:+} sc={self.sc_delta:+}>"
        )


class CoinPackage(Base, UUIDMixin):
    """Purchasable GC/SC bundle. Payment verification is stubbed."""

    __tablename__ = "coin_packages"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    gc_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    sc_amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<CoinPackage {self.name}>"
