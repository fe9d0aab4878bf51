"""Player account model."""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, CheckConstraint, DateTime, ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from sweeps_ledger.models.base import Base, TimestampMixin, UUIDMixin, enum_column


class Currency(str, Enum):
    """Wallet currencies."""

    GC = "gc"  # Gold coins, play money
    SC = "sc"  # Sweeps coins, redeemable

    @property
    def balance_attr(self) -> str:
        return f"{self.value}_balance"


class KycStatus(str, Enum):
    """Know-your-customer verification status."""

    UNVERIFIED = "unverified"
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class PlayerStatus(str, Enum):
    """Account status. Players are never deleted."""

    ACTIVE = "active"
    DISABLED = "disabled"


class PlayerRole(str, Enum):
    PLAYER = "player"
    ADMIN = "admin"


class Player(Base, UUIDMixin, TimestampMixin):
    """Player account with the dual-currency wallet.

    Balances are minor units and only change through the settlement engine.
    """

    __tablename__ = "players"

    username: Mapped[str] = mapped_column(
        String(50),
        unique=True,
        nullable=False,
        index=True,
    )
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
    )

    status: Mapped[PlayerStatus] = mapped_column(
        enum_column(PlayerStatus),
        default=PlayerStatus.ACTIVE,
        nullable=False,
    )
    role: Mapped[PlayerRole] = mapped_column(
        enum_column(PlayerRole),
        default=PlayerRole.PLAYER,
        nullable=False,
    )

    # Wallet
    gc_balance: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        comment="Gold coin balance in minor units",
    )
    sc_balance: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        comment="Sweeps coin balance in minor units",
    )
    total_wagered: Mapped[int] = mapped_column(
        BigInteger,
        default=0,
        nullable=False,
        comment="Lifetime wagered amount in minor units (both currencies)",
    )

    kyc_status: Mapped[KycStatus] = mapped_column(
        enum_column(KycStatus),
        default=KycStatus.UNVERIFIED,
        nullable=False,
    )

    # Referral linkage
    referral_code: Mapped[str] = mapped_column(
        String(20),
        unique=True,
        nullable=False,
        index=True,
    )
    referred_by_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )

    last_bonus_claim_at: Mapped[datetime | None] = mapped_column(
        DateTime(),
        nullable=True,
    )

    __table_args__ = (
        CheckConstraint("gc_balance >= 0", name="ck_players_gc_balance_non_negative"),
        CheckConstraint("sc_balance >= 0", name="ck_players_sc_balance_non_negative"),
    )

    def balance(self, currency: Currency) -> int:
        return getattr(self, currency.balance_attr)

    def __repr__(self) -> str:
        return f"<Player {self.username}>"
