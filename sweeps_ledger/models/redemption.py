"""SC redemption requests."""

from datetime import datetime
from enum import Enum

from sqlalchemy import BigInteger, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from sweeps_ledger.models.base import Base, TimestampMixin, UUIDMixin, enum_column


class RedemptionStatus(str, Enum):
    """pending -> (approved) -> paid, or pending -> rejected."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    PAID = "paid"


class RedemptionRequest(Base, UUIDMixin, TimestampMixin):
    """Player payout request. The SC is escrowed (debited) at request time."""

    __tablename__ = "redemption_requests"

    player_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("players.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    amount_sc: Mapped[int] = mapped_column(BigInteger, nullable=False)
    fee_sc: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="Flat fee frozen at request time",
    )
    payout_amount: Mapped[int] = mapped_column(
        BigInteger,
        nullable=False,
        comment="amount_sc - fee_sc, frozen at request time",
    )
    payment_method: Mapped[str] = mapped_column(String(50), nullable=False)
    payment_details: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[RedemptionStatus] = mapped_column(
        enum_column(RedemptionStatus),
        default=RedemptionStatus.PENDING,
        nullable=False,
        index=True,
    )
    processed_at: Mapped[datetime | None] = mapped_column(DateTime(), nullable=True)
    processed_by: Mapped[str | None] = mapped_column(String(36), nullable=True)
    admin_note: Mapped[str | None] = mapped_column(Text, nullable=True)

    def __repr__(self) -> str:
        return f"<RedemptionRequest {self.id[:8]}... status={self.status.value}>"
