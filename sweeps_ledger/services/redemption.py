"""SC redemption workflow.

State machine:
    (none) -> pending           player request; SC escrowed (debited) now
    pending -> approved         admin
    pending | approved -> paid  admin; no further ledger change
    pending | approved -> rejected
                                admin; escrowed SC is refunded

The payout (amount minus the flat fee) is frozen when the request is made.
"""

from datetime import datetime

from sqlalchemy import select

from sweeps_ledger.config import SiteSettings
from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.player import Currency, KycStatus
from sweeps_ledger.models.redemption import RedemptionRequest, RedemptionStatus
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.services.settlement import LedgerEntry, SettlementEngine
from sweeps_ledger.utils.db import LedgerStore
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    InsufficientBalanceError,
    KycRequiredError,
    NotFoundError,
    ValidationError,
)
from sweeps_ledger.utils.money import format_coins, to_minor

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[RedemptionStatus, frozenset[RedemptionStatus]] = {
    RedemptionStatus.PENDING: frozenset(
        {RedemptionStatus.APPROVED, RedemptionStatus.PAID, RedemptionStatus.REJECTED}
    ),
    RedemptionStatus.APPROVED: frozenset(
        {RedemptionStatus.PAID, RedemptionStatus.REJECTED}
    ),
    RedemptionStatus.PAID: frozenset(),
    RedemptionStatus.REJECTED: frozenset(),
}


class RedemptionService:
    def __init__(
        self,
        store: LedgerStore,
        settlement: SettlementEngine,
        site: SiteSettings,
    ) -> None:
        self.store = store
        self.settlement = settlement
        self.site = site

    async def request_redemption(
        self,
        player_id: str,
        amount_sc: int,
        payment_method: str,
        payment_details: str | None = None,
    ) -> RedemptionRequest:
        """Create a pending request and escrow the SC.

        Guards are checked in order: positive amount, verified KYC, minimum
        amount, balance. A rejected request has no side effects.

        Raises:
            ValidationError: Non-positive or below-minimum amount
            KycRequiredError: Player is not KYC verified
            InsufficientBalanceError: Amount exceeds the SC balance
        """
        if amount_sc <= 0:
            raise ValidationError(
                "Redemption amount must be positive", code=ErrorCode.INVALID_AMOUNT
            )
        if not payment_method:
            raise ValidationError("Payment method is required")

        minimum = to_minor(self.site.min_redemption_sc)
        fee = to_minor(self.site.redemption_fee_sc)

        async with self.store.transaction() as uow:
            player = await uow.lock_player(player_id)

            if player.kyc_status != KycStatus.VERIFIED:
                raise KycRequiredError(player.kyc_status.value)
            if amount_sc < minimum:
                raise ValidationError(
                    f"Minimum redemption is {format_coins(minimum, 'sc')}",
                    code=ErrorCode.BELOW_MINIMUM,
                    details={"minimum": minimum, "requested": amount_sc},
                )
            if amount_sc > player.sc_balance:
                raise InsufficientBalanceError(
                    Currency.SC.value, required=amount_sc, available=player.sc_balance
                )

            request = RedemptionRequest(
                player_id=player_id,
                amount_sc=amount_sc,
                fee_sc=fee,
                payout_amount=max(amount_sc - fee, 0),
                payment_method=payment_method,
                payment_details=payment_details,
                status=RedemptionStatus.PENDING,
            )
            uow.session.add(request)
            await uow.session.flush()

            await self.settlement.settle(
                uow,
                player_id,
                Currency.SC,
                debit=amount_sc,
                entry=LedgerEntry(
                    tx_type=TransactionType.REDEMPTION_REQUEST,
                    description=f"Redemption request via {payment_method}",
                    reference_id=request.id,
                ),
            )

        logger.info(
            "redemption_requested",
            player_id=player_id,
            request_id=request.id,
            amount_sc=amount_sc,
            fee_sc=fee,
        )
        return request

    async def process(
        self,
        request_id: str,
        status: RedemptionStatus,
        admin_id: str,
        admin_note: str | None = None,
        now: datetime | None = None,
    ) -> RedemptionRequest:
        """Move a request to ``status``. Rejection refunds the escrowed SC.

        Raises:
            NotFoundError: Unknown request
            ValidationError: Target status is ``pending``
            ConflictError: Transition not allowed from the current status
        """
        if status == RedemptionStatus.PENDING:
            raise ValidationError("Cannot move a redemption back to pending")

        async with self.store.transaction() as uow:
            result = await uow.session.execute(
                uow.for_update(
                    select(RedemptionRequest).where(RedemptionRequest.id == request_id)
                ).execution_options(populate_existing=True)
            )
            request = result.scalar_one_or_none()
            if request is None:
                raise NotFoundError("Redemption", request_id, ErrorCode.REDEMPTION_NOT_FOUND)

            if status not in ALLOWED_TRANSITIONS[request.status]:
                raise ConflictError(
                    f"Cannot move redemption from {request.status.value} to {status.value}",
                    code=ErrorCode.INVALID_STATE,
                    details={"from": request.status.value, "to": status.value},
                )

            if status == RedemptionStatus.REJECTED:
                await self.settlement.settle(
                    uow,
                    request.player_id,
                    Currency.SC,
                    credit=request.amount_sc,
                    entry=LedgerEntry(
                        tx_type=TransactionType.REDEMPTION_REFUND,
                        description="Redemption rejected, SC refunded",
                        reference_id=request.id,
                    ),
                    require_active=False,
                )
                uow.notify(
                    request.player_id,
                    "info",
                    f"Your redemption of {format_coins(request.amount_sc, 'sc')} "
                    "was rejected and refunded.",
                )
            elif status == RedemptionStatus.PAID:
                uow.notify(
                    request.player_id,
                    "success",
                    f"Your redemption of {format_coins(request.payout_amount, 'sc')} was paid.",
                )

            previous = request.status
            request.status = status
            request.processed_at = now or utcnow()
            request.processed_by = admin_id
            request.admin_note = admin_note
            await uow.session.flush()

        logger.info(
            "redemption_processed",
            request_id=request_id,
            admin_id=admin_id,
            from_status=previous.value,
            to_status=status.value,
        )
        return request

    async def get(self, request_id: str) -> RedemptionRequest:
        async with self.store.session() as session:
            request = await session.get(RedemptionRequest, request_id)
        if request is None:
            raise NotFoundError("Redemption", request_id, ErrorCode.REDEMPTION_NOT_FOUND)
        return request

    async def list_redemptions(
        self,
        *,
        status: RedemptionStatus | None = None,
        player_id: str | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[RedemptionRequest]:
        query = (
            select(RedemptionRequest)
            .order_by(RedemptionRequest.created_at.desc())
            .offset(offset)
            .limit(limit)
        )
        if status:
            query = query.where(RedemptionRequest.status == status)
        if player_id:
            query = query.where(RedemptionRequest.player_id == player_id)

        async with self.store.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())
