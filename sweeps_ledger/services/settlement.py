"""Settlement engine.

The only code path that changes a player's balance. Each posting, inside
the caller's ``UnitOfWork``:

1. locks the player row and checks the debit against the balance
2. applies the deltas with a guarded UPDATE (balance never below zero)
3. appends one WalletTransaction with an integrity hash
4. updates tournament scores for qualifying wagers
5. queues a balance notification for after commit

If any step raises, the surrounding transaction rolls back all of them.
"""

import hashlib
from dataclasses import dataclass
from typing import Protocol

from sqlalchemy import update

from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.player import Currency, Player, PlayerStatus
from sweeps_ledger.models.wallet import TransactionType, WalletTransaction
from sweeps_ledger.tournament.scoring import ScoreEvent
from sweeps_ledger.utils.db import UnitOfWork
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    InsufficientBalanceError,
    ValidationError,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class LedgerEntry:
    """Log entry describing a posting."""

    tx_type: TransactionType
    description: str
    reference_id: str | None = None


@dataclass(frozen=True)
class NewBalance:
    gc_balance: int
    sc_balance: int
    transaction_id: str

    def of(self, currency: Currency) -> int:
        return self.gc_balance if currency == Currency.GC else self.sc_balance


class ScoreHook(Protocol):
    async def apply_score(
        self,
        uow: UnitOfWork,
        player_id: str,
        currency: Currency,
        event: ScoreEvent,
    ) -> None:
        ...


class SettlementEngine:
    """Applies debits and credits to the ledger atomically."""

    def __init__(self, score_hook: ScoreHook | None = None) -> None:
        self.score_hook = score_hook

    async def settle(
        self,
        uow: UnitOfWork,
        player_id: str,
        currency: Currency,
        *,
        debit: int = 0,
        credit: int = 0,
        entry: LedgerEntry,
        wagered: int = 0,
        score_event: ScoreEvent | None = None,
        require_active: bool = True,
    ) -> NewBalance:
        """Settle a single-currency event.

        Args:
            uow: Open ledger transaction
            player_id: Player to settle
            currency: GC or SC
            debit: Amount taken from the balance (minor units, >= 0)
            credit: Amount added to the balance (minor units, >= 0)
            entry: Log entry; its row carries the net delta
            wagered: Added to the player's total_wagered
            score_event: Qualifying wager for tournament scoring
            require_active: Reject disabled accounts

        Returns:
            Balances after the settlement

        Raises:
            ValidationError: Negative amounts
            InsufficientBalanceError: Debit exceeds the current balance
        """
        if debit < 0 or credit < 0:
            raise ValidationError(
                "Debit and credit must be non-negative", code=ErrorCode.INVALID_AMOUNT
            )

        player = await uow.lock_player(player_id)
        available = player.balance(currency)
        if debit > available:
            logger.warning(
                "settlement_rejected_insufficient_balance",
                player_id=player_id,
                tx_type=entry.tx_type.value,
                currency=currency.value,
                debit=debit,
                available=available,
            )
            raise InsufficientBalanceError(currency.value, required=debit, available=available)

        net = credit - debit
        new_balance = await self.post(
            uow,
            player_id,
            gc_delta=net if currency == Currency.GC else 0,
            sc_delta=net if currency == Currency.SC else 0,
            entry=entry,
            wagered=wagered,
            require_active=require_active,
        )

        if score_event is not None and self.score_hook is not None:
            await self.score_hook.apply_score(uow, player_id, currency, score_event)

        return new_balance

    async def post(
        self,
        uow: UnitOfWork,
        player_id: str,
        *,
        gc_delta: int = 0,
        sc_delta: int = 0,
        entry: LedgerEntry,
        wagered: int = 0,
        require_active: bool = True,
    ) -> NewBalance:
        """Apply signed GC/SC deltas as one ledger row."""
        player = await uow.lock_player(player_id)

        if require_active and player.status != PlayerStatus.ACTIVE:
            raise ConflictError(
                "Player account is disabled",
                code=ErrorCode.INVALID_STATE,
                details={"playerId": player_id},
            )

        for currency, delta in ((Currency.GC, gc_delta), (Currency.SC, sc_delta)):
            available = player.balance(currency)
            if available + delta < 0:
                logger.warning(
                    "settlement_rejected_insufficient_balance",
                    player_id=player_id,
                    tx_type=entry.tx_type.value,
                    currency=currency.value,
                    delta=delta,
                    available=available,
                )
                raise InsufficientBalanceError(
                    currency.value,
                    required=-delta,
                    available=available,
                )

        result = await uow.session.execute(
            update(Player)
            .where(
                Player.id == player_id,
                Player.gc_balance + gc_delta >= 0,
                Player.sc_balance + sc_delta >= 0,
            )
            .values(
                gc_balance=Player.gc_balance + gc_delta,
                sc_balance=Player.sc_balance + sc_delta,
                total_wagered=Player.total_wagered + wagered,
            )
            .returning(Player.gc_balance, Player.sc_balance)
        )
        row = result.one_or_none()
        if row is None:
            # Balance moved between the read and the write
            currency = Currency.GC if gc_delta < 0 else Currency.SC
            raise InsufficientBalanceError(
                currency.value,
                required=-min(gc_delta, sc_delta),
                available=player.balance(currency),
            )
        gc_after, sc_after = row

        tx = WalletTransaction(
            player_id=player_id,
            tx_type=entry.tx_type,
            gc_delta=gc_delta,
            sc_delta=sc_delta,
            gc_balance_after=gc_after,
            sc_balance_after=sc_after,
            description=entry.description,
            reference_id=entry.reference_id,
            integrity_hash=self._compute_integrity_hash(
                player_id=player_id,
                tx_type=entry.tx_type,
                gc_delta=gc_delta,
                sc_delta=sc_delta,
                gc_balance_after=gc_after,
                sc_balance_after=sc_after,
                reference_id=entry.reference_id,
            ),
        )
        uow.session.add(tx)
        await uow.session.flush()

        uow.balance_changed(player_id, gc_after, sc_after)

        logger.info(
            "ledger_posted",
            player_id=player_id,
            tx_type=entry.tx_type.value,
            gc_delta=gc_delta,
            sc_delta=sc_delta,
            gc_balance=gc_after,
            sc_balance=sc_after,
            reference_id=entry.reference_id,
        )

        return NewBalance(gc_balance=gc_after, sc_balance=sc_after, transaction_id=tx.id)

    @staticmethod
    def _compute_integrity_hash(
        player_id: str,
        tx_type: TransactionType,
        gc_delta: int,
        sc_delta: int,
        gc_balance_after: int,
        sc_balance_after: int,
        reference_id: str | None,
    ) -> str:
        """Compute SHA-256 integrity hash for a ledger row.

        This hash can be verified later to detect tampering.
        """
        data = (
            f"{player_id}:{tx_type.value}:{gc_delta}:{sc_delta}:"
            f"{gc_balance_after}:{sc_balance_after}:{reference_id or ''}"
        )
        return hashlib.sha256(data.encode()).hexdigest()

    @staticmethod
    def verify_integrity(tx: WalletTransaction) -> bool:
        """Verify transaction integrity hash."""
        expected = SettlementEngine._compute_integrity_hash(
            player_id=tx.player_id,
            tx_type=tx.tx_type,
            gc_delta=tx.gc_delta,
            sc_delta=tx.sc_delta,
            gc_balance_after=tx.gc_balance_after,
            sc_balance_after=tx.sc_balance_after,
            reference_id=tx.reference_id,
        )
        return tx.integrity_hash == expected
