"""Wallet Service for GC/SC balance operations.

Features:
- Balance and transaction history queries
- Coin package purchases (payment verification stubbed)
- Daily login bonus, admin adjustments and "rain"
- Ledger audit: balance vs. sum of deltas, integrity hash checks
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

from sqlalchemy import func, select

from sweeps_ledger.config import SiteSettings
from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.player import Player, PlayerStatus
from sweeps_ledger.models.wallet import CoinPackage, TransactionType, WalletTransaction
from sweeps_ledger.services.settlement import LedgerEntry, NewBalance, SettlementEngine
from sweeps_ledger.utils.db import LedgerStore
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from sweeps_ledger.utils.money import format_coins, to_minor

logger = get_logger(__name__)

DAILY_BONUS_INTERVAL = timedelta(hours=24)


@dataclass
class LedgerAudit:
    """Result of reconciling a player's balances with their ledger."""

    player_id: str
    gc_balance: int
    sc_balance: int
    gc_ledger_sum: int
    sc_ledger_sum: int
    transaction_count: int
    tampered_transaction_ids: list[str] = field(default_factory=list)

    @property
    def is_consistent(self) -> bool:
        return (
            self.gc_balance == self.gc_ledger_sum
            and self.sc_balance == self.sc_ledger_sum
            and not self.tampered_transaction_ids
        )

    def to_dict(self) -> dict:
        return {
            "player_id": self.player_id,
            "gc_balance": self.gc_balance,
            "sc_balance": self.sc_balance,
            "gc_ledger_sum": self.gc_ledger_sum,
            "sc_ledger_sum": self.sc_ledger_sum,
            "transaction_count": self.transaction_count,
            "tampered_transaction_ids": self.tampered_transaction_ids,
            "is_consistent": self.is_consistent,
        }


class WalletService:
    """Wallet operations outside of game play."""

    def __init__(
        self,
        store: LedgerStore,
        settlement: SettlementEngine,
        site: SiteSettings,
    ) -> None:
        self.store = store
        self.settlement = settlement
        self.site = site

    async def get_balance(self, player_id: str) -> tuple[int, int]:
        """Get a player's (gc_balance, sc_balance)."""
        async with self.store.session() as session:
            player = await session.get(Player, player_id)
        if player is None:
            raise NotFoundError("Player", player_id, ErrorCode.PLAYER_NOT_FOUND)
        return player.gc_balance, player.sc_balance

    async def get_transactions(
        self,
        player_id: str,
        *,
        limit: int = 50,
        offset: int = 0,
        tx_type: TransactionType | None = None,
    ) -> list[WalletTransaction]:
        """Get player's transaction history, newest first.

        Args:
            player_id: Player ID
            limit: Max transactions to return
            offset: Pagination offset
            tx_type: Optional filter by transaction type
        """
        query = (
            select(WalletTransaction)
            .where(WalletTransaction.player_id == player_id)
            .order_by(WalletTransaction.created_at.desc(), WalletTransaction.id)
            .offset(offset)
            .limit(limit)
        )

        if tx_type:
            query = query.where(WalletTransaction.tx_type == tx_type)

        async with self.store.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    # Store

    async def list_packages(self) -> list[CoinPackage]:
        async with self.store.session() as session:
            result = await session.execute(
                select(CoinPackage).order_by(CoinPackage.price_cents)
            )
            return list(result.scalars().all())

    async def create_package(
        self,
        name: str,
        gc_amount: int,
        sc_amount: int,
        price_cents: int,
        is_featured: bool = False,
    ) -> CoinPackage:
        if gc_amount < 0 or sc_amount < 0 or price_cents < 0:
            raise ValidationError(
                "Package amounts and price must be non-negative",
                code=ErrorCode.INVALID_AMOUNT,
            )

        async with self.store.transaction() as uow:
            package = CoinPackage(
                name=name,
                gc_amount=gc_amount,
                sc_amount=sc_amount,
                price_cents=price_cents,
                is_featured=is_featured,
            )
            uow.session.add(package)
            await uow.session.flush()

        logger.info("coin_package_created", package_id=package.id, name=name)
        return package

    async def update_package(
        self,
        package_id: str,
        *,
        name: str | None = None,
        gc_amount: int | None = None,
        sc_amount: int | None = None,
        price_cents: int | None = None,
        is_featured: bool | None = None,
    ) -> CoinPackage:
        """Change a package. Past purchases keep the amounts they were credited."""
        if any(v is not None and v < 0 for v in (gc_amount, sc_amount, price_cents)):
            raise ValidationError(
                "Package amounts and price must be non-negative",
                code=ErrorCode.INVALID_AMOUNT,
            )

        async with self.store.transaction() as uow:
            package = await uow.session.get(CoinPackage, package_id)
            if package is None:
                raise NotFoundError("Package", package_id, ErrorCode.PACKAGE_NOT_FOUND)
            if name is not None:
                package.name = name
            if gc_amount is not None:
                package.gc_amount = gc_amount
            if sc_amount is not None:
                package.sc_amount = sc_amount
            if price_cents is not None:
                package.price_cents = price_cents
            if is_featured is not None:
                package.is_featured = is_featured
            await uow.session.flush()

        logger.info("coin_package_updated", package_id=package_id, name=package.name)
        return package

    async def delete_package(self, package_id: str) -> None:
        """Remove a package from the store. Purchase ledger rows are untouched."""
        async with self.store.transaction() as uow:
            package = await uow.session.get(CoinPackage, package_id)
            if package is None:
                raise NotFoundError("Package", package_id, ErrorCode.PACKAGE_NOT_FOUND)
            await uow.session.delete(package)

        logger.info("coin_package_deleted", package_id=package_id)

    async def purchase_package(
        self,
        player_id: str,
        package_id: str,
        payment_method: str,
    ) -> NewBalance:
        """Credit a coin package.

        Payment is not verified here; the method is only recorded.
        """
        async with self.store.transaction() as uow:
            package = await uow.session.get(CoinPackage, package_id)
            if package is None:
                raise NotFoundError("Package", package_id, ErrorCode.PACKAGE_NOT_FOUND)

            new_balance = await self.settlement.post(
                uow,
                player_id,
                gc_delta=package.gc_amount,
                sc_delta=package.sc_amount,
                entry=LedgerEntry(
                    tx_type=TransactionType.PURCHASE,
                    description=f"Purchased {package.name} via {payment_method}",
                    reference_id=package.id,
                ),
            )

        return new_balance

    # Bonuses

    async def claim_daily_bonus(
        self,
        player_id: str,
        now: datetime | None = None,
    ) -> NewBalance:
        """Credit the daily GC bonus, at most once per 24 hours.

        Raises:
            ConflictError: Already claimed; details carry the next claim time
        """
        now = now or utcnow()
        amount = to_minor(self.site.daily_bonus_gc)

        async with self.store.transaction() as uow:
            player = await uow.lock_player(player_id)

            last_claim = player.last_bonus_claim_at
            if last_claim is not None and now - last_claim < DAILY_BONUS_INTERVAL:
                next_claim = last_claim + DAILY_BONUS_INTERVAL
                raise ConflictError(
                    "Bonus already claimed",
                    code=ErrorCode.ALREADY_CLAIMED,
                    details={"nextClaim": next_claim.isoformat()},
                )

            new_balance = await self.settlement.post(
                uow,
                player_id,
                gc_delta=amount,
                entry=LedgerEntry(
                    tx_type=TransactionType.BONUS,
                    description="Daily Login Bonus",
                ),
            )
            player.last_bonus_claim_at = now
            await uow.session.flush()

        return new_balance

    # Admin

    async def admin_adjust_balance(
        self,
        player_id: str,
        gc_delta: int,
        sc_delta: int,
        admin_id: str,
        reason: str | None = None,
    ) -> NewBalance:
        """Signed balance adjustment by an admin.

        Raises:
            ValidationError: Zero adjustment
            InsufficientBalanceError: Adjustment would make a balance negative
        """
        if gc_delta == 0 and sc_delta == 0:
            raise ValidationError("Adjustment cannot be zero", code=ErrorCode.INVALID_AMOUNT)

        async with self.store.transaction() as uow:
            new_balance = await self.settlement.post(
                uow,
                player_id,
                gc_delta=gc_delta,
                sc_delta=sc_delta,
                entry=LedgerEntry(
                    tx_type=TransactionType.ADMIN_ADJUSTMENT,
                    description=reason or "Admin Balance Adjustment",
                    reference_id=admin_id,
                ),
                require_active=False,
            )

        logger.info(
            "admin_balance_adjusted",
            player_id=player_id,
            admin_id=admin_id,
            gc_delta=gc_delta,
            sc_delta=sc_delta,
        )
        return new_balance

    async def rain(self, gc_amount: int, sc_amount: int, admin_id: str) -> int:
        """Credit every active player and broadcast the announcement.

        Returns:
            Number of players credited
        """
        if gc_amount < 0 or sc_amount < 0 or (gc_amount == 0 and sc_amount == 0):
            raise ValidationError(
                "Rain amounts must be non-negative and not both zero",
                code=ErrorCode.INVALID_AMOUNT,
            )

        async with self.store.transaction() as uow:
            result = await uow.session.execute(
                select(Player.id)
                .where(Player.status == PlayerStatus.ACTIVE)
                .order_by(Player.id)
            )
            player_ids = list(result.scalars().all())

            for player_id in player_ids:
                await self.settlement.post(
                    uow,
                    player_id,
                    gc_delta=gc_amount,
                    sc_delta=sc_amount,
                    entry=LedgerEntry(
                        tx_type=TransactionType.BONUS,
                        description="Rain",
                        reference_id=admin_id,
                    ),
                )

            uow.broadcast(
                "success",
                f"It's Raining! Everyone received {format_coins(gc_amount, 'gc')} "
                f"and {format_coins(sc_amount, 'sc')}!",
            )

        logger.info(
            "rain_completed",
            admin_id=admin_id,
            players=len(player_ids),
            gc_amount=gc_amount,
            sc_amount=sc_amount,
        )
        return len(player_ids)

    # Audit

    async def verify_ledger(self, player_id: str) -> LedgerAudit:
        """Compare stored balances with the sum of all ledger deltas."""
        async with self.store.session() as session:
            player = await session.get(Player, player_id)
            if player is None:
                raise NotFoundError("Player", player_id, ErrorCode.PLAYER_NOT_FOUND)

            gc_sum, sc_sum, count = (
                await session.execute(
                    select(
                        func.coalesce(func.sum(WalletTransaction.gc_delta), 0),
                        func.coalesce(func.sum(WalletTransaction.sc_delta), 0),
                        func.count(WalletTransaction.id),
                    ).where(WalletTransaction.player_id == player_id)
                )
            ).one()

            result = await session.execute(
                select(WalletTransaction).where(WalletTransaction.player_id == player_id)
            )
            tampered = [
                tx.id for tx in result.scalars() if not self.verify_integrity(tx)
            ]

        audit = LedgerAudit(
            player_id=player_id,
            gc_balance=player.gc_balance,
            sc_balance=player.sc_balance,
            gc_ledger_sum=int(gc_sum),
            sc_ledger_sum=int(sc_sum),
            transaction_count=count,
            tampered_transaction_ids=tampered,
        )
        if not audit.is_consistent:
            logger.error("ledger_inconsistent", **audit.to_dict())
        return audit

    @staticmethod
    def verify_integrity(tx: WalletTransaction) -> bool:
        """Verify transaction integrity hash."""
        return SettlementEngine.verify_integrity(tx)
