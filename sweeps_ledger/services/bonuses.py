"""Promotional bonus catalog and player claims.

Admins define bonuses. Players claim them by id or by promo code. A claim
records a wagering target (``reward_sc * wagering_requirement``) and an
expiry. Loyalty and free-spins bonuses credit their GC/SC reward in the
same transaction as the claim.
"""

from datetime import datetime, timedelta

from sqlalchemy import select

from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.bonus import (
    INSTANT_CREDIT_TYPES,
    Bonus,
    BonusStatus,
    BonusType,
    PlayerBonus,
    PlayerBonusStatus,
)
from sweeps_ledger.models.player import PlayerStatus
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.services.settlement import LedgerEntry, SettlementEngine
from sweeps_ledger.utils.db import LedgerStore, UnitOfWork
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from sweeps_ledger.utils.money import format_coins

logger = get_logger(__name__)


def _check_amounts(**amounts: int | None) -> None:
    negative = [name for name, value in amounts.items() if value is not None and value < 0]
    if negative:
        raise ValidationError(
            "Bonus amounts must be non-negative",
            code=ErrorCode.INVALID_AMOUNT,
            details={"fields": negative},
        )


class BonusService:
    def __init__(self, store: LedgerStore, settlement: SettlementEngine) -> None:
        self.store = store
        self.settlement = settlement

    # =========================================================================
    # Catalog (admin)
    # =========================================================================

    async def create_bonus(
        self,
        *,
        name: str,
        bonus_type: BonusType,
        description: str | None = None,
        code: str | None = None,
        reward_gc: int = 0,
        reward_sc: int = 0,
        min_deposit: int = 0,
        wagering_requirement: int = 0,
        game_eligibility: list[str] | None = None,
        max_win: int | None = None,
        expiration_days: int | None = None,
    ) -> Bonus:
        """Add a bonus to the catalog.

        Raises:
            ValidationError: Negative amount, multiplier or expiry
            ConflictError: Promo code already used by another bonus
        """
        _check_amounts(
            reward_gc=reward_gc,
            reward_sc=reward_sc,
            min_deposit=min_deposit,
            wagering_requirement=wagering_requirement,
            max_win=max_win,
            expiration_days=expiration_days,
        )

        async with self.store.transaction() as uow:
            if code is not None:
                await self._ensure_code_free(uow, code)
            bonus = Bonus(
                name=name,
                bonus_type=bonus_type,
                description=description,
                code=code,
                reward_gc=reward_gc,
                reward_sc=reward_sc,
                min_deposit=min_deposit,
                wagering_requirement=wagering_requirement,
                game_eligibility=game_eligibility,
                max_win=max_win,
                expiration_days=expiration_days,
                status=BonusStatus.ACTIVE,
            )
            uow.session.add(bonus)
            await uow.session.flush()

        logger.info(
            "bonus_created",
            bonus_id=bonus.id,
            bonus_type=bonus_type.value,
            reward_gc=reward_gc,
            reward_sc=reward_sc,
        )
        return bonus

    async def update_bonus(
        self,
        bonus_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        code: str | None = None,
        reward_gc: int | None = None,
        reward_sc: int | None = None,
        min_deposit: int | None = None,
        wagering_requirement: int | None = None,
        game_eligibility: list[str] | None = None,
        max_win: int | None = None,
        expiration_days: int | None = None,
        status: BonusStatus | None = None,
    ) -> Bonus:
        """Change a bonus. Existing claims keep their target and expiry.

        Only ``active`` and ``paused`` can be set here; use ``delete_bonus``
        to retire a bonus.
        """
        _check_amounts(
            reward_gc=reward_gc,
            reward_sc=reward_sc,
            min_deposit=min_deposit,
            wagering_requirement=wagering_requirement,
            max_win=max_win,
            expiration_days=expiration_days,
        )
        if status == BonusStatus.DELETED:
            raise ValidationError("Use delete to retire a bonus")

        async with self.store.transaction() as uow:
            bonus = await self._lock_bonus(uow, bonus_id)
            if code is not None and code != bonus.code:
                await self._ensure_code_free(uow, code)

            changes = {
                "name": name,
                "description": description,
                "code": code,
                "reward_gc": reward_gc,
                "reward_sc": reward_sc,
                "min_deposit": min_deposit,
                "wagering_requirement": wagering_requirement,
                "game_eligibility": game_eligibility,
                "max_win": max_win,
                "expiration_days": expiration_days,
                "status": status,
            }
            for field, value in changes.items():
                if value is not None:
                    setattr(bonus, field, value)
            await uow.session.flush()

        logger.info("bonus_updated", bonus_id=bonus_id, status=bonus.status.value)
        return bonus

    async def delete_bonus(self, bonus_id: str) -> None:
        """Soft delete. Claims already made are left as they are."""
        async with self.store.transaction() as uow:
            bonus = await self._lock_bonus(uow, bonus_id)
            bonus.status = BonusStatus.DELETED

        logger.info("bonus_deleted", bonus_id=bonus_id)

    async def list_bonuses(self) -> list[Bonus]:
        """Every bonus that has not been deleted, newest first."""
        query = (
            select(Bonus)
            .where(Bonus.status != BonusStatus.DELETED)
            .order_by(Bonus.created_at.desc(), Bonus.id)
        )
        async with self.store.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    async def list_available(self) -> list[Bonus]:
        query = (
            select(Bonus)
            .where(Bonus.status == BonusStatus.ACTIVE)
            .order_by(Bonus.created_at.desc(), Bonus.id)
        )
        async with self.store.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    # =========================================================================
    # Claims (player)
    # =========================================================================

    async def claim(
        self,
        player_id: str,
        *,
        bonus_id: str | None = None,
        code: str | None = None,
        now: datetime | None = None,
    ) -> PlayerBonus:
        """Claim an active bonus by id or promo code.

        A player holds at most one active claim per bonus. A claim past its
        expiry is marked ``expired`` here and no longer blocks a new one.

        Raises:
            ValidationError: Neither bonus_id nor code given
            NotFoundError: Unknown player, or no active bonus matches
            ConflictError: Player disabled, or the bonus is already active
        """
        if bonus_id is None and not code:
            raise ValidationError("Provide a bonus id or a promo code")
        now = now or utcnow()

        async with self.store.transaction() as uow:
            player = await uow.lock_player(player_id)
            if player.status != PlayerStatus.ACTIVE:
                raise ConflictError(
                    "Player account is disabled",
                    code=ErrorCode.INVALID_STATE,
                    details={"playerId": player_id},
                )

            query = select(Bonus).where(Bonus.status == BonusStatus.ACTIVE)
            if bonus_id is not None:
                query = query.where(Bonus.id == bonus_id)
            else:
                query = query.where(Bonus.code == code)
            bonus = (await uow.session.execute(query)).scalar_one_or_none()
            if bonus is None:
                raise NotFoundError("Bonus", bonus_id or code, ErrorCode.BONUS_NOT_FOUND)

            result = await uow.session.execute(
                select(PlayerBonus).where(
                    PlayerBonus.player_id == player_id,
                    PlayerBonus.bonus_id == bonus.id,
                    PlayerBonus.status == PlayerBonusStatus.ACTIVE,
                )
            )
            for existing in result.scalars().all():
                if not existing.is_expired(now):
                    raise ConflictError(
                        "Bonus already active",
                        code=ErrorCode.BONUS_ALREADY_ACTIVE,
                        details={"bonusId": bonus.id, "playerBonusId": existing.id},
                    )
                existing.status = PlayerBonusStatus.EXPIRED

            claim = PlayerBonus(
                player_id=player_id,
                bonus_id=bonus.id,
                status=PlayerBonusStatus.ACTIVE,
                wagering_target=bonus.reward_sc * bonus.wagering_requirement,
                expires_at=(
                    now + timedelta(days=bonus.expiration_days)
                    if bonus.expiration_days is not None
                    else None
                ),
                claimed_at=now,
            )
            uow.session.add(claim)
            await uow.session.flush()

            credited = bonus.bonus_type in INSTANT_CREDIT_TYPES and (
                bonus.reward_gc > 0 or bonus.reward_sc > 0
            )
            if credited:
                await self.settlement.post(
                    uow,
                    player_id,
                    gc_delta=bonus.reward_gc,
                    sc_delta=bonus.reward_sc,
                    entry=LedgerEntry(
                        tx_type=TransactionType.BONUS,
                        description=f"Claimed bonus: {bonus.name}",
                        reference_id=claim.id,
                    ),
                )
                uow.notify(
                    player_id,
                    "success",
                    f"Bonus claimed: {format_coins(bonus.reward_gc, 'gc')} and "
                    f"{format_coins(bonus.reward_sc, 'sc')}",
                )

        logger.info(
            "bonus_claimed",
            player_id=player_id,
            bonus_id=bonus.id,
            player_bonus_id=claim.id,
            wagering_target=claim.wagering_target,
            credited=credited,
        )
        return claim

    async def list_player_bonuses(self, player_id: str) -> list[tuple[PlayerBonus, Bonus]]:
        """A player's claims with their bonus, most recent first."""
        query = (
            select(PlayerBonus, Bonus)
            .join(Bonus, Bonus.id == PlayerBonus.bonus_id)
            .where(PlayerBonus.player_id == player_id)
            .order_by(PlayerBonus.claimed_at.desc(), PlayerBonus.id)
        )
        async with self.store.session() as session:
            result = await session.execute(query)
            return [(claim, bonus) for claim, bonus in result.all()]

    # =========================================================================
    # Helpers
    # =========================================================================

    async def _lock_bonus(self, uow: UnitOfWork, bonus_id: str) -> Bonus:
        result = await uow.session.execute(
            uow.for_update(
                select(Bonus).where(
                    Bonus.id == bonus_id, Bonus.status != BonusStatus.DELETED
                )
            ).execution_options(populate_existing=True)
        )
        bonus = result.scalar_one_or_none()
        if bonus is None:
            raise NotFoundError("Bonus", bonus_id, ErrorCode.BONUS_NOT_FOUND)
        return bonus

    async def _ensure_code_free(self, uow: UnitOfWork, code: str) -> None:
        taken = await uow.session.scalar(select(Bonus.id).where(Bonus.code == code))
        if taken is not None:
            raise ConflictError(
                "Promo code already in use",
                code=ErrorCode.ALREADY_EXISTS,
                details={"code": code},
            )
