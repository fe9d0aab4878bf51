"""Player accounts: registration with referral, KYC and account status."""

import secrets
import string

from sqlalchemy import or_, select

from sweeps_ledger.config import SiteSettings
from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.player import KycStatus, Player, PlayerRole, PlayerStatus
from sweeps_ledger.models.social import Friendship, FriendshipStatus
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.services.settlement import LedgerEntry, SettlementEngine
from sweeps_ledger.utils.db import LedgerStore, UnitOfWork
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from sweeps_ledger.utils.money import to_minor

logger = get_logger(__name__)

REFERRAL_SUFFIX_LENGTH = 4
_REFERRAL_ALPHABET = string.ascii_lowercase + string.digits


def generate_referral_code(username: str) -> str:
    """Lowercased username prefix plus a short random suffix."""
    prefix = "".join(c for c in username.lower() if c.isalnum())[:14]
    suffix = "".join(
        secrets.choice(_REFERRAL_ALPHABET) for _ in range(REFERRAL_SUFFIX_LENGTH)
    )
    return f"{prefix}{suffix}"


class PlayerService:
    """Player registration and account administration."""

    def __init__(
        self,
        store: LedgerStore,
        settlement: SettlementEngine,
        site: SiteSettings,
    ) -> None:
        self.store = store
        self.settlement = settlement
        self.site = site

    async def register(
        self,
        username: str,
        email: str,
        referral_code: str | None = None,
        role: PlayerRole = PlayerRole.PLAYER,
    ) -> Player:
        """Create a player and credit the signup bonus.

        With a valid referral code, referrer and new player both receive the
        referral bonus and become friends, in the same transaction. An
        unknown referral code is ignored.

        Raises:
            ValidationError: Missing username or email
            ConflictError: Username or email already taken
        """
        username = username.strip()
        email = email.strip().lower()
        if not username or not email:
            raise ValidationError("Username and email are required")

        signup_gc = to_minor(self.site.signup_bonus_gc)
        signup_sc = to_minor(self.site.signup_bonus_sc)
        referral_gc = to_minor(self.site.referral_bonus_gc)
        referral_sc = to_minor(self.site.referral_bonus_sc)

        async with self.store.transaction() as uow:
            session = uow.session

            existing = await session.scalar(
                select(Player.id).where(
                    or_(Player.username == username, Player.email == email)
                )
            )
            if existing is not None:
                raise ConflictError(
                    "Email or username already exists",
                    code=ErrorCode.ALREADY_EXISTS,
                )

            referrer_id = None
            if referral_code:
                referrer_id = await session.scalar(
                    select(Player.id).where(Player.referral_code == referral_code)
                )
                if referrer_id is None:
                    logger.warning("unknown_referral_code", referral_code=referral_code)

            player = Player(
                username=username,
                email=email,
                role=role,
                status=PlayerStatus.ACTIVE,
                kyc_status=KycStatus.UNVERIFIED,
                gc_balance=0,
                sc_balance=0,
                total_wagered=0,
                referral_code=await self._unique_referral_code(uow, username),
                referred_by_id=referrer_id,
            )
            session.add(player)
            await session.flush()

            if signup_gc or signup_sc:
                await self.settlement.post(
                    uow,
                    player.id,
                    gc_delta=signup_gc,
                    sc_delta=signup_sc,
                    entry=LedgerEntry(
                        tx_type=TransactionType.BONUS,
                        description="Signup bonus",
                    ),
                )

            if referrer_id is not None:
                if referral_gc or referral_sc:
                    # Lock order by id keeps concurrent referrals deadlock-free
                    for recipient, description in sorted(
                        (
                            (referrer_id, f"Referral bonus for inviting {username}"),
                            (player.id, "Referral bonus for accepting invite"),
                        )
                    ):
                        await self.settlement.post(
                            uow,
                            recipient,
                            gc_delta=referral_gc,
                            sc_delta=referral_sc,
                            entry=LedgerEntry(
                                tx_type=TransactionType.REFERRAL,
                                description=description,
                                reference_id=player.id if recipient == referrer_id else referrer_id,
                            ),
                            require_active=False,
                        )

                session.add(
                    Friendship(
                        requester_id=referrer_id,
                        addressee_id=player.id,
                        status=FriendshipStatus.ACCEPTED,
                        bonus_paid=True,
                    )
                )
                await session.flush()

            await session.refresh(player)

        logger.info(
            "player_registered",
            player_id=player.id,
            username=username,
            referred_by=referrer_id,
        )
        return player

    async def _unique_referral_code(self, uow: UnitOfWork, username: str) -> str:
        while True:
            code = generate_referral_code(username)
            taken = await uow.session.scalar(
                select(Player.id).where(Player.referral_code == code)
            )
            if taken is None:
                return code

    async def get_player(self, player_id: str) -> Player:
        async with self.store.session() as session:
            player = await session.get(Player, player_id)
        if player is None:
            raise NotFoundError("Player", player_id, ErrorCode.PLAYER_NOT_FOUND)
        return player

    async def list_players(self, limit: int = 50, offset: int = 0) -> list[Player]:
        async with self.store.session() as session:
            result = await session.execute(
                select(Player).order_by(Player.created_at.desc()).offset(offset).limit(limit)
            )
            return list(result.scalars().all())

    # KYC

    async def request_kyc(self, player_id: str) -> Player:
        """Submit for verification: unverified or rejected -> pending."""
        async with self.store.transaction() as uow:
            player = await uow.lock_player(player_id)
            if player.kyc_status not in (KycStatus.UNVERIFIED, KycStatus.REJECTED):
                raise ConflictError(
                    f"KYC is already {player.kyc_status.value}",
                    code=ErrorCode.INVALID_STATE,
                    details={"kycStatus": player.kyc_status.value},
                )
            player.kyc_status = KycStatus.PENDING
            await uow.session.flush()

        logger.info("kyc_requested", player_id=player_id)
        return player

    async def set_kyc_status(
        self, player_id: str, status: KycStatus, admin_id: str
    ) -> Player:
        async with self.store.transaction() as uow:
            player = await uow.lock_player(player_id)
            previous = player.kyc_status
            player.kyc_status = status
            await uow.session.flush()

            if status == KycStatus.VERIFIED:
                uow.notify(player_id, "success", "Your identity has been verified.")
            elif status == KycStatus.REJECTED:
                uow.notify(player_id, "error", "Your identity verification was rejected.")

        logger.info(
            "kyc_status_changed",
            player_id=player_id,
            admin_id=admin_id,
            from_status=previous.value,
            to_status=status.value,
        )
        return player

    async def set_player_status(
        self, player_id: str, status: PlayerStatus, admin_id: str
    ) -> Player:
        """Enable or disable an account. Disabled players cannot wager."""
        async with self.store.transaction() as uow:
            player = await uow.lock_player(player_id)
            player.status = status
            await uow.session.flush()

        logger.info(
            "player_status_changed",
            player_id=player_id,
            admin_id=admin_id,
            status=status.value,
        )
        return player
