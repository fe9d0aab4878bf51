"""Friend requests and the one-time friendship bonus."""

from dataclasses import dataclass

from sqlalchemy import and_, or_, select

from sweeps_ledger.config import SiteSettings
from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.player import Player
from sweeps_ledger.models.social import Friendship, FriendshipStatus
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.services.settlement import LedgerEntry, SettlementEngine
from sweeps_ledger.utils.db import LedgerStore, UnitOfWork
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from sweeps_ledger.utils.money import to_minor

logger = get_logger(__name__)


@dataclass(frozen=True)
class FriendEntry:
    friendship_id: str
    player_id: str
    username: str
    status: FriendshipStatus
    outgoing: bool


class SocialService:
    def __init__(
        self,
        store: LedgerStore,
        settlement: SettlementEngine,
        site: SiteSettings,
    ) -> None:
        self.store = store
        self.settlement = settlement
        self.site = site

    async def send_request(self, player_id: str, friend_id: str) -> Friendship:
        """Send a friend request.

        Raises:
            ValidationError: Request to self
            NotFoundError: Unknown addressee
            ConflictError: A request or friendship exists in either direction
        """
        if player_id == friend_id:
            raise ValidationError("Cannot send a friend request to yourself")

        async with self.store.transaction() as uow:
            session = uow.session
            if await session.get(Player, friend_id) is None:
                raise NotFoundError("Player", friend_id, ErrorCode.PLAYER_NOT_FOUND)

            existing = await session.scalar(
                select(Friendship.id).where(
                    or_(
                        and_(
                            Friendship.requester_id == player_id,
                            Friendship.addressee_id == friend_id,
                        ),
                        and_(
                            Friendship.requester_id == friend_id,
                            Friendship.addressee_id == player_id,
                        ),
                    )
                )
            )
            if existing is not None:
                raise ConflictError(
                    "Friend request already sent or exists",
                    code=ErrorCode.ALREADY_EXISTS,
                    details={"friendshipId": existing},
                )

            friendship = Friendship(
                requester_id=player_id,
                addressee_id=friend_id,
                status=FriendshipStatus.PENDING,
                bonus_paid=False,
            )
            session.add(friendship)
            await session.flush()

            uow.notify(friend_id, "friend_request", "You have a new friend request.")

        logger.info(
            "friend_request_sent",
            friendship_id=friendship.id,
            requester_id=player_id,
            addressee_id=friend_id,
        )
        return friendship

    async def accept(self, player_id: str, friendship_id: str) -> Friendship:
        """Accept a pending request addressed to ``player_id``.

        Both players receive the referral bonus the first time the pair
        becomes friends; ``bonus_paid`` guards against paying twice.
        """
        async with self.store.transaction() as uow:
            friendship = await self._lock_friendship(uow, friendship_id)
            if friendship.addressee_id != player_id:
                raise PermissionDeniedError(
                    "Only the addressee can accept a friend request",
                    details={"friendshipId": friendship_id},
                )
            if friendship.status != FriendshipStatus.PENDING:
                raise ConflictError(
                    "Friend request is not pending",
                    code=ErrorCode.INVALID_STATE,
                    details={"status": friendship.status.value},
                )

            friendship.status = FriendshipStatus.ACCEPTED

            if not friendship.bonus_paid:
                await self._pay_friendship_bonus(uow, friendship)
                friendship.bonus_paid = True

            await uow.session.flush()
            uow.notify(friendship.requester_id, "friend_accepted", "Your friend request was accepted.")

        logger.info(
            "friend_request_accepted",
            friendship_id=friendship_id,
            requester_id=friendship.requester_id,
            addressee_id=friendship.addressee_id,
        )
        return friendship

    async def _pay_friendship_bonus(self, uow: UnitOfWork, friendship: Friendship) -> None:
        gc = to_minor(self.site.referral_bonus_gc)
        sc = to_minor(self.site.referral_bonus_sc)
        if not gc and not sc:
            return

        pair = sorted(
            (
                (friendship.requester_id, friendship.addressee_id),
                (friendship.addressee_id, friendship.requester_id),
            )
        )
        for recipient, other in pair:
            await self.settlement.post(
                uow,
                recipient,
                gc_delta=gc,
                sc_delta=sc,
                entry=LedgerEntry(
                    tx_type=TransactionType.REFERRAL,
                    description="Friendship bonus",
                    reference_id=other,
                ),
                require_active=False,
            )

    async def reject(self, player_id: str, friendship_id: str) -> None:
        """Reject (addressee) or cancel (requester). The row is deleted."""
        async with self.store.transaction() as uow:
            friendship = await self._lock_friendship(uow, friendship_id)
            if player_id not in (friendship.requester_id, friendship.addressee_id):
                raise PermissionDeniedError(
                    "Not a party to this friend request",
                    details={"friendshipId": friendship_id},
                )
            await uow.session.delete(friendship)
            await uow.session.flush()

        logger.info(
            "friend_request_removed",
            friendship_id=friendship_id,
            removed_by=player_id,
        )

    async def list_friends(self, player_id: str) -> list[FriendEntry]:
        """Friends and pending requests in both directions."""
        async with self.store.session() as session:
            result = await session.execute(
                select(Friendship).where(
                    or_(
                        Friendship.requester_id == player_id,
                        Friendship.addressee_id == player_id,
                    )
                )
            )
            friendships = list(result.scalars().all())

            other_ids = {
                f.addressee_id if f.requester_id == player_id else f.requester_id
                for f in friendships
            }
            names = {}
            if other_ids:
                rows = await session.execute(
                    select(Player.id, Player.username).where(Player.id.in_(other_ids))
                )
                names = dict(rows.all())

        entries = []
        for f in friendships:
            outgoing = f.requester_id == player_id
            other = f.addressee_id if outgoing else f.requester_id
            entries.append(
                FriendEntry(
                    friendship_id=f.id,
                    player_id=other,
                    username=names.get(other, ""),
                    status=f.status,
                    outgoing=outgoing,
                )
            )
        return entries

    @staticmethod
    async def _lock_friendship(uow: UnitOfWork, friendship_id: str) -> Friendship:
        result = await uow.session.execute(
            uow.for_update(select(Friendship).where(Friendship.id == friendship_id))
            .execution_options(populate_existing=True)
        )
        friendship = result.scalar_one_or_none()
        if friendship is None:
            raise NotFoundError("Friendship", friendship_id, ErrorCode.FRIENDSHIP_NOT_FOUND)
        return friendship
