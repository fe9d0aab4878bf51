"""Scratch and pull-tab ticket service.

Ticket state machine:
    purchased -> revealed -> claimed
    purchased -> revealed -> saved (winning tickets only)

The outcome is drawn once at purchase and stored; reveal and claim only read
it back. All prices and prizes are SC minor units.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol

from sqlalchemy import func, select

from sweeps_ledger.config import SiteSettings
from sweeps_ledger.game.outcomes import RandomSource, draw_ticket, system_random
from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.player import Currency
from sweeps_ledger.models.ticket import (
    SavedWin,
    TicketKind,
    TicketPurchase,
    TicketStatus,
    TicketType,
)
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.services.settlement import LedgerEntry, SettlementEngine
from sweeps_ledger.utils.db import LedgerStore, UnitOfWork
from sweeps_ledger.utils.errors import (
    ConflictError,
    ErrorCode,
    NotFoundError,
    RateLimitedError,
    ValidationError,
)
from sweeps_ledger.utils.money import format_coins

logger = get_logger(__name__)

RATE_LIMIT_WINDOW = timedelta(seconds=60)

DEFAULT_THEME_NAME = "Lucky Ticket"
DEFAULT_THEME_DESCRIPTION = "Try your luck today!"


@dataclass(frozen=True)
class TicketTheme:
    name: str
    description: str


class ThemeNamer(Protocol):
    """Suggests a name and blurb for a new ticket design."""

    async def suggest(self, kind: TicketKind) -> TicketTheme:
        ...


def theme_image_url(name: str) -> str:
    return f"https://picsum.photos/seed/{name.replace(' ', '-')}/800/600"


class TicketService:
    """Ticket catalog and the purchase/reveal/claim/save flow."""

    def __init__(
        self,
        store: LedgerStore,
        settlement: SettlementEngine,
        site: SiteSettings,
        *,
        namer: ThemeNamer | None = None,
        rng: RandomSource = system_random,
    ) -> None:
        self.store = store
        self.settlement = settlement
        self.site = site
        self.namer = namer
        self.rng = rng

    # =========================================================================
    # Catalog
    # =========================================================================

    async def create_ticket_type(
        self,
        *,
        kind: TicketKind,
        price_sc: int,
        win_probability: float,
        min_prize: int,
        max_prize: int,
        name: str | None = None,
        description: str | None = None,
        remaining_tickets: int | None = None,
    ) -> TicketType:
        """Create a ticket design.

        Without an explicit name the theme namer is asked first, outside of
        any transaction. If it is missing or fails a default theme is used.
        """
        if price_sc <= 0:
            raise ValidationError("Ticket price must be positive", code=ErrorCode.INVALID_AMOUNT)
        if not 0 <= win_probability <= 1:
            raise ValidationError("win_probability must be between 0 and 1")
        if min_prize < 0 or max_prize < min_prize:
            raise ValidationError("Invalid prize range", code=ErrorCode.INVALID_AMOUNT)
        if remaining_tickets is not None and remaining_tickets < 0:
            raise ValidationError("remaining_tickets must be non-negative")

        if not name:
            theme = await self._suggest_theme(kind)
            name = theme.name
            description = description or theme.description

        async with self.store.transaction() as uow:
            ticket_type = TicketType(
                name=name,
                kind=kind,
                description=description,
                price_sc=price_sc,
                win_probability=win_probability,
                min_prize=min_prize,
                max_prize=max_prize,
                remaining_tickets=remaining_tickets,
                image_url=theme_image_url(name),
                is_active=True,
            )
            uow.session.add(ticket_type)
            await uow.session.flush()

        logger.info(
            "ticket_type_created",
            ticket_type_id=ticket_type.id,
            name=name,
            kind=kind.value,
            price_sc=price_sc,
        )
        return ticket_type

    async def _suggest_theme(self, kind: TicketKind) -> TicketTheme:
        if self.namer is None:
            return TicketTheme(DEFAULT_THEME_NAME, DEFAULT_THEME_DESCRIPTION)
        try:
            theme = await self.namer.suggest(kind)
        except Exception as e:
            logger.warning("ticket_theme_suggestion_failed", kind=kind.value, error=str(e))
            return TicketTheme(DEFAULT_THEME_NAME, DEFAULT_THEME_DESCRIPTION)
        return TicketTheme(
            name=theme.name or DEFAULT_THEME_NAME,
            description=theme.description or DEFAULT_THEME_DESCRIPTION,
        )

    async def update_ticket_type(
        self,
        ticket_type_id: str,
        *,
        is_active: bool | None = None,
        price_sc: int | None = None,
        win_probability: float | None = None,
    ) -> TicketType:
        """Toggle activity or change price and odds. Sold tickets keep their outcome."""
        if price_sc is not None and price_sc <= 0:
            raise ValidationError("Ticket price must be positive", code=ErrorCode.INVALID_AMOUNT)
        if win_probability is not None and not 0 <= win_probability <= 1:
            raise ValidationError("win_probability must be between 0 and 1")

        async with self.store.transaction() as uow:
            ticket_type = await self._lock_ticket_type(uow, ticket_type_id)
            if is_active is not None:
                ticket_type.is_active = is_active
            if price_sc is not None:
                ticket_type.price_sc = price_sc
            if win_probability is not None:
                ticket_type.win_probability = win_probability
            await uow.session.flush()

        logger.info(
            "ticket_type_updated",
            ticket_type_id=ticket_type_id,
            is_active=ticket_type.is_active,
            price_sc=ticket_type.price_sc,
            win_probability=ticket_type.win_probability,
        )
        return ticket_type

    async def list_ticket_types(self, active_only: bool = True) -> list[TicketType]:
        query = select(TicketType).order_by(TicketType.created_at.desc())
        if active_only:
            query = query.where(TicketType.is_active.is_(True))
        async with self.store.session() as session:
            result = await session.execute(query)
            return list(result.scalars().all())

    # =========================================================================
    # Purchase flow
    # =========================================================================

    async def purchase(
        self,
        player_id: str,
        ticket_type_id: str,
        now: datetime | None = None,
    ) -> TicketPurchase:
        """Buy a ticket. The outcome is drawn and stored here, once.

        Raises:
            NotFoundError: Unknown or inactive ticket type
            RateLimitedError: Too many purchases in the trailing minute
            ConflictError: Ticket type is sold out
            InsufficientBalanceError: SC balance below the price
        """
        now = now or utcnow()
        limit = self.site.ticket_purchase_limit_per_minute

        async with self.store.transaction() as uow:
            ticket_type = await self._lock_ticket_type(uow, ticket_type_id)
            if not ticket_type.is_active:
                raise NotFoundError("Ticket type", ticket_type_id, ErrorCode.TICKET_TYPE_NOT_FOUND)

            # Serializes concurrent purchases by the same player
            await uow.lock_player(player_id)

            recent = await uow.session.scalar(
                select(func.count())
                .select_from(TicketPurchase)
                .where(
                    TicketPurchase.player_id == player_id,
                    TicketPurchase.created_at > now - RATE_LIMIT_WINDOW,
                )
            )
            if recent >= limit:
                logger.warning(
                    "ticket_purchase_rate_limited",
                    player_id=player_id,
                    recent=recent,
                    limit=limit,
                )
                raise RateLimitedError(limit, int(RATE_LIMIT_WINDOW.total_seconds()))

            if ticket_type.remaining_tickets is not None:
                if ticket_type.remaining_tickets <= 0:
                    raise ConflictError(
                        "Ticket type is sold out",
                        code=ErrorCode.SOLD_OUT,
                        details={"ticketTypeId": ticket_type_id},
                    )
                ticket_type.remaining_tickets -= 1

            draw = draw_ticket(
                ticket_type.win_probability,
                ticket_type.min_prize,
                ticket_type.max_prize,
                self.rng,
            )

            purchase = TicketPurchase(
                player_id=player_id,
                ticket_type_id=ticket_type.id,
                cost_sc=ticket_type.price_sc,
                status=TicketStatus.PURCHASED,
                is_win=draw.is_win,
                win_amount=draw.win_amount,
                outcome=draw.details,
                created_at=now,
                updated_at=now,
            )
            uow.session.add(purchase)
            await uow.session.flush()

            await self.settlement.settle(
                uow,
                player_id,
                Currency.SC,
                debit=ticket_type.price_sc,
                entry=LedgerEntry(
                    tx_type=TransactionType.TICKET_PURCHASE,
                    description=f"Bought {ticket_type.name} ticket",
                    reference_id=purchase.id,
                ),
                wagered=ticket_type.price_sc,
            )

        logger.info(
            "ticket_purchased",
            player_id=player_id,
            purchase_id=purchase.id,
            ticket_type_id=ticket_type_id,
            cost_sc=purchase.cost_sc,
        )
        return purchase

    async def reveal(self, player_id: str, purchase_id: str) -> TicketPurchase:
        """Disclose the stored outcome. Only valid from ``purchased``."""
        async with self.store.transaction() as uow:
            purchase = await self._lock_purchase(uow, player_id, purchase_id)
            self._require_status(purchase, TicketStatus.PURCHASED)
            purchase.status = TicketStatus.REVEALED
            await uow.session.flush()

        return purchase

    async def claim(self, player_id: str, purchase_id: str) -> TicketPurchase:
        """Close out a revealed ticket, crediting the prize if it won."""
        async with self.store.transaction() as uow:
            purchase = await self._lock_purchase(uow, player_id, purchase_id)
            self._require_status(purchase, TicketStatus.REVEALED)

            if purchase.is_win and purchase.win_amount > 0:
                await self.settlement.settle(
                    uow,
                    player_id,
                    Currency.SC,
                    credit=purchase.win_amount,
                    entry=LedgerEntry(
                        tx_type=TransactionType.TICKET_WIN,
                        description=(
                            f"Won {format_coins(purchase.win_amount, 'sc')} on ticket"
                        ),
                        reference_id=purchase.id,
                    ),
                )

            purchase.status = TicketStatus.CLAIMED
            await uow.session.flush()

        logger.info(
            "ticket_claimed",
            player_id=player_id,
            purchase_id=purchase_id,
            win_amount=purchase.win_amount,
        )
        return purchase

    async def save(self, player_id: str, purchase_id: str) -> SavedWin:
        """Keep a revealed winning ticket; the prize is claimed later."""
        async with self.store.transaction() as uow:
            purchase = await self._lock_purchase(uow, player_id, purchase_id)
            self._require_status(purchase, TicketStatus.REVEALED)
            if not purchase.is_win:
                raise ConflictError(
                    "Only winning tickets can be saved",
                    code=ErrorCode.INVALID_STATE,
                    details={"purchaseId": purchase_id},
                )

            ticket_type = await uow.session.get(TicketType, purchase.ticket_type_id)
            purchase.status = TicketStatus.SAVED
            saved = SavedWin(
                player_id=player_id,
                purchase_id=purchase.id,
                ticket_name=ticket_type.name,
                amount_won=purchase.win_amount,
                image_url=ticket_type.image_url,
            )
            uow.session.add(saved)
            await uow.session.flush()

        logger.info(
            "ticket_saved",
            player_id=player_id,
            purchase_id=purchase_id,
            saved_win_id=saved.id,
        )
        return saved

    async def claim_saved_win(
        self,
        player_id: str,
        saved_win_id: str,
        now: datetime | None = None,
    ) -> SavedWin:
        """Credit a saved win exactly once."""
        async with self.store.transaction() as uow:
            result = await uow.session.execute(
                uow.for_update(
                    select(SavedWin).where(
                        SavedWin.id == saved_win_id,
                        SavedWin.player_id == player_id,
                    )
                ).execution_options(populate_existing=True)
            )
            saved = result.scalar_one_or_none()
            if saved is None:
                raise NotFoundError("Saved win", saved_win_id, ErrorCode.PURCHASE_NOT_FOUND)
            if saved.claimed:
                raise ConflictError(
                    "Saved win already claimed",
                    code=ErrorCode.ALREADY_CLAIMED,
                    details={"savedWinId": saved_win_id},
                )

            await self.settlement.settle(
                uow,
                player_id,
                Currency.SC,
                credit=saved.amount_won,
                entry=LedgerEntry(
                    tx_type=TransactionType.TICKET_WIN,
                    description=f"Claimed saved win from {saved.ticket_name}",
                    reference_id=saved.purchase_id,
                ),
            )
            saved.claimed = True
            saved.claimed_at = now or utcnow()
            await uow.session.flush()

        return saved

    async def list_saved_wins(self, player_id: str) -> list[SavedWin]:
        """Unclaimed saved wins, newest first."""
        async with self.store.session() as session:
            result = await session.execute(
                select(SavedWin)
                .where(SavedWin.player_id == player_id, SavedWin.claimed.is_(False))
                .order_by(SavedWin.created_at.desc())
            )
            return list(result.scalars().all())

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    async def _lock_ticket_type(uow: UnitOfWork, ticket_type_id: str) -> TicketType:
        result = await uow.session.execute(
            uow.for_update(select(TicketType).where(TicketType.id == ticket_type_id))
            .execution_options(populate_existing=True)
        )
        ticket_type = result.scalar_one_or_none()
        if ticket_type is None:
            raise NotFoundError("Ticket type", ticket_type_id, ErrorCode.TICKET_TYPE_NOT_FOUND)
        return ticket_type

    @staticmethod
    async def _lock_purchase(
        uow: UnitOfWork, player_id: str, purchase_id: str
    ) -> TicketPurchase:
        result = await uow.session.execute(
            uow.for_update(
                select(TicketPurchase).where(
                    TicketPurchase.id == purchase_id,
                    TicketPurchase.player_id == player_id,
                )
            ).execution_options(populate_existing=True)
        )
        purchase = result.scalar_one_or_none()
        if purchase is None:
            raise NotFoundError("Purchase", purchase_id, ErrorCode.PURCHASE_NOT_FOUND)
        return purchase

    @staticmethod
    def _require_status(purchase: TicketPurchase, expected: TicketStatus) -> None:
        if purchase.status != expected:
            raise ConflictError(
                f"Ticket is {purchase.status.value}, expected {expected.value}",
                code=ErrorCode.INVALID_STATE,
                details={"purchaseId": purchase.id, "status": purchase.status.value},
            )
