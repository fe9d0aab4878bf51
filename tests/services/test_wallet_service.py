"""Tests for WalletService: packages, daily bonus, admin tools, history."""

from datetime import timedelta

import pytest

from conftest import make_player
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.player import PlayerStatus
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.utils.errors import (
    ConflictError,
    InsufficientBalanceError,
    NotFoundError,
    ValidationError,
)


class TestPackages:
    @pytest.mark.asyncio
    async def test_purchase_credits_both_currencies(self, services):
        player = await make_player(services, "alice")
        package = await services.wallet.create_package("Starter", 500000, 1000, 999)

        new_balance = await services.wallet.purchase_package(player.id, package.id, "card")

        assert (new_balance.gc_balance, new_balance.sc_balance) == (500000, 1000)
        [tx] = await services.wallet.get_transactions(player.id, tx_type=TransactionType.PURCHASE)
        assert tx.reference_id == package.id
        assert "card" in tx.description

    @pytest.mark.asyncio
    async def test_unknown_package(self, services):
        player = await make_player(services, "bob")
        with pytest.raises(NotFoundError):
            await services.wallet.purchase_package(player.id, "missing", "card")

    @pytest.mark.asyncio
    async def test_list_packages_by_price(self, services):
        await services.wallet.create_package("Big", 100, 0, 4999)
        await services.wallet.create_package("Small", 10, 0, 499)

        packages = await services.wallet.list_packages()

        assert [p.name for p in packages] == ["Small", "Big"]

    @pytest.mark.asyncio
    async def test_update_changes_later_purchases_only(self, services):
        player = await make_player(services, "bob")
        package = await services.wallet.create_package("Starter", 500000, 1000, 999)
        await services.wallet.purchase_package(player.id, package.id, "card")

        updated = await services.wallet.update_package(
            package.id, name="Starter+", sc_amount=2000, is_featured=True
        )
        await services.wallet.purchase_package(player.id, package.id, "card")

        assert (updated.name, updated.gc_amount, updated.sc_amount) == ("Starter+", 500000, 2000)
        assert updated.price_cents == 999
        assert updated.is_featured is True
        history = await services.wallet.get_transactions(player.id)
        assert sorted(tx.sc_delta for tx in history) == [1000, 2000]

    @pytest.mark.asyncio
    async def test_update_rejects_negative_amount(self, services):
        package = await services.wallet.create_package("Starter", 500000, 1000, 999)

        with pytest.raises(ValidationError):
            await services.wallet.update_package(package.id, gc_amount=-1)

    @pytest.mark.asyncio
    async def test_delete_keeps_purchase_history(self, services):
        player = await make_player(services, "carol")
        package = await services.wallet.create_package("Starter", 500000, 1000, 999)
        await services.wallet.purchase_package(player.id, package.id, "card")

        await services.wallet.delete_package(package.id)

        assert await services.wallet.list_packages() == []
        with pytest.raises(NotFoundError):
            await services.wallet.purchase_package(player.id, package.id, "card")
        with pytest.raises(NotFoundError):
            await services.wallet.delete_package(package.id)
        [tx] = await services.wallet.get_transactions(player.id)
        assert tx.reference_id == package.id


class TestDailyBonus:
    @pytest.mark.asyncio
    async def test_once_per_24_hours(self, services, site):
        player = await make_player(services, "carol")
        now = utcnow()

        first = await services.wallet.claim_daily_bonus(player.id, now=now)
        assert first.gc_balance == site.daily_bonus_gc * 100

        with pytest.raises(ConflictError) as exc_info:
            await services.wallet.claim_daily_bonus(player.id, now=now + timedelta(hours=23))
        assert exc_info.value.code == "ALREADY_CLAIMED"
        assert exc_info.value.details["nextClaim"] == (now + timedelta(hours=24)).isoformat()

        second = await services.wallet.claim_daily_bonus(player.id, now=now + timedelta(hours=24))
        assert second.gc_balance == 2 * site.daily_bonus_gc * 100

        claimed = await services.players.get_player(player.id)
        assert claimed.last_bonus_claim_at == now + timedelta(hours=24)


class TestAdminTools:
    @pytest.mark.asyncio
    async def test_signed_adjustment(self, services):
        player = await make_player(services, "dave", gc=1000, sc=1000)

        new_balance = await services.wallet.admin_adjust_balance(
            player.id, -400, 250, admin_id="admin-1", reason="Goodwill"
        )

        assert (new_balance.gc_balance, new_balance.sc_balance) == (600, 1250)
        latest = (await services.wallet.get_transactions(player.id, limit=1))[0]
        assert latest.tx_type == TransactionType.ADMIN_ADJUSTMENT
        assert latest.description == "Goodwill"

    @pytest.mark.asyncio
    async def test_adjustment_below_zero_rejected(self, services):
        player = await make_player(services, "erin", gc=100)

        with pytest.raises(InsufficientBalanceError):
            await services.wallet.admin_adjust_balance(player.id, -101, 0, "admin-1")

        assert await services.wallet.get_balance(player.id) == (100, 0)

    @pytest.mark.asyncio
    async def test_zero_adjustment_rejected(self, services):
        player = await make_player(services, "frank")
        with pytest.raises(ValidationError):
            await services.wallet.admin_adjust_balance(player.id, 0, 0, "admin-1")

    @pytest.mark.asyncio
    async def test_rain_credits_active_players_and_broadcasts(self, services, notifier):
        active = await make_player(services, "grace")
        other = await make_player(services, "heidi")
        disabled = await make_player(services, "ivan")
        await services.players.set_player_status(disabled.id, PlayerStatus.DISABLED, "admin-1")

        credited = await services.wallet.rain(1000, 10, admin_id="admin-1")

        assert credited == 2
        assert await services.wallet.get_balance(active.id) == (1000, 10)
        assert await services.wallet.get_balance(other.id) == (1000, 10)
        assert await services.wallet.get_balance(disabled.id) == (0, 0)
        assert len(notifier.broadcasts) == 1
        assert notifier.broadcasts[0][1].startswith("It's Raining!")

        for player in (active, other):
            assert (await services.wallet.verify_ledger(player.id)).is_consistent

    @pytest.mark.asyncio
    async def test_rain_requires_an_amount(self, services):
        with pytest.raises(ValidationError):
            await services.wallet.rain(0, 0, "admin-1")


class TestHistory:
    @pytest.mark.asyncio
    async def test_transactions_newest_first_with_filter(self, services):
        player = await make_player(services, "judy", gc=1000)
        await services.wallet.claim_daily_bonus(player.id)

        history = await services.wallet.get_transactions(player.id)
        assert [tx.tx_type for tx in history] == [
            TransactionType.BONUS,
            TransactionType.ADMIN_ADJUSTMENT,
        ]

        bonuses = await services.wallet.get_transactions(player.id, tx_type=TransactionType.BONUS)
        assert len(bonuses) == 1

    @pytest.mark.asyncio
    async def test_unknown_player_balance(self, services):
        with pytest.raises(NotFoundError):
            await services.wallet.get_balance("missing")
