"""Tests for friend requests and the friendship bonus."""

import pytest

from conftest import make_player
from sweeps_ledger.models.social import FriendshipStatus
from sweeps_ledger.models.wallet import TransactionType
from sweeps_ledger.utils.errors import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)


class TestFriendRequests:
    @pytest.mark.asyncio
    async def test_accept_pays_both_once(self, services, site, notifier):
        alice = await make_player(services, "alice")
        bob = await make_player(services, "bob")

        request = await services.social.send_request(alice.id, bob.id)
        assert request.status == FriendshipStatus.PENDING
        assert notifier.messages_for(bob.id)[-1][0] == "friend_request"

        accepted = await services.social.accept(bob.id, request.id)

        assert accepted.status == FriendshipStatus.ACCEPTED
        assert accepted.bonus_paid is True
        expected = (site.referral_bonus_gc * 100, site.referral_bonus_sc * 100)
        assert await services.wallet.get_balance(alice.id) == expected
        assert await services.wallet.get_balance(bob.id) == expected
        assert notifier.messages_for(alice.id)[-1][0] == "friend_accepted"

        with pytest.raises(ConflictError):
            await services.social.accept(bob.id, request.id)
        assert await services.wallet.get_balance(alice.id) == expected

        referrals = await services.wallet.get_transactions(
            alice.id, tx_type=TransactionType.REFERRAL
        )
        assert len(referrals) == 1

    @pytest.mark.asyncio
    async def test_only_addressee_accepts(self, services):
        alice = await make_player(services, "alice")
        bob = await make_player(services, "bob")
        request = await services.social.send_request(alice.id, bob.id)

        with pytest.raises(PermissionDeniedError):
            await services.social.accept(alice.id, request.id)

    @pytest.mark.asyncio
    async def test_duplicate_in_either_direction(self, services):
        alice = await make_player(services, "alice")
        bob = await make_player(services, "bob")
        await services.social.send_request(alice.id, bob.id)

        with pytest.raises(ConflictError):
            await services.social.send_request(alice.id, bob.id)
        with pytest.raises(ConflictError):
            await services.social.send_request(bob.id, alice.id)

    @pytest.mark.asyncio
    async def test_self_and_unknown(self, services):
        alice = await make_player(services, "alice")

        with pytest.raises(ValidationError):
            await services.social.send_request(alice.id, alice.id)
        with pytest.raises(NotFoundError):
            await services.social.send_request(alice.id, "missing")

    @pytest.mark.asyncio
    async def test_reject_removes_request(self, services):
        alice = await make_player(services, "alice")
        bob = await make_player(services, "bob")
        carol = await make_player(services, "carol")
        request = await services.social.send_request(alice.id, bob.id)

        with pytest.raises(PermissionDeniedError):
            await services.social.reject(carol.id, request.id)

        await services.social.reject(bob.id, request.id)

        assert await services.social.list_friends(alice.id) == []
        with pytest.raises(NotFoundError):
            await services.social.accept(bob.id, request.id)
        # A rejected request can be sent again
        await services.social.send_request(alice.id, bob.id)
        assert await services.wallet.get_balance(alice.id) == (0, 0)

    @pytest.mark.asyncio
    async def test_list_friends_both_directions(self, services):
        alice = await make_player(services, "alice")
        bob = await make_player(services, "bob")
        carol = await make_player(services, "carol")
        outgoing = await services.social.send_request(alice.id, bob.id)
        incoming = await services.social.send_request(carol.id, alice.id)
        await services.social.accept(bob.id, outgoing.id)

        entries = {e.friendship_id: e for e in await services.social.list_friends(alice.id)}

        assert entries[outgoing.id].username == "bob"
        assert entries[outgoing.id].outgoing is True
        assert entries[outgoing.id].status == FriendshipStatus.ACCEPTED
        assert entries[incoming.id].username == "carol"
        assert entries[incoming.id].outgoing is False
        assert entries[incoming.id].status == FriendshipStatus.PENDING
