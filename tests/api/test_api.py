"""HTTP tests for the ledger API.

The app lifespan is not run; the test ledger services are attached to
``app.state`` directly.
"""

from collections.abc import AsyncGenerator
from datetime import timedelta

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from conftest import make_game, make_player
from sweeps_ledger.config import Settings
from sweeps_ledger.main import create_app
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.bonus import BonusType
from sweeps_ledger.models.player import KycStatus, PlayerRole
from sweeps_ledger.models.ticket import TicketKind


@pytest_asyncio.fixture
async def client(services) -> AsyncGenerator[AsyncClient, None]:
    app = create_app(Settings(app_env="test", tournament_scheduler_enabled=False))
    app.state.services = services
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def as_player(player_id: str) -> dict[str, str]:
    return {"X-Player-Id": player_id}


def as_admin(admin_id: str = "admin-1") -> dict[str, str]:
    return {"X-Player-Id": admin_id, "X-Player-Role": PlayerRole.ADMIN.value}


class TestIdentity:
    @pytest.mark.asyncio
    async def test_missing_player_header(self, client):
        response = await client.get("/api/v1/wallet/balance")

        assert response.status_code == 401
        body = response.json()
        assert body["error"]["code"] == "AUTH_REQUIRED"
        assert body["traceId"]

    @pytest.mark.asyncio
    async def test_admin_route_requires_admin_role(self, client):
        response = await client.get("/api/v1/admin/players", headers=as_player("p-1"))

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "FORBIDDEN"

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get(
            "/api/v1/games", headers={"X-Request-ID": "req-123"}
        )

        assert response.status_code == 200
        assert response.headers["X-Request-ID"] == "req-123"


class TestWalletApi:
    @pytest.mark.asyncio
    async def test_register_and_balance(self, client):
        response = await client.post(
            "/api/v1/players", json={"username": "alice", "email": "alice@example.com"}
        )

        assert response.status_code == 201
        player = response.json()
        assert player["gcBalance"] == "0.00"

        response = await client.get("/api/v1/wallet/balance", headers=as_player(player["id"]))
        assert response.json() == {"gcBalance": "0.00", "scBalance": "0.00"}

    @pytest.mark.asyncio
    async def test_duplicate_registration_conflict(self, client):
        payload = {"username": "alice", "email": "alice@example.com"}
        await client.post("/api/v1/players", json=payload)

        response = await client.post("/api/v1/players", json=payload)

        assert response.status_code == 409

    @pytest.mark.asyncio
    async def test_unknown_player_not_found(self, client):
        response = await client.get("/api/v1/players/me", headers=as_player("missing"))

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "PLAYER_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_redeem(self, client, services):
        player = await make_player(services, "alice", sc=20000, kyc=KycStatus.VERIFIED)

        response = await client.post(
            "/api/v1/wallet/redeem",
            json={"amount": "150.00", "paymentMethod": "bank"},
            headers=as_player(player.id),
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["feeSc"] == "5.00"
        assert body["payoutAmount"] == "145.00"
        assert await services.wallet.get_balance(player.id) == (0, 5000)

    @pytest.mark.asyncio
    async def test_redeem_insufficient_balance(self, client, services):
        player = await make_player(services, "alice", sc=10000, kyc=KycStatus.VERIFIED)

        response = await client.post(
            "/api/v1/wallet/redeem",
            json={"amount": "150.00", "paymentMethod": "bank"},
            headers=as_player(player.id),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INSUFFICIENT_BALANCE"


class TestGamesApi:
    @pytest.mark.asyncio
    async def test_spin(self, client, services, draws):
        await make_game(services)
        player = await make_player(services, "alice", gc=10000)
        draws.queue(0.0, 0.5, 0.1, 0.2, 0.3)

        response = await client.post(
            "/api/v1/games/lucky-7s/spin",
            json={"bet": "1.00", "currency": "gc"},
            headers=as_player(player.id),
        )

        assert response.status_code == 200
        body = response.json()
        assert body["isWin"] is True
        assert body["winAmount"] == "2.00"
        assert body["multiplier"] == "2.0000"
        assert body["newBalance"] == "101.00"

    @pytest.mark.asyncio
    async def test_unknown_game(self, client, services):
        player = await make_player(services, "alice", gc=10000)

        response = await client.post(
            "/api/v1/games/nope/spin",
            json={"bet": "1.00", "currency": "gc"},
            headers=as_player(player.id),
        )

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "GAME_NOT_FOUND"


class TestTicketsApi:
    @pytest.mark.asyncio
    async def test_rate_limited(self, client, services, monkeypatch):
        player = await make_player(services, "alice", sc=100000)
        ticket_type = await services.tickets.create_ticket_type(
            kind=TicketKind.SCRATCH,
            price_sc=100,
            win_probability=0.0,
            min_prize=0,
            max_prize=0,
            name="Lucky Dip",
        )
        monkeypatch.setattr(
            services.tickets,
            "site",
            services.tickets.site.model_copy(update={"ticket_purchase_limit_per_minute": 1}),
        )
        url = f"/api/v1/tickets/types/{ticket_type.id}/purchase"

        first = await client.post(url, headers=as_player(player.id))
        second = await client.post(url, headers=as_player(player.id))

        assert first.status_code == 201
        assert "isWin" not in first.json()
        assert second.status_code == 429
        assert second.json()["error"]["code"] == "RATE_LIMITED"
        assert "Retry-After" in second.headers


class TestAdminApi:
    @pytest.mark.asyncio
    async def test_adjust_balance(self, client, services):
        player = await make_player(services, "alice")

        response = await client.post(
            f"/api/v1/admin/players/{player.id}/adjust",
            json={"gc": "25.50", "sc": "0", "reason": "goodwill"},
            headers=as_admin(),
        )

        assert response.status_code == 200
        assert response.json()["gcBalance"] == "25.50"
        assert await services.wallet.get_balance(player.id) == (2550, 0)

    @pytest.mark.asyncio
    async def test_adjust_below_zero_rejected(self, client, services):
        player = await make_player(services, "alice")

        response = await client.post(
            f"/api/v1/admin/players/{player.id}/adjust",
            json={"gc": "-1.00"},
            headers=as_admin(),
        )

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INSUFFICIENT_BALANCE"

    @pytest.mark.asyncio
    async def test_tournament_lifecycle(self, client, services):
        await make_game(services)
        player = await make_player(services, "alice")
        now = utcnow()

        response = await client.post(
            "/api/v1/admin/tournaments",
            json={
                "name": "Sprint",
                "gameSlug": "lucky-7s",
                "startTime": (now - timedelta(minutes=1)).isoformat(),
                "endTime": (now + timedelta(hours=1)).isoformat(),
                "prizePool": "10.00",
                "currency": "gc",
            },
            headers=as_admin(),
        )
        assert response.status_code == 201
        tournament_id = response.json()["id"]

        response = await client.post("/api/v1/admin/tournaments/sweep", headers=as_admin())
        assert response.json()["started"] == [tournament_id]

        response = await client.post(
            f"/api/v1/tournaments/{tournament_id}/join", headers=as_player(player.id)
        )
        assert response.status_code == 201

        response = await client.post(
            f"/api/v1/tournaments/{tournament_id}/join", headers=as_player(player.id)
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "ALREADY_JOINED"

        response = await client.get(f"/api/v1/tournaments/{tournament_id}/leaderboard")
        [entry] = response.json()["participants"]
        assert entry["playerId"] == player.id
        assert entry["score"] == "0.0000"


class TestBonusesApi:
    @pytest.mark.asyncio
    async def test_create_and_claim_by_code(self, client, services):
        player = await make_player(services, "alice")

        response = await client.post(
            "/api/v1/admin/bonuses",
            json={
                "name": "Weekend Loyalty",
                "type": "loyalty",
                "code": "WEEKEND",
                "rewardGc": "100.00",
                "rewardSc": "2.00",
                "wageringRequirement": 3,
                "expirationDays": 7,
            },
            headers=as_admin(),
        )
        assert response.status_code == 201
        assert response.json()["rewardSc"] == "2.00"

        response = await client.post(
            "/api/v1/bonuses/claim", json={"code": "WEEKEND"}, headers=as_player(player.id)
        )
        assert response.status_code == 201
        body = response.json()
        assert body["wageringTarget"] == "6.00"
        assert (body["gcBalance"], body["scBalance"]) == ("100.00", "2.00")

        again = await client.post(
            "/api/v1/bonuses/claim", json={"code": "WEEKEND"}, headers=as_player(player.id)
        )
        assert again.status_code == 409
        assert again.json()["error"]["code"] == "BONUS_ALREADY_ACTIVE"

        mine = await client.get("/api/v1/bonuses/my", headers=as_player(player.id))
        [claim] = mine.json()["bonuses"]
        assert claim["name"] == "Weekend Loyalty"
        assert claim["status"] == "active"

    @pytest.mark.asyncio
    async def test_deleted_bonus_hidden(self, client, services):
        player = await make_player(services, "bob")
        bonus = await services.bonuses.create_bonus(name="Old", bonus_type=BonusType.CASHBACK)

        response = await client.delete(f"/api/v1/admin/bonuses/{bonus.id}", headers=as_admin())
        assert response.status_code == 200

        listed = await client.get("/api/v1/admin/bonuses", headers=as_admin())
        available = await client.get("/api/v1/bonuses/available", headers=as_player(player.id))
        claim = await client.post(
            "/api/v1/bonuses/claim", json={"bonusId": bonus.id}, headers=as_player(player.id)
        )
        assert listed.json()["bonuses"] == []
        assert available.json()["bonuses"] == []
        assert claim.status_code == 404
        assert claim.json()["error"]["code"] == "BONUS_NOT_FOUND"


class TestPackagesAdminApi:
    @pytest.mark.asyncio
    async def test_update_and_delete(self, client, services):
        package = await services.wallet.create_package("Starter", 500000, 1000, 999)

        response = await client.patch(
            f"/api/v1/admin/packages/{package.id}",
            json={"sc": "25.00", "isFeatured": True},
            headers=as_admin(),
        )
        assert response.status_code == 200
        assert response.json()["scAmount"] == "25.00"
        assert response.json()["isFeatured"] is True

        response = await client.delete(f"/api/v1/admin/packages/{package.id}", headers=as_admin())
        assert response.status_code == 200
        assert await services.wallet.list_packages() == []

        response = await client.delete(f"/api/v1/admin/packages/{package.id}", headers=as_admin())
        assert response.status_code == 404
