"""Shared fixtures.

Integration tests run against a temporary SQLite file through aiosqlite.
Each test gets a fresh database.
"""

from collections import deque
from collections.abc import AsyncGenerator
from typing import Any

import pytest
import pytest_asyncio

from sweeps_ledger.config import SiteSettings
from sweeps_ledger.container import LedgerServices, build_services
from sweeps_ledger.models.game import GameKind
from sweeps_ledger.models.player import KycStatus, Player, PlayerRole
from sweeps_ledger.utils.db import LedgerStore


# =============================================================================
# Test doubles
# =============================================================================


class ScriptedRandom:
    """RNG returning queued draws, then ``default`` once the queue is empty."""

    def __init__(self, default: float = 0.5) -> None:
        self.default = default
        self._draws: deque[float] = deque()

    def queue(self, *draws: float) -> None:
        self._draws.extend(draws)

    def __call__(self) -> float:
        if self._draws:
            return self._draws.popleft()
        return self.default


class RecordingNotifier:
    """Notifier that keeps everything it was asked to deliver."""

    def __init__(self) -> None:
        self.balances: list[tuple[str, int, int]] = []
        self.messages: list[tuple[str, str, str]] = []
        self.broadcasts: list[tuple[str, str]] = []

    async def balance_changed(self, player_id: str, gc_balance: int, sc_balance: int) -> None:
        self.balances.append((player_id, gc_balance, sc_balance))

    async def notify(self, player_id: str, msg_type: str, message: str) -> None:
        self.messages.append((player_id, msg_type, message))

    async def broadcast(self, msg_type: str, message: str) -> None:
        self.broadcasts.append((msg_type, message))

    def messages_for(self, player_id: str) -> list[tuple[str, str]]:
        return [(t, m) for p, t, m in self.messages if p == player_id]


class MockRedis:
    """In-memory stand-in for the redis.asyncio commands used here."""

    def __init__(self) -> None:
        self.data: dict[str, Any] = {}
        self.published: list[tuple[str, str]] = []

    async def set(self, key: str, value: Any, nx: bool = False, ex: int | None = None) -> bool | None:
        if nx and key in self.data:
            return None
        self.data[key] = value
        return True

    async def get(self, key: str) -> Any:
        return self.data.get(key)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def publish(self, channel: str, message: str) -> int:
        self.published.append((channel, message))
        return 1

    async def ping(self) -> bool:
        return True


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def draws() -> ScriptedRandom:
    return ScriptedRandom()


@pytest.fixture
def site() -> SiteSettings:
    """Site settings without signup bonus so balances start at zero."""
    return SiteSettings(signup_bonus_gc=0, signup_bonus_sc=0)


@pytest_asyncio.fixture
async def store(tmp_path, notifier) -> AsyncGenerator[LedgerStore, None]:
    """Fresh SQLite ledger per test."""
    ledger = LedgerStore(
        f"sqlite+aiosqlite:///{tmp_path / 'ledger.db'}",
        notifier=notifier,
        use_null_pool=True,
    )
    await ledger.create_all()
    yield ledger
    await ledger.dispose()


@pytest.fixture
def services(store, site, draws) -> LedgerServices:
    return build_services(store, site, rng=draws)


# =============================================================================
# Seed helpers
# =============================================================================


async def make_player(
    services: LedgerServices,
    username: str,
    *,
    gc: int = 0,
    sc: int = 0,
    kyc: KycStatus | None = None,
    role: PlayerRole = PlayerRole.PLAYER,
) -> Player:
    """Register a player and fund them through an admin adjustment (minor units)."""
    player = await services.players.register(username, f"{username}@example.com", role=role)
    if gc or sc:
        await services.wallet.admin_adjust_balance(player.id, gc, sc, admin_id="seed")
    if kyc is not None:
        await services.players.set_kyc_status(player.id, kyc, admin_id="seed")
    return await services.players.get_player(player.id)


async def make_game(
    services: LedgerServices,
    slug: str = "lucky-7s",
    kind: GameKind = GameKind.SLOTS,
    rtp: float = 96.0,
):
    return await services.games.create_game(slug, slug.replace("-", " ").title(), kind, rtp)
