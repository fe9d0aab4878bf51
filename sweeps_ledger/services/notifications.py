"""Balance and announcement notifications.

The ledger hands notifications to a ``Notifier`` only after a transaction
commits. Delivery is best-effort: a failed publish is logged and dropped,
never retried, and never affects the ledger.
"""

from typing import Protocol

from redis.asyncio import Redis
from redis.exceptions import RedisError

from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.utils.json_utils import json_dumps
from sweeps_ledger.utils.money import from_minor

logger = get_logger(__name__)

BROADCAST_CHANNEL = "broadcast"


def player_channel(player_id: str) -> str:
    return f"player:{player_id}"


class Notifier(Protocol):
    """Real-time transport boundary."""

    async def balance_changed(self, player_id: str, gc_balance: int, sc_balance: int) -> None:
        ...

    async def notify(self, player_id: str, msg_type: str, message: str) -> None:
        ...

    async def broadcast(self, msg_type: str, message: str) -> None:
        ...


class NullNotifier:
    """Drops every notification. Used when no Redis is configured."""

    async def balance_changed(self, player_id: str, gc_balance: int, sc_balance: int) -> None:
        return None

    async def notify(self, player_id: str, msg_type: str, message: str) -> None:
        return None

    async def broadcast(self, msg_type: str, message: str) -> None:
        return None


class RedisNotifier:
    """Publishes notifications to Redis pub/sub channels.

    Channels:
        player:{id}  balance updates and per-player messages
        broadcast    announcements to every connected player
    """

    def __init__(self, redis: Redis) -> None:
        self.redis = redis

    async def balance_changed(self, player_id: str, gc_balance: int, sc_balance: int) -> None:
        await self._publish(
            player_channel(player_id),
            {
                "type": "balance_update",
                "gc_balance": from_minor(gc_balance),
                "sc_balance": from_minor(sc_balance),
            },
        )

    async def notify(self, player_id: str, msg_type: str, message: str) -> None:
        await self._publish(
            player_channel(player_id),
            {"type": msg_type, "message": message},
        )

    async def broadcast(self, msg_type: str, message: str) -> None:
        await self._publish(BROADCAST_CHANNEL, {"type": msg_type, "message": message})

    async def _publish(self, channel: str, payload: dict) -> None:
        try:
            await self.redis.publish(channel, json_dumps(payload))
        except (RedisError, OSError) as e:
            logger.warning(
                "notification_publish_failed",
                channel=channel,
                type=payload.get("type"),
                error=str(e),
            )
