"""Process-wide Redis client.

Carries player notifications (pub/sub) for the API process. Redis is
optional: without ``redis_url`` the API runs with notifications disabled.
"""

from redis.asyncio import ConnectionPool, Redis

from sweeps_ledger.config import get_settings

_pool: ConnectionPool | None = None
_client: Redis | None = None


async def init_redis(url: str | None = None) -> Redis | None:
    """Connect and ping. Returns None when no URL is configured."""
    global _pool, _client

    url = url or get_settings().redis_url
    if not url:
        return None

    _pool = ConnectionPool.from_url(
        url,
        max_connections=20,
        socket_timeout=2.0,
        socket_connect_timeout=2.0,
        retry_on_timeout=True,
        decode_responses=True,
    )
    _client = Redis(connection_pool=_pool)
    await _client.ping()
    return _client


async def close_redis() -> None:
    global _pool, _client

    client, pool = _client, _pool
    _client = _pool = None
    if client is not None:
        await client.aclose()
    if pool is not None:
        await pool.disconnect()


def get_redis() -> Redis | None:
    """Current client, or None before ``init_redis`` or without Redis."""
    return _client
