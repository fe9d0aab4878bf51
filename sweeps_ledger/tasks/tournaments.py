"""Tournament lifecycle tasks.

Scheduled by Celery Beat every ``tournament_sweep_interval_seconds``. A
Redis lock (SET NX EX) keeps two workers from sweeping at the same time.
"""

import asyncio
import secrets

from redis.asyncio import Redis

from sweeps_ledger.config import get_settings
from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.services.notifications import RedisNotifier
from sweeps_ledger.services.settlement import SettlementEngine
from sweeps_ledger.tasks.celery_app import celery_app
from sweeps_ledger.tournament.scheduler import SweepResult, TournamentScheduler
from sweeps_ledger.tournament.scoring import TournamentScorer
from sweeps_ledger.tournament.settlement import TournamentSettlement
from sweeps_ledger.utils.db import LedgerStore

logger = get_logger(__name__)

SWEEP_LOCK_KEY = "lock:tournament-sweep"


async def acquire_sweep_lock(redis: Redis, ttl_seconds: int) -> str | None:
    """Take the sweep lock. Returns the owner token, or None if held."""
    token = secrets.token_hex(16)
    acquired = await redis.set(SWEEP_LOCK_KEY, token, nx=True, ex=ttl_seconds)
    return token if acquired else None


async def release_sweep_lock(redis: Redis, token: str) -> None:
    """Release the lock if this worker still owns it."""
    current = await redis.get(SWEEP_LOCK_KEY)
    if isinstance(current, bytes):
        current = current.decode()
    if current == token:
        await redis.delete(SWEEP_LOCK_KEY)


async def run_locked_sweep(
    redis: Redis,
    scheduler: TournamentScheduler,
    ttl_seconds: int,
) -> dict:
    """Run one sweep under the Redis lock.

    Returns:
        Summary dict; ``status`` is ``skipped`` when another worker holds the lock
    """
    token = await acquire_sweep_lock(redis, ttl_seconds)
    if token is None:
        logger.info("tournament_sweep_skipped", reason="lock_held")
        return {"status": "skipped"}

    try:
        result: SweepResult = await scheduler.sweep()
    finally:
        await release_sweep_lock(redis, token)

    return {"status": "success", **result.to_dict()}


async def _sweep_once() -> dict:
    settings = get_settings()
    redis = Redis.from_url(settings.redis_url or "redis://localhost:6379/0", decode_responses=True)
    store = LedgerStore(
        settings.database_url,
        notifier=RedisNotifier(redis),
        use_null_pool=True,
    )
    settlement = TournamentSettlement(
        store,
        SettlementEngine(score_hook=TournamentScorer()),
        prize_split=settings.site.tournament_prize_split,
    )
    scheduler = TournamentScheduler(store, settlement)

    try:
        return await run_locked_sweep(
            redis,
            scheduler,
            ttl_seconds=settings.tournament_sweep_interval_seconds * 5,
        )
    finally:
        await store.dispose()
        await redis.aclose()


@celery_app.task(
    bind=True,
    name="sweeps_ledger.tasks.tournaments.sweep_tournaments_task",
)
def sweep_tournaments_task(self) -> dict:
    """Promote due tournaments and complete ended ones.

    Per-tournament failures are reported in the result and retried by the
    next scheduled sweep, not by Celery.
    """
    logger.info("tournament_sweep_task_started", attempt=self.request.retries + 1)

    result = asyncio.run(_sweep_once())

    logger.info(
        "tournament_sweep_task_finished",
        status=result["status"],
        failed=len(result.get("failed", [])),
    )
    return result
