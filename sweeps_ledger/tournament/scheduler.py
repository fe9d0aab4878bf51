"""
Tournament Lifecycle Scheduler.

Periodically moves tournaments through upcoming -> active -> completed by
comparing the wall clock with each tournament's window.

Design:
- Sweeps never overlap: an asyncio.Lock guards sweep()
- Each completion runs in its own transaction (see TournamentSettlement)
- A tournament whose completion fails stays active and is retried on the
  next sweep; other tournaments in the same sweep are unaffected
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime

from sqlalchemy import select, update

from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import utcnow
from sweeps_ledger.models.tournament import Tournament, TournamentStatus
from sweeps_ledger.tournament.settlement import SettlementSummary, TournamentSettlement
from sweeps_ledger.utils.db import LedgerStore
from sweeps_ledger.utils.errors import SchedulerFault

logger = get_logger(__name__)


@dataclass
class SweepResult:
    """What one sweep did."""

    started: list[str] = field(default_factory=list)
    completed: list[SettlementSummary] = field(default_factory=list)
    failed: list[SchedulerFault] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "started": self.started,
            "completed": [s.to_dict() for s in self.completed],
            "failed": [f.to_dict() for f in self.failed],
        }


class TournamentScheduler:
    """Runs lifecycle sweeps on a fixed interval."""

    def __init__(
        self,
        store: LedgerStore,
        settlement: TournamentSettlement,
        interval_seconds: float = 60,
    ) -> None:
        self.store = store
        self.settlement = settlement
        self.interval_seconds = interval_seconds

        self._lock = asyncio.Lock()
        self._task: asyncio.Task | None = None
        self._running = False

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the sweep loop."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run_loop())
        logger.info("tournament_scheduler_started", interval_seconds=self.interval_seconds)

    async def stop(self) -> None:
        """Stop the sweep loop. An in-flight sweep is cancelled and rolled back."""
        self._running = False

        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

        logger.info("tournament_scheduler_stopped")

    async def _run_loop(self) -> None:
        while self._running:
            try:
                await self.sweep()
            except asyncio.CancelledError:
                break
            except Exception:
                logger.exception("tournament_sweep_failed")

            try:
                await asyncio.sleep(self.interval_seconds)
            except asyncio.CancelledError:
                break

    async def sweep(self, now: datetime | None = None) -> SweepResult:
        """Run one lifecycle sweep.

        (a) upcoming tournaments whose start time has passed become active
        (b) active tournaments whose end time has passed are completed and
            paid out, one transaction per tournament
        """
        async with self._lock:
            now = now or utcnow()
            result = SweepResult()

            result.started = await self._start_due(now)

            for tournament_id in await self._due_for_completion(now):
                try:
                    summary = await self.settlement.complete_tournament(tournament_id, now)
                except Exception as e:
                    fault = SchedulerFault(tournament_id, e)
                    result.failed.append(fault)
                    logger.exception(
                        "tournament_completion_failed",
                        tournament_id=tournament_id,
                        error_code=fault.code,
                    )
                    continue

                if summary is not None:
                    result.completed.append(summary)

            if result.started or result.completed or result.failed:
                logger.info(
                    "tournament_sweep_finished",
                    started=len(result.started),
                    completed=len(result.completed),
                    failed=len(result.failed),
                )
            return result

    async def _start_due(self, now: datetime) -> list[str]:
        async with self.store.transaction() as uow:
            result = await uow.session.execute(
                update(Tournament)
                .where(
                    Tournament.status == TournamentStatus.UPCOMING,
                    Tournament.start_time <= now,
                )
                .values(status=TournamentStatus.ACTIVE)
                .returning(Tournament.id)
                .execution_options(synchronize_session=False)
            )
            started = list(result.scalars().all())

        for tournament_id in started:
            logger.info("tournament_started", tournament_id=tournament_id)
        return started

    async def _due_for_completion(self, now: datetime) -> list[str]:
        async with self.store.session() as session:
            result = await session.execute(
                select(Tournament.id)
                .where(
                    Tournament.status == TournamentStatus.ACTIVE,
                    Tournament.end_time <= now,
                )
                .order_by(Tournament.end_time)
            )
            return list(result.scalars().all())
