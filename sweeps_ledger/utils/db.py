"""Database connection and transaction management.

All balance mutations go through ``LedgerStore.transaction()``. Each
transaction holds exclusive access to the player rows it touches:

- PostgreSQL: rows are read with ``SELECT ... FOR UPDATE``.
- SQLite: every transaction starts with ``BEGIN IMMEDIATE``, which takes
  the database write lock up front and serializes writers.
"""

from __future__ import annotations

from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING, Any

from sqlalchemy import Select, event, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import NullPool

from sweeps_ledger.logging_config import get_logger
from sweeps_ledger.models.base import Base
from sweeps_ledger.models.player import Player
from sweeps_ledger.utils.errors import ErrorCode, LedgerError, NotFoundError, StorageFault

if TYPE_CHECKING:
    from sweeps_ledger.services.notifications import Notifier

logger = get_logger(__name__)


class UnitOfWork:
    """One atomic ledger transaction.

    Wraps the session and collects notifications that are only delivered
    once the transaction has committed.
    """

    def __init__(self, session: AsyncSession, *, row_locks: bool) -> None:
        self.session = session
        self._row_locks = row_locks
        self._balances: dict[str, tuple[int, int]] = {}
        self._messages: list[tuple[str | None, str, str]] = []

    def for_update(self, query: Select, **kwargs: Any) -> Select:
        """Add FOR UPDATE where the backend supports row locks."""
        if self._row_locks:
            return query.with_for_update(**kwargs)
        return query

    async def lock_player(self, player_id: str) -> Player:
        """Load a player row for exclusive update.

        Raises:
            NotFoundError: If the player does not exist
        """
        query = self.for_update(select(Player).where(Player.id == player_id))
        result = await self.session.execute(
            query.execution_options(populate_existing=True)
        )
        player = result.scalar_one_or_none()
        if player is None:
            raise NotFoundError("Player", player_id, ErrorCode.PLAYER_NOT_FOUND)
        return player

    async def lock_players(self, player_ids: Iterable[str]) -> list[Player]:
        """Lock several player rows in ascending id order.

        Callers that go on to lock rows keyed by player (tournament
        participants) take the player locks first, the same order a wager
        takes them. Unknown ids are skipped.
        """
        ids = sorted(set(player_ids))
        if not ids:
            return []
        query = self.for_update(
            select(Player).where(Player.id.in_(ids)).order_by(Player.id)
        )
        result = await self.session.execute(
            query.execution_options(populate_existing=True)
        )
        return list(result.scalars().all())

    # Post-commit outbox

    def balance_changed(self, player_id: str, gc_balance: int, sc_balance: int) -> None:
        """Queue a balance push. Later calls for the same player win."""
        self._balances[player_id] = (gc_balance, sc_balance)

    def notify(self, player_id: str, msg_type: str, message: str) -> None:
        self._messages.append((player_id, msg_type, message))

    def broadcast(self, msg_type: str, message: str) -> None:
        self._messages.append((None, msg_type, message))

    @property
    def pending_notifications(self) -> int:
        return len(self._balances) + len(self._messages)

    def discard(self) -> None:
        self._balances.clear()
        self._messages.clear()

    async def dispatch(self, notifier: Notifier) -> None:
        """Deliver queued notifications. Delivery is at-most-once."""
        balances, messages = self._balances, self._messages
        self._balances, self._messages = {}, []

        for player_id, (gc_balance, sc_balance) in balances.items():
            await notifier.balance_changed(player_id, gc_balance, sc_balance)
        for player_id, msg_type, message in messages:
            if player_id is None:
                await notifier.broadcast(msg_type, message)
            else:
                await notifier.notify(player_id, msg_type, message)


class LedgerStore:
    """Async engine, session factory and transaction boundary."""

    def __init__(
        self,
        database_url: str,
        *,
        notifier: Notifier | None = None,
        pool_size: int = 20,
        max_overflow: int = 10,
        echo: bool = False,
        use_null_pool: bool = False,
    ) -> None:
        from sweeps_ledger.services.notifications import NullNotifier

        self.database_url = database_url
        self.notifier: Notifier = notifier or NullNotifier()
        self.is_sqlite = database_url.startswith("sqlite")

        engine_kwargs: dict[str, Any] = {"echo": echo, "future": True}
        if use_null_pool:
            engine_kwargs["poolclass"] = NullPool
        elif not self.is_sqlite:
            engine_kwargs["pool_size"] = pool_size
            engine_kwargs["max_overflow"] = max_overflow
            engine_kwargs["pool_pre_ping"] = True

        self.engine: AsyncEngine = create_async_engine(database_url, **engine_kwargs)
        if self.is_sqlite:
            _install_sqlite_immediate_begin(self.engine)

        self.session_factory = async_sessionmaker(
            bind=self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[UnitOfWork]:
        """Run a block as one atomic ledger transaction.

        Ledger errors roll back and propagate unchanged. Any database error,
        including a failed commit, rolls back and raises ``StorageFault``.
        Queued notifications are delivered only after a successful commit.

        Usage:
            async with store.transaction() as uow:
                player = await uow.lock_player(player_id)
                ...
        """
        async with self.session_factory() as session:
            uow = UnitOfWork(session, row_locks=not self.is_sqlite)
            try:
                yield uow
                await session.commit()
            except LedgerError:
                uow.discard()
                await session.rollback()
                raise
            except SQLAlchemyError as exc:
                uow.discard()
                await session.rollback()
                logger.error("ledger_transaction_failed", error=str(exc), exc_info=True)
                raise StorageFault() from exc
            except BaseException:
                uow.discard()
                await session.rollback()
                raise

        if uow.pending_notifications:
            await uow.dispatch(self.notifier)

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Read-only session for queries that mutate nothing.

        Loaded objects stay readable after the block; closing the session
        ends the transaction without expiring them.
        """
        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                logger.error("ledger_query_failed", error=str(exc), exc_info=True)
                raise StorageFault() from exc

    async def create_all(self) -> None:
        """Create all tables."""
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)

    async def drop_all(self) -> None:
        async with self.engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all)

    async def ping(self) -> None:
        """Test connection."""
        async with self.engine.connect() as conn:
            await conn.run_sync(lambda _: None)

    async def dispose(self) -> None:
        """Close database connection pool."""
        await self.engine.dispose()


def _install_sqlite_immediate_begin(engine: AsyncEngine) -> None:
    """Make pysqlite emit BEGIN IMMEDIATE instead of a deferred BEGIN."""

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Disable pysqlite's own transaction handling
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA busy_timeout=10000")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")
