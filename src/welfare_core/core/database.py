"""Database connection management over a SQLAlchemy async engine.

Production runs on PostgreSQL through asyncpg; tests and local development
run on SQLite through aiosqlite. Both give the services the same contract:

* ``transaction()`` yields a connection inside one atomic unit of work that
  commits on normal exit and rolls back on any exception.
* ``connection()`` yields a connection for read-only work.

SQLite transactions are opened with ``BEGIN IMMEDIATE`` so concurrent
writers queue on the database lock instead of interleaving, which gives the
compare-and-swap updates in the claim workflow the same serialization
PostgreSQL row locks provide. Read-only connections use a deferred
``BEGIN`` and do not queue behind writers.
"""

import contextlib
from collections.abc import AsyncIterator, Mapping
from typing import Any

from beartype import beartype
from sqlalchemy import event, text
from sqlalchemy.engine.interfaces import DBAPIConnection
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import ConnectionPoolEntry, StaticPool

from .config import get_settings
from .logging_utils import get_logger
from .tables import metadata

logger = get_logger(__name__)

# Execution option set on connections handed out by ``Database.connection()``.
READ_ONLY = "welfare_read_only"


def sqlite_begin_statement(execution_options: Mapping[str, Any]) -> str:
    """Deferred BEGIN for readers, BEGIN IMMEDIATE for writers."""
    if execution_options.get(READ_ONLY):
        return "BEGIN"
    return "BEGIN IMMEDIATE"


def _install_sqlite_transaction_hooks(engine: AsyncEngine) -> None:
    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection: DBAPIConnection, record: ConnectionPoolEntry) -> None:
        # Hand transaction control to SQLAlchemy instead of the sqlite3 module.
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn: Any) -> None:
        conn.exec_driver_sql(sqlite_begin_statement(conn.get_execution_options()))


class Database:
    """Async engine owner shared by all services."""

    def __init__(self, url: str | None = None, *, echo: bool | None = None) -> None:
        settings = get_settings()
        self._url = url or settings.database_url
        self._echo = settings.database_echo if echo is None else echo
        self._engine: AsyncEngine | None = None

    @property
    def url(self) -> str:
        return self._url

    @property
    def is_sqlite(self) -> bool:
        return self._url.startswith("sqlite")

    @property
    def engine(self) -> AsyncEngine:
        if self._engine is None:
            raise RuntimeError("Database not connected")
        return self._engine

    @property
    def is_connected(self) -> bool:
        return self._engine is not None

    @beartype
    async def connect(self) -> None:
        """Create the engine and its connection pool."""
        if self._engine is not None:
            return

        settings = get_settings()
        kwargs: dict[str, Any] = {"echo": self._echo}

        if self.is_sqlite:
            kwargs["connect_args"] = {
                "check_same_thread": False,
                "timeout": settings.sqlite_busy_timeout,
            }
            if ":memory:" in self._url:
                kwargs["poolclass"] = StaticPool
        else:
            kwargs.update(
                pool_size=settings.database_pool_size,
                max_overflow=settings.database_max_overflow,
                pool_timeout=settings.database_pool_timeout,
                pool_pre_ping=True,
            )

        self._engine = create_async_engine(self._url, **kwargs)
        if self.is_sqlite:
            _install_sqlite_transaction_hooks(self._engine)

        logger.info(
            "Database engine created for %s",
            self._engine.url.render_as_string(hide_password=True),
        )

    @beartype
    async def disconnect(self) -> None:
        """Dispose of the engine and close pooled connections."""
        if self._engine is None:
            return
        await self._engine.dispose()
        self._engine = None
        logger.info("Database engine disposed")

    @contextlib.asynccontextmanager
    async def transaction(self) -> AsyncIterator[AsyncConnection]:
        """Yield a connection inside one atomic unit of work."""
        async with self.engine.begin() as conn:
            yield conn

    @contextlib.asynccontextmanager
    async def connection(self) -> AsyncIterator[AsyncConnection]:
        """Yield a connection for read-only work."""
        async with self.engine.connect() as conn:
            await conn.execution_options(**{READ_ONLY: True})
            yield conn

    @beartype
    async def create_schema(self) -> None:
        """Create all tables (tests and local development)."""
        async with self.engine.begin() as conn:
            await conn.run_sync(metadata.create_all)

    @beartype
    async def health_check(self) -> bool:
        """Run a trivial query to confirm the database answers."""
        if self._engine is None:
            return False
        try:
            async with self.connection() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError:
            logger.warning("Database health check failed", exc_info=True)
            return False


_database: Database | None = None


@beartype
def get_database() -> Database:
    """Get the process-wide database instance."""
    global _database
    if _database is None:
        _database = Database()
    return _database


@beartype
async def init_db_pool() -> Database:
    database = get_database()
    await database.connect()
    return database


@beartype
async def close_db_pool() -> None:
    global _database
    if _database is not None:
        await _database.disconnect()
        _database = None
