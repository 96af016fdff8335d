"""
Request Tracking Database Connection Pool

Manages the asyncpg connection pool for the portal database.

The pool is created lazily on first use and reused for the life of the process.
It is small (one connection by default): each execution context
holds one logical connection and never shares it with another process.

Schema:
-------
schema.sql uses CREATE ... IF NOT EXISTS throughout, so it is applied on every
initialization when ``run_migrations`` is enabled.
"""

import asyncio
from pathlib import Path
from typing import Any
from typing import List
from typing import Optional

import asyncpg
from loguru import logger

from secportal_api.errors import PersistenceError

SCHEMA_PATH = Path(__file__).parent / "schema.sql"

# Errors raised by the driver or the network that mean "storage failed"
DRIVER_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)


def _preview(sql: str) -> str:
    flat = " ".join(sql.split())
    return flat[:100] + ("..." if len(flat) > 100 else "")


class DomainDBPool:
    """Portal database connection pool manager."""

    EXPECTED_TABLES = {
        "requests",
        "request_comments",
        "user_roles",
        "request_audit_log",
    }

    def __init__(
        self,
        connection_string: str,
        min_size: int = 1,
        max_size: int = 1,
        command_timeout: float = 60,
        run_migrations: bool = True,
    ):
        """
        Initialize domain DB pool.

        Args:
            connection_string: PostgreSQL connection string
            min_size: Minimum pooled connections
            max_size: Maximum pooled connections
            command_timeout: Per-statement timeout in seconds
            run_migrations: Apply schema.sql after the pool is created
        """
        self.connection_string = connection_string
        self.min_size = min_size
        self.max_size = max_size
        self.command_timeout = command_timeout
        self.run_migrations = run_migrations
        self.pool: Optional[asyncpg.Pool] = None
        self._pool_initialized = False
        self._init_lock = asyncio.Lock()

    async def initialize(self) -> None:
        """
        Create the connection pool and apply the schema.

        Safe to call repeatedly; only the first call does any work.
        """
        async with self._init_lock:
            if self._pool_initialized and self.pool is not None:
                logger.debug("Domain DB pool already initialized")
                return

            try:
                logger.info("Initializing portal database pool", min_size=self.min_size, max_size=self.max_size)

                self.pool = await asyncpg.create_pool(
                    self.connection_string,
                    min_size=self.min_size,
                    max_size=self.max_size,
                    command_timeout=self.command_timeout,
                    timeout=15,  # Connection timeout (15 seconds)
                )

                async with self.pool.acquire() as conn:
                    result = await conn.fetchval("SELECT 1")
                    if result != 1:
                        raise PersistenceError("Pool validation query failed")

                logger.info("Domain DB pool validated")

                if self.run_migrations:
                    await self._run_migrations()

                self._pool_initialized = True
                logger.success("Portal database initialized successfully")

            except DRIVER_ERRORS as e:
                logger.opt(exception=e).error("Failed to initialize domain DB pool", error=str(e))
                await self._discard_pool()
                raise PersistenceError(f"Failed to initialize database pool: {e}") from e
            except Exception:
                await self._discard_pool()
                raise

    async def _discard_pool(self) -> None:
        if self.pool:
            await self.pool.close()
            self.pool = None

    async def _run_migrations(self) -> None:
        """Execute schema.sql and verify the expected tables exist."""
        if not SCHEMA_PATH.exists():
            raise FileNotFoundError(f"schema.sql not found at {SCHEMA_PATH}")

        schema_sql = SCHEMA_PATH.read_text(encoding="utf-8")

        async with self.pool.acquire() as conn:
            await conn.execute(schema_sql)

            rows = await conn.fetch(
                """
                SELECT table_name
                FROM information_schema.tables
                WHERE table_schema = current_schema()
                """
            )
            existing_tables = {row["table_name"] for row in rows}

        missing_tables = self.EXPECTED_TABLES - existing_tables
        if missing_tables:
            logger.error("Schema applied but tables are missing", missing=sorted(missing_tables))
            raise PersistenceError(f"Migration incomplete: missing tables {sorted(missing_tables)}")

        logger.success(f"All {len(self.EXPECTED_TABLES)} portal tables verified")

    async def close(self) -> None:
        """Close the connection pool gracefully."""
        if self.pool:
            logger.info("Closing portal database pool")
            await self.pool.close()
            self.pool = None
            self._pool_initialized = False
            logger.info("Domain DB pool closed")

    async def _ensure_pool(self) -> asyncpg.Pool:
        if not self._pool_initialized or self.pool is None:
            await self.initialize()
        return self.pool

    # ────────────────────────────────────────────────────────────────────────
    # Parameterized execution
    # ────────────────────────────────────────────────────────────────────────

    async def fetch(self, sql: str, *params: Any) -> List[asyncpg.Record]:
        """Run a query and return all rows."""
        return await self._run("fetch", sql, params)

    async def fetchrow(self, sql: str, *params: Any) -> Optional[asyncpg.Record]:
        """Run a query and return the first row, or None."""
        return await self._run("fetchrow", sql, params)

    async def execute(self, sql: str, *params: Any) -> str:
        """Run a statement and return its status tag (e.g. ``UPDATE 1``)."""
        return await self._run("execute", sql, params)

    async def _run(self, method: str, sql: str, params: tuple) -> Any:
        pool = await self._ensure_pool()
        logger.debug("Executing SQL", sql=_preview(sql), param_count=len(params))
        try:
            async with pool.acquire() as conn:
                result = await getattr(conn, method)(sql, *params)
        except DRIVER_ERRORS as e:
            logger.opt(exception=e).error(
                "Database query failed",
                sql=_preview(sql),
                error_type=type(e).__name__,
                error_message=str(e),
            )
            raise PersistenceError(f"{type(e).__name__}: {e}") from e

        if isinstance(result, list):
            logger.debug("Query executed successfully", rows=len(result))
        return result
