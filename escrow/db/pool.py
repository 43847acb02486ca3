"""
Process-wide PostgreSQL pool (psycopg_pool).

The API opens it from the FastAPI lifespan; the one-shot worker opens it
around a single sweep. Connections are autocommit with dict rows and UTC
session time, so repositories can compare timestamps without conversion.
"""

import asyncio
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg
from psycopg import sql
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

CLOSE_TIMEOUT_SECONDS = 30.0


class DatabasePoolManager:
    """Owns the single AsyncConnectionPool for this process."""

    def __init__(self):
        self.pool: AsyncConnectionPool | None = None
        self._state = "new"

    async def initialize(self) -> None:
        if self._state == "open":
            logger.warning("Database pool already initialized")
            return
        if self._state == "closed":
            raise RuntimeError("Cannot reinitialize closed pool")

        config = settings.get_db_pool_config()
        logger.info(
            "Opening database pool",
            min_size=config["min_size"],
            max_size=config["max_size"],
            timeout=config["timeout"],
        )

        pool = AsyncConnectionPool(
            conninfo=settings.DATABASE_URL,
            open=False,
            check=AsyncConnectionPool.check_connection,
            configure=_configure_connection,
            **config,
        )
        try:
            await pool.open()
            await pool.wait()
            self.pool = pool
            self._state = "open"
            await self._ping()
        except Exception as e:
            self.pool = None
            self._state = "new"
            await _close_quietly(pool)
            logger.error("Failed to initialize database pool", error=str(e))
            raise RuntimeError(f"Database pool initialization failed: {e}") from e

        logger.info("Database pool ready")

    async def close(self) -> None:
        if self._state != "open":
            return

        logger.info("Closing database pool")
        self._state = "closed"
        try:
            await asyncio.wait_for(self.pool.close(), timeout=CLOSE_TIMEOUT_SECONDS)
        except TimeoutError:
            logger.warning("Database pool close timed out", timeout=CLOSE_TIMEOUT_SECONDS)
        except Exception as e:
            logger.error("Error closing database pool", error=str(e))

    @asynccontextmanager
    async def connection(self) -> AsyncGenerator[psycopg.AsyncConnection, None]:
        """Borrow a pooled connection for the duration of the block."""
        if self._state != "open":
            raise RuntimeError(f"Database pool is not open (state={self._state})")

        try:
            async with self.pool.connection() as conn:
                yield conn
        except Exception as e:
            logger.error("Database connection error", error=str(e), error_type=type(e).__name__)
            raise

    async def _ping(self) -> None:
        async with self.connection() as conn:
            cursor = await conn.execute("SELECT 1 AS ok")
            row = await cursor.fetchone()
        if not row or row["ok"] != 1:
            raise RuntimeError("Database ping returned an unexpected result")

    async def health_check(self) -> dict[str, Any]:
        if self._state != "open":
            return {"healthy": False, "error": f"Pool is {self._state}", "service": "database_pool"}

        started = time.perf_counter()
        try:
            await self._ping()
        except Exception as e:
            logger.error("Database pool health check failed", error=str(e))
            return {
                "healthy": False,
                "service": "database_pool",
                "error": str(e),
                "error_type": type(e).__name__,
            }

        stats = self.pool.get_stats()
        return {
            "healthy": True,
            "service": "database_pool",
            "connection_time_ms": round((time.perf_counter() - started) * 1000, 2),
            "pool_stats": {
                key: stats.get(key, 0)
                for key in ("pool_size", "pool_available", "requests_waiting")
            },
        }


async def _configure_connection(conn: psycopg.AsyncConnection) -> None:
    conn.row_factory = dict_row
    # Pooled connections must never be left INTRANS.
    await conn.set_autocommit(True)
    application_name = f"credential-escrow-{settings.environment}"
    await conn.execute(
        sql.SQL("SET application_name = {}").format(sql.Literal(application_name))
    )
    await conn.execute("SET timezone = 'UTC'")
    await conn.execute("SET statement_timeout = '60s'")


async def _close_quietly(pool: AsyncConnectionPool) -> None:
    try:
        await pool.close()
    except Exception as e:
        logger.warning("Error closing pool after failed init", error=str(e))


db_pool = DatabasePoolManager()


async def get_db_connection():
    return db_pool.connection()


async def db_health_check() -> dict[str, Any]:
    return await db_pool.health_check()
