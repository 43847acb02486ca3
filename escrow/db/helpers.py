"""
Query helpers used by the repositories.

Each helper runs on the caller's connection when one is passed, otherwise
on a connection borrowed from the pool for that single statement. psycopg
errors are re-raised as DatabaseError; unique-index collisions become
UniqueViolation so services can treat them as "already exists".
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import psycopg

from escrow.db.pool import get_db_connection
from escrow.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)

Row = dict[str, Any]


class DatabaseError(Exception):
    """A statement failed at the database."""

    def __init__(self, message: str, operation: str = "unknown", recoverable: bool = True):
        super().__init__(message)
        self.operation = operation
        self.recoverable = recoverable


class UniqueViolation(DatabaseError):
    """Raised when an insert collides with a unique index."""


@asynccontextmanager
async def _statement(
    operation: str, query: str, connection: psycopg.AsyncConnection | None
) -> AsyncGenerator[psycopg.AsyncConnection, None]:
    try:
        if connection is not None:
            yield connection
        else:
            async with await get_db_connection() as conn:
                yield conn
    except psycopg.errors.UniqueViolation as e:
        raise UniqueViolation(f"Unique constraint violated: {e}", operation=operation) from e
    except psycopg.Error as e:
        logger.error("Database query failed", operation=operation, query=query[:100], error=str(e))
        raise DatabaseError(f"Query failed: {e}", operation=operation) from e


async def fetch_one(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> Row | None:
    """First row of the result, or None."""
    async with _statement("fetch_one", query, connection) as conn:
        cursor = await conn.execute(query, params)
        return await cursor.fetchone()


async def fetch_all(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> list[Row]:
    async with _statement("fetch_all", query, connection) as conn:
        cursor = await conn.execute(query, params)
        return await cursor.fetchall()


async def fetch_val(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> Any:
    """First column of the first row, or None."""
    row = await fetch_one(query, params, connection=connection)
    return next(iter(row.values())) if row else None


async def execute_query(
    query: str, params: tuple = (), *, connection: psycopg.AsyncConnection | None = None
) -> int:
    """Run a write and return the affected row count."""
    async with _statement("execute", query, connection) as conn:
        cursor = await conn.execute(query, params)
        return cursor.rowcount
