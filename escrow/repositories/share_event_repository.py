"""
Repository for share events (the disclosure audit trail) and the per-user
advisory locks the sweeps serialize on.
"""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from datetime import datetime

from escrow.db.helpers import fetch_all, fetch_one
from escrow.db.pool import get_db_connection
from escrow.infrastructure.observability.logging import get_logger
from escrow.models.domain.escrow_domain import ShareEvent, ShareReason

logger = get_logger(__name__)

_COLUMNS = "id, user_id, recipient_email, password_count, share_reason, sent_at, expires_at"


class ShareEventRepository:
    """Persistence helpers for share_events. Rows are never updated."""

    async def create(
        self,
        user_id: str,
        recipient_email: str,
        password_count: int,
        share_reason: ShareReason,
        sent_at: datetime,
        expires_at: datetime | None = None,
    ) -> ShareEvent:
        query = f"""
            INSERT INTO share_events (
                user_id, recipient_email, password_count, share_reason, sent_at, expires_at
            )
            VALUES (%s, %s, %s, %s, %s, %s)
            RETURNING {_COLUMNS}
        """
        row = await fetch_one(
            query,
            (user_id, recipient_email, password_count, str(share_reason), sent_at, expires_at),
        )
        return ShareEvent(**row)

    async def latest_since(
        self, user_id: str, share_reason: ShareReason, since: datetime
    ) -> ShareEvent | None:
        query = f"""
            SELECT {_COLUMNS}
            FROM share_events
            WHERE user_id = %s AND share_reason = %s AND sent_at >= %s
            ORDER BY sent_at DESC
            LIMIT 1
        """
        row = await fetch_one(query, (user_id, str(share_reason), since))
        return ShareEvent(**row) if row else None

    async def history(self, user_id: str, limit: int = 10) -> list[ShareEvent]:
        query = f"""
            SELECT {_COLUMNS}
            FROM share_events
            WHERE user_id = %s
            ORDER BY sent_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (user_id, limit))
        return [ShareEvent(**row) for row in rows]

    @asynccontextmanager
    async def user_lock(
        self, user_id: str, scope: str = "disclosure"
    ) -> AsyncGenerator[None, None]:
        """
        Session-level advisory lock serializing one kind of work for one user.

        Scopes lock independently, so a reminder never waits on a disclosure.
        Holds a pooled connection for the duration of the block.
        """
        key = f"{scope}:{user_id}"
        async with await get_db_connection() as conn:
            await conn.execute("SELECT pg_advisory_lock(hashtext(%s))", (key,))
            try:
                yield
            finally:
                try:
                    await conn.execute("SELECT pg_advisory_unlock(hashtext(%s))", (key,))
                except Exception as e:
                    # The lock dies with the session if unlock fails.
                    logger.error("Failed to release user lock", key=key, error=str(e))
