"""
Repository for user check-ins (append-only) and the inactive-user population scan.
"""

from datetime import datetime

from escrow.db.helpers import fetch_all, fetch_one, fetch_val
from escrow.models.domain.escrow_domain import CheckIn, InactiveUser


class CheckinRepository:
    """Persistence helpers for user_checkins."""

    async def create(
        self,
        user_id: str,
        checkin_at: datetime,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> CheckIn:
        query = """
            INSERT INTO user_checkins (user_id, checkin_at, ip_address, user_agent)
            VALUES (%s, %s, %s, %s)
            RETURNING id, user_id, checkin_at, ip_address, user_agent
        """
        row = await fetch_one(query, (user_id, checkin_at, ip_address, user_agent))
        return CheckIn(**row)

    async def latest(self, user_id: str) -> datetime | None:
        query = """
            SELECT MAX(checkin_at) AS last_check_in
            FROM user_checkins
            WHERE user_id = %s
        """
        return await fetch_val(query, (user_id,))

    async def history(self, user_id: str, limit: int = 10) -> list[CheckIn]:
        query = """
            SELECT id, user_id, checkin_at, ip_address, user_agent
            FROM user_checkins
            WHERE user_id = %s
            ORDER BY checkin_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (user_id, limit))
        return [CheckIn(**row) for row in rows]

    async def list_inactive(self, cutoff: datetime) -> list[InactiveUser]:
        """Users whose last check-in is before cutoff, including users who never checked in."""
        query = """
            SELECT u.id AS user_id, u.email, u.name, c.last_check_in
            FROM users u
            LEFT JOIN (
                SELECT user_id, MAX(checkin_at) AS last_check_in
                FROM user_checkins
                GROUP BY user_id
            ) c ON c.user_id = u.id
            WHERE c.last_check_in IS NULL OR c.last_check_in < %s
            ORDER BY u.id
        """
        rows = await fetch_all(query, (cutoff,))
        return [InactiveUser(**row) for row in rows]
