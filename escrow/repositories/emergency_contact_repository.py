"""
Repository for emergency contacts.

Every read and write is scoped by user_id so a caller can never touch
another user's rows.
"""

from datetime import datetime

from escrow.db.helpers import execute_query, fetch_all, fetch_one
from escrow.models.domain.escrow_domain import EmergencyContact

_COLUMNS = "id, user_id, email, label, is_active, created_at, updated_at"


class EmergencyContactRepository:
    """Persistence helpers for emergency_contacts."""

    async def list_for_user(
        self, user_id: str, include_inactive: bool = False
    ) -> list[EmergencyContact]:
        query = f"""
            SELECT {_COLUMNS}
            FROM emergency_contacts
            WHERE user_id = %s
              AND (is_active OR %s)
            ORDER BY created_at DESC
        """
        rows = await fetch_all(query, (user_id, include_inactive))
        return [EmergencyContact(**row) for row in rows]

    async def get(self, user_id: str, contact_id: int) -> EmergencyContact | None:
        query = f"""
            SELECT {_COLUMNS}
            FROM emergency_contacts
            WHERE id = %s AND user_id = %s
        """
        row = await fetch_one(query, (contact_id, user_id))
        return EmergencyContact(**row) if row else None

    async def find_by_email(self, user_id: str, email: str) -> EmergencyContact | None:
        query = f"""
            SELECT {_COLUMNS}
            FROM emergency_contacts
            WHERE user_id = %s AND email = %s
        """
        row = await fetch_one(query, (user_id, email))
        return EmergencyContact(**row) if row else None

    async def create(
        self, user_id: str, email: str, label: str | None, now: datetime
    ) -> EmergencyContact:
        query = f"""
            INSERT INTO emergency_contacts (user_id, email, label, is_active, created_at, updated_at)
            VALUES (%s, %s, %s, TRUE, %s, %s)
            RETURNING {_COLUMNS}
        """
        row = await fetch_one(query, (user_id, email, label, now, now))
        return EmergencyContact(**row)

    async def update(
        self, user_id: str, contact_id: int, fields: dict, now: datetime
    ) -> EmergencyContact | None:
        allowed = {k: v for k, v in fields.items() if k in {"email", "label", "is_active"}}
        assignments = ", ".join(f"{column} = %s" for column in allowed)
        set_clause = f"{assignments}, updated_at = %s" if assignments else "updated_at = %s"

        query = f"""
            UPDATE emergency_contacts
            SET {set_clause}
            WHERE id = %s AND user_id = %s
            RETURNING {_COLUMNS}
        """
        params = (*allowed.values(), now, contact_id, user_id)
        row = await fetch_one(query, params)
        return EmergencyContact(**row) if row else None

    async def delete(self, user_id: str, contact_id: int) -> int:
        query = """
            DELETE FROM emergency_contacts
            WHERE id = %s AND user_id = %s
        """
        return await execute_query(query, (contact_id, user_id))

    async def count_active(self, user_id: str) -> int:
        row = await fetch_one(
            "SELECT COUNT(*) AS n FROM emergency_contacts WHERE user_id = %s AND is_active",
            (user_id,),
        )
        return row["n"] if row else 0
