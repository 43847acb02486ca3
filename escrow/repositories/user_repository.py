"""
Read-only access to dashboard users.
"""

from escrow.db.helpers import fetch_one
from escrow.models.domain.escrow_domain import UserIdentity


class UserRepository:
    async def get(self, user_id: str) -> UserIdentity | None:
        row = await fetch_one(
            "SELECT id AS user_id, email, name FROM users WHERE id = %s",
            (user_id,),
        )
        return UserIdentity(**row) if row else None
