"""
Read access to stored (encrypted) credentials.
"""

from escrow.db.helpers import fetch_all
from escrow.models.domain.escrow_domain import Credential


class CredentialRepository:
    async def list_for_user(self, user_id: str) -> list[Credential]:
        query = """
            SELECT id, user_id, website_name, description, username,
                   encrypted_secret, encrypted_pin, notes, category, validity
            FROM credentials
            WHERE user_id = %s
            ORDER BY created_at DESC
        """
        rows = await fetch_all(query, (user_id,))
        return [Credential(**row) for row in rows]
