"""
Emergency contact registry.

Trusted recipients for credential disclosure. All operations take the acting
user explicitly; a contact that is missing and a contact owned by someone
else are reported identically.
"""

import re

from escrow.infrastructure.observability.logging import get_logger
from escrow.models.domain.errors import DuplicateContact, InvalidEmail, NotFoundOrUnauthorized
from escrow.models.domain.escrow_domain import ContactPatch, EmergencyContact
from escrow.repositories.emergency_contact_repository import EmergencyContactRepository
from escrow.utils.clock import Clock, utc_now

logger = get_logger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def normalize_email(email: str | None) -> str:
    """Validate and normalize an address, raising InvalidEmail."""
    candidate = (email or "").strip()
    if not EMAIL_PATTERN.match(candidate):
        raise InvalidEmail()
    return candidate.lower()


def _normalize_label(label: str | None) -> str | None:
    return (label or "").strip() or None


class EmergencyContactService:
    def __init__(
        self, contacts: EmergencyContactRepository | None = None, clock: Clock = utc_now
    ):
        self.contacts = contacts or EmergencyContactRepository()
        self.clock = clock

    async def list(self, user_id: str, include_inactive: bool = False) -> list[EmergencyContact]:
        return await self.contacts.list_for_user(user_id, include_inactive=include_inactive)

    async def has_contacts(self, user_id: str) -> bool:
        return await self.contacts.count_active(user_id) > 0

    async def add(self, user_id: str, email: str, label: str | None = None) -> EmergencyContact:
        address = normalize_email(email)
        label = _normalize_label(label)

        existing = await self.contacts.find_by_email(user_id, address)
        if existing and existing.is_active:
            raise DuplicateContact()

        if existing:
            # (user_id, email) is unique, so a soft-deleted row is revived instead.
            contact = await self.contacts.update(
                user_id, existing.id, {"is_active": True, "label": label}, self.clock()
            )
            logger.info("Emergency contact reactivated", user_id=user_id, contact_id=existing.id)
            return contact

        contact = await self.contacts.create(user_id, address, label, self.clock())
        logger.info("Emergency contact added", user_id=user_id, contact_id=contact.id)
        return contact

    async def update(
        self, user_id: str, contact_id: int, patch: ContactPatch
    ) -> EmergencyContact:
        current = await self.contacts.get(user_id, contact_id)
        if current is None:
            raise NotFoundOrUnauthorized()

        fields = patch.model_dump(exclude_unset=True)

        if "email" in fields:
            fields["email"] = normalize_email(fields["email"])
            if fields["email"] != current.email:
                clash = await self.contacts.find_by_email(user_id, fields["email"])
                if clash is not None:
                    raise DuplicateContact()

        if "label" in fields:
            fields["label"] = _normalize_label(fields["label"])

        if fields.get("is_active", True) is None:
            fields.pop("is_active")

        updated = await self.contacts.update(user_id, contact_id, fields, self.clock())
        if updated is None:
            raise NotFoundOrUnauthorized()

        logger.info(
            "Emergency contact updated",
            user_id=user_id,
            contact_id=contact_id,
            fields=sorted(fields),
        )
        return updated

    async def remove(self, user_id: str, contact_id: int, hard: bool = True) -> None:
        """Hard-delete by default; hard=False deactivates the row instead."""
        if hard:
            deleted = await self.contacts.delete(user_id, contact_id)
            if not deleted:
                raise NotFoundOrUnauthorized()
        else:
            updated = await self.contacts.update(
                user_id, contact_id, {"is_active": False}, self.clock()
            )
            if updated is None:
                raise NotFoundOrUnauthorized()

        logger.info("Emergency contact removed", user_id=user_id, contact_id=contact_id, hard=hard)


emergency_contact_service = EmergencyContactService()
