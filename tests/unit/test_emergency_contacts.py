"""
Tests for the emergency contact registry.
"""

import pytest

from escrow.models.domain.errors import DuplicateContact, InvalidEmail, NotFoundOrUnauthorized
from escrow.models.domain.escrow_domain import ContactPatch
from escrow.services.emergency_contact_service import normalize_email


@pytest.mark.parametrize(
    "raw,expected",
    [
        ("  Spouse@Example.COM ", "spouse@example.com"),
        ("a@b.co", "a@b.co"),
    ],
)
def test_normalize_email(raw, expected):
    assert normalize_email(raw) == expected


@pytest.mark.parametrize("raw", ["", "no-at-sign", "two@@example.com", "a b@example.com", "x@nodot"])
def test_normalize_email_rejects_invalid(raw):
    with pytest.raises(InvalidEmail):
        normalize_email(raw)


@pytest.mark.asyncio
async def test_add_normalizes_and_lists(contact_service):
    contact = await contact_service.add("user-1", " Spouse@Example.com ", label=" Spouse ")

    assert contact.email == "spouse@example.com"
    assert contact.label == "Spouse"
    assert [c.id for c in await contact_service.list("user-1")] == [contact.id]
    assert await contact_service.has_contacts("user-1") is True


@pytest.mark.asyncio
async def test_add_invalid_email_writes_nothing(contact_service, contact_repo):
    with pytest.raises(InvalidEmail):
        await contact_service.add("user-1", "not-an-email")

    assert contact_repo.contacts == {}


@pytest.mark.asyncio
async def test_add_duplicate_active_contact_fails(contact_service):
    await contact_service.add("user-1", "spouse@example.com")

    with pytest.raises(DuplicateContact):
        await contact_service.add("user-1", "SPOUSE@example.com")


@pytest.mark.asyncio
async def test_same_email_allowed_for_different_users(contact_service):
    await contact_service.add("user-1", "lawyer@example.com")
    await contact_service.add("user-2", "lawyer@example.com")

    assert len(await contact_service.list("user-2")) == 1


@pytest.mark.asyncio
async def test_add_reactivates_inactive_contact(contact_service, contact_repo):
    inactive = contact_repo.seed("user-1", "old@example.com", is_active=False)

    contact = await contact_service.add("user-1", "old@example.com", label="Brother")

    assert contact.id == inactive.id
    assert contact.is_active is True
    assert contact.label == "Brother"
    assert len(contact_repo.contacts) == 1


@pytest.mark.asyncio
async def test_update_other_users_contact_is_indistinguishable_from_missing(contact_service):
    contact = await contact_service.add("owner", "friend@example.com")

    with pytest.raises(NotFoundOrUnauthorized) as foreign:
        await contact_service.update("intruder", contact.id, ContactPatch(label="mine"))
    with pytest.raises(NotFoundOrUnauthorized) as missing:
        await contact_service.update("intruder", 9999, ContactPatch(label="mine"))

    assert foreign.value.message == missing.value.message


@pytest.mark.asyncio
async def test_update_email_to_existing_contact_fails(contact_service):
    await contact_service.add("user-1", "a@example.com")
    second = await contact_service.add("user-1", "b@example.com")

    with pytest.raises(DuplicateContact):
        await contact_service.update("user-1", second.id, ContactPatch(email="A@example.com"))


@pytest.mark.asyncio
async def test_update_only_touches_given_fields(contact_service):
    contact = await contact_service.add("user-1", "a@example.com", label="Sister")

    updated = await contact_service.update("user-1", contact.id, ContactPatch(is_active=False))

    assert updated.is_active is False
    assert updated.label == "Sister"
    assert updated.email == "a@example.com"
    assert await contact_service.has_contacts("user-1") is False


@pytest.mark.asyncio
async def test_remove_hard_and_soft(contact_service, contact_repo):
    keep = await contact_service.add("user-1", "keep@example.com")
    drop = await contact_service.add("user-1", "drop@example.com")

    await contact_service.remove("user-1", drop.id)
    await contact_service.remove("user-1", keep.id, hard=False)

    assert drop.id not in contact_repo.contacts
    assert contact_repo.contacts[keep.id].is_active is False


@pytest.mark.asyncio
async def test_remove_foreign_contact_fails(contact_service, contact_repo):
    contact = await contact_service.add("owner", "friend@example.com")

    with pytest.raises(NotFoundOrUnauthorized):
        await contact_service.remove("intruder", contact.id)

    assert contact.id in contact_repo.contacts
