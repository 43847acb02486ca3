import asyncio
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import UTC, datetime, timedelta

import pytest

from escrow.auth.verify import auth_dependency
from escrow.db.helpers import UniqueViolation
from escrow.models.domain.escrow_domain import (
    CheckIn,
    Credential,
    EmergencyContact,
    InactiveUser,
    Notification,
    NotificationSettings,
    ShareEvent,
    UserIdentity,
)
from escrow.services.activity_tracker import ActivityTracker
from escrow.services.disclosure_service import DisclosureService
from escrow.services.emergency_contact_service import EmergencyContactService
from escrow.services.infrastructure.credential_cipher import encrypt
from escrow.services.mail.transport import MailResult
from escrow.services.notification_service import NotificationService

SECRET_KEY = "correct horse battery staple"


@pytest.fixture
def auth_override():
    def _override():
        return {"sub": "user-123"}

    return _override


@pytest.fixture
def apply_auth_override(auth_override):
    def _apply(app):
        app.dependency_overrides[auth_dependency] = auth_override

    return _apply


class FakeClock:
    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class FakeUserRepository:
    def __init__(self):
        self.users: dict[str, UserIdentity] = {}

    def add(self, user_id: str, email: str | None = None, name: str | None = None) -> UserIdentity:
        user = UserIdentity(user_id=user_id, email=email, name=name)
        self.users[user_id] = user
        return user

    async def get(self, user_id: str) -> UserIdentity | None:
        return self.users.get(user_id)


class FakeCheckinRepository:
    def __init__(self, users: FakeUserRepository):
        self.users = users
        self.checkins: list[CheckIn] = []

    def seed(self, user_id: str, checkin_at: datetime) -> CheckIn:
        checkin = CheckIn(id=len(self.checkins) + 1, user_id=user_id, checkin_at=checkin_at)
        self.checkins.append(checkin)
        return checkin

    async def create(self, user_id, checkin_at, ip_address=None, user_agent=None) -> CheckIn:
        checkin = CheckIn(
            id=len(self.checkins) + 1,
            user_id=user_id,
            checkin_at=checkin_at,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        self.checkins.append(checkin)
        return checkin

    async def latest(self, user_id: str) -> datetime | None:
        times = [c.checkin_at for c in self.checkins if c.user_id == user_id]
        return max(times) if times else None

    async def history(self, user_id: str, limit: int = 10) -> list[CheckIn]:
        rows = sorted(
            (c for c in self.checkins if c.user_id == user_id),
            key=lambda c: c.checkin_at,
            reverse=True,
        )
        return rows[:limit]

    async def list_inactive(self, cutoff: datetime) -> list[InactiveUser]:
        inactive = []
        for user_id in sorted(self.users.users):
            user = self.users.users[user_id]
            last = await self.latest(user_id)
            if last is None or last < cutoff:
                inactive.append(
                    InactiveUser(user_id=user_id, email=user.email, name=user.name, last_check_in=last)
                )
        return inactive


class FakeEmergencyContactRepository:
    def __init__(self):
        self.contacts: dict[int, EmergencyContact] = {}
        self._next_id = 1

    def seed(self, user_id: str, email: str, is_active: bool = True, created_at=None) -> EmergencyContact:
        now = created_at or datetime(2026, 1, 1, tzinfo=UTC)
        contact = EmergencyContact(
            id=self._next_id,
            user_id=user_id,
            email=email,
            is_active=is_active,
            created_at=now + timedelta(seconds=self._next_id),
            updated_at=now,
        )
        self.contacts[contact.id] = contact
        self._next_id += 1
        return contact

    async def list_for_user(self, user_id, include_inactive=False):
        rows = [
            c
            for c in self.contacts.values()
            if c.user_id == user_id and (c.is_active or include_inactive)
        ]
        return sorted(rows, key=lambda c: c.created_at, reverse=True)

    async def get(self, user_id, contact_id):
        contact = self.contacts.get(contact_id)
        return contact if contact and contact.user_id == user_id else None

    async def find_by_email(self, user_id, email):
        for contact in self.contacts.values():
            if contact.user_id == user_id and contact.email == email:
                return contact
        return None

    async def create(self, user_id, email, label, now):
        if await self.find_by_email(user_id, email):
            raise UniqueViolation("duplicate contact", operation="fetch_one")
        contact = EmergencyContact(
            id=self._next_id,
            user_id=user_id,
            email=email,
            label=label,
            created_at=now,
            updated_at=now,
        )
        self.contacts[contact.id] = contact
        self._next_id += 1
        return contact

    async def update(self, user_id, contact_id, fields, now):
        current = await self.get(user_id, contact_id)
        if current is None:
            return None
        updated = current.model_copy(update={**fields, "updated_at": now})
        self.contacts[contact_id] = updated
        return updated

    async def delete(self, user_id, contact_id):
        if await self.get(user_id, contact_id) is None:
            return 0
        del self.contacts[contact_id]
        return 1

    async def count_active(self, user_id):
        return len(await self.list_for_user(user_id))


class FakeCredentialRepository:
    def __init__(self):
        self.credentials: list[Credential] = []

    def add(
        self,
        user_id: str,
        website_name: str,
        password: str,
        key: str = SECRET_KEY,
        pin: str | None = None,
        encrypted_secret: str | None = None,
        encrypted_pin: str | None = None,
    ) -> Credential:
        credential = Credential(
            id=len(self.credentials) + 1,
            user_id=user_id,
            website_name=website_name,
            username=f"{user_id}@{website_name.lower()}",
            encrypted_secret=encrypted_secret or encrypt(password, key),
            encrypted_pin=encrypted_pin or (encrypt(pin, key) if pin else None),
        )
        self.credentials.append(credential)
        return credential

    async def list_for_user(self, user_id):
        return [c for c in self.credentials if c.user_id == user_id]


class FakeShareEventRepository:
    def __init__(self):
        self.events: list[ShareEvent] = []
        self.locks: dict[tuple[str, str], asyncio.Lock] = defaultdict(asyncio.Lock)

    async def create(self, user_id, recipient_email, password_count, share_reason, sent_at, expires_at=None):
        event = ShareEvent(
            id=len(self.events) + 1,
            user_id=user_id,
            recipient_email=recipient_email,
            password_count=password_count,
            share_reason=share_reason,
            sent_at=sent_at,
            expires_at=expires_at,
        )
        self.events.append(event)
        return event

    async def latest_since(self, user_id, share_reason, since):
        rows = [
            e
            for e in self.events
            if e.user_id == user_id and e.share_reason == share_reason and e.sent_at >= since
        ]
        return max(rows, key=lambda e: e.sent_at) if rows else None

    async def history(self, user_id, limit=10):
        rows = sorted((e for e in self.events if e.user_id == user_id), key=lambda e: e.sent_at, reverse=True)
        return rows[:limit]

    @asynccontextmanager
    async def user_lock(self, user_id, scope="disclosure"):
        async with self.locks[(scope, user_id)]:
            yield


class FakeNotificationRepository:
    def __init__(self):
        self.notifications: list[Notification] = []
        self.buckets: set[tuple] = set()
        self.settings: dict[str, NotificationSettings] = {}

    async def find_recent(self, user_id, type, since, *, entity_id=None, title=None, message=None):
        for n in sorted(self.notifications, key=lambda n: n.created_at, reverse=True):
            if n.user_id != user_id or n.type != type or n.created_at < since:
                continue
            if entity_id is not None:
                if n.entity_id == entity_id:
                    return n
            elif n.title == title and n.message == message:
                return n
        return None

    async def create(
        self,
        user_id,
        title,
        message,
        type,
        priority,
        created_at,
        action_url=None,
        metadata=None,
        dedup_bucket=None,
    ):
        if dedup_bucket is not None:
            key = (user_id, type, dedup_bucket)
            if key in self.buckets:
                raise UniqueViolation("duplicate notification", operation="fetch_one")
            self.buckets.add(key)

        notification = Notification(
            id=len(self.notifications) + 1,
            user_id=user_id,
            title=title,
            message=message,
            type=type,
            priority=priority,
            action_url=action_url,
            metadata=metadata,
            created_at=created_at,
        )
        self.notifications.append(notification)
        return notification

    async def list_for_user(self, user_id, limit=50):
        rows = [n for n in self.notifications if n.user_id == user_id]
        rows.sort(key=lambda n: n.created_at, reverse=True)
        rows.sort(key=lambda n: n.is_read)
        return rows[:limit]

    async def mark_read(self, user_id, notification_id):
        for i, n in enumerate(self.notifications):
            if n.id == notification_id and n.user_id == user_id:
                self.notifications[i] = n.model_copy(update={"is_read": True})
                return 1
        return 0

    async def get_settings(self, user_id):
        return self.settings.get(user_id)

    async def create_default_settings(self, user_id):
        self.settings.setdefault(user_id, NotificationSettings(user_id=user_id))
        return self.settings[user_id]


class FakeMailTransport:
    def __init__(self):
        self.sent: list[dict] = []
        self.failing: set[str] = set()
        self.raising: set[str] = set()

    async def send(self, to, subject, html, text) -> MailResult:
        if to in self.raising:
            raise RuntimeError(f"connection reset sending to {to}")
        if to in self.failing:
            return MailResult(success=False, error="Mail API error: 500")
        self.sent.append({"to": to, "subject": subject, "html": html, "text": text})
        return MailResult(success=True, message_id=f"msg-{len(self.sent)}")


class StaticKeyCustodian:
    def __init__(self, key: str):
        self.key = key

    async def key_for(self, user_id):
        return self.key


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 3, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def users():
    return FakeUserRepository()


@pytest.fixture
def checkin_repo(users):
    return FakeCheckinRepository(users)


@pytest.fixture
def contact_repo():
    return FakeEmergencyContactRepository()


@pytest.fixture
def credential_repo():
    return FakeCredentialRepository()


@pytest.fixture
def share_event_repo():
    return FakeShareEventRepository()


@pytest.fixture
def notification_repo():
    return FakeNotificationRepository()


@pytest.fixture
def mail():
    return FakeMailTransport()


@pytest.fixture
def activity(checkin_repo, clock):
    return ActivityTracker(checkins=checkin_repo, clock=clock)


@pytest.fixture
def contact_service(contact_repo, clock):
    return EmergencyContactService(contacts=contact_repo, clock=clock)


@pytest.fixture
def notifications(notification_repo, clock):
    return NotificationService(notifications=notification_repo, clock=clock)


@pytest.fixture
def make_disclosure(
    credential_repo, contact_service, share_event_repo, users, activity, notifications, mail, clock
):
    def _make(custodian=None) -> DisclosureService:
        return DisclosureService(
            credentials=credential_repo,
            contacts=contact_service,
            share_events=share_event_repo,
            users=users,
            activity=activity,
            notifications=notifications,
            mail=mail,
            custodian=custodian,
            clock=clock,
        )

    return _make


@pytest.fixture
def disclosure(make_disclosure):
    return make_disclosure()


@pytest.fixture
def secret_key():
    return SECRET_KEY


@pytest.fixture
def key_custodian():
    return StaticKeyCustodian(SECRET_KEY)
