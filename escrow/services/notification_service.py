"""
In-app notifications with windowed deduplication.

A notification's identity is (user, type, entity_id) when its metadata names
an entity, otherwise (user, type, title, message). At most one notification
per identity is created inside the trailing window, whether or not the
earlier one was read.
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime, timedelta

from escrow.config import settings
from escrow.db.helpers import UniqueViolation
from escrow.infrastructure.observability.logging import get_logger
from escrow.models.domain.escrow_domain import (
    Notification,
    NotificationMetadata,
    NotificationPriority,
    NotificationSettings,
    NotificationType,
)
from escrow.repositories.notification_repository import NotificationRepository
from escrow.utils.clock import Clock, utc_now

logger = get_logger(__name__)

SHORT_WINDOW_TYPES = frozenset(
    {NotificationType.INACTIVITY_REMINDER, NotificationType.INACTIVITY_WARNING}
)
SHORT_WINDOW_DAYS = 7


@dataclass(frozen=True, slots=True)
class DedupIdentity:
    user_id: str
    type: NotificationType
    entity_id: str | None = None
    title: str | None = None
    message: str | None = None

    @property
    def key(self) -> str:
        raw = self.entity_id if self.entity_id is not None else f"{self.title}\n{self.message}"
        return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:16]


def identity_for(
    user_id: str,
    type: NotificationType,
    title: str,
    message: str,
    metadata: NotificationMetadata | None = None,
) -> DedupIdentity:
    entity_id = metadata.entity_id if metadata is not None else None
    if entity_id:
        return DedupIdentity(user_id=user_id, type=type, entity_id=entity_id)
    return DedupIdentity(user_id=user_id, type=type, title=title, message=message)


def default_window_days(type: NotificationType) -> int:
    if type in SHORT_WINDOW_TYPES:
        return SHORT_WINDOW_DAYS
    return settings.NOTIFICATION_DEDUP_DAYS


def dedup_bucket(identity: DedupIdentity, window_days: int, now: datetime) -> str:
    """Stable per-window token; the unique index on it rejects racing inserts."""
    epoch_days = int(now.timestamp() // 86400)
    return f"{identity.key}:{epoch_days // max(window_days, 1)}"


class NotificationService:
    def __init__(self, notifications: NotificationRepository | None = None, clock: Clock = utc_now):
        self.notifications = notifications or NotificationRepository()
        self.clock = clock

    async def should_create(
        self, identity: DedupIdentity, window_days: int, now: datetime | None = None
    ) -> bool:
        since = (now or self.clock()) - timedelta(days=window_days)
        existing = await self.notifications.find_recent(
            identity.user_id,
            identity.type,
            since,
            entity_id=identity.entity_id,
            title=identity.title,
            message=identity.message,
        )
        return existing is None

    async def record(
        self,
        identity: DedupIdentity,
        title: str,
        message: str,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        action_url: str | None = None,
        metadata: NotificationMetadata | None = None,
        window_days: int | None = None,
        now: datetime | None = None,
    ) -> Notification | None:
        """Insert without checking first. Returns None if a racing insert already won."""
        now = now or self.clock()
        window = window_days or default_window_days(identity.type)

        try:
            return await self.notifications.create(
                identity.user_id,
                title=title,
                message=message,
                type=identity.type,
                priority=priority,
                created_at=now,
                action_url=action_url,
                metadata=metadata,
                dedup_bucket=dedup_bucket(identity, window, now),
            )
        except UniqueViolation:
            logger.info(
                "Notification already exists for window",
                user_id=identity.user_id,
                notification_type=str(identity.type),
            )
            return None

    async def create_notification(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType,
        priority: NotificationPriority = NotificationPriority.NORMAL,
        action_url: str | None = None,
        metadata: NotificationMetadata | None = None,
        window_days: int | None = None,
    ) -> Notification | None:
        """
        Create a notification unless a duplicate exists in the window.

        Never raises: failures are logged and reported as None so that
        notification problems cannot break the calling workflow.
        """
        identity = identity_for(user_id, type, title, message, metadata)
        window = window_days or default_window_days(type)
        now = self.clock()

        try:
            if not await self.should_create(identity, window, now):
                logger.debug(
                    "Duplicate notification suppressed",
                    user_id=user_id,
                    notification_type=str(type),
                    window_days=window,
                )
                return None

            notification = await self.record(
                identity,
                title,
                message,
                priority=priority,
                action_url=action_url,
                metadata=metadata,
                window_days=window,
                now=now,
            )
            if notification:
                logger.info(
                    "Notification created",
                    user_id=user_id,
                    notification_id=notification.id,
                    notification_type=str(type),
                )
            return notification

        except Exception as e:
            logger.error(
                "Failed to create notification",
                user_id=user_id,
                notification_type=str(type),
                error=str(e),
            )
            return None

    async def get_or_create_settings(self, user_id: str) -> NotificationSettings:
        existing = await self.notifications.get_settings(user_id)
        if existing:
            return existing
        return await self.notifications.create_default_settings(user_id)

    async def list_notifications(self, user_id: str, limit: int = 50) -> list[Notification]:
        return await self.notifications.list_for_user(user_id, limit)

    async def mark_read(self, user_id: str, notification_id: int) -> bool:
        updated = await self.notifications.mark_read(user_id, notification_id)
        return updated > 0


notification_service = NotificationService()
