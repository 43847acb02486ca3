"""
Repository for notifications and per-user notification settings.
"""

from datetime import datetime
from typing import Any

from psycopg.types.json import Jsonb

from escrow.db.helpers import execute_query, fetch_all, fetch_one
from escrow.models.domain.escrow_domain import (
    GenericPayload,
    Notification,
    NotificationMetadata,
    NotificationPriority,
    NotificationSettings,
    NotificationType,
    metadata_adapter,
)

_COLUMNS = "id, user_id, title, message, type, priority, is_read, action_url, metadata, created_at"

_SETTINGS_COLUMNS = """
    user_id, low_balance_enabled, low_balance_threshold, due_date_enabled,
    due_date_days_before, spending_alerts_enabled, monthly_spending_limit,
    investment_alerts_enabled, password_expiry_enabled, email_notifications,
    push_notifications
"""


def _parse_metadata(raw: dict[str, Any] | None) -> NotificationMetadata | None:
    if not raw:
        return None
    if "kind" not in raw:
        # Rows written before metadata was typed.
        return GenericPayload(entity_id=raw.get("entity_id") or raw.get("entityId"), data=raw)
    return metadata_adapter.validate_python(raw)


def _row_to_notification(row: dict[str, Any]) -> Notification:
    data = dict(row)
    data["metadata"] = _parse_metadata(data.get("metadata"))
    return Notification(**data)


class NotificationRepository:
    """Persistence helpers for notifications and notification_settings."""

    async def find_recent(
        self,
        user_id: str,
        type: NotificationType,
        since: datetime,
        *,
        entity_id: str | None = None,
        title: str | None = None,
        message: str | None = None,
    ) -> Notification | None:
        """Most recent notification of the given identity created at or after since."""
        if entity_id is not None:
            identity_clause = "metadata->>'entity_id' = %s"
            identity_params: tuple = (entity_id,)
        else:
            identity_clause = "title = %s AND message = %s"
            identity_params = (title, message)

        query = f"""
            SELECT {_COLUMNS}
            FROM notifications
            WHERE user_id = %s
              AND type = %s
              AND created_at >= %s
              AND {identity_clause}
            ORDER BY created_at DESC
            LIMIT 1
        """
        row = await fetch_one(query, (user_id, str(type), since, *identity_params))
        return _row_to_notification(row) if row else None

    async def create(
        self,
        user_id: str,
        title: str,
        message: str,
        type: NotificationType,
        priority: NotificationPriority,
        created_at: datetime,
        action_url: str | None = None,
        metadata: NotificationMetadata | None = None,
        dedup_bucket: str | None = None,
    ) -> Notification:
        """Insert a notification. Raises UniqueViolation when dedup_bucket collides."""
        query = f"""
            INSERT INTO notifications (
                user_id, title, message, type, priority, action_url,
                metadata, dedup_bucket, created_at
            )
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
            RETURNING {_COLUMNS}
        """
        metadata_json = Jsonb(metadata.model_dump(mode="json")) if metadata else None
        row = await fetch_one(
            query,
            (
                user_id,
                title,
                message,
                str(type),
                str(priority),
                action_url,
                metadata_json,
                dedup_bucket,
                created_at,
            ),
        )
        return _row_to_notification(row)

    async def list_for_user(self, user_id: str, limit: int = 50) -> list[Notification]:
        query = f"""
            SELECT {_COLUMNS}
            FROM notifications
            WHERE user_id = %s
            ORDER BY is_read ASC, created_at DESC
            LIMIT %s
        """
        rows = await fetch_all(query, (user_id, limit))
        return [_row_to_notification(row) for row in rows]

    async def mark_read(self, user_id: str, notification_id: int) -> int:
        query = """
            UPDATE notifications
            SET is_read = TRUE
            WHERE id = %s AND user_id = %s
        """
        return await execute_query(query, (notification_id, user_id))

    async def get_settings(self, user_id: str) -> NotificationSettings | None:
        row = await fetch_one(
            f"SELECT {_SETTINGS_COLUMNS} FROM notification_settings WHERE user_id = %s",
            (user_id,),
        )
        return NotificationSettings(**row) if row else None

    async def create_default_settings(self, user_id: str) -> NotificationSettings:
        query = f"""
            INSERT INTO notification_settings (user_id)
            VALUES (%s)
            ON CONFLICT (user_id) DO UPDATE SET user_id = EXCLUDED.user_id
            RETURNING {_SETTINGS_COLUMNS}
        """
        row = await fetch_one(query, (user_id,))
        return NotificationSettings(**row)
