"""
Inactivity reminder sweep.

Emails users who have not checked in for REMINDER_THRESHOLD_DAYS, at most
once per REMINDER_COOLDOWN_DAYS. The reminder goes to the user's own address,
never to emergency contacts. Each user is handled under a per-user lock so
overlapping sweeps cannot both send.
"""

from datetime import datetime

from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger
from escrow.jobs.sweep_metrics import SweepMetrics
from escrow.models.domain.escrow_domain import (
    InactiveUser,
    InactivityPayload,
    NotificationPriority,
    NotificationType,
)
from escrow.repositories.share_event_repository import ShareEventRepository
from escrow.services.activity_tracker import ActivityTracker, activity_tracker
from escrow.services.mail.templates import render_inactivity_reminder
from escrow.services.mail.transport import MailTransport, mail_transport
from escrow.services.notification_service import (
    DedupIdentity,
    NotificationService,
    notification_service,
)
from escrow.utils.clock import Clock, utc_now, whole_days_between

logger = get_logger(__name__)


def reminder_entity_id(user_id: str) -> str:
    return f"inactivity-reminder-{user_id}"


class ReminderSweepMetrics(SweepMetrics):
    job_name = "inactivity_reminder"
    counters = ("emails_sent", "notifications_created")


class InactivityReminderJob:
    def __init__(
        self,
        activity: ActivityTracker | None = None,
        notifications: NotificationService | None = None,
        mail: MailTransport | None = None,
        locks: ShareEventRepository | None = None,
        clock: Clock = utc_now,
    ):
        self.activity = activity or activity_tracker
        self.notifications = notifications or notification_service
        self.mail = mail or mail_transport
        self.locks = locks or ShareEventRepository()
        self.clock = clock
        self.is_running = False
        self.last_run_time: datetime | None = None
        self.job_metrics = ReminderSweepMetrics()

    async def run_once(
        self, threshold_days: int | None = None, now: datetime | None = None
    ) -> dict:
        """
        Run a single reminder sweep.

        A population that cannot be read ends the run early with the failure
        as its only error.
        """
        if self.is_running:
            logger.warning("Inactivity reminder job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        threshold = threshold_days or settings.REMINDER_THRESHOLD_DAYS
        now = now or self.clock()

        try:
            self.is_running = True
            self.job_metrics.reset()

            logger.info("Starting inactivity reminder job", threshold_days=threshold)

            try:
                users = await self.activity.list_inactive_users(threshold, now)
            except Exception as e:
                self.job_metrics.record_failure(f"Failed to list inactive users: {e}")
                return self.job_metrics.summarize()

            for user in users:
                try:
                    async with self.locks.user_lock(user.user_id, scope="reminder"):
                        await self._remind_user(user, now)
                except Exception as e:
                    self.job_metrics.record_error(user.user_id, str(e) or type(e).__name__)

            self.last_run_time = now
            return self.job_metrics.summarize()

        finally:
            self.is_running = False

    async def _remind_user(self, user: InactiveUser, now: datetime) -> None:
        metrics = self.job_metrics

        if not user.email:
            metrics.record_skip(user.user_id, "no_email")
            return

        identity = DedupIdentity(
            user_id=user.user_id,
            type=NotificationType.INACTIVITY_REMINDER,
            entity_id=reminder_entity_id(user.user_id),
        )
        window = settings.REMINDER_COOLDOWN_DAYS
        if not await self.notifications.should_create(identity, window, now):
            metrics.record_skip(user.user_id, "reminded_recently")
            return

        inactive_days = (
            whole_days_between(user.last_check_in, now) if user.last_check_in else None
        )
        days_until_disclosure = (
            max(0, settings.DISCLOSURE_THRESHOLD_DAYS - inactive_days)
            if inactive_days is not None
            else 0
        )

        subject, html, text = render_inactivity_reminder(
            user.name, inactive_days, user.last_check_in, days_until_disclosure
        )
        result = await self.mail.send(user.email, subject, html, text)
        if not result.success:
            metrics.record_error(user.user_id, f"Failed to send reminder: {result.error}")
            return

        metrics.processed_users += 1
        metrics.emails_sent += 1

        message = (
            f"You haven't checked in for {inactive_days} days. "
            if inactive_days is not None
            else "You haven't checked in yet. "
        ) + f"Check in within {days_until_disclosure} days to keep your passwords private."

        notification = await self.notifications.record(
            identity,
            title="⏰ Time to check in",
            message=message,
            priority=NotificationPriority.HIGH,
            action_url="/checkin",
            metadata=InactivityPayload(
                entity_id=identity.entity_id,
                last_check_in=user.last_check_in,
                inactive_days=inactive_days,
                days_until_disclosure=days_until_disclosure,
            ),
            window_days=window,
            now=now,
        )
        if notification:
            metrics.notifications_created += 1

        logger.info(
            "Inactivity reminder sent",
            user_id=user.user_id,
            inactive_days=inactive_days,
            message_id=result.message_id,
        )


inactivity_reminder_job = InactivityReminderJob()


async def run_inactivity_reminder() -> None:
    """Worker entrypoint: one sweep, then exit."""
    await inactivity_reminder_job.run_once()
