"""
Activity tracker.

Check-ins are explicit proof-of-life events recorded by the user. Inactivity
is always computed on demand from the stored check-ins; nothing here runs on
a timer or caches state between calls.
"""

from datetime import datetime, timedelta

from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger
from escrow.models.domain.escrow_domain import CheckIn, InactiveUser, InactivityStatus
from escrow.repositories.checkin_repository import CheckinRepository
from escrow.utils.clock import Clock, utc_now, whole_days_between

logger = get_logger(__name__)


class ActivityTracker:
    def __init__(self, checkins: CheckinRepository | None = None, clock: Clock = utc_now):
        self.checkins = checkins or CheckinRepository()
        self.clock = clock

    async def record_check_in(
        self, user_id: str, ip_address: str | None = None, user_agent: str | None = None
    ) -> CheckIn:
        """Append a check-in stamped with the current time. Never creates notifications."""
        checkin = await self.checkins.create(
            user_id,
            checkin_at=self.clock(),
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info("User check-in recorded", user_id=user_id, checkin_id=checkin.id)
        return checkin

    async def last_check_in(self, user_id: str) -> datetime | None:
        return await self.checkins.latest(user_id)

    async def inactivity_days(self, user_id: str, now: datetime | None = None) -> int | None:
        """Whole days since the last check-in, or None if the user never checked in."""
        last = await self.last_check_in(user_id)
        if last is None:
            return None
        return max(0, whole_days_between(last, now or self.clock()))

    async def inactive_for(self, user_id: str, days: int, now: datetime | None = None) -> bool:
        """
        True if the user has not checked in for more than `days`.
        A user with no check-ins is always inactive.
        """
        last = await self.last_check_in(user_id)
        if last is None:
            return True
        return (now or self.clock()) - last > timedelta(days=days)

    async def list_inactive_users(
        self, days: int, now: datetime | None = None
    ) -> list[InactiveUser]:
        """Population scan; includes users who never checked in."""
        cutoff = (now or self.clock()) - timedelta(days=days)
        users = await self.checkins.list_inactive(cutoff)
        logger.info("Inactive users scanned", threshold_days=days, user_count=len(users))
        return users

    async def check_in_history(self, user_id: str, limit: int = 10) -> list[CheckIn]:
        return await self.checkins.history(user_id, limit)

    async def inactivity_status(
        self, user_id: str, now: datetime | None = None
    ) -> InactivityStatus:
        """How close the user is to the disclosure threshold."""
        threshold = settings.DISCLOSURE_THRESHOLD_DAYS
        days = await self.inactivity_days(user_id, now)

        if days is None:
            return InactivityStatus(
                should_warn=True,
                never_checked_in=True,
                days_since_last_check_in=None,
                days_until_disclosure=0,
            )

        return InactivityStatus(
            should_warn=days >= settings.INACTIVITY_WARNING_DAYS,
            never_checked_in=False,
            days_since_last_check_in=days,
            days_until_disclosure=max(0, threshold - days),
        )


activity_tracker = ActivityTracker()
