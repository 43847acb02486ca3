"""
Inactivity disclosure sweep.

One-shot job invoked by an external scheduler. Finds users past the
disclosure threshold and runs the automatic disclosure for each. Users are
processed sequentially and independently; one user's failure never stops
the sweep.
"""

from datetime import datetime

from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger
from escrow.jobs.sweep_metrics import SweepMetrics
from escrow.models.domain.escrow_domain import AutomaticOutcome, InactiveUser
from escrow.services.activity_tracker import ActivityTracker, activity_tracker
from escrow.services.disclosure_service import DisclosureService, disclosure_service
from escrow.utils.clock import Clock, utc_now

logger = get_logger(__name__)


class DisclosureSweepMetrics(SweepMetrics):
    job_name = "inactivity_disclosure"
    counters = ("successful_shares", "warnings_created")


class InactivityDisclosureJob:
    def __init__(
        self,
        activity: ActivityTracker | None = None,
        disclosure: DisclosureService | None = None,
        clock: Clock = utc_now,
    ):
        self.activity = activity or activity_tracker
        self.disclosure = disclosure or disclosure_service
        self.clock = clock
        self.is_running = False
        self.last_run_time: datetime | None = None
        self.job_metrics = DisclosureSweepMetrics()

    async def run_once(
        self, threshold_days: int | None = None, now: datetime | None = None
    ) -> dict:
        """
        Run a single sweep.

        Returns:
            Dict: processed_users, successful_shares, warnings_created,
            skipped_users and errors ("User <id>: <message>"). When the
            population cannot be read the run ends early with that failure
            as its only error.
        """
        if self.is_running:
            logger.warning("Inactivity disclosure job already running, skipping this iteration")
            return {"skipped": True, "reason": "already_running"}

        threshold = threshold_days or settings.DISCLOSURE_THRESHOLD_DAYS
        now = now or self.clock()

        try:
            self.is_running = True
            self.job_metrics.reset()

            logger.info("Starting inactivity disclosure job", threshold_days=threshold)

            try:
                users = await self.activity.list_inactive_users(threshold, now)
            except Exception as e:
                self.job_metrics.record_failure(f"Failed to list inactive users: {e}")
                return self.job_metrics.summarize()

            for user in users:
                await self._process_user(user, now)

            self.last_run_time = now
            return self.job_metrics.summarize()

        finally:
            self.is_running = False

    async def _process_user(self, user: InactiveUser, now: datetime) -> None:
        metrics = self.job_metrics

        try:
            outcome = await self.disclosure.run_automatic_disclosure(user, now)
        except Exception as e:
            metrics.record_error(user.user_id, str(e) or type(e).__name__)
            return

        if outcome in (
            AutomaticOutcome.SKIPPED_NO_CONTACTS,
            AutomaticOutcome.SKIPPED_COOLDOWN,
            AutomaticOutcome.ALREADY_WARNED,
        ):
            metrics.record_skip(user.user_id, str(outcome))
            return

        metrics.processed_users += 1
        if outcome == AutomaticOutcome.WARNED:
            metrics.warnings_created += 1
        elif outcome == AutomaticOutcome.DISCLOSED:
            metrics.successful_shares += 1
        else:
            metrics.record_error(user.user_id, "Automatic disclosure failed")


inactivity_disclosure_job = InactivityDisclosureJob()


async def run_inactivity_disclosure() -> None:
    """Worker entrypoint: one sweep, then exit."""
    await inactivity_disclosure_job.run_once()
