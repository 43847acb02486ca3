"""
Shared bookkeeping for the inactivity sweeps.
"""

from escrow.infrastructure.observability.logging import get_logger, log_job_summary
from escrow.utils.clock import utc_now

logger = get_logger(__name__)


class SweepMetrics:
    """Counters for one sweep run. Subclasses declare their extra counters."""

    job_name = "sweep"
    counters: tuple[str, ...] = ()

    def __init__(self):
        self.reset()

    def reset(self):
        self.start_time = utc_now()
        self.total_duration_seconds = 0.0
        self.processed_users = 0
        self.skipped_users = 0
        self.errors: list[str] = []
        for name in self.counters:
            setattr(self, name, 0)

    def record_skip(self, user_id: str, reason: str):
        self.skipped_users += 1
        logger.debug("User skipped", user_id=user_id, reason=reason, job_run=self.job_name)

    def record_error(self, user_id: str, error: str):
        self.errors.append(f"User {user_id}: {error}")
        logger.error("Sweep user failed", user_id=user_id, error=error, job_run=self.job_name)

    def record_failure(self, error: str):
        """A failure that stopped the run before any user was visited."""
        self.errors.append(error)
        logger.error("Sweep could not run", error=error, job_run=self.job_name)

    def finalize(self):
        self.total_duration_seconds = (utc_now() - self.start_time).total_seconds()

    def to_dict(self) -> dict:
        return {
            "job_run": self.job_name,
            "start_time": self.start_time.isoformat(),
            "total_duration_seconds": round(self.total_duration_seconds, 2),
            "processed_users": self.processed_users,
            **{name: getattr(self, name) for name in self.counters},
            "skipped_users": self.skipped_users,
            "errors": list(self.errors),
        }

    def summarize(self) -> dict:
        self.finalize()
        summary = self.to_dict()
        log_job_summary(self.job_name, summary)
        return summary
