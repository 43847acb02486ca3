from collections.abc import Callable
from datetime import UTC, datetime

Clock = Callable[[], datetime]

SECONDS_PER_DAY = 24 * 60 * 60


def utc_now() -> datetime:
    return datetime.now(UTC)


def whole_days_between(earlier: datetime, later: datetime) -> int:
    """Elapsed whole days, floored."""
    return int((later - earlier).total_seconds() // SECONDS_PER_DAY)
