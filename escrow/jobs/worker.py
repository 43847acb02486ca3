"""
One-shot sweep runner for external schedulers.

    escrow-worker inactivity_disclosure
    WORKER_JOB=inactivity_reminder escrow-worker

Opens the database pool, runs the named sweep once and exits non-zero if
the sweep raised. A population scan failure is reported in the logged
summary instead.
"""

import asyncio
import os
import sys
from collections.abc import Awaitable, Callable

from escrow.db.pool import db_pool
from escrow.infrastructure.observability.logging import get_logger, setup_logging
from escrow.jobs.inactivity_disclosure_job import run_inactivity_disclosure
from escrow.jobs.inactivity_reminder_job import run_inactivity_reminder

logger = get_logger(__name__)

SweepEntrypoint = Callable[[], Awaitable[None]]

JOB_REGISTRY: dict[str, SweepEntrypoint] = {
    "inactivity_disclosure": run_inactivity_disclosure,
    "inactivity_reminder": run_inactivity_reminder,
}

DEFAULT_JOB = "inactivity_reminder"


def _resolve_job_name() -> str:
    """First CLI argument, else WORKER_JOB, else the reminder sweep."""
    raw = sys.argv[1] if len(sys.argv) > 1 else os.getenv("WORKER_JOB", DEFAULT_JOB)
    return raw.strip().lower()


async def run_worker(job_name: str | None = None) -> None:
    name = (job_name or _resolve_job_name()).strip().lower()
    entrypoint = JOB_REGISTRY.get(name)
    if entrypoint is None:
        raise ValueError(
            f"Unknown worker job '{name}'. Available jobs: {', '.join(sorted(JOB_REGISTRY))}"
        )

    logger.info("Running sweep", job=name)
    await entrypoint()


async def _run_with_pool(job_name: str) -> None:
    await db_pool.initialize()
    try:
        await run_worker(job_name)
    finally:
        await db_pool.close()


def main() -> None:
    setup_logging()
    job_name = _resolve_job_name()
    try:
        asyncio.run(_run_with_pool(job_name))
    except Exception as e:
        logger.error("Sweep did not complete", job=job_name, error=str(e), error_type=type(e).__name__)
        sys.exit(1)


if __name__ == "__main__":
    main()
