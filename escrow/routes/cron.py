"""
cron.py
-------
Purpose:
    Trigger surface for the external scheduler. Each call runs one sweep and
    returns a summary. POST is accepted as well as GET for manual runs.

Auth:
    Authorization: Bearer <CRON_SECRET>. Anything else is a 401 and no work
    is done.

Per-user failures are data (200 with errors listed); only a sweep that
could not run at all returns 500. The response carries the first
SWEEP_ERROR_PREVIEW errors; the full list is logged.
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from escrow.auth.verify import cron_auth_dependency
from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger
from escrow.jobs.inactivity_disclosure_job import inactivity_disclosure_job
from escrow.jobs.inactivity_reminder_job import inactivity_reminder_job
from escrow.models.api.escrow_response import SweepResponse

router = APIRouter(
    prefix="/cron", tags=["cron"], dependencies=[Depends(cron_auth_dependency)]
)
logger = get_logger(__name__)


def _preview(summary: dict, counters: tuple[str, ...]) -> dict:
    errors = summary.get("errors", [])
    return {
        "processed_users": summary.get("processed_users", 0),
        **{name: summary.get(name, 0) for name in counters},
        "skipped_users": summary.get("skipped_users", 0),
        "error_count": len(errors),
        "errors": errors[: settings.SWEEP_ERROR_PREVIEW],
    }


async def _run_sweep(job, label: str, counters: tuple[str, ...]):
    logger.info("Cron sweep triggered", job_run=label)

    try:
        summary = await job.run_once()
    except Exception as e:
        logger.error("Cron sweep failed", job_run=label, error=str(e), error_type=type(e).__name__)
        return JSONResponse(
            status_code=500,
            content={"success": False, "error": str(e) or "Unknown error occurred"},
        )

    if summary.get("skipped"):
        return SweepResponse(
            success=False,
            message=f"{label} already running",
            result={"skipped": True, "reason": summary.get("reason")},
        )

    return SweepResponse(
        success=True,
        message=f"{label} completed",
        result=_preview(summary, counters),
    )


@router.api_route("/inactivity-disclosure", methods=["GET", "POST"], response_model=SweepResponse)
async def trigger_disclosure_sweep():
    return await _run_sweep(
        inactivity_disclosure_job,
        "Inactivity disclosure sweep",
        ("successful_shares", "warnings_created"),
    )


@router.api_route("/inactivity-reminder", methods=["GET", "POST"], response_model=SweepResponse)
async def trigger_reminder_sweep():
    return await _run_sweep(
        inactivity_reminder_job,
        "Inactivity reminder sweep",
        ("emails_sent", "notifications_created"),
    )
