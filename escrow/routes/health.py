# escrow/routes/health.py
"""
Liveness and readiness endpoints.

/readyz always answers 200; callers read overall_ok. Readiness needs a
working database pool and the secrets that the auth, cron and mail paths
refuse to run without.
"""

import time

from fastapi import APIRouter

from escrow.config import settings
from escrow.db.pool import db_health_check

router = APIRouter()

REQUIRED_SECRETS = ("JWT_SECRET", "CRON_SECRET", "MAIL_API_KEY")


@router.get("/healthz")
async def healthz():
    """Always 200 while the process is serving."""
    return {"status": "ok", "service": "credential-escrow"}


async def _database_check() -> dict:
    started = time.perf_counter()
    try:
        result = await db_health_check()
    except Exception as e:
        result = {"healthy": False, "error": f"{type(e).__name__}: {e}"}

    check = {
        "ok": bool(result.get("healthy")),
        "latency_ms": round((time.perf_counter() - started) * 1000, 1),
        **result.get("pool_stats", {}),
    }
    if not check["ok"]:
        check["error"] = result.get("error", "Database unhealthy")
    return check


def _configuration_check() -> dict:
    issues = [f"{name} not set" for name in REQUIRED_SECRETS if not getattr(settings, name)]
    return {
        "ok": not issues,
        "issues": issues or None,
        "environment": settings.environment,
    }


@router.get("/readyz")
async def readyz():
    checks = {
        "database": await _database_check(),
        "configuration": _configuration_check(),
    }
    return {
        "overall_ok": all(check["ok"] for check in checks.values()),
        "checks": checks,
        "timestamp": time.time(),
    }
