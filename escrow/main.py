# escrow/main.py
"""
HTTP entrypoint: check-ins, emergency contacts, on-demand disclosure, the
notification inbox, and the cron triggers for the inactivity sweeps.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from escrow.config import settings
from escrow.db.pool import db_pool
from escrow.infrastructure.observability.logging import get_logger, log_request, setup_logging
from escrow.middleware import RequestContextMiddleware
from escrow.routes import checkins, cron, disclosure, emergency_contacts, health, notifications

setup_logging(log_level="DEBUG" if settings.debug else "INFO")
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Application starting",
        environment=settings.environment,
        debug=settings.debug,
        **settings.get_inactivity_config(),
    )
    await db_pool.initialize()

    yield

    logger.info("Application shutting down")
    await db_pool.close()


app = FastAPI(
    title="Credential Escrow",
    description="Inactivity-triggered credential escrow and disclosure",
    version="0.1.0",
    lifespan=lifespan,
)

for module in (health, checkins, emergency_contacts, disclosure, notifications, cron):
    app.include_router(module.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    log_request(
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round((time.perf_counter() - started) * 1000, 2),
    )
    return response


# Added last so it wraps log_requests and the request_id is bound for it.
app.add_middleware(RequestContextMiddleware)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
