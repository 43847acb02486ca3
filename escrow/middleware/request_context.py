"""
RequestContext middleware.

Stamps every request with:
- request_id: UUID for log correlation, echoed as X-Request-ID
- ip_address: client address (X-Forwarded-For only from trusted proxies)
- user_agent: raw User-Agent header

Check-ins store ip_address and user_agent from request.state.
"""

import uuid

import structlog
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


class RequestContextMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid.uuid4())
        request.state.request_id = request_id
        request.state.ip_address = client_ip(request)
        request.state.user_agent = request.headers.get("user-agent")

        structlog.contextvars.clear_contextvars()
        structlog.contextvars.bind_contextvars(request_id=request_id)

        logger.debug(
            "Request started",
            method=request.method,
            path=request.url.path,
        )

        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id
        return response


def client_ip(request: Request) -> str | None:
    """
    Client address, honouring X-Forwarded-For only when the direct peer is a
    configured trusted proxy.
    """
    direct = request.client.host if request.client else None

    if not settings.TRUST_X_FORWARDED_FOR or direct not in settings.TRUSTED_PROXY_IPS:
        return direct

    forwarded_for = request.headers.get("x-forwarded-for")
    if not forwarded_for:
        return direct

    # "client, proxy1, proxy2": the first hop is the original client
    return forwarded_for.split(",")[0].strip() or direct
