"""
Structured JSON logging for the credential escrow service.

Request-scoped fields (request_id) are bound through structlog contextvars
by RequestContextMiddleware and merged into every line. Secret material is
redacted by key name before rendering.
"""

import logging
import sys
from typing import Any

import structlog
from structlog.stdlib import LoggerFactory

# Keys that must never reach a log line, even if a caller passes them by mistake.
REDACTED_KEYS = frozenset({"secret_key", "password", "pin", "plaintext", "authorization"})

_NOISY_LOGGERS = ("httpx", "httpcore", "uvicorn.access")


def setup_logging(log_level: str = "INFO") -> None:
    """
    Configure structlog and stdlib logging to emit one JSON object per line.

    Args:
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
    """
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            _redact_secrets,
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=LoggerFactory(),
        context_class=dict,
        cache_logger_on_first_use=True,
    )

    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=getattr(logging, log_level.upper()),
    )

    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def _redact_secrets(logger, method_name: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    for key in REDACTED_KEYS.intersection(event_dict):
        event_dict[key] = "[REDACTED]"
    return event_dict


def get_logger(name: str = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def log_job_summary(job: str, summary: dict[str, Any]) -> None:
    """Log a sweep completion with consistent fields."""
    logger = get_logger("jobs")

    errors = summary.get("errors") or []
    fields = {
        "job_run": job,
        "event_type": "job_completed",
        **{k: v for k, v in summary.items() if k != "errors"},
        "error_count": len(errors),
    }

    if errors:
        # Full list goes to the log; HTTP callers only get a preview.
        logger.warning("Job completed with errors", errors=errors, **fields)
    else:
        logger.info("Job completed", **fields)


def log_request(method: str, path: str, status_code: int, duration_ms: float) -> None:
    """One line per HTTP request; 4xx and 5xx log at warning."""
    logger = get_logger("http")
    level = logging.WARNING if status_code >= 400 else logging.INFO
    logger.log(
        level,
        "HTTP request",
        method=method,
        path=path,
        status_code=status_code,
        duration_ms=duration_ms,
        event_type="http_request",
    )
