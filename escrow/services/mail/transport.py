# escrow/services/mail/transport.py
"""
Outbound mail transport.

Posts messages to a Resend-compatible REST endpoint. Every send is bounded by
MAIL_TIMEOUT_SECONDS and is never retried; callers record failures and move on.
"""

from dataclasses import dataclass
from typing import Protocol

import httpx

from escrow.config import settings
from escrow.infrastructure.observability.logging import get_logger

logger = get_logger(__name__)


@dataclass(slots=True)
class MailResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


class MailTransport(Protocol):
    async def send(self, to: str, subject: str, html: str, text: str) -> MailResult: ...


class HttpMailTransport:
    """MailTransport backed by an HTTP mail API."""

    def __init__(
        self,
        api_url: str | None = None,
        api_key: str | None = None,
        sender: str | None = None,
        timeout: float | None = None,
        http_transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url or settings.MAIL_API_URL
        self.api_key = api_key if api_key is not None else settings.MAIL_API_KEY
        self.sender = sender or settings.MAIL_FROM
        self.timeout = timeout or settings.MAIL_TIMEOUT_SECONDS
        self.http_transport = http_transport

    async def send(self, to: str, subject: str, html: str, text: str) -> MailResult:
        if not self.api_key:
            logger.error("Mail API key not configured", recipient=to)
            return MailResult(success=False, error="Mail transport not configured")

        payload = {
            "from": self.sender,
            "to": [to],
            "subject": subject,
            "html": html,
            "text": text,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.http_transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.TimeoutException as e:
            logger.warning("Mail send timed out", recipient=to, timeout=self.timeout)
            return MailResult(success=False, error=f"Timed out after {self.timeout}s: {e}")
        except httpx.RequestError as e:
            logger.warning(
                "Mail send network error",
                recipient=to,
                error=str(e),
                error_type=type(e).__name__,
            )
            return MailResult(success=False, error=f"Network error: {e}")

        if not response.is_success:
            logger.warning(
                "Mail API rejected message",
                recipient=to,
                status_code=response.status_code,
                response_preview=response.text[:200],
            )
            return MailResult(
                success=False, error=f"Mail API error: {response.status_code}"
            )

        try:
            body = response.json()
        except ValueError:
            body = None
        message_id = body.get("id") if isinstance(body, dict) else None

        logger.info("Mail sent", recipient=to, message_id=message_id)
        return MailResult(success=True, message_id=message_id)


mail_transport = HttpMailTransport()
