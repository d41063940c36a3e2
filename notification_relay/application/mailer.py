"""Best-effort email delivery around an injected sender function."""

from __future__ import annotations

import asyncio

import structlog

from ..domain.message import EmailMessage
from ..types import DeliveryResult, SendEmailFn

logger = structlog.get_logger(__name__)


class Mailer:
    """Sends composed messages and reports, never raises, on failure.

    A failed send is logged and returned as an unsuccessful delivery; the
    message that triggered it is still acknowledged.
    """

    def __init__(self, send_email: SendEmailFn) -> None:
        self._send_email = send_email

    async def deliver(self, message: EmailMessage) -> DeliveryResult:
        try:
            await asyncio.to_thread(
                self._send_email,
                to_email=message.recipient,
                subject=message.subject,
                body=message.text,
                html_body=message.html,
            )
        except Exception as exc:
            logger.error(
                "email_send_failed",
                recipient=message.recipient,
                subject=message.subject,
                error=str(exc),
            )
            return _delivery(message, success=False, error=str(exc))

        logger.info("email_sent", recipient=message.recipient, subject=message.subject)
        return _delivery(message, success=True, error=None)


def _delivery(message: EmailMessage, *, success: bool, error: str | None) -> DeliveryResult:
    return {
        "recipient": message.recipient,
        "subject": message.subject,
        "success": success,
        "error": error,
    }
