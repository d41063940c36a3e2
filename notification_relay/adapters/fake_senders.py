"""Console sender adapter for local development.

Mental model refresher:
- This is outbound adapter code with the same signature as the Mailgun
  adapter, so it can be swapped in with `MAIL_BACKEND=console`.
"""

from __future__ import annotations

import structlog

logger = structlog.get_logger(__name__)


def send_email_via_console(
    *,
    to_email: str,
    subject: str,
    body: str,
    html_body: str | None = None,
) -> None:
    logger.info(
        "email_printed",
        to=to_email,
        subject=subject,
        body=body,
        html_length=len(html_body or ""),
    )
