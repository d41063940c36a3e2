"""Real provider adapter for production email sending.

Mental model refresher:
- This module is an outbound adapter.
- It integrates with Mailgun using environment-variable config.
- Application code only sees a simple callable sender function.
"""

from __future__ import annotations

import base64
import os
import urllib.error
import urllib.parse
import urllib.request


def send_email_via_mailgun_from_env(
    *,
    to_email: str,
    subject: str,
    body: str,
    html_body: str | None = None,
) -> None:
    """Send email via Mailgun REST API using environment-variable config."""
    api_key = _required_env("MAILGUN_API_KEY")
    domain = _required_env("MAILGUN_DOMAIN")
    from_email = _required_env("MAILGUN_FROM_EMAIL")
    base_url = os.getenv("MAILGUN_API_BASE_URL", "https://api.mailgun.net").rstrip("/")
    timeout_seconds = float(os.getenv("MAILGUN_TIMEOUT_SECONDS", "10"))

    encoded_domain = urllib.parse.quote(domain, safe="")
    endpoint = f"{base_url}/v3/{encoded_domain}/messages"
    fields = {"from": from_email, "to": to_email, "subject": subject, "text": body}
    if html_body:
        fields["html"] = html_body
    payload = urllib.parse.urlencode(fields).encode("utf-8")

    request = urllib.request.Request(endpoint, data=payload, method="POST")
    request.add_header("Authorization", basic_auth_header("api", api_key))
    request.add_header("Content-Type", "application/x-www-form-urlencoded")

    try:
        with urllib.request.urlopen(request, timeout=timeout_seconds) as response:
            status = int(response.getcode())
            if status < 200 or status >= 300:
                raise RuntimeError(f"Mailgun email send failed with status {status}")
            response.read()
    except urllib.error.HTTPError as exc:
        details = exc.read().decode("utf-8", errors="replace")
        raise RuntimeError(
            f"Mailgun email send failed HTTP {exc.code}: {details[:300]}"
        ) from exc
    except urllib.error.URLError as exc:
        raise RuntimeError(f"Mailgun email send failed: {exc.reason}") from exc


def basic_auth_header(username: str, password: str) -> str:
    token = f"{username}:{password}".encode("utf-8")
    encoded = base64.b64encode(token).decode("ascii")
    return f"Basic {encoded}"


def _required_env(name: str) -> str:
    value = os.getenv(name)
    if value is None or not value.strip():
        raise RuntimeError(f"Missing required environment variable: {name}")
    return value.strip()
