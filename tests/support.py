"""In-memory collaborators shared by the test modules."""

from __future__ import annotations

import threading
import time
from typing import Any

from notification_relay.domain.events import UserRecord


class InMemoryUsers:
    def __init__(self, *users: UserRecord, failing_ids: set[str] | None = None) -> None:
        self.users = {user.id: user for user in users}
        self.failing_ids = failing_ids or set()
        self.lookups: list[str] = []
        self._lock = threading.Lock()

    def get_user(self, user_id: str) -> UserRecord | None:
        with self._lock:
            self.lookups.append(user_id)
        if user_id in self.failing_ids:
            raise RuntimeError(f"store unavailable for {user_id}")
        return self.users.get(user_id)

    def upsert_user(self, user: UserRecord) -> UserRecord:
        with self._lock:
            self.users[user.id] = user
        return user


class FakeProductIndex:
    def __init__(self, quantities: dict[str, Any] | None = None, *, fail: bool = False) -> None:
        self.quantities = quantities or {}
        self.fail = fail

    def find_product(self, title: str) -> dict[str, Any] | None:
        if self.fail:
            raise RuntimeError("search index unreachable")
        if title not in self.quantities:
            return None
        return {"title": title, "quantity": self.quantities[title]}


class SlowPollConsumer:
    """Kafka consumer whose empty polls block; records whether `close` overlapped one."""

    def __init__(self, delay_seconds: float) -> None:
        self.delay_seconds = delay_seconds
        self.polling = False
        self.polls = 0
        self.closed = False
        self.closed_during_poll: bool | None = None

    def poll(self, *, timeout_ms: int, max_records: int) -> dict[Any, Any]:
        self.polling = True
        try:
            time.sleep(self.delay_seconds)
            self.polls += 1
            return {}
        finally:
            self.polling = False

    def commit(self, *, offsets: dict[Any, Any]) -> None:
        pass

    def close(self) -> None:
        self.closed_during_poll = self.polling
        self.closed = True


class RecordingSender:
    """Thread-safe fake email sender; `failing_recipients` raise on send."""

    def __init__(self, failing_recipients: set[str] | None = None) -> None:
        self.sent: list[dict[str, Any]] = []
        self.failing_recipients = failing_recipients or set()
        self._lock = threading.Lock()

    def __call__(
        self,
        *,
        to_email: str,
        subject: str,
        body: str,
        html_body: str | None = None,
    ) -> None:
        if to_email in self.failing_recipients:
            raise RuntimeError("mail provider unavailable")
        with self._lock:
            self.sent.append(
                {"to_email": to_email, "subject": subject, "body": body, "html_body": html_body}
            )

    def recipients(self) -> list[str]:
        return sorted(item["to_email"] for item in self.sent)


def make_user(user_id: str, *, role: str | None = "CUSTOMER") -> UserRecord:
    return UserRecord(
        id=user_id,
        username=f"user{user_id}",
        email=f"user{user_id}@example.com",
        role=role,
    )
