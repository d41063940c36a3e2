#!/usr/bin/env python3
"""Run the decode -> dispatch -> ack/reject flow without Kafka or a database."""

from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from typing import Any

# Allow running this file directly from repository root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from notification_relay.adapters.consumer_handler import handle_batch  # noqa: E402
from notification_relay.adapters.fake_senders import send_email_via_console  # noqa: E402
from notification_relay.application.enrichment import EnrichmentGateway  # noqa: E402
from notification_relay.application.handlers import OrderEventHandler  # noqa: E402
from notification_relay.application.mailer import Mailer  # noqa: E402
from notification_relay.domain.events import UserRecord  # noqa: E402
from notification_relay.observability import configure_logging  # noqa: E402

USERS = {
    "1": UserRecord(id="1", username="buyer", email="buyer@example.com", role="CUSTOMER"),
    "7": UserRecord(id="7", username="seller7", email="seller7@example.com", role="SHOP_OWNER"),
    "9": UserRecord(id="9", username="seller9", email="fail-email@example.com", role="SHOP_OWNER"),
}
STOCK = {"Widget": 12}


class DemoUsers:
    def get_user(self, user_id: str) -> UserRecord | None:
        return USERS.get(user_id)


class DemoIndex:
    def find_product(self, title: str) -> dict[str, Any] | None:
        if title == "Broken":
            raise RuntimeError("search index unavailable")
        if title not in STOCK:
            return None
        return {"title": title, "quantity": STOCK[title]}


def main() -> int:
    configure_logging("INFO", "console")
    acked: list[int] = []
    rejected: list[tuple[int, str]] = []

    def ack(record: dict[str, Any]) -> None:
        acked.append(int(record["offset"]))

    def reject(record: dict[str, Any], reason: str) -> None:
        rejected.append((int(record["offset"]), reason))

    handler = OrderEventHandler(
        EnrichmentGateway(DemoUsers(), DemoIndex()),
        Mailer(send_email_maybe_fail),
    )
    results = asyncio.run(
        handle_batch(sample_records(), handler=handler, ack=ack, reject=reject, timeout_seconds=5)
    )

    print("")
    print("[BATCH SUMMARY]")
    for result in results:
        meta = result["record_meta"]
        print(f"offset={meta['offset']} status={result['status']} error={result['error']}")
        for delivery in (result["processing"] or {}).get("deliveries", []):
            print(
                f"  -> {delivery['recipient']} subject={delivery['subject']!r} "
                f"success={delivery['success']}"
            )
        for reason in (result["processing"] or {}).get("skipped", []):
            print(f"  -- skipped: {reason}")

    print("")
    print("[SETTLEMENTS]")
    print(f"acked={sorted(acked)}")
    print(f"rejected={sorted(rejected)}")
    return 0


def send_email_maybe_fail(
    *, to_email: str, subject: str, body: str, html_body: str | None = None
) -> None:
    if to_email == "fail-email@example.com":
        raise RuntimeError("email provider unavailable")
    send_email_via_console(to_email=to_email, subject=subject, body=body, html_body=html_body)


def sample_records() -> list[dict[str, Any]]:
    topic = "order_events_for_notifications"
    payloads: list[Any] = [
        {
            "type": "order_placed",
            "data": {
                "userId": 1,
                "sellerIds": [7, 8],
                "titles": ["Widget", "Gadget"],
                "quantities": [2, 1],
            },
        },
        {
            "type": "order_deleted",
            "data": {"userId": 404, "sellerIds": ["9"], "titles": ["Broken"], "quantities": [3]},
        },
        {"type": "order_shipped", "data": {}},
    ]
    records = [
        {"topic": topic, "partition": 0, "offset": 100 + index, "value": json.dumps(payload).encode()}
        for index, payload in enumerate(payloads)
    ]
    records.append({"topic": topic, "partition": 0, "offset": 103, "value": b"{oops"})
    return records


if __name__ == "__main__":
    sys.exit(main())
