#!/usr/bin/env python3
"""Publish one `{type, data}` event to a notification queue for local testing."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

# Allow running this file directly from repository root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from notification_relay.adapters.kafka_runtime import publish_event  # noqa: E402
from notification_relay.config import load_env_file, load_settings  # noqa: E402
from notification_relay.service import (  # noqa: E402
    AUTH_EVENTS_QUEUE,
    ORDER_EVENTS_QUEUE,
    PRODUCT_EVENTS_QUEUE,
    USER_DATA_SYNC_QUEUE,
)

QUEUES = (PRODUCT_EVENTS_QUEUE, ORDER_EVENTS_QUEUE, AUTH_EVENTS_QUEUE, USER_DATA_SYNC_QUEUE)


def main() -> int:
    load_env_file(REPO_ROOT / ".env")
    args = parse_args()
    payload = build_payload(args)
    metadata = publish_event(payload, topic=args.queue, settings=load_settings())

    print("[PUBLISHED]")
    print(f"topic={metadata['topic']}")
    print(f"partition={metadata['partition']}")
    print(f"offset={metadata['offset']}")
    print(f"type={payload.get('type', '(bare record)')}")
    return 0


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Publish one event to a notification queue."
    )
    parser.add_argument("--queue", required=True, choices=QUEUES, help="Target queue.")
    parser.add_argument(
        "--type",
        default=None,
        help="Event type, e.g. user_created or order_placed. Omit for a bare user sync record.",
    )
    parser.add_argument(
        "--data",
        required=True,
        help='Event data as a JSON object, e.g. \'{"userId": 7}\'.',
    )
    return parser.parse_args()


def build_payload(args: argparse.Namespace) -> dict[str, object]:
    try:
        data = json.loads(args.data)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"--data is not valid JSON: {exc}")
    if not isinstance(data, dict):
        raise SystemExit("--data must be a JSON object.")
    if args.type is None:
        return data
    return {"type": args.type, "data": data}


if __name__ == "__main__":
    sys.exit(main())
