#!/usr/bin/env python3
"""Run the notification relay: queue consumers plus the read API.

Consumers for all four queues start with the API and stop with it.
"""

from __future__ import annotations

import argparse
import sys
from pathlib import Path

# Allow running this file directly from repository root.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

import structlog  # noqa: E402
import uvicorn  # noqa: E402

from notification_relay.adapters.product_index import ElasticsearchProductIndex  # noqa: E402
from notification_relay.adapters.record_store import SqlRecordStore  # noqa: E402
from notification_relay.api import create_app  # noqa: E402
from notification_relay.config import load_env_file, load_settings  # noqa: E402
from notification_relay.observability import configure_logging  # noqa: E402
from notification_relay.service import build_notification_service  # noqa: E402


def main() -> int:
    args = parse_args()
    load_env_file(REPO_ROOT / ".env")
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_format)
    logger = structlog.get_logger("notification_relay.run")

    store = SqlRecordStore(settings.database_url)
    store.create_schema()
    service = build_notification_service(
        settings,
        store=store,
        products=ElasticsearchProductIndex.from_settings(settings),
    )
    app = create_app(store, service)

    port = args.port or settings.port
    logger.info("notification_relay_starting", port=port, mail_backend=settings.mail_backend)
    try:
        uvicorn.run(app, host=args.host, port=port, log_config=None)
    finally:
        store.dispose()
    return 0


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Run queue consumers and the notifications read API."
    )
    parser.add_argument("--host", default="0.0.0.0", help="Interface for the read API.")
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port for the read API (defaults to PORT, then 7000).",
    )
    return parser.parse_args()


if __name__ == "__main__":
    sys.exit(main())
