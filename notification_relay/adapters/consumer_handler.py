"""Consumer-handler adapter functions.

Mental model refresher:
- This is the controller-like entrypoint for event processing.
- The broker runtime calls this after polling a record.
- Flow:
  record -> decode adapter -> dispatch handler -> ack/reject decision
- This module owns transport lifecycle behavior (decode errors, timeouts,
  ack/reject callbacks), not notification rules.

Ack policy:
- Ack when the handler returns, whatever it reported about individual
  emails (mail failures are best-effort and already logged).
- Reject without requeue on decode failures, handler exceptions and
  handler timeouts. The handler is never called for an undecodable record.
- A timeout cancels the handler coroutine. A blocking call it already handed
  to a worker thread (a mail send, a store write) still runs to completion,
  but no further call starts after the cancellation.
"""

from __future__ import annotations

import asyncio
import functools
from typing import Any, Callable, Mapping, Sequence

import structlog

from ..types import EventHandlerFn
from .payload import decode_message_body, parse_event

logger = structlog.get_logger(__name__)

Record = Mapping[str, Any]
AckFn = Callable[[Record], None]
RejectFn = Callable[[Record, str], None]


async def handle_message(
    record: Record,
    *,
    handler: EventHandlerFn,
    ack: AckFn,
    reject: RejectFn,
    timeout_seconds: float | None = None,
    default_event_type: str | None = None,
) -> dict[str, Any]:
    """Handle one incoming record and settle it with exactly one ack or reject."""
    meta = record_meta(record)
    with structlog.contextvars.bound_contextvars(**meta):
        try:
            payload = decode_message_body(record.get("value"))
            event = parse_event(payload, default_type=default_event_type)
        except Exception as exc:
            error = f"decode_failed: {exc}"
            logger.error("message_decode_failed", error=str(exc))
            reject(record, error)
            return _result("decode_failed", meta, None, None, acked=False, error=error)

        logger.info("event_received", event_type=event.type)
        try:
            # Cancels the coroutine only; an in-flight worker thread finishes.
            processing = await asyncio.wait_for(handler(event), timeout=timeout_seconds)
        except asyncio.TimeoutError:
            error = "handler_timed_out"
            logger.error(
                "event_handler_timed_out",
                event_type=event.type,
                timeout_seconds=timeout_seconds,
            )
            reject(record, error)
            return _result("handler_timed_out", meta, event.type, None, acked=False, error=error)
        except Exception as exc:
            error = f"handler_failed: {exc}"
            logger.exception("event_handler_failed", event_type=event.type)
            reject(record, error)
            return _result("handler_failed", meta, event.type, None, acked=False, error=error)

        ack(record)
        return _result("processed_and_acked", meta, event.type, processing, acked=True, error=None)


async def handle_batch(
    records: Sequence[Record],
    *,
    handler: EventHandlerFn,
    ack: AckFn,
    reject: RejectFn,
    timeout_seconds: float | None = None,
    default_event_type: str | None = None,
    ordered: bool = False,
) -> list[dict[str, Any]]:
    """Handle a polled batch; results come back in record order.

    Records run concurrently. With `ordered`, records that share a partition
    run one after another in delivery order, and only distinct partitions
    overlap. Bind handlers that write state with `ordered`.
    """
    run = functools.partial(
        handle_message,
        handler=handler,
        ack=ack,
        reject=reject,
        timeout_seconds=timeout_seconds,
        default_event_type=default_event_type,
    )
    if not ordered:
        return list(await asyncio.gather(*(run(record) for record in records)))

    by_partition: dict[tuple[Any, Any], list[int]] = {}
    for index, record in enumerate(records):
        key = (record.get("topic"), record.get("partition"))
        by_partition.setdefault(key, []).append(index)

    results: list[Any] = [None] * len(records)

    async def run_partition(indexes: list[int]) -> None:
        for index in indexes:
            results[index] = await run(records[index])

    await asyncio.gather(*(run_partition(indexes) for indexes in by_partition.values()))
    return results


def record_meta(record: Record) -> dict[str, Any]:
    return {
        "queue": record.get("topic"),
        "partition": record.get("partition"),
        "offset": record.get("offset"),
    }


def _result(
    status: str,
    meta: dict[str, Any],
    event_type: str | None,
    processing: Any,
    *,
    acked: bool,
    error: str | None,
) -> dict[str, Any]:
    return {
        "status": status,
        "record_meta": meta,
        "event_type": event_type,
        "processing": processing,
        "acked": acked,
        "error": error,
    }
