"""Kafka transport adapters for consuming and publishing notification events.

Mental model refresher:
- This module is transport glue to Kafka itself.
- Each bound queue is a topic read by its own consumer in its own asyncio
  task: poll -> decode/dispatch (consumer_handler) -> settle -> commit.
- kafka-python is blocking, so every broker call runs in a worker thread.
- Business logic still lives in application/domain layers.

Broker semantics:
- ack: the record's offset is committed.
- reject: the record is optionally copied to `<queue>.dlq`, then its offset
  is committed as well. Rejected records are never redelivered.
- Offsets are committed once per polled batch, after every record in it
  has been settled. A crash mid-batch redelivers the batch.
- A failed commit seeks each partition back to the start of the batch, so
  the batch is polled and handled again.
- Bindings marked `ordered` handle records of one partition in offset order.
- Stopping: `request_stop` ends the loop after the current batch, and
  `close` waits for any client call still running in a worker thread.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Callable, Mapping

import structlog

from ..config import Settings
from ..types import EventHandlerFn
from .consumer_handler import Record, handle_batch

logger = structlog.get_logger(__name__)

POLL_ERROR_BACKOFF_SECONDS = 1.0


@dataclass(frozen=True)
class QueueBinding:
    queue_name: str
    handler: EventHandlerFn
    durable: bool = True
    default_event_type: str | None = None
    ordered: bool = False

    @property
    def dlq_topic(self) -> str:
        return f"{self.queue_name}.dlq"


class KafkaQueueConsumer:
    """Receive loop for one queue binding."""

    def __init__(
        self,
        binding: QueueBinding,
        consumer: Any,
        *,
        topic_partition: Any,
        offset_and_metadata: Any,
        dlq_producer: Any | None = None,
        poll_timeout_ms: int = 1000,
        max_records: int = 50,
        handler_timeout_seconds: float | None = None,
        send_timeout_seconds: float = 10.0,
    ) -> None:
        self.binding = binding
        self.consumer = consumer
        self.dlq_producer = dlq_producer
        self.poll_timeout_ms = poll_timeout_ms
        self.max_records = max_records
        self.handler_timeout_seconds = handler_timeout_seconds
        self.send_timeout_seconds = send_timeout_seconds
        self._topic_partition = topic_partition
        self._offset_and_metadata = offset_and_metadata
        self._stop_requested = False
        self._client_call_in_flight: asyncio.Future | None = None

    async def run_forever(self) -> None:
        logger.info(
            "queue_consumer_started",
            queue=self.binding.queue_name,
            dlq_enabled=self.dlq_producer is not None,
        )
        while not self._stop_requested:
            try:
                await self.consume_once()
            except asyncio.CancelledError:
                logger.info("queue_consumer_cancelled", queue=self.binding.queue_name)
                raise
            except Exception:
                logger.exception("queue_consume_failed", queue=self.binding.queue_name)
                await asyncio.sleep(POLL_ERROR_BACKOFF_SECONDS)
        logger.info("queue_consumer_stopped", queue=self.binding.queue_name)

    def request_stop(self) -> None:
        """Let `run_forever` return once the batch in hand is settled."""
        self._stop_requested = True

    async def consume_once(self) -> list[dict[str, Any]]:
        """Poll one batch, dispatch it, settle and commit. Returns per-record results."""
        batches = await self._client_call(
            self.consumer.poll,
            timeout_ms=self.poll_timeout_ms,
            max_records=self.max_records,
        )
        if not batches:
            return []

        records = [
            to_internal_record(message)
            for _topic_partition, messages in batches.items()
            for message in messages
        ]
        acked: list[Record] = []
        rejected: list[tuple[Record, str]] = []

        results = await handle_batch(
            records,
            handler=self.binding.handler,
            ack=acked.append,
            reject=lambda record, reason: rejected.append((record, reason)),
            timeout_seconds=self.handler_timeout_seconds,
            default_event_type=self.binding.default_event_type,
            ordered=self.binding.ordered,
        )

        for record, reason in rejected:
            await self._dead_letter(record, reason)
        await self._commit([*acked, *(record for record, _reason in rejected)])

        for result in results:
            meta = result["record_meta"]
            logger.info(
                "message_settled",
                queue=meta["queue"],
                partition=meta["partition"],
                offset=meta["offset"],
                status=result["status"],
                acked=result["acked"],
                error=result["error"],
            )
        return results

    async def close(self) -> None:
        """Close the client after any call still running on it in a worker thread."""
        if self._client_call_in_flight is not None:
            await asyncio.gather(self._client_call_in_flight, return_exceptions=True)
        await asyncio.to_thread(self.consumer.close)

    async def _client_call(self, fn: Callable[..., Any], /, *args: Any, **kwargs: Any) -> Any:
        # KafkaConsumer is not thread-safe. Cancelling the awaiting task leaves
        # the thread running, so the call is tracked for `close` to wait on.
        self._client_call_in_flight = asyncio.ensure_future(
            asyncio.to_thread(fn, *args, **kwargs)
        )
        return await asyncio.shield(self._client_call_in_flight)

    async def _commit(self, records: list[Record]) -> None:
        offsets = next_offsets(records)
        if not offsets:
            return
        commit_map = {
            self._topic_partition(topic, partition): _offset_and_metadata(
                self._offset_and_metadata, offset
            )
            for (topic, partition), offset in offsets.items()
        }
        try:
            await self._client_call(self.consumer.commit, offsets=commit_map)
        except Exception:
            await self._rewind(records)
            raise
        for (topic, partition), offset in offsets.items():
            logger.debug("offset_committed", queue=topic, partition=partition, offset=offset)

    async def _rewind(self, records: list[Record]) -> None:
        """Seek back to the start of an uncommitted batch so it is polled again."""
        for (topic, partition), offset in first_offsets(records).items():
            await self._client_call(
                self.consumer.seek, self._topic_partition(topic, partition), offset
            )
            logger.warning(
                "offset_commit_failed_rewound",
                queue=topic,
                partition=partition,
                offset=offset,
            )

    async def _dead_letter(self, record: Record, reason: str) -> None:
        if self.dlq_producer is None:
            logger.warning(
                "message_rejected",
                queue=record.get("topic"),
                partition=record.get("partition"),
                offset=record.get("offset"),
                reason=reason,
            )
            return

        dlq_payload = build_dlq_payload(
            source_topic=str(record.get("topic")),
            source_partition=int(record.get("partition", -1)),
            source_offset=int(record.get("offset", -1)),
            source_payload=record.get("value"),
            failure_reason=reason,
        )
        try:
            metadata = await asyncio.to_thread(
                _send_and_wait,
                self.dlq_producer,
                self.binding.dlq_topic,
                dlq_payload,
                self.send_timeout_seconds,
            )
        except Exception as exc:
            logger.error(
                "dlq_publish_failed",
                queue=record.get("topic"),
                offset=record.get("offset"),
                reason=reason,
                error=str(exc),
            )
            return

        logger.warning(
            "message_dead_lettered",
            queue=record.get("topic"),
            offset=record.get("offset"),
            dlq_topic=metadata.topic,
            dlq_partition=metadata.partition,
            dlq_offset=metadata.offset,
            reason=reason,
        )


def create_queue_consumer(
    binding: QueueBinding,
    settings: Settings,
    *,
    dlq_producer: Any | None = None,
) -> KafkaQueueConsumer:
    """Build a `KafkaQueueConsumer` with a real kafka-python consumer."""
    KafkaConsumer, _KafkaProducer, TopicPartition, OffsetAndMetadata = import_kafka_python()
    consumer = KafkaConsumer(
        binding.queue_name,
        bootstrap_servers=settings.kafka_bootstrap_servers,
        group_id=settings.kafka_group_id,
        enable_auto_commit=False,
        auto_offset_reset=settings.kafka_auto_offset_reset,
    )
    return KafkaQueueConsumer(
        binding,
        consumer,
        topic_partition=TopicPartition,
        offset_and_metadata=OffsetAndMetadata,
        dlq_producer=dlq_producer,
        poll_timeout_ms=settings.kafka_poll_timeout_ms,
        max_records=settings.kafka_max_records_per_poll,
        handler_timeout_seconds=settings.handler_timeout_seconds,
        send_timeout_seconds=settings.kafka_send_timeout_seconds,
    )


def create_producer(settings: Settings) -> Any:
    _KafkaConsumer, KafkaProducer, _TopicPartition, _OffsetAndMetadata = import_kafka_python()
    return KafkaProducer(
        bootstrap_servers=settings.kafka_bootstrap_servers,
        value_serializer=serialize_json_object,
        acks=settings.kafka_producer_acks,
    )


def publish_event(payload: Mapping[str, Any], *, topic: str, settings: Settings) -> dict[str, Any]:
    """Publish one event to a queue topic and return its broker coordinates."""
    producer = create_producer(settings)
    try:
        metadata = _send_and_wait(
            producer, topic, dict(payload), settings.kafka_send_timeout_seconds
        )
        producer.flush(timeout=settings.kafka_send_timeout_seconds)
    finally:
        producer.close()

    return {
        "topic": metadata.topic,
        "partition": metadata.partition,
        "offset": metadata.offset,
    }


def import_kafka_python() -> tuple[Any, Any, Any, Any]:
    try:
        from kafka import KafkaConsumer, KafkaProducer, TopicPartition
        from kafka.structs import OffsetAndMetadata
    except Exception as exc:
        raise RuntimeError(
            "Kafka support requires `kafka-python`. Install with: pip install kafka-python"
        ) from exc
    return KafkaConsumer, KafkaProducer, TopicPartition, OffsetAndMetadata


def to_internal_record(message: Any) -> dict[str, Any]:
    return {
        "topic": message.topic,
        "partition": int(message.partition),
        "offset": int(message.offset),
        "value": message.value,
    }


def next_offsets(records: list[Record]) -> dict[tuple[str, int], int]:
    """Offset to commit per (topic, partition): one past the highest settled record."""
    offsets: dict[tuple[str, int], int] = {}
    for record in records:
        key = (str(record["topic"]), int(record["partition"]))
        offsets[key] = max(offsets.get(key, 0), int(record["offset"]) + 1)
    return offsets


def first_offsets(records: list[Record]) -> dict[tuple[str, int], int]:
    """Lowest record offset per (topic, partition)."""
    offsets: dict[tuple[str, int], int] = {}
    for record in records:
        key = (str(record["topic"]), int(record["partition"]))
        offset = int(record["offset"])
        offsets[key] = min(offsets.get(key, offset), offset)
    return offsets


def serialize_json_object(payload: Mapping[str, Any]) -> bytes:
    return json.dumps(payload, separators=(",", ":")).encode("utf-8")


def build_dlq_payload(
    *,
    source_topic: str,
    source_partition: int,
    source_offset: int,
    source_payload: Any,
    failure_reason: str,
) -> dict[str, Any]:
    payload = {
        "event_type": f"{source_topic}.dlq",
        "failed_at": datetime.now(tz=UTC).isoformat(),
        "failure_reason": failure_reason,
        "source": {
            "topic": source_topic,
            "partition": source_partition,
            "offset": source_offset,
        },
        "payload": to_json_compatible(source_payload),
    }

    if isinstance(source_payload, Mapping):
        event_type = source_payload.get("type")
        if isinstance(event_type, str) and event_type.strip():
            payload["source_event_type"] = event_type.strip()

    return payload


def to_json_compatible(value: Any) -> Any:
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    if isinstance(value, Mapping):
        return {str(key): to_json_compatible(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_json_compatible(item) for item in value]
    return repr(value)


def _send_and_wait(producer: Any, topic: str, value: Mapping[str, Any], timeout: float) -> Any:
    future = producer.send(topic, value=value)
    return future.get(timeout=timeout)


def _offset_and_metadata(offset_and_metadata_type: Any, offset: int) -> Any:
    """Build kafka-python OffsetAndMetadata across version signatures."""
    try:
        return offset_and_metadata_type(offset, "", -1)
    except TypeError:
        try:
            return offset_and_metadata_type(offset, "", None)
        except TypeError:
            return offset_and_metadata_type(offset, "")
