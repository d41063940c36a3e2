"""Adapter layer: broker transport, payload decoding and outbound clients."""

from .consumer_handler import handle_batch, handle_message
from .fake_senders import send_email_via_console
from .kafka_runtime import KafkaQueueConsumer, QueueBinding, publish_event
from .payload import EventDecodeError, decode_message_body, parse_event
from .product_index import ElasticsearchProductIndex
from .real_senders import send_email_via_mailgun_from_env
from .record_store import NotificationRecord, SqlRecordStore

__all__ = [
    "ElasticsearchProductIndex",
    "EventDecodeError",
    "KafkaQueueConsumer",
    "NotificationRecord",
    "QueueBinding",
    "SqlRecordStore",
    "decode_message_body",
    "handle_batch",
    "handle_message",
    "parse_event",
    "publish_event",
    "send_email_via_console",
    "send_email_via_mailgun_from_env",
]
