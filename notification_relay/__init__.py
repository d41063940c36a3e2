"""Event-driven notification relay: broker events in, enriched emails out."""

from .service import (
    AUTH_EVENTS_QUEUE,
    ORDER_EVENTS_QUEUE,
    PRODUCT_EVENTS_QUEUE,
    USER_DATA_SYNC_QUEUE,
    NotificationService,
    bind_default_queues,
    build_notification_service,
)

__all__ = [
    "AUTH_EVENTS_QUEUE",
    "ORDER_EVENTS_QUEUE",
    "PRODUCT_EVENTS_QUEUE",
    "USER_DATA_SYNC_QUEUE",
    "NotificationService",
    "bind_default_queues",
    "build_notification_service",
]
