"""Notification service facade: queue bindings and consumer lifecycle."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol

import structlog

from .adapters.fake_senders import send_email_via_console
from .adapters.kafka_runtime import (
    KafkaQueueConsumer,
    QueueBinding,
    create_producer,
    create_queue_consumer,
)
from .adapters.real_senders import send_email_via_mailgun_from_env
from .application.enrichment import EnrichmentGateway, ProductLookup, UserLookup
from .application.handlers import (
    AuthEventHandler,
    OrderEventHandler,
    ProductEventHandler,
    UserSyncHandler,
    UserWriter,
)
from .application.mailer import Mailer
from .config import Settings
from .domain.events import USER_DATA_SYNC
from .types import EventHandlerFn, SendEmailFn

logger = structlog.get_logger(__name__)

PRODUCT_EVENTS_QUEUE = "product_events_for_notifications"
ORDER_EVENTS_QUEUE = "order_events_for_notifications"
AUTH_EVENTS_QUEUE = "auth_events"
USER_DATA_SYNC_QUEUE = "user_data_sync"

DEFAULT_STOP_TIMEOUT_SECONDS = 30.0

ConsumerFactory = Callable[[QueueBinding], KafkaQueueConsumer]


class UserStore(UserLookup, UserWriter, Protocol):
    """Read and upsert access to user records."""


class NotificationService:
    """Owns the queue bindings and one consumer task per bound queue."""

    def __init__(
        self,
        consumer_factory: ConsumerFactory,
        *,
        dlq_producer: Any | None = None,
        stop_timeout_seconds: float = DEFAULT_STOP_TIMEOUT_SECONDS,
    ) -> None:
        self._consumer_factory = consumer_factory
        self._dlq_producer = dlq_producer
        self._stop_timeout_seconds = stop_timeout_seconds
        self._bindings: dict[str, QueueBinding] = {}
        self._consumers: list[KafkaQueueConsumer] = []
        self._tasks: list[asyncio.Task] = []

    @property
    def bindings(self) -> list[QueueBinding]:
        return list(self._bindings.values())

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def bind(
        self,
        queue_name: str,
        handler: EventHandlerFn,
        *,
        default_event_type: str | None = None,
        ordered: bool = False,
    ) -> QueueBinding:
        """Subscribe `handler` to the durable queue `queue_name`. Only before `start()`.

        `ordered` handles records of one partition strictly in offset order.
        """
        if self.running:
            raise RuntimeError("Queues must be bound before the service starts")
        if queue_name in self._bindings:
            raise ValueError(f"Queue already bound: {queue_name}")
        binding = QueueBinding(
            queue_name=queue_name,
            handler=handler,
            default_event_type=default_event_type,
            ordered=ordered,
        )
        self._bindings[queue_name] = binding
        return binding

    async def start(self) -> None:
        if self.running:
            return
        for binding in self._bindings.values():
            consumer = self._consumer_factory(binding)
            self._consumers.append(consumer)
            self._tasks.append(
                asyncio.create_task(consumer.run_forever(), name=f"consume:{binding.queue_name}")
            )
        logger.info("notification_service_started", queues=list(self._bindings))

    async def stop(self) -> None:
        """Drain every consumer, then close the clients.

        Consumers finish their current batch and leave their loop. Any still
        running after `stop_timeout_seconds` are cancelled.
        """
        for consumer in self._consumers:
            consumer.request_stop()
        if self._tasks:
            _done, pending = await asyncio.wait(self._tasks, timeout=self._stop_timeout_seconds)
            for task in pending:
                logger.warning("queue_consumer_stop_timed_out", task=task.get_name())
                task.cancel()
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []

        for consumer in self._consumers:
            try:
                await consumer.close()
            except Exception as exc:
                logger.warning(
                    "queue_consumer_close_failed",
                    queue=consumer.binding.queue_name,
                    error=str(exc),
                )
        self._consumers = []

        if self._dlq_producer is not None:
            try:
                await asyncio.to_thread(self._dlq_producer.flush)
                await asyncio.to_thread(self._dlq_producer.close)
            except Exception as exc:
                logger.warning("dlq_producer_close_failed", error=str(exc))
        logger.info("notification_service_stopped")


def bind_default_queues(
    service: NotificationService,
    *,
    gateway: EnrichmentGateway,
    mailer: Mailer,
    users: UserWriter,
) -> None:
    """Bind the fixed set of four queues to their handlers."""
    service.bind(PRODUCT_EVENTS_QUEUE, ProductEventHandler(gateway, mailer))
    service.bind(ORDER_EVENTS_QUEUE, OrderEventHandler(gateway, mailer))
    service.bind(AUTH_EVENTS_QUEUE, AuthEventHandler(gateway, mailer))
    service.bind(
        USER_DATA_SYNC_QUEUE,
        UserSyncHandler(users),
        default_event_type=USER_DATA_SYNC,
        ordered=True,
    )


def select_email_sender(settings: Settings) -> SendEmailFn:
    if settings.mail_backend == "console":
        return send_email_via_console
    return send_email_via_mailgun_from_env


def build_notification_service(
    settings: Settings,
    *,
    store: UserStore,
    products: ProductLookup,
    send_email: SendEmailFn | None = None,
) -> NotificationService:
    """Wire a Kafka-backed service from settings and long-lived clients."""
    dlq_producer = create_producer(settings) if settings.kafka_dlq_enabled else None
    service = NotificationService(
        lambda binding: create_queue_consumer(binding, settings, dlq_producer=dlq_producer),
        dlq_producer=dlq_producer,
        stop_timeout_seconds=(
            settings.kafka_poll_timeout_ms / 1000 + settings.handler_timeout_seconds
        ),
    )
    bind_default_queues(
        service,
        gateway=EnrichmentGateway(store, products),
        mailer=Mailer(send_email or select_email_sender(settings)),
        users=store,
    )
    return service
