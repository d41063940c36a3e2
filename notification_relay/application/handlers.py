"""Dispatch handlers, one per event category.

Mental model refresher:
- Application layer coordinates use-case flow: enrichment, composition,
  sending.
- Each handler is bound to one queue and gets every event decoded from it.
  Events of a type it does not own are logged and reported as handled.
- A handler only raises for failures it cannot contain (e.g. the store
  rejecting a user upsert); the consumer turns that into a reject.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

import structlog

from ..domain.auth import compose_auth_message
from ..domain.events import (
    AuthEvent,
    Event,
    LineItem,
    OrderEvent,
    ProductEvent,
    UserDataSync,
    UserRecord,
)
from ..domain.order import compose_buyer_order_message, compose_seller_order_message
from ..domain.product import compose_product_message
from ..types import ProcessingResult
from .enrichment import EnrichmentGateway
from .mailer import Mailer

logger = structlog.get_logger(__name__)


class UserWriter(Protocol):
    def upsert_user(self, user: UserRecord) -> Any: ...


class AuthEventHandler:
    """`user_created`, `user_logged_in`, `user_logged_out`: one email to the user."""

    def __init__(self, gateway: EnrichmentGateway, mailer: Mailer) -> None:
        self._gateway = gateway
        self._mailer = mailer

    async def __call__(self, event: Event) -> ProcessingResult:
        if not isinstance(event, AuthEvent):
            return unhandled(event, handler="auth")

        result = new_result(event)
        user = await self._gateway.fetch_user(event.user_id)
        if user is None:
            result["skipped"].append(f"user {event.user_id} not found")
            return result

        result["deliveries"].append(await self._mailer.deliver(compose_auth_message(event, user)))
        return result


class ProductEventHandler:
    """`product_created`, `product_updated`, `product_deleted`: one email to the seller."""

    def __init__(self, gateway: EnrichmentGateway, mailer: Mailer) -> None:
        self._gateway = gateway
        self._mailer = mailer

    async def __call__(self, event: Event) -> ProcessingResult:
        if not isinstance(event, ProductEvent):
            return unhandled(event, handler="product")

        result = new_result(event)
        seller = await self._gateway.fetch_user(event.seller_id)
        if seller is None:
            result["skipped"].append(f"seller {event.seller_id} not found")
            return result

        result["deliveries"].append(
            await self._mailer.deliver(compose_product_message(event, seller))
        )
        return result


class OrderEventHandler:
    """`order_placed`, `order_updated`, `order_deleted`.

    One email per line item whose seller is found, then one consolidated
    email to the buyer if the buyer is found. The buyer lookup runs while the
    line items are processed; line items run concurrently and independently.
    """

    def __init__(self, gateway: EnrichmentGateway, mailer: Mailer) -> None:
        self._gateway = gateway
        self._mailer = mailer

    async def __call__(self, event: Event) -> ProcessingResult:
        if not isinstance(event, OrderEvent):
            return unhandled(event, handler="order")

        result = new_result(event)
        buyer_lookup = asyncio.create_task(self._gateway.fetch_user(event.user_id))
        try:
            outcomes = await asyncio.gather(
                *(self._notify_seller(event, item) for item in event.line_items),
                return_exceptions=True,
            )
            buyer = await buyer_lookup
        finally:
            if not buyer_lookup.done():
                buyer_lookup.cancel()

        for item, outcome in zip(event.line_items, outcomes):
            if isinstance(outcome, BaseException):
                logger.error(
                    "line_item_notification_failed",
                    event_type=event.type,
                    seller_id=item.seller_id,
                    title=item.title,
                    error=str(outcome),
                )
                result["skipped"].append(f"line item {item.title!r} failed: {outcome}")
            elif isinstance(outcome, dict):
                result["deliveries"].append(outcome)
            else:
                result["skipped"].append(f"seller {item.seller_id} not found")

        if buyer is None:
            result["skipped"].append(f"buyer {event.user_id} not found")
            return result

        result["deliveries"].append(
            await self._mailer.deliver(compose_buyer_order_message(event, buyer))
        )
        return result

    async def _notify_seller(self, event: OrderEvent, item: LineItem) -> dict[str, Any] | None:
        seller, remaining = await asyncio.gather(
            self._gateway.fetch_user(item.seller_id),
            self._gateway.fetch_product_quantity(item.title),
        )
        if seller is None:
            return None
        message = compose_seller_order_message(event, item, seller, remaining)
        return await self._mailer.deliver(message)


class UserSyncHandler:
    """`user_data_sync`: create or overwrite the local copy of a user."""

    def __init__(self, users: UserWriter) -> None:
        self._users = users

    async def __call__(self, event: Event) -> ProcessingResult:
        if not isinstance(event, UserDataSync):
            return unhandled(event, handler="user_sync")

        await asyncio.to_thread(self._users.upsert_user, event.user)
        logger.info("user_data_synced", user_id=event.user.id)
        result = new_result(event)
        result["synced_user_id"] = event.user.id
        return result


def new_result(event: Event) -> ProcessingResult:
    return {"event_type": event.type, "deliveries": [], "skipped": []}


def unhandled(event: Event, *, handler: str) -> ProcessingResult:
    logger.warning("unhandled_event_type", event_type=event.type, handler=handler)
    result = new_result(event)
    result["skipped"].append(f"unhandled event type {event.type!r}")
    return result
