"""Domain layer: event model and notification composition rules."""

from .auth import compose_auth_message
from .events import (
    AuthEvent,
    Event,
    LineItem,
    OrderEvent,
    ProductEvent,
    UnrecognizedEvent,
    UserDataSync,
    UserRecord,
)
from .message import EmailMessage
from .order import compose_buyer_order_message, compose_seller_order_message
from .product import compose_product_message

__all__ = [
    "AuthEvent",
    "EmailMessage",
    "Event",
    "LineItem",
    "OrderEvent",
    "ProductEvent",
    "UnrecognizedEvent",
    "UserDataSync",
    "UserRecord",
    "compose_auth_message",
    "compose_buyer_order_message",
    "compose_product_message",
    "compose_seller_order_message",
]
