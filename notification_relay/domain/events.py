"""Event model: one frozen dataclass per event category.

Mental model refresher:
- Broker payloads are free-form `{type, data}` dictionaries.
- They are decoded exactly once, at the adapter edge, into one of the
  variants below. Everything past the edge matches on the variant type
  instead of poking at dictionary keys.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

SHOP_OWNER_ROLE = "SHOP_OWNER"

USER_CREATED = "user_created"
USER_LOGGED_IN = "user_logged_in"
USER_LOGGED_OUT = "user_logged_out"
AUTH_EVENT_TYPES = frozenset({USER_CREATED, USER_LOGGED_IN, USER_LOGGED_OUT})

PRODUCT_CREATED = "product_created"
PRODUCT_UPDATED = "product_updated"
PRODUCT_DELETED = "product_deleted"
PRODUCT_EVENT_TYPES = frozenset({PRODUCT_CREATED, PRODUCT_UPDATED, PRODUCT_DELETED})

ORDER_PLACED = "order_placed"
ORDER_UPDATED = "order_updated"
ORDER_DELETED = "order_deleted"
ORDER_EVENT_TYPES = frozenset({ORDER_PLACED, ORDER_UPDATED, ORDER_DELETED})

USER_DATA_SYNC = "user_data_sync"


@dataclass(frozen=True)
class UserRecord:
    id: str
    username: str
    email: str
    role: str | None = None


@dataclass(frozen=True)
class AuthEvent:
    type: str
    user_id: str


@dataclass(frozen=True)
class ProductEvent:
    type: str
    seller_id: str
    title: str
    description: str = ""
    price: Any = None
    quantity: Any = None
    category: str | None = None
    created_at: str | None = None


@dataclass(frozen=True)
class LineItem:
    seller_id: str
    title: str
    quantity: Any


@dataclass(frozen=True)
class OrderEvent:
    type: str
    user_id: str
    line_items: tuple[LineItem, ...] = ()

    @property
    def titles(self) -> list[str]:
        return [item.title for item in self.line_items]


@dataclass(frozen=True)
class UserDataSync:
    user: UserRecord
    type: str = USER_DATA_SYNC


@dataclass(frozen=True)
class UnrecognizedEvent:
    type: str
    data: dict[str, Any] = field(default_factory=dict)


Event = Union[AuthEvent, ProductEvent, OrderEvent, UserDataSync, UnrecognizedEvent]
