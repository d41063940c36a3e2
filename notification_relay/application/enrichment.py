"""Enrichment gateway: read-through user and stock lookups.

Mental model refresher:
- The gateway wraps blocking store/index adapters and runs them off the
  event loop, so independent lookups can overlap.
- It turns lookup failures into "not found" / "unknown" outcomes. Handlers
  never see a lookup exception.
"""

from __future__ import annotations

import asyncio
from typing import Any, Protocol

import structlog

from ..domain.events import UserRecord

logger = structlog.get_logger(__name__)


class UserLookup(Protocol):
    def get_user(self, user_id: str) -> UserRecord | None: ...


class ProductLookup(Protocol):
    def find_product(self, title: str) -> dict[str, Any] | None: ...


class EnrichmentGateway:
    def __init__(self, users: UserLookup, products: ProductLookup) -> None:
        self._users = users
        self._products = products

    async def fetch_user(self, user_id: str) -> UserRecord | None:
        """Resolve a user id; `None` means skip this recipient."""
        try:
            user = await asyncio.to_thread(self._users.get_user, user_id)
        except Exception as exc:
            logger.warning("user_lookup_failed", user_id=user_id, error=str(exc))
            return None
        if user is None:
            logger.info("user_not_found", user_id=user_id)
        return user

    async def fetch_product_quantity(self, title: str) -> int | None:
        """Current stock for `title`, or `None` when it cannot be determined."""
        try:
            product = await asyncio.to_thread(self._products.find_product, title)
        except Exception as exc:
            logger.warning("product_quantity_lookup_failed", title=title, error=str(exc))
            return None
        if product is None:
            logger.info("product_not_indexed", title=title)
            return None
        return _as_quantity(product.get("quantity"))


def _as_quantity(value: Any) -> int | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
