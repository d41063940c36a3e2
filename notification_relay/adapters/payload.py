"""Payload adapter functions.

Mental model refresher:
- This is an adapter/edge module.
- It translates transport-shaped data (raw broker message bodies) into the
  event variants used by application/domain code.
- It validates shape and required fields, but it does not decide business
  outcomes like ack/reject.
"""

from __future__ import annotations

import json
from typing import Any, Mapping

from ..domain.events import (
    AUTH_EVENT_TYPES,
    ORDER_EVENT_TYPES,
    PRODUCT_EVENT_TYPES,
    USER_DATA_SYNC,
    AuthEvent,
    Event,
    LineItem,
    OrderEvent,
    ProductEvent,
    UnrecognizedEvent,
    UserDataSync,
    UserRecord,
)
from ..types import Payload, PayloadDict


class EventDecodeError(ValueError):
    """Raised when a message body cannot be turned into an event."""


def decode_message_body(raw: bytes | str | Mapping[str, Any] | None) -> PayloadDict:
    """Decode a raw message body into a JSON object dictionary."""
    if isinstance(raw, Mapping):
        return dict(raw)

    if isinstance(raw, bytes):
        try:
            text = raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise EventDecodeError(f"message body is not valid UTF-8: {exc}") from exc
    elif isinstance(raw, str):
        text = raw
    else:
        raise EventDecodeError(f"Unsupported message body type: {type(raw).__name__}")

    try:
        parsed = json.loads(text)
    except json.JSONDecodeError as exc:
        raise EventDecodeError(f"message body is not valid JSON: {exc}") from exc
    if not isinstance(parsed, dict):
        raise EventDecodeError("message body must decode to a JSON object")
    return parsed


def parse_event(payload: Payload, *, default_type: str | None = None) -> Event:
    """Turn a decoded `{type, data}` payload into one event variant.

    `default_type` lets a queue whose producer publishes bare records (the
    user sync queue) read a body without `type` as that type's `data`.
    """
    event_type = payload.get("type")
    if event_type is None and default_type is not None:
        event_type, data = default_type, payload
    else:
        event_type = _as_required_str(event_type, "type")
        data = payload.get("data")
        if data is None:
            data = {}
        if not isinstance(data, Mapping):
            raise EventDecodeError("data must be a JSON object")

    if event_type in AUTH_EVENT_TYPES:
        return AuthEvent(type=event_type, user_id=_as_id(data.get("userId"), "data.userId"))
    if event_type in PRODUCT_EVENT_TYPES:
        return _parse_product_event(event_type, data)
    if event_type in ORDER_EVENT_TYPES:
        return _parse_order_event(event_type, data)
    if event_type == USER_DATA_SYNC:
        return UserDataSync(user=_parse_user_record(data))
    return UnrecognizedEvent(type=event_type, data=dict(data))


def _parse_product_event(event_type: str, data: Mapping[str, Any]) -> ProductEvent:
    seller = data.get("seller")
    if isinstance(seller, Mapping):
        seller_id = _as_id(seller.get("id"), "data.seller.id")
    else:
        seller_id = _as_id(data.get("sellerId"), "data.seller.id")

    return ProductEvent(
        type=event_type,
        seller_id=seller_id,
        title=_as_required_str(data.get("title"), "data.title"),
        description=str(data.get("description") or ""),
        price=data.get("price"),
        quantity=data.get("quantity"),
        category=_as_optional_str(data.get("category")),
        created_at=_as_optional_str(data.get("createdAt")),
    )


def _parse_order_event(event_type: str, data: Mapping[str, Any]) -> OrderEvent:
    seller_ids = _as_list(data.get("sellerIds"), "data.sellerIds")
    titles = _as_list(data.get("titles"), "data.titles")
    quantities = _as_list(data.get("quantities"), "data.quantities")
    if not len(seller_ids) == len(titles) == len(quantities):
        raise EventDecodeError(
            "data.sellerIds, data.titles and data.quantities must have the same length "
            f"(got {len(seller_ids)}, {len(titles)}, {len(quantities)})"
        )

    line_items = tuple(
        LineItem(
            seller_id=_as_id(seller_id, f"data.sellerIds[{index}]"),
            title=_as_required_str(title, f"data.titles[{index}]"),
            quantity=quantity,
        )
        for index, (seller_id, title, quantity) in enumerate(zip(seller_ids, titles, quantities))
    )
    return OrderEvent(
        type=event_type,
        user_id=_as_id(data.get("userId"), "data.userId"),
        line_items=line_items,
    )


def _parse_user_record(data: Mapping[str, Any]) -> UserRecord:
    return UserRecord(
        id=_as_id(data.get("id"), "id"),
        username=_as_required_str(data.get("username"), "username"),
        email=_as_required_str(data.get("email"), "email"),
        role=_as_optional_str(data.get("role")),
    )


def _as_id(value: Any, field_name: str) -> str:
    # Upstream services send ids as numbers or strings; both map to one key.
    if isinstance(value, bool):
        raise EventDecodeError(f"Invalid identifier for {field_name}: {value!r}")
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return _as_required_str(value, field_name)


def _as_list(value: Any, field_name: str) -> list[Any]:
    if not isinstance(value, list):
        raise EventDecodeError(f"{field_name} must be a list")
    return value


def _as_required_str(value: Any, field_name: str) -> str:
    text = str(value).strip() if value is not None else ""
    if not text:
        raise EventDecodeError(f"Missing required field: {field_name}")
    return text


def _as_optional_str(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None
