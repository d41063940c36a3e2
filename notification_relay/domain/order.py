"""Order email composition for sellers (one per line item) and the buyer.

The three order subtypes share one layout; only the wording differs, so the
wording lives in `_COPY` keyed by event type.
"""

from __future__ import annotations

from typing import NamedTuple

from .events import ORDER_DELETED, ORDER_PLACED, ORDER_UPDATED, LineItem, OrderEvent, UserRecord
from .message import EmailMessage, esc

UNKNOWN_STOCK = "Unknown"

_PARAGRAPH_STYLE = "font-family: Arial, sans-serif; color: #333;"
_LIST_STYLE = "list-style-type: none; padding: 0;"


class _OrderCopy(NamedTuple):
    seller_subject: str
    seller_text: str
    seller_intro: str
    seller_outro: str
    quantity_label: str
    buyer_subject: str
    buyer_text: str
    buyer_intro: str
    buyer_outro: str
    buyer_item_label: str


_COPY: dict[str, _OrderCopy] = {
    ORDER_PLACED: _OrderCopy(
        seller_subject="New Order Received",
        seller_text='A new order has been placed for "{title}"',
        seller_intro="A new order has been placed for your product:",
        seller_outro="Please prepare the order promptly. Thank you!",
        quantity_label="Quantity Ordered",
        buyer_subject="Order Placed",
        buyer_text='Your order for "{titles}" has been placed successfully.',
        buyer_intro="Your order has been successfully placed:",
        buyer_outro="Thank you for shopping with us!",
        buyer_item_label="Quantity",
    ),
    ORDER_UPDATED: _OrderCopy(
        seller_subject="Order Updated",
        seller_text='The order for "{title}" has been updated',
        seller_intro="The order for your product has been updated:",
        seller_outro="Keep track of your stock levels and fulfill this updated order. Thank you!",
        quantity_label="Updated Quantity",
        buyer_subject="Order Updated",
        buyer_text='Your order for "{titles}" has been updated.',
        buyer_intro="Your order has been updated:",
        buyer_outro="Thank you for your continued support!",
        buyer_item_label="Updated Quantity",
    ),
    ORDER_DELETED: _OrderCopy(
        seller_subject="Order Cancelled",
        seller_text='The order for "{title}" has been cancelled.',
        seller_intro="An order for your product has been cancelled:",
        seller_outro="We regret the cancellation but trust you'll continue providing great service!",
        quantity_label="Cancelled Quantity",
        buyer_subject="Order Cancelled",
        buyer_text='Your order for "{titles}" has been cancelled.',
        buyer_intro="Your order has been cancelled:",
        buyer_outro="We're sorry for any inconvenience caused.",
        buyer_item_label="Cancelled Quantity",
    ),
}


def format_stock(remaining: int | None) -> str:
    """Render a stock snapshot; `None` is the unknown sentinel."""
    return UNKNOWN_STOCK if remaining is None else str(remaining)


def compose_seller_order_message(
    event: OrderEvent,
    item: LineItem,
    seller: UserRecord,
    remaining_stock: int | None,
) -> EmailMessage:
    copy = _copy_for(event)
    html = (
        f'<p style="{_PARAGRAPH_STYLE}">Hi <b>{esc(seller.username)}</b>,</p>\n'
        f"<p>{copy.seller_intro}</p>\n"
        f'<ul style="{_LIST_STYLE}">\n'
        f"  <li><b>Product:</b> {esc(item.title)}</li>\n"
        f"  <li><b>{copy.quantity_label}:</b> {esc(item.quantity)}</li>\n"
        f"  <li><b>Remaining Stock:</b> {esc(format_stock(remaining_stock))}</li>\n"
        "</ul>\n"
        f"<p>{copy.seller_outro}</p>"
    )
    return EmailMessage(
        recipient=seller.email,
        subject=copy.seller_subject,
        text=copy.seller_text.format(title=item.title),
        html=html,
    )


def compose_buyer_order_message(event: OrderEvent, buyer: UserRecord) -> EmailMessage:
    copy = _copy_for(event)
    items = "".join(
        f"<li>{esc(item.title)} ({copy.buyer_item_label}: {esc(item.quantity)})</li>"
        for item in event.line_items
    )
    html = (
        f'<p style="{_PARAGRAPH_STYLE}">Hi <b>{esc(buyer.username)}</b>,</p>\n'
        f"<p>{copy.buyer_intro}</p>\n"
        f"<ul>{items}</ul>\n"
        f"<p>{copy.buyer_outro}</p>"
    )
    return EmailMessage(
        recipient=buyer.email,
        subject=copy.buyer_subject,
        text=copy.buyer_text.format(titles=", ".join(event.titles)),
        html=html,
    )


def _copy_for(event: OrderEvent) -> _OrderCopy:
    try:
        return _COPY[event.type]
    except KeyError:
        raise ValueError(f"Not an order event type: {event.type!r}") from None
