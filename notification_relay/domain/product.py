"""Seller-facing product email composition."""

from __future__ import annotations

from datetime import datetime

from .events import PRODUCT_CREATED, PRODUCT_DELETED, PRODUCT_UPDATED, ProductEvent, UserRecord
from .message import EmailMessage, esc


def compose_product_message(event: ProductEvent, seller: UserRecord) -> EmailMessage:
    """Build the one seller email for a product lifecycle event."""
    if event.type == PRODUCT_CREATED:
        return _created(event, seller)
    if event.type == PRODUCT_UPDATED:
        return _updated(event, seller)
    if event.type == PRODUCT_DELETED:
        return _deleted(event, seller)
    raise ValueError(f"Not a product event type: {event.type!r}")


def format_created_date(raw: str | None) -> str:
    """Render an ISO timestamp as MM/DD/YYYY; unparseable values pass through."""
    if not raw:
        return ""
    text = raw.strip()
    if text.endswith("Z"):
        text = f"{text[:-1]}+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return raw
    return parsed.strftime("%m/%d/%Y")


def _created(event: ProductEvent, seller: UserRecord) -> EmailMessage:
    html = (
        f"<p>Hi {esc(seller.username)},</p>\n"
        "<p>Your new product has been created successfully:</p>\n"
        "<ul>\n"
        f"  <li><b>Title:</b> {esc(event.title)}</li>\n"
        f"  <li><b>Description:</b> {esc(event.description)}</li>\n"
        f"  <li><b>Price:</b> ${esc(event.price)}</li>\n"
        f"  <li><b>Quantity:</b> {esc(event.quantity)}</li>\n"
        "</ul>\n"
        f"<p>Created on: {esc(format_created_date(event.created_at))}</p>"
    )
    return EmailMessage(
        recipient=seller.email,
        subject="Product Created Successfully",
        text=f'Your product "{event.title}" has been successfully created!',
        html=html,
    )


def _updated(event: ProductEvent, seller: UserRecord) -> EmailMessage:
    html = (
        f"<p>Hi {esc(seller.username)},</p>\n"
        "<p>Your product has been updated successfully with the following details:</p>\n"
        "<ul>\n"
        f"  <li><b>Title:</b> {esc(event.title)}</li>\n"
        f"  <li><b>Description:</b> {esc(event.description)}</li>\n"
        f"  <li><b>Category:</b> {esc(event.category)}</li>\n"
        f"  <li><b>Price:</b> ${esc(event.price)}</li>\n"
        f"  <li><b>Current Quantity:</b> {esc(event.quantity)}</li>\n"
        "</ul>\n"
        "<p>If you didn't request this update, please contact our support team immediately.</p>\n"
        "<p>Thank you for keeping your products up to date!</p>"
    )
    return EmailMessage(
        recipient=seller.email,
        subject="Product Updated Successfully",
        text=f'Your product "{event.title}" has been successfully updated!',
        html=html,
    )


def _deleted(event: ProductEvent, seller: UserRecord) -> EmailMessage:
    html = (
        f"<p>Hi {esc(seller.username)},</p>\n"
        "<p>We have processed your request to delete the following product:</p>\n"
        "<ul>\n"
        f"  <li><b>Title:</b> {esc(event.title)}</li>\n"
        f"  <li><b>Description:</b> {esc(event.description)}</li>\n"
        f"  <li><b>Category:</b> {esc(event.category)}</li>\n"
        f"  <li><b>Price:</b> ${esc(event.price)}</li>\n"
        f"  <li><b>Remaining Quantity Before Deletion:</b> {esc(event.quantity)}</li>\n"
        "</ul>\n"
        "<p>Your product has been successfully removed from our platform.</p>\n"
        "<p>If you deleted this by mistake or need assistance, feel free to contact us at "
        '<a href="mailto:support@example.com">support@example.com</a>.</p>\n'
        "<p>Warm regards,</p>\n"
        "<p><b>Your Product Team</b></p>"
    )
    return EmailMessage(
        recipient=seller.email,
        subject="Product Deleted Successfully",
        text=f'Your product "{event.title}" has been successfully deleted.',
        html=html,
    )
