"""Authentication email composition.

Mental model refresher:
- Domain modules hold the notification policy: which copy goes to whom.
- They take an event plus already-resolved enrichment results and return
  an `EmailMessage`.
- They do not look anything up and do not send anything.
"""

from __future__ import annotations

from .events import (
    SHOP_OWNER_ROLE,
    USER_CREATED,
    USER_LOGGED_IN,
    USER_LOGGED_OUT,
    AuthEvent,
    UserRecord,
)
from .message import EmailMessage, esc


def compose_auth_message(event: AuthEvent, user: UserRecord) -> EmailMessage:
    """Build the single email an authentication event produces."""
    if event.type == USER_CREATED:
        return compose_registration_message(user)
    if event.type == USER_LOGGED_IN:
        return compose_login_message(user)
    if event.type == USER_LOGGED_OUT:
        return compose_logout_message(user)
    raise ValueError(f"Not an authentication event type: {event.type!r}")


def compose_registration_message(user: UserRecord) -> EmailMessage:
    if user.role == SHOP_OWNER_ROLE:
        return EmailMessage(
            recipient=user.email,
            subject="Welcome, Shop Owner!",
            text="Your shop owner account has been successfully created.",
            html=(
                f"<h1>Welcome to Our Platform, {esc(user.username)}!</h1>\n"
                "<p>We're excited to have you as a shop owner. Start managing your shop "
                "and serving your customers today!</p>\n"
                "<p><strong>Get started now and grow your business with us.</strong></p>"
            ),
        )

    return EmailMessage(
        recipient=user.email,
        subject="Welcome to Our Service!",
        text="Your account has been successfully created.",
        html=(
            f"<h1>Hello, {esc(user.username)}!</h1>\n"
            "<p>We're thrilled to welcome you to our community. Explore and enjoy "
            "our amazing features!</p>\n"
            "<p><strong>Your journey begins now. Let's make it memorable!</strong></p>"
        ),
    )


def compose_login_message(user: UserRecord) -> EmailMessage:
    return EmailMessage(
        recipient=user.email,
        subject="Login Alert!",
        text="Your account was accessed successfully.",
        html=(
            f"<h1>Hello, {esc(user.username)}!</h1>\n"
            "<p>We noticed a login to your account just now. If this was you, "
            "enjoy your session!</p>\n"
            "<p><strong>Secure your account and always stay vigilant.</strong></p>"
        ),
    )


def compose_logout_message(user: UserRecord) -> EmailMessage:
    return EmailMessage(
        recipient=user.email,
        subject="Goodbye for Now!",
        text="You have logged out successfully.",
        html=(
            f"<h1>Goodbye, {esc(user.username)}!</h1>\n"
            "<p>You've logged out from your account. We'll be here when you return!</p>\n"
            "<p><strong>Stay safe and come back soon!</strong></p>"
        ),
    )
