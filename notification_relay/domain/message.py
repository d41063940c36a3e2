"""Outbound email message value object."""

from __future__ import annotations

from dataclasses import dataclass
from html import escape
from typing import Any


@dataclass(frozen=True)
class EmailMessage:
    recipient: str
    subject: str
    text: str
    html: str


def esc(value: Any) -> str:
    """HTML-escape any interpolated value, rendering `None` as an empty string."""
    if value is None:
        return ""
    return escape(str(value))
