"""Shared type aliases for the notification relay package."""

from __future__ import annotations

from typing import Any, Awaitable, Callable, Mapping

Payload = Mapping[str, Any]
PayloadDict = dict[str, Any]
DeliveryResult = dict[str, Any]
ProcessingResult = dict[str, Any]

SendEmailFn = Callable[..., None]
EventHandlerFn = Callable[[Any], Awaitable[ProcessingResult]]
