"""Application layer: enrichment, delivery and per-category dispatch."""

from .enrichment import EnrichmentGateway
from .handlers import AuthEventHandler, OrderEventHandler, ProductEventHandler, UserSyncHandler
from .mailer import Mailer

__all__ = [
    "AuthEventHandler",
    "EnrichmentGateway",
    "Mailer",
    "OrderEventHandler",
    "ProductEventHandler",
    "UserSyncHandler",
]
