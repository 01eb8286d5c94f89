"""Broadcast transports: in-memory, websocket client and the relay server."""
from .base import (
    ChannelStatus,
    IncomingHandler,
    Subscription,
    SubscriptionRejected,
    Transport,
    TransportError,
)
from .memory import InMemoryTransport

__all__ = [
    "ChannelStatus",
    "InMemoryTransport",
    "IncomingHandler",
    "Subscription",
    "SubscriptionRejected",
    "Transport",
    "TransportError",
]
