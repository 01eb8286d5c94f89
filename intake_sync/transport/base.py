"""Transport channel abstraction shared by the operator and the display."""
from __future__ import annotations

import abc
import asyncio
import enum
import logging
from collections.abc import Awaitable, Callable
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

IncomingHandler = Callable[[str, Dict[str, Any]], Awaitable[None]]


class ChannelStatus(str, enum.Enum):
    CONNECTING = "connecting"
    SUBSCRIBED = "subscribed"
    ERROR = "error"
    CLOSED = "closed"


class TransportError(RuntimeError):
    """Recoverable transport failure (socket dropped, relay unreachable)."""


class SubscriptionRejected(TransportError):
    """The transport refused the subscription, e.g. an access policy denial."""


class Subscription(abc.ABC):
    """Handle for one topic subscription.

    ``status`` follows ``connecting → subscribed → error | closed``. Once the
    transport ends the subscription, :meth:`wait_closed` returns the reason (if
    any). :meth:`close` is idempotent.
    """

    def __init__(self, topic: str) -> None:
        self.topic = topic
        self.status = ChannelStatus.CONNECTING
        self._closed = asyncio.Event()
        self._close_reason: Optional[BaseException] = None

    @property
    def active(self) -> bool:
        return self.status == ChannelStatus.SUBSCRIBED

    def _mark_subscribed(self) -> None:
        self.status = ChannelStatus.SUBSCRIBED

    def _mark_closed(self, reason: Optional[BaseException] = None) -> None:
        if self._closed.is_set():
            return
        self.status = ChannelStatus.ERROR if reason is not None else ChannelStatus.CLOSED
        self._close_reason = reason
        self._closed.set()

    async def wait_closed(self) -> Optional[BaseException]:
        await self._closed.wait()
        return self._close_reason

    @abc.abstractmethod
    async def close(self) -> None:
        """Stop delivery and release transport resources."""


class Transport(abc.ABC):
    """Named, location-scoped broadcast topics with best-effort delivery."""

    @abc.abstractmethod
    async def subscribe(self, topic: str, handler: IncomingHandler) -> Subscription:
        """Deliver future events on ``topic`` to ``handler``.

        Raises :class:`SubscriptionRejected` or :class:`TransportError` when the
        subscription cannot be established.
        """

    @abc.abstractmethod
    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> bool:
        """Fire ``event`` on ``topic``. Returns False when the send failed."""

    async def unsubscribe(self, subscription: Optional[Subscription]) -> None:
        if subscription is None:
            return
        try:
            await subscription.close()
        except Exception as e:
            logger.warning("Error closing subscription on %s: %s", subscription.topic, e)

    async def aclose(self) -> None:
        """Release shared resources (publisher sockets, clients)."""


async def dispatch(handler: IncomingHandler, topic: str, event: str, payload: Dict[str, Any]) -> None:
    """Run an incoming handler, keeping the listener alive if it raises."""
    try:
        await handler(event, payload)
    except Exception as e:
        logger.exception("Error in %s handler for event %s: %s", topic, event, e)


__all__ = [
    "ChannelStatus",
    "IncomingHandler",
    "Subscription",
    "SubscriptionRejected",
    "Transport",
    "TransportError",
    "dispatch",
]
