"""In-process broadcast transport.

Used when the operator wizard and the display share one process (single-box
installs, local demos) and by the test suite, which relies on its fault hooks
to simulate policy denials and dropped connections.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Set

from .base import IncomingHandler, Subscription, SubscriptionRejected, Transport, TransportError, dispatch

logger = logging.getLogger(__name__)


class MemorySubscription(Subscription):
    def __init__(self, transport: "InMemoryTransport", topic: str, handler: IncomingHandler) -> None:
        super().__init__(topic)
        self._transport = transport
        self.handler = handler

    async def close(self) -> None:
        self._transport._detach(self)
        self._mark_closed()


class InMemoryTransport(Transport):
    """Fan-out broker living on the current event loop."""

    def __init__(self) -> None:
        self._topics: Dict[str, List[MemorySubscription]] = {}
        self._denied_topics: Set[str] = set()
        self._pending_failures: Dict[str, int] = {}
        self.subscribe_attempts: Dict[str, int] = {}
        self.published: List[tuple[str, str, Dict[str, Any]]] = []
        self.fail_publishes = False

    # ------------------------------------------------------------
    # Fault injection
    # ------------------------------------------------------------

    def deny(self, topic: str) -> None:
        """Reject every subscription to ``topic`` until :meth:`allow` is called."""
        self._denied_topics.add(topic)

    def allow(self, topic: str) -> None:
        self._denied_topics.discard(topic)

    def fail_next_subscribes(self, topic: str, count: int) -> None:
        self._pending_failures[topic] = count

    async def drop(self, topic: str, reason: Optional[BaseException] = None) -> int:
        """End every live subscription on ``topic`` as if the network dropped."""
        subscriptions = list(self._topics.get(topic, []))
        for subscription in subscriptions:
            self._detach(subscription)
            subscription._mark_closed(reason or TransportError("connection dropped"))
        return len(subscriptions)

    # ------------------------------------------------------------
    # Transport API
    # ------------------------------------------------------------

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, []))

    async def subscribe(self, topic: str, handler: IncomingHandler) -> Subscription:
        self.subscribe_attempts[topic] = self.subscribe_attempts.get(topic, 0) + 1
        if topic in self._denied_topics:
            raise SubscriptionRejected(f"subscription to {topic} denied by policy")
        remaining = self._pending_failures.get(topic, 0)
        if remaining > 0:
            self._pending_failures[topic] = remaining - 1
            raise SubscriptionRejected(f"subscription to {topic} rejected")

        subscription = MemorySubscription(self, topic, handler)
        self._topics.setdefault(topic, []).append(subscription)
        subscription._mark_subscribed()
        logger.debug("memory transport: subscribed to %s (%d listeners)", topic, self.subscriber_count(topic))
        return subscription

    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> bool:
        if self.fail_publishes:
            logger.warning("memory transport: publish of %s on %s failed", event, topic)
            return False
        self.published.append((topic, event, dict(payload)))
        for subscription in list(self._topics.get(topic, [])):
            if subscription.active:
                await dispatch(subscription.handler, topic, event, dict(payload))
        return True

    def _detach(self, subscription: MemorySubscription) -> None:
        listeners = self._topics.get(subscription.topic)
        if listeners and subscription in listeners:
            listeners.remove(subscription)
            if not listeners:
                del self._topics[subscription.topic]


__all__ = ["InMemoryTransport", "MemorySubscription"]
