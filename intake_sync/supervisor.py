"""Connection supervisor: keeps the display subscribed, forever."""
from __future__ import annotations

import asyncio
import logging
from collections import deque
from collections.abc import Awaitable, Callable
from typing import Deque, Optional

from .state import ConnectionState
from .transport.base import IncomingHandler, Subscription, Transport, TransportError

logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]
StateCallback = Callable[[ConnectionState], None]


class ConnectionSupervisor:
    """
    Wraps one topic subscription with reconnect-after-delay.

    connecting → connected      subscribe succeeded
    connected  → disconnected   transport closed or errored the subscription
    connecting → disconnected   subscribe failed or was rejected
    disconnected → connecting   after the retry delay

    Retries never stop on their own: the display is unattended. The previous
    subscription is always released before the next subscribe, so at most one
    is live. :meth:`stop` cancels the loop wherever it is suspended. Only the
    last ``history_size`` state changes are kept in :attr:`history`.
    """

    def __init__(
        self,
        transport: Transport,
        topic: str,
        handler: IncomingHandler,
        *,
        retry_delay: float = 2.0,
        backoff_factor: float = 1.0,
        max_delay: float = 30.0,
        sleep: SleepFn = asyncio.sleep,
        on_state_change: Optional[StateCallback] = None,
        history_size: int = 32,
    ) -> None:
        self.transport = transport
        self.topic = topic
        self.handler = handler
        self.retry_delay = retry_delay
        self.backoff_factor = max(backoff_factor, 1.0)
        self.max_delay = max(max_delay, retry_delay)
        self._sleep = sleep
        self._on_state_change = on_state_change

        self._state = ConnectionState.DISCONNECTED
        self._subscription: Optional[Subscription] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._stopping = False
        self.connect_count = 0
        self.attempts = 0
        self.history: Deque[ConnectionState] = deque(maxlen=history_size)

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._run(), name=f"supervisor-{self.topic}")

    async def stop(self) -> None:
        self._stopping = True
        task = self._task
        self._task = None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Error stopping supervisor task: %s", e)
        await self._release()
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info("Supervisor for %s stopped", self.topic)

    async def _run(self) -> None:
        delay = self.retry_delay
        while not self._stopping:
            self._set_state(ConnectionState.CONNECTING)
            self.attempts += 1
            try:
                subscription = await self.transport.subscribe(self.topic, self.handler)
            except TransportError as exc:
                logger.warning("Subscription to %s failed (attempt %d): %s", self.topic, self.attempts, exc)
                self._set_state(ConnectionState.DISCONNECTED)
            except asyncio.CancelledError:
                raise
            except Exception:
                logger.exception("Unexpected error subscribing to %s", self.topic)
                self._set_state(ConnectionState.DISCONNECTED)
            else:
                self._subscription = subscription
                self.connect_count += 1
                delay = self.retry_delay
                self._set_state(ConnectionState.CONNECTED)
                logger.info("📡 Subscribed to %s", self.topic)

                reason = await subscription.wait_closed()
                await self._release()
                if self._stopping:
                    return
                logger.warning("Subscription to %s lost: %s", self.topic, reason or "closed")
                self._set_state(ConnectionState.DISCONNECTED)

            logger.info("Reconnecting to %s in %.1fs", self.topic, delay)
            await self._sleep(delay)
            delay = min(delay * self.backoff_factor, self.max_delay)

    async def _release(self) -> None:
        subscription = self._subscription
        self._subscription = None
        if subscription is not None:
            await self.transport.unsubscribe(subscription)

    def _set_state(self, state: ConnectionState) -> None:
        if state == self._state:
            return
        self._state = state
        self.history.append(state)
        if self._on_state_change is None:
            return
        try:
            self._on_state_change(state)
        except Exception:
            logger.exception("Connection state callback failed")


__all__ = ["ConnectionSupervisor", "SleepFn", "StateCallback"]
