"""Relay WebSocket transport used by kiosks and operator stations."""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Dict, Optional

import websockets
from websockets.asyncio.client import ClientConnection, connect

from .base import IncomingHandler, Subscription, SubscriptionRejected, Transport, TransportError, dispatch

logger = logging.getLogger(__name__)


def _decode(message: str | bytes) -> Optional[Dict[str, Any]]:
    try:
        payload = json.loads(message)
    except (json.JSONDecodeError, UnicodeDecodeError):
        logger.warning("Invalid JSON from relay: %r", message)
        return None
    if not isinstance(payload, dict):
        logger.warning("Unexpected relay frame: %r", payload)
        return None
    return payload


class WebSocketSubscription(Subscription):
    """One relay socket bound to a single topic."""

    def __init__(self, topic: str, conn: ClientConnection, handler: IncomingHandler) -> None:
        super().__init__(topic)
        self._conn: Optional[ClientConnection] = conn
        self._handler = handler
        self._listener_task: Optional[asyncio.Task[None]] = None

    def start(self) -> None:
        self._mark_subscribed()
        self._listener_task = asyncio.create_task(self._listen(), name=f"relay-listener-{self.topic}")

    async def close(self) -> None:
        task = self._listener_task
        self._listener_task = None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning("Error during listener task cleanup: %s", e)
        await self._close_conn()
        self._mark_closed()

    async def _close_conn(self) -> None:
        if self._conn:
            try:
                await self._conn.close()
            except Exception as e:
                logger.warning("Error closing relay connection: %s", e)
            self._conn = None

    async def _listen(self) -> None:
        assert self._conn is not None
        reason: Optional[BaseException] = None
        try:
            async for message in self._conn:
                payload = _decode(message)
                if payload is None:
                    continue

                message_type = payload.get("type")
                if message_type == "ping":
                    await self._conn.send(json.dumps({"type": "pong"}))
                    continue

                if message_type == "broadcast" and payload.get("topic") == self.topic:
                    event = payload.get("event")
                    if not isinstance(event, str):
                        logger.debug("Relay broadcast without event name on %s", self.topic)
                        continue
                    body = payload.get("payload")
                    await dispatch(self._handler, self.topic, event, body if isinstance(body, dict) else {})
                    continue

                if message_type == "error":
                    reason = TransportError(payload.get("message") or "relay error")
                    logger.warning("Relay error on %s: %s", self.topic, payload)
                    break
        except asyncio.CancelledError:  # cooperative cancel
            raise
        except websockets.ConnectionClosedOK:
            logger.info("Relay websocket for %s closed cleanly", self.topic)
        except websockets.ConnectionClosedError as exc:
            logger.warning("Relay websocket for %s closed: %s", self.topic, exc)
            reason = TransportError(str(exc))
        except Exception as exc:
            logger.exception("Relay websocket listener for %s crashed", self.topic)
            reason = exc
        finally:
            self._listener_task = None
        await self._close_conn()
        self._mark_closed(reason)


class WebSocketTransport(Transport):
    """Transport speaking the broadcast relay protocol over ``websockets``.

    Each subscription owns its socket, so a dropped socket maps one-to-one onto
    a closed subscription. Publishes share one lazily opened socket.
    """

    def __init__(self, url: str, *, subscribe_timeout: float = 10.0) -> None:
        self.url = url
        self.subscribe_timeout = subscribe_timeout
        self._publisher: Optional[ClientConnection] = None
        self._publisher_task: Optional[asyncio.Task[None]] = None
        self._publisher_lock = asyncio.Lock()

    async def _open(self) -> ClientConnection:
        try:
            return await connect(self.url, ping_interval=None, ping_timeout=None)
        except (OSError, asyncio.TimeoutError, websockets.InvalidHandshake, websockets.InvalidURI) as exc:
            raise TransportError(f"cannot reach relay {self.url}: {exc}") from exc

    async def subscribe(self, topic: str, handler: IncomingHandler) -> Subscription:
        logger.info("Subscribing to %s via %s", topic, self.url)
        conn = await self._open()
        try:
            await conn.send(json.dumps({"type": "subscribe", "topic": topic}))
            reply = await asyncio.wait_for(self._await_subscribe_reply(conn, topic), timeout=self.subscribe_timeout)
            if reply.get("type") == "error":
                raise SubscriptionRejected(reply.get("message") or f"subscription to {topic} rejected")
        except asyncio.TimeoutError as exc:
            await self._discard(conn)
            raise TransportError(f"relay did not confirm subscription to {topic}") from exc
        except websockets.ConnectionClosed as exc:
            await self._discard(conn)
            raise TransportError(f"relay closed while subscribing to {topic}: {exc}") from exc
        except BaseException:
            # Includes cancellation by the supervisor mid-handshake
            await self._discard(conn)
            raise

        subscription = WebSocketSubscription(topic, conn, handler)
        subscription.start()
        return subscription

    async def _discard(self, conn: ClientConnection) -> None:
        try:
            await conn.close()
        except Exception as e:
            logger.warning("Error closing relay connection: %s", e)

    async def _await_subscribe_reply(self, conn: ClientConnection, topic: str) -> Dict[str, Any]:
        while True:
            payload = _decode(await conn.recv())
            if payload is None:
                continue
            message_type = payload.get("type")
            if message_type == "ping":
                await conn.send(json.dumps({"type": "pong"}))
                continue
            if message_type in {"subscribed", "error"} and payload.get("topic") in (None, topic):
                return payload

    async def publish(self, topic: str, event: str, payload: Dict[str, Any]) -> bool:
        message = {"type": "broadcast", "topic": topic, "event": event, "payload": payload}
        try:
            conn = await self._publisher_conn()
            await conn.send(json.dumps(message))
            return True
        except TransportError as e:
            logger.warning("Cannot publish %s - %s", event, e)
        except websockets.ConnectionClosed:
            logger.warning("Cannot publish %s - relay connection closed", event)
            await self._reset_publisher()
        except Exception as e:
            logger.error("Failed to publish %s on %s: %s", event, topic, e)
        return False

    async def _publisher_conn(self) -> ClientConnection:
        async with self._publisher_lock:
            if self._publisher is None:
                self._publisher = await self._open()
                self._publisher_task = asyncio.create_task(self._drain_publisher(self._publisher), name="relay-publisher")
            return self._publisher

    async def _drain_publisher(self, conn: ClientConnection) -> None:
        """Answer keepalive pings on the publisher socket until it closes."""
        try:
            async for message in conn:
                payload = _decode(message)
                if payload and payload.get("type") == "ping":
                    await conn.send(json.dumps({"type": "pong"}))
        except asyncio.CancelledError:
            raise
        except websockets.ConnectionClosed as exc:
            logger.info("Relay publisher socket closed: %s", exc)
        finally:
            if self._publisher is conn:
                self._publisher = None
                self._publisher_task = None

    async def _reset_publisher(self) -> None:
        task, conn = self._publisher_task, self._publisher
        self._publisher_task = None
        self._publisher = None
        if task and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        if conn:
            try:
                await conn.close()
            except Exception as e:
                logger.warning("Error closing publisher connection: %s", e)

    async def aclose(self) -> None:
        await self._reset_publisher()


__all__ = ["WebSocketSubscription", "WebSocketTransport"]
