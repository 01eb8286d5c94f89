"""Broadcast relay: the server side of :class:`WebSocketTransport`.

Wire protocol (JSON text frames)::

    → {"type": "subscribe", "topic": T}
    ← {"type": "subscribed", "topic": T}  |  {"type": "error", "topic": T, "code": "subscription_rejected"}
    → {"type": "unsubscribe", "topic": T}
    → {"type": "broadcast", "topic": T, "event": E, "payload": {...}}
    ← {"type": "broadcast", "topic": T, "event": E, "payload": {...}}   (other subscribers only)
    ← {"type": "ping"}   → {"type": "pong"}

Delivery is best effort: nothing is stored, a subscriber that is not connected
when an event is relayed never sees it.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Iterable, Optional, Set

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


class BroadcastRelay:
    """Topic fan-out for kiosk and operator sockets."""

    def __init__(self, allowed_prefixes: Iterable[str], *, ping_interval: float = 20.0) -> None:
        self.allowed_prefixes = tuple(allowed_prefixes)
        self.ping_interval = ping_interval
        self._topics: Dict[str, Set[WebSocket]] = {}

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, ()))

    def is_allowed(self, topic: str) -> bool:
        if not topic:
            return False
        return any(topic.startswith(prefix) and len(topic) > len(prefix) for prefix in self.allowed_prefixes)

    async def serve(self, ws: WebSocket) -> None:
        await ws.accept()
        topics: Set[str] = set()
        ping_task = asyncio.create_task(self._ping_loop(ws), name="relay-ping")
        try:
            while True:
                try:
                    message = await ws.receive_json()
                except ValueError:
                    await self._send(ws, {"type": "error", "code": "invalid_json", "message": "frame is not JSON"})
                    continue
                if not isinstance(message, dict):
                    await self._send(ws, {"type": "error", "code": "invalid_message", "message": "frame must be an object"})
                    continue
                await self._handle(ws, topics, message)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.error("Unexpected error in relay websocket: %s", e)
        finally:
            ping_task.cancel()
            try:
                await ping_task
            except asyncio.CancelledError:
                pass
            for topic in topics:
                self._detach(topic, ws)

    async def _handle(self, ws: WebSocket, topics: Set[str], message: Dict[str, Any]) -> None:
        message_type = message.get("type")
        topic = message.get("topic")

        if message_type == "pong":
            return

        if message_type == "subscribe":
            if not isinstance(topic, str) or not self.is_allowed(topic):
                logger.warning("Relay rejected subscription to %r", topic)
                await self._send(
                    ws,
                    {
                        "type": "error",
                        "topic": topic,
                        "code": "subscription_rejected",
                        "message": f"subscription to {topic!r} not permitted",
                    },
                )
                return
            self._topics.setdefault(topic, set()).add(ws)
            topics.add(topic)
            logger.info("Relay subscription %s (%d listeners)", topic, self.subscriber_count(topic))
            await self._send(ws, {"type": "subscribed", "topic": topic})
            return

        if message_type == "unsubscribe":
            if isinstance(topic, str) and topic in topics:
                topics.discard(topic)
                self._detach(topic, ws)
            return

        if message_type == "broadcast":
            event = message.get("event")
            if not isinstance(topic, str) or not isinstance(event, str):
                await self._send(ws, {"type": "error", "code": "invalid_message", "message": "broadcast needs topic and event"})
                return
            payload = message.get("payload")
            delivered = await self.fan_out(
                topic,
                {"type": "broadcast", "topic": topic, "event": event, "payload": payload if isinstance(payload, dict) else {}},
                exclude=ws,
            )
            logger.debug("Relay %s on %s → %d listeners", event, topic, delivered)
            return

        await self._send(ws, {"type": "error", "code": "unknown_type", "message": f"unknown message type {message_type!r}"})

    async def fan_out(self, topic: str, message: Dict[str, Any], *, exclude: Optional[WebSocket] = None) -> int:
        delivered = 0
        for peer in list(self._topics.get(topic, ())):
            if peer is exclude:
                continue
            if await self._send(peer, message):
                delivered += 1
            else:
                self._detach(topic, peer)
        return delivered

    async def _send(self, ws: WebSocket, message: Dict[str, Any]) -> bool:
        try:
            await ws.send_json(message)
            return True
        except Exception as e:
            # Peer went away between receive and send
            logger.debug("Relay send failed (client disconnected): %s", e)
            return False

    async def _ping_loop(self, ws: WebSocket) -> None:
        while True:
            await asyncio.sleep(self.ping_interval)
            if not await self._send(ws, {"type": "ping"}):
                return

    def _detach(self, topic: str, ws: WebSocket) -> None:
        peers = self._topics.get(topic)
        if peers is None:
            return
        peers.discard(ws)
        if not peers:
            del self._topics[topic]


def build_relay_router(relay: BroadcastRelay) -> APIRouter:
    router = APIRouter()

    @router.websocket("/ws/broadcast")
    async def broadcast_socket(ws: WebSocket) -> None:
        await relay.serve(ws)

    return router


__all__ = ["BroadcastRelay", "build_relay_router"]
