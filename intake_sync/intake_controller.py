"""Operator-side intake session controller."""
from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional, Union

from .events import (
    REQUEST_PASSWORD,
    REQUEST_SIGNATURE,
    SESSION_CANCELLED,
    SESSION_COMPLETED,
    DataConfirmed,
    PasswordSkipped,
    PasswordSubmitted,
    ProtocolError,
    SessionStarted,
    SessionUpdated,
    SignatureSubmitted,
    parse_response_event,
    response_topic,
    session_topic,
)
from .models import Session, SessionPatch, merge_session, new_session_id
from .supervisor import SleepFn
from .transport.base import Subscription, Transport, TransportError

logger = logging.getLogger(__name__)


class IntakeFlowError(RuntimeError):
    """Raised locally to the operator when the intake flow is misused."""


class SessionAlreadyStarted(IntakeFlowError):
    pass


class SessionNotStarted(IntakeFlowError):
    pass


@dataclass
class CustomerResponseHandlers:
    """Async callbacks for the customer's answers; all optional."""

    on_data_confirmed: Optional[Callable[[], Awaitable[None]]] = None
    on_password_submitted: Optional[Callable[[str], Awaitable[None]]] = None
    on_password_skipped: Optional[Callable[[], Awaitable[None]]] = None
    on_signature_submitted: Optional[Callable[[str], Awaitable[None]]] = None


class IntakeSessionController:
    """
    Single writer of one intake session.

    One controller per wizard run. ``start_session`` is latched, the password
    and signature requests fire once each, and cancel/complete end the session
    exactly once. Sends are best effort: a failed publish is retried a few
    times, then logged, never raised.
    """

    def __init__(
        self,
        transport: Transport,
        location_id: str,
        *,
        session_id: Optional[str] = None,
        max_attempts: int = 3,
        retry_delay: float = 0.5,
        sleep: SleepFn = asyncio.sleep,
    ) -> None:
        self.transport = transport
        self.location_id = location_id
        self.session_id = session_id or new_session_id()
        self.topic = session_topic(location_id)
        self.max_attempts = max(1, max_attempts)
        self.retry_delay = retry_delay
        self._sleep = sleep

        self._session: Optional[Session] = None
        self._started = False
        self._finished = False
        self._password_requested = False
        self._signature_requested = False

        self._listener: Optional[Subscription] = None
        self._handlers = CustomerResponseHandlers()
        self.data_confirmed = False
        self.password: Optional[str] = None
        self.password_answered = False
        self.signature: Optional[str] = None

    @property
    def session(self) -> Optional[Session]:
        """Operator's own view of what has been sent so far."""
        return self._session

    @property
    def active(self) -> bool:
        return self._started and not self._finished

    # ============================================================
    # Session lifecycle
    # ============================================================

    async def start_session(self, initial: Union[Session, Mapping[str, Any]]) -> Session:
        if self._started:
            raise SessionAlreadyStarted(f"session {self.session_id} already started")
        self._started = True

        if isinstance(initial, Session):
            data = initial.model_dump()
        else:
            data = dict(initial)
            data.pop("sessionId", None)
        data["session_id"] = self.session_id
        session = Session.model_validate(data)
        self._session = session

        logger.info("🎬 Starting intake session %s on %s", self.session_id, self.topic)
        event = SessionStarted(session=session)
        await self._send(event.event_name, event.payload())
        return session

    async def update_session(self, partial: Union[SessionPatch, Mapping[str, Any]]) -> bool:
        self._require_started()
        if self._finished:
            logger.info("Ignoring update for finished session %s", self.session_id)
            return False
        if isinstance(partial, SessionPatch):
            patch = partial.model_copy()
        else:
            patch = SessionPatch.model_validate(dict(partial))
        patch.session_id = self.session_id
        assert self._session is not None
        self._session = merge_session(self._session, patch)
        event = SessionUpdated(patch=patch)
        return await self._send(event.event_name, event.payload())

    async def request_password(self) -> bool:
        self._require_started()
        if self._finished or self._password_requested:
            return False
        self._password_requested = True
        return await self._send(REQUEST_PASSWORD, {})

    async def request_signature(self) -> bool:
        self._require_started()
        if self._finished or self._signature_requested:
            return False
        self._signature_requested = True
        return await self._send(REQUEST_SIGNATURE, {})

    async def cancel_intake(self) -> bool:
        if not self.active:
            return False
        self._finished = True
        logger.info("⚠️ Cancelling intake session %s", self.session_id)
        return await self._send(SESSION_CANCELLED, {})

    async def complete_intake(self) -> bool:
        if not self.active:
            return False
        self._finished = True
        logger.info("✅ Completing intake session %s", self.session_id)
        return await self._send(SESSION_COMPLETED, {})

    async def aclose(self) -> None:
        """Teardown when the operator leaves the wizard."""
        if self.active:
            await self.cancel_intake()
        listener = self._listener
        self._listener = None
        await self.transport.unsubscribe(listener)

    async def __aenter__(self) -> "IntakeSessionController":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    # ============================================================
    # Customer responses
    # ============================================================

    async def listen_for_customer_responses(self, handlers: CustomerResponseHandlers) -> Subscription:
        """Subscribe to the location's response topic, filtered to this session."""
        if self._listener is not None:
            await self.transport.unsubscribe(self._listener)
            self._listener = None
        self._handlers = handlers
        self._listener = await self.transport.subscribe(response_topic(self.location_id), self._on_response)
        logger.info("Listening for customer responses for session %s", self.session_id)
        return self._listener

    async def _on_response(self, name: str, payload: Dict[str, Any]) -> None:
        try:
            response = parse_response_event(name, payload)
        except ProtocolError as exc:
            logger.debug("Ignoring customer response: %s", exc)
            return
        if response.session_id != self.session_id:
            logger.debug("Ignoring %s for other session %s", name, response.session_id)
            return

        handlers = self._handlers

        if isinstance(response, DataConfirmed):
            if self.data_confirmed:
                return
            self.data_confirmed = True
            logger.info("Customer confirmed data for %s", self.session_id)
            if handlers.on_data_confirmed:
                await handlers.on_data_confirmed()
            return

        if isinstance(response, (PasswordSubmitted, PasswordSkipped)):
            if not self._password_requested or self.password_answered:
                logger.debug("Ignoring %s (requested=%s, answered=%s)", name, self._password_requested, self.password_answered)
                return
            self.password_answered = True
            if isinstance(response, PasswordSubmitted):
                self.password = response.password
                if handlers.on_password_submitted:
                    await handlers.on_password_submitted(response.password)
            elif handlers.on_password_skipped:
                await handlers.on_password_skipped()
            return

        if isinstance(response, SignatureSubmitted):
            if not self._signature_requested or self.signature is not None:
                logger.debug("Ignoring signature (requested=%s)", self._signature_requested)
                return
            self.signature = response.signature_data
            if handlers.on_signature_submitted:
                await handlers.on_signature_submitted(response.signature_data)

    # ============================================================
    # Internals
    # ============================================================

    def _require_started(self) -> None:
        if not self._started:
            raise SessionNotStarted(f"session {self.session_id} has not been started")

    async def _send(self, event: str, payload: Dict[str, Any]) -> bool:
        for attempt in range(1, self.max_attempts + 1):
            try:
                if await self.transport.publish(self.topic, event, payload):
                    return True
            except TransportError as e:
                logger.warning("Broadcast %s failed: %s", event, e)
            if attempt < self.max_attempts:
                logger.info("Retrying %s in %.1fs (attempt %d/%d)", event, self.retry_delay, attempt + 1, self.max_attempts)
                await self._sleep(self.retry_delay)
        logger.error("Broadcast %s for session %s dropped after %d attempts", event, self.session_id, self.max_attempts)
        return False


__all__ = [
    "CustomerResponseHandlers",
    "IntakeFlowError",
    "IntakeSessionController",
    "SessionAlreadyStarted",
    "SessionNotStarted",
]
