"""Display → operator customer answers."""
from __future__ import annotations

import logging
from typing import Optional, Set

from .events import (
    CustomerResponse,
    DataConfirmed,
    PasswordSkipped,
    PasswordSubmitted,
    SignatureSubmitted,
    response_topic,
)
from .models import Session
from .session_machine import DisplaySessionMachine
from .state import DisplayMode, PromptKind
from .transport.base import Transport

logger = logging.getLogger(__name__)


class CustomerResponder:
    """Publishes the customer's answers from the kiosk screen.

    Repeated taps are suppressed here: each answer goes out at most once per
    session. Password and signature answers require the matching prompt.
    """

    def __init__(self, transport: Transport, location_id: str, machine: DisplaySessionMachine) -> None:
        self.transport = transport
        self.topic = response_topic(location_id)
        self.machine = machine
        # Answers already sent, for the current session only
        self._session_id: Optional[str] = None
        self._sent: Set[str] = set()

    async def confirm_data(self) -> bool:
        session = self._active_session("confirmed")
        if session is None:
            return False
        return await self._send(session, "confirmed", DataConfirmed(session_id=session.session_id))

    async def submit_password(self, password: str) -> bool:
        if not password or not password.strip():
            raise ValueError("password must not be empty")
        session = self._active_session("password", prompt=PromptKind.PASSWORD)
        if session is None:
            return False
        sent = await self._send(session, "password", PasswordSubmitted(session_id=session.session_id, password=password))
        if sent:
            self.machine.clear_prompt(PromptKind.PASSWORD)
        return sent

    async def skip_password(self) -> bool:
        session = self._active_session("password", prompt=PromptKind.PASSWORD)
        if session is None:
            return False
        sent = await self._send(session, "password", PasswordSkipped(session_id=session.session_id))
        if sent:
            self.machine.clear_prompt(PromptKind.PASSWORD)
        return sent

    async def submit_signature(self, signature_data: str) -> bool:
        if not signature_data:
            raise ValueError("signature must not be empty")
        session = self._active_session("signature", prompt=PromptKind.SIGNATURE)
        if session is None:
            return False
        sent = await self._send(
            session, "signature", SignatureSubmitted(session_id=session.session_id, signature_data=signature_data)
        )
        if sent:
            self.machine.clear_prompt(PromptKind.SIGNATURE)
        return sent

    def _active_session(self, answer: str, *, prompt: Optional[PromptKind] = None) -> Optional[Session]:
        session = self.machine.session
        if self.machine.mode != DisplayMode.CONFIRM_DATA or session is None:
            logger.info("Ignoring %s: no active session", answer)
            return None
        if prompt is not None and self.machine.prompt != prompt:
            logger.info("Ignoring %s: not requested by operator", answer)
            return None
        if session.session_id != self._session_id:
            self._session_id = session.session_id
            self._sent.clear()
        if answer in self._sent:
            logger.debug("Duplicate %s for session %s suppressed", answer, session.session_id)
            return None
        return session

    async def _send(self, session: Session, answer: str, response: CustomerResponse) -> bool:
        # Claim before awaiting so a second tap during the send is suppressed
        self._sent.add(answer)
        sent = await self.transport.publish(self.topic, response.event_name, response.payload())
        if not sent:
            if self._session_id == session.session_id:
                self._sent.discard(answer)
            logger.warning("Failed to send %s for session %s", response.event_name, session.session_id)
            return False
        logger.info("📨 Sent %s for session %s", response.event_name, session.session_id)
        return True


__all__ = ["CustomerResponder"]
