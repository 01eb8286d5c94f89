"""Display-side session state machine."""
from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Dict, Optional

from .clock import Clock, TimerHandle, resolve_clock
from .events import (
    PasswordRequested,
    ProtocolError,
    SessionCancelled,
    SessionCompleted,
    SessionEvent,
    SessionStarted,
    SessionUpdated,
    SignatureRequested,
    parse_session_event,
)
from .models import Session, merge_session
from .state import DisplayMode, PromptKind

logger = logging.getLogger(__name__)

# (previous_mode, new_mode, reason)
TransitionCallback = Callable[[DisplayMode, DisplayMode, str], None]


class DisplaySessionMachine:
    """
    Projects operator broadcasts onto the three display modes.

    Transitions:

    - STANDBY       --session_started-->   CONFIRM_DATA (adopt session)
    - CONFIRM_DATA  --session_started-->   CONFIRM_DATA (replace session)
    - CONFIRM_DATA  --session_update-->    CONFIRM_DATA (merge)
    - CONFIRM_DATA  --session_cancelled--> STANDBY
    - CONFIRM_DATA  --session_completed--> COMPLETED --dwell--> STANDBY

    Anything else is dropped: late events from a finished session, updates for
    another session id, and everything received during the COMPLETED dwell.
    The machine owns no business logic; it only holds what the operator sent.
    """

    def __init__(
        self,
        *,
        dwell_seconds: float = 8.0,
        clock: Optional[Clock] = None,
        on_transition: Optional[TransitionCallback] = None,
    ) -> None:
        self.dwell_seconds = dwell_seconds
        self._clock = clock
        self._on_transition = on_transition
        self._mode = DisplayMode.STANDBY
        self._session: Optional[Session] = None
        self._prompt: Optional[PromptKind] = None
        self._dwell_timer: Optional[TimerHandle] = None

    @property
    def mode(self) -> DisplayMode:
        return self._mode

    @property
    def session(self) -> Optional[Session]:
        return self._session

    @property
    def prompt(self) -> Optional[PromptKind]:
        return self._prompt

    def snapshot(self) -> Dict[str, Any]:
        return {
            "mode": self._mode.value,
            "session": self._session.to_wire() if self._session else None,
            "prompt": self._prompt.value if self._prompt else None,
        }

    async def handle_message(self, name: str, payload: Dict[str, Any]) -> None:
        """Transport handler: parse and apply, dropping malformed events."""
        try:
            event = parse_session_event(name, payload)
        except ProtocolError as exc:
            logger.debug("Ignoring display event: %s", exc)
            return
        self.apply(event)

    def apply(self, event: SessionEvent) -> bool:
        """Apply one event; returns True when the display state changed."""
        if self._mode == DisplayMode.COMPLETED:
            logger.debug("Ignoring %s during completed dwell", event.event_name)
            return False

        if isinstance(event, SessionStarted):
            replacing = self._mode == DisplayMode.CONFIRM_DATA
            if replacing:
                logger.info(
                    "🔁 [SESSION] %s replaces active session %s",
                    event.session.session_id,
                    self._session.session_id if self._session else None,
                )
            else:
                logger.info("🎬 [SESSION] Session %s started", event.session.session_id)
            self._session = event.session
            self._prompt = None
            self._transition(DisplayMode.CONFIRM_DATA, event.event_name)
            return True

        if self._mode == DisplayMode.STANDBY:
            logger.debug("Ignoring %s in standby", event.event_name)
            return False

        assert self._session is not None

        if isinstance(event, SessionUpdated):
            patch_id = event.patch.session_id
            if patch_id and patch_id != self._session.session_id:
                logger.debug("Ignoring stale update for session %s", patch_id)
                return False
            self._session = merge_session(self._session, event.patch)
            self._transition(DisplayMode.CONFIRM_DATA, event.event_name)
            return True

        if isinstance(event, SessionCancelled):
            logger.info("⚠️ [SESSION] Session %s cancelled by operator", self._session.session_id)
            self._reset_to_standby(event.event_name)
            return True

        if isinstance(event, SessionCompleted):
            logger.info("✅ [SESSION] Session %s completed (dwell %.1fs)", self._session.session_id, self.dwell_seconds)
            self._prompt = None
            self._dwell_timer = resolve_clock(self._clock).call_later(self.dwell_seconds, self._on_dwell_elapsed)
            self._transition(DisplayMode.COMPLETED, event.event_name)
            return True

        if isinstance(event, PasswordRequested):
            return self._set_prompt(PromptKind.PASSWORD, event.event_name)

        if isinstance(event, SignatureRequested):
            return self._set_prompt(PromptKind.SIGNATURE, event.event_name)

        logger.debug("Unhandled display event %r", event)
        return False

    def clear_prompt(self, kind: PromptKind) -> bool:
        """Drop the prompt once the customer answered it."""
        if self._prompt != kind:
            return False
        self._prompt = None
        self._transition(self._mode, f"{kind.value}_answered")
        return True

    def close(self) -> None:
        """Cancel the dwell timer; the machine stays where it is."""
        if self._dwell_timer is not None:
            self._dwell_timer.cancel()
            self._dwell_timer = None

    def _set_prompt(self, kind: PromptKind, reason: str) -> bool:
        if self._prompt == kind:
            return False
        self._prompt = kind
        self._transition(self._mode, reason)
        return True

    def _on_dwell_elapsed(self) -> None:
        self._dwell_timer = None
        self._reset_to_standby("dwell_elapsed")

    def _reset_to_standby(self, reason: str) -> None:
        self.close()
        self._session = None
        self._prompt = None
        self._transition(DisplayMode.STANDBY, reason)

    def _transition(self, mode: DisplayMode, reason: str) -> None:
        previous = self._mode
        self._mode = mode
        if previous != mode:
            logger.info("Display mode %s → %s (%s)", previous.value, mode.value, reason)
        if self._on_transition is None:
            return
        try:
            self._on_transition(previous, mode, reason)
        except Exception:
            logger.exception("Transition callback failed")


__all__ = ["DisplaySessionMachine", "TransitionCallback"]
