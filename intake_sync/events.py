"""Broadcast event catalog for the intake display protocol.

Two topics per location:

* ``display-session-{location}``: operator → display session lifecycle
* ``intake-response-{location}``: display → operator customer answers

A third topic, ``display-config-{location}``, only carries ``config_changed``
nudges that make the display re-read its content ahead of the next poll.

Every event is an explicit model with a fixed wire name. Unknown names and
payloads that fail validation raise :class:`ProtocolError`; receivers log and
drop them.
"""
from __future__ import annotations

from typing import Any, ClassVar, Dict, Mapping, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from .models import Session, SessionPatch, WireModel

SESSION_TOPIC_PREFIX = "display-session-"
RESPONSE_TOPIC_PREFIX = "intake-response-"
CONFIG_TOPIC_PREFIX = "display-config-"

SESSION_STARTED = "session_started"
SESSION_UPDATE = "session_update"
SESSION_CANCELLED = "session_cancelled"
SESSION_COMPLETED = "session_completed"
REQUEST_PASSWORD = "request_password"
REQUEST_SIGNATURE = "request_signature"

CUSTOMER_CONFIRMED_DATA = "customer_confirmed_data"
PASSWORD_SUBMITTED = "password_submitted"
PASSWORD_SKIPPED = "password_skipped"
SIGNATURE_SUBMITTED = "signature_submitted"

# Published by the back office when campaigns, slides or ticker settings change
CONFIG_CHANGED = "config_changed"


class ProtocolError(ValueError):
    """Raised for unknown event names or malformed payloads."""


def session_topic(location_id: str) -> str:
    return f"{SESSION_TOPIC_PREFIX}{location_id}"


def response_topic(location_id: str) -> str:
    return f"{RESPONSE_TOPIC_PREFIX}{location_id}"


def config_topic(location_id: str) -> str:
    return f"{CONFIG_TOPIC_PREFIX}{location_id}"


# ============================================================
# Operator → display
# ============================================================

class SessionStarted(BaseModel):
    event_name: ClassVar[str] = SESSION_STARTED
    session: Session

    def payload(self) -> Dict[str, Any]:
        return self.session.to_wire()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SessionStarted":
        return cls(session=Session.model_validate(payload))


class SessionUpdated(BaseModel):
    event_name: ClassVar[str] = SESSION_UPDATE
    patch: SessionPatch

    def payload(self) -> Dict[str, Any]:
        return self.patch.model_dump(mode="json", by_alias=True, exclude_unset=True, exclude_none=True)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "SessionUpdated":
        return cls(patch=SessionPatch.model_validate(payload))


class _EmptyEvent(BaseModel):
    event_name: ClassVar[str] = ""

    def payload(self) -> Dict[str, Any]:
        return {}

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "_EmptyEvent":
        return cls()


class SessionCancelled(_EmptyEvent):
    event_name: ClassVar[str] = SESSION_CANCELLED


class SessionCompleted(_EmptyEvent):
    event_name: ClassVar[str] = SESSION_COMPLETED


class PasswordRequested(_EmptyEvent):
    event_name: ClassVar[str] = REQUEST_PASSWORD


class SignatureRequested(_EmptyEvent):
    event_name: ClassVar[str] = REQUEST_SIGNATURE


SessionEvent = Union[
    SessionStarted,
    SessionUpdated,
    SessionCancelled,
    SessionCompleted,
    PasswordRequested,
    SignatureRequested,
]

_SESSION_EVENTS: Dict[str, Type[Any]] = {
    cls.event_name: cls
    for cls in (
        SessionStarted,
        SessionUpdated,
        SessionCancelled,
        SessionCompleted,
        PasswordRequested,
        SignatureRequested,
    )
}


# ============================================================
# Display → operator
# ============================================================

class CustomerResponse(WireModel):
    event_name: ClassVar[str] = ""
    session_id: str

    def payload(self) -> Dict[str, Any]:
        return self.to_wire()

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CustomerResponse":
        return cls.model_validate(payload)


class DataConfirmed(CustomerResponse):
    event_name: ClassVar[str] = CUSTOMER_CONFIRMED_DATA
    confirmed: bool = True


class PasswordSubmitted(CustomerResponse):
    event_name: ClassVar[str] = PASSWORD_SUBMITTED
    password: str


class PasswordSkipped(CustomerResponse):
    event_name: ClassVar[str] = PASSWORD_SKIPPED


class SignatureSubmitted(CustomerResponse):
    event_name: ClassVar[str] = SIGNATURE_SUBMITTED
    signature_data: str


_RESPONSE_EVENTS: Dict[str, Type[CustomerResponse]] = {
    cls.event_name: cls
    for cls in (DataConfirmed, PasswordSubmitted, PasswordSkipped, SignatureSubmitted)
}


def _parse(registry: Mapping[str, Type[Any]], name: str, payload: Optional[Mapping[str, Any]]) -> Any:
    event_cls = registry.get(name)
    if event_cls is None:
        raise ProtocolError(f"unknown event {name!r}")
    if payload is not None and not isinstance(payload, Mapping):
        raise ProtocolError(f"{name}: payload must be an object, got {type(payload).__name__}")
    try:
        return event_cls.from_payload(payload or {})
    except ValidationError as exc:
        raise ProtocolError(f"{name}: invalid payload ({exc.error_count()} errors)") from exc


def parse_session_event(name: str, payload: Optional[Mapping[str, Any]]) -> SessionEvent:
    return _parse(_SESSION_EVENTS, name, payload)


def parse_response_event(name: str, payload: Optional[Mapping[str, Any]]) -> CustomerResponse:
    return _parse(_RESPONSE_EVENTS, name, payload)


__all__ = [
    "CONFIG_CHANGED",
    "CONFIG_TOPIC_PREFIX",
    "CUSTOMER_CONFIRMED_DATA",
    "CustomerResponse",
    "DataConfirmed",
    "PASSWORD_SKIPPED",
    "PASSWORD_SUBMITTED",
    "PasswordRequested",
    "PasswordSkipped",
    "PasswordSubmitted",
    "ProtocolError",
    "REQUEST_PASSWORD",
    "REQUEST_SIGNATURE",
    "RESPONSE_TOPIC_PREFIX",
    "SESSION_CANCELLED",
    "SESSION_COMPLETED",
    "SESSION_STARTED",
    "SESSION_TOPIC_PREFIX",
    "SESSION_UPDATE",
    "SIGNATURE_SUBMITTED",
    "SessionCancelled",
    "SessionCompleted",
    "SessionEvent",
    "SessionStarted",
    "SessionUpdated",
    "SignatureRequested",
    "SignatureSubmitted",
    "config_topic",
    "parse_response_event",
    "parse_session_event",
    "response_topic",
    "session_topic",
]
