"""Session data carried between the operator wizard and the display."""
from __future__ import annotations

import enum
import uuid
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base for broadcast payloads: camelCase on the wire, snake_case accepted."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    def to_wire(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Customer(WireModel):
    name: str = ""
    phone: str = ""
    email: Optional[str] = None


class Device(WireModel):
    brand: str = ""
    model: str = ""
    device_type: str = ""
    issue_description: str = ""
    imei: Optional[str] = None
    serial_number: Optional[str] = None
    photo_url: Optional[str] = None


class LineItemKind(str, enum.Enum):
    PART = "part"
    SERVICE = "service"
    LABOR = "labor"


class QuoteLineItem(WireModel):
    name: str
    quantity: int = 1
    unit_price: float = 0.0
    total: float = 0.0
    kind: LineItemKind = LineItemKind.PART


class Quote(WireModel):
    estimated_total: float = 0.0
    diagnostic_fee: float = 0.0
    amount_due_now: float = 0.0
    line_items: List[QuoteLineItem] = Field(default_factory=list)


class Session(WireModel):
    """Full intake session as adopted by the display on ``session_started``."""

    session_id: str
    customer: Customer = Field(default_factory=Customer)
    device: Device = Field(default_factory=Device)
    quote: Optional[Quote] = None


class SessionPatch(WireModel):
    """Partial session carried by ``session_update``; every group is optional."""

    session_id: Optional[str] = None
    customer: Optional[Customer] = None
    device: Optional[Device] = None
    quote: Optional[Quote] = None


# Field groups merged independently; within a group the newest value wins per field.
MERGE_GROUPS = ("customer", "device", "quote")


def new_session_id() -> str:
    return uuid.uuid4().hex


def merge_session(session: Session, patch: SessionPatch) -> Session:
    """Return ``session`` with ``patch`` applied.

    Only fields present in the patch are written. ``None`` never clears a value and
    ``session_id`` is immutable. ``line_items`` is a single field of the quote group,
    so a patch that carries it replaces the whole list.
    """
    data = session.model_dump()
    for group in MERGE_GROUPS:
        fragment: Optional[WireModel] = getattr(patch, group)
        if fragment is None:
            continue
        updates = fragment.model_dump(exclude_unset=True, exclude_none=True)
        if not updates:
            continue
        data[group] = {**(data.get(group) or {}), **updates}
    return Session.model_validate(data)


__all__ = [
    "Customer",
    "Device",
    "LineItemKind",
    "MERGE_GROUPS",
    "Quote",
    "QuoteLineItem",
    "Session",
    "SessionPatch",
    "WireModel",
    "merge_session",
    "new_session_id",
]
