"""Tests for the session data model, merge rules and the event catalog."""

from __future__ import annotations

import pytest

from intake_sync.events import (
    DataConfirmed,
    PasswordSubmitted,
    ProtocolError,
    SessionCancelled,
    SessionStarted,
    SessionUpdated,
    SignatureSubmitted,
    parse_response_event,
    parse_session_event,
    response_topic,
    session_topic,
)
from intake_sync.models import Session, SessionPatch, merge_session


def _session() -> Session:
    return Session.model_validate(
        {
            "sessionId": "s-1",
            "customer": {"name": "Mario Rossi", "phone": "+39 333 1234567"},
            "device": {"brand": "Apple", "model": "iPhone 14", "deviceType": "smartphone"},
        }
    )


class TestTopics:
    def test_topics_are_location_scoped(self):
        assert session_topic("loc-9") == "display-session-loc-9"
        assert response_topic("loc-9") == "intake-response-loc-9"


class TestMerge:
    """merge_session applies only what the patch carries."""

    def test_merge_keeps_untouched_fields(self):
        patch = SessionPatch.model_validate({"device": {"issueDescription": "Schermo rotto"}})
        merged = merge_session(_session(), patch)
        assert merged.device.issue_description == "Schermo rotto"
        assert merged.device.model == "iPhone 14"
        assert merged.customer.name == "Mario Rossi"

    def test_none_never_clears_a_value(self):
        patch = SessionPatch.model_validate({"customer": {"email": None, "name": "Mario R."}})
        merged = merge_session(_session(), patch)
        assert merged.customer.name == "Mario R."
        assert merged.customer.phone == "+39 333 1234567"

    def test_session_id_is_immutable(self):
        patch = SessionPatch.model_validate({"sessionId": "other", "customer": {"name": "X"}})
        merged = merge_session(_session(), patch)
        assert merged.session_id == "s-1"

    def test_line_items_replace_whole_list(self):
        session = merge_session(
            _session(),
            SessionPatch.model_validate(
                {"quote": {"estimatedTotal": 120, "lineItems": [{"name": "Display"}, {"name": "Manodopera", "kind": "labor"}]}}
            ),
        )
        assert len(session.quote.line_items) == 2

        session = merge_session(
            session,
            SessionPatch.model_validate({"quote": {"lineItems": [{"name": "Batteria"}]}}),
        )
        assert [item.name for item in session.quote.line_items] == ["Batteria"]
        assert session.quote.estimated_total == 120

    def test_empty_patch_is_noop(self):
        session = _session()
        assert merge_session(session, SessionPatch()).model_dump() == session.model_dump()


class TestSessionEvents:
    def test_parse_session_started(self):
        event = parse_session_event("session_started", _session().to_wire())
        assert isinstance(event, SessionStarted)
        assert event.session.device.model == "iPhone 14"

    def test_update_payload_only_carries_set_fields(self):
        patch = SessionPatch.model_validate({"sessionId": "s-1", "device": {"issueDescription": "Schermo rotto"}})
        payload = SessionUpdated(patch=patch).payload()
        assert payload == {"sessionId": "s-1", "device": {"issueDescription": "Schermo rotto"}}

    def test_parse_empty_event_without_payload(self):
        assert isinstance(parse_session_event("session_cancelled", None), SessionCancelled)

    def test_unknown_event_raises(self):
        with pytest.raises(ProtocolError):
            parse_session_event("session_exploded", {})

    def test_started_without_session_id_raises(self):
        with pytest.raises(ProtocolError):
            parse_session_event("session_started", {"customer": {"name": "Mario"}})

    def test_non_object_payload_raises(self):
        with pytest.raises(ProtocolError):
            parse_session_event("session_update", ["not", "a", "dict"])


class TestResponseEvents:
    def test_confirmed_payload_shape(self):
        assert DataConfirmed(session_id="s-1").payload() == {"sessionId": "s-1", "confirmed": True}

    def test_parse_password_and_signature(self):
        password = parse_response_event("password_submitted", {"sessionId": "s-1", "password": "1234"})
        assert isinstance(password, PasswordSubmitted)
        assert password.password == "1234"

        signature = parse_response_event("signature_submitted", {"sessionId": "s-1", "signatureData": "data:image/png;base64,AA"})
        assert isinstance(signature, SignatureSubmitted)
        assert signature.signature_data.startswith("data:image/png")

    def test_response_without_session_id_raises(self):
        with pytest.raises(ProtocolError):
            parse_response_event("customer_confirmed_data", {"confirmed": True})

    def test_session_event_name_is_not_a_response(self):
        with pytest.raises(ProtocolError):
            parse_response_event("session_started", {"sessionId": "s-1"})
