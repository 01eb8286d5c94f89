"""Tests for customer answers sent from the display."""

from __future__ import annotations

import pytest

from intake_sync.events import response_topic, session_topic
from intake_sync.intake_controller import CustomerResponseHandlers, IntakeSessionController
from intake_sync.responder import CustomerResponder
from intake_sync.session_machine import DisplaySessionMachine
from intake_sync.state import DisplayMode, PromptKind

LOCATION = "loc-1"


@pytest.fixture()
def machine(clock) -> DisplaySessionMachine:
    return DisplaySessionMachine(clock=clock)


@pytest.fixture()
def responder(transport, machine) -> CustomerResponder:
    return CustomerResponder(transport, LOCATION, machine)


async def _start(machine, session_id="s-1"):
    await machine.handle_message("session_started", {"sessionId": session_id, "customer": {"name": "Mario Rossi"}})


def _sent(transport):
    return [(event, payload) for (topic, event, payload) in transport.published if topic == response_topic(LOCATION)]


class TestConfirm:
    @pytest.mark.asyncio
    async def test_confirm_outside_session_is_ignored(self, responder, transport):
        assert not await responder.confirm_data()
        assert _sent(transport) == []

    @pytest.mark.asyncio
    async def test_confirm_sent_once_per_session(self, responder, machine, transport):
        await _start(machine)
        assert await responder.confirm_data()
        assert not await responder.confirm_data()
        assert _sent(transport) == [("customer_confirmed_data", {"sessionId": "s-1", "confirmed": True})]

        await _start(machine, "s-2")
        assert await responder.confirm_data()
        assert len(_sent(transport)) == 2

    @pytest.mark.asyncio
    async def test_only_current_session_answers_are_remembered(self, responder, machine):
        for i in range(50):
            await _start(machine, f"s-{i}")
            assert await responder.confirm_data()
        assert responder._sent == {"confirmed"}

    @pytest.mark.asyncio
    async def test_failed_send_can_be_retried(self, responder, machine, transport):
        await _start(machine)
        transport.fail_publishes = True
        assert not await responder.confirm_data()
        transport.fail_publishes = False
        assert await responder.confirm_data()


class TestPrompts:
    @pytest.mark.asyncio
    async def test_password_requires_prompt(self, responder, machine, transport):
        await _start(machine)
        assert not await responder.submit_password("1234")

        await machine.handle_message("request_password", {})
        assert await responder.submit_password("1234")
        assert machine.prompt is None
        assert not await responder.skip_password()
        assert _sent(transport) == [("password_submitted", {"sessionId": "s-1", "password": "1234"})]

    @pytest.mark.asyncio
    async def test_empty_password_rejected(self, responder, machine):
        await _start(machine)
        await machine.handle_message("request_password", {})
        with pytest.raises(ValueError):
            await responder.submit_password("   ")
        assert machine.prompt == PromptKind.PASSWORD

    @pytest.mark.asyncio
    async def test_skip_password(self, responder, machine, transport):
        await _start(machine)
        await machine.handle_message("request_password", {})
        assert await responder.skip_password()
        assert _sent(transport) == [("password_skipped", {"sessionId": "s-1"})]

    @pytest.mark.asyncio
    async def test_signature(self, responder, machine, transport):
        await _start(machine)
        await machine.handle_message("request_signature", {})
        assert await responder.submit_signature("data:image/png;base64,AA")
        assert _sent(transport) == [
            ("signature_submitted", {"sessionId": "s-1", "signatureData": "data:image/png;base64,AA"})
        ]


class TestRoundTrip:
    @pytest.mark.asyncio
    async def test_operator_receives_display_answers(self, transport, recording_sleep, clock):
        machine = DisplaySessionMachine(clock=clock)
        await transport.subscribe(session_topic(LOCATION), machine.handle_message)
        responder = CustomerResponder(transport, LOCATION, machine)
        controller = IntakeSessionController(transport, LOCATION, sleep=recording_sleep)

        received = []

        async def on_password(value):
            received.append(value)

        async def on_confirmed():
            received.append("confirmed")

        await controller.listen_for_customer_responses(
            CustomerResponseHandlers(on_data_confirmed=on_confirmed, on_password_submitted=on_password)
        )
        await controller.start_session({"customer": {"name": "Mario Rossi"}, "device": {"model": "iPhone 14"}})
        assert machine.mode == DisplayMode.CONFIRM_DATA

        await responder.confirm_data()
        await controller.request_password()
        await responder.submit_password("0000")

        assert received == ["confirmed", "0000"]
        await controller.complete_intake()
        assert machine.mode == DisplayMode.COMPLETED
        clock.advance(8.0)
        assert machine.mode == DisplayMode.STANDBY
