"""Tests for the service logging setup."""

from __future__ import annotations

import logging

import pytest

from intake_sync.logging_config import DISPLAY_LOG, RELAY_LOG, RELAY_LOGGER, configure_logging


@pytest.fixture(autouse=True)
def restore_logging():
    root = logging.getLogger()
    relay = logging.getLogger(RELAY_LOGGER)
    saved = (root.level, list(root.handlers), list(relay.handlers))
    yield
    for logger in (root, relay):
        for handler in logger.handlers:
            handler.close()
    root.setLevel(saved[0])
    root.handlers[:] = saved[1]
    relay.handlers[:] = saved[2]


def _flush():
    for logger in (logging.getLogger(), logging.getLogger(RELAY_LOGGER)):
        for handler in logger.handlers:
            handler.flush()


class TestConfigureLogging:
    def test_display_log_file(self, tmp_path):
        assert configure_logging("INFO", tmp_path / "logs") == tmp_path / "logs"
        logging.getLogger("intake_sync.display_runtime").info("display started")
        _flush()

        assert "display started" in (tmp_path / "logs" / DISPLAY_LOG).read_text(encoding="utf-8")
        assert not (tmp_path / "logs" / RELAY_LOG).exists()

    def test_relay_traffic_gets_its_own_file(self, tmp_path):
        configure_logging("INFO", tmp_path, relay_log=True)
        logging.getLogger(RELAY_LOGGER).info("subscribed to display-session-loc-1")
        logging.getLogger("intake_sync.session_machine").info("standby")
        _flush()

        relay_text = (tmp_path / RELAY_LOG).read_text(encoding="utf-8")
        assert "subscribed to display-session-loc-1" in relay_text
        assert "standby" not in relay_text
        assert "subscribed to display-session-loc-1" in (tmp_path / DISPLAY_LOG).read_text(encoding="utf-8")

    def test_websockets_frames_quiet_unless_debugging(self, tmp_path):
        configure_logging("INFO", tmp_path)
        assert logging.getLogger("websockets").level == logging.WARNING
        configure_logging("DEBUG", tmp_path)
        assert logging.getLogger("websockets").level == logging.DEBUG
