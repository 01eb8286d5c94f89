"""Logging setup for the intake display service.

Everything lands on the console and in ``intake-display.log``. When the
service also hosts the broadcast relay, relay traffic (subscriptions,
fan-out, rejected topics) is copied to ``intake-relay.log`` so operator-side
connection problems can be read without the display noise.
"""
from __future__ import annotations

from logging.config import dictConfig
from pathlib import Path
from typing import Any, Dict, List, Optional

DISPLAY_LOG = "intake-display.log"
RELAY_LOG = "intake-relay.log"
RELAY_LOGGER = "intake_sync.transport.relay"

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def _daily_file(path: Path, level: str, retention_days: int) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.TimedRotatingFileHandler",
        "formatter": "default",
        "level": level,
        "filename": str(path),
        "when": "midnight",
        "backupCount": max(int(retention_days), 1),
        "utc": True,
        "delay": True,
        "encoding": "utf-8",
    }


def configure_logging(
    level: str = "INFO",
    log_dir: Optional[Path] = None,
    retention_days: int = 14,
    *,
    relay_log: bool = False,
) -> Path:
    """Install handlers and return the directory the log files go to."""

    if log_dir is None:
        log_dir = Path(__file__).resolve().parents[1] / "logs"
    log_dir = Path(log_dir).expanduser()
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers: Dict[str, Any] = {
        "console": {"class": "logging.StreamHandler", "formatter": "default", "level": level},
        "display_file": _daily_file(log_dir / DISPLAY_LOG, level, retention_days),
    }
    loggers: Dict[str, Any] = {
        # Frame-level chatter from the relay client library
        "websockets": {"level": "DEBUG" if level.upper() == "DEBUG" else "WARNING"},
        "httpx": {"level": "WARNING"},
    }
    relay_handlers: List[str] = []
    if relay_log:
        handlers["relay_file"] = _daily_file(log_dir / RELAY_LOG, level, retention_days)
        relay_handlers.append("relay_file")
    # Always listed so a reconfigure without the relay detaches the old file
    loggers[RELAY_LOGGER] = {"handlers": relay_handlers, "propagate": True}

    dictConfig(
        {
            "version": 1,
            "disable_existing_loggers": False,
            "formatters": {"default": {"format": LOG_FORMAT}},
            "handlers": handlers,
            "loggers": loggers,
            "root": {"level": level, "handlers": ["console", "display_file"]},
        }
    )
    return log_dir


__all__ = ["DISPLAY_LOG", "RELAY_LOG", "RELAY_LOGGER", "configure_logging"]
