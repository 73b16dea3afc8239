"""
Structured logging for the watcher process.

Every record carries an ISO-8601 UTC timestamp, the level, the emitting module
(logger) and an event_type; wallet-scoped records also carry wallet_id.
LOG_FORMAT=json (default) prints one JSON object per line to stdout, any
other value prints the structlog console format. LOG_LEVEL filters records.

Decimal amounts are written as strings so balances keep every digit.

This module imports nothing from wallet_watcher; every other module imports it.
"""

from __future__ import annotations

import logging
import os
import sys
from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL_VALUE = getattr(logging, LOG_LEVEL, logging.INFO)
LOG_FORMAT = os.getenv("LOG_FORMAT", "json").strip().lower()

ROOT_LOGGER_NAME = "wallet_watcher"


def _json_default(value: Any) -> Any:
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    return repr(value)


def _renderer() -> Any:
    if LOG_FORMAT == "json":
        return structlog.processors.JSONRenderer(default=_json_default)
    return structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())


def configure_structlog() -> None:
    """Install the processor chain; runs once on first import."""
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            structlog.processors.EventRenamer("event_type"),
            _renderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(LOG_LEVEL_VALUE),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(file=sys.stdout),
        cache_logger_on_first_use=True,
    )


if not structlog.is_configured():
    configure_structlog()


def get_logger(name: str) -> structlog.BoundLogger:
    """
    Logger bound to the module name.

        logger = get_logger(__name__)
        logger.info("cursor_advanced", wallet_id=address, new_items=3)

    renders as {"event_type": "cursor_advanced", "wallet_id": "...", "new_items": 3,
    "logger": "wallet_watcher.solana_listener.cursor", "level": "info", "timestamp": "..."}.
    """
    return structlog.get_logger(name).bind(logger=name)


def bind_wallet(wallet_id: str) -> structlog.BoundLogger:
    """Logger for one watched wallet; wallet_id is attached to every record."""
    return get_logger(ROOT_LOGGER_NAME).bind(wallet_id=wallet_id)
