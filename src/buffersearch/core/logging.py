"""
Logging setup for the CLI and the API.

The packaged `config/logging.yaml` sends records to stderr and keeps `httpx` at WARNING,
so backend retries surface through `buffersearch.query.client` rather than per-request
httpx lines. `app.log_level` (or `BUFFERSEARCH_LOG_LEVEL`) sets the root and handler
level; use DEBUG to see every feature store transition.
"""

from __future__ import annotations

import logging.config

from buffersearch.config.settings import get_logging_config, get_settings


def configure_logging() -> None:
    """Apply the packaged logging config with the level taken from settings."""
    settings = get_settings()
    config = get_logging_config()

    level = settings.app.log_level.upper()
    config.setdefault("root", {})["level"] = level
    for handler in config.get("handlers", {}).values():
        if isinstance(handler, dict) and "level" in handler:
            handler["level"] = level

    logging.config.dictConfig(config)
