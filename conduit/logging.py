"""
Process-wide logging setup.

Every module logs through ``logging.getLogger(__name__)``; this helper only
installs the root handler once, at application startup.
"""
from __future__ import annotations

import logging

from conduit.config import settings

_LOGGING_CONFIGURED = False

LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"


def configure_logging() -> None:
    """Configure root logging from ``settings.LOG_LEVEL`` (idempotent)."""
    global _LOGGING_CONFIGURED
    if _LOGGING_CONFIGURED:
        return

    level = getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=level, format=LOG_FORMAT)
    _LOGGING_CONFIGURED = True
