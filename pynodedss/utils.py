"""Utilities module."""

from __future__ import annotations

import logging
import socket
import uuid

_LOGGER = logging.getLogger(__name__)

ENCODING = "utf-8"
LOG_TRUNCATE_LENGTH = 80


def device_identifier() -> str:
    """Return an identifier for this device that is stable across restarts.

    Derived from the host name and hardware address, so two processes on the
    same machine resolve to the same peer id unless one is configured
    explicitly.
    """
    seed = f"{socket.gethostname()}-{uuid.getnode():012x}"
    identifier = uuid.uuid5(uuid.NAMESPACE_DNS, seed).hex
    _LOGGER.debug("Derived device identifier %s", identifier)
    return identifier


def truncate(value: str, length: int = LOG_TRUNCATE_LENGTH) -> str:
    """Shorten a value for log output."""
    if len(value) <= length:
        return value
    return f"{value[:length]}... ({len(value)} chars)"


def to_bool(value: str | bool | None, default: bool = False) -> bool:
    """Interpret a configuration value as a boolean."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return value.strip().lower() in ("1", "true", "yes", "on")
