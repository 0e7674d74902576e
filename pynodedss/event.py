"""Event handling class for pynodedss."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

_LOGGER = logging.getLogger(__name__)

EVENT_MESSAGE = "message"
EVENT_DIAGNOSTIC = "diagnostic"
EVENT_LOCAL_OFFER = "local_offer"
EVENT_LOCAL_ANSWER = "local_answer"
EVENT_LOCAL_ICE_CANDIDATE = "local_ice_candidate"


@dataclass
class Event:
    """Abstract event class properties and methods."""

    _listeners: dict[str, list[Callable]] = field(default_factory=dict)

    def emit(self, event_name: str, *args: Any, **kwargs: Any) -> None:
        """Run all callbacks for an event."""
        for listener in list(self._listeners.get(event_name, [])):
            try:
                listener(*args, **kwargs)
            except Exception:  # pylint: disable=broad-except
                _LOGGER.exception("Error in %s listener %r", event_name, listener)

    def on(  # pylint: disable=invalid-name
        self, event_name: str, callback: Callable
    ) -> Callable[[], None]:
        """Register an event callback."""
        listeners: list = self._listeners.setdefault(event_name, [])
        listeners.append(callback)

        def unsubscribe() -> None:
            """Unsubscribe listeners."""
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe
