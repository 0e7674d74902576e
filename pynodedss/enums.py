"""pynodedss enums."""

from __future__ import annotations

import logging
from enum import Enum, unique

_LOGGER = logging.getLogger(__name__)


@unique
class MessageType(Enum):
    """Signaling message type as written on the wire."""

    UNKNOWN = "Unknown"
    OFFER = "Offer"
    ANSWER = "Answer"
    ICE = "Ice"

    @classmethod
    def from_wire(cls, value: object) -> MessageType:
        """Return the message type for a wire value.

        Unity's `JsonUtility` serializes enums by ordinal, so the integer codes
        sent by Unity node-dss clients are accepted as well.
        """
        if isinstance(value, bool):
            return cls.UNKNOWN
        if isinstance(value, int):
            return _ORDINALS.get(value, cls.UNKNOWN)
        try:
            return cls(value)
        except (TypeError, ValueError):
            _LOGGER.debug("Unrecognized message type %r", value)
        return cls.UNKNOWN


_ORDINALS = {
    0: MessageType.UNKNOWN,
    1: MessageType.OFFER,
    2: MessageType.ANSWER,
    3: MessageType.ICE,
}


@unique
class SdpType(Enum):
    """Session description type handed to the negotiation peer."""

    OFFER = "offer"
    ANSWER = "answer"


@unique
class FetchStatus(Enum):
    """Outcome of a relay fetch."""

    MESSAGE = "message"
    EMPTY = "empty"
    ERROR = "error"


@unique
class DiagnosticKind(Enum):
    """Category of a diagnostic emitted by the signaler."""

    TRANSPORT = "transport"
    MALFORMED = "malformed"
    UNRECOGNIZED = "unrecognized"
    NEGOTIATION = "negotiation"
    CONFIGURATION = "configuration"


@unique
class RetryAction(Enum):
    """What the poll scheduler does after a failed fetch."""

    RETRY = "retry"
    RETRY_AFTER = "retry_after"
    GIVE_UP = "give_up"
