"""Signaling message codec.

A node-dss message is one JSON object::

    {"MessageType": "Offer" | "Answer" | "Ice", "Data": "...", "IceDataSeparator": "|"}

Offer and answer messages carry SDP text in ``Data``. ICE messages pack the
candidate string, the m-line index and the media id into ``Data``, joined by
``IceDataSeparator``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from typing import Any, NamedTuple

from .enums import MessageType
from .exceptions import MalformedMessageException
from .utils import ENCODING, truncate

_LOGGER = logging.getLogger(__name__)

DEFAULT_ICE_DATA_SEPARATOR = "|"
ICE_FIELD_COUNT = 3

KEY_MESSAGE_TYPE = "MessageType"
KEY_DATA = "Data"
KEY_ICE_DATA_SEPARATOR = "IceDataSeparator"


class IceCandidateFields(NamedTuple):
    """The parts of an ICE candidate carried by an ICE message."""

    candidate: str
    sdp_mline_index: int
    sdp_mid: str


@dataclass(frozen=True)
class MalformedMessage:
    """A payload that could not be decoded."""

    reason: str
    raw: str = ""

    def as_exception(self) -> MalformedMessageException:
        """Return an exception describing this payload."""
        return MalformedMessageException(self.reason)


@dataclass(frozen=True)
class SignalingMessage:
    """A signaling message exchanged through the relay."""

    message_type: MessageType
    data: str
    ice_data_separator: str | None = None
    raw_type: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        """Validate that only ICE messages carry a separator."""
        if (
            self.ice_data_separator is not None
            and self.message_type is not MessageType.ICE
        ):
            raise ValueError(
                f"{self.message_type.value} message cannot carry an ICE data separator"
            )

    @classmethod
    def offer(cls, sdp: str) -> SignalingMessage:
        """Create an SDP offer message."""
        if not sdp:
            raise ValueError("Offer SDP must not be empty")
        return cls(MessageType.OFFER, sdp)

    @classmethod
    def answer(cls, sdp: str) -> SignalingMessage:
        """Create an SDP answer message."""
        if not sdp:
            raise ValueError("Answer SDP must not be empty")
        return cls(MessageType.ANSWER, sdp)

    @classmethod
    def ice_candidate(
        cls,
        candidate: str,
        sdp_mline_index: int,
        sdp_mid: str,
        separator: str = DEFAULT_ICE_DATA_SEPARATOR,
    ) -> SignalingMessage:
        """Create an ICE candidate message."""
        return cls(
            MessageType.ICE,
            encode_ice_fields(candidate, sdp_mline_index, sdp_mid, separator),
            ice_data_separator=separator,
        )

    @property
    def is_recognized(self) -> bool:
        """Return `True` if the message type is one this client handles."""
        return self.message_type is not MessageType.UNKNOWN

    def ice_fields(self) -> IceCandidateFields | MalformedMessage:
        """Decode the ICE candidate fields carried by this message."""
        if self.message_type is not MessageType.ICE:
            return MalformedMessage(
                f"{self.message_type.value} message does not carry an ICE candidate",
                self.data,
            )
        return decode_ice_fields(
            self.data, self.ice_data_separator or DEFAULT_ICE_DATA_SEPARATOR
        )

    def __str__(self) -> str:
        """Return str(self)."""
        return f"{self.raw_type or self.message_type.value}: {truncate(self.data)}"


def encode_ice_fields(
    candidate: str,
    sdp_mline_index: int,
    sdp_mid: str,
    separator: str = DEFAULT_ICE_DATA_SEPARATOR,
) -> str:
    """Join an ICE candidate's fields into a single payload.

    The separator is not escaped on the wire, so it must not occur in the
    candidate or the media id.
    """
    if not separator:
        raise ValueError("ICE data separator must not be empty")
    if not candidate:
        raise ValueError("ICE candidate must not be empty")
    if not sdp_mid:
        raise ValueError("ICE candidate sdp_mid must not be empty")
    if sdp_mline_index < 0:
        raise ValueError(f"Invalid sdp_mline_index {sdp_mline_index}")
    for name, value in (("candidate", candidate), ("sdp_mid", sdp_mid)):
        if separator in value:
            raise ValueError(f"ICE data separator {separator!r} occurs in {name}")
    return separator.join((candidate, str(sdp_mline_index), sdp_mid))


def decode_ice_fields(
    data: str, separator: str = DEFAULT_ICE_DATA_SEPARATOR
) -> IceCandidateFields | MalformedMessage:
    """Split an ICE payload into candidate, m-line index and media id."""
    if not separator:
        return MalformedMessage("ICE data separator is empty", data)
    parts = [part for part in data.split(separator) if part]
    if len(parts) != ICE_FIELD_COUNT:
        return MalformedMessage(
            f"Expected {ICE_FIELD_COUNT} ICE fields separated by {separator!r}, "
            f"got {len(parts)}",
            data,
        )
    candidate, index, sdp_mid = parts
    try:
        sdp_mline_index = int(index)
    except ValueError:
        return MalformedMessage(f"Invalid sdp_mline_index {index!r}", data)
    if sdp_mline_index < 0:
        return MalformedMessage(f"Invalid sdp_mline_index {index!r}", data)
    return IceCandidateFields(candidate, sdp_mline_index, sdp_mid)


def encode(message: SignalingMessage) -> bytes:
    """Serialize a message for the relay."""
    payload: dict[str, Any] = {
        KEY_MESSAGE_TYPE: message.raw_type or message.message_type.value,
        KEY_DATA: message.data,
    }
    if message.message_type is MessageType.ICE:
        payload[KEY_ICE_DATA_SEPARATOR] = (
            message.ice_data_separator or DEFAULT_ICE_DATA_SEPARATOR
        )
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False).encode(
        ENCODING
    )


def decode(raw: bytes | str) -> SignalingMessage | MalformedMessage:
    """Deserialize a message received from the relay."""
    try:
        text = raw.decode(ENCODING) if isinstance(raw, bytes) else raw
    except UnicodeDecodeError as err:
        return MalformedMessage(f"Payload is not valid {ENCODING}: {err}")

    try:
        payload = json.loads(text)
    except json.JSONDecodeError as err:
        return MalformedMessage(f"Payload is not valid JSON: {err.msg}", text)
    if not isinstance(payload, dict):
        return MalformedMessage("Payload is not a JSON object", text)

    data = payload.get(KEY_DATA)
    if not isinstance(data, str):
        return MalformedMessage(f"Missing or non-string {KEY_DATA!r}", text)

    wire_type = payload.get(KEY_MESSAGE_TYPE)
    message_type = MessageType.from_wire(wire_type)

    if message_type is MessageType.UNKNOWN:
        return SignalingMessage(
            MessageType.UNKNOWN,
            data,
            raw_type=None if wire_type is None else str(wire_type),
        )

    if message_type in (MessageType.OFFER, MessageType.ANSWER):
        if not data:
            return MalformedMessage(f"{message_type.value} message has no SDP", text)
        return SignalingMessage(message_type, data)

    separator = payload.get(KEY_ICE_DATA_SEPARATOR) or DEFAULT_ICE_DATA_SEPARATOR
    if not isinstance(separator, str):
        return MalformedMessage(f"Non-string {KEY_ICE_DATA_SEPARATOR!r}", text)
    message = SignalingMessage(MessageType.ICE, data, ice_data_separator=separator)
    if isinstance(fields := message.ice_fields(), MalformedMessage):
        _LOGGER.debug("Rejecting ICE message: %s", fields.reason)
        return MalformedMessage(fields.reason, text)
    return message
