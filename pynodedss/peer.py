"""Negotiation peers driven by the signaler.

The signaler does not create offers, answers or candidates itself. It talks to
a `NegotiationPeer`, which raises local negotiation events through
:meth:`~pynodedss.event.Event.on` and accepts the remote side's descriptions
and candidates.

`AiortcPeer` adapts an ``aiortc`` peer connection and requires the optional
dependency::

    pip install pynodedss[aiortc]
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Protocol, runtime_checkable

from .enums import SdpType
from .event import EVENT_LOCAL_ANSWER, EVENT_LOCAL_OFFER, Event
from .exceptions import NodeDssException
from .utils import truncate

_LOGGER = logging.getLogger(__name__)

CANDIDATE_PREFIX = "candidate:"


@runtime_checkable
class NegotiationPeer(Protocol):
    """The negotiation side of a peer connection.

    Implementations emit `EVENT_LOCAL_OFFER` and `EVENT_LOCAL_ANSWER` with the
    SDP, and `EVENT_LOCAL_ICE_CANDIDATE` with ``(candidate, sdp_mline_index,
    sdp_mid)``, whenever the local side has something to send.
    """

    def on(self, event_name: str, callback: Callable) -> Callable[[], None]:
        """Register an event callback."""

    async def set_remote_description(self, sdp_type: SdpType, sdp: str) -> None:
        """Apply a remote offer or answer."""

    async def create_answer(self) -> None:
        """Create a local answer; it is delivered via `EVENT_LOCAL_ANSWER`."""

    async def add_ice_candidate(
        self, candidate: str, sdp_mline_index: int, sdp_mid: str
    ) -> None:
        """Add a remote ICE candidate."""


try:
    from aiortc import RTCPeerConnection, RTCSessionDescription
    from aiortc.sdp import candidate_from_sdp

    HAS_AIORTC = True
except ImportError:
    HAS_AIORTC = False


class AiortcPeer(Event):
    """`NegotiationPeer` backed by an ``aiortc`` RTCPeerConnection.

    aiortc gathers ICE candidates while setting the local description and
    embeds them in the SDP, so this peer never emits
    `EVENT_LOCAL_ICE_CANDIDATE`. Remote trickled candidates are still applied.

    Usage::

        peer = AiortcPeer(RTCPeerConnection())
        async with NodeDssSignaler(peer, config) as signaler:
            await peer.create_offer()
    """

    def __init__(self, pc: Any | None = None, **kwargs: Any) -> None:
        """Initialize the peer.

        Args:
            pc: An existing ``RTCPeerConnection``; one is created from
                ``kwargs`` when omitted.
            **kwargs: Passed to ``RTCPeerConnection`` when creating one.

        Raises:
            ImportError: If ``aiortc`` is not installed.

        """
        if not HAS_AIORTC:
            raise ImportError(
                "AiortcPeer requires the 'aiortc' package. "
                "Install it with: pip install pynodedss[aiortc]"
            )
        super().__init__()
        self._pc = pc if pc is not None else RTCPeerConnection(**kwargs)

    @property
    def pc(self) -> Any:  # pylint: disable=invalid-name
        """Return the underlying peer connection."""
        return self._pc

    async def create_offer(self) -> str:
        """Create and apply a local offer, then emit it."""
        offer = await self._pc.createOffer()
        await self._pc.setLocalDescription(offer)
        sdp = self._local_sdp()
        _LOGGER.debug("Created local offer (%d bytes)", len(sdp))
        self.emit(EVENT_LOCAL_OFFER, sdp)
        return sdp

    async def create_answer(self) -> None:
        """Create and apply a local answer, then emit it."""
        answer = await self._pc.createAnswer()
        await self._pc.setLocalDescription(answer)
        sdp = self._local_sdp()
        _LOGGER.debug("Created local answer (%d bytes)", len(sdp))
        self.emit(EVENT_LOCAL_ANSWER, sdp)

    async def set_remote_description(self, sdp_type: SdpType, sdp: str) -> None:
        """Apply a remote offer or answer."""
        await self._pc.setRemoteDescription(
            RTCSessionDescription(sdp=sdp, type=sdp_type.value)
        )
        _LOGGER.debug("Set remote description (%s)", sdp_type.value)

    async def add_ice_candidate(
        self, candidate: str, sdp_mline_index: int, sdp_mid: str
    ) -> None:
        """Add a remote ICE candidate."""
        # aiortc parses the attribute value without the "candidate:" prefix
        value = candidate
        if value.startswith(CANDIDATE_PREFIX):
            value = value[len(CANDIDATE_PREFIX) :]
        try:
            rtc_candidate = candidate_from_sdp(value)
        except (IndexError, ValueError) as err:
            raise NodeDssException(
                f"Failed to parse ICE candidate: {truncate(candidate)}"
            ) from err
        rtc_candidate.sdpMid = sdp_mid
        rtc_candidate.sdpMLineIndex = sdp_mline_index
        await self._pc.addIceCandidate(rtc_candidate)
        _LOGGER.debug("Added ICE candidate: %s", truncate(candidate, 60))

    async def close(self) -> None:
        """Close the peer connection."""
        await self._pc.close()

    def _local_sdp(self) -> str:
        """Return the applied local description."""
        if (description := self._pc.localDescription) is None:
            raise NodeDssException("Local description was not applied")
        return description.sdp
