"""Negotiation policies applied when a remote offer arrives."""

from __future__ import annotations

import inspect
import logging
from abc import ABC, abstractmethod
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from .peer import NegotiationPeer

_LOGGER = logging.getLogger(__name__)


class NegotiationPolicy(ABC):
    """Decides what happens after a remote offer has been applied."""

    @abstractmethod
    async def on_remote_offer(self, peer: NegotiationPeer, sdp: str) -> None:
        """React to a remote offer already set as the remote description."""


class AutoAnswerPolicy(NegotiationPolicy):
    """Answer every offer immediately.

    For point-to-point sessions any offer implies consent to answer.
    """

    async def on_remote_offer(self, peer: NegotiationPeer, sdp: str) -> None:
        """Create the local answer."""
        _LOGGER.debug("Auto-answering remote offer")
        await peer.create_answer()


class ConfirmAnswerPolicy(NegotiationPolicy):
    """Answer an offer only once the host confirms it."""

    def __init__(self, confirm: Callable[[str], bool | Awaitable[bool]]) -> None:
        """Initialize the policy.

        Args:
            confirm: Called with the offer SDP; may be a coroutine function.

        """
        self._confirm = confirm

    async def on_remote_offer(self, peer: NegotiationPeer, sdp: str) -> None:
        """Create the local answer if the offer is confirmed."""
        accepted = self._confirm(sdp)
        if inspect.isawaitable(accepted):
            accepted = await accepted
        if not accepted:
            _LOGGER.info("Remote offer declined; not answering")
            return
        await peer.create_answer()
