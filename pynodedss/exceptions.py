"""pynodedss exceptions."""

from __future__ import annotations


class NodeDssException(Exception):
    """General node-dss signaling exception."""


class SignalerConfigException(NodeDssException):
    """To indicate the signaler is misconfigured or used before it is ready."""


class RelayTransportException(NodeDssException):
    """To indicate a relay request failed at the network or HTTP level."""

    def __init__(
        self, reason: str, status: int | None = None, url: str | None = None
    ) -> None:
        """Initialize the exception."""
        super().__init__(
            reason if status is None else f"{status}, message={reason!r}, url={url}"
        )
        self.reason = reason
        self.status = status
        self.url = url


class MalformedMessageException(NodeDssException):
    """To indicate a received signaling message could not be understood."""
