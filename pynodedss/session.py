"""Session handling for a node-dss relay."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from types import TracebackType
from typing import Any, Final, TypeVar

from aiohttp import ClientError, ClientSession, ClientTimeout
from yarl import URL

from .enums import FetchStatus
from .exceptions import (
    NodeDssException,
    RelayTransportException,
    SignalerConfigException,
)
from .message import SignalingMessage, encode
from .utils import truncate

T = TypeVar("T", bound="RelaySession")

_LOGGER = logging.getLogger(__name__)

DEFAULT_SERVER_ADDRESS: Final = "http://127.0.0.1:3000/"
DEFAULT_REQUEST_TIMEOUT: Final = 10.0
DATA_PATH: Final = "data"
HTTP_NOT_FOUND: Final = 404


@dataclass(frozen=True)
class PublishResult:
    """Outcome of publishing a message to the relay."""

    peer_id: str
    error: NodeDssException | None = None

    @property
    def ok(self) -> bool:  # pylint: disable=invalid-name
        """Return `True` if the relay accepted the message."""
        return self.error is None


@dataclass(frozen=True)
class FetchResult:
    """Outcome of fetching the pending message for a peer."""

    peer_id: str
    status: FetchStatus
    body: str | None = None
    error: RelayTransportException | None = None

    @classmethod
    def empty(cls, peer_id: str) -> FetchResult:
        """Return a result for a slot with nothing pending."""
        return cls(peer_id, FetchStatus.EMPTY)


class RelaySession:
    """Class with methods for interacting with a node-dss relay.

    Writing is a POST to ``data/<peer id>``; reading is a GET on the same
    path, which hands back a pending message or answers 404 while nothing is
    pending.
    """

    def __init__(
        self,
        server_address: str = DEFAULT_SERVER_ADDRESS,
        websession: ClientSession | None = None,
        request_timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ) -> None:
        """Initialize the session."""
        if not server_address:
            raise SignalerConfigException("A relay server address is required")
        if not server_address.endswith("/"):
            server_address += "/"
        self._base_url = URL(server_address)
        if not self._base_url.is_absolute():
            raise SignalerConfigException(
                f"Relay server address must be absolute: {server_address}"
            )
        self._timeout = ClientTimeout(total=request_timeout)
        self._websession_provided = websession is not None
        self._websession = websession
        self._closed = False

    @property
    def base_url(self) -> URL:
        """Return the relay base address."""
        return self._base_url

    @property
    def closed(self) -> bool:
        """Return `True` once the session has been closed."""
        return self._closed

    @property
    def websession(self) -> ClientSession:
        """Get websession."""
        if self._closed:
            raise RelayTransportException("Relay session is closed")
        if self._websession is None:
            self._websession = ClientSession(timeout=self._timeout)
        return self._websession

    async def close(self) -> None:
        """Close the session.

        Requests made afterwards fail with `RelayTransportException` instead of
        opening a new websession.
        """
        self._closed = True
        if not self._websession_provided and self._websession is not None:
            await self._websession.close()
            self._websession = None

    def data_url(self, peer_id: str) -> URL:
        """Return the relay slot address for a peer."""
        return self._base_url / DATA_PATH / peer_id

    async def publish(self, peer_id: str, message: SignalingMessage) -> PublishResult:
        """Store a message in the relay slot of `peer_id`."""
        if not peer_id:
            return PublishResult(
                peer_id, SignalerConfigException("No remote peer id to publish to")
            )
        url = self.data_url(peer_id)
        try:
            await self.request("POST", url, data=encode(message))
        except RelayTransportException as err:
            return PublishResult(peer_id, err)
        _LOGGER.debug("Published %s message to %s", message.message_type.value, url)
        return PublishResult(peer_id)

    async def fetch(self, peer_id: str) -> FetchResult:
        """Retrieve the pending message in the relay slot of `peer_id`."""
        try:
            body = await self.request("GET", self.data_url(peer_id))
        except RelayTransportException as err:
            if err.status == HTTP_NOT_FOUND:
                return FetchResult.empty(peer_id)
            return FetchResult(peer_id, FetchStatus.ERROR, error=err)
        return FetchResult(peer_id, FetchStatus.MESSAGE, body=body)

    async def request(self, method: str, url: URL, **kwargs: Any) -> str:
        """Make a request and return the response text."""
        if self._closed:
            raise RelayTransportException("Relay session is closed", url=str(url))
        _LOGGER.debug("Making %s request to %s", method, url)

        try:
            async with self.websession.request(
                method, url, timeout=self._timeout, **kwargs
            ) as resp:
                text = await resp.text()
                if resp.status >= 400:
                    raise RelayTransportException(
                        resp.reason or text or "HTTP error",
                        status=resp.status,
                        url=str(url),
                    )
        except ClientError as err:
            raise RelayTransportException(
                str(err) or type(err).__name__, url=str(url)
            ) from err
        except asyncio.TimeoutError as err:
            raise RelayTransportException(
                f"Request timed out after {self._timeout.total}s", url=str(url)
            ) from err
        except RuntimeError as err:
            # aiohttp raises RuntimeError on a closed websession
            raise RelayTransportException(str(err), url=str(url)) from err

        _LOGGER.debug(
            "Received %s response from %s: %s", resp.status, url, truncate(text)
        )
        return text

    async def __aenter__(self: T) -> T:
        """Async enter."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Async exit."""
        await self.close()
