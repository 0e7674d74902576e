"""Signaler exchanging negotiation messages through a node-dss relay."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from types import TracebackType
from typing import Any

from aiohttp import ClientSession

from .config import SignalerConfig
from .enums import DiagnosticKind, FetchStatus, MessageType, SdpType
from .event import (
    EVENT_DIAGNOSTIC,
    EVENT_LOCAL_ANSWER,
    EVENT_LOCAL_ICE_CANDIDATE,
    EVENT_LOCAL_OFFER,
    EVENT_MESSAGE,
    Event,
)
from .exceptions import SignalerConfigException
from .message import MalformedMessage, SignalingMessage, decode
from .peer import NegotiationPeer
from .policy import AutoAnswerPolicy, NegotiationPolicy
from .scheduler import PollScheduler, RetryPolicy
from .session import FetchResult, PublishResult, RelaySession
from .utils import device_identifier

_LOGGER = logging.getLogger(__name__)

_ERROR_KINDS = (
    DiagnosticKind.TRANSPORT,
    DiagnosticKind.MALFORMED,
    DiagnosticKind.NEGOTIATION,
    DiagnosticKind.CONFIGURATION,
)


@dataclass(frozen=True)
class Diagnostic:
    """A non-fatal problem observed while signaling."""

    kind: DiagnosticKind
    message: str
    error: Exception | None = None


class NodeDssSignaler(Event):
    """Signaler for a node-dss relay.

    Local offers, answers and ICE candidates raised by the negotiation peer are
    published to the remote peer's relay slot. The local slot is polled from
    :meth:`advance`, which the host calls with the time elapsed since its
    previous call, and each received message is routed back into the peer.

    Failures of a single poll or publish never raise to the host. They are
    logged and emitted as a `Diagnostic` on `EVENT_DIAGNOSTIC`.
    """

    def __init__(
        self,
        peer: NegotiationPeer,
        config: SignalerConfig | None = None,
        *,
        relay: RelaySession | None = None,
        websession: ClientSession | None = None,
        negotiation_policy: NegotiationPolicy | None = None,
        retry_policy: RetryPolicy | None = None,
        identity_provider: Callable[[], str] = device_identifier,
    ) -> None:
        """Initialize the signaler.

        Args:
            peer: The negotiation side of the peer connection.
            config: Signaler settings; defaults to a local relay.
            relay: A relay session to use instead of creating one.
            websession: A shared aiohttp session for the created relay session.
            negotiation_policy: What to do after a remote offer is applied;
                answers immediately by default.
            retry_policy: How polling continues after failed fetches; retries
                on every interval by default.
            identity_provider: Returns the local peer id when the config has
                none. Called once, at start.

        """
        super().__init__()
        self._config = (config or SignalerConfig()).validate()
        self._peer = peer
        self._relay_provided = relay is not None
        self._relay = relay or RelaySession(
            self._config.server_address,
            websession=websession,
            request_timeout=self._config.request_timeout,
        )
        self._negotiation_policy = negotiation_policy or AutoAnswerPolicy()
        self._retry_policy = retry_policy
        self._identity_provider = identity_provider

        self._local_peer_id = self._config.local_peer_id
        self._remote_peer_id = self._config.remote_peer_id

        self._scheduler: PollScheduler | None = None
        self._unsubscribers: list[Callable[[], None]] = []
        self._publish_tasks: set[asyncio.Task] = set()
        self._closed = False

    def __str__(self) -> str:
        """Return str(self)."""
        return (
            f"Relay: {self._relay.base_url}, Local: {self._local_peer_id}, "
            f"Remote: {self._remote_peer_id}"
        )

    @property
    def config(self) -> SignalerConfig:
        """Return the validated configuration."""
        return self._config

    @property
    def peer(self) -> NegotiationPeer:
        """Return the negotiation peer."""
        return self._peer

    @property
    def relay(self) -> RelaySession:
        """Return the relay session."""
        return self._relay

    @property
    def scheduler(self) -> PollScheduler | None:
        """Return the poll scheduler once started."""
        return self._scheduler

    @property
    def local_peer_id(self) -> str | None:
        """Return the id of the local relay slot."""
        return self._local_peer_id

    @property
    def remote_peer_id(self) -> str | None:
        """Return the id messages are published to."""
        return self._remote_peer_id

    @remote_peer_id.setter
    def remote_peer_id(self, value: str | None) -> None:
        """Set the id messages are published to.

        Publishes already scheduled keep the id they were scheduled with.
        """
        _LOGGER.debug("Remote peer id changed to %s", value)
        self._remote_peer_id = value

    @property
    def is_running(self) -> bool:
        """Return `True` between start and close."""
        return self._scheduler is not None and not self._scheduler.closed

    @property
    def pending_publishes(self) -> int:
        """Return the number of publishes still in flight."""
        return len(self._publish_tasks)

    # -- Lifecycle ---------------------------------------------------------

    async def start(self) -> None:
        """Resolve the local id, listen to the peer and prepare polling."""
        if self._closed:
            raise SignalerConfigException("Signaler has been closed")
        if self._scheduler is not None:
            return

        if not self._local_peer_id:
            self._local_peer_id = self._identity_provider()
            if not self._local_peer_id:
                raise SignalerConfigException("Unable to determine a local peer id")

        self._unsubscribers = [
            self._peer.on(EVENT_LOCAL_OFFER, self.send_offer),
            self._peer.on(EVENT_LOCAL_ANSWER, self.send_answer),
            self._peer.on(EVENT_LOCAL_ICE_CANDIDATE, self.send_ice_candidate),
        ]
        self._scheduler = PollScheduler(
            self.poll,
            self._config.poll_interval,
            retry_policy=self._retry_policy,
            on_give_up=self._on_give_up,
        )
        _LOGGER.info("Signaler started (%s)", self)

    def advance(self, elapsed: float) -> asyncio.Task | None:
        """Advance the poll clock by `elapsed` seconds.

        Returns the fetch task when this call started one.
        """
        if self._scheduler is None or self._closed:
            return None
        return self._scheduler.tick(elapsed)

    async def wait_for_publishes(self) -> list[PublishResult]:
        """Wait for the publishes currently in flight."""
        if not self._publish_tasks:
            return []
        return list(await asyncio.gather(*self._publish_tasks))

    async def close(self) -> None:
        """Stop polling and release the relay session.

        Fetches and publishes still in flight complete or fail without
        touching the signaler.
        """
        if self._closed:
            return
        self._closed = True
        if self._scheduler is not None:
            self._scheduler.close()
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()
        if not self._relay_provided:
            await self._relay.close()
        _LOGGER.info("Signaler closed (%s)", self)

    # -- Outbound ----------------------------------------------------------

    def send_offer(self, sdp: str) -> asyncio.Task[PublishResult] | None:
        """Publish a local offer to the remote peer."""
        return self._schedule_publish(SignalingMessage.offer, sdp)

    def send_answer(self, sdp: str) -> asyncio.Task[PublishResult] | None:
        """Publish a local answer to the remote peer."""
        return self._schedule_publish(SignalingMessage.answer, sdp)

    def send_ice_candidate(
        self, candidate: str, sdp_mline_index: int, sdp_mid: str
    ) -> asyncio.Task[PublishResult] | None:
        """Publish a local ICE candidate to the remote peer.

        Returns `None` when the candidate cannot be carried by the wire format,
        e.g. when it contains the ICE data separator.
        """
        return self._schedule_publish(
            SignalingMessage.ice_candidate,
            candidate,
            sdp_mline_index,
            sdp_mid,
            self._config.ice_data_separator,
        )

    async def publish(
        self, message: SignalingMessage, peer_id: str | None = None
    ) -> PublishResult:
        """Publish a message to `peer_id`, or to the remote peer."""
        if peer_id is None:
            peer_id = self._remote_peer_id or ""
        return await self._publish_to(peer_id, message)

    def _schedule_publish(
        self, build: Callable[..., SignalingMessage], *args: Any
    ) -> asyncio.Task | None:
        """Build a message and publish it in the background to the remote peer."""
        if self._closed:
            raise SignalerConfigException("Signaler has been closed")
        try:
            message = build(*args)
        except ValueError as err:
            self._report(
                DiagnosticKind.MALFORMED, f"Dropping local message: {err}", err
            )
            return None
        loop = asyncio.get_running_loop()
        peer_id = self._remote_peer_id or ""
        task = loop.create_task(self._publish_to(peer_id, message))
        self._publish_tasks.add(task)
        task.add_done_callback(self._publish_tasks.discard)
        return task

    async def _publish_to(
        self, peer_id: str, message: SignalingMessage
    ) -> PublishResult:
        """Publish a message and report a failure."""
        if self._closed:
            return PublishResult(
                peer_id, SignalerConfigException("Signaler has been closed")
            )
        result = await self._relay.publish(peer_id, message)
        if result.ok:
            _LOGGER.debug("Sent %s to %s", message, peer_id)
        elif not self._closed:
            kind = (
                DiagnosticKind.CONFIGURATION
                if isinstance(result.error, SignalerConfigException)
                else DiagnosticKind.TRANSPORT
            )
            self._report(
                kind,
                f"Failure sending {message.message_type.value} message to "
                f"{peer_id or '<unset>'}: {result.error}",
                result.error,
            )
        return result

    # -- Inbound -----------------------------------------------------------

    async def poll(self) -> FetchResult:
        """Fetch the pending message for the local peer and dispatch it."""
        if not self._local_peer_id:
            raise SignalerConfigException("Signaler has not been started")
        if self._closed:
            # leave the slot alone so pending messages are not lost
            return FetchResult.empty(self._local_peer_id)

        result = await self._relay.fetch(self._local_peer_id)
        if self._closed:
            return result

        if result.status is FetchStatus.MESSAGE:
            await self._handle_payload(result.body or "")
        elif result.status is FetchStatus.ERROR:
            self._report(
                DiagnosticKind.TRANSPORT,
                f"Network error trying to fetch from {self._relay.base_url}: "
                f"{result.error}",
                result.error,
            )
        else:
            # node-dss answers 404 while nothing is pending
            _LOGGER.debug("No message pending for %s", self._local_peer_id)
        return result

    async def _handle_payload(self, body: str) -> None:
        """Decode a fetched payload and dispatch it."""
        decoded = decode(body)
        if isinstance(decoded, MalformedMessage):
            self._report(
                DiagnosticKind.MALFORMED,
                f"Failed to deserialize message: {decoded.reason}",
                decoded.as_exception(),
            )
            return
        await self.dispatch(decoded)

    async def dispatch(self, message: SignalingMessage) -> bool:
        """Route a received message into the negotiation peer.

        Returns `True` if the peer accepted the message.
        """
        _LOGGER.debug("Received signaling message: %s", message)
        self.emit(EVENT_MESSAGE, message)

        try:
            if message.message_type is MessageType.OFFER:
                await self._peer.set_remote_description(SdpType.OFFER, message.data)
                await self._negotiation_policy.on_remote_offer(
                    self._peer, message.data
                )
            elif message.message_type is MessageType.ANSWER:
                await self._peer.set_remote_description(SdpType.ANSWER, message.data)
            elif message.message_type is MessageType.ICE:
                fields = message.ice_fields()
                if isinstance(fields, MalformedMessage):
                    self._report(
                        DiagnosticKind.MALFORMED,
                        f"Dropping ICE message: {fields.reason}",
                        fields.as_exception(),
                    )
                    return False
                await self._peer.add_ice_candidate(*fields)
            else:
                self._report(
                    DiagnosticKind.UNRECOGNIZED, f"Unknown message: {message}"
                )
                return False
        except Exception as err:  # pylint: disable=broad-except
            self._report(
                DiagnosticKind.NEGOTIATION,
                f"Peer rejected {message.message_type.value} message: {err}",
                err,
            )
            return False
        return True

    # -- Internal ----------------------------------------------------------

    def _on_give_up(self) -> None:
        """Report that the retry policy stopped polling."""
        self._report(
            DiagnosticKind.TRANSPORT,
            f"Stopped polling {self._relay.base_url} after repeated failures",
        )

    def _report(
        self, kind: DiagnosticKind, message: str, error: Exception | None = None
    ) -> None:
        """Log a diagnostic and emit it to listeners."""
        if kind not in _ERROR_KINDS:
            _LOGGER.warning(message)
        elif self._config.auto_log_errors:
            _LOGGER.error(
                message,
                exc_info=error if kind is DiagnosticKind.NEGOTIATION else None,
            )
        else:
            _LOGGER.debug(message)
        self.emit(EVENT_DIAGNOSTIC, Diagnostic(kind, message, error))

    async def __aenter__(self) -> NodeDssSignaler:
        """Start the signaler on context entry."""
        await self.start()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Close the signaler on context exit."""
        await self.close()
