"""Conftest."""

from __future__ import annotations

import re
from collections import defaultdict, deque
from typing import Any

import pytest
import pytest_asyncio
from aioresponses import CallbackResult, aioresponses

from pynodedss import NodeDssSignaler, SignalerConfig

from .common import LOCAL_PEER_ID, REMOTE_PEER_ID, SERVER_ADDRESS, FakePeer

DATA_URL = re.compile(rf"^{re.escape(SERVER_ADDRESS)}data/(?P<peer_id>[^/?]+)$")


@pytest.fixture
def mock_aioresponse() -> aioresponses:
    """Mock aioresponses fixture."""
    with aioresponses() as mock:
        yield mock


@pytest.fixture
def dss_relay(mock_aioresponse: aioresponses) -> dict[str, deque[str]]:
    """Emulate a node-dss server: POST queues a message, GET pops one or 404s."""
    slots: dict[str, deque[str]] = defaultdict(deque)

    def _peer_id(url: Any) -> str:
        match = DATA_URL.match(str(url))
        assert match, url
        return match["peer_id"]

    def _post(url: Any, **kwargs: Any) -> CallbackResult:
        data = kwargs.get("data", b"")
        slots[_peer_id(url)].append(data.decode() if isinstance(data, bytes) else data)
        return CallbackResult(status=200)

    def _get(url: Any, **kwargs: Any) -> CallbackResult:
        if not (slot := slots[_peer_id(url)]):
            return CallbackResult(status=404, body="")
        return CallbackResult(status=200, body=slot.popleft())

    mock_aioresponse.post(DATA_URL, callback=_post, repeat=True)
    mock_aioresponse.get(DATA_URL, callback=_get, repeat=True)
    return slots


@pytest.fixture
def fake_peer() -> FakePeer:
    """Return a negotiation peer double."""
    return FakePeer()


@pytest.fixture
def config() -> SignalerConfig:
    """Return a config for the local peer."""
    return SignalerConfig(
        server_address=SERVER_ADDRESS,
        local_peer_id=LOCAL_PEER_ID,
        remote_peer_id=REMOTE_PEER_ID,
        poll_interval=1.0,
    )


@pytest_asyncio.fixture
async def signaler(fake_peer: FakePeer, config: SignalerConfig) -> NodeDssSignaler:
    """Return a started signaler for the local peer."""
    signaler = NodeDssSignaler(fake_peer, config)
    await signaler.start()
    yield signaler
    await signaler.close()
