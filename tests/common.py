"""Common test module."""

from __future__ import annotations

from unittest.mock import AsyncMock

from pynodedss.event import EVENT_LOCAL_ANSWER, Event

SERVER_ADDRESS = "http://127.0.0.1:3000/"
LOCAL_PEER_ID = "alice"
REMOTE_PEER_ID = "bob"

LOCAL_URL = f"{SERVER_ADDRESS}data/{LOCAL_PEER_ID}"
REMOTE_URL = f"{SERVER_ADDRESS}data/{REMOTE_PEER_ID}"

OFFER_SDP = (
    "v=0\r\n"
    "o=- 4611731400430051336 2 IN IP4 127.0.0.1\r\n"
    "s=-\r\n"
    "t=0 0\r\n"
    "m=audio 9 UDP/TLS/RTP/SAVPF 111\r\n"
    "a=mid:audio\r\n"
)
ANSWER_SDP = (
    "v=0\r\n"
    "o=- 1902355396548736190 2 IN IP4 127.0.0.1\r\n"
    "s=-\r\n"
    "t=0 0\r\n"
    "m=audio 9 UDP/TLS/RTP/SAVPF 111\r\n"
    "a=mid:audio\r\n"
)
CANDIDATE = "candidate:1 1 UDP 2122260223 192.168.1.1 50000 typ host"
CANDIDATE_MID = "audio"
CANDIDATE_MLINE_INDEX = 0

OFFER_PAYLOAD = '{"MessageType":"Offer","Data":"v=0\\r\\n"}'
ICE_PAYLOAD = (
    '{"MessageType":"Ice","Data":"'
    + CANDIDATE
    + '|0|audio","IceDataSeparator":"|"}'
)


class FakePeer(Event):
    """Negotiation peer recording what the signaler asks of it."""

    def __init__(self, answer_sdp: str = ANSWER_SDP) -> None:
        """Initialize the fake peer."""
        super().__init__()
        self.answer_sdp = answer_sdp
        self.set_remote_description = AsyncMock()
        self.add_ice_candidate = AsyncMock()
        self.create_answer = AsyncMock(side_effect=self._create_answer)

    async def _create_answer(self) -> None:
        """Emit the canned answer like a real peer would."""
        self.emit(EVENT_LOCAL_ANSWER, self.answer_sdp)
