"""pynodedss module."""
__version__ = "0.1.0"

from .config import SignalerConfig
from .enums import DiagnosticKind, FetchStatus, MessageType, SdpType
from .message import IceCandidateFields, MalformedMessage, SignalingMessage
from .peer import AiortcPeer, NegotiationPeer
from .policy import AutoAnswerPolicy, ConfirmAnswerPolicy, NegotiationPolicy
from .scheduler import AlwaysRetry, ExponentialBackoff, PollScheduler, RetryDecision
from .session import FetchResult, PublishResult, RelaySession
from .signaler import Diagnostic, NodeDssSignaler
from .transport import TickTransport

__all__ = [
    "AiortcPeer",
    "AlwaysRetry",
    "AutoAnswerPolicy",
    "ConfirmAnswerPolicy",
    "Diagnostic",
    "DiagnosticKind",
    "ExponentialBackoff",
    "FetchResult",
    "FetchStatus",
    "IceCandidateFields",
    "MalformedMessage",
    "MessageType",
    "NegotiationPeer",
    "NegotiationPolicy",
    "NodeDssSignaler",
    "PollScheduler",
    "PublishResult",
    "RelaySession",
    "RetryDecision",
    "SdpType",
    "SignalerConfig",
    "SignalingMessage",
    "TickTransport",
]
