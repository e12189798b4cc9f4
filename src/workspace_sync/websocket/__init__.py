"""Socket.IO connection handling for sync clients."""

from .session import ConnectionSession, SessionRegistry
from .acks import AcknowledgementEmitter
from .router import EventRouter

__all__ = [
    "ConnectionSession",
    "SessionRegistry",
    "AcknowledgementEmitter",
    "EventRouter",
]
