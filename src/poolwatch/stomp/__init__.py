"""STOMP over WebSocket: frame codec and transport sessions."""

from poolwatch.stomp.framing import FrameDecoder, StompCommand, StompFrame, build_frame
from poolwatch.stomp.transport import (
    StompWebSocketSession,
    TransportFactory,
    TransportListener,
    TransportSession,
    stomp_session_factory,
)

__all__ = [
    "FrameDecoder",
    "StompCommand",
    "StompFrame",
    "StompWebSocketSession",
    "TransportFactory",
    "TransportListener",
    "TransportSession",
    "build_frame",
    "stomp_session_factory",
]
