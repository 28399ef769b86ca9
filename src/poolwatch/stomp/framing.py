"""STOMP 1.2 frame build/parse.

Frame layout:
    COMMAND EOL
    *( header EOL )
    EOL
    body NUL

EOL is LF, optionally preceded by CR. A bare EOL between frames is a
heart-beat and carries no frame. Header names and values are escaped
(``\\\\``, ``\\n``, ``\\r``, ``\\c``) in every frame except CONNECT and
CONNECTED.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from poolwatch.exceptions import ProtocolError

NUL = b"\x00"
DEFAULT_MAX_FRAME_SIZE = 1024 * 1024

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r", ":": "\\c"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "c": ":"}


class StompCommand(StrEnum):
    """Client and server frame commands used by the log subscription."""
    CONNECT = "CONNECT"
    STOMP = "STOMP"
    CONNECTED = "CONNECTED"
    SUBSCRIBE = "SUBSCRIBE"
    UNSUBSCRIBE = "UNSUBSCRIBE"
    DISCONNECT = "DISCONNECT"
    MESSAGE = "MESSAGE"
    RECEIPT = "RECEIPT"
    ERROR = "ERROR"
    SEND = "SEND"
    ACK = "ACK"
    NACK = "NACK"
    BEGIN = "BEGIN"
    COMMIT = "COMMIT"
    ABORT = "ABORT"


_RAW_HEADER_COMMANDS = frozenset({StompCommand.CONNECT, StompCommand.CONNECTED})


@dataclass(frozen=True)
class StompFrame:
    """A decoded STOMP frame."""

    command: StompCommand
    headers: dict[str, str] = field(default_factory=dict)
    body: str = ""


def escape_header(value: str) -> str:
    return "".join(_ESCAPES.get(ch, ch) for ch in value)


def unescape_header(value: str) -> str:
    """Reverse :func:`escape_header`; undefined escapes are a protocol error."""
    out: list[str] = []
    chars = iter(value)
    for ch in chars:
        if ch != "\\":
            out.append(ch)
            continue
        nxt = next(chars, "")
        if nxt not in _UNESCAPES:
            raise ProtocolError(f"Undefined header escape: \\{nxt}")
        out.append(_UNESCAPES[nxt])
    return "".join(out)


def build_frame(
    command: StompCommand,
    headers: dict[str, str] | None = None,
    body: str = "",
) -> bytes:
    """Encode a frame ready to send as one WebSocket message."""
    raw = command in _RAW_HEADER_COMMANDS
    lines = [command.value]
    for name, value in (headers or {}).items():
        if raw:
            lines.append(f"{name}:{value}")
        else:
            lines.append(f"{escape_header(name)}:{escape_header(value)}")
    encoded_body = body.encode("utf-8")
    if encoded_body:
        lines.append(f"content-length:{len(encoded_body)}")
    head = "\n".join(lines) + "\n\n"
    return head.encode("utf-8") + encoded_body + NUL


def _parse_head(head: bytes) -> tuple[StompCommand, dict[str, str]]:
    text = head.decode("utf-8")
    lines = [line.removesuffix("\r") for line in text.split("\n")]
    try:
        command = StompCommand(lines[0])
    except ValueError as exc:
        raise ProtocolError(f"Unknown STOMP command: {lines[0]!r}") from exc

    raw = command in _RAW_HEADER_COMMANDS
    headers: dict[str, str] = {}
    for line in lines[1:]:
        if not line:
            continue
        name, sep, value = line.partition(":")
        if not sep:
            raise ProtocolError(f"Malformed STOMP header line: {line!r}")
        if not raw:
            name, value = unescape_header(name), unescape_header(value)
        # Repeated headers: the first occurrence wins.
        headers.setdefault(name, value)
    return command, headers


class FrameDecoder:
    """Incremental decoder for a stream of STOMP frames.

    Buffers partial input, so a frame split across WebSocket messages is
    returned once its terminating NUL arrives. A malformed frame is dropped
    from the buffer before :class:`ProtocolError` is raised, so decoding can
    resume with the next frame. A partial frame that grows past
    ``max_frame_size`` without its NUL is dropped the same way.
    """

    def __init__(self, max_frame_size: int = DEFAULT_MAX_FRAME_SIZE) -> None:
        self._buffer = bytearray()
        self._max_frame_size = max_frame_size

    @property
    def pending(self) -> int:
        """Number of buffered bytes not yet forming a complete frame."""
        return len(self._buffer)

    def feed(self, data: str | bytes) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._buffer.extend(data)

    def next_frame(self) -> StompFrame | None:
        """Pop the next complete frame, or return None if none is buffered."""
        # Heart-beats
        while self._buffer[:1] in (b"\n", b"\r"):
            del self._buffer[:1]
        if not self._buffer:
            return None

        head_end = self._buffer.find(b"\n\n")
        crlf_end = self._buffer.find(b"\r\n\r\n")
        if crlf_end != -1 and (head_end == -1 or crlf_end < head_end):
            head, body_start = bytes(self._buffer[:crlf_end]), crlf_end + 4
        elif head_end != -1:
            head, body_start = bytes(self._buffer[:head_end]), head_end + 2
        else:
            return self._incomplete()

        try:
            command, headers = _parse_head(head)
            length = _content_length(headers)
        except (ProtocolError, UnicodeDecodeError) as exc:
            self._discard_frame()
            if isinstance(exc, ProtocolError):
                raise
            raise ProtocolError(f"Frame header is not valid UTF-8: {exc}") from exc

        if length is not None:
            body_end = body_start + length
            if length > self._max_frame_size:
                self._discard_frame()
                raise ProtocolError(f"Frame body of {length} bytes exceeds {self._max_frame_size}")
            if len(self._buffer) <= body_end:
                return self._incomplete()
            if self._buffer[body_end:body_end + 1] != NUL:
                self._discard_frame()
                raise ProtocolError("Frame body not terminated by NUL")
        else:
            body_end = self._buffer.find(NUL, body_start)
            if body_end == -1:
                return self._incomplete()

        body = bytes(self._buffer[body_start:body_end]).decode("utf-8", errors="replace")
        del self._buffer[:body_end + 1]
        return StompFrame(command=command, headers=headers, body=body)

    def decode(self, data: str | bytes) -> list[StompFrame]:
        """Feed ``data`` and return every frame it completes."""
        self.feed(data)
        frames: list[StompFrame] = []
        while (frame := self.next_frame()) is not None:
            frames.append(frame)
        return frames

    def _incomplete(self) -> None:
        if len(self._buffer) > self._max_frame_size:
            size = len(self._buffer)
            self._buffer.clear()
            raise ProtocolError(f"Unterminated frame of {size} bytes exceeds {self._max_frame_size}")
        return None

    def _discard_frame(self) -> None:
        end = self._buffer.find(NUL)
        if end == -1:
            self._buffer.clear()
        else:
            del self._buffer[:end + 1]

    def reset(self) -> None:
        self._buffer.clear()


def _content_length(headers: dict[str, str]) -> int | None:
    raw = headers.get("content-length")
    if raw is None:
        return None
    try:
        length = int(raw)
    except ValueError as exc:
        raise ProtocolError(f"Invalid content-length: {raw!r}") from exc
    if length < 0:
        raise ProtocolError(f"Invalid content-length: {raw!r}")
    return length
