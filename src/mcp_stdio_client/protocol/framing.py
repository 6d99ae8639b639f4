"""Newline-delimited JSON framing.

Wire format (UTF-8, one JSON object per line):
    {"jsonrpc": "2.0", "id": 1, "result": {...}}\\n

Servers often print banners or debug text on stdout next to protocol
traffic. Such lines are dropped instead of failing the read loop.
"""

from __future__ import annotations

import json
import logging

from .types import Message, parse_message

logger = logging.getLogger(__name__)

NEWLINE = b"\n"


class LineDecoder:
    """Accumulates raw bytes and yields decoded messages per complete line.

    Buffering is done on bytes, so a multi-byte UTF-8 character split
    across two chunks is decoded once the line is complete.
    """

    def __init__(self) -> None:
        self._buffer = bytearray()

    @property
    def pending_bytes(self) -> int:
        """Number of buffered bytes not yet terminated by a newline."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> list[Message]:
        """Append a chunk and return every message completed by it."""
        self._buffer.extend(chunk)
        messages: list[Message] = []

        while True:
            nl = self._buffer.find(NEWLINE)
            if nl == -1:
                break
            line = bytes(self._buffer[:nl])
            del self._buffer[: nl + 1]

            message = decode_line(line)
            if message is not None:
                messages.append(message)

        return messages

    def clear(self) -> None:
        self._buffer.clear()


def decode_line(line: bytes) -> Message | None:
    """Decode one line, returning None for blank or non-protocol lines."""
    line = line.strip()
    if not line:
        return None

    try:
        data = json.loads(line.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError):
        logger.debug(f"Skipping non-JSON line: {line[:80]!r}")
        return None

    message = parse_message(data)
    if message is None:
        logger.debug(f"Skipping non-protocol line: {line[:80]!r}")
    return message
