"""Built-in message handlers for parsing replies and producing responses.

A handler reads a fixed-size header to learn the length of the body that
follows, then looks at that body and may return bytes to send back. A
header result of 0 means the handler does not parse headers itself.
"""

from __future__ import annotations

import enum

DEFER_TO_DEFAULT_PARSER = 0


class HeaderType(enum.IntEnum):
    """Message kinds of the heartbeat protocol, stored in the first header byte."""

    LOGIN = 0
    REGISTER = 1
    PING = 2
    PING_RESPONSE = 3
    SEND_DM = 4


class HeartbeatHandler:
    """Answers every PING with an empty PING_RESPONSE.

    Headers are five bytes: one type byte followed by the payload length as
    a little-endian 32-bit integer.
    """

    HEADER_SIZE = 5

    def handle_header(self, data: bytes) -> int:
        """Return the body length named by a header, or 0 if it is malformed."""
        if len(data) != self.HEADER_SIZE:
            return 0
        return int.from_bytes(bytes(data[1:5]), "little")

    def handle_body(self, data: bytes) -> bytes:
        """Return a PING_RESPONSE header for a PING, otherwise nothing."""
        if len(data) < self.HEADER_SIZE:
            return b""
        if data[0] != HeaderType.PING:
            return b""
        return bytes([HeaderType.PING_RESPONSE]) + (0).to_bytes(4, "little")


class FillHandler:
    """Replies to every body with the same number of 0x55 bytes."""

    FILL_BYTE = 0x55

    def handle_header(self, data: bytes) -> int:
        """Leave header parsing to the default parser.

        Raises TypeError if ``data`` is not bytes-like.
        """
        memoryview(data).release()
        return DEFER_TO_DEFAULT_PARSER

    def handle_body(self, data: bytes) -> bytes:
        """Return a body of the same length, every byte set to 0x55."""
        return bytes([self.FILL_BYTE]) * len(data)