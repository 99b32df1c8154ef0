"""Split a TCP byte stream into Telenot long frames.

The converter normally delivers one frame per read, but reads can coalesce
(ACK + data block) or split a block in two. Long frames have the layout::

    68 LL LL 68 <LL bytes> CS 16

so a complete frame is ``LL + 6`` bytes. Anything that does not start with a
valid long-frame header is cut at the next start marker and passed through
as its own chunk, which the classifier then reports as ``INVALID``.
"""

from __future__ import annotations

import logging

from telenot_bridge.protocol.classifier import TELEGRAM_START

logger = logging.getLogger(__name__)

HEADER_LENGTH = 4
FRAME_OVERHEAD = 6  # 4 header bytes + checksum + end marker


class FrameSplitter:
    """Buffer TCP reads and emit complete frames.

    Example:
        splitter = FrameSplitter()
        splitter.feed(bytes.fromhex("68020268"))        # -> []
        splitter.feed(bytes.fromhex("4002421668"))      # -> [SEND_NORM frame]

    """

    MAX_BUFFER_SIZE: int = 4096

    def __init__(self) -> None:
        self.buffer: bytearray = bytearray()

    def reset(self) -> None:
        """Drop buffered bytes (called after a reconnect)."""
        self.buffer.clear()

    def feed(self, data: bytes) -> list[bytes]:
        self.buffer.extend(data)
        frames: list[bytes] = []

        while self.buffer:
            if self.buffer[0] != TELEGRAM_START:
                frames.append(self._drain_until_start())
                continue

            if len(self.buffer) < HEADER_LENGTH:
                break

            length = self.buffer[1]
            if self.buffer[2] != length or self.buffer[3] != TELEGRAM_START:
                # Not a long frame header: resync at the next start marker
                frames.append(self._drain_until_start())
                continue

            total = length + FRAME_OVERHEAD
            if len(self.buffer) < total:
                break

            frames.append(bytes(self.buffer[:total]))
            del self.buffer[:total]

        if len(self.buffer) > self.MAX_BUFFER_SIZE:
            logger.warning(
                "Frame buffer exceeded %d bytes, discarding %d buffered bytes",
                self.MAX_BUFFER_SIZE,
                len(self.buffer),
            )
            self.buffer.clear()

        return frames

    def _drain_until_start(self) -> bytes:
        """Cut leading bytes up to the next start marker into their own chunk."""
        next_start = self.buffer.find(TELEGRAM_START, 1)
        if next_start == -1:
            chunk = bytes(self.buffer)
            self.buffer.clear()
        else:
            chunk = bytes(self.buffer[:next_start])
            del self.buffer[:next_start]
        return chunk
