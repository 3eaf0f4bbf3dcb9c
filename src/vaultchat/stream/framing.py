"""Line framing for the assistant's newline-delimited JSON output."""

from __future__ import annotations

import logging

logger = logging.getLogger(__name__)


class FrameDecoder:
    """Splits an arbitrarily chunked byte stream into complete text lines.

    Each call to :meth:`feed` appends to a carry-over buffer and returns
    every line whose terminating ``\\n`` has now arrived, decoded as UTF-8
    and stripped.  Blank lines are dropped.  Splitting happens on bytes, so
    a multi-byte character cut by a chunk boundary still decodes cleanly.

    There is no reset: a new invocation gets a new decoder.
    """

    def __init__(self, max_line_bytes: int | None = None) -> None:
        self._buffer = bytearray()
        self._max_line_bytes = max_line_bytes
        # Set while skipping the tail of an oversized line.
        self._discarding = False

    @property
    def pending(self) -> bytes:
        """Bytes received after the last line-feed."""
        return bytes(self._buffer)

    def feed(self, chunk: bytes) -> list[str]:
        """Consume *chunk* and return the frames it completed, in order."""
        if self._discarding:
            newline = chunk.find(b"\n")
            if newline < 0:
                return []
            chunk = chunk[newline + 1 :]
            self._discarding = False

        self._buffer.extend(chunk)
        *lines, rest = self._buffer.split(b"\n")
        self._buffer = rest

        frames: list[str] = []
        for raw in lines:
            if self._too_long(raw):
                logger.warning(
                    "stdout line exceeds %d bytes, skipping", self._max_line_bytes
                )
                continue
            text = raw.decode("utf-8", errors="replace").strip()
            if text:
                frames.append(text)

        if self._too_long(self._buffer):
            logger.warning(
                "stdout line exceeds %d bytes, skipping", self._max_line_bytes
            )
            self._buffer = bytearray()
            self._discarding = True

        return frames

    def _too_long(self, data: bytes | bytearray) -> bool:
        return self._max_line_bytes is not None and len(data) > self._max_line_bytes
