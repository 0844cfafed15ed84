"""Byte chunk to line decoding for event streams."""

from __future__ import annotations

import codecs


class ChunkDecoder:
    """Turns an unbounded sequence of raw chunks into complete lines.

    Decoding is stateful: a UTF-8 sequence split across two chunks is held
    by the incremental decoder until it is complete.  The unterminated tail
    of the text is buffered until the next newline arrives or ``flush()``
    is called at end of stream.
    """

    def __init__(self, encoding: str = "utf-8"):
        self._decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""

    def feed(self, chunk: bytes | str) -> list[str]:
        """Add a chunk and return every line it completed (without ``\\n``)."""
        if isinstance(chunk, bytes):
            text = self._decoder.decode(chunk)
        else:
            text = chunk
        if not text:
            return []
        self._buffer += text
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        return lines

    def flush(self) -> list[str]:
        """Return the trailing fragment left at end of stream, if any."""
        self._buffer += self._decoder.decode(b"", final=True)
        tail, self._buffer = self._buffer, ""
        return [tail] if tail else []

    @property
    def pending(self) -> str:
        return self._buffer
