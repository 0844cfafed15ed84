"""Incremental SSE decoding and live code-fence formatting."""

from terminal_gpt.stream.decoder import ChunkDecoder
from terminal_gpt.stream.formatter import CodeFenceFormatter
from terminal_gpt.stream.frames import Delta, StreamFrame, Terminator, Unrecognized, parse_frame

__all__ = [
    "ChunkDecoder",
    "CodeFenceFormatter",
    "Delta",
    "StreamFrame",
    "Terminator",
    "Unrecognized",
    "parse_frame",
]
