"""SSE body builders and a console that records output."""

from __future__ import annotations

import io
import json

from rich.console import Console

from terminal_gpt.display import ChatDisplay

API_URL = "http://llm.test/v1/chat/completions"

DONE = b"data: [DONE]\n\n"


def sse_frame(content: str) -> bytes:
    payload = {"id": "chatcmpl-1", "choices": [{"index": 0, "delta": {"content": content}}]}
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n\n".encode("utf-8")


def streamed(*chunks: bytes):
    """Async body that yields *chunks* one by one."""
    async def gen():
        for chunk in chunks:
            yield chunk
    return gen()


class CapturedDisplay(ChatDisplay):
    def __init__(self):
        self.buffer = io.StringIO()
        super().__init__(Console(file=self.buffer, force_terminal=False, color_system=None, width=120))

    @property
    def output(self) -> str:
        return self.buffer.getvalue()
