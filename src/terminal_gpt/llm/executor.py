"""One streamed chat completion attempt.

An attempt posts the whole conversation, renders the SSE reply live and
appends the assistant message once the stream is over.  Transport
failures never raise out of ``execute``; they come back as an
``AttemptResult`` for the retry loop to classify.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Any

import httpx

from terminal_gpt.config import AppConfig
from terminal_gpt.conversation import Conversation
from terminal_gpt.display import ChatDisplay
from terminal_gpt.stream import ChunkDecoder, CodeFenceFormatter, Delta, Terminator, parse_frame

_logger = logging.getLogger(__name__)


@dataclass
class AttemptResult:
    ok: bool
    http_status: int | None = None  # None: no HTTP response at all
    error_body: str = ""
    interrupted: bool = False  # partial reply kept after a mid-stream failure


def build_client(
    config: AppConfig,
    api_key: str,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Async HTTP client carrying the bearer credential."""
    headers = {
        "Authorization": f"Bearer {api_key}",
        "Content-Type": "application/json",
        "Accept": "text/event-stream",
    }
    # Chunks arrive frequently once generation starts, so a 60s read gap
    # means the stream is stuck.
    return httpx.AsyncClient(
        headers=headers,
        timeout=httpx.Timeout(config.timeout, connect=30, read=60),
        transport=transport,
    )


class _Reply:
    """Accumulates delta text and renders it through a fresh formatter."""

    def __init__(self, display: ChatDisplay):
        self.display = display
        self.formatter = CodeFenceFormatter()
        self.parts: list[str] = []
        self.started = False

    def begin(self):
        self.started = True
        self.display.begin_reply()

    def add(self, text: str):
        self.parts.append(text)
        self.display.write(self.formatter.format_token(text))

    def finish(self):
        if self.started:
            self.display.write(self.formatter.finish())
            self.display.end_reply()

    def abort(self):
        """Close the reply early, marking it as cut short."""
        if self.started:
            self.display.write(self.formatter.finish())
            self.display.interrupted()

    @property
    def text(self) -> str:
        return "".join(self.parts)


class StreamExecutor:
    """Runs a single request/stream cycle against the chat endpoint."""

    def __init__(self, client: httpx.AsyncClient, config: AppConfig, display: ChatDisplay):
        self.client = client
        self.config = config
        self.display = display

    async def execute(self, conversation: Conversation, model: str | None = None) -> AttemptResult:
        payload: dict[str, Any] = {
            "model": model or self.config.model,
            "messages": conversation.to_payload(),
            "stream": True,
        }
        reply = _Reply(self.display)
        start = time.monotonic()

        try:
            async with self.client.stream("POST", self.config.api_url, json=payload) as resp:
                if not resp.is_success:
                    body = await _read_error_body(resp)
                    _logger.debug("Chat endpoint returned %d: %s", resp.status_code, body[:200])
                    return AttemptResult(ok=False, http_status=resp.status_code, error_body=body)

                reply.begin()
                terminated = await self._consume(resp, reply)
        except httpx.RequestError as e:
            if reply.parts:
                reply.abort()
                _logger.info("Stream interrupted after partial output: %s", e)
                conversation.add("assistant", reply.text)
                return AttemptResult(ok=True, error_body=str(e), interrupted=True)
            reply.finish()
            _logger.info("Chat request failed: %s: %s", type(e).__name__, e)
            return AttemptResult(ok=False, error_body=f"{type(e).__name__}: {e}")
        except (asyncio.CancelledError, KeyboardInterrupt):
            reply.abort()
            if reply.parts:
                conversation.add("assistant", reply.text)
            raise

        reply.finish()
        if terminated or reply.parts:
            conversation.add("assistant", reply.text)
        _logger.debug(
            "Stream finished in %.0fms (terminator=%s, %d chars)",
            (time.monotonic() - start) * 1000, terminated, len(reply.text),
        )
        return AttemptResult(ok=True)

    async def _consume(self, resp: httpx.Response, reply: _Reply) -> bool:
        """Feed the body through decoder, parser and formatter.

        Returns True when the terminator frame was seen; the rest of the
        body is left unread.
        """
        decoder = ChunkDecoder()
        async for chunk in resp.aiter_bytes():
            for line in decoder.feed(chunk):
                if self._handle_line(line, reply):
                    return True
        for line in decoder.flush():
            if self._handle_line(line, reply):
                return True
        return False

    @staticmethod
    def _handle_line(line: str, reply: _Reply) -> bool:
        frame = parse_frame(line)
        if isinstance(frame, Terminator):
            return True
        if isinstance(frame, Delta):
            reply.add(frame.text)
        return False


async def _read_error_body(resp: httpx.Response) -> str:
    try:
        raw = await resp.aread()
    except httpx.HTTPError:
        return ""
    return raw.decode("utf-8", errors="replace")
