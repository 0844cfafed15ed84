"""Bounded exponential-backoff retry around a stream attempt."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from terminal_gpt.config import RetryConfig
from terminal_gpt.conversation import Conversation
from terminal_gpt.display import ChatDisplay
from terminal_gpt.llm.executor import AttemptResult, StreamExecutor

_logger = logging.getLogger(__name__)

SleepFn = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 2.0  # seconds

    @classmethod
    def from_config(cls, cfg: RetryConfig) -> RetryPolicy:
        return cls(max_retries=cfg.max_retries, base_delay=cfg.base_delay)

    def delay(self, attempt: int) -> float:
        return self.base_delay * (2 ** attempt)


def is_retriable(result: AttemptResult) -> bool:
    """429 and 5xx are transient; so is a connection that never got a response.

    Every other status (400, 401, 404, ...) would fail the same way again.
    """
    status = result.http_status
    if status is None:
        return True
    return status == 429 or status >= 500


class RetryController:
    """Sends one user turn, retrying transient failures with backoff."""

    def __init__(
        self,
        executor: StreamExecutor,
        policy: RetryPolicy,
        display: ChatDisplay,
        sleep: SleepFn = asyncio.sleep,
        verbose: bool = False,
    ):
        self.executor = executor
        self.policy = policy
        self.display = display
        self.sleep = sleep
        self.verbose = verbose

    async def run(
        self,
        conversation: Conversation,
        user_text: str,
        model: str | None = None,
    ) -> bool:
        """Append *user_text* once and try up to ``max_retries + 1`` times.

        Returns True when an attempt succeeded.  A failed turn leaves the
        user message in place and adds nothing else.
        """
        conversation.add("user", user_text)

        for attempt in range(self.policy.max_retries + 1):
            result = await self.executor.execute(conversation, model)
            if result.ok:
                return True

            final = attempt == self.policy.max_retries
            if not is_retriable(result) or final:
                _logger.info(
                    "Chat request failed (status %s, attempt %d/%d)",
                    result.http_status, attempt + 1, self.policy.max_retries + 1)
                self.display.failed(result.http_status, result.error_body, self.verbose)
                return False

            delay = self.policy.delay(attempt)
            _logger.info(
                "Chat endpoint returned %s (attempt %d/%d), retrying in %.1fs...",
                result.http_status, attempt + 1, self.policy.max_retries + 1, delay)
            self.display.retrying(result.http_status, delay)
            await self.sleep(delay)

        return False
