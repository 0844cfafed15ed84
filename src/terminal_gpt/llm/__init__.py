"""Chat endpoint access: streamed attempts and the retry loop."""

from terminal_gpt.llm.executor import AttemptResult, StreamExecutor, build_client
from terminal_gpt.llm.retry import RetryController, RetryPolicy, is_retriable

__all__ = [
    "AttemptResult",
    "RetryController",
    "RetryPolicy",
    "StreamExecutor",
    "build_client",
    "is_retriable",
]
