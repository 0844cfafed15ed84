"""Event-stream frame parsing.

Each complete line of the response body is classified as one of three
frames.  Parsing is total: a line that cannot be interpreted becomes
``Unrecognized`` and the stream carries on.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any, Union

DATA_PREFIX = "data: "
DONE_FRAME = "data: [DONE]"


@dataclass(frozen=True)
class Delta:
    """A fragment of assistant text."""
    text: str


@dataclass(frozen=True)
class Terminator:
    """End of the assistant response."""


@dataclass(frozen=True)
class Unrecognized:
    """Heartbeats, comments, metadata and malformed payloads."""


StreamFrame = Union[Delta, Terminator, Unrecognized]

TERMINATOR = Terminator()
UNRECOGNIZED = Unrecognized()


def _extract_content(data: Any) -> str:
    """Pull ``choices[0].delta.content`` out of a decoded chunk."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices:
        return ""
    choice = choices[0]
    if not isinstance(choice, dict):
        return ""
    delta = choice.get("delta")
    if not isinstance(delta, dict):
        return ""
    content = delta.get("content")
    return content if isinstance(content, str) else ""


def parse_frame(line: str) -> StreamFrame:
    """Classify one line of an SSE body."""
    line = line.strip()
    if not line:
        return UNRECOGNIZED
    if line == DONE_FRAME:
        return TERMINATOR
    if not line.startswith(DATA_PREFIX):
        return UNRECOGNIZED

    try:
        data = json.loads(line[len(DATA_PREFIX):])
    except json.JSONDecodeError:
        return UNRECOGNIZED

    content = _extract_content(data)
    if not content:
        return UNRECOGNIZED
    return Delta(content)
