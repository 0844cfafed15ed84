"""Saved conversations as JSON files."""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from terminal_gpt.conversation import Conversation

_logger = logging.getLogger(__name__)


class SessionNotFoundError(LookupError):
    """No saved session matches the given index or name."""


@dataclass
class SessionInfo:
    index: int  # 1-based, in file name order
    name: str
    path: Path


@dataclass
class SessionData:
    conversation: Conversation
    meta: dict[str, Any] = field(default_factory=dict)
    name: str = ""


def timestamp_slug() -> str:
    return time.strftime("%Y-%m-%d_%H-%M-%S")


class SessionStore:
    """One ``<name>.json`` file per session: ``{"messages": [...], "meta": {...}}``."""

    def __init__(self, sessions_dir: str | Path):
        self.sessions_dir = Path(sessions_dir).expanduser()
        self.sessions_dir.mkdir(parents=True, exist_ok=True)

    def list(self) -> list[SessionInfo]:
        files = sorted(p for p in self.sessions_dir.glob("*.json") if p.is_file())
        return [SessionInfo(index=i, name=p.stem, path=p) for i, p in enumerate(files, 1)]

    def save(self, conversation: Conversation, model: str, name: str = "") -> Path:
        """Write the conversation and return the file path."""
        base = name or f"session_{timestamp_slug()}"
        path = self.sessions_dir / f"{base}.json"
        meta = {"model": model, "saved_at": datetime.now(timezone.utc).isoformat()}
        data = {"messages": conversation.to_payload(), "meta": meta}
        path.write_text(json.dumps(data, indent=2, ensure_ascii=False), encoding="utf-8")
        _logger.debug("Saved %d messages to %s", len(conversation), path)
        return path

    def resolve(self, identifier: str) -> SessionInfo:
        """Find a session by 1-based index, name, or file name."""
        sessions = self.list()
        ident = identifier.strip()
        if ident.isdigit():
            idx = int(ident)
            for s in sessions:
                if s.index == idx:
                    return s
        else:
            for s in sessions:
                if s.name == ident or s.path.name == ident:
                    return s
        raise SessionNotFoundError(ident)

    def load(self, identifier: str, system_prompt: str | None = None) -> SessionData:
        """Load a saved session.

        A file without messages starts a fresh conversation seeded with
        *system_prompt*.
        """
        info = self.resolve(identifier)
        raw = json.loads(info.path.read_text(encoding="utf-8"))
        messages = raw.get("messages") or []
        if messages:
            conversation = Conversation.from_payload(messages)
        else:
            conversation = Conversation(system_prompt)
        return SessionData(conversation=conversation, meta=raw.get("meta") or {}, name=info.name)
