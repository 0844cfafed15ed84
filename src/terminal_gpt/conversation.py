"""Conversation history."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Literal

Role = Literal["system", "user", "assistant"]


@dataclass
class Message:
    role: Role
    content: str

    def to_dict(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


class Conversation:
    """Ordered messages sent with every request.

    Holds at most one system message, kept first.
    """

    def __init__(self, system_prompt: str | None = None):
        self.messages: list[Message] = []
        if system_prompt:
            self.messages.append(Message("system", system_prompt))

    def add(self, role: Role, content: str) -> Message:
        if role == "system":
            self.set_system_prompt(content)
            return self.messages[0]
        msg = Message(role, content)
        self.messages.append(msg)
        return msg

    @property
    def system_prompt(self) -> str | None:
        for msg in self.messages:
            if msg.role == "system":
                return msg.content
        return None

    def set_system_prompt(self, text: str):
        """Replace the system message, or insert one at the front."""
        for msg in self.messages:
            if msg.role == "system":
                msg.content = text
                return
        self.messages.insert(0, Message("system", text))

    def clear(self):
        """Drop all turns but keep the system message."""
        self.messages = [m for m in self.messages if m.role == "system"][:1]

    def reset(self, system_prompt: str | None):
        self.messages = []
        if system_prompt:
            self.messages.append(Message("system", system_prompt))

    def to_payload(self) -> list[dict[str, str]]:
        return [m.to_dict() for m in self.messages]

    @classmethod
    def from_payload(cls, payload: list[dict[str, Any]]) -> Conversation:
        conv = cls()
        for item in payload:
            role = item.get("role")
            content = item.get("content")
            if role in ("system", "user", "assistant") and isinstance(content, str):
                conv.add(role, content)
        return conv

    def __len__(self) -> int:
        return len(self.messages)


def export_markdown(conversation: Conversation, model: str, path: str | Path) -> Path:
    """Write a Markdown transcript of *conversation*."""
    lines = [
        "# Terminal ChatGPT Transcript\n",
        f"- Model: `{model}`",
        f"- Exported: {datetime.now(timezone.utc).isoformat()}\n",
    ]
    for msg in conversation.messages:
        if msg.role == "system":
            lines.append(f"> **System**: {msg.content}\n")
        elif msg.role == "user":
            lines.append(f"**You:** {msg.content}\n")
        else:
            lines.append(f"**Assistant:**\n\n{msg.content}\n")
    path = Path(path).expanduser()
    path.write_text("\n".join(lines), encoding="utf-8")
    return path
