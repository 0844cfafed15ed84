"""Slash commands for the chat REPL."""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path

import yaml
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from terminal_gpt.config import (
    AppConfig,
    ConfigError,
    load_api_key,
    load_config,
    save_config,
    set_config_value,
)
from terminal_gpt.conversation import Conversation, export_markdown
from terminal_gpt.display import ChatDisplay
from terminal_gpt.sessions import SessionNotFoundError, SessionStore


HELP_TEXT = """
[bold]Conversation:[/bold]
  /help                 Show this help
  /exit                 Say goodbye and exit
  /clear                Clear conversation (keep system prompt)
  /new                  New conversation (reset to config system prompt)
  /system <text>        Set system prompt (in-memory only)
  /model <name>         Set model (in-memory only)

[bold]Sessions:[/bold]
  /save [name]          Save current conversation
  /list                 List saved sessions
  /load <name|#>        Load a saved session
  /export <file.md>     Export transcript to Markdown

[bold]Config:[/bold]
  /config               Show current config
  /set <key> <value>    Update config in memory (e.g. /set autosave true)
  /saveconfig           Persist current in-memory config to disk
  /reloadconfig         Reload config from disk
"""


@dataclass
class ChatState:
    """Everything a REPL command may read or replace."""
    config: AppConfig
    config_path: Path
    conversation: Conversation
    model: str
    store: SessionStore

    @classmethod
    def create(cls, config: AppConfig, config_path: Path) -> ChatState:
        return cls(
            config=config,
            config_path=config_path,
            conversation=Conversation(config.system_prompt),
            model=config.model,
            store=SessionStore(config.sessions_path),
        )

    def save_session(self, display: ChatDisplay, name: str = "") -> Path:
        path = self.store.save(self.conversation, self.model, name)
        display.info(f"Saved to {path}")
        return path

    def load_session(self, identifier: str, display: ChatDisplay) -> bool:
        if not self.store.list():
            display.warn("No saved sessions.")
            return False
        try:
            data = self.store.load(identifier, self.config.system_prompt)
        except SessionNotFoundError:
            display.error("Session not found. Use /list to see available sessions.")
            return False
        self.conversation = data.conversation
        if data.meta.get("model"):
            self.model = str(data.meta["model"])
        display.info(f"Loaded session: {data.name} (model={self.model})")
        return True


def handle_command(cmd: str, state: ChatState, display: ChatDisplay) -> bool | str:
    """Handle /commands. Returns True if handled, 'quit' to exit."""
    parts = cmd.strip().split(maxsplit=1)
    command = parts[0].lower()
    arg = parts[1].strip() if len(parts) > 1 else ""
    con = display.con

    if command in ("/exit", "/quit", "/q"):
        return "quit"

    elif command == "/help":
        con.print(HELP_TEXT)
        return True

    elif command == "/clear":
        state.conversation.clear()
        display.info("Conversation cleared (system prompt kept).")
        return True

    elif command == "/new":
        state.conversation.reset(state.config.system_prompt)
        display.info("Started a new conversation (using config system prompt).")
        return True

    elif command == "/save":
        state.save_session(display, arg)
        return True

    elif command == "/list":
        sessions = state.store.list()
        if not sessions:
            display.warn("No saved sessions.")
            return True
        table = Table(title="Saved sessions", show_lines=False, border_style="dim")
        table.add_column("#", style="bold", width=4)
        table.add_column("Name")
        for s in sessions:
            table.add_row(str(s.index), s.name)
        con.print(table)
        return True

    elif command == "/load":
        if not arg:
            display.warn("Usage: /load <name|#>")
            return True
        state.load_session(arg, display)
        return True

    elif command == "/system":
        if not arg:
            display.warn("Usage: /system <text>")
            return True
        state.conversation.set_system_prompt(arg)
        display.info("System prompt updated (in-memory).")
        return True

    elif command == "/model":
        if not arg:
            display.warn("Usage: /model <name>")
            return True
        state.model = arg
        display.info(f"Model set to {state.model} (in-memory).")
        return True

    elif command == "/export":
        if not arg:
            display.warn("Usage: /export <file.md>")
            return True
        path = export_markdown(state.conversation, state.model, arg)
        display.info(f"Exported markdown to {path}")
        return True

    elif command == "/config":
        dumped = yaml.safe_dump(state.config.model_dump(), sort_keys=False, allow_unicode=True)
        con.print(Panel(Syntax(dumped, "yaml", word_wrap=True),
                        title=str(state.config_path), border_style="dim"))
        return True

    elif command == "/set":
        key, _, raw = arg.partition(" ")
        if not key:
            display.warn("Usage: /set <key> <value>")
            return True
        try:
            state.config = set_config_value(state.config, key, raw)
        except ConfigError as e:
            display.warn(str(e))
            return True
        if key == "model":
            state.model = state.config.model
        elif key == "system_prompt" and state.conversation.system_prompt is not None:
            state.conversation.set_system_prompt(state.config.system_prompt)
        elif key == "sessions_dir":
            state.store = SessionStore(state.config.sessions_path)
        value = _lookup(state.config, key)
        display.info(f"Set {key} = {json.dumps(value)} (in-memory). Use /saveconfig to persist.")
        return True

    elif command == "/saveconfig":
        path = save_config(state.config, state.config_path)
        display.info(f"Config saved to {path}")
        return True

    elif command == "/reloadconfig":
        state.config, state.config_path = load_config(state.config_path)
        state.model = state.config.model
        state.store = SessionStore(state.config.sessions_path)
        display.info("Config reloaded from disk.")
        # Re-read .env in dotenv mode; the open connection keeps its credential
        if not load_api_key(state.config):
            display.warn(f"No API key found in {state.config.api_key_env}; "
                         "the current session keeps using its key.")
        return True

    display.warn("Unknown command. Use /help.")
    return True


def _lookup(config: AppConfig, key: str):
    value = config.model_dump()
    for part in key.split("."):
        value = value[part]
    return value
