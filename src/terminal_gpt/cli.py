"""CLI interface for terminal-gpt with streaming replies."""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Awaitable, Callable

import click
import httpx
from prompt_toolkit import PromptSession
from prompt_toolkit.formatted_text import HTML
from prompt_toolkit.history import FileHistory
from rich.console import Console

from terminal_gpt.commands import ChatState, handle_command
from terminal_gpt.config import DATA_DIR, load_api_key, load_config
from terminal_gpt.display import ChatDisplay
from terminal_gpt.llm import RetryController, RetryPolicy, StreamExecutor, build_client

console = Console(highlight=False)

PromptFn = Callable[[], Awaitable[str]]

FAREWELL_PROMPT = "Please say a short, warm goodbye to the user before we end the session."


async def run_turn(
    state: ChatState,
    client: httpx.AsyncClient,
    display: ChatDisplay,
    user_text: str,
) -> bool:
    """One user turn with retries; config is read once per turn."""
    cfg = state.config.snapshot()
    executor = StreamExecutor(client, cfg, display)
    controller = RetryController(
        executor, RetryPolicy.from_config(cfg.retry), display, verbose=cfg.verbose)
    ok = await controller.run(state.conversation, user_text, model=state.model)
    if cfg.autosave:
        state.save_session(display)
    return ok


async def say_goodbye(state: ChatState, client: httpx.AsyncClient, display: ChatDisplay):
    """Best-effort farewell turn: a single attempt, no retries."""
    state.conversation.add("user", FAREWELL_PROMPT)
    executor = StreamExecutor(client, state.config.snapshot(), display)
    result = await executor.execute(state.conversation, state.model)
    if not result.ok:
        display.con.print("Goodbye.")
    if state.config.autosave:
        state.save_session(display)


def prompt_reader() -> PromptFn:
    """Line reader backed by a prompt_toolkit session with file history."""
    history_path = DATA_DIR / "history"
    history_path.parent.mkdir(parents=True, exist_ok=True)
    session: PromptSession[str] = PromptSession(history=FileHistory(str(history_path)))

    async def read() -> str:
        return await session.prompt_async(HTML("<ansigreen><b>You&gt; </b></ansigreen>"))

    return read


async def repl(
    state: ChatState,
    client: httpx.AsyncClient,
    display: ChatDisplay,
    read: PromptFn | None = None,
):
    read = read or prompt_reader()

    while True:
        try:
            user_input = (await read()).strip()
        except (EOFError, KeyboardInterrupt):
            break

        if not user_input:
            continue

        if user_input.startswith("/"):
            try:
                result = handle_command(user_input, state, display)
            except Exception as e:
                display.error(f"Error: {e}")
                if state.config.verbose:
                    console.print_exception()
                continue
            if result == "quit":
                break
            continue

        try:
            await run_turn(state, client, display, user_input)
        except asyncio.CancelledError:
            # Ctrl-C while streaming: keep what was rendered, then wind down
            task = asyncio.current_task()
            if task is not None:
                task.uncancel()
            break
        except Exception as e:
            display.error(f"Error: {e}")
            if state.config.verbose:
                console.print_exception()

    await say_goodbye(state, client, display)


async def _main(state: ChatState, api_key: str, display: ChatDisplay):
    async with build_client(state.config, api_key) as client:
        await repl(state, client, display)


@click.command()
@click.option("--config", "-c", "config_path", default=None,
              help="Path to a config YAML (default: ./terminal_gpt.yaml or ~/.terminal-gpt/config.yaml)")
@click.option("--model", "-m", default=None, help="Model name for this run")
@click.option("--session", "-s", "session_name", default=None, help="Load a saved session (name or #)")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging and full error bodies")
def main(config_path: str | None, model: str | None, session_name: str | None, verbose: bool):
    """terminal-gpt - streaming ChatGPT in your terminal."""
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING)

    try:
        config, resolved = load_config(config_path)
    except FileNotFoundError as e:
        console.print(f"[red]{e}[/red]")
        sys.exit(1)
    if verbose:
        config.verbose = True
    if model:
        config.model = model

    api_key = load_api_key(config)
    if not api_key:
        console.print(
            f"[red]No API key found. Set {config.api_key_env} "
            "(or use a .env file with env_mode: dotenv).[/red]")
        sys.exit(1)

    display = ChatDisplay(console)
    state = ChatState.create(config, Path(resolved))
    if session_name:
        state.load_session(session_name, display)

    display.banner(state.model)
    console.print(f"[dim]Config: {resolved}[/dim]\n")

    try:
        asyncio.run(_main(state, api_key, display))
    except KeyboardInterrupt:
        console.print("\n[dim]Goodbye![/dim]")


if __name__ == "__main__":
    main()
