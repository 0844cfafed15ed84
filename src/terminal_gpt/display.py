"""Terminal output for replies, status lines and the banner."""

from __future__ import annotations

from rich.console import Console
from rich.text import Text

_BANNER_LINES = [
    r"   _____ _           _    _____ _____ _______ ",
    r"  / ____| |         | |  / ____|  __ \__   __|",
    r" | |    | |__   __ _| |_| |  __| |__) | | |   ",
    r" | |    | '_ \ / _` | __| | |_ |  ___/  | |   ",
    r" | |____| | | | (_| | |_| |__| | |      | |   ",
    r"  \_____|_| |_|\__,_|\__|\_____|_|      |_|   ",
]
_GRADIENT = [
    "bold bright_cyan",
    "bold cyan",
    "bold bright_blue",
    "bold blue",
    "bold cyan",
    "bold bright_cyan",
]


class ChatDisplay:
    """Renders streamed replies and turn status to a rich console."""

    def __init__(self, con: Console | None = None):
        self.con = con or Console(highlight=False)
        self._streaming = False

    def begin_reply(self):
        self._streaming = True
        self.con.print()
        self.con.print("GPT> ", style="bold cyan", end="")

    def write(self, text: Text | str):
        if text:
            self.con.print(text, end="", highlight=False, markup=False)

    def end_reply(self):
        if self._streaming:
            self.con.print("\n")
            self._streaming = False

    def interrupted(self):
        self.write(Text("\n[interrupted]", style="dim"))
        self.end_reply()

    def retrying(self, status: int | None, delay: float):
        label = f"status {status}" if status is not None else "connection error"
        self.con.print(
            f"\n[yellow]Transient error ({label}). Retrying in {delay:g}s...[/yellow]"
        )

    def failed(self, status: int | None, error_body: str, verbose: bool):
        label = status if status is not None else "no response"
        self.con.print(f"\n[red]Request failed (status {label}).[/red]")
        if not error_body:
            return
        if verbose:
            self.con.print(Text(error_body, style="dim"))
        else:
            self.con.print("[dim]Enable VERBOSE=1 to see full error details.[/dim]")

    def info(self, message: str):
        self.con.print(Text(message, style="dim"))

    def warn(self, message: str):
        self.con.print(Text(message, style="yellow"))

    def error(self, message: str):
        self.con.print(Text(message, style="red"))

    def banner(self, model: str):
        for line, style in zip(_BANNER_LINES, _GRADIENT):
            self.con.print(line, style=style, highlight=False, markup=False)
        self.con.print(f"  [dim]Model: {model} | Streaming mode[/dim]")
        self.con.print("  [dim]Type /help for commands, /exit to quit.[/dim]\n")
