"""Live rendering of assistant text with fenced code blocks.

Deltas arrive with no alignment to markdown syntax: a fence can be split
as "`" + "``" and a language tag as "py" + "thon".  The formatter keeps
the undecided tail of the text in ``pending`` and renders everything
else immediately.  Output is append-only; a character emitted as prose is
never reclassified later.
"""

from __future__ import annotations

from rich.text import Text

FENCE = "```"

PROSE_STYLE = "cyan"
CODE_STYLE = "default"
BANNER_STYLE = "yellow"

_RULE = "─" * 25
_CLOSE_RULE = "─" * 46


class CodeFenceFormatter:
    """Stateful formatter for one assistant reply.

    State:
      inside_fence - currently inside a code block
      pending      - text that may still turn into a fence marker
      language     - tag of the open code block ("" when none)
    """

    def __init__(self):
        self.inside_fence = False
        self.pending = ""
        self.language = ""

    def format_token(self, delta: str) -> Text:
        """Consume one delta and return the styled text it releases."""
        out = Text()
        buf = self.pending + delta
        n = len(buf)
        i = 0
        while i < n:
            tick = buf.find("`", i)
            if tick < 0:
                self._emit(out, buf[i:])
                i = n
                break
            if tick > i:
                self._emit(out, buf[i:tick])
                i = tick
                continue

            # buf[i] is a backtick
            if buf.startswith(FENCE, i):
                if self.inside_fence:
                    i += len(FENCE)
                    self._close(out)
                    continue
                newline = buf.find("\n", i + len(FENCE))
                if newline < 0:
                    # language tag may continue in the next delta
                    break
                self._open(out, buf[i + len(FENCE):newline])
                i = newline + 1
                continue
            if n - i < len(FENCE) and FENCE.startswith(buf[i:]):
                # "`" or "``" at the very end: wait for the next delta
                break
            self._emit(out, "`")
            i += 1

        self.pending = buf[i:]
        return out

    def finish(self) -> Text:
        """Release anything still held back once the stream has ended.

        An open code block is left open; only its banner is emitted.
        """
        out = Text()
        buf, self.pending = self.pending, ""
        if not buf:
            return out
        if not self.inside_fence and buf.startswith(FENCE):
            self._open(out, buf[len(FENCE):])
        else:
            self._emit(out, buf)
        return out

    def _emit(self, out: Text, text: str):
        if text:
            out.append(text, style=CODE_STYLE if self.inside_fence else PROSE_STYLE)

    def _open(self, out: Text, tag: str):
        self.inside_fence = True
        self.language = tag.strip()
        label = f" ({self.language})" if self.language else ""
        out.append(f"\n┌── code{label} {_RULE}\n", style=BANNER_STYLE)

    def _close(self, out: Text):
        self.inside_fence = False
        self.language = ""
        out.append(f"\n└{_CLOSE_RULE}\n", style=BANNER_STYLE)
