"""Tests for turn orchestration and the command-line entry point."""

import asyncio
import json

import httpx
import pytest
from click.testing import CliRunner

from helpers import DONE, sse_frame, streamed
from terminal_gpt import cli
from terminal_gpt.cli import FAREWELL_PROMPT, repl, run_turn, say_goodbye
from terminal_gpt.commands import ChatState
from terminal_gpt.config import RetryConfig
from terminal_gpt.llm import build_client


def _client(config, handler) -> httpx.AsyncClient:
    return build_client(config, "sk-test", transport=httpx.MockTransport(handler))


def _ok(text):
    def handler(request):
        return httpx.Response(200, content=streamed(sse_frame(text), DONE))
    return handler


@pytest.fixture
def state(config, tmp_path) -> ChatState:
    return ChatState.create(config, tmp_path / "config.yaml")


class TestRunTurn:
    @pytest.mark.asyncio
    async def test_reply_recorded(self, state, display):
        ok = await run_turn(state, _client(state.config, _ok("pong")), display, "ping")
        assert ok
        assert [(m.role, m.content) for m in state.conversation.messages[1:]] == [
            ("user", "ping"), ("assistant", "pong")]

    @pytest.mark.asyncio
    async def test_uses_current_model(self, state, display):
        models = []

        def handler(request):
            models.append(json.loads(request.content)["model"])
            return httpx.Response(200, content=DONE)

        state.model = "switched"
        await run_turn(state, _client(state.config, handler), display, "hi")
        assert models == ["switched"]

    @pytest.mark.asyncio
    async def test_autosave(self, state, display):
        state.config.autosave = True
        await run_turn(state, _client(state.config, _ok("pong")), display, "ping")
        assert len(state.store.list()) == 1

    @pytest.mark.asyncio
    async def test_no_autosave_by_default(self, state, display):
        await run_turn(state, _client(state.config, _ok("pong")), display, "ping")
        assert state.store.list() == []

    @pytest.mark.asyncio
    async def test_fatal_error_reported(self, state, display):
        state.config.retry = RetryConfig(max_retries=0)

        def handler(request):
            return httpx.Response(401, text="bad key")

        ok = await run_turn(state, _client(state.config, handler), display, "hi")
        assert not ok
        assert "Request failed (status 401)" in display.output
        assert state.conversation.messages[-1].role == "user"


class TestSayGoodbye:
    @pytest.mark.asyncio
    async def test_farewell_streamed(self, state, display):
        await say_goodbye(state, _client(state.config, _ok("Bye now!")), display)
        msgs = state.conversation.messages
        assert msgs[-2].content == FAREWELL_PROMPT
        assert msgs[-1].content == "Bye now!"
        assert "Bye now!" in display.output

    @pytest.mark.asyncio
    async def test_single_attempt_on_failure(self, state, display):
        calls = 0

        def handler(request):
            nonlocal calls
            calls += 1
            return httpx.Response(503)

        await say_goodbye(state, _client(state.config, handler), display)
        assert calls == 1
        assert "Goodbye." in display.output


class TestMain:
    def test_missing_config_file(self, tmp_path):
        result = CliRunner().invoke(cli.main, ["--config", str(tmp_path / "missing.yaml")])
        assert result.exit_code == 1
        assert "Config file not found" in result.output

    def test_missing_api_key(self, tmp_path, monkeypatch):
        monkeypatch.delenv("TGPT_NO_SUCH_KEY", raising=False)
        path = tmp_path / "c.yaml"
        path.write_text("api_key_env: TGPT_NO_SUCH_KEY\n")
        result = CliRunner().invoke(cli.main, ["--config", str(path)])
        assert result.exit_code == 1
        assert "No API key found" in result.output


def _scripted(*lines):
    """Reader that replays *lines*, then behaves like Ctrl-D."""
    pending = list(lines)

    async def read():
        if not pending:
            raise EOFError
        return pending.pop(0)

    return read


class TestRepl:
    @pytest.mark.asyncio
    async def test_end_of_input_says_goodbye(self, state, display):
        await repl(state, _client(state.config, _ok("See you!")), display, read=_scripted())
        msgs = state.conversation.messages
        assert msgs[-2].content == FAREWELL_PROMPT
        assert msgs[-1].content == "See you!"

    @pytest.mark.asyncio
    async def test_exit_command_then_goodbye(self, state, display):
        read = _scripted("/model chatty", "/exit", "never read")
        await repl(state, _client(state.config, _ok("Bye")), display, read=read)
        assert state.model == "chatty"
        assert [m.content for m in state.conversation.messages if m.role == "user"] == [FAREWELL_PROMPT]

    @pytest.mark.asyncio
    async def test_turn_then_goodbye(self, state, display):
        await repl(state, _client(state.config, _ok("pong")), display, read=_scripted("ping", "  "))
        roles = [m.role for m in state.conversation.messages]
        assert roles == ["system", "user", "assistant", "user", "assistant"]

    @pytest.mark.asyncio
    async def test_cancel_while_streaming_still_says_goodbye(self, state, display):
        reached = asyncio.Event()
        calls = 0

        async def blocking_body():
            yield sse_frame("half an ans")
            reached.set()
            await asyncio.Event().wait()

        def handler(request):
            nonlocal calls
            calls += 1
            if calls == 1:
                return httpx.Response(200, content=blocking_body())
            return httpx.Response(200, content=streamed(sse_frame("Farewell!"), DONE))

        client = _client(state.config, handler)
        task = asyncio.create_task(repl(state, client, display, read=_scripted("question", "unused")))
        await asyncio.wait_for(reached.wait(), timeout=5)
        task.cancel()
        await asyncio.wait_for(task, timeout=5)

        assert calls == 2
        assert [(m.role, m.content) for m in state.conversation.messages[1:]] == [
            ("user", "question"),
            ("assistant", "half an ans"),
            ("user", FAREWELL_PROMPT),
            ("assistant", "Farewell!"),
        ]
        assert "[interrupted]" in display.output
        assert "Farewell!" in display.output
