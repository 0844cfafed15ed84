"""Tests for SSE frame parsing."""

import json

import pytest

from terminal_gpt.stream import Delta, Terminator, Unrecognized, parse_frame


def _data(payload) -> str:
    return f"data: {json.dumps(payload)}"


class TestParseFrame:
    def test_content_delta(self):
        line = _data({"choices": [{"delta": {"content": "Hi"}}]})
        assert parse_frame(line) == Delta("Hi")

    def test_whitespace_is_trimmed(self):
        line = "  " + _data({"choices": [{"delta": {"content": "x"}}]}) + "\r"
        assert parse_frame(line) == Delta("x")

    def test_done(self):
        assert parse_frame("data: [DONE]") == Terminator()
        assert parse_frame("data: [DONE]\r") == Terminator()

    def test_whitespace_inside_delta_kept(self):
        line = _data({"choices": [{"delta": {"content": "  indented\n"}}]})
        assert parse_frame(line) == Delta("  indented\n")

    def test_first_choice_wins(self):
        line = _data({"choices": [{"delta": {"content": "a"}}, {"delta": {"content": "b"}}]})
        assert parse_frame(line) == Delta("a")

    @pytest.mark.parametrize("line", [
        "",
        "   ",
        ": keep-alive",
        "event: ping",
        "id: 42",
        "data:",
        "data: {not json",
        "data: null",
        "data: [1, 2]",
        "data: [DONE] trailing",
        "DATA: [DONE]",
    ])
    def test_unrecognized_lines(self, line):
        assert parse_frame(line) == Unrecognized()

    @pytest.mark.parametrize("payload", [
        {},
        {"choices": []},
        {"choices": None},
        {"choices": ["x"]},
        {"choices": [{"delta": None}]},
        {"choices": [{"delta": {"role": "assistant"}}]},
        {"choices": [{"delta": {"content": ""}}]},
        {"choices": [{"delta": {"content": None}}]},
        {"choices": [{"delta": {"content": 5}}]},
        {"choices": [{"finish_reason": "stop", "delta": {}}]},
    ])
    def test_payload_without_content(self, payload):
        assert isinstance(parse_frame(_data(payload)), Unrecognized)

    def test_never_raises_on_garbage(self):
        for line in ["data: \x00\xff", "data: {\"choices\": [{\"delta\": ", "data: ]]]"]:
            assert parse_frame(line) == Unrecognized()
