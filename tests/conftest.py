"""Shared fixtures."""

from __future__ import annotations

import pytest

from helpers import API_URL, CapturedDisplay
from terminal_gpt.config import AppConfig


@pytest.fixture
def display() -> CapturedDisplay:
    return CapturedDisplay()


@pytest.fixture
def config(tmp_path) -> AppConfig:
    return AppConfig(
        api_url=API_URL,
        model="test-model",
        system_prompt="You are a test.",
        sessions_dir=str(tmp_path / "sessions"),
    )
