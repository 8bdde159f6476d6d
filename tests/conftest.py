"""Shared pytest fixtures for the VibeScript backend tests."""

from __future__ import annotations

from pathlib import Path
from typing import Iterator

import pytest

from services.config_manager import ConfigManager
from services.static_context import StaticContext


@pytest.fixture(autouse=True)
def config_dir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[Path]:
    """Point the config singleton at a per-test directory."""
    directory = tmp_path / "config"
    monkeypatch.setenv("VIBESCRIPT_CONFIG_DIR", str(directory))
    ConfigManager.reset_instance()
    yield directory
    ConfigManager.reset_instance()


@pytest.fixture()
def app_config() -> dict:
    return ConfigManager.get_instance().get_config()


@pytest.fixture()
def loaded_context() -> StaticContext:
    """A context that is already populated, so no fetch is attempted."""
    context = StaticContext("http://context.test", {"helperSource": "a", "helperDocs": "b", "sampleCode": "c"})
    context.helper_source = "function geminiHelper() {}"
    context.helper_docs = "GeminiHelper.generate(prompt) returns text."
    context.sample_code = "function sample() { return 1; }"
    context.loaded = True
    return context


@pytest.fixture()
def mock_api_key() -> str:
    return "AIza-test-key-0000"
