"""Pytest fixtures and helpers for codemate tests."""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pytest

from codemate.domain import LLMResponse, ToolCall


def tool_response(*calls: ToolCall, content: Optional[str] = None) -> LLMResponse:
    """LLMResponse carrying the given tool calls."""
    return LLMResponse(content=content, tool_calls=list(calls), finish_reason="tool_calls")


def call(name: str, call_id: str = "c1", **arguments: Any) -> ToolCall:
    return ToolCall(id=call_id, name=name, arguments=arguments)


def complete_response(summary: str = "done", call_id: str = "done-1", **extra: Any) -> LLMResponse:
    return tool_response(call("complete", call_id, summary=summary, **extra))


def step_types(steps) -> List[str]:
    return [s.type.value for s in steps]


@pytest.fixture(autouse=True)
def _reset_config_cache():
    """Clear the load_config LRU cache and reset _env before (and after) every test.

    Each test gets a fresh config load, so monkeypatching CODEMATE_CONFIG_PATH
    works without tests bleeding into each other.
    """
    from codemate.config import loader as config_loader
    config_loader.load_config.cache_clear()
    config_loader._env = None
    yield
    config_loader.load_config.cache_clear()
    config_loader._env = None


@pytest.fixture
def codemate_home(tmp_path, monkeypatch):
    """Point CODEMATE_HOME at a temp dir so CLI runs and permissions stay isolated."""
    home = tmp_path / "home"
    monkeypatch.setenv("CODEMATE_HOME", str(home))
    monkeypatch.delenv("CODEMATE_CONFIG_PATH", raising=False)
    monkeypatch.setenv("COLUMNS", "200")
    return home


def seeded_files() -> Dict[str, str]:
    return {"src/app.py": "def main():\n    return 'hello'\n", "README.md": "# Demo\n"}
