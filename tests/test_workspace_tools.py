"""Tests for the file tool handlers (through the registry, as the engine calls them)."""
from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

import pytest

from codemate.application.bridge import CallbackBridge
from codemate.application.permissions import PermissionGate
from codemate.config.schema import ExecutorConfig, WebConfig
from codemate.domain import PermissionMode, ToolCall
from codemate.infrastructure.permissions import InMemoryPermissionStore
from codemate.infrastructure.tools.builtin import build_builtin_registry
from codemate.infrastructure.tools.workspace_tools import NO_WORKSPACE, find_similar_line, number_lines
from codemate.infrastructure.workspace import InMemoryWorkspace

from conftest import seeded_files


def _registry(workspace, *, confirm=True, overrides=None, **executor):
    bridge = CallbackBridge(confirm=AsyncMock(return_value=confirm))
    gate = PermissionGate(InMemoryPermissionStore(overrides or {}))
    return build_builtin_registry(
        workspace, gate, bridge,
        executor_config=ExecutorConfig(**executor),
        web_config=WebConfig(search_backend="none"),
    )


async def _run(registry, name, **arguments):
    return await registry.execute(ToolCall(id="t1", name=name, arguments=arguments))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def test_number_lines():
    assert number_lines("a\nb") == "   1→a\n   2→b"


def test_find_similar_line():
    content = "def load_config(path):\n    return parse(path)\n"
    assert find_similar_line(content, "def load_config(path) -> Config:") == "def load_config(path):"
    assert find_similar_line(content, "a b c") is None
    assert find_similar_line(content, "completely unrelated words") is None


# ---------------------------------------------------------------------------
# read / write / edit / delete
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_read_file():
    registry = _registry(InMemoryWorkspace("demo", seeded_files()))
    result = await _run(registry, "read_file", path="src/app.py")
    assert result.success
    assert result.output.startswith("src/app.py (3 lines)\n\n   1→def main():")

    missing = await _run(registry, "read_file", path="nope.py")
    assert missing.error == "File not found: nope.py"


@pytest.mark.asyncio
async def test_read_without_workspace():
    result = await _run(_registry(InMemoryWorkspace()), "read_file", path="a.txt")
    assert result.error == NO_WORKSPACE


@pytest.mark.asyncio
async def test_write_reports_created_then_updated():
    ws = InMemoryWorkspace("demo")
    registry = _registry(ws)
    created = await _run(registry, "write_file", path="a.txt", content="one")
    updated = await _run(registry, "write_file", path="a.txt", content="two!")
    assert created.output == "File created: a.txt (3 chars)"
    assert updated.output == "File updated: a.txt (4 chars)"
    assert ws.read_file("a.txt") == "two!"
    assert registry.files_changed == ["a.txt"]


@pytest.mark.asyncio
async def test_write_path_escape_is_denied():
    result = await _run(_registry(InMemoryWorkspace("demo")), "write_file", path="../x", content="y")
    assert result.success is False
    assert result.error.startswith("permission denied")


@pytest.mark.asyncio
async def test_edit_replaces_first_occurrence_only():
    ws = InMemoryWorkspace("demo", {"a.txt": "x = 1\nx = 1\n"})
    result = await _run(_registry(ws), "edit_file", path="a.txt", oldContent="x = 1", newContent="x = 2")
    assert result.output == "File edited: a.txt"
    assert ws.read_file("a.txt") == "x = 2\nx = 1\n"


@pytest.mark.asyncio
async def test_edit_not_found_suggests_similar_line():
    ws = InMemoryWorkspace("demo", seeded_files())
    confirm = AsyncMock(return_value=True)
    registry = build_builtin_registry(
        ws, PermissionGate(InMemoryPermissionStore()), CallbackBridge(confirm=confirm),
        web_config=WebConfig(search_backend="none"),
    )
    result = await _run(registry, "edit_file", path="src/app.py", oldContent="def main() -> None:", newContent="x")
    assert result.success is False
    assert result.error.startswith("content not found in src/app.py")
    assert "Similar line:\ndef main():" in result.error
    confirm.assert_not_awaited()


@pytest.mark.asyncio
async def test_edit_rejects_empty_old_content():
    ws = InMemoryWorkspace("demo", seeded_files())
    result = await _run(_registry(ws), "edit_file", path="README.md", oldContent="", newContent="x")
    assert result.error.startswith("invalid arguments")


@pytest.mark.asyncio
async def test_delete_file():
    ws = InMemoryWorkspace("demo", seeded_files())
    registry = _registry(ws)
    result = await _run(registry, "delete_file", path="README.md")
    assert result.output == "File deleted: README.md"
    assert not ws.file_exists("README.md")
    assert registry.files_changed == ["[deleted] README.md"]

    again = await _run(registry, "delete_file", path="README.md")
    assert again.error == "File not found: README.md"


@pytest.mark.asyncio
async def test_read_denied_by_gate():
    ws = InMemoryWorkspace("demo", seeded_files())
    result = await _run(_registry(ws, overrides={"read": PermissionMode.DENY}), "read_file", path="README.md")
    assert result.error == "permission denied: 'read' is disabled"


# ---------------------------------------------------------------------------
# listing and search
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_list_files():
    ws = InMemoryWorkspace("demo", seeded_files())
    registry = _registry(ws)
    result = await _run(registry, "list_files")
    assert result.output == (
        "Workspace contents:\n\n"
        "Directories (1):\nsrc/\n\n"
        "Files (2):\nREADME.md (2 lines, 7 bytes)\nsrc/app.py (3 lines, 31 bytes)"
    )
    filtered = await _run(registry, "list_files", filter="READ")
    assert "src/app.py" not in filtered.output


@pytest.mark.asyncio
async def test_list_files_empty_workspace():
    result = await _run(_registry(InMemoryWorkspace("demo")), "list_files")
    assert result.output == "Workspace is empty"


@pytest.mark.asyncio
async def test_list_directory():
    ws = InMemoryWorkspace("demo", {"a.txt": "", "src/b.py": "", "src/pkg/c.py": ""})
    registry = _registry(ws)

    top = await _run(registry, "list_directory")
    assert top.output == ".:\na.txt (1 lines)\nsrc/"

    nested = await _run(registry, "list_directory", path="src", recursive=True)
    assert nested.output == "src:\nsrc/b.py (1 lines)\nsrc/pkg/\nsrc/pkg/c.py (1 lines)"

    missing = await _run(registry, "list_directory", path="docs")
    assert missing.error == "Directory not found: docs"


@pytest.mark.asyncio
async def test_search_code_with_pattern_and_overflow():
    files = {f"m{i:02}.py": "TODO: fix\n" for i in range(22)}
    files["notes.md"] = "todo list\n"
    registry = _registry(InMemoryWorkspace("demo", files))

    result = await _run(registry, "search_code", query="todo", filePattern="*.py")
    assert result.output.startswith('Search results for "todo" (22 matches):\n\nm00.py:1\n   TODO: fix')
    assert result.output.endswith("... and 2 more matches")
    assert "notes.md" not in result.output

    none = await _run(registry, "search_code", query="nothing here")
    assert none.output == 'No matches for "nothing here"'


# ---------------------------------------------------------------------------
# create_directory and implicit workspace creation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_create_directory_creates_workspace():
    ws = InMemoryWorkspace()
    registry = _registry(ws, confirm=False)
    result = await _run(registry, "create_directory", path="src")
    assert result.output == "Directory created: src"
    assert ws.name == "new-project"

    again = await _run(registry, "create_directory", path="src")
    assert again.success is False
    assert "already exists" in again.error


@pytest.mark.asyncio
async def test_create_directory_denied():
    ws = InMemoryWorkspace()
    bridge = MagicMock()
    bridge.confirm = AsyncMock(return_value=True)
    registry = build_builtin_registry(
        ws, PermissionGate(InMemoryPermissionStore({"write": PermissionMode.DENY})), bridge,
        web_config=WebConfig(search_backend="none"),
    )
    result = await _run(registry, "create_directory", path="src")
    assert result.success is False
    assert not ws.has_workspace()
    bridge.confirm.assert_not_awaited()
