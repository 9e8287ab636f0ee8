"""File tools over the ``Workspace`` port.

Every mutating handler asks the ``ActionAuthorizer`` immediately before the
side effect.  Overwrite, edit and delete are destructive and confirm on
``ask``; creating a new file or directory only needs the rule not to be
``deny``.
"""

from __future__ import annotations

import fnmatch
import logging
import math
import posixpath
from typing import Callable, List, Optional

from codemate.application.permissions import ActionAuthorizer
from codemate.application.ports import Workspace
from codemate.application.tool_registry import ToolOutcome
from codemate.config.constants import SEARCH_RESULTS_SHOWN, STEP_PREVIEW_CHARS
from codemate.infrastructure.workspace.memory import normalise_path

logger = logging.getLogger(__name__)

NO_WORKSPACE = "No workspace is open. Create or open a project first."


def number_lines(content: str) -> str:
    return "\n".join(f"{n:>4}→{line}" for n, line in enumerate(content.split("\n"), 1))


def find_similar_line(content: str, target: str) -> Optional[str]:
    """First line containing at least half of the target's longer words."""
    words = [w for w in target.lower().split() if len(w) > 3]
    if not words:
        return None
    needed = math.ceil(len(words) * 0.5)
    for line in content.split("\n"):
        lowered = line.lower()
        if sum(1 for w in words if w in lowered) >= needed:
            return line
    return None


def _preview(text: str) -> str:
    if len(text) <= STEP_PREVIEW_CHARS:
        return text
    return text[:STEP_PREVIEW_CHARS] + "..."


class WorkspaceTools:
    def __init__(
        self,
        workspace: Workspace,
        authorizer: ActionAuthorizer,
        record_change: Callable[[str], None],
        *,
        default_workspace_name: str = "new-project",
    ):
        self._ws = workspace
        self._auth = authorizer
        self._record_change = record_change
        self._default_name = default_workspace_name

    def _ensure_workspace(self) -> None:
        if not self._ws.has_workspace():
            self._ws.create_workspace(self._default_name)

    async def read_file(self, args) -> ToolOutcome:
        self._auth.check("read")
        if not self._ws.has_workspace():
            return ToolOutcome.fail(NO_WORKSPACE)
        content = self._ws.read_file(args.path)
        if content is None:
            return ToolOutcome.fail(f"File not found: {args.path}")
        line_count = len(content.split("\n"))
        return ToolOutcome.ok(f"{args.path} ({line_count} lines)\n\n{number_lines(content)}")

    async def write_file(self, args) -> ToolOutcome:
        existed = self._ws.has_workspace() and self._ws.file_exists(args.path)
        await self._auth.require(
            "write",
            destructive=existed,
            message="Overwrite file?",
            details=f"File: {args.path}\nNew content length: {len(args.content)} chars",
        )
        self._ensure_workspace()
        if not self._ws.write_file(args.path, args.content):
            return ToolOutcome.fail(f"Failed to write file: {args.path}")
        self._record_change(args.path)
        verb = "updated" if existed else "created"
        return ToolOutcome.ok(f"File {verb}: {args.path} ({len(args.content)} chars)")

    async def edit_file(self, args) -> ToolOutcome:
        self._auth.check("edit")
        if not args.oldContent:
            raise ValueError("oldContent must not be empty")
        if not self._ws.has_workspace():
            return ToolOutcome.fail(NO_WORKSPACE)
        content = self._ws.read_file(args.path)
        if content is None:
            return ToolOutcome.fail(f"File not found: {args.path}")
        if args.oldContent not in content:
            error = f"content not found in {args.path}"
            similar = find_similar_line(content, args.oldContent)
            if similar is not None:
                error += f"\n\nSimilar line:\n{similar[:200]}"
            return ToolOutcome.fail(error)
        await self._auth.require(
            "edit",
            destructive=True,
            message="Edit file?",
            details=(
                f"File: {args.path}\nReplace: {_preview(args.oldContent)}\n"
                f"With: {_preview(args.newContent)}"
            ),
        )
        updated = content.replace(args.oldContent, args.newContent, 1)
        if not self._ws.write_file(args.path, updated):
            return ToolOutcome.fail(f"Failed to edit file: {args.path}")
        self._record_change(args.path)
        return ToolOutcome.ok(f"File edited: {args.path}")

    async def delete_file(self, args) -> ToolOutcome:
        self._auth.check("delete")
        if not self._ws.has_workspace():
            return ToolOutcome.fail(NO_WORKSPACE)
        if not self._ws.file_exists(args.path):
            return ToolOutcome.fail(f"File not found: {args.path}")
        await self._auth.require(
            "delete",
            destructive=True,
            message="Delete file?",
            details=f"File: {args.path}\nThis cannot be undone.",
        )
        if not self._ws.delete_file(args.path):
            return ToolOutcome.fail(f"Failed to delete file: {args.path}")
        self._record_change(f"[deleted] {args.path}")
        return ToolOutcome.ok(f"File deleted: {args.path}")

    async def list_files(self, args) -> ToolOutcome:
        self._auth.check("read")
        if not self._ws.has_workspace():
            return ToolOutcome.fail(NO_WORKSPACE)
        files = self._ws.list_files()
        directories = self._ws.list_directories()
        if args.filter:
            needle = args.filter.lower()
            files = [f for f in files if needle in f.path.lower()]
            directories = [d for d in directories if needle in d.lower()]
        if not files and not directories:
            return ToolOutcome.ok("Workspace is empty")
        sections: List[str] = []
        if directories:
            sections.append(
                f"Directories ({len(directories)}):\n" + "\n".join(f"{d}/" for d in directories)
            )
        if files:
            sections.append(
                f"Files ({len(files)}):\n"
                + "\n".join(f"{f.path} ({f.line_count} lines, {f.size} bytes)" for f in files)
            )
        return ToolOutcome.ok("Workspace contents:\n\n" + "\n\n".join(sections))

    async def list_directory(self, args) -> ToolOutcome:
        self._auth.check("read")
        if not self._ws.has_workspace():
            return ToolOutcome.fail(NO_WORKSPACE)
        raw = (args.path or "").strip()
        prefix = "" if raw in ("", ".", "/") else normalise_path(raw)
        directories = self._ws.list_directories()
        if prefix and prefix not in directories:
            return ToolOutcome.fail(f"Directory not found: {raw}")

        def wanted(path: str) -> bool:
            if prefix and not path.startswith(prefix + "/"):
                return False
            rel = path[len(prefix) + 1:] if prefix else path
            return bool(args.recursive) or "/" not in rel

        lines = [f"{d}/" for d in directories if wanted(d)]
        lines += [f"{f.path} ({f.line_count} lines)" for f in self._ws.list_files() if wanted(f.path)]
        label = prefix or "."
        if not lines:
            return ToolOutcome.ok(f"{label} is empty")
        return ToolOutcome.ok(f"{label}:\n" + "\n".join(sorted(lines)))

    async def search_code(self, args) -> ToolOutcome:
        self._auth.check("read")
        if not self._ws.has_workspace():
            return ToolOutcome.fail(NO_WORKSPACE)
        matches = self._ws.search_in_files(args.query)
        if args.filePattern:
            pattern = args.filePattern
            matches = [
                m for m in matches
                if fnmatch.fnmatch(m.path, pattern) or fnmatch.fnmatch(posixpath.basename(m.path), pattern)
            ]
        if not matches:
            return ToolOutcome.ok(f'No matches for "{args.query}"')
        shown = "\n\n".join(f"{m.path}:{m.line}\n   {m.content}" for m in matches[:SEARCH_RESULTS_SHOWN])
        output = f'Search results for "{args.query}" ({len(matches)} matches):\n\n{shown}'
        remaining = len(matches) - SEARCH_RESULTS_SHOWN
        if remaining > 0:
            output += f"\n\n... and {remaining} more matches"
        return ToolOutcome.ok(output)

    async def create_directory(self, args) -> ToolOutcome:
        await self._auth.require(
            "write",
            destructive=False,
            message="Create directory?",
            details=f"Directory: {args.path}",
        )
        self._ensure_workspace()
        if not self._ws.create_directory(args.path):
            return ToolOutcome.fail(f"Directory already exists or cannot be created: {args.path}")
        return ToolOutcome.ok(f"Directory created: {args.path}")
