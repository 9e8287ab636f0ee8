"""Domain and application errors."""

from __future__ import annotations

from typing import List


class CodemateError(Exception):
    """Base for codemate errors."""
    pass


class ToolArgumentError(CodemateError):
    """Tool-call arguments do not match the tool's declared parameters.

    ``issues`` holds one human-readable line per offending field so the LLM
    can correct every problem in a single retry.
    """

    def __init__(self, tool_name: str, issues: List[str]):
        self.tool_name = tool_name
        self.issues = list(issues)
        super().__init__(f"Invalid arguments for {tool_name!r}: " + "; ".join(self.issues))


class PermissionDeniedError(CodemateError, PermissionError):
    """The permission gate (or the user) refused a tool action."""
    pass


class WorkspaceError(CodemateError):
    """The workspace collaborator could not complete an operation."""
    pass
