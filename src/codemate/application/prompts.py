"""Prompt text for the execution engine.

The tool list is rendered into the system prompt as plain text in addition
to being sent through the chat API's ``tools`` parameter, so backends with
weak function-calling support still see every tool and its parameters.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from codemate.config.constants import WORKSPACE_SUMMARY_MAX_FILES
from codemate.domain import FileEntry, ToolDefinition

SYSTEM_PROMPT = """\
You are the execution engine of codemate, an autonomous coding assistant.
Complete the user's task by calling the available tools.

## Core rules
- Act autonomously: analyse the request and start working right away.
- Prefer tools over prose. Do the work, do not just describe it.
- If an attempt fails, work out why and adjust before retrying.
- Say briefly what you are doing at each step.
- When the task is done you MUST call the complete tool with a summary.

## Workflow
1. Understand the goal.
2. Plan internally.
3. Execute tool calls one step at a time.
4. Verify the result.
5. Call complete.

## Notes
- Read a file before modifying it. edit_file needs the exact existing text.
- Be careful with deletions.
- Use ask_user when you need information only the user has.
"""

REFLECTION_HINT = (
    "The tool call failed. Analyse the error above, adjust the arguments or "
    "the approach, and try again."
)

NO_WORKSPACE_NOTE = (
    "No workspace is open. write_file and create_directory will create one."
)


def render_tool_prompt(definitions: Sequence[ToolDefinition]) -> str:
    """List every tool with its parameters, one block per tool."""
    blocks: List[str] = []
    for definition in definitions:
        lines = [f"- {definition.name}: {definition.description}"]
        if definition.parameters:
            lines.append("  Parameters:")
            for name, param in definition.parameters.items():
                marker = "" if name in definition.required else " (optional)"
                lines.append(f"    - {name}{marker}: {param.description}")
        blocks.append("\n".join(lines))
    return "Available tools:\n\n" + "\n\n".join(blocks)


def render_workspace_summary(name: Optional[str], files: Sequence[FileEntry]) -> str:
    if name is None:
        return NO_WORKSPACE_NOTE
    lines = [f"Current workspace: {name or 'unnamed'}", f"File count: {len(files)}"]
    if files:
        lines.append("Files:")
        lines.extend(f"- {f.path}" for f in files[:WORKSPACE_SUMMARY_MAX_FILES])
        remaining = len(files) - WORKSPACE_SUMMARY_MAX_FILES
        if remaining > 0:
            lines.append(f"... and {remaining} more files")
    return "\n".join(lines)
