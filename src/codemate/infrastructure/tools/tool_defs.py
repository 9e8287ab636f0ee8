"""The canonical tool set, as ``ToolDefinition`` values.

``permission`` on each definition names the rule that guards it; the
handlers in this package consult the same id.
"""

from __future__ import annotations

from typing import Dict, Optional, Sequence

from codemate.domain import ToolDefinition, ToolParameter


def make_tool_def(
    name: str,
    description: str,
    parameters: Optional[Dict[str, ToolParameter]] = None,
    required: Sequence[str] = (),
    permission: Optional[str] = None,
) -> ToolDefinition:
    return ToolDefinition(
        name=name,
        description=description,
        parameters=dict(parameters or {}),
        required=tuple(required),
        permission=permission,
    )


def _string(description: str) -> ToolParameter:
    return ToolParameter("string", description)


_PATH = _string("Workspace-relative file path, e.g. 'src/app.py'.")

READ_FILE = make_tool_def(
    "read_file",
    "Read a file from the workspace. Lines are returned numbered.",
    {"path": _PATH},
    required=["path"],
    permission="read",
)

WRITE_FILE = make_tool_def(
    "write_file",
    "Create a file or overwrite an existing one. Creates a workspace if none is open.",
    {"path": _PATH, "content": _string("Full file content.")},
    required=["path", "content"],
    permission="write",
)

EDIT_FILE = make_tool_def(
    "edit_file",
    "Replace the first exact occurrence of oldContent with newContent. "
    "oldContent must match the file byte for byte; read the file first.",
    {
        "path": _PATH,
        "oldContent": _string("Exact existing text to replace."),
        "newContent": _string("Replacement text."),
    },
    required=["path", "oldContent", "newContent"],
    permission="edit",
)

DELETE_FILE = make_tool_def(
    "delete_file",
    "Delete a file from the workspace (destructive).",
    {"path": _string("Path of the file to delete.")},
    required=["path"],
    permission="delete",
)

LIST_FILES = make_tool_def(
    "list_files",
    "List every directory and file in the workspace with line and byte counts.",
    {"filter": _string("Optional case-insensitive substring the path must contain.")},
    permission="read",
)

LIST_DIRECTORY = make_tool_def(
    "list_directory",
    "List the entries of one directory.",
    {
        "path": _string("Directory path; empty or '.' for the workspace root."),
        "recursive": ToolParameter("boolean", "Include nested entries."),
    },
    permission="read",
)

SEARCH_CODE = make_tool_def(
    "search_code",
    "Case-insensitive search for a substring in every workspace file.",
    {
        "query": _string("Text to search for."),
        "filePattern": _string("Optional glob limiting which files are searched, e.g. '*.py'."),
    },
    required=["query"],
    permission="read",
)

CREATE_DIRECTORY = make_tool_def(
    "create_directory",
    "Create a directory. Fails if it already exists.",
    {"path": _string("Directory path.")},
    required=["path"],
    permission="write",
)

EXECUTE_COMMAND = make_tool_def(
    "execute_command",
    "Run a shell command in the workspace (allowlisted executables only).",
    {
        "command": _string("Command line, e.g. 'pytest -q'."),
        "timeout": ToolParameter("integer", "Timeout in seconds."),
    },
    required=["command"],
    permission="bash",
)

WEB_FETCH = make_tool_def(
    "web_fetch",
    "Fetch a web page and return its main text (size-capped).",
    {"url": _string("Absolute http(s) URL.")},
    required=["url"],
    permission="webfetch",
)

WEB_SEARCH = make_tool_def(
    "web_search",
    "Search the web; returns titles, URLs and snippets.",
    {"query": _string("Search query.")},
    required=["query"],
    permission="websearch",
)

ASK_USER = make_tool_def(
    "ask_user",
    "Ask the user a question and wait for the answer.",
    {
        "question": _string("The question to ask."),
        "options": ToolParameter("array", "Optional suggested answers.", items="string"),
    },
    required=["question"],
)

COMPLETE = make_tool_def(
    "complete",
    "Mark the task as finished. Call this once, after the work is done and verified.",
    {
        "summary": _string("What was done."),
        "files_changed": ToolParameter("array", "Files created or modified.", items="string"),
    },
    required=["summary"],
)

BUILTIN_TOOL_DEFS = (
    READ_FILE,
    WRITE_FILE,
    EDIT_FILE,
    DELETE_FILE,
    LIST_FILES,
    LIST_DIRECTORY,
    SEARCH_CODE,
    CREATE_DIRECTORY,
    EXECUTE_COMMAND,
    WEB_FETCH,
    WEB_SEARCH,
    ASK_USER,
    COMPLETE,
)
