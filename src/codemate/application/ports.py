"""Ports (abstract interfaces) used by the application layer.

Each port is a ``Protocol`` so the application depends only on the *shape* of
the collaborator, not on a concrete implementation.  Infrastructure adapters
must satisfy these shapes; the application never imports from infrastructure.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Sequence

from codemate.domain import FileEntry, LLMResponse, Message, PermissionMode, SearchMatch, ToolDefinition


class ChatClient(Protocol):
    """LLM chat interface.

    Implementations surface tool-call requests already parsed into
    ``ToolCall`` objects, whatever the wire format.
    """

    async def chat(
        self,
        messages: Sequence[Message],
        *,
        tools: Optional[Sequence[ToolDefinition]] = None,
    ) -> LLMResponse: ...


class Workspace(Protocol):
    """File workspace the tools operate on.

    Paths are workspace-relative with ``/`` separators.  Reads after writes
    are consistent within a run.
    """

    @property
    def name(self) -> Optional[str]: ...

    def has_workspace(self) -> bool: ...

    def create_workspace(self, name: str) -> None: ...

    def read_file(self, path: str) -> Optional[str]:
        """Return the file content, or ``None`` when it does not exist."""
        ...

    def write_file(self, path: str, content: str) -> bool: ...

    def delete_file(self, path: str) -> bool: ...

    def file_exists(self, path: str) -> bool: ...

    def list_files(self) -> List[FileEntry]: ...

    def list_directories(self) -> List[str]: ...

    def search_in_files(self, query: str) -> List[SearchMatch]: ...

    def create_directory(self, path: str) -> bool:
        """Create ``path``; ``False`` when it already exists or cannot be created."""
        ...


class PermissionStore(Protocol):
    """Externally persisted permission overrides, keyed by rule id."""

    def get(self, tool_id: str) -> Optional[PermissionMode]: ...

    def set(self, tool_id: str, mode: PermissionMode) -> None: ...

    def reset(self) -> None: ...

    def all(self) -> Dict[str, PermissionMode]: ...


class InteractionBridge(Protocol):
    """Human-in-the-loop boundary: the only place a run waits on a person."""

    async def confirm(self, message: str, details: str = "") -> bool: ...

    async def ask_user(self, question: str, options: Optional[List[str]] = None) -> str: ...
