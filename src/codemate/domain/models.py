"""Domain models: tools, tool calls/results, steps, messages, permissions. Pure data, no I/O."""

from __future__ import annotations

import secrets
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


class PermissionMode(str, Enum):
    """Per-tool policy: run freely, never run, or ask the user first."""
    ALLOW = "allow"
    DENY = "deny"
    ASK = "ask"


class StepType(str, Enum):
    THINK = "think"
    TOOL_CALL = "tool_call"
    TOOL_RESULT = "tool_result"
    MESSAGE = "message"


class Role(str, Enum):
    SYSTEM = "system"
    USER = "user"
    ASSISTANT = "assistant"
    TOOL = "tool"


@dataclass(frozen=True)
class PermissionRule:
    """Catalogue entry for a permission id (e.g. ``write``) and its built-in default."""
    id: str
    name: str
    description: str
    category: str
    dangerous: bool
    default_permission: PermissionMode


@dataclass(frozen=True)
class ToolParameter:
    """One property of a tool's JSON-schema-like parameter object."""
    type: str
    description: str
    enum: Optional[Tuple[str, ...]] = None
    items: Optional[str] = None  # item type when ``type == "array"``


@dataclass(frozen=True)
class ToolDefinition:
    """Static descriptor of a tool the LLM may request.

    ``permission`` names the ``PermissionRule`` guarding the tool; ``None``
    means the tool never touches a collaborator (``ask_user``, ``complete``).
    """
    name: str
    description: str
    parameters: Dict[str, ToolParameter] = field(default_factory=dict)
    required: Tuple[str, ...] = ()
    permission: Optional[str] = None

    def json_schema(self) -> Dict[str, Any]:
        """Parameter object in JSON-schema form (what the LLM sees)."""
        properties: Dict[str, Any] = {}
        for name, param in self.parameters.items():
            prop: Dict[str, Any] = {"type": param.type, "description": param.description}
            if param.enum:
                prop["enum"] = list(param.enum)
            if param.items:
                prop["items"] = {"type": param.items}
            properties[name] = prop
        return {"type": "object", "properties": properties, "required": list(self.required)}


@dataclass
class ToolCall:
    """A single tool call requested by the LLM."""
    id: str        # Opaque; correlates with exactly one ToolResult
    name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class ToolResult:
    """Outcome of executing one ToolCall."""
    tool_call_id: str
    name: str
    success: bool
    output: Optional[str] = None
    error: Optional[str] = None
    duration_ms: Optional[int] = None


@dataclass(frozen=True)
class ExecutionStep:
    """One audit-log entry of the agent loop."""
    id: str
    type: StepType
    content: str
    timestamp: int
    tool_call: Optional[ToolCall] = None
    tool_result: Optional[ToolResult] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "type": self.type.value,
            "content": self.content,
            "timestamp": self.timestamp,
        }
        if self.tool_call is not None:
            data["tool_call"] = {
                "id": self.tool_call.id,
                "name": self.tool_call.name,
                "arguments": self.tool_call.arguments,
            }
        if self.tool_result is not None:
            data["tool_result"] = {
                "tool_call_id": self.tool_result.tool_call_id,
                "name": self.tool_result.name,
                "success": self.tool_result.success,
                "output": self.tool_result.output,
                "error": self.tool_result.error,
                "duration_ms": self.tool_result.duration_ms,
            }
        return data


def new_step_id(now_ms: Optional[int] = None) -> str:
    """Build a step id from the current time plus a short random suffix."""
    ms = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"step-{ms}-{secrets.token_hex(3)}"


@dataclass
class Message:
    """One entry of the LLM conversation."""
    role: Role
    content: str
    tool_calls: List[ToolCall] = field(default_factory=list)
    tool_call_id: Optional[str] = None
    name: Optional[str] = None


@dataclass
class LLMResponse:
    """Response from the LLM after a chat turn.

    ``finish_reason`` is the backend's stop reason (``"stop"``, ``"tool_calls"``,
    ``"length"``...).  The engine uses ``has_tool_calls`` and ``finish_reason``
    to decide whether to dispatch tools or end the run.
    """
    content: Optional[str]
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: str = "stop"

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


@dataclass(frozen=True)
class WorkflowStep:
    action: str
    params: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class WorkflowTemplate:
    """Trigger phrases mapped to advisory steps for a common task."""
    id: str
    name: str
    description: str
    triggers: Tuple[str, ...]
    steps: Tuple[WorkflowStep, ...]
    category: str = "general"


@dataclass(frozen=True)
class FileEntry:
    """A workspace file as reported by ``Workspace.list_files``."""
    path: str
    content: str

    @property
    def line_count(self) -> int:
        return len(self.content.split("\n"))

    @property
    def size(self) -> int:
        return len(self.content.encode("utf-8"))


@dataclass(frozen=True)
class SearchMatch:
    path: str
    line: int
    content: str
