"""Domain layer: entities and value objects. No I/O."""

from .models import (
    ExecutionStep,
    FileEntry,
    LLMResponse,
    Message,
    PermissionMode,
    PermissionRule,
    Role,
    SearchMatch,
    StepType,
    ToolCall,
    ToolDefinition,
    ToolParameter,
    ToolResult,
    WorkflowStep,
    WorkflowTemplate,
    new_step_id,
)
from .errors import CodemateError, PermissionDeniedError, ToolArgumentError, WorkspaceError

__all__ = [
    "ExecutionStep",
    "FileEntry",
    "LLMResponse",
    "Message",
    "PermissionMode",
    "PermissionRule",
    "Role",
    "SearchMatch",
    "StepType",
    "ToolCall",
    "ToolDefinition",
    "ToolParameter",
    "ToolResult",
    "WorkflowStep",
    "WorkflowTemplate",
    "new_step_id",
    "CodemateError",
    "PermissionDeniedError",
    "ToolArgumentError",
    "WorkspaceError",
]
