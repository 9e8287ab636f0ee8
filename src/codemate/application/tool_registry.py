"""Tool registry: name -> (definition, async handler), plus uniform dispatch.

Dispatch never raises for tool-level problems.  Unknown tools, invalid
arguments, permission refusals and handler exceptions all become a failed
``ToolResult`` so the agent loop can feed the error back to the model.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Type

from codemate.application.tool_schema import ToolArguments, build_arguments_model, validate_arguments
from codemate.domain import ToolArgumentError, ToolCall, ToolDefinition, ToolResult

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolOutcome:
    """What a handler returns: output on success, error text on failure."""
    success: bool
    output: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, output: str) -> "ToolOutcome":
        return cls(success=True, output=output)

    @classmethod
    def fail(cls, error: str) -> "ToolOutcome":
        return cls(success=False, error=error)


ToolHandler = Callable[[ToolArguments], Awaitable[ToolOutcome]]


@dataclass(frozen=True)
class _Entry:
    definition: ToolDefinition
    model: Type[ToolArguments]
    handler: Optional[ToolHandler]


class ToolRegistry:
    """Holds the tool set and executes tool calls one at a time.

    Tools registered without a handler (``ask_user``, ``complete``) are
    advertised to the model but must be intercepted by the caller.
    """

    def __init__(self, tool_timeout_s: Optional[float] = None):
        self._entries: Dict[str, _Entry] = {}
        self._tool_timeout_s = tool_timeout_s
        self._files_changed: List[str] = []

    def register(self, definition: ToolDefinition, handler: Optional[ToolHandler] = None) -> None:
        if definition.name in self._entries:
            raise ValueError(f"Tool {definition.name!r} is already registered")
        self._entries[definition.name] = _Entry(
            definition=definition,
            model=build_arguments_model(definition),
            handler=handler,
        )

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def get(self, name: str) -> Optional[ToolDefinition]:
        entry = self._entries.get(name)
        return entry.definition if entry else None

    @property
    def definitions(self) -> List[ToolDefinition]:
        return [e.definition for e in self._entries.values()]

    def parse_arguments(self, call: ToolCall) -> ToolArguments:
        """Validate ``call.arguments``; raises ``ToolArgumentError`` or ``KeyError``."""
        entry = self._entries[call.name]
        return validate_arguments(entry.definition, call.arguments, entry.model)

    # files-changed accumulator

    def record_change(self, path: str) -> None:
        if path not in self._files_changed:
            self._files_changed.append(path)

    @property
    def files_changed(self) -> List[str]:
        return list(self._files_changed)

    def reset_files_changed(self) -> None:
        self._files_changed.clear()

    async def execute(self, call: ToolCall) -> ToolResult:
        start = time.monotonic()
        outcome = await self._dispatch(call)
        duration_ms = int((time.monotonic() - start) * 1000)
        if not outcome.success:
            logger.warning("Tool %r failed: %s", call.name, outcome.error)
        return ToolResult(
            tool_call_id=call.id,
            name=call.name,
            success=outcome.success,
            output=outcome.output if outcome.success else None,
            error=None if outcome.success else outcome.error,
            duration_ms=duration_ms,
        )

    async def _dispatch(self, call: ToolCall) -> ToolOutcome:
        entry = self._entries.get(call.name)
        if entry is None:
            return ToolOutcome.fail(f"Unknown tool: {call.name}")
        if entry.handler is None:
            return ToolOutcome.fail(f"Tool {call.name!r} cannot be dispatched directly")
        try:
            args = validate_arguments(entry.definition, call.arguments, entry.model)
        except ToolArgumentError as exc:
            return ToolOutcome.fail(str(exc))

        try:
            if self._tool_timeout_s is not None:
                return await asyncio.wait_for(entry.handler(args), timeout=self._tool_timeout_s)
            return await entry.handler(args)
        except asyncio.TimeoutError:
            return ToolOutcome.fail(f"timeout: tool did not finish within {self._tool_timeout_s}s")
        except PermissionError as exc:
            # Gate deny, rejected confirmation, or sandbox violation.
            message = str(exc)
            if not message.startswith("permission denied"):
                message = f"permission denied: {message}"
            return ToolOutcome.fail(message)
        except (ValueError, TypeError) as exc:
            return ToolOutcome.fail(f"invalid arguments: {exc}")
        except OSError as exc:
            return ToolOutcome.fail(f"I/O error: {exc}")
        except Exception as exc:  # noqa: BLE001
            logger.exception("Unexpected error in tool %r", call.name)
            return ToolOutcome.fail(f"unexpected error ({type(exc).__name__}): {exc}")
