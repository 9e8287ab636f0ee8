"""Execution engine: the autonomous tool-execution loop.

One ``execute()`` call is one run:

1. reset the step log, the conversation, the iteration counter and the
   files-changed accumulator;
2. seed a system message (instructions + tool list) and a user message
   (instruction + matched workflow guidance + workspace summary);
3. loop: call the LLM, dispatch its tool calls strictly in order, feed each
   result back as a ``tool`` message;
4. stop on ``complete``, on a natural-language answer, on ``stop()``, on an
   LLM failure, or at ``max_iterations``.

``execute()`` never raises.  Tool failures are fed back to the model; only a
failing LLM call ends a run early.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, fields
from enum import Enum
from typing import Any, Callable, List, Optional

from codemate.application.bridge import AskUserCallback, CallbackBridge, ConfirmCallback
from codemate.application.ports import ChatClient, InteractionBridge, Workspace
from codemate.application.prompts import (
    NO_WORKSPACE_NOTE,
    REFLECTION_HINT,
    SYSTEM_PROMPT,
    render_tool_prompt,
    render_workspace_summary,
)
from codemate.application.step_log import StepLog, StepObserver
from codemate.application.tool_registry import ToolRegistry
from codemate.application.workflows import WorkflowMatcher, render_guidance
from codemate.config.schema import ExecutorConfig
from codemate.domain import (
    ExecutionStep,
    LLMResponse,
    Message,
    Role,
    StepType,
    ToolArgumentError,
    ToolCall,
    ToolResult,
)
from codemate.infrastructure.telemetry import get_tracer

logger = logging.getLogger(__name__)

ASK_USER_TOOL = "ask_user"
COMPLETE_TOOL = "complete"

BUSY_MESSAGE = "Another task is already running"
STOPPED_MESSAGE = "Execution stopped"
NO_ANSWER_PLACEHOLDER = "(the user gave no answer)"


class EngineState(str, Enum):
    IDLE = "idle"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    STOPPED = "stopped"


class ExecutionOutcome(str, Enum):
    """How the last run ended."""
    COMPLETED = "completed"              # explicit complete tool call
    FINISHED = "finished"                # natural-language answer without tool calls
    ITERATION_LIMIT = "iteration_limit"
    STOPPED = "stopped"
    FAILED = "failed"


@dataclass
class ExecutionCallbacks:
    """Host observers. All optional.

    ``on_confirm`` and ``on_ask_user`` are awaited; the rest are
    fire-and-forget and an exception raised by one is logged and ignored.
    """
    on_step: Optional[Callable[[ExecutionStep], None]] = None
    on_tool_call: Optional[Callable[[ToolCall], None]] = None
    on_tool_result: Optional[Callable[[ToolResult], None]] = None
    on_complete: Optional[Callable[[str], None]] = None
    on_error: Optional[Callable[[str], None]] = None
    on_ask_user: Optional[AskUserCallback] = None
    on_confirm: Optional[ConfirmCallback] = None


class _RunFailed(Exception):
    """Internal: ends the loop as a failed run with the given message."""


class ExecutionEngine:
    """Drives repeated LLM calls and tool dispatch to completion.

    Collaborators are injected.  When no ``bridge`` is given, ``ask_user``
    calls are answered through the ``on_ask_user`` callback (and
    ``engine.bridge`` forwards confirmations to ``on_confirm``), failing
    closed when the callback is missing.
    """

    def __init__(
        self,
        chat_client: ChatClient,
        registry: ToolRegistry,
        workspace: Optional[Workspace] = None,
        *,
        config: Optional[ExecutorConfig] = None,
        bridge: Optional[InteractionBridge] = None,
        callbacks: Optional[ExecutionCallbacks] = None,
        matcher: Optional[WorkflowMatcher] = None,
        step_observers: Optional[List[StepObserver]] = None,
        event_queue: Optional[asyncio.Queue] = None,
    ):
        self._chat = chat_client
        self._registry = registry
        self._workspace = workspace
        self._config = config or ExecutorConfig()
        self._callbacks = callbacks or ExecutionCallbacks()
        self._bridge: InteractionBridge = bridge or CallbackBridge(
            confirm=self._confirm_via_callback,
            ask_user=self._ask_via_callback,
        )
        self._matcher = matcher or WorkflowMatcher()
        self._steps = StepLog(event_queue=event_queue)
        self._steps.add_observer(self._forward_step)
        for observer in step_observers or []:
            self._steps.add_observer(observer)
        self._messages: List[Message] = []
        self._iteration = 0
        self._state = EngineState.IDLE
        self._outcome: Optional[ExecutionOutcome] = None
        self._stop_requested = False
        self._tracer = get_tracer()

    # ------------------------------------------------------------------
    # Host surface
    # ------------------------------------------------------------------

    @property
    def config(self) -> ExecutorConfig:
        return self._config

    @property
    def bridge(self) -> InteractionBridge:
        return self._bridge

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def outcome(self) -> Optional[ExecutionOutcome]:
        return self._outcome

    @property
    def iteration(self) -> int:
        return self._iteration

    @property
    def files_changed(self) -> List[str]:
        return self._registry.files_changed

    def is_executing(self) -> bool:
        return self._state is EngineState.RUNNING

    def get_steps(self) -> List[ExecutionStep]:
        return self._steps.steps

    def get_messages(self) -> List[Message]:
        return list(self._messages)

    def set_callbacks(self, **callbacks: Any) -> None:
        """Merge callbacks into the current set, e.g. ``set_callbacks(on_step=fn)``."""
        known = {f.name for f in fields(ExecutionCallbacks)}
        unknown = set(callbacks) - known
        if unknown:
            raise TypeError(f"Unknown callbacks: {', '.join(sorted(unknown))}")
        for name, fn in callbacks.items():
            setattr(self._callbacks, name, fn)

    def update_config(self, **overrides: Any) -> ExecutorConfig:
        """Override executor settings between runs."""
        if self.is_executing():
            raise RuntimeError("Cannot change executor config while a run is in progress")
        self._config = ExecutorConfig.model_validate({**self._config.model_dump(), **overrides})
        return self._config

    def stop(self) -> None:
        """Request a cooperative stop.

        Checked at the top of each iteration and after each tool result; an
        in-flight LLM call or confirmation wait is not interrupted.
        """
        if self.is_executing():
            logger.info("Stop requested at iteration %d", self._iteration)
            self._stop_requested = True

    async def execute(self, message: str) -> str:
        """Run one task and return its summary or an explanatory failure string."""
        if self.is_executing():
            logger.warning("execute() rejected: a run is already in progress")
            return BUSY_MESSAGE

        self._state = EngineState.RUNNING
        self._outcome = None
        self._stop_requested = False
        self._steps.reset()
        self._messages = []
        self._iteration = 0
        self._registry.reset_files_changed()
        self._tracer = get_tracer()

        with self._tracer.start_as_current_span("codemate.execute") as span:
            span.set_attribute("max_iterations", self._config.max_iterations)
            result = await self._execute(message)
            span.set_attribute("outcome", self._outcome.value if self._outcome else "unknown")
            span.set_attribute("iterations", self._iteration)
            span.set_attribute("files_changed", len(self._registry.files_changed))
            return result

    async def _execute(self, message: str) -> str:
        try:
            return await self._run(message)
        except _RunFailed as exc:
            return self._fail(str(exc))
        except Exception as exc:  # noqa: BLE001
            logger.exception("Run failed at iteration %d", self._iteration)
            error = f"Execution error: {exc}"
            self._steps.append(StepType.MESSAGE, error)
            self._notify("on_error", error)
            return self._fail(error)
        finally:
            if self._state is EngineState.RUNNING:
                self._state = EngineState.FAILED
                self._outcome = ExecutionOutcome.FAILED

    # ------------------------------------------------------------------
    # Loop
    # ------------------------------------------------------------------

    async def _run(self, message: str) -> str:
        self._seed(message)
        self._steps.append(StepType.MESSAGE, f"Starting task: {message}")
        max_iterations = self._config.max_iterations

        while self._iteration < max_iterations and not self._stop_requested:
            self._iteration += 1
            self._steps.append(
                StepType.THINK,
                f"Thinking... (iteration {self._iteration}/{max_iterations})",
            )

            response = await self._call_llm()
            if response is None:
                continue

            if response.content:
                self._steps.append(StepType.MESSAGE, response.content)

            if not response.has_tool_calls:
                self._messages.append(Message(role=Role.ASSISTANT, content=response.content or ""))
                if response.finish_reason == "length":
                    logger.info("Iteration %d: response truncated; continuing", self._iteration)
                    continue
                return self._finish(ExecutionOutcome.FINISHED, response.content or "")

            self._messages.append(
                Message(
                    role=Role.ASSISTANT,
                    content=response.content or "",
                    tool_calls=list(response.tool_calls),
                )
            )
            summary = await self._dispatch_batch(response.tool_calls)
            if summary is not None:
                return self._finish(ExecutionOutcome.COMPLETED, summary)

        if self._stop_requested:
            self._steps.append(StepType.MESSAGE, STOPPED_MESSAGE)
            self._state = EngineState.STOPPED
            self._outcome = ExecutionOutcome.STOPPED
            logger.info("Run stopped after %d iterations", self._iteration)
            return STOPPED_MESSAGE

        warning = (
            f"Reached the maximum of {max_iterations} iterations; "
            "the task may be incomplete."
        )
        logger.warning("Run hit max_iterations (%d) without complete", max_iterations)
        self._steps.append(StepType.MESSAGE, warning)
        return self._finish(ExecutionOutcome.ITERATION_LIMIT, warning)

    async def _dispatch_batch(self, calls: List[ToolCall]) -> Optional[str]:
        """Execute calls in order; return the summary when ``complete`` is reached."""
        for call in calls:
            self._notify("on_tool_call", call)
            self._steps.append(StepType.TOOL_CALL, f"Calling tool: {call.name}", tool_call=call)

            if call.name == COMPLETE_TOOL:
                return self._complete(call)

            with self._tracer.start_as_current_span("codemate.tool_call") as tool_span:
                tool_span.set_attribute("tool_name", call.name)
                tool_span.set_attribute("iteration", self._iteration)
                if call.name == ASK_USER_TOOL:
                    result = await self._ask_user(call)
                else:
                    result = await self._registry.execute(call)
                tool_span.set_attribute("success", result.success)

            self._messages.append(
                Message(
                    role=Role.TOOL,
                    content=self._tool_message_content(result),
                    tool_call_id=call.id,
                    name=call.name,
                )
            )
            self._notify("on_tool_result", result)
            self._steps.append(
                StepType.TOOL_RESULT,
                _result_summary(result),
                tool_call=call,
                tool_result=result,
            )
            if self._stop_requested:
                break
        return None

    async def _call_llm(self) -> Optional[LLMResponse]:
        """One LLM turn. ``None`` means the turn timed out and the loop goes on."""
        with self._tracer.start_as_current_span("codemate.llm_call") as llm_span:
            llm_span.set_attribute("iteration", self._iteration)
            llm_span.set_attribute("message_count", len(self._messages))
            response = await self._chat_with_deadline()
            if response is not None:
                llm_span.set_attribute("tool_calls_returned", len(response.tool_calls))
            return response

    async def _chat_with_deadline(self) -> Optional[LLMResponse]:
        timeout_s = self._config.timeout_s
        try:
            return await asyncio.wait_for(
                self._chat.chat(list(self._messages), tools=self._registry.definitions),
                timeout=timeout_s,
            )
        except asyncio.TimeoutError:
            error = f"LLM call timed out after {timeout_s}s (iteration {self._iteration})"
            logger.warning("%s", error)
            self._steps.append(StepType.MESSAGE, error)
            self._notify("on_error", error)
            if self._config.abort_on_timeout:
                raise _RunFailed(f"Execution error: {error}")
            return None
        except Exception as exc:
            error = f"Execution error: {exc}"
            logger.error("LLM call failed at iteration %d: %s", self._iteration, exc)
            self._steps.append(StepType.MESSAGE, error)
            self._notify("on_error", error)
            raise _RunFailed(error) from exc

    # ------------------------------------------------------------------
    # Intercepted tools
    # ------------------------------------------------------------------

    def _complete(self, call: ToolCall) -> str:
        summary = str(call.arguments.get("summary") or "Task completed")
        files = call.arguments.get("files_changed")
        if isinstance(files, list):
            for path in files:
                self._registry.record_change(str(path))
        result = ToolResult(tool_call_id=call.id, name=call.name, success=True, output=summary)
        self._messages.append(
            Message(role=Role.TOOL, content="Task completed", tool_call_id=call.id, name=call.name)
        )
        self._notify("on_tool_result", result)
        self._steps.append(
            StepType.TOOL_RESULT,
            f"Task completed: {summary}",
            tool_call=call,
            tool_result=result,
        )
        self._notify("on_complete", summary)
        return summary

    async def _ask_user(self, call: ToolCall) -> ToolResult:
        try:
            args = self._registry.parse_arguments(call)
        except (ToolArgumentError, KeyError) as exc:
            return ToolResult(tool_call_id=call.id, name=call.name, success=False, error=str(exc))
        try:
            answer = await self._bridge.ask_user(args.question, getattr(args, "options", None))
        except Exception as exc:  # noqa: BLE001
            logger.warning("ask_user bridge failed: %s", exc)
            return ToolResult(
                tool_call_id=call.id,
                name=call.name,
                success=False,
                error=f"ask_user failed: {exc}",
            )
        return ToolResult(
            tool_call_id=call.id,
            name=call.name,
            success=True,
            output=answer or NO_ANSWER_PLACEHOLDER,
        )

    async def _confirm_via_callback(self, message: str, details: str) -> bool:
        if self._callbacks.on_confirm is None:
            logger.info("No on_confirm callback; rejecting: %s", message)
            return False
        return await self._callbacks.on_confirm(message, details)

    async def _ask_via_callback(self, question: str, options: Optional[List[str]]) -> str:
        if self._callbacks.on_ask_user is None:
            logger.info("No on_ask_user callback; answering with empty string")
            return ""
        return await self._callbacks.on_ask_user(question, options)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _seed(self, message: str) -> None:
        system = SYSTEM_PROMPT + "\n\n" + render_tool_prompt(self._registry.definitions)
        parts = [message]
        template = self._matcher.match(message)
        if template is not None:
            logger.info("Matched workflow %r", template.id)
            parts.append(render_guidance(template))
        parts.append(self._workspace_summary())
        self._messages.append(Message(role=Role.SYSTEM, content=system))
        self._messages.append(Message(role=Role.USER, content="\n\n".join(parts)))

    def _workspace_summary(self) -> str:
        if self._workspace is None or not self._workspace.has_workspace():
            return NO_WORKSPACE_NOTE
        return render_workspace_summary(self._workspace.name, self._workspace.list_files())

    def _tool_message_content(self, result: ToolResult) -> str:
        if result.success:
            return result.output or ""
        content = f"Error: {result.error}"
        if self._config.enable_reflection:
            content += "\n\n" + REFLECTION_HINT
        return content

    def _finish(self, outcome: ExecutionOutcome, result: str) -> str:
        self._state = EngineState.COMPLETED
        self._outcome = outcome
        logger.info("Run finished: outcome=%s iterations=%d", outcome.value, self._iteration)
        return result

    def _fail(self, error: str) -> str:
        self._state = EngineState.FAILED
        self._outcome = ExecutionOutcome.FAILED
        return error

    def _forward_step(self, step: ExecutionStep) -> None:
        self._notify("on_step", step)

    def _notify(self, name: str, *args: Any) -> None:
        callback = getattr(self._callbacks, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:  # noqa: BLE001
            logger.exception("Callback %s failed", name)


def _result_summary(result: ToolResult) -> str:
    if result.success:
        return f"{result.name} succeeded"
    return f"{result.name} failed: {result.error}"
