"""Append-only execution step log with observer and streaming fan-out."""

from __future__ import annotations

import asyncio
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from codemate.domain import ExecutionStep, StepType, ToolCall, ToolResult, new_step_id

logger = logging.getLogger(__name__)

StepObserver = Callable[[ExecutionStep], None]


def _emit(queue: Optional[asyncio.Queue], kind: str, data: Dict[str, Any]) -> None:
    """Put a step event on the streaming queue (no-op when queue is None or full)."""
    if queue is None:
        return
    try:
        queue.put_nowait({"kind": kind, "data": data})
    except asyncio.QueueFull:
        logger.debug("event_queue full; dropping event kind=%s", kind)


class StepLog:
    """Ordered record of one run. Steps are never mutated or removed mid-run.

    Every appended step is forwarded to the optional observers (``on_step``
    callback, JSONL recorder, event queue).  An observer that raises is
    logged and ignored; the log itself is never affected.
    """

    def __init__(
        self,
        observers: Optional[List[StepObserver]] = None,
        event_queue: Optional[asyncio.Queue] = None,
    ):
        self._steps: List[ExecutionStep] = []
        self._observers: List[StepObserver] = list(observers or [])
        self.event_queue = event_queue

    def add_observer(self, observer: StepObserver) -> None:
        self._observers.append(observer)

    def reset(self) -> None:
        self._steps = []

    @property
    def steps(self) -> List[ExecutionStep]:
        return list(self._steps)

    def __len__(self) -> int:
        return len(self._steps)

    def append(
        self,
        type: StepType,
        content: str,
        *,
        tool_call: Optional[ToolCall] = None,
        tool_result: Optional[ToolResult] = None,
    ) -> ExecutionStep:
        now_ms = int(time.time() * 1000)
        step = ExecutionStep(
            id=new_step_id(now_ms),
            type=type,
            content=content,
            timestamp=now_ms,
            tool_call=tool_call,
            tool_result=tool_result,
        )
        self._steps.append(step)
        for observer in self._observers:
            try:
                observer(step)
            except Exception:  # noqa: BLE001
                logger.exception("Step observer failed on step %s", step.id)
        _emit(self.event_queue, step.type.value, step.to_dict())
        return step
