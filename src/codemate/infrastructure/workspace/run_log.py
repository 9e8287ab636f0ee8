"""Append-only run log: execution steps to runlog.jsonl."""

from __future__ import annotations

import json
import secrets
import time
from pathlib import Path
from typing import Any, Dict, Optional

from codemate.domain import ExecutionStep

RUNLOG_FILENAME = "runlog.jsonl"


def new_run_dir(home: str | Path) -> Path:
    """Create and return a fresh ``{home}/runs/{run_id}`` directory."""
    run_id = f"{time.strftime('%Y%m%d-%H%M%S')}-{secrets.token_hex(3)}"
    run_dir = Path(home) / "runs" / run_id
    run_dir.mkdir(parents=True, exist_ok=False)
    return run_dir


def append_event(
    run_dir: str | Path,
    kind: str,
    payload: Dict[str, Any],
    step: Optional[str] = None,
) -> None:
    """Append one event record to runlog.jsonl in the given run directory."""
    run_path = Path(run_dir)
    run_path.mkdir(parents=True, exist_ok=True)
    log_path = run_path / RUNLOG_FILENAME
    record = {"ts": time.time(), "kind": kind, "step": step, "payload": payload}
    with log_path.open("a", encoding="utf-8") as f:
        f.write(json.dumps(record, ensure_ascii=False) + "\n")


class JsonlStepRecorder:
    """Step observer that mirrors every ``ExecutionStep`` into ``runlog.jsonl``.

    Register with ``ExecutionEngine(step_observers=[recorder])``.
    """

    def __init__(self, run_dir: str | Path):
        self.run_dir = Path(run_dir)

    @property
    def path(self) -> Path:
        return self.run_dir / RUNLOG_FILENAME

    def __call__(self, step: ExecutionStep) -> None:
        append_event(self.run_dir, step.type.value, step.to_dict(), step=step.id)

