"""Read and summarise past runs under ``{home}/runs/``.

Read-only counterpart of ``run_log``, used by the ``codemate logs`` commands.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .run_log import RUNLOG_FILENAME

logger = logging.getLogger(__name__)


@dataclass
class RunSummary:
    """Lightweight summary of a single run, built from its runlog."""
    run_id: str
    run_dir: str
    first_event_ts: Optional[float]
    event_count: int
    outcome: Optional[str]
    result: Optional[str]


def _parse_runlog(runlog_path: Path) -> List[dict]:
    events: List[dict] = []
    try:
        content = runlog_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.warning("Skipping unreadable runlog %s: %s", runlog_path, exc)
        return events
    for line in content.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            events.append(json.loads(line))
        except json.JSONDecodeError:
            logger.warning("Skipping malformed runlog line in %s", runlog_path)
    return events


def _summarise_run(run_dir: Path) -> RunSummary:
    events = _parse_runlog(run_dir / RUNLOG_FILENAME)
    first_ts: Optional[float] = None
    outcome: Optional[str] = None
    result: Optional[str] = None
    for ev in events:
        ts = ev.get("ts")
        if ts is not None and first_ts is None:
            first_ts = float(ts)
        if ev.get("kind") == "run_complete":
            payload = ev.get("payload") or {}
            outcome = payload.get("outcome")
            result = payload.get("result")
    return RunSummary(
        run_id=run_dir.name,
        run_dir=str(run_dir),
        first_event_ts=first_ts,
        event_count=len(events),
        outcome=outcome,
        result=result,
    )


def list_runs(home: str | Path, limit: int = 20) -> List[RunSummary]:
    """Runs with a runlog, most recent first, at most ``limit``."""
    runs_dir = Path(home) / "runs"
    if not runs_dir.is_dir():
        return []
    summaries = [
        _summarise_run(run_dir)
        for run_dir in runs_dir.iterdir()
        if run_dir.is_dir() and (run_dir / RUNLOG_FILENAME).is_file()
    ]
    summaries.sort(
        key=lambda s: s.first_event_ts if s.first_event_ts is not None else 0.0,
        reverse=True,
    )
    return summaries[:limit]


def read_run_events(run_id: str, home: str | Path) -> List[dict]:
    """Return all runlog events for *run_id*.

    Raises:
        FileNotFoundError: When the run directory or runlog does not exist.
    """
    runlog = Path(home) / "runs" / run_id / RUNLOG_FILENAME
    if not runlog.is_file():
        raise FileNotFoundError(
            f"Run '{run_id}' not found in '{home}'. "
            "Use 'codemate logs list' to see available runs."
        )
    return _parse_runlog(runlog)
