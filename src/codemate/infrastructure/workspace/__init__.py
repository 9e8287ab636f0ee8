"""Workspace adapters, the JSONL run log and its reader."""

from .local import LocalWorkspace
from .memory import InMemoryWorkspace
from .run_log import JsonlStepRecorder, append_event, new_run_dir
from .run_reader import RunSummary, list_runs, read_run_events

__all__ = [
    "InMemoryWorkspace",
    "JsonlStepRecorder",
    "LocalWorkspace",
    "RunSummary",
    "append_event",
    "list_runs",
    "new_run_dir",
    "read_run_events",
]
