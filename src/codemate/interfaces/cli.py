"""CLI: Typer app wired to the execution engine."""

from __future__ import annotations

import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table

from codemate.application.bridge import CallbackBridge
from codemate.application.engine import ExecutionEngine, ExecutionOutcome
from codemate.application.permissions import DEFAULT_PERMISSION_RULES, PermissionGate
from codemate.config import CodemateConfig, load_config
from codemate.domain import ExecutionStep, PermissionMode, StepType
from codemate.infrastructure.chat import build_chat_client
from codemate.infrastructure.permissions import build_permission_store
from codemate.infrastructure.telemetry import setup_telemetry
from codemate.infrastructure.tools import tool_defs
from codemate.infrastructure.tools.builtin import build_builtin_registry
from codemate.infrastructure.tools.sandbox import SandboxPolicy
from codemate.infrastructure.workspace import (
    InMemoryWorkspace,
    JsonlStepRecorder,
    LocalWorkspace,
    append_event,
    list_runs,
    new_run_dir,
    read_run_events,
)

app = typer.Typer(help="codemate: an autonomous coding assistant (Ollama by default).")

_STEP_STYLES = {
    StepType.THINK: "dim",
    StepType.TOOL_CALL: "cyan",
    StepType.TOOL_RESULT: "green",
    StepType.MESSAGE: "white",
}


def _home() -> Path:
    return Path(os.environ.get("CODEMATE_HOME", ".codemate"))


def _permission_store(config: CodemateConfig):
    return build_permission_store(config, fallback_path=_home() / "permissions.json")


def _print_step(step: ExecutionStep) -> None:
    style = _STEP_STYLES.get(step.type, "white")
    content = step.content
    if step.type is StepType.TOOL_RESULT and step.tool_result and not step.tool_result.success:
        style = "red"
    rprint(f"[{style}]{step.type.value:>11}[/{style}] {escape(content)}")


async def _rich_confirm(message: str, details: str) -> bool:
    if details:
        rprint(Panel.fit(details, title=message))
    return await asyncio.to_thread(Confirm.ask, message, default=False)


async def _rich_ask(question: str, options: Optional[List[str]]) -> str:
    if options:
        return await asyncio.to_thread(Prompt.ask, question, choices=list(options))
    return await asyncio.to_thread(Prompt.ask, question, default="")


@app.command()
def run(
    prompt: str = typer.Argument(..., help="What you want codemate to do."),
    workspace: Optional[Path] = typer.Option(
        None, "--workspace", "-w", help="Directory to work in (default: config workspace.root)."
    ),
    memory: bool = typer.Option(False, "--memory", help="Use a throwaway in-memory workspace."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Approve destructive actions without asking."),
    max_iterations: Optional[int] = typer.Option(None, "--max-iterations", "-n", min=1),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", help="Run directory for runlog.jsonl (default: a new dir under $CODEMATE_HOME/runs)."
    ),
    stream: bool = typer.Option(False, "--stream", help="Print every step as it happens."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose (DEBUG) logging to stderr."),
) -> None:
    """Run one task end-to-end and print the result."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    config = load_config()
    setup_telemetry(config)

    overrides = {}
    if yes:
        overrides["auto_confirm_destructive"] = True
    if max_iterations is not None:
        overrides["max_iterations"] = max_iterations
    executor_config = config.executor.model_copy(update=overrides)

    root = None if memory else (workspace or config.workspace.root)
    ws = LocalWorkspace(root) if root else InMemoryWorkspace()
    sandbox = None
    if config.shell.enabled and isinstance(ws, LocalWorkspace):
        sandbox = SandboxPolicy(root=ws.root, allowed_commands=tuple(config.shell.allowed_commands))

    bridge = CallbackBridge(confirm=_rich_confirm, ask_user=_rich_ask)
    gate = PermissionGate(_permission_store(config))
    registry = build_builtin_registry(
        ws,
        gate,
        bridge,
        executor_config=executor_config,
        web_config=config.web,
        shell_config=config.shell,
        sandbox=sandbox,
        default_workspace_name=config.workspace.default_name,
    )
    run_dir = log_dir or new_run_dir(_home())
    observers = [JsonlStepRecorder(run_dir)]
    if stream:
        observers.append(_print_step)
    engine = ExecutionEngine(
        build_chat_client(config.model),
        registry,
        ws,
        config=executor_config,
        bridge=bridge,
        step_observers=observers,
    )

    rprint(f"[dim]Using model: {config.model.model} at {config.model.base_url}[/dim]")
    result = asyncio.run(engine.execute(prompt))
    outcome = engine.outcome.value if engine.outcome else "unknown"
    append_event(run_dir, "run_complete", {"outcome": outcome, "result": result})

    changed = escape(", ".join(engine.files_changed) or "none")
    rprint(
        Panel.fit(
            f"[bold]Outcome:[/bold] {outcome}\n"
            f"[bold]Iterations:[/bold] {engine.iteration}\n"
            f"[bold]Files changed:[/bold] {changed}\n"
            f"[bold]Run dir:[/bold] {run_dir}"
        )
    )
    rprint(escape(result))
    if engine.outcome is ExecutionOutcome.FAILED:
        raise typer.Exit(code=1)


@app.command()
def tools() -> None:
    """List the built-in tools and the permission guarding each."""
    config = load_config()
    gate = PermissionGate(_permission_store(config))
    table = Table(title="Tools", show_header=True, header_style="bold")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Permission")
    table.add_column("Mode")
    table.add_column("Description", overflow="fold")
    for definition in tool_defs.BUILTIN_TOOL_DEFS:
        permission = definition.permission or "-"
        mode = gate.decide(definition.permission).value if definition.permission else "-"
        table.add_row(definition.name, permission, mode, definition.description)
    Console().print(table)


# ---------------------------------------------------------------------------
# codemate permissions subcommands
# ---------------------------------------------------------------------------

permissions_app = typer.Typer(help="Inspect and change tool permissions.")
app.add_typer(permissions_app, name="permissions")


@permissions_app.command("list")
def permissions_list() -> None:
    """Show the effective mode of every permission rule."""
    config = load_config()
    gate = PermissionGate(_permission_store(config))
    table = Table(title="Permissions", show_header=True, header_style="bold")
    table.add_column("Id", style="cyan", no_wrap=True)
    table.add_column("Mode")
    table.add_column("Default", style="dim")
    table.add_column("Description", overflow="fold")
    effective = gate.all_permissions()
    for rule in gate.rules:
        table.add_row(
            rule.id,
            effective[rule.id].value,
            rule.default_permission.value,
            rule.description,
        )
    Console().print(table)


@permissions_app.command("set")
def permissions_set(
    tool_id: str = typer.Argument(..., help="Permission id (read, write, edit, delete, bash, webfetch, websearch)."),
    mode: PermissionMode = typer.Argument(..., help="allow | deny | ask"),
) -> None:
    """Persist a permission override."""
    known = {rule.id for rule in DEFAULT_PERMISSION_RULES}
    if tool_id not in known:
        rprint(f"[red]Unknown permission id {tool_id!r}.[/red] Known: {', '.join(sorted(known))}")
        raise typer.Exit(code=1)
    _permission_store(load_config()).set(tool_id, mode)
    rprint(f"[green]{tool_id}[/green] -> {mode.value}")


@permissions_app.command("reset")
def permissions_reset() -> None:
    """Drop all persisted overrides."""
    _permission_store(load_config()).reset()
    rprint("[green]Permissions reset to defaults.[/green]")


# ---------------------------------------------------------------------------
# codemate logs subcommands
# ---------------------------------------------------------------------------

logs_app = typer.Typer(help="Inspect past runs.")
app.add_typer(logs_app, name="logs")


@logs_app.command("list")
def logs_list(
    limit: int = typer.Option(20, "--limit", "-n", help="Maximum number of runs to show."),
) -> None:
    """List recent runs (most recent first)."""
    import datetime

    home = _home()
    summaries = list_runs(home, limit=limit)
    if not summaries:
        rprint(f"[dim]No runs found in {home}/runs/[/dim]")
        return
    table = Table(title=f"Recent runs ({home})", show_header=True, header_style="bold")
    table.add_column("Run ID", style="cyan", no_wrap=True)
    table.add_column("Started", style="dim")
    table.add_column("Outcome", style="green")
    table.add_column("Events", justify="right")
    table.add_column("Result", overflow="fold")
    for s in summaries:
        started = (
            datetime.datetime.fromtimestamp(s.first_event_ts).strftime("%Y-%m-%d %H:%M:%S")
            if s.first_event_ts is not None
            else "-"
        )
        table.add_row(
            s.run_id, started, s.outcome or "-", str(s.event_count), escape((s.result or "")[:80])
        )
    Console().print(table)


@logs_app.command("show")
def logs_show(
    run_id: str = typer.Argument(..., help="Run ID to inspect."),
    kinds: str = typer.Option(
        "", "--kinds", "-k",
        help="Comma-separated event kinds to show (e.g. 'tool_call,tool_result'). Shows all if empty.",
    ),
) -> None:
    """Show the runlog for a specific run."""
    from rich.syntax import Syntax

    try:
        events = read_run_events(run_id, _home())
    except FileNotFoundError as e:
        rprint(f"[red]{e}[/red]")
        raise typer.Exit(code=1)

    filter_kinds = {k.strip() for k in kinds.split(",") if k.strip()} if kinds else None
    shown = [e for e in events if filter_kinds is None or e.get("kind") in filter_kinds]
    console = Console()
    rprint(f"[bold]Run:[/bold] {run_id}  [dim]({len(shown)}/{len(events)} events)[/dim]")
    for ev in shown:
        console.print(Syntax(json.dumps(ev, indent=2, ensure_ascii=False), "json", theme="monokai"))
