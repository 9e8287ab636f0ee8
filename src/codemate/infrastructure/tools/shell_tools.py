"""Shell tool: run allowlisted commands in the sandbox, or simulate them."""

from __future__ import annotations

import asyncio
import logging
import shlex
import subprocess
from typing import Optional

from codemate.application.permissions import ActionAuthorizer
from codemate.application.tool_registry import ToolOutcome
from codemate.config.schema import ShellConfig

from .sandbox import SandboxPolicy, run_cmd

logger = logging.getLogger(__name__)


class ShellTools:
    """``execute_command``. Without a sandbox policy every command is simulated."""

    def __init__(
        self,
        config: ShellConfig,
        authorizer: ActionAuthorizer,
        policy: Optional[SandboxPolicy] = None,
    ):
        self._config = config
        self._auth = authorizer
        self._policy = policy if config.enabled else None

    async def execute_command(self, args) -> ToolOutcome:
        command = args.command.strip()
        if not command:
            raise ValueError("Empty command")
        await self._auth.require(
            "bash",
            destructive=True,
            message="Run command?",
            details=f"Command: {command}",
        )
        if self._policy is None:
            return ToolOutcome.ok(
                f"[simulated] {command}\n"
                "Shell execution is disabled; set shell.enabled in the config to run commands."
            )
        timeout_s = int(args.timeout or self._config.timeout_s)
        argv = shlex.split(command)
        try:
            result = await asyncio.to_thread(run_cmd, self._policy, argv, None, timeout_s)
        except subprocess.TimeoutExpired:
            return ToolOutcome.fail(f"Command timed out after {timeout_s}s: {command}")
        text = (
            f"$ {result['cmd']}\nexit code: {result['returncode']}\n\n"
            f"stdout:\n{result['stdout']}\n\nstderr:\n{result['stderr']}"
        )
        if result["returncode"] != 0:
            return ToolOutcome.fail(text)
        return ToolOutcome.ok(text)
