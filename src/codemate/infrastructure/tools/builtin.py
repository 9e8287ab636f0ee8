"""Assemble the built-in ``ToolRegistry`` from the tool definitions and handlers."""

from __future__ import annotations

import logging
from typing import Optional

from codemate.application.permissions import ActionAuthorizer, PermissionGate
from codemate.application.ports import InteractionBridge, Workspace
from codemate.application.tool_registry import ToolRegistry
from codemate.config.schema import ExecutorConfig, ShellConfig, WebConfig

from . import tool_defs
from .sandbox import SandboxPolicy
from .shell_tools import ShellTools
from .web_tools import WebTools
from .workspace_tools import WorkspaceTools

logger = logging.getLogger(__name__)


def build_builtin_registry(
    workspace: Workspace,
    gate: PermissionGate,
    bridge: InteractionBridge,
    *,
    executor_config: Optional[ExecutorConfig] = None,
    web_config: Optional[WebConfig] = None,
    shell_config: Optional[ShellConfig] = None,
    sandbox: Optional[SandboxPolicy] = None,
    default_workspace_name: str = "new-project",
    web_tools: Optional[WebTools] = None,
) -> ToolRegistry:
    """Build the registry holding the full canonical tool set.

    ``bridge`` must be the same bridge the engine uses so confirmations from
    handlers and ``ask_user`` questions reach the same host.  ``ask_user``
    and ``complete`` are registered without handlers; the engine intercepts
    them.
    """
    executor_config = executor_config or ExecutorConfig()
    authorizer = ActionAuthorizer(
        gate, bridge, auto_confirm=executor_config.auto_confirm_destructive
    )
    registry = ToolRegistry(tool_timeout_s=executor_config.tool_timeout_s)

    files = WorkspaceTools(
        workspace,
        authorizer,
        registry.record_change,
        default_workspace_name=default_workspace_name,
    )
    web = web_tools or WebTools(web_config or WebConfig(), authorizer)
    shell = ShellTools(shell_config or ShellConfig(), authorizer, sandbox)

    registry.register(tool_defs.READ_FILE, files.read_file)
    registry.register(tool_defs.WRITE_FILE, files.write_file)
    registry.register(tool_defs.EDIT_FILE, files.edit_file)
    registry.register(tool_defs.DELETE_FILE, files.delete_file)
    registry.register(tool_defs.LIST_FILES, files.list_files)
    registry.register(tool_defs.LIST_DIRECTORY, files.list_directory)
    registry.register(tool_defs.SEARCH_CODE, files.search_code)
    registry.register(tool_defs.CREATE_DIRECTORY, files.create_directory)
    registry.register(tool_defs.EXECUTE_COMMAND, shell.execute_command)
    registry.register(tool_defs.WEB_FETCH, web.web_fetch)
    registry.register(tool_defs.WEB_SEARCH, web.web_search)
    registry.register(tool_defs.ASK_USER)
    registry.register(tool_defs.COMPLETE)
    logger.debug("Built registry with %d tools", len(registry.definitions))
    return registry
