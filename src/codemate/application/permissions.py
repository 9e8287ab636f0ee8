"""Permission gate: allow / deny / ask per permission rule id."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional

from codemate.application.ports import InteractionBridge, PermissionStore
from codemate.domain import PermissionDeniedError, PermissionMode, PermissionRule

logger = logging.getLogger(__name__)

DEFAULT_PERMISSION_RULES: List[PermissionRule] = [
    PermissionRule("read", "Read files", "Read file contents in the workspace",
                   "file", dangerous=False, default_permission=PermissionMode.ALLOW),
    PermissionRule("write", "Write files", "Create or overwrite files",
                   "file", dangerous=True, default_permission=PermissionMode.ASK),
    PermissionRule("edit", "Edit files", "Modify files by exact-match replacement",
                   "file", dangerous=True, default_permission=PermissionMode.ASK),
    PermissionRule("delete", "Delete files", "Delete files from the workspace",
                   "file", dangerous=True, default_permission=PermissionMode.ASK),
    PermissionRule("bash", "Run commands", "Execute shell commands",
                   "shell", dangerous=True, default_permission=PermissionMode.ASK),
    PermissionRule("webfetch", "Fetch web pages", "Download page content",
                   "web", dangerous=False, default_permission=PermissionMode.ALLOW),
    PermissionRule("websearch", "Web search", "Search the web",
                   "web", dangerous=False, default_permission=PermissionMode.ALLOW),
]


class PermissionGate:
    """Decides whether a tool action is allowed, denied, or needs confirmation.

    The decision reads the store first and falls back to the rule's built-in
    default.  An id with no rule falls back to ``ask``, never ``allow``.
    """

    def __init__(
        self,
        store: PermissionStore,
        rules: Optional[Iterable[PermissionRule]] = None,
    ):
        self._store = store
        self._rules: Dict[str, PermissionRule] = {
            r.id: r for r in (rules if rules is not None else DEFAULT_PERMISSION_RULES)
        }

    @property
    def rules(self) -> List[PermissionRule]:
        return list(self._rules.values())

    def decide(self, tool_id: str) -> PermissionMode:
        stored = self._store.get(tool_id)
        if stored is not None:
            return stored
        rule = self._rules.get(tool_id)
        return rule.default_permission if rule else PermissionMode.ASK

    def can_execute(self, tool_id: str) -> bool:
        return self.decide(tool_id) is not PermissionMode.DENY

    def needs_confirmation(self, tool_id: str) -> bool:
        return self.decide(tool_id) is PermissionMode.ASK

    def all_permissions(self) -> Dict[str, PermissionMode]:
        """Effective mode for every known rule."""
        return {rule_id: self.decide(rule_id) for rule_id in self._rules}


class ActionAuthorizer:
    """Applies the gate (and, on ``ask``, the bridge) before a side effect.

    ``require`` raises ``PermissionDeniedError`` when the action must not
    happen; tool handlers call it immediately before mutating anything.
    A ``deny`` never reaches the bridge.
    """

    def __init__(
        self,
        gate: PermissionGate,
        bridge: InteractionBridge,
        *,
        auto_confirm: bool = False,
    ):
        self._gate = gate
        self._bridge = bridge
        self._auto_confirm = auto_confirm

    @property
    def gate(self) -> PermissionGate:
        return self._gate

    def check(self, tool_id: str) -> PermissionMode:
        """Raise on ``deny``; otherwise return the effective mode."""
        mode = self._gate.decide(tool_id)
        if mode is PermissionMode.DENY:
            logger.info("Permission %r denied by configuration", tool_id)
            raise PermissionDeniedError(f"permission denied: {tool_id!r} is disabled")
        return mode

    async def require(
        self,
        tool_id: str,
        *,
        destructive: bool,
        message: str,
        details: str = "",
    ) -> None:
        mode = self.check(tool_id)
        if mode is PermissionMode.ALLOW or not destructive or self._auto_confirm:
            return
        if not await self._bridge.confirm(message, details):
            logger.info("Permission %r rejected by user: %s", tool_id, message)
            raise PermissionDeniedError("permission denied: the user did not confirm the action")
