"""Permission stores: in-process dict, or a JSON file of ``{tool_id: mode}``."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Dict, Mapping, Optional

from codemate.domain import PermissionMode

logger = logging.getLogger(__name__)


class InMemoryPermissionStore:
    def __init__(self, overrides: Optional[Mapping[str, PermissionMode]] = None):
        self._modes: Dict[str, PermissionMode] = dict(overrides or {})

    def get(self, tool_id: str) -> Optional[PermissionMode]:
        return self._modes.get(tool_id)

    def set(self, tool_id: str, mode: PermissionMode) -> None:
        self._modes[tool_id] = PermissionMode(mode)

    def reset(self) -> None:
        self._modes.clear()

    def all(self) -> Dict[str, PermissionMode]:
        return dict(self._modes)


class JsonPermissionStore:
    """Persists overrides to a JSON object file.

    A missing file reads as empty.  A corrupt file, or an entry with an
    unknown mode, is logged and ignored rather than failing the run.
    ``defaults`` (from config) apply beneath whatever the file holds.
    """

    def __init__(
        self,
        path: str | Path,
        defaults: Optional[Mapping[str, PermissionMode]] = None,
    ):
        self.path = Path(path).expanduser()
        self._defaults: Dict[str, PermissionMode] = dict(defaults or {})

    def _load(self) -> Dict[str, PermissionMode]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable permission file %s: %s", self.path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring permission file %s: expected a JSON object", self.path)
            return {}
        modes: Dict[str, PermissionMode] = {}
        for tool_id, value in data.items():
            try:
                modes[str(tool_id)] = PermissionMode(value)
            except ValueError:
                logger.warning("Ignoring unknown permission mode %r for %r", value, tool_id)
        return modes

    def _save(self, modes: Mapping[str, PermissionMode]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {k: v.value for k, v in sorted(modes.items())}
        self.path.write_text(json.dumps(payload, indent=2) + "\n", encoding="utf-8")

    def get(self, tool_id: str) -> Optional[PermissionMode]:
        return self.all().get(tool_id)

    def set(self, tool_id: str, mode: PermissionMode) -> None:
        modes = self._load()
        modes[tool_id] = PermissionMode(mode)
        self._save(modes)
        logger.info("Permission %r set to %s", tool_id, modes[tool_id].value)

    def reset(self) -> None:
        if self.path.is_file():
            self.path.unlink()
        logger.info("Permission overrides in %s reset", self.path)

    def all(self) -> Dict[str, PermissionMode]:
        return {**self._defaults, **self._load()}
