"""Permission store adapters."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Union

from codemate.config.schema import CodemateConfig

from .store import InMemoryPermissionStore, JsonPermissionStore


def build_permission_store(
    config: CodemateConfig,
    fallback_path: Optional[Union[str, Path]] = None,
) -> Union[InMemoryPermissionStore, JsonPermissionStore]:
    """JSON-file store at ``permissions_path`` (or ``fallback_path``), else in-memory.

    Config ``permissions`` seed the overrides either way.
    """
    path = config.permissions_path or fallback_path
    if path:
        return JsonPermissionStore(path, defaults=config.permissions)
    return InMemoryPermissionStore(config.permissions)


__all__ = ["InMemoryPermissionStore", "JsonPermissionStore", "build_permission_store"]
