"""On-disk workspace rooted at one directory, with sandboxed path resolution."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import FrozenSet, Iterator, List, Optional

from codemate.domain import FileEntry, SearchMatch, WorkspaceError
from codemate.infrastructure.tools.sandbox import SandboxPolicy, safe_path

logger = logging.getLogger(__name__)

IGNORED_DIRS: FrozenSet[str] = frozenset(
    {".git", "node_modules", "__pycache__", ".venv", "venv", ".mypy_cache", ".pytest_cache"}
)


class LocalWorkspace:
    """Files under ``root``; every path goes through ``safe_path``.

    Escaping the root raises ``PermissionError``.  Files that are not valid
    UTF-8 are read with replacement characters.
    """

    def __init__(self, root: str | Path, *, ignored_dirs: FrozenSet[str] = IGNORED_DIRS):
        self.policy = SandboxPolicy(root=Path(root).expanduser().resolve())
        self._ignored = ignored_dirs

    @property
    def root(self) -> Path:
        return self.policy.root

    @property
    def name(self) -> Optional[str]:
        return self.root.name if self.has_workspace() else None

    def has_workspace(self) -> bool:
        return self.root.is_dir()

    def create_workspace(self, name: str) -> None:
        if self.has_workspace():
            raise WorkspaceError(f"Workspace {self.root} already exists")
        logger.info("Creating workspace %r at %s", name, self.root)
        self.root.mkdir(parents=True)

    def read_file(self, path: str) -> Optional[str]:
        p = safe_path(self.policy, path)
        if not p.is_file():
            return None
        return p.read_text(encoding="utf-8", errors="replace")

    def write_file(self, path: str, content: str) -> bool:
        if not self.has_workspace():
            return False
        p = safe_path(self.policy, path)
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(content, encoding="utf-8")
        return True

    def delete_file(self, path: str) -> bool:
        p = safe_path(self.policy, path)
        if not p.is_file():
            return False
        p.unlink()
        return True

    def file_exists(self, path: str) -> bool:
        return safe_path(self.policy, path).is_file()

    def list_files(self) -> List[FileEntry]:
        return [
            FileEntry(self._relative(p), p.read_text(encoding="utf-8", errors="replace"))
            for p in self._walk()
            if p.is_file()
        ]

    def list_directories(self) -> List[str]:
        return [self._relative(p) for p in self._walk() if p.is_dir()]

    def search_in_files(self, query: str) -> List[SearchMatch]:
        needle = query.lower()
        matches: List[SearchMatch] = []
        for entry in self.list_files():
            for n, line in enumerate(entry.content.split("\n"), 1):
                if needle in line.lower():
                    matches.append(SearchMatch(entry.path, n, line.strip()))
        return matches

    def create_directory(self, path: str) -> bool:
        if not self.has_workspace():
            return False
        p = safe_path(self.policy, path)
        if p.exists():
            return False
        p.mkdir(parents=True)
        return True

    def _relative(self, p: Path) -> str:
        return p.relative_to(self.root).as_posix()

    def _walk(self) -> Iterator[Path]:
        if not self.has_workspace():
            return
        found: List[Path] = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [d for d in dirnames if d not in self._ignored]
            base = Path(dirpath)
            found.extend(base / d for d in dirnames)
            found.extend(base / f for f in filenames)
        yield from sorted(p for p in found if not p.is_symlink())
