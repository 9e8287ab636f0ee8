"""In-memory workspace: a virtual file tree held in a dict."""

from __future__ import annotations

import logging
import posixpath
from typing import Dict, List, Optional, Set

from codemate.domain import FileEntry, SearchMatch, WorkspaceError

logger = logging.getLogger(__name__)


def normalise_path(path: str) -> str:
    """Workspace-relative ``/``-separated path; refuses escapes above the root."""
    cleaned = path.strip().replace("\\", "/").lstrip("/")
    if not cleaned:
        raise ValueError("Path must not be empty")
    norm = posixpath.normpath(cleaned)
    if norm == ".." or norm.startswith("../"):
        raise PermissionError(f"Path {path!r} escapes the workspace")
    return norm


def _parents(path: str) -> List[str]:
    parts = path.split("/")[:-1]
    return ["/".join(parts[: i + 1]) for i in range(len(parts))]


class InMemoryWorkspace:
    """Read-after-write consistent workspace with no disk access.

    Directories exist explicitly (``create_directory``) or implicitly as the
    parents of a file.
    """

    def __init__(self, name: Optional[str] = None, files: Optional[Dict[str, str]] = None):
        self._name = name
        self._files: Dict[str, str] = {}
        self._dirs: Set[str] = set()
        if files:
            if name is None:
                raise WorkspaceError("Seeding files requires a workspace name")
            for path, content in files.items():
                self._files[normalise_path(path)] = content

    @property
    def name(self) -> Optional[str]:
        return self._name

    def has_workspace(self) -> bool:
        return self._name is not None

    def create_workspace(self, name: str) -> None:
        if self._name is not None:
            raise WorkspaceError(f"Workspace {self._name!r} is already open")
        logger.info("Creating in-memory workspace %r", name)
        self._name = name

    def read_file(self, path: str) -> Optional[str]:
        return self._files.get(normalise_path(path))

    def write_file(self, path: str, content: str) -> bool:
        if not self.has_workspace():
            return False
        key = normalise_path(path)
        if key in self._all_directories():
            raise IsADirectoryError(f"{path!r} is a directory")
        self._files[key] = content
        return True

    def delete_file(self, path: str) -> bool:
        return self._files.pop(normalise_path(path), None) is not None

    def file_exists(self, path: str) -> bool:
        return normalise_path(path) in self._files

    def list_files(self) -> List[FileEntry]:
        return [FileEntry(path, self._files[path]) for path in sorted(self._files)]

    def list_directories(self) -> List[str]:
        return sorted(self._all_directories())

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
        key = normalise_path(path)
        if key in self._all_directories() or key in self._files:
            return False
        self._dirs.add(key)
        return True

    def _all_directories(self) -> Set[str]:
        dirs = set(self._dirs)
        for path in list(self._dirs) + list(self._files):
            dirs.update(_parents(path))
        return dirs
