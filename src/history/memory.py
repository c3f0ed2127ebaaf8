"""In-memory commit history for tests and demos."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from ..workflow.models import CommitRecord


def _under(path: str, roots: list[str]) -> bool:
    return any(path == r or path.startswith(r.rstrip("/") + "/") for r in roots)


class InMemoryHistory:
    """VersionControl backed by a list of full-tree snapshots. For tests and demos."""

    def __init__(self):
        self._commits: list[CommitRecord] = []
        self._trees: dict[str, dict[str, bytes]] = {}
        self._changed: dict[str, set[str]] = {}
        self._next_id = 1

    def commit(self, timestamp: datetime, files: dict[str, bytes | str | None]) -> str:
        """Record a commit applying ``files`` on top of the previous tree.

        A value of None deletes the path. Returns the new commit id.
        """
        tree = dict(self._trees[self._commits[-1].sha]) if self._commits else {}
        for path, content in files.items():
            if content is None:
                tree.pop(path, None)
            else:
                tree[path] = content.encode("utf-8") if isinstance(content, str) else content

        sha = f"c{self._next_id:04d}"
        self._next_id += 1
        self._commits.append(CommitRecord(sha=sha, timestamp=timestamp))
        self._trees[sha] = tree
        self._changed[sha] = set(files)
        return sha

    def commits_touching(self, paths: Iterable[str]) -> list[CommitRecord]:
        roots = list(paths)
        return [
            c for c in self._commits
            if any(_under(p, roots) for p in self._changed[c.sha])
        ]

    def list_files(self, commit: str, paths: Iterable[str]) -> list[str]:
        roots = list(paths)
        return sorted(p for p in self._trees[commit] if _under(p, roots))

    def read_file(self, commit: str, path: str) -> bytes | None:
        return self._trees[commit].get(path)
