"""Read-only git history through the git command line."""

from __future__ import annotations

import subprocess
from datetime import datetime
from pathlib import Path
from typing import Iterable

from src.logging_utils import get_logger
from src.workflow.exceptions import VersionControlError
from src.workflow.models import CommitRecord

logger = get_logger(__name__)


class GitHistory:
    """VersionControl over the git repository containing ``repo_path``.

    Paths given to and returned from this adapter are POSIX paths relative to
    ``repo_path``.
    """

    def __init__(self, repo_path: Path, include_merges: bool = False):
        self.repo_path = Path(repo_path)
        self.include_merges = include_merges

    def _run(self, *args: str, text: bool = True, check: bool = True):
        try:
            return subprocess.run(
                ["git", "-C", str(self.repo_path), *args],
                capture_output=True,
                text=text,
                check=check,
            )
        except FileNotFoundError as exc:
            raise VersionControlError("git executable not found") from exc
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr if isinstance(exc.stderr, str) else exc.stderr.decode("utf-8", "replace")
            raise VersionControlError(
                f"git {args[0]} failed: {stderr.strip() or exc}"
            ) from exc

    def has_commits(self) -> bool:
        result = self._run("rev-parse", "--verify", "--quiet", "HEAD", check=False)
        return result.returncode == 0

    def commits_touching(self, paths: Iterable[str]) -> list[CommitRecord]:
        paths = list(paths)
        if not paths or not self.has_commits():
            return []

        args = ["log", "--reverse", "--format=%H%x09%aI"]
        if not self.include_merges:
            args.append("--no-merges")
        output = self._run(*args, "--", *paths).stdout

        commits = []
        for line in output.splitlines():
            if not line.strip():
                continue
            sha, _, stamp = line.partition("\t")
            commits.append(CommitRecord(sha=sha, timestamp=datetime.fromisoformat(stamp)))
        logger.debug("%d commits touch %s", len(commits), ", ".join(paths))
        return commits

    def list_files(self, commit: str, paths: Iterable[str]) -> list[str]:
        paths = list(paths)
        if not paths:
            return []
        output = self._run("ls-tree", "-r", "--name-only", "-z", commit, "--", *paths).stdout
        return sorted(name for name in output.split("\0") if name)

    def read_file(self, commit: str, path: str) -> bytes | None:
        result = self._run("cat-file", "blob", f"{commit}:./{path}", text=False, check=False)
        if result.returncode != 0:
            return None
        return result.stdout
