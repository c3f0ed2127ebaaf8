"""Workspace layout detection.

Two layouts are recognised:

- consolidated: ``tasks/sprints`` and ``tasks/backlog``
- legacy: ``sprints`` and ``backlog`` at the repository root

A repository with neither gets the consolidated layout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from src.workflow.exceptions import WorkspaceLayoutError


class Layout(Enum):
    CONSOLIDATED = "consolidated"
    LEGACY = "legacy"


@dataclass(frozen=True)
class WorkspacePaths:
    repo_path: Path
    sprints_dir: Path
    backlog_dir: Path
    layout: Layout

    def sprint_path(self, folder_name: str) -> Path:
        return self.sprints_dir / folder_name


def detect_layout(repo_path: Path) -> Layout:
    repo_path = Path(repo_path)
    if not repo_path.is_dir():
        raise WorkspaceLayoutError(f"Repository path is not a directory: {repo_path}")

    consolidated = (repo_path / "tasks" / "sprints").is_dir() or (
        repo_path / "tasks" / "backlog"
    ).is_dir()
    legacy = (repo_path / "sprints").is_dir() or (repo_path / "backlog").is_dir()

    if consolidated and legacy:
        raise WorkspaceLayoutError(
            f"Both legacy (sprints/, backlog/) and consolidated (tasks/) "
            f"layouts found in {repo_path}; migrate to one"
        )
    if legacy:
        return Layout.LEGACY
    return Layout.CONSOLIDATED


def resolve_paths(repo_path: Path) -> WorkspacePaths:
    repo_path = Path(repo_path).resolve()
    layout = detect_layout(repo_path)
    base = repo_path / "tasks" if layout is Layout.CONSOLIDATED else repo_path
    return WorkspacePaths(
        repo_path=repo_path,
        sprints_dir=base / "sprints",
        backlog_dir=base / "backlog",
        layout=layout,
    )
