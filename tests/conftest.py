"""Shared test configuration and workspace builders."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

import pytest

from src.config import WorkspaceConfig
from src.history.memory import InMemoryHistory
from src.services.factory import build_services


def pytest_collection_modifyitems(config, items):
    if shutil.which("git"):
        return
    skip_git = pytest.mark.skip(reason="git executable not available")
    for item in items:
        if "git" in item.keywords:
            item.add_marker(skip_git)


def make_sprint(
    sprints_dir: Path,
    folder_name: str,
    marker: str | None = None,
    stories: dict[str, str] | None = None,
) -> Path:
    """Create a sprint folder, optionally with a status marker and story files."""
    sprint_dir = sprints_dir / folder_name
    sprint_dir.mkdir(parents=True)
    if marker is not None:
        (sprint_dir / ".sprintctl").mkdir()
        (sprint_dir / ".sprintctl" / "status").write_text(marker + "\n")
    for name, content in (stories or {}).items():
        (sprint_dir / name).write_text(content)
    return sprint_dir


def story_text(story_id: str, status: str = "todo", points: int | None = None, title: str | None = None) -> str:
    lines = ["---", f"id: {story_id}", f"title: {title or 'Story ' + story_id}", f"status: {status}"]
    if points is not None:
        lines.append(f"points: {points}")
    lines += ["---", "", f"# {story_id}", ""]
    return "\n".join(lines)


@pytest.fixture(autouse=True)
def _isolate_sprintctl_logging():
    """Drop handlers tests attach, so none outlive pytest's per-test stderr capture."""
    logger = logging.getLogger("sprintctl")
    saved_handlers, saved_level = list(logger.handlers), logger.level
    yield
    for handler in list(logger.handlers):
        if handler not in saved_handlers:
            logger.removeHandler(handler)
            handler.close()
    logger.setLevel(saved_level)


@pytest.fixture
def sprints_dir(tmp_path: Path) -> Path:
    path = tmp_path / "tasks" / "sprints"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def history() -> InMemoryHistory:
    return InMemoryHistory()


@pytest.fixture
def services(tmp_path: Path, sprints_dir: Path, history: InMemoryHistory):
    return build_services(WorkspaceConfig(repo_path=tmp_path), vcs=history)
