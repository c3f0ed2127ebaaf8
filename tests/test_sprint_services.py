"""Tests for planning, starting and closing sprints."""

from __future__ import annotations

from datetime import date, datetime, timezone
from pathlib import Path

import pytest

from conftest import make_sprint, story_text
from src.config import WorkspaceConfig
from src.services.close import CloseRequest, SprintCloseService
from src.services.factory import build_services
from src.services.start import SprintStartService, StartSprintRequest
from src.sprints import status_store
from src.stories.parser import split_frontmatter
from src.workflow.exceptions import (
    InvalidInputError,
    InvalidTransitionError,
    SelectionCancelled,
    SprintError,
    SprintExistsError,
)
from src.workflow.models import SprintStatus


@pytest.fixture
def start(services) -> SprintStartService:
    return SprintStartService(
        services.repository,
        services.status,
        default_duration="2w",
        today=lambda: date(2025, 1, 6),
    )


@pytest.fixture
def close(services) -> SprintCloseService:
    return SprintCloseService(
        services.repository,
        services.status,
        now=lambda: datetime(2025, 1, 20, 17, tzinfo=timezone.utc),
    )


class FakeSelector:
    def __init__(self, picks=None, cancel: bool = False):
        self.picks = picks
        self.cancel = cancel
        self.offered: list[str] = []

    def select_tasks(self, candidates):
        self.offered = [s.id for s in candidates]
        if self.cancel:
            raise SelectionCancelled("cancelled")
        return list(self.picks if self.picks is not None else self.offered)


class TestPlan:
    def test_creates_planning_sprint(self, services):
        sprint = services.plan.create_planning_sprint("Payments")
        assert sprint.folder_name == "@Sprint_01_Payments"
        assert status_store.read_status(sprint.path) is SprintStatus.PLANNING
        assert sprint.start_date is None

    def test_next_identifier_spans_all_statuses(self, services):
        make_sprint(services.repository.sprints_dir, "~Sprint_04", marker="archived")
        sprint = services.plan.create_planning_sprint("Search tuning")
        assert sprint.folder_name == "@Sprint_05_Search-tuning"

    def test_custom_stem_keeps_counting(self, tmp_path, sprints_dir, history):
        services = build_services(WorkspaceConfig(repo_path=tmp_path, sprint_stem="Iteration-"), vcs=history)

        first = services.plan.create_planning_sprint("Auth")
        second = services.plan.create_planning_sprint("Search")

        assert first.folder_name == "@Iteration-01_Auth"
        assert second.folder_name == "@Iteration-02_Search"

    def test_explicit_identifier_in_use(self, services):
        make_sprint(services.repository.sprints_dir, "!Sprint_09_Auth", marker="active")
        with pytest.raises(SprintExistsError):
            services.plan.create_planning_sprint("Other", identifier="Sprint_09")

    @pytest.mark.parametrize("description", ["", "   ", "Fix!", "24"])
    def test_invalid_description(self, services, description):
        with pytest.raises(InvalidInputError):
            services.plan.create_planning_sprint(description)
        assert services.repository.list() == []


class TestStart:
    def test_start_active_archives_previous(self, services, start):
        old = make_sprint(services.repository.sprints_dir, "!Sprint_01", marker="active")
        services.repository.set_current(services.repository.load(old))

        sprint = start.start_sprint(StartSprintRequest(description="Auth"))

        assert sprint.folder_name == "!Sprint_02_Auth"
        assert sprint.start_date == date(2025, 1, 6)
        assert sprint.end_date == date(2025, 1, 20)
        assert services.repository.list() == ["!Sprint_02_Auth", "~Sprint_01"]
        assert services.repository.current_pointer() == sprint.path

    def test_start_ready(self, services, start):
        sprint = start.start_sprint(
            StartSprintRequest(
                identifier="Sprint_10",
                start_date=date(2025, 2, 3),
                duration="1w",
                status=SprintStatus.READY,
            )
        )
        assert sprint.folder_name == "+Sprint_10"
        assert sprint.end_date == date(2025, 2, 10)
        assert status_store.read_status(sprint.path) is SprintStatus.READY
        assert services.repository.current_pointer() is None

    def test_cannot_start_planning(self, services, start):
        with pytest.raises(InvalidInputError):
            start.start_sprint(StartSprintRequest(status=SprintStatus.PLANNING))
        assert services.repository.list() == []

    def test_bad_duration_creates_nothing(self, services, start):
        with pytest.raises(InvalidInputError):
            start.start_sprint(StartSprintRequest(duration="3m"))
        assert services.repository.list() == []

    def test_refused_activation_leaves_ready_sprint(self, services, start):
        sprints_dir = services.repository.sprints_dir
        make_sprint(sprints_dir, "!Sprint_01", marker="active")
        make_sprint(sprints_dir, "!Sprint_02", marker="active")

        with pytest.raises(SprintError, match="Multiple active"):
            start.start_sprint(StartSprintRequest(identifier="Sprint_03"))

        assert status_store.read_status(sprints_dir / "+Sprint_03") is SprintStatus.READY


class TestClose:
    def _workspace(self, services) -> Path:
        sprints_dir = services.repository.sprints_dir
        active = make_sprint(
            sprints_dir,
            "!Sprint_01",
            marker="active",
            stories={
                "US-1.md": story_text("US-1", status="done"),
                "US-2.md": story_text("US-2", status="doing", points=3),
                "US-3.md": story_text("US-3"),
            },
        )
        make_sprint(sprints_dir, "+Sprint_02", marker="ready")
        services.repository.set_current(services.repository.load(active))
        return sprints_dir

    def test_close_without_rollover(self, services, close):
        sprints_dir = self._workspace(services)
        result = close.close(CloseRequest())
        assert result.archived.folder_name == "~Sprint_01"
        assert result.rolled_over == []
        assert (sprints_dir / "~Sprint_01" / "US-2.md").exists()
        assert services.repository.current_pointer() is None

    def test_rollover_all_unfinished(self, services, close):
        sprints_dir = self._workspace(services)

        result = close.close(CloseRequest(rollover_to="Sprint_02"))

        assert result.rolled_over == ["US-2", "US-3"]
        assert sorted(p.name for p in (sprints_dir / "+Sprint_02").glob("*.md")) == ["US-2.md", "US-3.md"]
        assert sorted(p.name for p in (sprints_dir / "~Sprint_01").glob("*.md")) == ["US-1.md"]
        meta, _ = split_frontmatter((sprints_dir / "+Sprint_02" / "US-2.md").read_text())
        assert meta["status"] == "todo"
        assert meta["sprint"] == "Sprint_02"
        assert meta["points"] == 3
        assert meta["updated_at"] == "2025-01-20T17:00:00Z"

    def test_explicit_selection(self, services, close):
        sprints_dir = self._workspace(services)
        result = close.close(CloseRequest(rollover_to="Sprint_02", selected_ids=["US-3"]))
        assert result.rolled_over == ["US-3"]
        assert (sprints_dir / "~Sprint_01" / "US-2.md").exists()

    def test_selector_sees_only_unfinished(self, services, close):
        self._workspace(services)
        selector = FakeSelector(picks=["US-2"])
        result = close.close(CloseRequest(rollover_to="Sprint_02", selector=selector))
        assert selector.offered == ["US-2", "US-3"]
        assert result.rolled_over == ["US-2"]

    def test_cancelled_selection_changes_nothing(self, services, close):
        sprints_dir = self._workspace(services)
        before = services.repository.list()

        with pytest.raises(SelectionCancelled):
            close.close(CloseRequest(rollover_to="Sprint_02", selector=FakeSelector(cancel=True)))

        assert services.repository.list() == before
        assert (sprints_dir / "!Sprint_01" / "US-2.md").exists()

    @pytest.mark.parametrize("ids", [["US-1"], ["US-9"], ["US-2", "US-2"]])
    def test_invalid_selection(self, services, close, ids):
        sprints_dir = self._workspace(services)
        with pytest.raises(InvalidInputError):
            close.close(CloseRequest(rollover_to="Sprint_02", selected_ids=ids))
        assert (sprints_dir / "!Sprint_01").is_dir()

    def test_story_already_in_target(self, services, close):
        sprints_dir = self._workspace(services)
        (sprints_dir / "+Sprint_02" / "other.md").write_text(story_text("US-3"))
        with pytest.raises(SprintExistsError):
            close.close(CloseRequest(rollover_to="Sprint_02"))
        assert (sprints_dir / "!Sprint_01" / "US-2.md").exists()

    def test_rollover_into_archived_sprint(self, services, close):
        self._workspace(services)
        make_sprint(services.repository.sprints_dir, "~Sprint_00", marker="archived")
        with pytest.raises(InvalidInputError):
            close.close(CloseRequest(rollover_to="Sprint_00"))

    def test_only_active_sprint_closes(self, services, close):
        self._workspace(services)
        with pytest.raises(InvalidTransitionError):
            close.close(CloseRequest(identifier="Sprint_02"))
