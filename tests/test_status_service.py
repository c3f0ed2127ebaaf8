"""Tests for sprint lifecycle transitions."""

from __future__ import annotations

from datetime import date
from pathlib import Path

import pytest

from conftest import make_sprint
from src.services.status import SprintStatusService
from src.sprints import status_store
from src.sprints.repository import SprintRepository
from src.workflow.exceptions import (
    InvalidTransitionError,
    SprintError,
    SprintExistsError,
    SprintNotFoundError,
)
from src.workflow.models import SprintStatus


@pytest.fixture
def service(sprints_dir: Path) -> SprintStatusService:
    return SprintStatusService(SprintRepository(sprints_dir), today=lambda: date(2025, 1, 6))


def _names(sprints_dir: Path) -> list[str]:
    return SprintRepository(sprints_dir).list()


class TestActivate:
    def test_archives_previous_and_moves_pointer(self, service, sprints_dir: Path):
        old = make_sprint(sprints_dir, "!Sprint_01", marker="active")
        service.repository.set_current(service.repository.load(old))
        make_sprint(sprints_dir, "+Sprint_02", marker="ready")

        result = service.activate("Sprint_02")

        assert _names(sprints_dir) == ["!Sprint_02", "~Sprint_01"]
        assert result.activated.folder_name == "!Sprint_02"
        assert result.archived.folder_name == "~Sprint_01"
        assert status_store.read_status(sprints_dir / "!Sprint_02") is SprintStatus.ACTIVE
        assert status_store.read_status(sprints_dir / "~Sprint_01") is SprintStatus.ARCHIVED
        assert status_store.read_current_pointer(sprints_dir) == sprints_dir / "!Sprint_02"

    def test_first_activation_has_nothing_to_archive(self, service, sprints_dir: Path):
        make_sprint(sprints_dir, "@Sprint_01_Auth", marker="planning")
        result = service.activate("Sprint_01")
        assert result.archived is None
        assert result.activated.folder_name == "!Sprint_01_Auth"

    def test_sets_dates_when_absent(self, service, sprints_dir: Path):
        make_sprint(sprints_dir, "+Sprint_01", marker="ready")
        sprint = service.activate("Sprint_01").activated
        assert sprint.start_date == date(2025, 1, 6)
        assert sprint.end_date == date(2025, 1, 20)
        meta = status_store.read_metadata(sprint.path)
        assert meta["start_date"] == date(2025, 1, 6)

    def test_keeps_existing_dates(self, service, sprints_dir: Path):
        path = make_sprint(sprints_dir, "+Sprint_01", marker="ready")
        status_store.write_metadata(path, date(2024, 12, 1), date(2024, 12, 8), "1w")
        sprint = service.activate("Sprint_01").activated
        assert sprint.start_date == date(2024, 12, 1)

    @pytest.mark.parametrize("folder,marker", [("~Sprint_01", "archived"), ("!Sprint_01", "active")])
    def test_rejects_archived_and_active(self, service, sprints_dir: Path, folder, marker):
        make_sprint(sprints_dir, folder, marker=marker)
        make_sprint(sprints_dir, "!Sprint_02", marker="active")
        before = _names(sprints_dir)

        with pytest.raises(InvalidTransitionError) as exc_info:
            service.activate("Sprint_01")

        assert exc_info.value.to_status is SprintStatus.ACTIVE
        assert _names(sprints_dir) == before

    def test_refuses_with_several_active_sprints(self, service, sprints_dir: Path):
        make_sprint(sprints_dir, "!Sprint_01", marker="active")
        make_sprint(sprints_dir, "!Sprint_02", marker="active")
        make_sprint(sprints_dir, "+Sprint_03", marker="ready")
        before = _names(sprints_dir)

        with pytest.raises(SprintError, match="Multiple active"):
            service.activate("Sprint_03")
        assert _names(sprints_dir) == before

    def test_collision_leaves_workspace_untouched(self, service, sprints_dir: Path):
        make_sprint(sprints_dir, "!Sprint_01", marker="active")
        make_sprint(sprints_dir, "~Sprint_01")
        make_sprint(sprints_dir, "+Sprint_02", marker="ready")

        with pytest.raises(SprintExistsError):
            service.activate("Sprint_02")

        assert status_store.read_status(sprints_dir / "+Sprint_02") is SprintStatus.READY
        assert status_store.read_status(sprints_dir / "!Sprint_01") is SprintStatus.ACTIVE

    def test_unknown_sprint(self, service):
        with pytest.raises(SprintNotFoundError):
            service.activate("Sprint_42")

    def test_marker_drives_status_not_prefix(self, service, sprints_dir: Path):
        # Folder still says Ready but the marker already records Archived.
        make_sprint(sprints_dir, "+Sprint_01", marker="archived")
        with pytest.raises(InvalidTransitionError):
            service.activate("Sprint_01")


class TestArchive:
    def test_archive_clears_pointer(self, service, sprints_dir: Path):
        path = make_sprint(sprints_dir, "!Sprint_01", marker="active")
        service.repository.set_current(service.repository.load(path))

        archived = service.archive("Sprint_01")

        assert archived.folder_name == "~Sprint_01"
        assert status_store.read_current_pointer(sprints_dir) is None

    def test_archive_keeps_unrelated_pointer(self, service, sprints_dir: Path):
        active = make_sprint(sprints_dir, "!Sprint_02", marker="active")
        service.repository.set_current(service.repository.load(active))
        make_sprint(sprints_dir, "@Sprint_03", marker="planning")

        service.archive("Sprint_03")

        assert status_store.read_current_pointer(sprints_dir) == active

    def test_archive_twice_fails(self, service, sprints_dir: Path):
        make_sprint(sprints_dir, "~Sprint_01", marker="archived")
        with pytest.raises(InvalidTransitionError):
            service.archive("Sprint_01")


class TestPromote:
    def test_planning_to_ready(self, service, sprints_dir: Path):
        make_sprint(sprints_dir, "@Sprint_04_Search", marker="planning")
        sprint = service.promote("Sprint_04")
        assert sprint.folder_name == "+Sprint_04_Search"
        assert status_store.read_status(sprint.path) is SprintStatus.READY

    def test_ready_cannot_promote(self, service, sprints_dir: Path):
        make_sprint(sprints_dir, "+Sprint_04", marker="ready")
        with pytest.raises(InvalidTransitionError):
            service.promote("Sprint_04")
