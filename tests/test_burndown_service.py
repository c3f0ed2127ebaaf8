"""Tests for the burndown service wiring sprints to history."""

from __future__ import annotations

from datetime import date, datetime, timezone

import pytest

from conftest import make_sprint, story_text
from src.services.burndown import SprintBurndownService
from src.sprints import status_store
from src.workflow.exceptions import InsufficientHistoryError, SprintNotFoundError


def at(day: int) -> datetime:
    return datetime(2025, 3, day, 12, tzinfo=timezone.utc)


@pytest.fixture
def burndown(services):
    return SprintBurndownService(
        services.repository,
        services.burndown.analyzer,
        services.paths.repo_path,
        today=lambda: date(2025, 3, 4),
    )


class TestHistoryPaths:
    def test_every_prefix_spelling(self, services, burndown):
        path = make_sprint(services.repository.sprints_dir, "!Sprint_01_Auth", marker="active")
        sprint = services.repository.load(path)
        assert burndown.history_paths(sprint) == [
            "tasks/sprints/!Sprint_01_Auth",
            "tasks/sprints/+Sprint_01_Auth",
            "tasks/sprints/@Sprint_01_Auth",
            "tasks/sprints/Sprint_01_Auth",
            "tasks/sprints/~Sprint_01_Auth",
        ]


class TestGenerate:
    def test_uses_history_and_working_tree(self, services, burndown, history):
        sprints_dir = services.repository.sprints_dir
        history.commit(
            at(1),
            {
                "tasks/sprints/+Sprint_01/US-1.md": story_text("US-1"),
                "tasks/sprints/+Sprint_01/US-2.md": story_text("US-2"),
            },
        )
        history.commit(
            at(2),
            {
                "tasks/sprints/+Sprint_01/US-1.md": None,
                "tasks/sprints/+Sprint_01/US-2.md": None,
                "tasks/sprints/!Sprint_01/US-1.md": story_text("US-1", status="done"),
                "tasks/sprints/!Sprint_01/US-2.md": story_text("US-2"),
            },
        )
        make_sprint(
            sprints_dir,
            "!Sprint_01",
            marker="active",
            stories={
                "US-1.md": story_text("US-1", status="done"),
                "US-2.md": story_text("US-2", status="done"),
            },
        )

        points = burndown.generate(sprints_dir / "!Sprint_01")

        assert [(p.date.day, p.remaining_tasks) for p in points] == [(1, 2), (2, 1), (3, 1), (4, 0)]

    def test_sprint_dates_bound_the_window(self, services, burndown, history):
        sprints_dir = services.repository.sprints_dir
        rel = "tasks/sprints/!Sprint_01/US-1.md"
        history.commit(at(1), {rel: story_text("US-1")})
        history.commit(at(2), {rel: story_text("US-1", status="doing")})
        history.commit(at(3), {rel: story_text("US-1", status="done")})
        path = make_sprint(sprints_dir, "!Sprint_01", marker="active")
        status_store.write_metadata(path, date(2025, 3, 2), date(2025, 3, 3), "1d")

        points = burndown.generate(path)

        assert [p.date.day for p in points] == [2, 3]
        assert points[-1].remaining_tasks == 0

    def test_generate_for_current_sprint(self, services, burndown, history):
        sprints_dir = services.repository.sprints_dir
        rel = "tasks/sprints/!Sprint_02/US-1.md"
        history.commit(at(1), {rel: story_text("US-1", points=2)})
        history.commit(at(2), {rel: story_text("US-1", status="done", points=2)})
        path = make_sprint(sprints_dir, "!Sprint_02", marker="active")
        services.repository.set_current(services.repository.load(path))

        sprint, points = burndown.generate_for()

        assert sprint.identifier == "Sprint_02"
        assert [p.remaining_points for p in points][:2] == [2, 0]

    def test_generate_for_without_pointer(self, burndown):
        with pytest.raises(SprintNotFoundError):
            burndown.generate_for()

    def test_insufficient_history(self, services, burndown):
        make_sprint(services.repository.sprints_dir, "@Sprint_01", marker="planning")
        with pytest.raises(InsufficientHistoryError):
            burndown.generate_for("Sprint_01")
