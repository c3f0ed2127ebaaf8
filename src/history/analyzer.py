"""Rebuild day-by-day sprint progress from commit history.

For each calendar day with commits, the last commit of that day is
replayed: every story file under the sprint directory is read as it was at
that commit and parsed, and the non-done stories are counted. Days without
commits carry the previous day forward. Days are taken in an explicit
timezone (UTC unless configured), never the host's local time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, timedelta, timezone, tzinfo
from typing import Iterable

from src.logging_utils import get_logger
from src.workflow.cancellation import CancellationToken, check
from src.workflow.exceptions import InsufficientHistoryError, StoryParseError
from src.workflow.interface import StoryParser, VersionControl
from src.workflow.models import BurndownDataPoint, CommitRecord, Story

logger = get_logger(__name__)

STORY_SUFFIX = ".md"


@dataclass
class _Snapshot:
    day: date
    stories: list[Story]

    @property
    def has_points(self) -> bool:
        return any(s.points is not None for s in self.stories)


class HistoryAnalyzer:
    def __init__(self, vcs: VersionControl, parser: StoryParser, tz: tzinfo = timezone.utc):
        self.vcs = vcs
        self.parser = parser
        self.tz = tz

    def analyze(
        self,
        paths: Iterable[str],
        *,
        sprint_name: str = "",
        start: date | None = None,
        end: date | None = None,
        working_stories: list[Story] | None = None,
        today: date | None = None,
        token: CancellationToken | None = None,
    ) -> list[BurndownDataPoint]:
        """Burndown points for the story files under ``paths``.

        Commits dated before ``start`` count toward ``start``; commits after
        ``end`` are ignored. ``working_stories`` is the uncommitted state and
        becomes a final point dated ``min(today, end)`` when that is later
        than the last commit day.

        Raises InsufficientHistoryError when commits cover fewer than two days.
        """
        paths = list(paths)
        by_day = self._last_commit_per_day(paths, start, end, token)
        if len(by_day) < 2:
            raise InsufficientHistoryError(sprint_name or ", ".join(paths), len(by_day))

        snapshots = []
        for day, commit in sorted(by_day.items()):
            check(token, "analyze history")
            snapshots.append(_Snapshot(day, self._stories_at(commit, paths)))

        if working_stories is not None:
            working_day = today or date.today()
            if end is not None:
                working_day = min(working_day, end)
            if working_day > snapshots[-1].day:
                snapshots.append(_Snapshot(working_day, list(working_stories)))

        report_points = any(s.has_points for s in snapshots)
        return _fill_days([_data_point(s, report_points) for s in snapshots])

    def _last_commit_per_day(
        self,
        paths: list[str],
        start: date | None,
        end: date | None,
        token: CancellationToken | None,
    ) -> dict[date, CommitRecord]:
        by_day: dict[date, CommitRecord] = {}
        for commit in self.vcs.commits_touching(paths):
            check(token, "analyze history")
            day = self.day_of(commit)
            if end is not None and day > end:
                continue
            if start is not None and day < start:
                day = start
            by_day[day] = commit
        return by_day

    def day_of(self, commit: CommitRecord) -> date:
        stamp = commit.timestamp
        if stamp.tzinfo is None:
            stamp = stamp.replace(tzinfo=timezone.utc)
        return stamp.astimezone(self.tz).date()

    def _stories_at(self, commit: CommitRecord, paths: list[str]) -> list[Story]:
        stories = []
        for path in self.vcs.list_files(commit.sha, paths):
            if not path.endswith(STORY_SUFFIX):
                continue
            content = self.vcs.read_file(commit.sha, path)
            if content is None:
                continue
            try:
                stories.append(self.parser.parse(content, source=f"{commit.sha[:7]}:{path}"))
            except StoryParseError as exc:
                logger.warning("Skipping unparsable story snapshot: %s", exc)
        return stories


def _data_point(snapshot: _Snapshot, report_points: bool) -> BurndownDataPoint:
    remaining = [s for s in snapshot.stories if not s.is_terminal]
    point = BurndownDataPoint(
        date=snapshot.day,
        remaining_tasks=len(remaining),
        total_tasks=len(snapshot.stories),
    )
    if report_points:
        point.remaining_points = sum(s.points or 0 for s in remaining)
        point.total_points = sum(s.points or 0 for s in snapshot.stories)
    return point


def _fill_days(points: list[BurndownDataPoint]) -> list[BurndownDataPoint]:
    """One point per day from first to last, carrying the last known values forward."""
    filled: list[BurndownDataPoint] = []
    for point in points:
        if filled:
            day = filled[-1].date + timedelta(days=1)
            while day < point.date:
                previous = filled[-1]
                filled.append(
                    BurndownDataPoint(
                        date=day,
                        remaining_tasks=previous.remaining_tasks,
                        total_tasks=previous.total_tasks,
                        remaining_points=previous.remaining_points,
                        total_points=previous.total_points,
                    )
                )
                day += timedelta(days=1)
        filled.append(point)
    return filled
