"""Sprint burndown: resolve a sprint, replay its history, return daily points."""

from __future__ import annotations

import os
from datetime import datetime
from pathlib import Path

from src.history.analyzer import HistoryAnalyzer
from src.logging_utils import get_logger
from src.sprints import naming
from src.sprints.repository import SprintRepository
from src.stories.parser import MarkdownStoryParser, list_stories
from src.workflow.cancellation import CancellationToken
from src.workflow.models import BurndownDataPoint, Sprint, SprintStatus

logger = get_logger(__name__)


class SprintBurndownService:
    def __init__(
        self,
        repository: SprintRepository,
        analyzer: HistoryAnalyzer,
        repo_path: Path,
        parser: MarkdownStoryParser | None = None,
        today=None,
    ):
        self.repository = repository
        self.analyzer = analyzer
        self.repo_path = Path(repo_path)
        self.parser = parser or MarkdownStoryParser()
        self._today = today or (lambda: datetime.now(analyzer.tz).date())

    def generate(
        self,
        sprint_path: Path,
        token: CancellationToken | None = None,
    ) -> list[BurndownDataPoint]:
        """Burndown for the sprint at ``sprint_path``.

        Raises InsufficientHistoryError when fewer than two days of commits exist.
        """
        sprint = self.repository.load(Path(sprint_path))
        return self._generate(sprint, token)

    def generate_for(
        self,
        identifier: str | None = None,
        token: CancellationToken | None = None,
    ) -> tuple[Sprint, list[BurndownDataPoint]]:
        """Burndown for a sprint named by identifier, or the current sprint."""
        if identifier:
            sprint = self.repository.resolve(identifier)
        else:
            sprint = self.repository.current_sprint()
        return sprint, self._generate(sprint, token)

    def _generate(self, sprint: Sprint, token: CancellationToken | None) -> list[BurndownDataPoint]:
        paths = self.history_paths(sprint)
        logger.debug("Burndown for %s over %s", sprint.identifier, paths)
        return self.analyzer.analyze(
            paths,
            sprint_name=sprint.identifier,
            start=sprint.start_date,
            end=sprint.end_date,
            working_stories=list_stories(sprint.path, self.parser, recursive=True),
            today=self._today(),
            token=token,
        )

    def history_paths(self, sprint: Sprint) -> list[str]:
        """Every spelling the sprint folder has had, relative to the repository.

        A status change renames the folder, so history is spread across all
        of its prefixed names.
        """
        relative_parent = Path(os.path.relpath(sprint.path.parent, self.repo_path))
        names = {naming.with_status(sprint.folder_name, s) for s in SprintStatus}
        names.add(naming.strip_prefix(sprint.folder_name))
        return sorted((relative_parent / name).as_posix() for name in names)
