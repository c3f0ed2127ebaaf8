"""Close the active sprint, optionally rolling unfinished stories over."""

from __future__ import annotations

import shutil
from dataclasses import dataclass, field
from datetime import datetime, timezone

from src.logging_utils import get_logger
from src.sprints.repository import SprintRepository
from src.stories.parser import MarkdownStoryParser, list_stories, update_frontmatter
from src.workflow.exceptions import InvalidInputError, InvalidTransitionError, SprintExistsError
from src.workflow.interface import TaskSelector
from src.workflow.models import Sprint, SprintStatus, Story, StoryStatus

from .status import SprintStatusService

logger = get_logger(__name__)


@dataclass
class CloseRequest:
    identifier: str | None = None
    rollover_to: str | None = None
    selected_ids: list[str] | None = None
    selector: TaskSelector | None = None


@dataclass
class CloseResult:
    archived: Sprint
    target: Sprint | None = None
    rolled_over: list[str] = field(default_factory=list)


class SprintCloseService:
    def __init__(
        self,
        repository: SprintRepository,
        status_service: SprintStatusService,
        parser: MarkdownStoryParser | None = None,
        now=None,
    ):
        self.repository = repository
        self.status_service = status_service
        self.parser = parser or MarkdownStoryParser()
        self._now = now or (lambda: datetime.now(timezone.utc))

    def unfinished_stories(self, sprint: Sprint) -> list[Story]:
        return [s for s in list_stories(sprint.path, self.parser) if not s.is_terminal]

    def close(self, request: CloseRequest) -> CloseResult:
        """Archive the active sprint, moving chosen unfinished stories first.

        Selection and every check on the rollover happen before any file is
        touched; a cancelled selection raises SelectionCancelled with the
        workspace unchanged.
        """
        if request.identifier:
            sprint = self.repository.resolve(request.identifier)
        else:
            sprint = self.repository.current_sprint()
        if sprint.status is not SprintStatus.ACTIVE:
            raise InvalidTransitionError(sprint.identifier, sprint.status, SprintStatus.ARCHIVED)
        self.status_service.ensure_target_free(sprint, SprintStatus.ARCHIVED)

        target = None
        moves: list[Story] = []
        if request.rollover_to:
            target = self._rollover_target(sprint, request.rollover_to)
            unfinished = self.unfinished_stories(sprint)
            if request.selected_ids is not None:
                chosen = list(request.selected_ids)
            elif request.selector is not None:
                chosen = request.selector.select_tasks(unfinished)
            else:
                chosen = [s.id for s in unfinished]
            moves = self._validate_rollover(unfinished, chosen, target)

        for story in moves:
            self._move(story, target)

        archived = self.status_service.archive_sprint(sprint)
        logger.info("Closed sprint %s, rolled over %d stories", archived.identifier, len(moves))
        return CloseResult(archived=archived, target=target, rolled_over=[s.id for s in moves])

    def _rollover_target(self, sprint: Sprint, identifier: str) -> Sprint:
        target = self.repository.resolve(identifier)
        if target.path == sprint.path:
            raise InvalidInputError("cannot roll stories over into the sprint being closed")
        if target.status is SprintStatus.ARCHIVED:
            raise InvalidInputError(f"cannot roll stories over into archived sprint {target.identifier}")
        return target

    def _validate_rollover(self, unfinished: list[Story], chosen: list[str], target: Sprint) -> list[Story]:
        if len(set(chosen)) != len(chosen):
            raise InvalidInputError("duplicate story IDs selected for rollover")
        by_id = {s.id: s for s in unfinished}
        missing = [i for i in chosen if i not in by_id]
        if missing:
            raise InvalidInputError(
                f"stories not found among unfinished stories: {', '.join(missing)}"
            )

        existing = list_stories(target.path, self.parser)
        taken_ids = {s.id for s in existing}
        for story_id in chosen:
            story = by_id[story_id]
            if story_id in taken_ids:
                raise SprintExistsError(target.path / story.path.name, f"story {story_id} already in target")
            if (target.path / story.path.name).exists():
                raise SprintExistsError(target.path / story.path.name)
        return [by_id[i] for i in chosen]

    def _move(self, story: Story, target: Sprint) -> None:
        destination = target.path / story.path.name
        shutil.move(str(story.path), str(destination))
        changes = {"updated_at": self._now(), "sprint": target.identifier}
        if story.status is not StoryStatus.DONE:
            changes["status"] = StoryStatus.TODO.value
        update_frontmatter(destination, **changes)
        logger.info("Rolled %s over to %s", story.id, target.identifier)
