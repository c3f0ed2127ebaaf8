"""Sprint lifecycle transitions: activate, archive, promote.

Every transition writes the status marker first and renames the folder
second. If the rename fails the marker is already correct and the doctor
sweep repairs the folder name.
"""

from __future__ import annotations

from datetime import date

from src.logging_utils import get_logger
from src.sprints import naming
from src.sprints.repository import SprintRepository
from src.workflow.exceptions import SprintError, SprintExistsError
from src.workflow.models import ActivationResult, Sprint, SprintStatus
from src.workflow.transitions import validate_transition

logger = get_logger(__name__)


class SprintStatusService:
    def __init__(self, repository: SprintRepository, default_duration: str = "2w", today=None):
        self.repository = repository
        self.default_duration = default_duration
        self._today = today or date.today

    def activate(self, identifier: str) -> ActivationResult:
        """Make ``identifier`` the active sprint, archiving the previous one.

        All validation happens before the first write: an illegal source
        status, a second active sprint, or an occupied rename target leaves
        the workspace untouched.
        """
        target = self.repository.resolve(identifier)
        validate_transition(target.identifier, target.status, SprintStatus.ACTIVE)

        others = [
            s for s in self.repository.with_status(SprintStatus.ACTIVE)
            if s.path != target.path
        ]
        if len(others) > 1:
            names = ", ".join(s.folder_name for s in others)
            raise SprintError(
                f"Multiple active sprints found ({names}); run 'sprintctl doctor' first"
            )
        previous = others[0] if others else None

        self.ensure_target_free(target, SprintStatus.ACTIVE)
        if previous is not None:
            validate_transition(previous.identifier, previous.status, SprintStatus.ARCHIVED)
            self.ensure_target_free(previous, SprintStatus.ARCHIVED)

        archived = None
        if previous is not None:
            archived = self._transition(previous, SprintStatus.ARCHIVED)
            logger.info("Archived previously active sprint %s", archived.identifier)

        activated = self._transition(target, SprintStatus.ACTIVE)
        if activated.start_date is None:
            self.repository.set_dates(activated, self._today(), self.default_duration)
        self.repository.set_current(activated)
        logger.info("Activated sprint %s", activated.identifier)
        return ActivationResult(activated=activated, archived=archived)

    def archive(self, identifier: str) -> Sprint:
        """Archive any non-archived sprint, clearing the pointer if it named it."""
        sprint = self.repository.resolve(identifier)
        return self.archive_sprint(sprint)

    def archive_sprint(self, sprint: Sprint) -> Sprint:
        validate_transition(sprint.identifier, sprint.status, SprintStatus.ARCHIVED)
        self.ensure_target_free(sprint, SprintStatus.ARCHIVED)
        old_path = sprint.path
        pointer = self.repository.current_pointer()
        archived = self._transition(sprint, SprintStatus.ARCHIVED)
        if pointer is not None and pointer == old_path:
            self.repository.clear_current()
        logger.info("Archived sprint %s", archived.identifier)
        return archived

    def promote(self, identifier: str) -> Sprint:
        """Planning -> Ready."""
        sprint = self.repository.resolve(identifier)
        validate_transition(sprint.identifier, sprint.status, SprintStatus.READY)
        self.ensure_target_free(sprint, SprintStatus.READY)
        return self._transition(sprint, SprintStatus.READY)

    def ensure_target_free(self, sprint: Sprint, status: SprintStatus) -> None:
        target = sprint.path.with_name(naming.with_status(sprint.folder_name, status))
        if target != sprint.path and self.repository.exists(target):
            raise SprintExistsError(target, f"cannot move {sprint.folder_name}")

    def _transition(self, sprint: Sprint, status: SprintStatus) -> Sprint:
        self.repository.write_status(sprint, status)
        return self.repository.rename_to_status(sprint, status)
