"""Create undated sprints in Planning status."""

from __future__ import annotations

import shutil

from src.logging_utils import get_logger
from src.sprints import naming
from src.sprints.repository import SprintRepository
from src.workflow.exceptions import SprintExistsError
from src.workflow.models import Sprint, SprintStatus

logger = get_logger(__name__)


class SprintPlanService:
    def __init__(self, repository: SprintRepository, sprint_stem: str = "Sprint_"):
        self.repository = repository
        self.sprint_stem = sprint_stem

    def create_planning_sprint(self, description: str, identifier: str | None = None) -> Sprint:
        """Create ``@<id>_<description>`` with a planning marker.

        The identifier is generated when omitted and must not be in use under
        any status prefix.
        """
        description = naming.normalize_description(description or "")
        naming.validate_description(description)

        if identifier is None:
            identifier = naming.next_identifier(self.repository.list(), self.sprint_stem)
        if self.repository.identifier_taken(identifier):
            raise SprintExistsError(identifier, "identifier already in use")

        folder_name = naming.encode(SprintStatus.PLANNING, identifier, description)
        sprint = self.repository.create(self.repository.sprints_dir / folder_name, identifier)
        try:
            self.repository.write_status(sprint, SprintStatus.PLANNING)
        except OSError:
            shutil.rmtree(sprint.path, ignore_errors=True)
            raise
        logger.info("Planned sprint %s", folder_name)
        return sprint
