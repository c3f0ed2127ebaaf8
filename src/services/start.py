"""Start a dated sprint, either Ready or immediately Active."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date

from src.logging_utils import get_logger
from src.sprints import naming
from src.sprints.repository import SprintRepository, parse_duration
from src.workflow.exceptions import InvalidInputError, SprintExistsError
from src.workflow.models import Sprint, SprintStatus

from .status import SprintStatusService

logger = get_logger(__name__)


@dataclass
class StartSprintRequest:
    identifier: str | None = None
    description: str | None = None
    start_date: date | None = None
    duration: str | None = None
    status: SprintStatus = SprintStatus.ACTIVE


class SprintStartService:
    def __init__(
        self,
        repository: SprintRepository,
        status_service: SprintStatusService,
        default_duration: str = "2w",
        sprint_stem: str = "Sprint_",
        today=None,
    ):
        self.repository = repository
        self.status_service = status_service
        self.default_duration = default_duration
        self.sprint_stem = sprint_stem
        self._today = today or date.today

    def start_sprint(self, request: StartSprintRequest) -> Sprint:
        """Create a dated sprint.

        An Active start creates the sprint as Ready and then activates it, so
        the previously active sprint is archived and the pointer follows. If
        activation is refused the new sprint stays Ready.
        """
        if request.status not in (SprintStatus.READY, SprintStatus.ACTIVE):
            raise InvalidInputError(
                f"a started sprint must be ready or active, not {request.status.value}"
            )
        duration = request.duration or self.default_duration
        parse_duration(duration)

        description = None
        if request.description:
            description = naming.normalize_description(request.description)
            naming.validate_description(description)

        identifier = request.identifier or naming.next_identifier(
            self.repository.list(), self.sprint_stem
        )
        if self.repository.identifier_taken(identifier):
            raise SprintExistsError(identifier, "identifier already in use")

        folder_name = naming.encode(SprintStatus.READY, identifier, description)
        sprint = self.repository.create(
            self.repository.sprints_dir / folder_name,
            identifier,
            start_date=request.start_date or self._today(),
            duration=duration,
        )
        self.repository.write_status(sprint, SprintStatus.READY)
        logger.info("Started sprint %s (%s to %s)", identifier, sprint.start_date, sprint.end_date)

        if request.status is SprintStatus.ACTIVE:
            return self.status_service.activate(sprint.folder_name).activated
        return sprint
