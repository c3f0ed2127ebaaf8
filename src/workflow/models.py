"""Domain models for sprint status, stories and burndown data."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from pathlib import Path

from .exceptions import InvalidInputError, PartialRepairError


class SprintStatus(Enum):
    PLANNING = "planning"
    READY = "ready"
    ACTIVE = "active"
    ARCHIVED = "archived"

    @property
    def prefix(self) -> str:
        return _PREFIXES[self]

    @property
    def display_name(self) -> str:
        return self.value.title()

    @classmethod
    def from_prefix(cls, char: str) -> SprintStatus | None:
        """Return the status encoded by a folder-name prefix character."""
        for status, prefix in _PREFIXES.items():
            if prefix == char:
                return status
        return None

    @classmethod
    def parse(cls, token: str) -> SprintStatus:
        """Parse a status token, ignoring case and surrounding whitespace."""
        normalized = (token or "").strip().lower()
        try:
            return cls(normalized)
        except ValueError:
            valid = ", ".join(s.value for s in cls)
            raise InvalidInputError(
                f"invalid status: {normalized!r} (must be one of: {valid})"
            ) from None


_PREFIXES: dict[SprintStatus, str] = {
    SprintStatus.ACTIVE: "!",
    SprintStatus.READY: "+",
    SprintStatus.PLANNING: "@",
    SprintStatus.ARCHIVED: "~",
}

RESERVED_CHARS: tuple[str, ...] = tuple(_PREFIXES.values())


class StoryStatus(Enum):
    TODO = "todo"
    DOING = "doing"
    REVIEW = "review"
    DONE = "done"


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class Sprint:
    identifier: str
    path: Path
    status: SprintStatus
    description: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    duration: str | None = None

    @property
    def folder_name(self) -> str:
        return self.path.name


@dataclass
class ActivationResult:
    activated: Sprint
    archived: Sprint | None = None


@dataclass
class Story:
    id: str
    title: str
    status: StoryStatus = StoryStatus.TODO
    priority: Priority = Priority.MEDIUM
    points: int | None = None
    assignee: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    tags: list[str] = field(default_factory=list)
    body: str = ""
    path: Path | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is StoryStatus.DONE


class InconsistencyKind(Enum):
    PREFIX_MISMATCH = "prefix_mismatch"
    MARKER_UNREADABLE = "marker_unreadable"


@dataclass
class Inconsistency:
    """A sprint whose folder prefix disagrees with its status marker."""

    sprint_path: Path
    folder_name: str
    folder_status: SprintStatus | None
    marker_status: SprintStatus | None
    expected_name: str
    kind: InconsistencyKind = InconsistencyKind.PREFIX_MISMATCH
    detail: str = ""


@dataclass
class RepairFailure:
    sprint_path: Path
    folder_name: str
    target_name: str
    cause: str
    error: Exception | None = None


@dataclass
class RepairResult:
    repaired: list[str] = field(default_factory=list)
    failures: list[RepairFailure] = field(default_factory=list)

    @property
    def repaired_count(self) -> int:
        return len(self.repaired)

    @property
    def failed_count(self) -> int:
        return len(self.failures)

    @property
    def ok(self) -> bool:
        return not self.failures

    def raise_for_failures(self) -> None:
        """Raise PartialRepairError if any item failed."""
        if self.failures:
            raise PartialRepairError(self)


@dataclass
class PointerCheck:
    valid: bool
    target: Path | None
    reason: str


@dataclass
class DoctorReport:
    inconsistencies: list[Inconsistency]
    pointer: PointerCheck

    @property
    def healthy(self) -> bool:
        return not self.inconsistencies and self.pointer.valid


@dataclass
class CommitRecord:
    sha: str
    timestamp: datetime


@dataclass
class BurndownDataPoint:
    date: date
    remaining_tasks: int
    total_tasks: int
    remaining_points: int | None = None
    total_points: int | None = None
