"""Sprint workflow exception types."""

from __future__ import annotations

from pathlib import Path


class SprintError(Exception):
    """Base class for all sprint workflow errors."""


class SprintNotFoundError(SprintError):
    """Raised when a sprint identifier or path cannot be resolved."""

    def __init__(self, identifier: str, detail: str | None = None):
        self.identifier = identifier
        message = f"Sprint not found: {identifier}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class AmbiguousSprintError(SprintError):
    """Raised when a partial identifier matches more than one sprint."""

    def __init__(self, identifier: str, matches: list[str]):
        self.identifier = identifier
        self.matches = matches
        super().__init__(
            f"Sprint identifier {identifier!r} is ambiguous: matches {', '.join(matches)}"
        )


class InvalidTransitionError(SprintError):
    """Raised when an invalid sprint state transition is attempted."""

    def __init__(self, sprint_id: str, from_status, to_status):
        self.sprint_id = sprint_id
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Invalid transition for sprint {sprint_id}: "
            f"{from_status.value} → {to_status.value}"
        )


class InvalidNameError(SprintError, ValueError):
    """Raised when a folder name cannot be decoded."""

    def __init__(self, name: str, reason: str):
        self.name = name
        self.reason = reason
        super().__init__(f"Invalid sprint folder name {name!r}: {reason}")


class InvalidInputError(SprintError, ValueError):
    """Raised when caller-supplied values fail validation."""


class SprintExistsError(SprintError, FileExistsError):
    """Raised when a create or rename target is already taken."""

    def __init__(self, path: Path | str, detail: str | None = None):
        self.path = Path(path)
        message = f"Sprint already exists: {self.path}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)


class CorruptMarkerError(SprintError):
    """Raised when a status marker exists but holds no valid status."""

    def __init__(self, marker_path: Path, content: str):
        self.marker_path = marker_path
        self.content = content
        super().__init__(f"Invalid status in {marker_path}: {content!r}")


class InsufficientHistoryError(SprintError):
    """Raised when fewer than two days of history exist for a sprint."""

    def __init__(self, sprint: str, days: int):
        self.sprint = sprint
        self.days = days
        super().__init__(
            f"Insufficient history for sprint {sprint}: "
            f"{days} day(s) of commits, need at least 2"
        )


class PartialRepairError(SprintError):
    """Raised by RepairResult.raise_for_failures when some repairs failed."""

    def __init__(self, result):
        self.result = result
        names = ", ".join(f.folder_name for f in result.failures)
        super().__init__(
            f"Repaired {result.repaired_count} sprint(s), "
            f"{result.failed_count} failed: {names}"
        )


class OperationCancelled(SprintError):
    """Raised when a cancellation token is observed mid-operation."""

    def __init__(self, operation: str, partial=None):
        self.operation = operation
        self.partial = partial
        super().__init__(f"Operation cancelled: {operation}")


class WorkspaceLayoutError(SprintError):
    """Raised when the workspace directory layout cannot be determined."""


class VersionControlError(SprintError):
    """Raised when the version-control adapter fails."""


class StoryParseError(SprintError):
    """Raised when a story file cannot be parsed."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"Parse error in {source}: {message}")


class SelectionCancelled(SprintError):
    """Raised by a TaskSelector when the user backs out."""


class ConfigError(SprintError):
    """Raised when configuration cannot be loaded."""
