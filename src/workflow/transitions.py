"""Sprint state-machine transitions defined as data."""

from .exceptions import InvalidTransitionError
from .models import SprintStatus

VALID_TRANSITIONS: frozenset[tuple[SprintStatus, SprintStatus]] = frozenset(
    {
        (SprintStatus.PLANNING, SprintStatus.READY),      # promote
        (SprintStatus.PLANNING, SprintStatus.ACTIVE),     # activate
        (SprintStatus.READY, SprintStatus.ACTIVE),        # activate
        (SprintStatus.ACTIVE, SprintStatus.ARCHIVED),     # close
        (SprintStatus.PLANNING, SprintStatus.ARCHIVED),   # shelve
        (SprintStatus.READY, SprintStatus.ARCHIVED),      # shelve
    }
)

ACTIVATABLE: frozenset[SprintStatus] = frozenset(
    src for src, dst in VALID_TRANSITIONS if dst is SprintStatus.ACTIVE
)


def can_transition(from_status: SprintStatus, to_status: SprintStatus) -> bool:
    return (from_status, to_status) in VALID_TRANSITIONS


def validate_transition(
    sprint_id: str,
    from_status: SprintStatus,
    to_status: SprintStatus,
) -> None:
    """Raise InvalidTransitionError if the transition is not allowed."""
    if not can_transition(from_status, to_status):
        raise InvalidTransitionError(sprint_id, from_status, to_status)
