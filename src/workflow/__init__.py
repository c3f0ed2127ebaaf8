from .models import (
    BurndownDataPoint,
    DoctorReport,
    Inconsistency,
    RepairResult,
    Sprint,
    SprintStatus,
    Story,
    StoryStatus,
)
from .exceptions import SprintError
from .interface import StoryParser, TaskSelector, VersionControl

__all__ = [
    "Sprint",
    "SprintStatus",
    "Story",
    "StoryStatus",
    "Inconsistency",
    "RepairResult",
    "DoctorReport",
    "BurndownDataPoint",
    "SprintError",
    "StoryParser",
    "TaskSelector",
    "VersionControl",
]
