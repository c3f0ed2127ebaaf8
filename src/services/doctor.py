"""Detect and repair drift between sprint folder prefixes and status markers.

The marker is the single source of truth. Detection never mutates; repair
is a best-effort sweep that renames folders to match their markers and
records every failure in the returned RepairResult.
"""

from __future__ import annotations

from src.logging_utils import get_logger
from src.sprints import naming, status_store
from src.sprints.repository import SprintRepository
from src.workflow.cancellation import CancellationToken, check
from src.workflow.exceptions import CorruptMarkerError, SprintError
from src.workflow.models import (
    DoctorReport,
    Inconsistency,
    InconsistencyKind,
    PointerCheck,
    RepairFailure,
    RepairResult,
    SprintStatus,
)

logger = get_logger(__name__)


class SprintDoctorService:
    def __init__(self, repository: SprintRepository):
        self.repository = repository

    def detect(self, token: CancellationToken | None = None) -> list[Inconsistency]:
        """Every sprint whose folder prefix disagrees with its marker."""
        found = []
        for name in self.repository.list(token):
            check(token, "detect inconsistencies", found)
            inconsistency = self._inspect(name)
            if inconsistency is not None:
                found.append(inconsistency)
        logger.debug("Doctor scan found %d inconsistencies", len(found))
        return found

    def _inspect(self, name: str) -> Inconsistency | None:
        path = self.repository.sprints_dir / name
        folder_status = SprintStatus.from_prefix(name[0])
        try:
            marker_status = status_store.read_status(path)
        except CorruptMarkerError as exc:
            return Inconsistency(
                sprint_path=path,
                folder_name=name,
                folder_status=folder_status,
                marker_status=None,
                expected_name=name,
                kind=InconsistencyKind.MARKER_UNREADABLE,
                detail=str(exc),
            )

        if marker_status is None or marker_status is folder_status:
            return None
        return Inconsistency(
            sprint_path=path,
            folder_name=name,
            folder_status=folder_status,
            marker_status=marker_status,
            expected_name=naming.with_status(name, marker_status),
            detail=(
                f"folder says {folder_status.value if folder_status else 'nothing'}, "
                f"marker says {marker_status.value}"
            ),
        )

    def repair(
        self,
        inconsistencies: list[Inconsistency],
        token: CancellationToken | None = None,
    ) -> RepairResult:
        """Fix each inconsistency independently, in path order.

        A failure is recorded and the sweep moves on. Raises
        OperationCancelled (carrying the partial result) if ``token`` is
        cancelled between items; repairs already made stay in place.
        """
        result = RepairResult()
        for item in sorted(inconsistencies, key=lambda i: str(i.sprint_path)):
            check(token, "repair inconsistencies", result)
            if item.kind is InconsistencyKind.MARKER_UNREADABLE:
                self._rewrite_marker(item, result)
            else:
                self._rename(item, result)
        logger.info(
            "Repair finished: %d repaired, %d failed",
            result.repaired_count,
            result.failed_count,
        )
        return result

    def _rename(self, item: Inconsistency, result: RepairResult) -> None:
        target = item.sprint_path.with_name(item.expected_name)
        try:
            self.repository.rename(item.sprint_path, target)
        except (SprintError, OSError) as exc:
            logger.warning("Could not rename %s -> %s: %s", item.folder_name, item.expected_name, exc)
            result.failures.append(
                RepairFailure(
                    sprint_path=item.sprint_path,
                    folder_name=item.folder_name,
                    target_name=item.expected_name,
                    cause=str(exc),
                    error=exc,
                )
            )
            return
        result.repaired.append(item.expected_name)

    def _rewrite_marker(self, item: Inconsistency, result: RepairResult) -> None:
        if item.folder_status is None:
            result.failures.append(
                RepairFailure(
                    sprint_path=item.sprint_path,
                    folder_name=item.folder_name,
                    target_name=item.folder_name,
                    cause="marker unreadable and folder name has no status prefix",
                )
            )
            return
        try:
            status_store.write_status(item.sprint_path, item.folder_status)
        except OSError as exc:
            result.failures.append(
                RepairFailure(
                    sprint_path=item.sprint_path,
                    folder_name=item.folder_name,
                    target_name=item.folder_name,
                    cause=str(exc),
                    error=exc,
                )
            )
            return
        result.repaired.append(item.folder_name)

    def check_pointer(self) -> PointerCheck:
        """Validate the current pointer against marker-derived status.

        No pointer is fine while no sprint is active.
        """
        target = self.repository.current_pointer()
        if target is None:
            active = self.repository.with_status(SprintStatus.ACTIVE)
            if active:
                return PointerCheck(
                    False, None, f"no current pointer but {active[0].folder_name} is active"
                )
            return PointerCheck(True, None, "no current pointer and no active sprint")

        if not target.is_dir():
            logger.warning("Current pointer is dangling: %s", target)
            return PointerCheck(False, target, f"pointer target {target.name} does not exist")

        try:
            status = status_store.effective_status(target)
        except CorruptMarkerError as exc:
            return PointerCheck(False, target, str(exc))
        if status is not SprintStatus.ACTIVE:
            found = status.value if status else "unknown"
            return PointerCheck(False, target, f"pointer target {target.name} is {found}, not active")
        return PointerCheck(True, target, "ok")

    def report(self, token: CancellationToken | None = None) -> DoctorReport:
        return DoctorReport(inconsistencies=self.detect(token), pointer=self.check_pointer())
