"""Filesystem-backed sprint repository.

The sprints directory is the database: one subdirectory per sprint, its
name carrying a status prefix, its ``.sprintctl/status`` marker carrying the
authoritative status.
"""

from __future__ import annotations

import errno
import os
import re
import shutil
from datetime import date, timedelta
from pathlib import Path

from src.logging_utils import get_logger
from src.workflow.cancellation import CancellationToken, check
from src.workflow.exceptions import (
    AmbiguousSprintError,
    CorruptMarkerError,
    InvalidInputError,
    SprintExistsError,
    SprintNotFoundError,
)
from src.workflow.models import Sprint, SprintStatus

from . import naming, status_store

logger = get_logger(__name__)

DEFAULT_DURATION = "2w"

_DURATION = re.compile(r"^(\d+)([wWdD])$")


def parse_duration(duration: str | None) -> int:
    """Number of days in a ``<n>w`` / ``<n>d`` duration (default two weeks)."""
    if not duration:
        duration = DEFAULT_DURATION
    match = _DURATION.match(duration.strip())
    if not match:
        raise InvalidInputError(
            f"invalid duration {duration!r}: expected <number>w or <number>d"
        )
    count = int(match.group(1))
    if count <= 0:
        raise InvalidInputError(f"duration must be positive: {duration!r}")
    return count * 7 if match.group(2).lower() == "w" else count


def end_date_for(start: date, duration: str | None) -> date:
    return start + timedelta(days=parse_duration(duration))


def _is_sprint_folder(entry: Path) -> bool:
    name = entry.name
    if name.startswith(".") or status_store.is_pointer_entry(name):
        return False
    if entry.is_symlink() or not entry.is_dir():
        return False
    if SprintStatus.from_prefix(name[0]) is not None:
        return True
    return status_store.has_marker(entry) or name.lower().startswith("sprint")


class SprintRepository:
    """Lists, resolves, creates and renames sprint directories."""

    def __init__(self, sprints_dir: Path):
        self.sprints_dir = Path(sprints_dir)

    # --- Listing ---

    def list(self, token: CancellationToken | None = None) -> list[str]:
        """Sprint folder names, sorted lexicographically."""
        if not self.sprints_dir.is_dir():
            return []
        names = []
        for entry in self.sprints_dir.iterdir():
            check(token, "list sprints")
            if _is_sprint_folder(entry):
                names.append(entry.name)
        return sorted(names)

    def load(self, path: Path) -> Sprint:
        """Build a Sprint from a directory. The marker decides the status.

        Raises SprintNotFoundError if the directory is missing and
        CorruptMarkerError if its marker is unreadable.
        """
        path = Path(path)
        if not path.is_dir():
            raise SprintNotFoundError(str(path))

        status = status_store.effective_status(path)
        if status is None:
            raise SprintNotFoundError(
                path.name, "no status marker and no status prefix"
            )
        identifier, description = _identity(path.name)
        meta = status_store.read_metadata(path)
        return Sprint(
            identifier=identifier,
            path=path,
            status=status,
            description=description,
            start_date=meta.get("start_date"),
            end_date=meta.get("end_date"),
            duration=meta.get("duration"),
        )

    def sprints(self, token: CancellationToken | None = None) -> list[Sprint]:
        """Every sprint that can be loaded, in folder-name order.

        Sprints with a corrupt marker are listed under their folder-prefix
        status; the doctor reports them separately.
        """
        result = []
        for name in self.list(token):
            check(token, "list sprints")
            path = self.sprints_dir / name
            try:
                result.append(self.load(path))
            except CorruptMarkerError as exc:
                fallback = SprintStatus.from_prefix(name[0])
                logger.warning("%s", exc)
                if fallback is None:
                    continue
                identifier, description = _identity(name)
                result.append(Sprint(identifier, path, fallback, description))
            except SprintNotFoundError:
                logger.debug("Skipping %s: no status", name)
        return result

    def with_status(self, status: SprintStatus) -> list[Sprint]:
        return [s for s in self.sprints() if s.status is status]

    # --- Resolution ---

    def resolve(self, identifier: str) -> Sprint:
        """Find a sprint by full or partial identifier.

        An exact identifier (or exact folder name) wins. Otherwise a
        case-sensitive substring match must be unique.
        """
        if not identifier:
            raise InvalidInputError("sprint identifier cannot be empty")

        candidates = self.sprints()
        exact = [
            s for s in candidates
            if s.identifier == identifier or s.folder_name == identifier
        ]
        if len(exact) == 1:
            return exact[0]
        if len(exact) > 1:
            raise AmbiguousSprintError(identifier, [s.folder_name for s in exact])

        partial = [s for s in candidates if identifier in s.identifier]
        if not partial:
            raise SprintNotFoundError(identifier)
        if len(partial) > 1:
            raise AmbiguousSprintError(identifier, [s.folder_name for s in partial])
        return partial[0]

    def exists(self, path: Path) -> bool:
        return Path(path).exists()

    def identifier_taken(self, identifier: str) -> bool:
        """True if any sprint, under any status prefix, uses ``identifier``."""
        for name in self.list():
            if _identity(name)[0] == identifier or naming.strip_prefix(name) == identifier:
                return True
        return False

    # --- Mutation ---

    def create(
        self,
        path: Path,
        identifier: str,
        start_date: date | None = None,
        duration: str | None = None,
    ) -> Sprint:
        """Create the sprint directory and, for dated sprints, its metadata."""
        path = Path(path)
        naming.validate_identifier(identifier)
        end_date = end_date_for(start_date, duration) if start_date else None

        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            path.mkdir()
        except FileExistsError:
            raise SprintExistsError(path) from None

        if start_date:
            status_store.write_metadata(path, start_date, end_date, duration or DEFAULT_DURATION)
        logger.info("Created sprint directory %s", path)

        decoded = naming.try_decode(path.name)
        return Sprint(
            identifier=identifier,
            path=path,
            status=decoded.status if decoded else SprintStatus.PLANNING,
            description=decoded.description if decoded else None,
            start_date=start_date,
            end_date=end_date,
            duration=(duration or DEFAULT_DURATION) if start_date else None,
        )

    def rename(self, old_path: Path, new_path: Path, overwrite: bool = False) -> None:
        """Rename a sprint directory; refuses to replace an existing target."""
        old_path, new_path = Path(old_path), Path(new_path)
        if not old_path.is_dir():
            raise SprintNotFoundError(str(old_path))
        if new_path.exists() or new_path.is_symlink():
            if not overwrite:
                raise SprintExistsError(new_path, f"cannot rename {old_path.name}")
            if new_path.is_dir() and not new_path.is_symlink():
                shutil.rmtree(new_path)
            else:
                new_path.unlink()
        if os.name == "nt":
            os.rename(old_path, new_path)
        else:
            self._rename_into_placeholder(old_path, new_path)
        logger.info("Renamed %s -> %s", old_path.name, new_path.name)

    def _rename_into_placeholder(self, old_path: Path, new_path: Path) -> None:
        # The empty placeholder is the only directory rename() may replace.
        try:
            new_path.mkdir()
        except FileExistsError:
            raise SprintExistsError(new_path, f"cannot rename {old_path.name}") from None
        try:
            os.rename(old_path, new_path)
        except OSError as exc:
            try:
                new_path.rmdir()
            except OSError:
                pass
            if exc.errno in (errno.ENOTEMPTY, errno.EEXIST):
                raise SprintExistsError(new_path, f"cannot rename {old_path.name}") from exc
            raise

    def rename_to_status(self, sprint: Sprint, status: SprintStatus) -> Sprint:
        """Move ``sprint`` to the folder name carrying ``status``'s prefix."""
        target = sprint.path.with_name(naming.with_status(sprint.folder_name, status))
        if target != sprint.path:
            self.rename(sprint.path, target)
        sprint.path = target
        sprint.status = status
        return sprint

    def write_status(self, sprint: Sprint, status: SprintStatus) -> None:
        status_store.write_status(sprint.path, status)
        sprint.status = status

    def set_dates(self, sprint: Sprint, start: date, duration: str | None = None) -> None:
        sprint.duration = duration or sprint.duration or DEFAULT_DURATION
        sprint.start_date = start
        sprint.end_date = end_date_for(start, sprint.duration)
        status_store.write_metadata(sprint.path, sprint.start_date, sprint.end_date, sprint.duration)

    # --- Current pointer ---

    def current_pointer(self) -> Path | None:
        return status_store.read_current_pointer(self.sprints_dir)

    def set_current(self, sprint: Sprint) -> None:
        status_store.write_current_pointer(self.sprints_dir, sprint.path)

    def clear_current(self) -> None:
        status_store.clear_current_pointer(self.sprints_dir)

    def current_sprint(self) -> Sprint:
        """The sprint the pointer names; raises SprintNotFoundError if dangling."""
        target = self.current_pointer()
        if target is None:
            raise SprintNotFoundError("Current", "no current sprint pointer")
        if not target.is_dir():
            raise SprintNotFoundError("Current", f"pointer target {target} does not exist")
        return self.load(target)


def _identity(folder_name: str) -> tuple[str, str | None]:
    decoded = naming.try_decode(folder_name)
    if decoded is not None:
        return decoded.identifier, decoded.description
    return folder_name, None
