"""Persisted sprint state: status markers, sprint metadata and the current pointer.

Each sprint directory carries ``.sprintctl/status`` holding one lowercase
status token. That marker is authoritative; the folder-name prefix is a cache
of it. ``.sprintctl/sprint.yaml`` holds dates for started sprints.

The workspace-level pointer is a ``Current`` symlink inside the sprints
directory, or a ``Current.txt`` file holding a relative path where symlinks
are unavailable. Readers get a path back without any guarantee it still
exists; callers validate it.
"""

from __future__ import annotations

import os
import tempfile
from datetime import date
from pathlib import Path

import yaml

from src.logging_utils import get_logger
from src.workflow.exceptions import CorruptMarkerError, InvalidInputError
from src.workflow.models import SprintStatus

logger = get_logger(__name__)

MARKER_DIR = ".sprintctl"
STATUS_FILE = "status"
METADATA_FILE = "sprint.yaml"
POINTER_NAME = "Current"
POINTER_TEXT_NAME = "Current.txt"


def marker_path(sprint_dir: Path) -> Path:
    return Path(sprint_dir) / MARKER_DIR / STATUS_FILE


def _atomic_write(path: Path, text: str) -> None:
    """Write ``text`` to ``path`` so readers see either the old or the new content."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, temp_path = tempfile.mkstemp(prefix=f".{path.name}_", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(temp_path, path)
    except BaseException:
        if os.path.exists(temp_path):
            os.unlink(temp_path)
        raise


# --- Status marker ---


def read_status(sprint_dir: Path) -> SprintStatus | None:
    """Status recorded in the marker, or None when no marker exists.

    Raises CorruptMarkerError when the marker holds anything but a status token.
    """
    path = marker_path(sprint_dir)
    try:
        raw = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except UnicodeDecodeError:
        raise CorruptMarkerError(path, "<binary>") from None
    try:
        return SprintStatus.parse(raw)
    except InvalidInputError:
        raise CorruptMarkerError(path, raw.strip()) from None


def write_status(sprint_dir: Path, status: SprintStatus) -> None:
    path = marker_path(sprint_dir)
    _atomic_write(path, status.value + "\n")
    logger.info("Wrote status %s to %s", status.value, path)


def has_marker(sprint_dir: Path) -> bool:
    return marker_path(sprint_dir).is_file()


def effective_status(sprint_dir: Path) -> SprintStatus | None:
    """Marker status, falling back to the folder prefix for unmarked sprints.

    Returns None when neither source names a status.
    """
    status = read_status(sprint_dir)
    if status is not None:
        return status
    name = Path(sprint_dir).name
    return SprintStatus.from_prefix(name[0]) if name else None


# --- Sprint metadata ---


def read_metadata(sprint_dir: Path) -> dict:
    path = Path(sprint_dir) / MARKER_DIR / METADATA_FILE
    try:
        text = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        return {}
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as exc:
        logger.warning("Ignoring unreadable sprint metadata %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        return {}
    for key in ("start_date", "end_date"):
        value = data.get(key)
        if isinstance(value, str):
            try:
                data[key] = date.fromisoformat(value)
            except ValueError:
                data[key] = None
    return data


def write_metadata(
    sprint_dir: Path,
    start_date: date | None,
    end_date: date | None,
    duration: str | None,
) -> None:
    path = Path(sprint_dir) / MARKER_DIR / METADATA_FILE
    data = {
        "start_date": start_date.isoformat() if start_date else None,
        "end_date": end_date.isoformat() if end_date else None,
        "duration": duration,
    }
    _atomic_write(path, yaml.safe_dump(data, sort_keys=False))


# --- Current pointer ---


def read_current_pointer(sprints_dir: Path) -> Path | None:
    """Directory the current pointer names, or None when no pointer exists.

    The returned path may be dangling.
    """
    sprints_dir = Path(sprints_dir)
    link = sprints_dir / POINTER_NAME
    if link.is_symlink():
        target = Path(os.readlink(link))
        if not target.is_absolute():
            target = sprints_dir / target
        return Path(os.path.normpath(target))

    text_file = sprints_dir / POINTER_TEXT_NAME
    if text_file.is_file():
        raw = text_file.read_text(encoding="utf-8").strip()
        if not raw:
            return None
        target = Path(raw)
        if not target.is_absolute():
            target = sprints_dir / target
        return Path(os.path.normpath(target))
    return None


def write_current_pointer(sprints_dir: Path, target: Path) -> None:
    """Point ``Current`` at ``target``, replacing any existing pointer."""
    sprints_dir = Path(sprints_dir)
    relative = os.path.relpath(Path(target), sprints_dir)
    link = sprints_dir / POINTER_NAME
    temp_link = sprints_dir / f".{POINTER_NAME}.tmp"
    try:
        if temp_link.is_symlink() or temp_link.exists():
            temp_link.unlink()
        os.symlink(relative, temp_link, target_is_directory=True)
        os.replace(temp_link, link)
    except OSError as exc:
        logger.warning("Symlink pointer unavailable (%s), using %s", exc, POINTER_TEXT_NAME)
        if link.is_symlink():
            link.unlink()
        _atomic_write(sprints_dir / POINTER_TEXT_NAME, relative + "\n")
    else:
        (sprints_dir / POINTER_TEXT_NAME).unlink(missing_ok=True)
    logger.info("Current sprint pointer -> %s", relative)


def clear_current_pointer(sprints_dir: Path) -> None:
    sprints_dir = Path(sprints_dir)
    link = sprints_dir / POINTER_NAME
    if link.is_symlink():
        link.unlink()
    (sprints_dir / POINTER_TEXT_NAME).unlink(missing_ok=True)
    logger.info("Cleared current sprint pointer in %s", sprints_dir)


def is_pointer_entry(name: str) -> bool:
    return name in (POINTER_NAME, POINTER_TEXT_NAME, f".{POINTER_NAME}.tmp")
