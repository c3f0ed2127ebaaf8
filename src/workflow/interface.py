"""Capability protocols for collaborators the sprint core depends on."""

from __future__ import annotations

from typing import Iterable, Protocol

from .models import CommitRecord, Story


class StoryParser(Protocol):
    """Turns the raw bytes of a story file into a Story.

    Must raise StoryParseError for content it cannot interpret and treat
    missing optional fields (assignee, points, timestamps) as absent.
    """

    def parse(self, content: bytes, source: str = "<bytes>") -> Story: ...


class VersionControl(Protocol):
    """Read-only view of commit history and file snapshots."""

    def commits_touching(self, paths: Iterable[str]) -> list[CommitRecord]:
        """Commits affecting any of ``paths``, oldest first."""
        ...

    def list_files(self, commit: str, paths: Iterable[str]) -> list[str]:
        """Files under ``paths`` as they existed at ``commit``."""
        ...

    def read_file(self, commit: str, path: str) -> bytes | None:
        """Content of ``path`` at ``commit``, or None if it did not exist."""
        ...


class TaskSelector(Protocol):
    """Interactive choice of stories, e.g. for rollover at sprint close.

    Returns the selected story IDs. Raises SelectionCancelled when the user
    backs out.
    """

    def select_tasks(self, candidates: list[Story]) -> list[str]: ...
