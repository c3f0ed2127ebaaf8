"""Markdown story files with YAML frontmatter.

    ---
    id: US-001
    title: Login form
    status: doing
    priority: high
    points: 3
    ---
    Body text...
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from pathlib import Path

import yaml

from src.logging_utils import get_logger
from src.workflow.exceptions import StoryParseError
from src.workflow.models import Priority, Story, StoryStatus

logger = get_logger(__name__)

_FRONTMATTER = re.compile(r"^---\s*\n(.*?)\n---[ \t]*(?:\n|$)", re.DOTALL)
_POINT_KEYS = ("points", "estimate_points", "estimate")


def split_frontmatter(text: str) -> tuple[dict, str]:
    """Return (frontmatter mapping, body). Raises yaml.YAMLError on bad YAML."""
    match = _FRONTMATTER.match(text)
    if not match:
        return {}, text
    meta = yaml.safe_load(match.group(1)) or {}
    return meta, text[match.end():].lstrip("\n")


class MarkdownStoryParser:
    """Parses story bytes into Story objects."""

    def parse(self, content: bytes, source: str = "<bytes>") -> Story:
        try:
            text = content.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StoryParseError(source, f"not UTF-8: {exc}") from exc

        try:
            meta, body = split_frontmatter(text)
        except yaml.YAMLError as exc:
            raise StoryParseError(source, f"invalid YAML frontmatter: {exc}") from exc
        if not isinstance(meta, dict):
            raise StoryParseError(source, "frontmatter must be a mapping")

        story_id = meta.get("id")
        if story_id is None or str(story_id).strip() == "":
            raise StoryParseError(source, "missing required field 'id'")

        return Story(
            id=str(story_id).strip(),
            title=str(meta.get("title") or ""),
            status=_enum(StoryStatus, meta.get("status"), StoryStatus.TODO, "status", source),
            priority=_enum(Priority, meta.get("priority"), Priority.MEDIUM, "priority", source),
            points=_points(meta, source),
            assignee=str(meta["assignee"]) if meta.get("assignee") else None,
            created_at=_timestamp(meta.get("created_at")),
            updated_at=_timestamp(meta.get("updated_at")),
            tags=_tags(meta.get("tags")),
            body=body,
        )

    def read(self, path: Path) -> Story:
        story = self.parse(Path(path).read_bytes(), source=str(path))
        story.path = Path(path)
        return story


def _enum(enum_cls, value, default, field_name: str, source: str):
    if value is None or str(value).strip() == "":
        return default
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        valid = ", ".join(e.value for e in enum_cls)
        raise StoryParseError(
            source, f"invalid {field_name} {value!r} (must be one of: {valid})"
        ) from None


def _points(meta: dict, source: str) -> int | None:
    for key in _POINT_KEYS:
        value = meta.get(key)
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            raise StoryParseError(source, f"invalid {key} {value!r}")
        try:
            points = int(value)
        except (TypeError, ValueError):
            raise StoryParseError(source, f"invalid {key} {value!r}") from None
        if points < 0:
            raise StoryParseError(source, f"{key} cannot be negative")
        return points
    return None


def _tags(value) -> list[str]:
    if not value:
        return []
    if isinstance(value, str):
        return [t.strip() for t in value.split(",") if t.strip()]
    return [str(t) for t in value]


def _timestamp(value) -> datetime | None:
    if value is None:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None


# --- Story files on disk ---


def list_stories(
    directory: Path,
    parser: MarkdownStoryParser | None = None,
    recursive: bool = False,
) -> list[Story]:
    """Parse every ``*.md`` story in ``directory``; unparsable files are skipped."""
    parser = parser or MarkdownStoryParser()
    pattern = "**/*.md" if recursive else "*.md"
    stories = []
    for path in sorted(Path(directory).glob(pattern)):
        try:
            stories.append(parser.read(path))
        except StoryParseError as exc:
            logger.warning("Skipping %s", exc)
    return stories


def update_frontmatter(path: Path, **changes) -> None:
    """Rewrite selected frontmatter keys, keeping every other key and the body."""
    path = Path(path)
    text = path.read_text(encoding="utf-8")
    try:
        meta, body = split_frontmatter(text)
    except yaml.YAMLError as exc:
        raise StoryParseError(str(path), f"invalid YAML frontmatter: {exc}") from exc
    meta = dict(meta)
    for key, value in changes.items():
        if isinstance(value, datetime):
            value = value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
        meta[key] = value
    rendered = yaml.safe_dump(meta, sort_keys=False, allow_unicode=True)
    path.write_text(f"---\n{rendered}---\n\n{body}", encoding="utf-8")
