"""Sprint folder-name encoding.

A sprint directory name caches its status as a one-character prefix:

    !Sprint_07_Payments   active,   id "Sprint_07", description "Payments"
    @Sprint_08            planning, id "Sprint_08", no description
    ~Sprint-03_Spike      archived, id "Sprint-03", description "Spike"

The name is split at its last underscore. A purely numeric tail belongs to
the identifier, so ``Sprint_24`` never decodes as id ``Sprint`` with
description ``24``.
"""

from __future__ import annotations

import re
from typing import Iterable, NamedTuple

from src.workflow.exceptions import InvalidInputError, InvalidNameError
from src.workflow.models import RESERVED_CHARS, SprintStatus

_SEPARATORS = ("/", "\\")


class DecodedName(NamedTuple):
    status: SprintStatus
    identifier: str
    description: str | None


def decode(folder_name: str) -> DecodedName:
    """Split a prefixed folder name into (status, identifier, description)."""
    if not folder_name:
        raise InvalidNameError(folder_name, "folder name cannot be empty")

    status = SprintStatus.from_prefix(folder_name[0])
    if status is None:
        raise InvalidNameError(
            folder_name,
            "must start with a status prefix (" + ", ".join(RESERVED_CHARS) + ")",
        )

    rest = folder_name[1:]
    identifier, description = _split_identifier(rest)
    if not identifier:
        raise InvalidNameError(folder_name, "identifier cannot be empty")
    return DecodedName(status, identifier, description)


def try_decode(folder_name: str) -> DecodedName | None:
    try:
        return decode(folder_name)
    except InvalidNameError:
        return None


def _split_identifier(rest: str) -> tuple[str, str | None]:
    head, sep, tail = rest.rpartition("_")
    if not sep or tail.isdigit() or not tail:
        return rest, None
    return head, tail


def encode(
    status: SprintStatus,
    identifier: str,
    description: str | None = None,
) -> str:
    """Build the folder name for a sprint. Inverse of :func:`decode`."""
    validate_identifier(identifier)
    if description:
        validate_description(description)
    elif _split_identifier(identifier)[1] is not None:
        raise InvalidInputError(
            f"identifier {identifier!r} would be read back as identifier plus "
            "description; give it a numeric suffix or add a description"
        )

    if description:
        return f"{status.prefix}{identifier}_{description}"
    return f"{status.prefix}{identifier}"


def with_status(folder_name: str, status: SprintStatus) -> str:
    """Return ``folder_name`` carrying ``status``'s prefix.

    Names without a recognised prefix (legacy folders) get the prefix
    prepended; the rest of the name is kept verbatim.
    """
    if folder_name and SprintStatus.from_prefix(folder_name[0]) is not None:
        return status.prefix + folder_name[1:]
    return status.prefix + folder_name


def strip_prefix(folder_name: str) -> str:
    if folder_name and SprintStatus.from_prefix(folder_name[0]) is not None:
        return folder_name[1:]
    return folder_name


# --- Validation ---


def validate_identifier(identifier: str) -> None:
    if not identifier or not identifier.strip():
        raise InvalidInputError("sprint identifier cannot be empty")
    _reject_reserved("sprint identifier", identifier)


def validate_description(description: str) -> None:
    """Reject descriptions that would not survive an encode/decode cycle."""
    if not description or not description.strip():
        raise InvalidInputError("sprint description cannot be empty")
    _reject_reserved("sprint description", description)
    if "_" in description:
        raise InvalidInputError(
            f"sprint description cannot contain underscores: {description!r}"
        )
    if description.isdigit():
        raise InvalidInputError(
            f"sprint description cannot be purely numeric: {description!r}"
        )


def _reject_reserved(label: str, value: str) -> None:
    found = [c for c in RESERVED_CHARS if c in value]
    if found:
        raise InvalidInputError(
            f"{label} cannot contain status prefix characters: {', '.join(found)}"
        )
    if any(sep in value for sep in _SEPARATORS):
        raise InvalidInputError(f"{label} cannot contain path separators: {value!r}")


def normalize_description(text: str) -> str:
    """Turn free text into a folder-safe description ("Login flow" -> "Login-flow")."""
    return re.sub(r"[\s_]+", "-", text.strip()).strip("-")


# --- Identifier generation ---


def next_identifier(existing: Iterable[str], stem: str = "Sprint_") -> str:
    """Next sequential identifier after every ``<stem>NN`` seen.

    ``existing`` may hold folder names of any status prefix or bare
    identifiers. The stem's trailing separator is matched loosely, so
    ``Sprint_04`` and ``Sprint-04`` both count for stem ``Sprint_``.
    Returns ``<stem>01`` when nothing matches.
    """
    numbered = _stem_pattern(stem)
    highest = 0
    for name in existing:
        identifier, _ = _split_identifier(strip_prefix(name))
        match = numbered.fullmatch(identifier)
        if match:
            highest = max(highest, int(match.group(1)))
    return f"{stem}{highest + 1:02d}"


def _stem_pattern(stem: str) -> re.Pattern[str]:
    return re.compile(re.escape(stem.rstrip("_-")) + r"[_-]?(\d+)")
