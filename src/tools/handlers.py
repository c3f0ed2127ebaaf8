"""Pure handler functions for sprint MCP tools.

Each handler takes (args, services) and returns MCP result format.
No SDK dependency, so handlers are testable against a temporary workspace.
"""

import json
from typing import Any

from ..services.factory import Services
from ..workflow.exceptions import SprintError
from ..workflow.models import (
    BurndownDataPoint,
    Inconsistency,
    PointerCheck,
    RepairResult,
    Sprint,
    SprintStatus,
)


def _text_result(text: str) -> dict[str, Any]:
    """Build MCP tool result with a text content block."""
    return {"content": [{"type": "text", "text": text}]}


def _json_result(data: Any) -> dict[str, Any]:
    """Build MCP tool result with JSON-serialized content."""
    return _text_result(json.dumps(data, indent=2, default=str))


def _error_result(exc: Exception) -> dict[str, Any]:
    return _text_result(f"Error: {exc}")


# --- Serialization ---


def sprint_to_dict(sprint: Sprint) -> dict[str, Any]:
    return {
        "identifier": sprint.identifier,
        "folder": sprint.folder_name,
        "path": str(sprint.path),
        "status": sprint.status.value,
        "description": sprint.description,
        "start_date": sprint.start_date.isoformat() if sprint.start_date else None,
        "end_date": sprint.end_date.isoformat() if sprint.end_date else None,
        "duration": sprint.duration,
    }


def inconsistency_to_dict(item: Inconsistency) -> dict[str, Any]:
    return {
        "kind": item.kind.value,
        "sprint_path": str(item.sprint_path),
        "folder_name": item.folder_name,
        "folder_status": item.folder_status.value if item.folder_status else None,
        "marker_status": item.marker_status.value if item.marker_status else None,
        "expected_name": item.expected_name,
        "detail": item.detail,
    }


def pointer_to_dict(pointer: PointerCheck) -> dict[str, Any]:
    return {
        "valid": pointer.valid,
        "target": str(pointer.target) if pointer.target else None,
        "reason": pointer.reason,
    }


def repair_to_dict(result: RepairResult) -> dict[str, Any]:
    return {
        "repaired_count": result.repaired_count,
        "failed_count": result.failed_count,
        "repaired": list(result.repaired),
        "failures": [
            {
                "sprint_path": str(f.sprint_path),
                "folder_name": f.folder_name,
                "target_name": f.target_name,
                "cause": f.cause,
            }
            for f in result.failures
        ],
    }


def burndown_to_dict(point: BurndownDataPoint) -> dict[str, Any]:
    return {
        "date": point.date.isoformat(),
        "remaining_tasks": point.remaining_tasks,
        "total_tasks": point.total_tasks,
        "remaining_points": point.remaining_points,
        "total_points": point.total_points,
    }


# --- Handlers ---


async def doctor_check_handler(args: dict[str, Any], services: Services) -> dict[str, Any]:
    """Report folder/marker drift and current-pointer health. Never mutates."""
    try:
        report = services.doctor.report()
    except SprintError as exc:
        return _error_result(exc)
    return _json_result(
        {
            "healthy": report.healthy,
            "inconsistencies": [inconsistency_to_dict(i) for i in report.inconsistencies],
            "pointer": pointer_to_dict(report.pointer),
        }
    )


async def doctor_repair_handler(args: dict[str, Any], services: Services) -> dict[str, Any]:
    """Detect and repair drift in one sweep."""
    try:
        found = services.doctor.detect()
        result = services.doctor.repair(found)
    except SprintError as exc:
        return _error_result(exc)
    data = repair_to_dict(result)
    data["pointer"] = pointer_to_dict(services.doctor.check_pointer())
    return _json_result(data)


async def activate_sprint_handler(args: dict[str, Any], services: Services) -> dict[str, Any]:
    """Activate a sprint by identifier, archiving the previous active sprint."""
    identifier = args.get("sprint_id", "")
    if not identifier:
        return _text_result("Error: sprint_id is required")
    try:
        result = services.status.activate(identifier)
    except SprintError as exc:
        return _error_result(exc)
    return _json_result(
        {
            "activated": sprint_to_dict(result.activated),
            "archived": sprint_to_dict(result.archived) if result.archived else None,
        }
    )


async def sprint_burndown_handler(args: dict[str, Any], services: Services) -> dict[str, Any]:
    """Daily burndown for a sprint, or for the current sprint when none is given."""
    identifier = args.get("sprint_id") or None
    try:
        sprint, points = services.burndown.generate_for(identifier)
    except SprintError as exc:
        return _error_result(exc)
    return _json_result(
        {
            "sprint": sprint.identifier,
            "points": [burndown_to_dict(p) for p in points],
        }
    )


async def list_sprints_handler(args: dict[str, Any], services: Services) -> dict[str, Any]:
    """List sprints, optionally filtered by status."""
    status = args.get("status") or None
    try:
        sprints = services.repository.sprints()
        if status:
            wanted = SprintStatus.parse(status)
            sprints = [s for s in sprints if s.status is wanted]
    except SprintError as exc:
        return _error_result(exc)
    return _json_result([sprint_to_dict(s) for s in sprints])
