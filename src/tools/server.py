"""MCP server factory binding sprint tool handlers to a workspace."""

from typing import Any

from claude_agent_sdk import create_sdk_mcp_server, tool

from ..services.factory import Services
from . import handlers


def create_sprint_server(services: Services):
    """Create an MCP server exposing doctor, activation, burndown and listing tools.

    Each handler is bound to the workspace services via closure so the @tool
    wrappers are clean single-argument async functions as the SDK expects.
    """

    @tool(
        "doctor_check",
        "Report sprints whose folder prefix disagrees with their status marker, and whether the Current pointer is valid. Read-only.",
        {},
    )
    async def doctor_check(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.doctor_check_handler(args, services)

    @tool(
        "doctor_repair",
        "Rename drifted sprint folders to match their status markers. Reports every repair and every failure.",
        {},
    )
    async def doctor_repair(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.doctor_repair_handler(args, services)

    @tool(
        "activate_sprint",
        "Activate a Ready or Planning sprint by full or partial identifier. The previously active sprint is archived.",
        {"sprint_id": str},
    )
    async def activate_sprint(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.activate_sprint_handler(args, services)

    @tool(
        "sprint_burndown",
        "Day-by-day remaining tasks and points reconstructed from git history. Omit sprint_id for the current sprint.",
        {"sprint_id": str},
    )
    async def sprint_burndown(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.sprint_burndown_handler(args, services)

    @tool(
        "list_sprints",
        "List sprints with status and dates. Filter by status (planning, ready, active, archived).",
        {"status": str},
    )
    async def list_sprints(args: dict[str, Any]) -> dict[str, Any]:
        return await handlers.list_sprints_handler(args, services)

    return create_sdk_mcp_server(
        name="sprintctl",
        version="0.1.0",
        tools=[doctor_check, doctor_repair, activate_sprint, sprint_burndown, list_sprints],
    )
