"""CLI entry point for sprint lifecycle, doctor and burndown.

Usage:
  sprintctl list [--status STATUS] [--json]
  sprintctl plan DESCRIPTION [--id ID]
  sprintctl start [--id ID] [--description TEXT] [--start-date YYYY-MM-DD] [--duration 2w] [--ready]
  sprintctl activate SPRINT
  sprintctl promote SPRINT
  sprintctl archive SPRINT
  sprintctl close [SPRINT] [--rollover-to SPRINT] [--tasks ID,ID | --all]
  sprintctl doctor [--fix] [--json]
  sprintctl burndown [SPRINT] [--json]

Global options: --repo PATH, --config FILE, --log-level LEVEL
"""

from __future__ import annotations

import argparse
import json
import signal
import sys
from contextlib import contextmanager
from datetime import date


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="sprintctl", description="Sprint status and burndown CLI")
    parser.add_argument("--repo", default=".", help="Repository root (default: .)")
    parser.add_argument("--config", default=None, help="Config file (default: <repo>/.sprintctl/config.yaml)")
    parser.add_argument("--log-level", default=None, help="Log level (debug, info, warning, error)")
    subparsers = parser.add_subparsers(dest="command")

    list_parser = subparsers.add_parser("list", help="List sprints")
    list_parser.add_argument("--status", default=None, help="Only sprints with this status")
    list_parser.add_argument("--json", action="store_true", help="Print JSON")

    plan_parser = subparsers.add_parser("plan", help="Create a sprint in Planning status")
    plan_parser.add_argument("description", help="Sprint description")
    plan_parser.add_argument("--id", dest="identifier", default=None, help="Sprint identifier (default: next Sprint_NN)")

    start_parser = subparsers.add_parser("start", help="Start a new dated sprint")
    start_parser.add_argument("--id", dest="identifier", default=None, help="Sprint identifier (default: next Sprint_NN)")
    start_parser.add_argument("--description", default=None, help="Sprint description")
    start_parser.add_argument("--start-date", type=date.fromisoformat, default=None, help="Start date (default: today)")
    start_parser.add_argument("--duration", default=None, help="Duration such as 2w or 10d")
    start_parser.add_argument("--ready", action="store_true", help="Create as Ready instead of activating")

    for name, text in (
        ("activate", "Activate a Ready or Planning sprint"),
        ("promote", "Promote a Planning sprint to Ready"),
        ("archive", "Archive a sprint"),
    ):
        sub = subparsers.add_parser(name, help=text)
        sub.add_argument("sprint", help="Full or partial sprint identifier")

    close_parser = subparsers.add_parser("close", help="Close the active sprint")
    close_parser.add_argument("sprint", nargs="?", default=None, help="Sprint to close (default: current)")
    close_parser.add_argument("--rollover-to", default=None, help="Move unfinished stories into this sprint")
    group = close_parser.add_mutually_exclusive_group()
    group.add_argument("--tasks", default=None, help="Comma-separated story IDs to roll over")
    group.add_argument("--all", action="store_true", help="Roll over every unfinished story")

    doctor_parser = subparsers.add_parser("doctor", help="Check folder names against status markers")
    doctor_parser.add_argument("--fix", action="store_true", help="Rename drifted folders")
    doctor_parser.add_argument("--json", action="store_true", help="Print JSON")

    burndown_parser = subparsers.add_parser("burndown", help="Show sprint burndown from git history")
    burndown_parser.add_argument("sprint", nargs="?", default=None, help="Sprint (default: current)")
    burndown_parser.add_argument("--json", action="store_true", help="Print JSON")

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    from src.workflow.exceptions import PartialRepairError, SprintError

    commands = {
        "list": _list_command,
        "plan": _plan_command,
        "start": _start_command,
        "activate": _activate_command,
        "promote": _promote_command,
        "archive": _archive_command,
        "close": _close_command,
        "doctor": _doctor_command,
        "burndown": _burndown_command,
    }
    try:
        commands[args.command](args)
    except PartialRepairError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(2)
    except SprintError as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


def _services(args):
    from src.config import load_config
    from src.logging_utils import configure_logging
    from src.services.factory import build_services

    config = load_config(args.repo, args.config)
    configure_logging(args.log_level or config.log_level, log_file=config.log_file)
    return build_services(config)


@contextmanager
def _interruptible():
    """Yield a cancellation token set by the first Ctrl-C."""
    from src.workflow.cancellation import CancellationToken

    token = CancellationToken()

    def _on_interrupt(signum, frame):
        if token.cancelled:
            raise KeyboardInterrupt
        token.cancel("interrupted")

    previous = signal.signal(signal.SIGINT, _on_interrupt)
    try:
        yield token
    finally:
        signal.signal(signal.SIGINT, previous)


def _print_json(data) -> None:
    print(json.dumps(data, indent=2, default=str))


def _describe(sprint) -> str:
    dates = ""
    if sprint.start_date:
        dates = f"  {sprint.start_date} -> {sprint.end_date}"
    return f"{sprint.folder_name} [{sprint.status.value}]{dates}"


def _list_command(args) -> None:
    from src.tools.handlers import sprint_to_dict
    from src.workflow.models import SprintStatus

    services = _services(args)
    sprints = services.repository.sprints()
    if args.status:
        wanted = SprintStatus.parse(args.status)
        sprints = [s for s in sprints if s.status is wanted]

    if args.json:
        _print_json([sprint_to_dict(s) for s in sprints])
        return
    if not sprints:
        print("No sprints found.")
        return

    current = services.repository.current_pointer()
    for sprint in sprints:
        marker = "*" if current is not None and sprint.path == current else " "
        description = sprint.description or ""
        dates = f"{sprint.start_date} -> {sprint.end_date}" if sprint.start_date else ""
        print(f"{marker} {sprint.status.display_name:<9} {sprint.identifier:<16} {description:<24} {dates}".rstrip())


def _plan_command(args) -> None:
    services = _services(args)
    sprint = services.plan.create_planning_sprint(args.description, identifier=args.identifier)
    print(f"Planned {_describe(sprint)}")


def _start_command(args) -> None:
    from src.services.start import StartSprintRequest
    from src.workflow.models import SprintStatus

    services = _services(args)
    request = StartSprintRequest(
        identifier=args.identifier,
        description=args.description,
        start_date=args.start_date,
        duration=args.duration,
        status=SprintStatus.READY if args.ready else SprintStatus.ACTIVE,
    )
    sprint = services.start.start_sprint(request)
    print(f"Started {_describe(sprint)}")


def _activate_command(args) -> None:
    services = _services(args)
    result = services.status.activate(args.sprint)
    if result.archived is not None:
        print(f"Archived {_describe(result.archived)}")
    print(f"Activated {_describe(result.activated)}")


def _promote_command(args) -> None:
    services = _services(args)
    print(f"Promoted {_describe(services.status.promote(args.sprint))}")


def _archive_command(args) -> None:
    services = _services(args)
    print(f"Archived {_describe(services.status.archive(args.sprint))}")


def _close_command(args) -> None:
    from src.services.close import CloseRequest

    services = _services(args)
    request = CloseRequest(identifier=args.sprint, rollover_to=args.rollover_to)
    if args.rollover_to:
        if args.tasks is not None:
            request.selected_ids = [t.strip() for t in args.tasks.split(",") if t.strip()]
        elif not args.all:
            from sprint_tui.picker import TuiTaskSelector

            request.selector = TuiTaskSelector()

    result = services.close.close(request)
    print(f"Closed {_describe(result.archived)}")
    if result.target is not None:
        print(f"Rolled over {len(result.rolled_over)} stories to {result.target.identifier}")
        for story_id in result.rolled_over:
            print(f"  - {story_id}")


def _doctor_command(args) -> None:
    from src.tools.handlers import inconsistency_to_dict, pointer_to_dict, repair_to_dict
    from src.workflow.exceptions import OperationCancelled

    services = _services(args)
    with _interruptible() as token:
        found = services.doctor.detect(token)
        result = None
        if args.fix and found:
            try:
                result = services.doctor.repair(found, token)
            except OperationCancelled as e:
                result = e.partial
                print("Repair interrupted; renames already made are kept.", file=sys.stderr)
    pointer = services.doctor.check_pointer()

    if args.json:
        data = {
            "inconsistencies": [inconsistency_to_dict(i) for i in found],
            "pointer": pointer_to_dict(pointer),
        }
        if result is not None:
            data["repair"] = repair_to_dict(result)
        _print_json(data)
    else:
        _print_doctor(found, pointer, result)

    if result is not None:
        result.raise_for_failures()
    if (found and not args.fix) or not pointer.valid:
        sys.exit(1)


def _print_doctor(found, pointer, result) -> None:
    if not found:
        print("All sprint folders match their status markers.")
    for item in found:
        print(f"  {item.folder_name} -> {item.expected_name}  ({item.detail})")
    if result is not None:
        print(f"Repaired {result.repaired_count}, failed {result.failed_count}")
        for failure in result.failures:
            print(f"  FAIL {failure.folder_name} -> {failure.target_name}: {failure.cause}")
    elif found:
        print(f"{len(found)} inconsistencies found. Run 'sprintctl doctor --fix' to repair.")
    state = "ok" if pointer.valid else "INVALID"
    print(f"Current pointer: {state} ({pointer.reason})")


def _burndown_command(args) -> None:
    from src.tools.handlers import burndown_to_dict

    services = _services(args)
    with _interruptible() as token:
        sprint, points = services.burndown.generate_for(args.sprint, token)

    if args.json:
        _print_json({"sprint": sprint.identifier, "points": [burndown_to_dict(p) for p in points]})
        return

    print(f"Burndown for {sprint.identifier}")
    show_points = any(p.total_points is not None for p in points)
    header = f"{'DATE':<12}{'REMAINING':>10}{'TOTAL':>8}"
    if show_points:
        header += f"{'PTS LEFT':>10}{'PTS':>6}"
    print(header)
    for p in points:
        line = f"{p.date.isoformat():<12}{p.remaining_tasks:>10}{p.total_tasks:>8}"
        if show_points:
            line += f"{p.remaining_points:>10}{p.total_points:>6}"
        print(line)


if __name__ == "__main__":
    main()
