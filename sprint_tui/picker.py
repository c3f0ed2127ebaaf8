"""Task picker TUI: choose which unfinished stories roll over at sprint close."""

from __future__ import annotations

from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Vertical
from textual.widgets import Footer, Header, SelectionList, Static

from src.workflow.exceptions import SelectionCancelled
from src.workflow.models import Priority, Story

PRIORITY_COLORS = {
    Priority.CRITICAL: "red",
    Priority.HIGH: "yellow",
    Priority.MEDIUM: "cyan",
    Priority.LOW: "dim",
}


def _label(story: Story) -> str:
    color = PRIORITY_COLORS.get(story.priority, "white")
    points = f" [dim]{story.points}pt[/]" if story.points is not None else ""
    return f"[bold {color}]{story.id}[/] {story.title} [dim]({story.status.value})[/]{points}"


class TaskPickerApp(App[list[str] | None]):
    """Multi-select list of stories. Space toggles, Enter confirms, Escape cancels."""

    CSS = """
    #picker { height: 1fr; padding: 0 1; }
    #picker-title { padding: 1 0; }
    #picker-count { color: $text-muted; padding-top: 1; }
    """

    BINDINGS = [
        Binding("enter", "confirm", "Confirm", priority=True),
        Binding("escape", "cancel", "Cancel"),
        Binding("a", "select_all", "All"),
        Binding("n", "select_none", "None"),
    ]

    def __init__(self, candidates: list[Story], title: str = "Roll over unfinished stories") -> None:
        super().__init__()
        self.candidates = candidates
        self.picker_title = title

    def compose(self) -> ComposeResult:
        yield Header()
        with Vertical(id="picker"):
            yield Static(f"[bold]{self.picker_title}[/]", id="picker-title")
            yield SelectionList[str](
                *[(_label(s), s.id, True) for s in self.candidates],
                id="picker-options",
            )
            yield Static("", id="picker-count")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "sprintctl"
        self.query_one("#picker-options", SelectionList).focus()
        self._update_count()

    @on(SelectionList.SelectedChanged, "#picker-options")
    def _on_selection_changed(self) -> None:
        self._update_count()

    def _update_count(self) -> None:
        selected = len(self.query_one("#picker-options", SelectionList).selected)
        self.query_one("#picker-count", Static).update(
            f"{selected} of {len(self.candidates)} selected"
        )

    def action_confirm(self) -> None:
        selected = set(self.query_one("#picker-options", SelectionList).selected)
        self.exit([s.id for s in self.candidates if s.id in selected])

    def action_cancel(self) -> None:
        self.exit(None)

    def action_select_all(self) -> None:
        self.query_one("#picker-options", SelectionList).select_all()

    def action_select_none(self) -> None:
        self.query_one("#picker-options", SelectionList).deselect_all()


class TuiTaskSelector:
    """TaskSelector that asks the user through TaskPickerApp."""

    def select_tasks(self, candidates: list[Story]) -> list[str]:
        if not candidates:
            return []
        result = TaskPickerApp(candidates).run()
        if result is None:
            raise SelectionCancelled("Rollover selection cancelled")
        return result
