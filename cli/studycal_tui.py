#!/usr/bin/env python3
"""Study calendar TUI — month view, day details and live timer, powered by Textual."""

from __future__ import annotations

import argparse
import calendar
import sys
from datetime import date
from pathlib import Path

from rich.text import Text
from textual import on
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.reactive import reactive
from textual.timer import Timer
from textual.widgets import (
    Checkbox,
    DataTable,
    Footer,
    Header,
    Input,
    Label,
    Static,
    TextArea,
)

from studycal import (
    CalendarFilters,
    StudyStore,
    exports_dir,
    format_elapsed,
    format_minutes,
    month_grid,
    open_store,
    parse_date_key,
    setup_logging,
    workspace_root,
)
from studycal.fileio import write_text_atomic
from studycal.store import export_filename
from studycal.timeutil import shift_month

WEEKDAYS = ["Sun", "Mon", "Tue", "Wed", "Thu", "Fri", "Sat"]


# ── Stylesheet ─────────────────────────────────────────────────

CSS = """
Screen {
    background: $surface;
}

#main-layout {
    height: 1fr;
}

#left-pane {
    width: 2fr;
    min-width: 50;
    border-right: tall $primary-background-darken-2;
    padding: 0 1;
}

#right-pane {
    width: 1fr;
    min-width: 30;
    padding: 0 1;
}

#calendar-grid {
    height: auto;
}

#totals-bar {
    height: auto;
    color: $text-muted;
    padding: 0 1;
    margin: 1 0 0 0;
}

.section-title {
    text-style: bold;
    color: $text;
    margin: 1 0 0 0;
    padding: 0 1;
}

.filter-row {
    height: auto;
}

.filter-row Checkbox {
    width: auto;
}

#holiday-label {
    color: $warning;
    padding: 0 1;
}

#timer-label {
    text-style: bold;
    padding: 0 1;
}

#minutes-input {
    width: 1fr;
}

#note-area {
    height: 8;
    min-height: 4;
}
"""


# ── Detail pane ────────────────────────────────────────────────


class DayDetail(Vertical):
    """Selected day: holiday, completion, minutes, timer and note."""

    def compose(self) -> ComposeResult:
        yield Label("", id="day-title", classes="section-title")
        yield Static(id="holiday-label")
        yield Static(id="day-status")
        yield Static(id="timer-label")
        yield Label("Minutes (a = add, x = subtract)", classes="section-title")
        yield Input(placeholder="e.g. 45", id="minutes-input")
        yield Label("Note (ctrl+s saves)", classes="section-title")
        yield TextArea(id="note-area")


# ── Main app ───────────────────────────────────────────────────


class StudyCalendarApp(App):
    """Study calendar — interactive terminal view."""

    TITLE = "Study Calendar"
    CSS = CSS
    AUTO_FOCUS = "#calendar-grid"

    BINDINGS = [
        Binding("[", "prev_month", "Prev"),
        Binding("]", "next_month", "Next"),
        Binding("g", "go_today", "Today"),
        Binding("c", "toggle_completed", "Done"),
        Binding("s", "toggle_timer", "Timer"),
        Binding("a", "add_minutes", "+Min"),
        Binding("x", "subtract_minutes", "-Min"),
        Binding("ctrl+s", "save_note", "Save Note"),
        Binding("/", "focus_search", "Search"),
        Binding("e", "export", "Export"),
        Binding("i", "focus_import", "Import"),
        Binding("escape", "blur_focus", "Back"),
        Binding("q", "quit_app", "Quit"),
    ]

    selected: reactive[date] = reactive(date.today)

    def __init__(self, store: StudyStore, root: Path) -> None:
        super().__init__()
        self.store = store
        self.root = root
        today = store.today()
        self.year = today.year
        self.month = today.month
        self._grid: list[list[date]] = []
        self._filters = CalendarFilters()
        self._tick: Timer | None = None
        self._unsubscribe = store.subscribe(lambda _data: self._refresh_all())

    def compose(self) -> ComposeResult:
        yield Header()
        yield Horizontal(
            VerticalScroll(
                Label("", id="month-title", classes="section-title"),
                DataTable(id="calendar-grid", cursor_type="cell", zebra_stripes=False),
                Static(id="totals-bar"),
                Label("Filters", classes="section-title"),
                Input(placeholder="search notes and holidays…", id="search"),
                Horizontal(
                    Checkbox("Notes only", id="f-notes"),
                    Checkbox("Completed only", id="f-completed"),
                    Checkbox("Time logged only", id="f-time"),
                    classes="filter-row",
                ),
                Label("Backup (e = export, i = import)", classes="section-title"),
                Input(placeholder="path to a backup .json, enter to import", id="import-path"),
                id="left-pane",
            ),
            DayDetail(id="right-pane"),
            id="main-layout",
        )
        yield Footer()

    def on_mount(self) -> None:
        table = self.query_one("#calendar-grid", DataTable)
        table.add_columns(*WEEKDAYS)
        self.selected = self.store.today()
        self._refresh_all()

    def on_unmount(self) -> None:
        self._stop_tick()
        self._unsubscribe()

    # ── Rendering ──────────────────────────────────────────────

    def _cell(self, d: date) -> Text:
        if d.month != self.month:
            return Text("")
        entry = self.store.get_entry(self.store.key_for(d))
        text = Text(f"{d.day:>2}")
        if entry.crossed:
            text.append(" ✓", style="green")
        if entry.holiday:
            text.append(" ★", style="yellow")
        if entry.minutes:
            text.append(f" {format_minutes(entry.minutes)}", style="cyan")
        if entry.is_timer_running:
            text.append(" ⏱", style="red")
        if entry.note:
            text.append(" ✎")
        if d == self.store.today():
            text.stylize("bold underline")
        if self._filters.is_active() and not self._filters.matches(entry):
            text.stylize("dim")
        return text

    def _refresh_grid(self) -> None:
        self.query_one("#month-title", Label).update(f"{calendar.month_name[self.month]} {self.year}")
        table = self.query_one("#calendar-grid", DataTable)
        table.clear()
        self._grid = month_grid(self.year, self.month)
        for week in self._grid:
            table.add_row(*(self._cell(d) for d in week))
        for r, week in enumerate(self._grid):
            if self.selected in week:
                table.move_cursor(row=r, column=week.index(self.selected))
                break

    def _refresh_totals(self) -> None:
        totals = self.store.compute_totals()
        self.query_one("#totals-bar", Static).update(
            f"Week {format_minutes(totals.weekly_minutes)}  ·  "
            f"Month {format_minutes(totals.monthly_minutes)}  ·  "
            f"Total {format_minutes(totals.total_minutes)}"
        )

    def _refresh_detail(self) -> None:
        key = self.store.key_for(self.selected)
        entry = self.store.get_entry(key)
        d = self.selected
        self.query_one("#day-title", Label).update(
            f"{calendar.day_name[d.weekday()]}, {calendar.month_name[d.month]} {d.day}, {d.year}"
        )
        self.query_one("#holiday-label", Static).update(entry.holiday or "")
        status = "✓ Completed" if entry.crossed else "Not completed"
        self.query_one("#day-status", Static).update(f"{status}  ·  {format_minutes(entry.minutes)} logged")

        note_area = self.query_one("#note-area", TextArea)
        if not note_area.has_focus:
            note_area.load_text(entry.note)

        if entry.is_timer_running:
            self._start_tick()
        else:
            self._stop_tick()
        self._refresh_timer_label()

    def _refresh_all(self) -> None:
        self._refresh_grid()
        self._refresh_totals()
        self._refresh_detail()
        running = self.store.running_timers()
        self.sub_title = f"⏱ {running[0].date_key}" if running else ""

    # ── Timer display tick ─────────────────────────────────────

    def _refresh_timer_label(self) -> None:
        key = self.store.key_for(self.selected)
        label = self.query_one("#timer-label", Static)
        if self.store.get_entry(key).is_timer_running:
            label.update(f"⏱ {format_elapsed(self.store.elapsed_seconds(key))}  (s to stop)")
        else:
            label.update("Timer stopped (s to start)")

    def _start_tick(self) -> None:
        if self._tick is None:
            self._tick = self.set_interval(1.0, self._refresh_timer_label)

    def _stop_tick(self) -> None:
        if self._tick is not None:
            self._tick.stop()
            self._tick = None

    # ── Events ─────────────────────────────────────────────────

    def watch_selected(self, old: date, new: date) -> None:
        if self.is_mounted and old != new:
            self._refresh_detail()

    @on(DataTable.CellHighlighted, "#calendar-grid")
    def _on_cell_highlighted(self, event: DataTable.CellHighlighted) -> None:
        # the cursor may have moved again since this event was posted
        coord = event.data_table.cursor_coordinate
        row, col = coord.row, coord.column
        if row < len(self._grid):
            d = self._grid[row][col]
            if d.month == self.month:
                self.selected = d

    @on(Input.Changed, "#search")
    def _on_search(self, event: Input.Changed) -> None:
        self._filters.search_query = event.value
        self._refresh_grid()

    @on(Checkbox.Changed)
    def _on_filter_toggle(self, event: Checkbox.Changed) -> None:
        name = event.checkbox.id or ""
        if name == "f-notes":
            self._filters.notes_only = event.value
        elif name == "f-completed":
            self._filters.completed_only = event.value
        elif name == "f-time":
            self._filters.time_logged_only = event.value
        self._refresh_grid()

    @on(Input.Submitted, "#minutes-input")
    def _on_minutes_submitted(self, event: Input.Submitted) -> None:
        self.action_add_minutes()

    @on(Input.Submitted, "#import-path")
    def _on_import_submitted(self, event: Input.Submitted) -> None:
        text = event.value.strip()
        if not text:
            return
        source = Path(text).expanduser()
        if import_from(self.store, source):
            event.input.value = ""
            self.notify(f"{len(self.store.data)} day entries", title="Imported")
            self._warn_if_unsaved()
            self.action_blur_focus()
        else:
            self.notify(f"Could not import {source}", title="Import failed", severity="error")

    # ── Actions ────────────────────────────────────────────────

    def _show_month(self, year: int, month: int) -> None:
        self.year, self.month = year, month
        if (self.selected.year, self.selected.month) != (year, month):
            self.selected = date(year, month, 1)
        self._refresh_grid()

    def action_prev_month(self) -> None:
        self._show_month(*shift_month(self.year, self.month, -1))

    def action_next_month(self) -> None:
        self._show_month(*shift_month(self.year, self.month, 1))

    def action_go_today(self) -> None:
        today = self.store.today()
        self.selected = today
        self._show_month(today.year, today.month)

    def action_toggle_completed(self) -> None:
        self.store.toggle_completed(self.store.key_for(self.selected))
        self._warn_if_unsaved()

    def action_toggle_timer(self) -> None:
        key = self.store.key_for(self.selected)
        if self.store.get_entry(key).is_timer_running:
            added = self.store.stop_timer(key)
            self.notify(f"Logged {format_minutes(added)}", title="Timer stopped")
        else:
            self.store.start_timer(key)
        self._warn_if_unsaved()

    def _minutes_input(self) -> str:
        field = self.query_one("#minutes-input", Input)
        value = field.value
        field.value = ""
        return value

    def action_add_minutes(self) -> None:
        if self.store.add_minutes(self.store.key_for(self.selected), self._minutes_input()) is None:
            self.notify("Enter a non-negative number of minutes", severity="warning")
        self._warn_if_unsaved()

    def action_subtract_minutes(self) -> None:
        if self.store.subtract_minutes(self.store.key_for(self.selected), self._minutes_input()) is None:
            self.notify("Enter a non-negative number of minutes", severity="warning")
        self._warn_if_unsaved()

    def action_save_note(self) -> None:
        note = self.query_one("#note-area", TextArea).text
        self.store.set_note(self.store.key_for(self.selected), note)
        self.notify("Note saved")
        self._warn_if_unsaved()

    def action_focus_search(self) -> None:
        self.query_one("#search", Input).focus()

    def action_export(self) -> None:
        try:
            path = export_to(self.store, exports_dir(self.root))
        except OSError as e:
            self.notify(str(e), title="Export failed", severity="error")
            return
        self.notify(str(path), title="Exported")

    def action_focus_import(self) -> None:
        self.query_one("#import-path", Input).focus()

    def action_blur_focus(self) -> None:
        self.query_one("#calendar-grid", DataTable).focus()

    def action_quit_app(self) -> None:
        self._stop_tick()
        self.exit()

    def _warn_if_unsaved(self) -> None:
        if not self.store.last_save_ok:
            self.notify("Changes could not be saved to disk", title="Storage error", severity="error")


# ── Non-interactive commands ───────────────────────────────────


def export_to(store: StudyStore, target: Path) -> Path:
    """Write a backup file into *target* (a directory) or to *target* itself."""
    if target.suffix != ".json":
        target = target / export_filename(store.today())
    write_text_atomic(target, store.export_snapshot(), suffix=".json")
    return target


def _cmd_export(store: StudyStore, args: argparse.Namespace) -> int:
    target = Path(args.out) if args.out else exports_dir(args.root)
    print(export_to(store, target))
    return 0


def import_from(store: StudyStore, source: Path) -> bool:
    """Replace all data with a backup file. False if it cannot be read or parsed."""
    try:
        raw = source.read_bytes()
    except OSError:
        return False
    return store.import_snapshot(raw)


def _cmd_import(store: StudyStore, args: argparse.Namespace) -> int:
    source = Path(args.file).expanduser()
    if not source.is_file():
        print(f"File not found: {args.file}", file=sys.stderr)
        return 1
    if not import_from(store, source):
        print("Import failed: not a valid study calendar backup", file=sys.stderr)
        return 1
    print(f"Imported {len(store.data)} day entries")
    return 0


def _cmd_totals(store: StudyStore, args: argparse.Namespace) -> int:
    reference = parse_date_key(args.date) if args.date else None
    totals = store.compute_totals(reference)
    print(f"This week:  {format_minutes(totals.weekly_minutes)}")
    print(f"This month: {format_minutes(totals.monthly_minutes)}")
    print(f"All time:   {format_minutes(totals.total_minutes)}")
    return 0


def _cmd_show(store: StudyStore, args: argparse.Namespace) -> int:
    entry = store.get_entry(args.date)
    print(entry.date_key + (f"  ({entry.holiday})" if entry.holiday else ""))
    print(f"  completed: {'yes' if entry.crossed else 'no'}")
    print(f"  minutes:   {format_minutes(entry.minutes)}")
    if entry.is_timer_running:
        print(f"  timer:     running {format_elapsed(store.elapsed_seconds(entry.date_key))}")
    if entry.note:
        print(f"  note:      {entry.note}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="studycal", description="Personal study-tracking calendar")
    ap.add_argument("--root", type=Path, default=None, help="Workspace directory (default: $STUDYCAL_ROOT or ~/study-calendar)")
    ap.add_argument("--log-level", default=None, help="Logging level (default: $STUDYCAL_LOG_LEVEL or WARNING)")
    sub = ap.add_subparsers(dest="command")

    sub.add_parser("tui", help="Open the interactive calendar (default)")

    p = sub.add_parser("export", help="Write a JSON backup")
    p.add_argument("--out", default=None, help="Output file or directory (default: <root>/exports)")

    p = sub.add_parser("import", help="Replace all data with a JSON backup")
    p.add_argument("file", help="Backup file to import")

    p = sub.add_parser("totals", help="Print weekly, monthly and total minutes")
    p.add_argument("--date", default=None, help="Reference date YYYY-MM-DD (default: today)")

    p = sub.add_parser("show", help="Print one day")
    p.add_argument("date", help="Date YYYY-MM-DD")
    return ap


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    if args.root is None:
        args.root = workspace_root()
    args.root = args.root.expanduser().resolve()

    date_arg = getattr(args, "date", None)
    if date_arg:
        try:
            parse_date_key(date_arg)
        except ValueError:
            print(f"Invalid date: {date_arg}", file=sys.stderr)
            return 2

    store = open_store(args.root)
    commands = {
        "export": _cmd_export,
        "import": _cmd_import,
        "totals": _cmd_totals,
        "show": _cmd_show,
    }
    handler = commands.get(args.command)
    if handler is not None:
        return handler(store, args)

    StudyCalendarApp(store, args.root).run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
