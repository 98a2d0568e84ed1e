"""Day-record store: the single source of truth for study data.

Every read and write of day entries goes through ``StudyStore``. The store
owns the in-memory mapping, overlays the holiday table at read time,
persists the whole mapping after each change and notifies subscribers.
Persistence, the holiday table and the clock are injected so a store can be
built fresh over an in-memory backend.
"""

from __future__ import annotations

import calendar
import json
import logging
from dataclasses import replace
from datetime import date, datetime, timezone, tzinfo
from pathlib import Path
from typing import Any, Callable

from studycal.analytics import compute_totals
from studycal.errors import ImportParseError, InvalidMinutesInput, StorageReadError, StorageWriteError
from studycal.filters import CalendarFilters
from studycal.fileio import dump_json
from studycal.holidays import get_holiday_map
from studycal.models import DayEntry, StudyData, Totals, study_data_from_dict, study_data_to_dict
from studycal.seed import seed_data
from studycal.storage import JsonDirectoryBackend, StudyDataStorage
from studycal.timeutil import date_key as make_date_key, elapsed_minutes, now_ms, parse_date_key, parse_minutes_input
from studycal.workspace import data_dir, get_user_timezone, seed_enabled, today as workspace_today, workspace_root

logger = logging.getLogger(__name__)

MUTABLE_FIELDS = frozenset({"crossed", "note", "minutes", "timer_start"})

Listener = Callable[[StudyData], None]


def export_filename(day: date) -> str:
    return f"study-calendar-backup-{day.isoformat()}.json"


def parse_snapshot(text: str | bytes) -> StudyData:
    """Parse an exported document. Raises ImportParseError if it is not a StudyData mapping."""
    try:
        raw = json.loads(text)
    except (json.JSONDecodeError, UnicodeDecodeError, TypeError) as e:
        raise ImportParseError(f"Malformed JSON: {e}") from e
    if not isinstance(raw, dict):
        raise ImportParseError("Expected a JSON object keyed by date")
    for key, value in raw.items():
        if not isinstance(value, dict):
            raise ImportParseError(f"Entry {key!r} is not an object")
    return study_data_from_dict(raw)


def _check_field(name: str, value: Any) -> None:
    """Raise ValueError if *value* has the wrong type for DayEntry field *name*."""
    if name == "crossed":
        ok = isinstance(value, bool)
    elif name == "note":
        ok = isinstance(value, str)
    elif name == "minutes":
        ok = isinstance(value, int) and not isinstance(value, bool)
    else:
        ok = value is None or (isinstance(value, int) and not isinstance(value, bool))
    if not ok:
        raise ValueError(f"Invalid value for {name}: {value!r}")


class StudyStore:
    def __init__(
        self,
        storage: StudyDataStorage,
        holidays: dict[str, str] | None = None,
        clock: Callable[[], int] = now_ms,
        seed: bool = True,
        today: Callable[[], date] | None = None,
        tz: tzinfo | None = None,
    ) -> None:
        self.storage = storage
        self.holidays = get_holiday_map() if holidays is None else dict(holidays)
        self.clock = clock
        self.tz = tz or timezone.utc
        self.today = today or (lambda: datetime.now(self.tz).date())
        self.last_save_ok = True
        self._data: StudyData = {}
        self._listeners: list[Listener] = []
        self._load(seed)

    # ── Loading & persistence ─────────────────────────────────

    def _load(self, seed: bool) -> None:
        try:
            stored = self.storage.load()
        except StorageReadError as e:
            logger.error("Failed to load study data, starting empty: %s", e)
            return

        if stored is not None:
            self._data = stored
            return

        if seed:
            self._data = seed_data(self.today())
            logger.info("No saved study data, loaded %d demo entries", len(self._data))
            self._save()

    def _save(self) -> None:
        try:
            self.storage.save(self._data)
            self.last_save_ok = True
        except StorageWriteError as e:
            # in-memory state stays as is
            self.last_save_ok = False
            logger.error("Failed to save study data: %s", e)

    def _commit(self, data: StudyData) -> None:
        self._data = data
        self._save()
        snapshot = self.data
        for listener in list(self._listeners):
            listener(snapshot)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register *listener* for state changes. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def data(self) -> StudyData:
        """Copy of the stored mapping (no holiday overlay)."""
        return {key: replace(entry) for key, entry in self._data.items()}

    # ── Reads ─────────────────────────────────────────────────

    def key_for(self, value: date | datetime) -> str:
        """Date key for a date or datetime, aware datetimes read in the store's timezone."""
        return make_date_key(value, self.tz)

    def get_entry(self, date_key: str) -> DayEntry:
        """Stored entry over defaults, with the holiday overlaid. Never fails."""
        stored = self._data.get(date_key)
        entry = replace(stored) if stored is not None else DayEntry(date_key=date_key)
        entry.holiday = self.holidays.get(date_key)
        return entry

    def entries(self, filters: CalendarFilters | None = None) -> list[DayEntry]:
        """All stored entries sorted by date, optionally filtered."""
        result = [self.get_entry(key) for key in sorted(self._data)]
        if filters is not None:
            result = [e for e in result if filters.matches(e)]
        return result

    def month_entries(self, year: int, month: int) -> dict[str, DayEntry]:
        """Every day of a month, stored or default."""
        days = calendar.monthrange(year, month)[1]
        keys = [date(year, month, day).isoformat() for day in range(1, days + 1)]
        return {key: self.get_entry(key) for key in keys}

    def running_timers(self) -> list[DayEntry]:
        return [e for e in self.entries() if e.is_timer_running]

    def compute_totals(self, reference_date: date | None = None) -> Totals:
        return compute_totals(self._data, reference_date or self.today())

    # ── Mutations ─────────────────────────────────────────────

    def update_entry(self, date_key: str, **fields: Any) -> DayEntry:
        """Shallow-merge *fields* into the entry for *date_key* and persist."""
        unknown = set(fields) - MUTABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update field(s): {', '.join(sorted(unknown))}")
        for name, value in fields.items():
            _check_field(name, value)
        parse_date_key(date_key)

        current = self._data.get(date_key) or DayEntry(date_key=date_key)
        updated = replace(current, **fields)
        updated.holiday = None

        data = dict(self._data)
        data[date_key] = updated
        self._commit(data)
        return self.get_entry(date_key)

    def toggle_completed(self, date_key: str) -> DayEntry:
        return self.update_entry(date_key, crossed=not self.get_entry(date_key).crossed)

    def set_note(self, date_key: str, note: str) -> DayEntry:
        return self.update_entry(date_key, note=(note or "").strip())

    def add_minutes(self, date_key: str, raw: int | str) -> DayEntry | None:
        """Add manually entered minutes. Invalid input is ignored."""
        try:
            minutes = parse_minutes_input(raw)
        except InvalidMinutesInput as e:
            logger.debug("Ignoring minute input for %s: %s", date_key, e)
            return None
        return self.update_entry(date_key, minutes=self.get_entry(date_key).minutes + minutes)

    def subtract_minutes(self, date_key: str, raw: int | str) -> DayEntry | None:
        """Remove manually entered minutes, never going below zero."""
        try:
            minutes = parse_minutes_input(raw)
        except InvalidMinutesInput as e:
            logger.debug("Ignoring minute input for %s: %s", date_key, e)
            return None
        return self.update_entry(date_key, minutes=max(0, self.get_entry(date_key).minutes - minutes))

    def start_timer(self, date_key: str) -> DayEntry:
        """Start the live timer. A timer already running keeps its start time."""
        entry = self.get_entry(date_key)
        if entry.is_timer_running:
            logger.debug("Timer already running for %s", date_key)
            return entry
        return self.update_entry(date_key, timer_start=self.clock())

    def stop_timer(self, date_key: str) -> int:
        """Stop the live timer and credit elapsed minutes. Returns the minutes added."""
        entry = self.get_entry(date_key)
        if entry.timer_start is None:
            return 0
        added = elapsed_minutes(entry.timer_start, self.clock())
        self.update_entry(date_key, minutes=entry.minutes + added, timer_start=None)
        return added

    def elapsed_seconds(self, date_key: str) -> int:
        """Seconds on the running timer, 0 when stopped. Display only."""
        entry = self.get_entry(date_key)
        if entry.timer_start is None:
            return 0
        return max(0, (self.clock() - entry.timer_start) // 1000)

    # ── Export / import ───────────────────────────────────────

    def export_snapshot(self) -> str:
        """Whole mapping as pretty-printed JSON."""
        return dump_json(study_data_to_dict(self._data))

    def import_snapshot(self, text: str | bytes) -> bool:
        """Replace the whole mapping with an exported document.

        Returns False and leaves state untouched if the document is malformed.
        """
        try:
            data = parse_snapshot(text)
        except ImportParseError as e:
            logger.warning("Import rejected: %s", e)
            return False
        self._commit(data)
        logger.info("Imported %d day entries", len(data))
        return True


def open_store(root: Path | None = None, **kwargs: Any) -> StudyStore:
    """Build a store over the workspace's JSON storage directory."""
    if root is None:
        root = workspace_root()
    kwargs.setdefault("seed", seed_enabled(root))
    kwargs.setdefault("today", lambda: workspace_today(root))
    kwargs.setdefault("tz", get_user_timezone(root))
    storage = StudyDataStorage(JsonDirectoryBackend(data_dir(root)))
    return StudyStore(storage, **kwargs)
