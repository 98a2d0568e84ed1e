"""Tests for studycal/store.py — day-record store operations."""

import json
from datetime import date, datetime, timezone
from zoneinfo import ZoneInfo

import pytest

from studycal.errors import StorageWriteError
from studycal.models import DayEntry
from studycal.storage import STORAGE_KEY, JsonDirectoryBackend, MemoryBackend, StudyDataStorage
from studycal.store import StudyStore, export_filename


def test_get_entry_defaults(store):
    entry = store.get_entry("2025-06-03")
    assert entry.crossed is False
    assert entry.note == ""
    assert entry.minutes == 0
    assert entry.timer_start is None
    assert entry.is_timer_running is False
    assert entry.holiday is None


def test_get_entry_holiday_overlay(store):
    entry = store.get_entry("2025-12-25")
    assert entry.holiday == "Christmas"
    assert store.data == {}


def test_get_entry_never_fails_on_garbage_key(store):
    entry = store.get_entry("not-a-date")
    assert entry.minutes == 0


def test_get_entry_not_persisted(store, backend):
    store.get_entry("2025-06-03")
    assert backend.get_item(STORAGE_KEY) is None


def test_update_entry_last_write_wins(store):
    store.update_entry("2025-06-03", minutes=10)
    store.update_entry("2025-06-03", minutes=25)
    assert store.get_entry("2025-06-03").minutes == 25


def test_update_entry_shallow_merge(store):
    store.update_entry("2025-06-03", note="Calculus")
    store.update_entry("2025-06-03", crossed=True)
    entry = store.get_entry("2025-06-03")
    assert entry.note == "Calculus"
    assert entry.crossed is True


def test_update_entry_persists_whole_mapping(store, backend):
    store.update_entry("2025-06-03", minutes=10)
    store.update_entry("2025-06-04", note="x")
    saved = json.loads(backend.get_item(STORAGE_KEY))
    assert set(saved) == {"2025-06-03", "2025-06-04"}
    assert saved["2025-06-03"]["minutes"] == 10


def test_update_entry_never_persists_holiday(store, backend):
    store.update_entry("2025-12-25", minutes=5)
    saved = json.loads(backend.get_item(STORAGE_KEY))
    assert "holiday" not in saved["2025-12-25"]
    assert store.get_entry("2025-12-25").holiday == "Christmas"


def test_update_entry_rejects_unknown_fields(store):
    with pytest.raises(ValueError, match="holiday"):
        store.update_entry("2025-06-03", holiday="My day")


def test_update_entry_rejects_bad_key(store):
    with pytest.raises(ValueError):
        store.update_entry("2025/06/03", minutes=1)


def test_update_entry_clamps_negative_minutes(store):
    store.update_entry("2025-06-03", minutes=-5)
    assert store.get_entry("2025-06-03").minutes == 0


@pytest.mark.parametrize("fields", [
    {"note": 5},
    {"crossed": "no"},
    {"minutes": "30"},
    {"minutes": 1.5},
    {"minutes": True},
    {"timer_start": "abc"},
])
def test_update_entry_rejects_wrong_types(store, backend, fields):
    with pytest.raises(ValueError):
        store.update_entry("2025-06-01", **fields)
    assert store.data == {}
    assert backend.get_item(STORAGE_KEY) is None


def test_update_entry_clears_timer_with_none(store):
    store.start_timer("2025-06-01")
    store.update_entry("2025-06-01", timer_start=None)
    assert store.get_entry("2025-06-01").is_timer_running is False

def test_toggle_completed(store):
    store.toggle_completed("2025-06-03")
    assert store.get_entry("2025-06-03").crossed is True
    store.toggle_completed("2025-06-03")
    assert store.get_entry("2025-06-03").crossed is False


def test_set_note_strips(store):
    store.set_note("2025-06-03", "  Chapter 4  \n")
    assert store.get_entry("2025-06-03").note == "Chapter 4"


# ── Timer ─────────────────────────────────────────────────────


def test_start_timer(store, clock):
    entry = store.start_timer("2025-06-02")
    assert entry.is_timer_running is True
    assert entry.timer_start == clock.now


def test_stop_timer_credits_rounded_minutes(store, clock):
    store.start_timer("2025-06-02")
    clock.advance(125_000)
    added = store.stop_timer("2025-06-02")
    entry = store.get_entry("2025-06-02")
    assert added == 2
    assert entry.minutes == 2
    assert entry.is_timer_running is False
    assert entry.timer_start is None


def test_stop_timer_rounds_half_up(store, clock):
    store.start_timer("2025-06-02")
    clock.advance(150_000)
    assert store.stop_timer("2025-06-02") == 3


def test_stop_timer_twice_is_idempotent(store, clock):
    store.start_timer("2025-06-02")
    clock.advance(10 * 60_000)
    store.stop_timer("2025-06-02")
    clock.advance(10 * 60_000)
    assert store.stop_timer("2025-06-02") == 0
    assert store.get_entry("2025-06-02").minutes == 10


def test_stop_timer_without_start_is_noop(store, backend):
    assert store.stop_timer("2025-06-02") == 0
    assert backend.get_item(STORAGE_KEY) is None


def test_start_timer_while_running_keeps_start(store, clock):
    store.start_timer("2025-06-02")
    started = clock.now
    clock.advance(5 * 60_000)
    entry = store.start_timer("2025-06-02")
    assert entry.timer_start == started
    clock.advance(5 * 60_000)
    assert store.stop_timer("2025-06-02") == 10


def test_stop_timer_adds_to_existing_minutes(store, clock):
    store.update_entry("2025-06-02", minutes=30)
    store.start_timer("2025-06-02")
    clock.advance(15 * 60_000)
    store.stop_timer("2025-06-02")
    assert store.get_entry("2025-06-02").minutes == 45


def test_elapsed_seconds(store, clock):
    assert store.elapsed_seconds("2025-06-02") == 0
    store.start_timer("2025-06-02")
    clock.advance(61_500)
    assert store.elapsed_seconds("2025-06-02") == 61


def test_running_timers(store):
    store.start_timer("2025-06-02")
    assert [e.date_key for e in store.running_timers()] == ["2025-06-02"]


# ── Manual minutes ────────────────────────────────────────────


def test_add_minutes_scenario(store):
    store.update_entry("2025-06-01", minutes=30)
    store.add_minutes("2025-06-01", "45")
    assert store.get_entry("2025-06-01").minutes == 75
    store.toggle_completed("2025-06-01")
    assert store.get_entry("2025-06-01").crossed is True
    totals = store.compute_totals(date(2025, 6, 20))
    assert totals.monthly_minutes == 75


@pytest.mark.parametrize("raw", ["abc", "", "-5", -5, None])
def test_add_minutes_invalid_input_is_noop(store, backend, raw):
    assert store.add_minutes("2025-06-01", raw) is None
    assert store.get_entry("2025-06-01").minutes == 0
    assert backend.get_item(STORAGE_KEY) is None


def test_subtract_minutes_clamps_at_zero(store):
    store.update_entry("2025-06-01", minutes=20)
    store.subtract_minutes("2025-06-01", 15)
    assert store.get_entry("2025-06-01").minutes == 5
    store.subtract_minutes("2025-06-01", "30")
    assert store.get_entry("2025-06-01").minutes == 0


# ── Export / import ───────────────────────────────────────────


def test_export_import_round_trip(store, clock):
    store.update_entry("2025-06-01", minutes=30, note="Trees", crossed=True)
    store.start_timer("2025-06-02")
    before = store.data
    text = store.export_snapshot()

    other = StudyStore(StudyDataStorage(MemoryBackend()), clock=clock, seed=False)
    assert other.import_snapshot(text) is True
    assert other.data == before


def test_export_is_pretty_printed(store):
    store.update_entry("2025-06-01", minutes=30)
    text = store.export_snapshot()
    assert text.startswith("{\n  ")
    assert json.loads(text)["2025-06-01"]["minutes"] == 30


@pytest.mark.parametrize("bad", ["not json", "[1, 2]", '{"2025-06-01": 5}', "42"])
def test_import_failure_leaves_state(store, bad):
    store.update_entry("2025-06-01", minutes=30)
    before = store.data
    assert store.import_snapshot(bad) is False
    assert store.data == before


def test_import_replaces_wholesale(store, backend):
    store.update_entry("2025-06-01", minutes=30)
    assert store.import_snapshot('{"2025-07-04": {"crossed": true, "note": "", "minutes": 5}}')
    assert list(store.data) == ["2025-07-04"]
    assert json.loads(backend.get_item(STORAGE_KEY)) == {
        "2025-07-04": {"crossed": True, "note": "", "minutes": 5, "isTimerRunning": False}
    }


def test_import_ignores_stored_holiday(store):
    assert store.import_snapshot('{"2025-06-01": {"holiday": "Made up", "minutes": 5}}')
    assert store.get_entry("2025-06-01").holiday is None


def test_import_drops_non_finite_numbers(store):
    assert store.import_snapshot('{"2025-06-01": {"minutes": Infinity, "timerStart": NaN, "crossed": true}}') is True
    entry = store.get_entry("2025-06-01")
    assert entry.minutes == 0
    assert entry.is_timer_running is False
    assert entry.crossed is True


def test_key_for_uses_store_timezone(clock):
    store = StudyStore(StudyDataStorage(MemoryBackend()), clock=clock, seed=False, tz=ZoneInfo("America/Chicago"))
    late = datetime(2025, 6, 2, 3, 0, tzinfo=timezone.utc)
    assert store.key_for(late) == "2025-06-01"
    assert store.key_for(date(2025, 6, 2)) == "2025-06-02"


def test_key_for_defaults_to_utc(store):
    assert store.key_for(datetime(2025, 6, 2, 3, 0, tzinfo=timezone.utc)) == "2025-06-02"


def test_export_filename():
    assert export_filename(date(2025, 6, 1)) == "study-calendar-backup-2025-06-01.json"


# ── Loading, seeding, failures ────────────────────────────────


def test_loads_existing_data(clock):
    backend = MemoryBackend({STORAGE_KEY: '{"2025-06-01": {"crossed": false, "note": "a", "minutes": 12}}'})
    store = StudyStore(StudyDataStorage(backend), clock=clock)
    assert store.get_entry("2025-06-01").minutes == 12
    assert len(store.data) == 1


def test_seeds_demo_data_on_first_use(clock):
    backend = MemoryBackend()
    store = StudyStore(StudyDataStorage(backend), clock=clock, today=lambda: date(2025, 6, 15))
    assert set(store.data) == {"2025-06-13", "2025-06-14", "2025-06-15", "2025-06-16"}
    assert store.get_entry("2025-06-15").minutes == 120
    assert backend.get_item(STORAGE_KEY) is not None


def test_corrupt_storage_starts_empty(clock, caplog):
    backend = MemoryBackend({STORAGE_KEY: "{broken"})
    store = StudyStore(StudyDataStorage(backend), clock=clock)
    assert store.data == {}
    assert "Failed to load" in caplog.text
    # corrupt data is only replaced on the next mutation
    assert backend.get_item(STORAGE_KEY) == "{broken"


def test_non_finite_numbers_in_storage_are_dropped(clock):
    backend = MemoryBackend({STORAGE_KEY: '{"2025-06-01": {"minutes": 1e999, "timerStart": Infinity, "note": "kept"}}'})
    store = StudyStore(StudyDataStorage(backend), clock=clock)
    entry = store.get_entry("2025-06-01")
    assert entry.minutes == 0
    assert entry.timer_start is None
    assert entry.note == "kept"


def test_undecodable_storage_starts_empty(tmp_path, clock, caplog):
    (tmp_path / f"{STORAGE_KEY}.json").write_bytes(b'{"2025-06-01": {"note": "\xff\xfe"}}')
    store = StudyStore(StudyDataStorage(JsonDirectoryBackend(tmp_path)), clock=clock)
    assert store.data == {}
    assert "Failed to load" in caplog.text


class FailingBackend(MemoryBackend):
    def set_item(self, key, value):
        raise OSError("disk full")


def test_write_failure_keeps_memory_state(clock, caplog):
    store = StudyStore(StudyDataStorage(FailingBackend()), clock=clock, seed=False)
    store.update_entry("2025-06-01", minutes=30)
    assert store.get_entry("2025-06-01").minutes == 30
    assert store.last_save_ok is False
    assert "Failed to save" in caplog.text


def test_storage_save_raises_write_error():
    storage = StudyDataStorage(FailingBackend())
    with pytest.raises(StorageWriteError):
        storage.save({"2025-06-01": DayEntry("2025-06-01")})


# ── Observers & reads ─────────────────────────────────────────


def test_subscribe_receives_new_state(store):
    seen = []
    unsubscribe = store.subscribe(seen.append)
    store.update_entry("2025-06-01", minutes=5)
    assert seen[-1]["2025-06-01"].minutes == 5
    unsubscribe()
    store.update_entry("2025-06-01", minutes=6)
    assert len(seen) == 1


def test_returned_entries_are_copies(store):
    store.update_entry("2025-06-01", minutes=5)
    entry = store.get_entry("2025-06-01")
    entry.minutes = 999
    assert store.get_entry("2025-06-01").minutes == 5


def test_month_entries_covers_every_day(store):
    days = store.month_entries(2025, 2)
    assert len(days) == 28
    assert days["2025-02-01"].minutes == 0


def test_entries_sorted_and_filtered(store):
    from studycal.filters import CalendarFilters

    store.update_entry("2025-06-05", note="Graphs")
    store.update_entry("2025-06-01", minutes=10)
    assert [e.date_key for e in store.entries()] == ["2025-06-01", "2025-06-05"]
    notes = store.entries(CalendarFilters(notes_only=True))
    assert [e.date_key for e in notes] == ["2025-06-05"]
