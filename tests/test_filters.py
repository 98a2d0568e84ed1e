"""Tests for studycal/filters.py — calendar display filters."""

from studycal.filters import CalendarFilters
from studycal.models import DayEntry


def test_empty_filters_match_everything():
    f = CalendarFilters()
    assert f.is_active() is False
    assert f.matches(DayEntry("2025-06-01")) is True


def test_search_over_note_case_insensitive():
    f = CalendarFilters(search_query="GRAPH")
    assert f.matches(DayEntry("2025-06-01", note="graph theory")) is True
    assert f.matches(DayEntry("2025-06-01", note="calculus")) is False


def test_search_over_holiday():
    f = CalendarFilters(search_query="christ")
    assert f.matches(DayEntry("2025-12-25", holiday="Christmas")) is True


def test_blank_search_is_inactive():
    f = CalendarFilters(search_query="   ")
    assert f.is_active() is False
    assert f.matches(DayEntry("2025-06-01")) is True


def test_notes_only():
    f = CalendarFilters(notes_only=True)
    assert f.matches(DayEntry("2025-06-01", note="x")) is True
    assert f.matches(DayEntry("2025-06-01")) is False


def test_completed_only():
    f = CalendarFilters(completed_only=True)
    assert f.matches(DayEntry("2025-06-01", crossed=True)) is True
    assert f.matches(DayEntry("2025-06-01")) is False


def test_time_logged_only():
    f = CalendarFilters(time_logged_only=True)
    assert f.matches(DayEntry("2025-06-01", minutes=1)) is True
    assert f.matches(DayEntry("2025-06-01")) is False


def test_filters_combine():
    f = CalendarFilters(search_query="trees", completed_only=True)
    assert f.matches(DayEntry("2025-06-01", note="Trees", crossed=True)) is True
    assert f.matches(DayEntry("2025-06-01", note="Trees")) is False


def test_from_dict():
    f = CalendarFilters.from_dict({"searchQuery": "os", "showNotesOnly": True, "showTimeLoggedOnly": True})
    assert f.search_query == "os"
    assert f.notes_only is True
    assert f.completed_only is False
    assert f.time_logged_only is True
