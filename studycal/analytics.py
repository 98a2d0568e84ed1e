"""Minute aggregates over study data.

Totals roll up logged minutes for the week (Sunday first) and the calendar
month of a reference date. Weekly and monthly stats break the whole history
down for display.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta

from studycal.models import MonthlyStats, StudyData, Totals, WeeklyStats
from studycal.timeutil import parse_date_key, week_start


def _dated_entries(data: StudyData):
    for key, entry in data.items():
        try:
            d = parse_date_key(key)
        except ValueError:
            continue
        yield d, entry


def compute_totals(data: StudyData, reference: date) -> Totals:
    """Weekly, monthly and overall minutes relative to *reference*.

    Entries whose key is not a valid date are skipped.
    """
    totals = Totals()
    first = week_start(reference)
    last = first + timedelta(days=6)

    for d, entry in _dated_entries(data):
        totals.total_minutes += entry.minutes
        if first <= d <= last:
            totals.weekly_minutes += entry.minutes
        if d.year == reference.year and d.month == reference.month:
            totals.monthly_minutes += entry.minutes

    return totals


def weekly_stats(data: StudyData) -> list[WeeklyStats]:
    """Per-week minutes and study days, newest week first."""
    by_week: dict[date, WeeklyStats] = {}
    for d, entry in _dated_entries(data):
        start = week_start(d)
        stats = by_week.setdefault(start, WeeklyStats(week_start=start.isoformat()))
        stats.total_minutes += entry.minutes
        if entry.minutes > 0:
            stats.study_days += 1
    return [by_week[k] for k in sorted(by_week, reverse=True)]


def monthly_stats(data: StudyData) -> list[MonthlyStats]:
    """Per-month minutes, study days and completed days, newest month first."""
    by_month: dict[str, MonthlyStats] = defaultdict(lambda: MonthlyStats(month=""))
    for d, entry in _dated_entries(data):
        month = f"{d.year:04d}-{d.month:02d}"
        stats = by_month[month]
        stats.month = month
        stats.total_minutes += entry.minutes
        if entry.minutes > 0:
            stats.study_days += 1
        if entry.crossed:
            stats.crossed_days += 1
    return [by_month[k] for k in sorted(by_month, reverse=True)]
