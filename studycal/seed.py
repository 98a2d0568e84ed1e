"""Demonstration entries loaded on first use."""

from __future__ import annotations

from datetime import date, timedelta

from studycal.models import DayEntry, StudyData


def seed_data(today: date) -> StudyData:
    """Four sample days around *today* showing notes, minutes and completion."""
    samples = [
        (0, True, "Data Structures: Arrays and Linked Lists. Implemented basic operations and analyzed time complexity.", 120),
        (-1, False, "Operating Systems: Process management and scheduling algorithms", 45),
        (-2, True, "Algorithms: Binary search and sorting techniques", 90),
        (1, False, "Database Systems: SQL queries and normalization", 0),
    ]
    data: StudyData = {}
    for offset, crossed, note, minutes in samples:
        key = (today + timedelta(days=offset)).isoformat()
        data[key] = DayEntry(date_key=key, crossed=crossed, note=note, minutes=minutes)
    return data
