"""Typed dataclasses for the study calendar data model.

DayEntry uses from_dict/to_dict for JSON serialization.
camelCase in JSON is mapped to snake_case in Python.
Unknown keys are ignored; missing keys use defaults.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any


def _to_int(value: Any) -> int | None:
    """Whole number from a stored JSON value, None if it is not a usable number."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


# ── Day entries ───────────────────────────────────────────────


@dataclass
class DayEntry:
    """Completion flag, note, minutes and timer state for one date."""

    date_key: str
    crossed: bool = False
    note: str = ""
    minutes: int = 0
    timer_start: int | None = None
    holiday: str | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        self.minutes = max(0, int(self.minutes))

    @property
    def is_timer_running(self) -> bool:
        return self.timer_start is not None

    @classmethod
    def from_dict(cls, date_key: str, d: dict[str, Any]) -> DayEntry:
        if not d or not isinstance(d, dict):
            return cls(date_key=date_key)
        return cls(
            date_key=date_key,
            crossed=bool(d.get("crossed", False)),
            note=str(d.get("note", "") or ""),
            minutes=_to_int(d.get("minutes")) or 0,
            timer_start=_to_int(d.get("timerStart")),
        )

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "crossed": self.crossed,
            "note": self.note,
            "minutes": self.minutes,
            "isTimerRunning": self.is_timer_running,
        }
        if self.timer_start is not None:
            d["timerStart"] = self.timer_start
        return d

    def to_view(self) -> dict[str, Any]:
        """JSON shape for display surfaces: the stored fields plus date and holiday."""
        d = {"date": self.date_key, **self.to_dict()}
        if self.holiday:
            d["holiday"] = self.holiday
        return d


StudyData = dict[str, DayEntry]


def study_data_from_dict(d: dict[str, Any]) -> StudyData:
    return {key: DayEntry.from_dict(key, value) for key, value in d.items()}


def study_data_to_dict(data: StudyData) -> dict[str, Any]:
    return {key: entry.to_dict() for key, entry in sorted(data.items())}


# ── Reference data ────────────────────────────────────────────


@dataclass(frozen=True)
class Holiday:
    date: str
    name: str


# ── Aggregates ────────────────────────────────────────────────


@dataclass
class Totals:
    weekly_minutes: int = 0
    monthly_minutes: int = 0
    total_minutes: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "weeklyMinutes": self.weekly_minutes,
            "monthlyMinutes": self.monthly_minutes,
            "totalMinutes": self.total_minutes,
        }


@dataclass
class WeeklyStats:
    week_start: str
    total_minutes: int = 0
    study_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "weekStart": self.week_start,
            "totalMinutes": self.total_minutes,
            "studyDays": self.study_days,
        }


@dataclass
class MonthlyStats:
    month: str  # YYYY-MM
    total_minutes: int = 0
    study_days: int = 0
    crossed_days: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "month": self.month,
            "totalMinutes": self.total_minutes,
            "studyDays": self.study_days,
            "crossedDays": self.crossed_days,
        }
