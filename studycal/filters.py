"""Boolean display filters over day entries."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from studycal.models import DayEntry


@dataclass
class CalendarFilters:
    search_query: str = ""
    notes_only: bool = False
    completed_only: bool = False
    time_logged_only: bool = False

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> CalendarFilters:
        if not d or not isinstance(d, dict):
            return cls()
        return cls(
            search_query=str(d.get("searchQuery", "") or ""),
            notes_only=bool(d.get("showNotesOnly", False)),
            completed_only=bool(d.get("showCrossedOnly", False)),
            time_logged_only=bool(d.get("showTimeLoggedOnly", False)),
        )

    def is_active(self) -> bool:
        return bool(self.search_query.strip()) or self.notes_only or self.completed_only or self.time_logged_only

    def matches(self, entry: DayEntry) -> bool:
        """Search is case-insensitive over the note and the holiday name."""
        query = self.search_query.strip().lower()
        if query:
            haystacks = [entry.note.lower(), (entry.holiday or "").lower()]
            if not any(query in h for h in haystacks):
                return False
        if self.notes_only and not entry.note:
            return False
        if self.completed_only and not entry.crossed:
            return False
        if self.time_logged_only and entry.minutes == 0:
            return False
        return True
