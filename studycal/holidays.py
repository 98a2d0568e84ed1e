"""Static holiday table, overlaid on day entries at read time."""

from __future__ import annotations

from studycal.models import Holiday

# Predefined holidays for 2024-2026
HOLIDAYS: list[Holiday] = [
    # 2024
    Holiday("2024-01-01", "New Year's Day"),
    Holiday("2024-01-26", "Republic Day (India)"),
    Holiday("2024-03-08", "Holi"),
    Holiday("2024-04-11", "Eid al-Fitr"),
    Holiday("2024-08-15", "Independence Day (India)"),
    Holiday("2024-10-02", "Gandhi Jayanti"),
    Holiday("2024-10-31", "Diwali"),
    Holiday("2024-12-25", "Christmas"),
    # 2025
    Holiday("2025-01-01", "New Year's Day"),
    Holiday("2025-01-26", "Republic Day (India)"),
    Holiday("2025-03-14", "Holi"),
    Holiday("2025-04-10", "Eid al-Fitr"),
    Holiday("2025-08-15", "Independence Day (India)"),
    Holiday("2025-10-02", "Gandhi Jayanti"),
    Holiday("2025-10-20", "Diwali"),
    Holiday("2025-12-25", "Christmas"),
    # 2026
    Holiday("2026-01-01", "New Year's Day"),
    Holiday("2026-01-26", "Republic Day (India)"),
    Holiday("2026-03-04", "Holi"),
    Holiday("2026-03-31", "Eid al-Fitr"),
    Holiday("2026-08-15", "Independence Day (India)"),
    Holiday("2026-10-02", "Gandhi Jayanti"),
    Holiday("2026-11-08", "Diwali"),
    Holiday("2026-12-25", "Christmas"),
]


def get_holiday_map(holidays: list[Holiday] | None = None) -> dict[str, str]:
    """Lookup from date key to holiday name."""
    return {h.date: h.name for h in (HOLIDAYS if holidays is None else holidays)}


def holidays_in_month(year: int, month: int, holidays: list[Holiday] | None = None) -> list[Holiday]:
    prefix = f"{year:04d}-{month:02d}-"
    return sorted(
        (h for h in (HOLIDAYS if holidays is None else holidays) if h.date.startswith(prefix)),
        key=lambda h: h.date,
    )
