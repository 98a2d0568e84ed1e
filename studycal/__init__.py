"""Study calendar core library — day records, storage and aggregates.

Public API re-exports for convenient imports:
    from studycal import StudyStore, open_store, MemoryBackend, ...
"""

# Workspace & settings
from studycal.workspace import (
    workspace_root,
    get_user_timezone,
    today,
    today_str,
    setup_logging,
    settings_path,
    data_dir,
    exports_dir,
)

# Errors
from studycal.errors import (
    StudyCalendarError,
    StorageError,
    StorageReadError,
    StorageWriteError,
    ImportParseError,
    InvalidMinutesInput,
)

# Models
from studycal.models import (
    DayEntry,
    StudyData,
    Holiday,
    Totals,
    WeeklyStats,
    MonthlyStats,
)

# Holidays
from studycal.holidays import HOLIDAYS, get_holiday_map, holidays_in_month

# Storage
from studycal.storage import (
    STORAGE_KEY,
    KeyValueBackend,
    MemoryBackend,
    JsonDirectoryBackend,
    StudyDataStorage,
)

# Filters & analytics
from studycal.filters import CalendarFilters
from studycal.analytics import compute_totals, weekly_stats, monthly_stats

# Time helpers
from studycal.timeutil import (
    date_key,
    parse_date_key,
    month_grid,
    format_minutes,
    format_elapsed,
)

# Store
from studycal.store import StudyStore, open_store, export_filename
