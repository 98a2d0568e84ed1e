"""Exception types for the study calendar."""

from __future__ import annotations


class StudyCalendarError(Exception):
    """Base class for all study calendar errors."""


class StorageError(StudyCalendarError):
    pass


class StorageReadError(StorageError):
    """Persisted data is unreadable or corrupt."""


class StorageWriteError(StorageError):
    """Persisted data could not be written."""


class ImportParseError(StudyCalendarError):
    """An import document is not a valid study data mapping."""


class InvalidMinutesInput(StudyCalendarError, ValueError):
    """Manual minute input is non-numeric or negative."""
