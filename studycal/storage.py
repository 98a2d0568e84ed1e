"""Persistence adapter: study data in a local key-value store.

The store only talks to ``StudyDataStorage``, which serializes the whole
mapping under one namespaced key of any backend offering ``get_item`` and
``set_item`` (the same shape as browser local storage).
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Protocol

from studycal.errors import StorageReadError, StorageWriteError
from studycal.fileio import dump_json, read_text, write_text_atomic
from studycal.models import StudyData, study_data_from_dict, study_data_to_dict

STORAGE_KEY = "study-calendar-data"

_SAFE_KEY = re.compile(r"^[A-Za-z0-9._-]+$")


class KeyValueBackend(Protocol):
    def get_item(self, key: str) -> str | None: ...

    def set_item(self, key: str, value: str) -> None: ...


# ── Backends ──────────────────────────────────────────────────


class MemoryBackend:
    """In-process backend, mainly for tests and ephemeral sessions."""

    def __init__(self, items: dict[str, str] | None = None) -> None:
        self.items: dict[str, str] = dict(items or {})

    def get_item(self, key: str) -> str | None:
        return self.items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self.items[key] = value


class JsonDirectoryBackend:
    """One ``<key>.json`` file per key inside a workspace directory."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        if not _SAFE_KEY.match(key):
            raise ValueError(f"Invalid storage key: {key!r}")
        return self.root / f"{key}.json"

    def get_item(self, key: str) -> str | None:
        return read_text(self.path_for(key))

    def set_item(self, key: str, value: str) -> None:
        write_text_atomic(self.path_for(key), value, suffix=".json")


# ── Study data adapter ────────────────────────────────────────


class StudyDataStorage:
    """Load and save the full StudyData mapping under one key."""

    def __init__(self, backend: KeyValueBackend, key: str = STORAGE_KEY) -> None:
        self.backend = backend
        self.key = key

    def load(self) -> StudyData | None:
        """Return the stored mapping, or None when nothing is stored yet."""
        try:
            text = self.backend.get_item(self.key)
        except (OSError, UnicodeDecodeError) as e:
            raise StorageReadError(f"Cannot read {self.key}: {e}") from e
        if text is None:
            return None
        try:
            raw = json.loads(text)
        except json.JSONDecodeError as e:
            raise StorageReadError(f"Corrupt data under {self.key}: {e}") from e
        if not isinstance(raw, dict):
            raise StorageReadError(f"Expected a JSON object under {self.key}")
        return study_data_from_dict(raw)

    def save(self, data: StudyData) -> None:
        try:
            self.backend.set_item(self.key, dump_json(study_data_to_dict(data)))
        except OSError as e:
            raise StorageWriteError(f"Cannot write {self.key}: {e}") from e
