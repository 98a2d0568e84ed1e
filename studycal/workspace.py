"""Workspace root, settings, timezone and logging helpers."""

from __future__ import annotations

import logging
import os
import sys
from datetime import date, datetime
from pathlib import Path
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from studycal.fileio import read_yaml

logger = logging.getLogger(__name__)


def workspace_root() -> Path:
    """Get the workspace root directory (holds settings.yaml and the data file)."""
    return Path(
        os.environ.get("STUDYCAL_ROOT", str(Path.home() / "study-calendar"))
    ).expanduser().resolve()


def load_settings(root: Path | None = None) -> dict:
    if root is None:
        root = workspace_root()
    return read_yaml(settings_path(root))


def get_user_timezone(root: Path | None = None) -> ZoneInfo:
    """Get the timezone from settings.yaml, defaulting to UTC."""
    name = load_settings(root).get("timezone")
    if name:
        try:
            return ZoneInfo(str(name))
        except (ZoneInfoNotFoundError, ValueError):
            logger.warning("Unknown timezone %r in settings, using UTC", name)
    return ZoneInfo("UTC")


def seed_enabled(root: Path | None = None) -> bool:
    return bool(load_settings(root).get("seed_demo_data", True))


def today(root: Path | None = None) -> date:
    """Today's date in the user's timezone."""
    return datetime.now(get_user_timezone(root)).date()


def today_str(root: Path | None = None) -> str:
    """Get today's date string (YYYY-MM-DD) in user's timezone."""
    return today(root).isoformat()


def setup_logging(level: str | None = None) -> None:
    """Configure a stderr handler for the CLI and the web UI."""
    level = (level or os.environ.get("STUDYCAL_LOG_LEVEL", "WARNING")).upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


# ── Path helpers ──────────────────────────────────────────────

def settings_path(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "settings.yaml"


def data_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "storage"


def exports_dir(root: Path | None = None) -> Path:
    if root is None:
        root = workspace_root()
    return root / "exports"
