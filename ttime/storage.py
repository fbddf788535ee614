"""
Persistent user settings.

This module manages the file:

    data/settings.json

It stores only the user's own state:
- selected course numbers (in selection order)
- semester start / end dates as 'DD/MM/YY' text
- which event details are shown in the timetable
- whether the full week (including Friday/Saturday) is drawn

Loading is deliberately defensive: a missing or corrupted file yields the
defaults and never crashes the application.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import List, Optional

from ttime import config
from ttime.projection import DEFAULT_EVENT_DATA_MEMBERS, EVENT_DATA_MEMBERS

logger = logging.getLogger(__name__)

_KNOWN_FIELDS = {key for key, _ in EVENT_DATA_MEMBERS}


@dataclass
class Settings:
    selected_courses: List[str] = field(default_factory=list)
    semester_start_date: Optional[date] = None
    semester_end_date: Optional[date] = None
    shown_event_data: List[str] = field(default_factory=lambda: list(DEFAULT_EVENT_DATA_MEMBERS))
    show_full_week: bool = True


def _date_or_none(value: object) -> Optional[date]:
    if not isinstance(value, str) or not value.strip():
        return None
    try:
        return config.parse_date(value)
    except ValueError:
        logger.warning("Ignoring invalid date %r in settings", value)
        return None


def load_settings(path: str | Path | None = None) -> Settings:
    """
    Load settings from JSON. Returns defaults if the file does not exist or
    is invalid.
    """
    settings_path = Path(path) if path is not None else config.settings_path()

    # First run: file does not exist yet
    if not settings_path.exists():
        return Settings()

    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
        logger.warning("Could not read settings from %s: %s", settings_path, e)
        return Settings()
    if not isinstance(data, dict):
        return Settings()

    settings = Settings()

    numbers = data.get("selected_courses", [])
    if isinstance(numbers, list):
        seen: set[str] = set()
        for x in numbers:
            if isinstance(x, (str, int)):
                num = str(x).strip()
                if num and num not in seen:
                    seen.add(num)
                    settings.selected_courses.append(num)

    settings.semester_start_date = _date_or_none(data.get("semester_start_date"))
    settings.semester_end_date = _date_or_none(data.get("semester_end_date"))

    shown = data.get("shown_event_data")
    if isinstance(shown, list):
        settings.shown_event_data = [s for s in shown if s in _KNOWN_FIELDS]

    full_week = data.get("show_full_week")
    if isinstance(full_week, bool):
        settings.show_full_week = full_week

    return settings


def save_settings(settings: Settings, path: str | Path | None = None) -> None:
    """
    Save settings to JSON, creating parent directories if needed.
    """
    settings_path = Path(path) if path is not None else config.settings_path()
    settings_path.parent.mkdir(parents=True, exist_ok=True)

    payload = {
        "selected_courses": [str(x).strip() for x in settings.selected_courses if str(x).strip()],
        "semester_start_date": (
            config.format_date(settings.semester_start_date) if settings.semester_start_date else None
        ),
        "semester_end_date": config.format_date(settings.semester_end_date) if settings.semester_end_date else None,
        "shown_event_data": list(settings.shown_event_data),
        "show_full_week": bool(settings.show_full_week),
    }

    settings_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
