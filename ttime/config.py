"""
Paths and defaults.

Using functions instead of constants makes testing easier, because tests can
override the environment (TTIME_DATA_DIR etc.) before calling them.
"""

from __future__ import annotations

import os
from datetime import date, datetime
from pathlib import Path
from typing import Optional

DATE_FORMAT = "%d/%m/%y"
DEFAULT_TIMEZONE = "Asia/Jerusalem"

PACKAGE_DIR = Path(__file__).resolve().parent


def data_dir() -> Path:
    """
    Return the directory that holds the catalog, nicknames and settings.
    """
    override = os.environ.get("TTIME_DATA_DIR", "").strip()
    if override:
        return Path(override)
    return PACKAGE_DIR / "data"


def catalog_path() -> Path:
    return data_dir() / "catalog.json"


def nicknames_path() -> Path:
    return data_dir() / "nicknames.json"


def settings_path() -> Path:
    return data_dir() / "settings.json"


def catalog_url() -> Optional[str]:
    url = os.environ.get("TTIME_CATALOG_URL", "").strip()
    return url or None


def timezone_name() -> str:
    return os.environ.get("TTIME_TIMEZONE", "").strip() or DEFAULT_TIMEZONE


def parse_date(text: str) -> date:
    """
    Parse a 'DD/MM/YY' string. Raises ValueError on bad input.
    """
    return datetime.strptime(text.strip(), DATE_FORMAT).date()


def format_date(d: date) -> str:
    return d.strftime(DATE_FORMAT)
