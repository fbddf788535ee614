"""
Catalog data source (JSON -> CourseCatalog).

- Optionally downloads the catalog JSON from a URL into the data directory
- Reads the cached file and builds the Faculty -> Course -> Group -> Event tree
- Reports progress as (fraction, text) while doing so

Expected file layout:

    {"faculties": [
        {"name": "Computer Science",
         "courses": [
            {"number": "234111", "name": "Intro to CS",
             "lecturer_in_charge": "...", "academic_points": 4.0,
             "first_test_date": "2024-07-01", "second_test_date": null,
             "groups": [
                {"number": 10, "type": "lecture", "lecturer": "...",
                 "events": [{"day": 1, "start": 1030, "end": 1230, "place": "Taub 1"}]}
             ]}
         ]}
    ]}

A bare top-level list of faculties is accepted as well.
"""

from __future__ import annotations

import json
import logging
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import requests

from ttime import config
from ttime.errors import DataSourceError
from ttime.model import Course, CourseCatalog, Event, Faculty, Group

logger = logging.getLogger(__name__)

ProgressFn = Callable[[Optional[float], str], None]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _no_progress(fraction: Optional[float], text: str = "") -> None:
    return None


def _parse_date(value: Any) -> Optional[date]:
    """
    ISO 'YYYY-MM-DD' or 'DD/MM/YY'; empty values mean "no exam".
    """
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text)
    except ValueError:
        pass
    try:
        return config.parse_date(text)
    except ValueError:
        raise DataSourceError(f"Invalid exam date: {text!r}") from None


def _opt_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _parse_event(raw: Dict[str, Any]) -> Event:
    day = int(raw["day"])
    if not (1 <= day <= 7):
        raise DataSourceError(f"Invalid event day: {day!r}")
    return Event(day=day, start=int(raw["start"]), end=int(raw["end"]), place=_opt_str(raw.get("place")))


def _parse_group(raw: Dict[str, Any]) -> Group:
    return Group(
        number=int(raw["number"]),
        type=str(raw.get("type") or ""),
        lecturer=_opt_str(raw.get("lecturer")),
        events=[_parse_event(e) for e in raw.get("events", [])],
    )


def _parse_course(raw: Dict[str, Any]) -> Course:
    points = raw.get("academic_points")
    return Course(
        number=str(raw.get("number", "")).strip(),
        name=str(raw.get("name", "")).strip(),
        lecturer_in_charge=_opt_str(raw.get("lecturer_in_charge")),
        academic_points=float(points) if points is not None else None,
        first_test_date=_parse_date(raw.get("first_test_date")),
        second_test_date=_parse_date(raw.get("second_test_date")),
        groups=[_parse_group(g) for g in raw.get("groups", [])],
    )


def parse_catalog(data: Any, progress: ProgressFn = _no_progress) -> CourseCatalog:
    """
    Build a CourseCatalog from already-decoded JSON.
    """
    faculties_raw = data.get("faculties", []) if isinstance(data, dict) else data
    if not isinstance(faculties_raw, list):
        raise DataSourceError("Catalog JSON must contain a list of faculties")

    faculties: List[Faculty] = []
    total = len(faculties_raw)
    for i, raw in enumerate(faculties_raw):
        name = str(raw.get("name", "")).strip()
        progress(i / total if total else None, f"Loading {name}")
        try:
            courses = [_parse_course(c) for c in raw.get("courses", [])]
        except (KeyError, TypeError, ValueError) as e:
            raise DataSourceError(f"Bad course entry in faculty {name!r}: {e}") from e
        faculties.append(Faculty(name=name, courses=courses))

    progress(1.0, "Catalog loaded")
    return CourseCatalog(faculties)


# ---------------------------------------------------------------------------
# Data source
# ---------------------------------------------------------------------------


class JsonCatalogSource:
    def __init__(self, path: str | Path | None = None, url: Optional[str] = None, timeout: float = 30) -> None:
        self.path = Path(path) if path is not None else config.catalog_path()
        self.url = url
        self.timeout = timeout

    def _download(self, progress: ProgressFn) -> None:
        assert self.url is not None
        progress(None, f"Downloading {self.url}")
        logger.info("Downloading catalog from %s", self.url)
        try:
            resp = requests.get(self.url, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            raise DataSourceError(f"Could not download catalog: {e}") from e

        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(resp.text, encoding="utf-8")

    def load(self, force_refresh: bool = False, progress: ProgressFn = _no_progress) -> CourseCatalog:
        """
        Load the catalog, downloading it first when forced or not cached.
        """
        if self.url and (force_refresh or not self.path.exists()):
            self._download(progress)

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            raise DataSourceError(f"Catalog file not found: {self.path}") from None
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise DataSourceError(f"Could not read catalog {self.path}: {e}") from e

        catalog = parse_catalog(data, progress)
        logger.info("Loaded %d faculties from %s", len(catalog), self.path)
        return catalog
