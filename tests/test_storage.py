"""
Unit tests for settings persistence.

Storage contract:
- Missing/invalid file -> defaults
- Semester dates stored as 'DD/MM/YY'
- Selected course numbers keep their order
"""

import json
import tempfile
import unittest
from datetime import date
from pathlib import Path

from ttime.storage import Settings, load_settings, save_settings


class TestStorage(unittest.TestCase):
    def test_load_missing_file_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            settings = load_settings(Path(d) / "missing.json")
            self.assertEqual(settings, Settings())
            self.assertTrue(settings.show_full_week)
            self.assertEqual(settings.shown_event_data, ["course_name", "group_number", "place"])

    def test_load_corrupt_file_returns_defaults(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "settings.json"
            p.write_text("{not json", encoding="utf-8")
            with self.assertLogs("ttime.storage", level="WARNING"):
                self.assertEqual(load_settings(p), Settings())

    def test_save_and_load_roundtrip(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "nested" / "settings.json"
            settings = Settings(
                selected_courses=["234218", "104031"],
                semester_start_date=date(2023, 10, 22),
                semester_end_date=date(2024, 1, 12),
                shown_event_data=["course_number", "place"],
                show_full_week=False,
            )
            save_settings(settings, p)

            data = json.loads(p.read_text(encoding="utf-8"))
            self.assertEqual(data["semester_start_date"], "22/10/23")
            self.assertEqual(data["semester_end_date"], "12/01/24")

            self.assertEqual(load_settings(p), settings)

    def test_invalid_entries_are_dropped(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "settings.json"
            p.write_text(
                json.dumps(
                    {
                        "selected_courses": ["234111", 104031, None, " ", "234111"],
                        "semester_start_date": "2023-10-22",
                        "shown_event_data": ["place", "shoe size"],
                        "show_full_week": "yes",
                    }
                ),
                encoding="utf-8",
            )
            with self.assertLogs("ttime.storage", level="WARNING"):
                settings = load_settings(p)
            self.assertEqual(settings.selected_courses, ["234111", "104031"])
            self.assertIsNone(settings.semester_start_date)
            self.assertEqual(settings.shown_event_data, ["place"])
            self.assertTrue(settings.show_full_week)


if __name__ == "__main__":
    unittest.main()
