import json
import tempfile
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import MagicMock, patch

import requests

from ttime.data import JsonCatalogSource, parse_catalog
from ttime.errors import DataSourceError, UnknownCourseNumber

CATALOG = {
    "faculties": [
        {
            "name": "Computer Science",
            "courses": [
                {
                    "number": "234111",
                    "name": "Introduction to Computer Science",
                    "lecturer_in_charge": "Dr. Levi",
                    "academic_points": 4,
                    "first_test_date": "2024-07-01",
                    "second_test_date": "01/08/24",
                    "groups": [
                        {
                            "number": 10,
                            "type": "lecture",
                            "lecturer": "Dr. Levi",
                            "events": [{"day": 1, "start": 1030, "end": 1230, "place": "Taub 1"}],
                        }
                    ],
                }
            ],
        },
        {"name": "Mathematics", "courses": [{"number": "104166", "name": "Algebra A", "groups": []}]},
    ]
}


class TestParseCatalog(unittest.TestCase):
    def test_builds_hierarchy(self) -> None:
        catalog = parse_catalog(CATALOG)
        self.assertEqual(len(catalog), 2)
        course = catalog.find_course_by_number("234111")
        self.assertEqual(course.first_test_date, date(2024, 7, 1))
        self.assertEqual(course.second_test_date, date(2024, 8, 1))
        self.assertEqual(course.academic_points, 4.0)

        ev = course.groups[0].events[0]
        self.assertIs(ev.course, course)
        self.assertEqual(ev.group.name, "Introduction to Computer Science")
        self.assertEqual(ev.start_frac, 10.5)

        with self.assertRaises(UnknownCourseNumber):
            catalog.find_course_by_number("999999")

    def test_reports_progress(self) -> None:
        seen = []
        parse_catalog(CATALOG, lambda f, t: seen.append((f, t)))
        self.assertEqual(seen[0], (0.0, "Loading Computer Science"))
        self.assertEqual(seen[-1], (1.0, "Catalog loaded"))

    def test_accepts_bare_list(self) -> None:
        catalog = parse_catalog(CATALOG["faculties"])
        self.assertEqual([f.name for f in catalog], ["Computer Science", "Mathematics"])

    def test_rejects_bad_data(self) -> None:
        with self.assertRaises(DataSourceError):
            parse_catalog({"faculties": "nope"})
        bad_day = {"faculties": [{"name": "X", "courses": [{"number": "1", "name": "A", "groups": [
            {"number": 1, "type": "lecture", "events": [{"day": 9, "start": 800, "end": 900}]}]}]}]}
        with self.assertRaises(DataSourceError):
            parse_catalog(bad_day)


class TestJsonCatalogSource(unittest.TestCase):
    def test_load_from_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "catalog.json"
            p.write_text(json.dumps(CATALOG), encoding="utf-8")
            catalog = JsonCatalogSource(p).load()
            self.assertEqual(len(list(catalog.courses())), 2)

    def test_missing_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            with self.assertRaises(DataSourceError):
                JsonCatalogSource(Path(d) / "missing.json").load()

    def test_corrupt_file(self) -> None:
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "catalog.json"
            p.write_text("[{", encoding="utf-8")
            with self.assertRaises(DataSourceError):
                JsonCatalogSource(p).load()

    @patch("ttime.data.requests.get")
    def test_downloads_when_forced(self, mock_get) -> None:
        resp = MagicMock()
        resp.text = json.dumps(CATALOG)
        mock_get.return_value = resp

        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "catalog.json"
            p.write_text(json.dumps({"faculties": []}), encoding="utf-8")
            source = JsonCatalogSource(p, url="https://example.org/catalog.json")

            self.assertEqual(len(source.load()), 0)
            mock_get.assert_not_called()

            self.assertEqual(len(source.load(force_refresh=True)), 2)
            mock_get.assert_called_once_with("https://example.org/catalog.json", timeout=30)
            self.assertIn("Computer Science", p.read_text(encoding="utf-8"))

    @patch("ttime.data.requests.get")
    def test_download_failure(self, mock_get) -> None:
        mock_get.side_effect = requests.ConnectionError("offline")
        with tempfile.TemporaryDirectory() as d:
            source = JsonCatalogSource(Path(d) / "catalog.json", url="https://example.org/catalog.json")
            with self.assertRaises(DataSourceError):
                source.load()


if __name__ == "__main__":
    unittest.main()
