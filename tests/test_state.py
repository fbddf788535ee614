"""
End-to-end tests for AppState: load -> select -> search -> browse -> export.
"""

import tempfile
import unittest
from datetime import date
from pathlib import Path

from sample_catalog import make_catalog

from ttime.errors import (
    DataSourceError,
    MissingSemesterBounds,
    NoCurrentSchedule,
    NoSelectedCourses,
    SettingsFileNotFound,
)
from ttime.scheduler import GroupCombinationScheduler
from ttime.state import NO_SCHEDULES, AppState
from ttime.storage import Settings, load_settings, save_settings
from ttime.tasks import TaskQueue

TIMEOUT = 5


class FakeSource:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.calls = []

    def load(self, force_refresh, progress):
        self.calls.append(force_refresh)
        progress(0.5, "Loading")
        if self.fail:
            raise DataSourceError("catalog unavailable")
        return make_catalog()


class TestAppState(unittest.TestCase):
    def setUp(self) -> None:
        self.tasks = TaskQueue()
        self.settings = Settings(selected_courses=["234111", "555555"])
        self.state = AppState(FakeSource(), GroupCombinationScheduler(), settings=self.settings, tasks=self.tasks)
        self.messages = []
        self.rendered = []
        self.state.message.connect(lambda level, text: self.messages.append((level, text)))
        self.state.schedule_rendered.connect(lambda items, schedule: self.rendered.append((items, schedule)))

    def tearDown(self) -> None:
        self.tasks.shutdown()

    def load(self) -> None:
        self.state.load_data()
        self.assertTrue(self.tasks.wait_idle(timeout=TIMEOUT))

    def search(self) -> None:
        self.state.find_schedules()
        self.assertTrue(self.tasks.wait_idle(timeout=TIMEOUT))

    def test_load_restores_selection(self) -> None:
        self.load()
        self.assertEqual(self.state.selection.numbers(), ["234111"])
        self.assertEqual(len(self.messages), 1)
        self.assertEqual(self.messages[0][0], "warning")
        self.assertIn("555555", self.messages[0][1])

    def test_load_failure_is_presented(self) -> None:
        done = []
        state = AppState(FakeSource(fail=True), GroupCombinationScheduler(), tasks=self.tasks)
        state.message.connect(lambda level, text: self.messages.append((level, text)))
        state.progress_done.connect(done.append)
        with self.assertLogs("ttime.tasks", level="ERROR"):
            state.load_data()
            self.assertTrue(self.tasks.wait_idle(timeout=TIMEOUT))
        self.assertEqual(self.messages, [("error", "catalog unavailable")])
        self.assertEqual(done, ["load"])

    def test_selection_marks_tree_collisions(self) -> None:
        self.load()
        self.state.add_course("234218")
        node = self.state.tree.node_for(self.state.catalog.find_course_by_number("234218"))
        self.assertTrue(node.collision)
        self.state.drop_course(node.course)
        self.assertFalse(node.collision)

    def test_search_renders_first_candidate(self) -> None:
        self.load()
        self.search()
        self.assertEqual(self.state.cursor.total, 2)
        self.assertEqual(self.state.cursor.current, 0)
        items, schedule = self.rendered[-1]
        self.assertIs(schedule, self.state.schedules[0])
        self.assertEqual(len(items), 2)
        self.assertTrue(all(item.color_index == 0 for item in items))

        self.state.cursor.next()
        self.assertIs(self.rendered[-1][1], self.state.schedules[1])

    def test_search_without_selection(self) -> None:
        self.state.settings.selected_courses = []
        self.load()
        with self.assertRaises(NoSelectedCourses):
            self.state.find_schedules()

    def test_no_possible_schedules(self) -> None:
        self.load()
        self.state.constraints.append(lambda events: False)
        self.search()
        self.assertFalse(self.state.cursor.is_set)
        self.assertIn(("error", NO_SCHEDULES), self.messages)
        with self.assertRaises(NoCurrentSchedule):
            self.state.export_occurrences()

    def test_export_needs_semester(self) -> None:
        self.load()
        self.search()
        with self.assertRaises(MissingSemesterBounds):
            self.state.export_occurrences()

        self.state.set_semester("03/03/24", date(2024, 6, 30))
        occurrences = self.state.export_occurrences()
        kinds = [o.kind for o in occurrences]
        self.assertEqual(kinds, ["class", "class", "exam"])

    def test_export_ical_writes_file(self) -> None:
        self.load()
        self.search()
        self.state.set_semester(date(2024, 3, 3), date(2024, 6, 30))
        with tempfile.TemporaryDirectory() as d:
            out = Path(d) / "schedule.ics"
            self.assertEqual(self.state.export_ical(out), 3)
            self.assertIn("Moed A", out.read_text(encoding="utf-8"))

    def test_show_alternatives(self) -> None:
        self.load()
        self.search()
        intro = self.state.catalog.find_course_by_number("234111")
        items = self.state.show_alternatives(intro, "tutorial")
        self.assertEqual(sorted(i.day for i in items), [1, 2, 3])

    def test_disallow_group_searches_again(self) -> None:
        self.load()
        self.search()
        intro = self.state.catalog.find_course_by_number("234111")
        self.state.disallow_group(intro, intro.groups[1])
        self.assertTrue(self.tasks.wait_idle(timeout=TIMEOUT))
        self.assertEqual(self.state.cursor.total, 1)

    def test_filter_query_survives_reload(self) -> None:
        self.load()
        self.state.set_query("Algebra")
        self.load()
        self.assertEqual([c.number for c in self.state.filter.visible_courses()], ["104166"])

    def test_save_settings(self) -> None:
        self.load()
        self.state.add_course("104031")
        self.state.set_semester("22/10/23", "12/01/24")
        self.state.set_shown_fields(["course_number"])
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "settings.json"
            self.state.save_settings(p)
            saved = load_settings(p)
        self.assertEqual(saved.selected_courses, ["234111", "104031"])
        self.assertEqual(saved.semester_start_date, date(2023, 10, 22))
        self.assertEqual(saved.shown_event_data, ["course_number"])

    def test_import_settings(self) -> None:
        self.load()
        with tempfile.TemporaryDirectory() as d:
            p = Path(d) / "shared.json"
            save_settings(Settings(selected_courses=["104031", "777777"], shown_event_data=["place"]), p)
            warnings = self.state.import_settings(p)

            with self.assertRaises(SettingsFileNotFound):
                self.state.import_settings(Path(d) / "missing.json")

        self.assertEqual(self.state.selection.numbers(), ["104031"])
        self.assertEqual(len(warnings), 1)
        self.assertIn(("warning", warnings[0]), self.messages)
        self.assertEqual(self.state.projector.shown_fields, ["place"])

    def test_full_week_rerenders(self) -> None:
        self.load()
        self.search()
        before = len(self.rendered)
        self.state.set_full_week(False)
        self.assertFalse(self.state.settings.show_full_week)
        self.assertEqual(len(self.rendered), before + 1)


if __name__ == "__main__":
    unittest.main()
