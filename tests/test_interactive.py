import io
import unittest

from rich.console import Console
from sample_catalog import make_catalog

from ttime.interactive import run_browser, schedule_table
from ttime.scheduler import GroupCombinationScheduler
from ttime.state import AppState
from ttime.storage import Settings


class TestInteractive(unittest.TestCase):
    def setUp(self) -> None:
        scheduler = GroupCombinationScheduler()
        self.state = AppState(None, scheduler, settings=Settings(selected_courses=["234111"]))
        self.addCleanup(self.state.tasks.shutdown)
        self.state.apply_catalog(make_catalog())
        self.state.apply_schedules(scheduler.search(self.state.selection.courses))

        self.out = io.StringIO()
        self.console = Console(file=self.out, width=1000)

    def browse(self, *answers: str) -> str:
        script = iter(answers)
        run_browser(self.state, self.console, prompt=lambda _: next(script))
        return self.out.getvalue()

    def test_schedule_table_columns(self) -> None:
        items = self.state.render_current()
        self.assertEqual(len(schedule_table(items, full_week=False).columns), 5)
        self.assertEqual(len(schedule_table(items).columns), 7)

    def test_browse_steps_through_schedules(self) -> None:
        text = self.browse("n", "n", "p", "q")
        self.assertIn("Schedule 1 of 2", text)
        self.assertIn("Schedule 2 of 2", text)
        self.assertIn("No more schedules in that direction.", text)
        self.assertEqual(self.state.cursor.current, 0)

    def test_goto_and_alternatives(self) -> None:
        text = self.browse("g", "2", "a", "234111", "a", "999999", "x", "")
        self.assertEqual(self.state.cursor.current, 1)
        self.assertIn("Taub 3", text)
        self.assertIn("999999", text)
        self.assertIn("Invalid choice.", text)

    def test_event_details(self) -> None:
        text = self.browse("e", "234111", "e", "104166", "q")
        self.assertIn("Lecturer: Dr. Levi", text)
        self.assertIn("Group: 11", text)
        self.assertIn("Place: Taub 3", text)
        self.assertIn("That course is not in this schedule.", text)

    def test_disallow_group_searches_again(self) -> None:
        text = self.browse("d", "234111", "99", "d", "234111", "11", "q")
        self.assertIn("No such group.", text)
        self.assertIn("Schedule 1 of 1", text)
        self.assertEqual(self.state.cursor.total, 1)

    def test_disallow_last_group_ends_browsing(self) -> None:
        self.browse("d", "234111", "10")
        self.assertFalse(self.state.cursor.is_set)

    def test_week_view_toggle(self) -> None:
        self.assertTrue(self.state.settings.show_full_week)
        self.browse("w", "q")
        self.assertFalse(self.state.settings.show_full_week)


if __name__ == "__main__":
    unittest.main()
