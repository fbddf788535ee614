"""
Unit tests for conflict detection.

Exam collisions:
- a course collides if one of its exam dates equals an exam date of another
  selected course
- a course never collides with itself

Event overlaps:
- same weekday and overlapping times
- touching endpoints (end == start) is NOT a conflict
"""

import itertools
import unittest
from datetime import date

from ttime.conflicts import COLLISION_WARNING, CollisionDetector, events_overlap, find_conflicts
from ttime.info import describe_course
from ttime.model import Course, Event


def course(number: str, first=None, second=None) -> Course:
    return Course(number=number, name=f"Course {number}", first_test_date=first, second_test_date=second)


class TestExamCollisions(unittest.TestCase):
    def setUp(self) -> None:
        self.detector = CollisionDetector()

    def test_shared_first_exam(self) -> None:
        a = course("A", first=date(2024, 7, 1))
        b = course("B", first=date(2024, 7, 1))
        result = self.detector.recompute([a, b])
        self.assertEqual(result.colliding, {a, b})
        self.assertTrue(result.any_collision)

    def test_empty_selection(self) -> None:
        result = self.detector.recompute([])
        self.assertEqual(result.colliding, set())
        self.assertFalse(result.any_collision)

    def test_first_against_second_sitting(self) -> None:
        a = course("A", first=date(2024, 7, 1), second=date(2024, 8, 1))
        b = course("B", first=date(2024, 8, 1))
        c = course("C", first=date(2024, 7, 20))
        result = self.detector.recompute([a, b, c])
        self.assertEqual(result.colliding, {a, b})

    def test_only_second_exam_is_considered(self) -> None:
        a = course("A", second=date(2024, 8, 1))
        b = course("B", second=date(2024, 8, 1))
        self.assertEqual(self.detector.recompute([a, b]).colliding, {a, b})

    def test_no_self_collision(self) -> None:
        a = course("A", first=date(2024, 7, 1), second=date(2024, 7, 1))
        b = course("B", first=date(2024, 7, 2))
        result = self.detector.recompute([a, b])
        self.assertEqual(result.colliding, set())
        self.assertFalse(result.any_collision)

    def test_courses_without_exams_never_collide(self) -> None:
        a = course("A")
        b = course("B")
        self.assertFalse(self.detector.recompute([a, b]).any_collision)

    def test_collision_is_symmetric(self) -> None:
        d1, d2, d3 = date(2024, 7, 1), date(2024, 7, 2), date(2024, 7, 3)
        choices = [None, d1, d2, d3]
        pool = [course(str(i), f, s) for i, (f, s) in enumerate(itertools.product(choices, choices))]

        for sel in itertools.combinations(pool, 3):
            result = self.detector.recompute(list(sel))
            for x, y in itertools.permutations(sel, 2):
                if x.exam_dates & y.exam_dates:
                    self.assertIn(x, result.colliding)
                    self.assertIn(y, result.colliding)

    def test_display_name_and_warning(self) -> None:
        a = course("A", first=date(2024, 7, 1))
        b = course("B", first=date(2024, 7, 1))
        c = course("C")
        result = self.detector.recompute([a, b, c])
        self.assertEqual(result.display_name(a), "*Course A*")
        self.assertEqual(result.display_name(c), "Course C")
        self.assertEqual(describe_course(None, result), [COLLISION_WARNING])


class TestEventOverlaps(unittest.TestCase):
    def test_overlap_same_day(self) -> None:
        a = Event(day=1, start=1000, end=1100)
        b = Event(day=1, start=1030, end=1200)
        self.assertTrue(events_overlap(a, b))
        self.assertEqual(len(find_conflicts([a, b])), 1)

    def test_no_overlap_touching_end(self) -> None:
        a = Event(day=1, start=1000, end=1100)
        b = Event(day=1, start=1100, end=1200)
        self.assertEqual(find_conflicts([a, b]), [])

    def test_different_day_no_conflict(self) -> None:
        a = Event(day=1, start=1000, end=1100)
        b = Event(day=2, start=1030, end=1200)
        self.assertFalse(events_overlap(a, b))


if __name__ == "__main__":
    unittest.main()
