"""
The user's course selection.

An ordered, duplicate-free list of catalog courses. Every mutation recomputes
exam collisions from scratch and emits `changed`.
"""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, List, Optional

from ttime.conflicts import CollisionDetector, CollisionResult
from ttime.errors import UnknownCourseNumber
from ttime.model import Course, CourseCatalog
from ttime.signals import Signal

logger = logging.getLogger(__name__)

MISSING_SAVED_COURSE = (
    'There was a course with number "{number}" in your preferences, '
    "but it doesn't seem to exist now."
)


class SelectionSet:
    def __init__(self, catalog: CourseCatalog, detector: Optional[CollisionDetector] = None) -> None:
        self.catalog = catalog
        self.detector = detector or CollisionDetector()
        self._courses: List[Course] = []
        self.collisions = CollisionResult()
        self.changed = Signal()

    def __iter__(self) -> Iterator[Course]:
        return iter(self._courses)

    def __len__(self) -> int:
        return len(self._courses)

    def __contains__(self, course: object) -> bool:
        return course in self._courses

    @property
    def courses(self) -> List[Course]:
        return list(self._courses)

    def index(self, course: Course) -> int:
        """Position in the selection; doubles as the course's color index."""
        return self._courses.index(course)

    def numbers(self) -> List[str]:
        return [c.number for c in self._courses]

    def _recompute(self) -> None:
        self.collisions = self.detector.recompute(self._courses)
        self.changed.emit(self)

    def add(self, course: Course) -> bool:
        """
        Add a catalog course. Returns False if it was already selected.
        """
        if course not in self.catalog:
            raise UnknownCourseNumber(course.number)
        if course in self._courses:
            return False
        self._courses.append(course)
        self._recompute()
        return True

    def add_number(self, number: str) -> Course:
        course = self.catalog.find_course_by_number(number)
        self.add(course)
        return course

    def remove(self, course: Course) -> bool:
        if course not in self._courses:
            return False
        self._courses.remove(course)
        self._recompute()
        return True

    def clear(self) -> bool:
        if not self._courses:
            return False
        self._courses.clear()
        self._recompute()
        return True

    def restore(self, numbers: Iterable[str]) -> List[str]:
        """
        Replace the selection with the given course numbers.

        Unknown numbers are skipped; a warning message per skipped course is
        returned (and logged) so the caller can show it.
        """
        warnings: List[str] = []
        restored: List[Course] = []
        for number in numbers:
            try:
                course = self.catalog.find_course_by_number(number)
            except UnknownCourseNumber:
                message = MISSING_SAVED_COURSE.format(number=number)
                logger.warning("%s", message)
                warnings.append(message)
                continue
            if course not in restored:
                restored.append(course)

        self._courses = restored
        self._recompute()
        return warnings
