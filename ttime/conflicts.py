"""
Conflict detection.

Two kinds of conflicts matter:

- exam collisions: two selected courses share an exam date
  (first or second sitting, in any combination)
- event overlaps: two weekly events on the same day whose times overlap

Overlap rule:
    start < other_end AND end > other_start
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Sequence, Tuple

from ttime.model import Course, Event, military_to_minutes

COLLISION_WARNING = "WARNING: The courses marked with * have colliding test dates!"


@dataclass
class CollisionResult:
    colliding: set[Course] = field(default_factory=set)
    any_collision: bool = False

    def collides(self, course: Course) -> bool:
        return course in self.colliding

    def display_name(self, course: Course) -> str:
        return f"*{course.name}*" if course in self.colliding else course.name


class CollisionDetector:
    """
    Finds selected courses whose exam dates coincide with another selected
    course's exam dates.

    A course is only compared against the *other* courses, so a course whose
    two sittings fall on the same day does not collide with itself.
    """

    def recompute(self, selection: Sequence[Course]) -> CollisionResult:
        courses = list(selection)
        colliding: set[Course] = set()

        # O(n^2) is fine: selections are a handful of courses
        for i, course in enumerate(courses):
            mine = course.exam_dates
            if not mine:
                continue
            others: set = set()
            for j, other in enumerate(courses):
                if j != i:
                    others |= other.exam_dates
            if mine & others:
                colliding.add(course)

        return CollisionResult(colliding=colliding, any_collision=bool(colliding))


def _overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and a_end > b_start


def events_overlap(a: Event, b: Event) -> bool:
    """
    True if both events fall on the same weekday and their times overlap.
    Touching endpoints (end == start) is NOT an overlap.
    """
    if a.day != b.day:
        return False
    return _overlaps(
        military_to_minutes(a.start),
        military_to_minutes(a.end),
        military_to_minutes(b.start),
        military_to_minutes(b.end),
    )


def find_conflicts(events: Iterable[Event]) -> List[Tuple[Event, Event]]:
    """
    Find overlapping event pairs (A,B), each pair appears once (i<j).
    """
    evs = list(events)
    conflicts: List[Tuple[Event, Event]] = []
    for i in range(len(evs)):
        for j in range(i + 1, len(evs)):
            if events_overlap(evs[i], evs[j]):
                conflicts.append((evs[i], evs[j]))
    return conflicts
