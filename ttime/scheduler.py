"""
A small schedule search service.

For every selected course one group of each group type has to be taken
(e.g. one lecture group and one tutorial group). Combinations whose events
overlap are dropped, then user constraints filter and raters score what is
left. No raters ship with this module; callers pass their own.
"""

from __future__ import annotations

import logging
from collections import OrderedDict
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Set, Tuple

from ttime.conflicts import events_overlap
from ttime.errors import NoSelectedCourses
from ttime.model import CandidateSchedule, Course, Event, Group

logger = logging.getLogger(__name__)

ProgressFn = Callable[[Optional[float], str], None]
Constraint = Callable[[Sequence[Event]], bool]


@dataclass
class Rating:
    """
    Named scoring function; the schedule score is the weighted sum.
    """

    name: str
    rate: Callable[[Sequence[Event]], float]
    weight: float = 1.0


def _no_progress(fraction: Optional[float], text: str = "") -> None:
    return None


class GroupCombinationScheduler:
    def __init__(self, disallowed_groups: Iterable[Tuple[str, int]] = (), limit: int = 10000) -> None:
        self.disallowed: Set[Tuple[str, int]] = {(str(c), int(g)) for c, g in disallowed_groups}
        self.limit = limit

    def disallow_group(self, course_number: str, group_number: int) -> None:
        self.disallowed.add((str(course_number), int(group_number)))

    def allow_group(self, course_number: str, group_number: int) -> None:
        self.disallowed.discard((str(course_number), int(group_number)))

    def _slots(self, selection: Sequence[Course]) -> List[List[Group]]:
        """One slot per (course, group type), holding the allowed groups."""
        slots: List[List[Group]] = []
        for course in selection:
            by_type: "OrderedDict[str, List[Group]]" = OrderedDict()
            for grp in course.groups:
                by_type.setdefault(grp.type, [])
                if (course.number, grp.number) not in self.disallowed:
                    by_type[grp.type].append(grp)
            slots.extend(by_type.values())
        return slots

    def _combinations(self, slots: List[List[Group]], progress: ProgressFn) -> List[List[Event]]:
        found: List[List[Event]] = []

        def fits(chosen: List[Event], grp: Group) -> bool:
            return not any(events_overlap(a, b) for a in grp.events for b in chosen)

        def walk(i: int, chosen: List[Event]) -> None:
            if len(found) >= self.limit:
                return
            if i == len(slots):
                found.append(list(chosen))
                return
            for grp in slots[i]:
                if fits(chosen, grp):
                    walk(i + 1, chosen + grp.events)

        if not slots:
            return found
        first = slots[0]
        for k, grp in enumerate(first):
            progress(k / len(first), f"Searching ({len(found)} found)")
            walk(1, list(grp.events))
        return found

    def search(
        self,
        selection: Sequence[Course],
        constraints: Sequence[Constraint] = (),
        ratings: Sequence[Rating] = (),
        progress: ProgressFn = _no_progress,
    ) -> List[CandidateSchedule]:
        courses = list(selection)
        if not courses:
            raise NoSelectedCourses()

        combos = self._combinations(self._slots(courses), progress)
        progress(None, "Rating schedules")

        schedules: List[CandidateSchedule] = []
        for events in combos:
            if not all(c(events) for c in constraints):
                continue
            sub_scores = OrderedDict((r.name, float(r.rate(events))) for r in ratings)
            score = sum(r.weight * sub_scores[r.name] for r in ratings)
            schedules.append(CandidateSchedule(events=events, score=score, ratings=dict(sub_scores)))

        schedules.sort(key=lambda s: s.score, reverse=True)
        progress(1.0, f"Found {len(schedules)} schedules")
        logger.info("Schedule search found %d candidates", len(schedules))
        return schedules
