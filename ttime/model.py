"""
Central data model definitions used across the project.

The catalog is a read-only hierarchy:

    Faculty -> Course -> Group -> Event

Objects are compared by identity (eq=False) so they can be kept in sets and
used as dictionary keys; a course number is unique inside one catalog.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Dict, Iterator, List, Optional

from ttime.errors import UnknownCourseNumber

DAY_NAMES = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]
ICAL_DAYS = ["SU", "MO", "TU", "WE", "TH", "FR", "SA"]


def military_to_minutes(military: int) -> int:
    """
    Convert a military time integer (e.g. 1430) to minutes since midnight.
    Raises ValueError for invalid values.
    """
    h, m = divmod(int(military), 100)
    if not (0 <= h <= 24 and 0 <= m <= 59):
        raise ValueError(f"Invalid military time: {military!r}")
    return h * 60 + m


def military_to_human(military: int) -> str:
    """1430 -> '14:30'"""
    minutes = military_to_minutes(military)
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def numeric_day_to_human(day: int) -> str:
    """1 -> 'Sunday' ... 7 -> 'Saturday'"""
    return DAY_NAMES[day - 1]


def numeric_day_to_ical(day: int) -> str:
    """1 -> 'SU' ... 7 -> 'SA'"""
    return ICAL_DAYS[day - 1]


@dataclass(eq=False)
class Event:
    """
    One weekly meeting of a group.

    day is 1=Sunday ... 7=Saturday; start/end are military times (830 = 08:30).
    """

    day: int
    start: int
    end: int
    place: Optional[str] = None
    group: Optional["Group"] = field(default=None, repr=False)

    @property
    def start_frac(self) -> float:
        return military_to_minutes(self.start) / 60.0

    @property
    def end_frac(self) -> float:
        return military_to_minutes(self.end) / 60.0

    @property
    def course(self) -> Optional["Course"]:
        return self.group.course if self.group is not None else None


@dataclass(eq=False)
class Group:
    """
    A registration group of a course (lecture, tutorial, lab ...).
    """

    number: int
    type: str
    lecturer: Optional[str] = None
    events: List[Event] = field(default_factory=list)
    course: Optional["Course"] = field(default=None, repr=False)

    def __post_init__(self) -> None:
        for ev in self.events:
            ev.group = self

    @property
    def name(self) -> str:
        return self.course.name if self.course is not None else ""


@dataclass(eq=False)
class Course:
    """
    Represents one university course as delivered by the data source.
    """

    number: str
    name: str
    lecturer_in_charge: Optional[str] = None
    academic_points: Optional[float] = None
    first_test_date: Optional[date] = None
    second_test_date: Optional[date] = None
    groups: List[Group] = field(default_factory=list)

    def __post_init__(self) -> None:
        for grp in self.groups:
            grp.course = self

    @property
    def exam_dates(self) -> set[date]:
        return {d for d in (self.first_test_date, self.second_test_date) if d is not None}

    def __str__(self) -> str:
        return f"[{self.number}] {self.name}"


@dataclass(eq=False)
class Faculty:
    name: str
    courses: List[Course] = field(default_factory=list)


@dataclass(eq=False)
class CourseCatalog:
    """
    Ordered list of faculties (load order) with a course-number index.
    """

    faculties: List[Faculty] = field(default_factory=list)

    def __post_init__(self) -> None:
        self._by_number: Dict[str, Course] = {}
        for course in self.courses():
            self._by_number.setdefault(course.number, course)

    def __len__(self) -> int:
        return len(self.faculties)

    def __iter__(self) -> Iterator[Faculty]:
        return iter(self.faculties)

    def courses(self) -> Iterator[Course]:
        for faculty in self.faculties:
            yield from faculty.courses

    def find_course_by_number(self, number: str) -> Course:
        key = str(number).strip()
        try:
            return self._by_number[key]
        except KeyError:
            raise UnknownCourseNumber(key) from None

    def __contains__(self, course: object) -> bool:
        if not isinstance(course, Course):
            return False
        return self._by_number.get(course.number) is course


@dataclass(eq=False)
class CandidateSchedule:
    """
    One full weekly timetable produced by the scheduler.

    ratings maps rater name -> sub-score in rater order.
    """

    events: List[Event]
    score: float = 0.0
    ratings: Dict[str, float] = field(default_factory=dict)
