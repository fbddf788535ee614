"""
Calendar projection.

A candidate schedule only knows weekly events ("Monday 10:30-12:30"). To draw
or export it we need real dates:

- the first occurrence of each event is the first matching weekday on or
  after the semester start
- it then repeats weekly until the semester end (inclusive)
- times are interpreted in a named time zone (default Asia/Jerusalem)

Exams are projected separately, one all-day occurrence per exam date.

Weekdays follow the catalog convention: 0 = Sunday ... 6 = Saturday
(event.day is 1-based, so event weekday = event.day - 1).
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, Iterable, Iterator, List, NamedTuple, Optional, Sequence
from zoneinfo import ZoneInfo

from ttime import config
from ttime.errors import MissingSemesterBounds
from ttime.model import CandidateSchedule, Course, Event, military_to_minutes, numeric_day_to_ical
from ttime.nicknames import Nicknames

EVENT_DATA_MEMBERS = [
    ("course_name", "Course name"),
    ("course_number", "Course number"),
    ("group_number", "Group number"),
    ("place", "Place"),
    ("lecturer", "Lecturer"),
]
DEFAULT_EVENT_DATA_MEMBERS = ["course_name", "group_number", "place"]

EXAM_LABELS = {"first": "Moed A", "second": "Moed B"}


def weekday_sunday_first(d: date) -> int:
    """Sunday=0 ... Saturday=6 (date.weekday() is Monday=0)."""
    return (d.weekday() + 1) % 7


def first_occurrence(semester_start: date, event_day: int) -> date:
    """
    First date on or after semester_start that falls on event_day (1=Sunday).
    """
    event_weekday = event_day - 1
    offset = (event_weekday - weekday_sunday_first(semester_start)) % 7
    return semester_start + timedelta(days=offset)


def coerce_semester_date(value: Any, label: str) -> date:
    """
    Accept a date/datetime or 'DD/MM/YY' text. Anything else is an error.
    """
    if value is None:
        raise MissingSemesterBounds(f"{label} is not set")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        if not value.strip():
            raise MissingSemesterBounds(f"{label} is not set")
        try:
            return config.parse_date(value)
        except ValueError:
            raise MissingSemesterBounds(f"{label} {value!r} is not in DD/MM/YY format") from None
    raise MissingSemesterBounds(f"{label} has unsupported type {type(value).__name__}")


@dataclass(frozen=True)
class WeeklyRecurrence:
    """
    FREQ=WEEKLY rule; `until` is inclusive, `wkst` is the event's own day
    (1=Sunday).
    """

    until: date
    wkst: int
    interval: int = 1

    def dates(self, first: date) -> Iterator[date]:
        step = timedelta(weeks=self.interval)
        d = first
        while d <= self.until:
            yield d
            d += step

    def as_rrule(self, until_text: Optional[str] = None) -> str:
        until = until_text or self.until.strftime("%Y%m%d")
        return f"FREQ=WEEKLY;INTERVAL={self.interval};WKST={numeric_day_to_ical(self.wkst)};UNTIL={until}"


@dataclass
class DatedOccurrence:
    summary: str
    start: datetime
    end: datetime
    kind: str = "class"
    description: str = ""
    location: Optional[str] = None
    recurrence: Optional[WeeklyRecurrence] = None
    exam: Optional[str] = None
    all_day: bool = False
    event: Optional[Event] = None
    course: Optional[Course] = None

    def expand(self) -> Iterator["DatedOccurrence"]:
        """
        Yield one non-recurring occurrence per concrete date.
        """
        if self.recurrence is None:
            yield self
            return
        duration = self.end - self.start
        first = self.start.date()
        for d in self.recurrence.dates(first):
            start = datetime.combine(d, self.start.timetz())
            yield DatedOccurrence(
                summary=self.summary,
                start=start,
                end=start + duration,
                kind=self.kind,
                description=self.description,
                location=self.location,
                exam=self.exam,
                all_day=self.all_day,
                event=self.event,
                course=self.course,
            )


class LazySequence:
    """
    A finite, restartable iterable: each iteration calls the factory again.
    """

    def __init__(self, factory: Callable[[], Iterator[DatedOccurrence]]) -> None:
        self._factory = factory

    def __iter__(self) -> Iterator[DatedOccurrence]:
        return self._factory()


class RenderItem(NamedTuple):
    text: str
    day: int
    start_frac: float
    length: float
    color_index: Optional[int]
    payload: Dict[str, Any]
    type_tag: str


class CalendarProjector:
    def __init__(
        self,
        tz_name: str = config.DEFAULT_TIMEZONE,
        nicknames: Optional[Nicknames] = None,
        shown_fields: Optional[Sequence[str]] = None,
    ) -> None:
        self.tz_name = tz_name
        self.tz = ZoneInfo(tz_name)
        self.nicknames = nicknames or Nicknames()
        self.shown_fields: List[str] = list(shown_fields) if shown_fields is not None else list(DEFAULT_EVENT_DATA_MEMBERS)

    # ------------------------------------------------------------------
    # Event details
    # ------------------------------------------------------------------

    def display_name(self, name: str) -> str:
        return self.nicknames.display_name(name)

    def show_field(self, name: str) -> None:
        """Enable a detail field, keeping the canonical field order."""
        if name in self.shown_fields:
            return
        wanted = set(self.shown_fields) | {name}
        self.shown_fields = [key for key, _ in EVENT_DATA_MEMBERS if key in wanted]

    def hide_field(self, name: str) -> None:
        self.shown_fields = [f for f in self.shown_fields if f != name]

    def text_for_event(self, ev: Event) -> str:
        group = ev.group
        course = ev.course
        values = {
            "course_name": self.display_name(group.name) if group is not None else "",
            "course_number": course.number if course is not None else "",
            "group_number": f"Group {group.number}" if group is not None else "",
            "lecturer": group.lecturer if group is not None else None,
            "place": ev.place,
        }
        lines = [values.get(f) for f in self.shown_fields]
        return "\n".join(str(x) for x in lines if x)

    def render_items(self, schedule: CandidateSchedule, selection: Sequence[Course]) -> List[RenderItem]:
        return [self.render_item(ev, selection) for ev in schedule.events]

    def render_item(self, ev: Event, selection: Sequence[Course]) -> RenderItem:
        course = ev.course
        selected = list(selection)
        color = selected.index(course) if course in selected else None
        return RenderItem(
            text=self.text_for_event(ev),
            day=ev.day,
            start_frac=ev.start_frac,
            length=ev.end_frac - ev.start_frac,
            color_index=color,
            payload={"event": ev},
            type_tag=ev.group.type if ev.group is not None else "",
        )

    def alternative_items(
        self, course: Course, selection: Sequence[Course], group_type: Optional[str] = None
    ) -> List[RenderItem]:
        """Render every group of a course (optionally of one type only)."""
        items: List[RenderItem] = []
        for grp in course.groups:
            if group_type is not None and grp.type != group_type:
                continue
            for ev in grp.events:
                items.append(self.render_item(ev, selection))
        return items

    # ------------------------------------------------------------------
    # Dated projection
    # ------------------------------------------------------------------

    def _at(self, d: date, military: int) -> datetime:
        midnight = datetime.combine(d, time(0), tzinfo=self.tz)
        return midnight + timedelta(minutes=military_to_minutes(military))

    def project(self, schedule: CandidateSchedule, semester_start: Any, semester_end: Any) -> LazySequence:
        """
        Project weekly events onto the semester. Bounds are validated now,
        occurrences are produced on iteration.
        """
        start = coerce_semester_date(semester_start, "semester start")
        end = coerce_semester_date(semester_end, "semester end")
        if end < start:
            raise MissingSemesterBounds("semester end is before semester start")

        events = list(schedule.events)

        def generate() -> Iterator[DatedOccurrence]:
            for ev in events:
                d = first_occurrence(start, ev.day)
                group = ev.group
                yield DatedOccurrence(
                    summary=self.display_name(group.name) if group is not None else "",
                    start=self._at(d, ev.start),
                    end=self._at(d, ev.end),
                    kind="class",
                    description=self.text_for_event(ev),
                    location=ev.place,
                    recurrence=WeeklyRecurrence(until=end, wkst=ev.day),
                    event=ev,
                    course=ev.course,
                )

        return LazySequence(generate)

    def project_exams(self, selection: Iterable[Course]) -> LazySequence:
        courses = list(selection)

        def generate() -> Iterator[DatedOccurrence]:
            for course in courses:
                for tag, exam_date in (("first", course.first_test_date), ("second", course.second_test_date)):
                    if exam_date is None:
                        continue
                    at = datetime.combine(exam_date, time(0), tzinfo=self.tz)
                    yield DatedOccurrence(
                        summary=f"{self.display_name(course.name)} - {EXAM_LABELS[tag]}",
                        start=at,
                        end=at,
                        kind="exam",
                        exam=tag,
                        all_day=True,
                        course=course,
                    )

        return LazySequence(generate)
