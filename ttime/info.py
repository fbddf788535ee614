"""
Plain-text detail panels: course information and schedule rating details.
"""

from __future__ import annotations

from typing import List, Optional

from ttime.conflicts import COLLISION_WARNING, CollisionResult
from ttime.model import CandidateSchedule, Course, Event, military_to_human, numeric_day_to_human
from ttime.nicknames import Nicknames


def describe_course(course: Optional[Course], collisions: Optional[CollisionResult] = None) -> List[str]:
    lines: List[str] = []

    if collisions is not None and collisions.any_collision:
        lines.append(COLLISION_WARNING)

    if course is None:
        return lines

    lines.append(str(course))
    for value, title in (
        (course.lecturer_in_charge, "Lecturer in charge"),
        (course.academic_points, "Academic points"),
        (course.first_test_date, "Moed A"),
        (course.second_test_date, "Moed B"),
    ):
        if value:
            lines.append(f"{title}: {value}")

    for grp in course.groups:
        lines.append("")
        lines.append(f"Group {grp.number}")
        got_any_data = False
        if grp.lecturer:
            got_any_data = True
            lines.append(f"Lecturer: {grp.lecturer}")
        for ev in grp.events:
            got_any_data = True
            lines.append(
                f"{numeric_day_to_human(ev.day)}, {military_to_human(ev.start)}-{military_to_human(ev.end)}"
            )
        if not got_any_data:
            lines.append("* No data for this group *")

    return lines


def describe_event(event: Event, nicknames: Optional[Nicknames] = None) -> List[str]:
    group = event.group
    name = group.name if group is not None else ""
    if nicknames is not None:
        name = nicknames.display_name(name)
    lines = [name]
    for title, detail in (
        ("Group", group.number if group is not None else None),
        ("Place", event.place),
        ("Lecturer", group.lecturer if group is not None else None),
    ):
        if detail is None or detail == "":
            continue
        lines.append(f"{title}: {detail}")
    return lines


def describe_schedule(schedule: CandidateSchedule) -> List[str]:
    lines = ["Rating details for this schedule:"]
    for rater, score in schedule.ratings.items():
        lines.append(f'"{rater}" rating: {score:.2f}')
    lines.append(f"Overall score: {schedule.score:.2f}")
    return lines
