from __future__ import annotations

from collections import defaultdict
from typing import Callable, Dict, List, Optional

from rich import box
from rich.console import Console
from rich.table import Table

from ttime.errors import TTimeError
from ttime.info import describe_event, describe_schedule
from ttime.model import Course, military_to_human, numeric_day_to_human
from ttime.projection import RenderItem
from ttime.state import AppState

WORK_WEEK = [1, 2, 3, 4, 5]
FULL_WEEK = [1, 2, 3, 4, 5, 6, 7]

HELP = (
    "[n]ext  [p]rev  [N] +10  [P] -10  [g]oto  [a]lternatives\n"
    "[e]vent details  [d]isallow group  [w]eek view  [q]uit"
)


def _frac_to_human(frac: float) -> str:
    minutes = int(round(frac * 60))
    return military_to_human((minutes // 60) * 100 + minutes % 60)


def _cell(item: RenderItem) -> str:
    span = f"{_frac_to_human(item.start_frac)}-{_frac_to_human(item.start_frac + item.length)}"
    text = item.text.replace("\n", " | ")
    return f"[bold]{span}[/] {text} [dim]({item.type_tag})[/]" if item.type_tag else f"[bold]{span}[/] {text}"


def schedule_table(items: List[RenderItem], full_week: bool = True, title: str = "") -> Table:
    """
    One column per weekday, events sorted by start time.
    """
    days = FULL_WEEK if full_week else WORK_WEEK
    buckets: Dict[int, List[RenderItem]] = defaultdict(list)
    for item in sorted(items, key=lambda x: (x.day, x.start_frac)):
        buckets[item.day].append(item)

    table = Table(box=box.SIMPLE, title=title or None)
    for day in days:
        table.add_column(numeric_day_to_human(day))

    max_len = max((len(buckets[d]) for d in days), default=0)
    for r in range(max_len):
        table.add_row(*[_cell(buckets[d][r]) if r < len(buckets[d]) else "" for d in days])
    return table


def print_schedule(state: AppState, console: Console, items: Optional[List[RenderItem]] = None) -> None:
    schedule = state.current_schedule
    rendered = items if items is not None else state.render_current()
    title = f"Schedule {state.cursor.position_label()}"
    console.print(schedule_table(rendered, state.settings.show_full_week, title))
    for line in describe_schedule(schedule):
        console.print(line, markup=False)


def _ask_course(state: AppState, console: Console, ask: Callable[[str], str]) -> Optional[Course]:
    number = ask("Course number: ").strip()
    try:
        return state.catalog.find_course_by_number(number)
    except TTimeError as e:
        console.print(str(e))
        return None


def run_browser(state: AppState, console: Console, prompt: Optional[Callable[[str], str]] = None) -> None:
    """
    Step through the candidate schedules until the user quits.
    """
    ask = prompt or console.input
    actions = {
        "n": state.cursor.next,
        "p": state.cursor.prev,
        "N": lambda: state.cursor.jump(10),
        "P": lambda: state.cursor.jump(-10),
    }

    print_schedule(state, console)
    while True:
        choice = ask(f"\n{HELP}\nSelect: ").strip()

        if choice == "q" or choice == "":
            return
        if choice in actions:
            before = state.cursor.current
            actions[choice]()
            if state.cursor.current == before:
                console.print("No more schedules in that direction.")
                continue
            print_schedule(state, console)
        elif choice == "g":
            pick = ask(f"Schedule number (1-{state.cursor.total}): ").strip()
            if not pick.isdigit():
                console.print("Not a number.")
                continue
            state.cursor.set(int(pick) - 1)
            print_schedule(state, console)
        elif choice == "a":
            course = _ask_course(state, console, ask)
            if course is None:
                continue
            print_schedule(state, console, state.show_alternatives(course))
        elif choice == "e":
            course = _ask_course(state, console, ask)
            if course is None:
                continue
            events = [ev for ev in state.current_schedule.events if ev.course is course]
            if not events:
                console.print("That course is not in this schedule.")
                continue
            for ev in events:
                console.print("")
                for line in describe_event(ev, state.nicknames):
                    console.print(line, markup=False)
        elif choice == "d":
            course = _ask_course(state, console, ask)
            if course is None:
                continue
            pick = ask("Group number: ").strip()
            group = next((g for g in course.groups if str(g.number) == pick), None)
            if group is None:
                console.print("No such group.")
                continue
            state.disallow_group(course, group)
            state.tasks.wait_idle()
            if not state.cursor.is_set:
                return
            print_schedule(state, console)
        elif choice == "w":
            state.set_full_week(not state.settings.show_full_week)
            print_schedule(state, console)
        else:
            console.print("Invalid choice.")
