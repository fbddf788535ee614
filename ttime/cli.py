"""
CLI (Command Line Interface).

Terminal commands on top of AppState, e.g.:

    ttime search <text>
    ttime add <course_number>
    ttime remove <course_number>
    ttime selected
    ttime semester 22/10/23 12/01/24
    ttime schedules --index 3
    ttime export <file.ics>
    ttime browse --work-week
    ttime settings export <file.json>

Every command loads the catalog through the task queue (with a progress bar),
restores the saved selection, and saves settings again if it changed them.
"""

from __future__ import annotations

import argparse
import logging
from typing import Callable, List, Optional

from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import BarColumn, Progress, TextColumn, TimeElapsedColumn
from rich.table import Table

from ttime import config, storage
from ttime.data import JsonCatalogSource
from ttime.errors import TTimeError
from ttime.info import describe_course
from ttime.interactive import print_schedule, run_browser
from ttime.model import Course
from ttime.nicknames import Nicknames
from ttime.scheduler import GroupCombinationScheduler
from ttime.state import AppState

logger = logging.getLogger(__name__)

console = Console()

MAX_RESULTS = 20


def _configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _print_message(level: str, text: str) -> None:
    style = "bold red" if level == "error" else "yellow"
    console.print(f"[{style}]{text}[/]")


def build_state(args: argparse.Namespace) -> AppState:
    settings = storage.load_settings()
    source = JsonCatalogSource(args.catalog or None, url=config.catalog_url())
    state = AppState(source, GroupCombinationScheduler(), Nicknames.load(), settings)
    state.message.connect(_print_message)
    return state


def run_task(state: AppState, submit: Callable[[], object], description: str) -> None:
    """
    Submit a background task and drain the queue until it is done, showing
    its progress.
    """
    progress = Progress(
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
    task = progress.add_task(description, total=1.0)

    def on_progress(target: str, fraction: Optional[float], text: str) -> None:
        if fraction is None:
            progress.update(task, description=text or description)
        else:
            progress.update(task, completed=fraction, description=text or description)

    state.progress.connect(on_progress)
    try:
        with progress:
            submit()
            state.tasks.wait_idle()
    finally:
        state.progress.disconnect(on_progress)


def _load_catalog(state: AppState, force: bool = False) -> bool:
    loaded: List[object] = []
    state.catalog_loaded.connect(loaded.append)
    run_task(state, lambda: state.load_data(force), "Loading catalog")
    state.catalog_loaded.disconnect(loaded.append)
    return bool(loaded)


def _find_schedules(state: AppState, index: Optional[int]) -> bool:
    run_task(state, state.find_schedules, "Searching schedules")
    if not state.cursor.is_set:
        return False
    if index is not None:
        state.cursor.set(index - 1)
    return True


def _course_row(state: AppState, course: Course) -> List[str]:
    name = state.nicknames.display_name(course.name)
    if state.selection.collisions.collides(course):
        name = f"[bold red]*{name}*[/]"
    points = "" if course.academic_points is None else f"{course.academic_points:g}"
    return [f"[bold cyan]{course.number}[/]", name, points]


def _cmd_search(args: argparse.Namespace, state: AppState) -> int:
    state.set_query(args.text)
    matches = state.filter.visible_courses()
    if not matches:
        console.print("No results.")
        return 0

    table = Table(title=f"Search results (max {MAX_RESULTS})", box=box.SIMPLE)
    table.add_column("Number")
    table.add_column("Course")
    table.add_column("Points", justify="right")
    for course in matches[:MAX_RESULTS]:
        table.add_row(*_course_row(state, course))
    console.print(table)
    if len(matches) > MAX_RESULTS:
        console.print(f"... and {len(matches) - MAX_RESULTS} more results")
    return 0


def _cmd_add(args: argparse.Namespace, state: AppState) -> int:
    course = state.catalog.find_course_by_number(args.number)
    if course in state.selection:
        console.print(f"Already selected: {course}")
        return 0
    state.selection.add(course)
    state.save_settings()
    console.print(f"Added: {course} (selected: {len(state.selection)})")
    if state.selection.collisions.collides(course):
        console.print("[bold red]This course has an exam date collision.[/]")
    return 0


def _cmd_remove(args: argparse.Namespace, state: AppState) -> int:
    number = args.number.strip()
    for course in state.selection:
        if course.number == number:
            state.drop_course(course)
            state.save_settings()
            console.print(f"Removed: {course} (selected: {len(state.selection)})")
            return 0
    console.print(f"Not selected: {number}")
    return 0


def _cmd_clear(args: argparse.Namespace, state: AppState) -> int:
    if state.clear_courses():
        state.save_settings()
        console.print("Selection cleared.")
    else:
        console.print("No courses selected.")
    return 0


def _cmd_selected(args: argparse.Namespace, state: AppState) -> int:
    if not len(state.selection):
        console.print("No courses selected.")
        return 0

    table = Table(title="Selected courses", box=box.SIMPLE)
    table.add_column("Number")
    table.add_column("Course")
    table.add_column("Points", justify="right")
    for course in state.selection:
        table.add_row(*_course_row(state, course))
    console.print(table)

    if state.selection.collisions.any_collision:
        console.print(f"[bold red]{describe_course(None, state.selection.collisions)[0]}[/]")
    return 0


def _cmd_info(args: argparse.Namespace, state: AppState) -> int:
    course = state.catalog.find_course_by_number(args.number)
    for line in describe_course(course, state.selection.collisions):
        console.print(line, markup=False)
    return 0


def _cmd_semester(args: argparse.Namespace, state: AppState) -> int:
    state.set_semester(args.start, args.end)
    state.save_settings()
    console.print(f"Semester: {config.format_date(state.settings.semester_start_date)}"
                  f" - {config.format_date(state.settings.semester_end_date)}")
    return 0


def _cmd_exams(args: argparse.Namespace, state: AppState) -> int:
    exams = sorted(state.projector.project_exams(state.selection.courses), key=lambda o: o.start)
    if not exams:
        console.print("No courses with tests are selected.")
        return 0
    table = Table(title="Exams", box=box.SIMPLE)
    table.add_column("Date")
    table.add_column("Exam")
    for occ in exams:
        name = occ.summary
        if occ.course is not None and state.selection.collisions.collides(occ.course):
            name = f"[bold red]{name}[/]"
        table.add_row(occ.start.strftime("%a %d/%m/%y"), name)
    console.print(table)
    return 0


def _cmd_settings(args: argparse.Namespace, state: AppState) -> int:
    if args.action == "export":
        state.save_settings(args.path)
        console.print(f"Settings exported to: {args.path}")
        return 0

    state.import_settings(args.path)
    state.save_settings()
    console.print(f"Settings imported from: {args.path} (selected: {len(state.selection)})")
    return 0


def _apply_week_view(args: argparse.Namespace, state: AppState) -> None:
    if args.full_week is not None:
        state.set_full_week(args.full_week)
        state.save_settings()


def _cmd_schedules(args: argparse.Namespace, state: AppState) -> int:
    _apply_week_view(args, state)
    if not _find_schedules(state, args.index):
        return 1
    print_schedule(state, console)
    return 0


def _cmd_export(args: argparse.Namespace, state: AppState) -> int:
    out_path = (args.out or "").strip()
    if not out_path.lower().endswith(".ics"):
        out_path = f"{out_path}.ics"

    if not _find_schedules(state, args.index):
        return 1
    n = state.export_ical(out_path)
    console.print(f"Exported {n} events to: {out_path}")
    return 0


def _cmd_browse(args: argparse.Namespace, state: AppState) -> int:
    _apply_week_view(args, state)
    if not _find_schedules(state, None):
        return 1
    run_browser(state, console)
    return 0


def _cmd_update(args: argparse.Namespace, state: AppState) -> int:
    console.print(f"Catalog updated: {len(list(state.catalog.courses()))} courses")
    return 0


COMMANDS = {
    "search": _cmd_search,
    "add": _cmd_add,
    "remove": _cmd_remove,
    "clear": _cmd_clear,
    "selected": _cmd_selected,
    "info": _cmd_info,
    "semester": _cmd_semester,
    "exams": _cmd_exams,
    "schedules": _cmd_schedules,
    "export": _cmd_export,
    "browse": _cmd_browse,
    "update": _cmd_update,
    "settings": _cmd_settings,
}


def _add_week_options(p: argparse.ArgumentParser) -> None:
    week = p.add_mutually_exclusive_group()
    week.add_argument("--full-week", dest="full_week", action="store_true", help="Show Sunday to Saturday (saved)")
    week.add_argument("--work-week", dest="full_week", action="store_false", help="Show Sunday to Thursday (saved)")
    p.set_defaults(full_week=None)


def build_parser() -> argparse.ArgumentParser:
    """
    Build the argparse CLI parser with sub-commands.
    """
    parser = argparse.ArgumentParser(prog="ttime", description="TTime timetable planner")
    parser.add_argument("--catalog", type=str, default="", help="Catalog JSON file (default: data dir)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="More logging (-vv for debug)")
    sub = parser.add_subparsers(dest="command", required=True)

    p_search = sub.add_parser("search", help="Search for courses by number prefix or name")
    p_search.add_argument("text", type=str, help="Search text (digits = course number prefix)")

    p_add = sub.add_parser("add", help="Add course by number")
    p_add.add_argument("number", type=str, help="Course number (e.g. 234111)")

    p_remove = sub.add_parser("remove", help="Remove course by number")
    p_remove.add_argument("number", type=str, help="Course number (e.g. 234111)")

    sub.add_parser("clear", help="Clear the selection")
    sub.add_parser("selected", help="Show selected courses and exam collisions")

    p_info = sub.add_parser("info", help="Show course details")
    p_info.add_argument("number", type=str, help="Course number")

    p_sem = sub.add_parser("semester", help="Set semester start and end (DD/MM/YY)")
    p_sem.add_argument("start", type=str)
    p_sem.add_argument("end", type=str)

    sub.add_parser("exams", help="Show exam dates of selected courses")

    p_sched = sub.add_parser("schedules", help="Find schedules and show one")
    p_sched.add_argument("--index", "-i", type=int, default=None, help="1-based schedule number")
    _add_week_options(p_sched)

    p_export = sub.add_parser("export", help="Export a schedule to .ics")
    p_export.add_argument("out", type=str, help="Output file path (e.g. out.ics)")
    p_export.add_argument("--index", "-i", type=int, default=None, help="1-based schedule number")

    p_browse = sub.add_parser("browse", help="Browse schedules interactively")
    _add_week_options(p_browse)

    sub.add_parser("update", help="Re-download the catalog")

    p_settings = sub.add_parser("settings", help="Export or import settings to/from a file")
    p_settings.add_argument("action", choices=["export", "import"])
    p_settings.add_argument("path", type=str, help="Settings JSON file")

    return parser


def main(argv: list[str] | None = None) -> None:
    """
    CLI entry point. Parses args, loads the catalog, dispatches to command
    handlers, and exits via SystemExit with a return code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "search" and not (args.text or "").strip():
        console.print("Please provide a search text.")
        raise SystemExit(1)

    state = build_state(args)
    try:
        if not _load_catalog(state, force=args.command == "update"):
            raise SystemExit(1)
        raise SystemExit(COMMANDS[args.command](args, state))
    except TTimeError as e:
        _print_message("error", str(e))
        raise SystemExit(1)
    finally:
        state.tasks.shutdown(wait=False)
