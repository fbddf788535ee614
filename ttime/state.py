"""
Application state.

AppState is constructed once and passed to whatever drives it (the CLI, a
GUI). It owns the catalog tree, the selection, the candidate schedules and
the cursor, and wires the flow between them:

    selection change  -> exam collisions recomputed, tree markers updated
    find_schedules()  -> search runs on a worker, results arrive via drain()
    results           -> cursor reset to 0 -> candidate 0 rendered
    query change      -> visibility recomputed
    export            -> dated occurrences handed to the exporter

Everything here runs in the consumer context. Workers only see a snapshot of
the selection.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, Sequence

from ttime import config, storage
from ttime.cursor import ScheduleCursor
from ttime.errors import NoSelectedCourses, SettingsFileNotFound
from ttime.export_ics import export_occurrences_to_ics
from ttime.filtering import CatalogTree, FilterEngine
from ttime.model import CandidateSchedule, Course, CourseCatalog, Group
from ttime.nicknames import Nicknames
from ttime.projection import CalendarProjector, DatedOccurrence, RenderItem, coerce_semester_date
from ttime.scheduler import Constraint, Rating
from ttime.selection import SelectionSet
from ttime.signals import Signal
from ttime.tasks import TaskHandle, TaskQueue

logger = logging.getLogger(__name__)

NO_SCHEDULES = "Sorry, but no schedules are possible with the selected courses and constraints."


class AppState:
    def __init__(
        self,
        source: Any,
        scheduler: Any,
        nicknames: Optional[Nicknames] = None,
        settings: Optional[storage.Settings] = None,
        tasks: Optional[TaskQueue] = None,
        tz_name: Optional[str] = None,
    ) -> None:
        self.source = source
        self.scheduler = scheduler
        self.nicknames = nicknames or Nicknames()
        self.settings = settings or storage.Settings()
        self.tasks = tasks or TaskQueue()
        self.projector = CalendarProjector(
            tz_name or config.timezone_name(), self.nicknames, self.settings.shown_event_data
        )

        self.constraints: List[Constraint] = []
        self.ratings: List[Rating] = []
        self.schedules: List[CandidateSchedule] = []
        self.cursor = ScheduleCursor()
        self.cursor.changed.connect(self._on_cursor_changed)

        # listeners (renderer, dialogs, progress bars)
        self.catalog_loaded = Signal()  # (catalog)
        self.selection_changed = Signal()  # (selection)
        self.schedule_rendered = Signal()  # (items, schedule or None)
        self.message = Signal()  # (level, text)
        self.progress = Signal()  # (target, fraction, text)
        self.progress_done = Signal()  # (target)

        self._install_catalog(CourseCatalog([]))

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    def _install_catalog(self, catalog: CourseCatalog) -> None:
        self.catalog = catalog
        self.tree = CatalogTree(catalog)
        self.filter = FilterEngine(self.tree, self.nicknames)
        self.selection = SelectionSet(catalog)
        self.selection.changed.connect(self._on_selection_changed)

    def apply_catalog(self, catalog: CourseCatalog) -> List[str]:
        """
        Install a freshly loaded catalog and restore the saved selection.
        Returns the warnings for saved courses that no longer exist.
        """
        query = self.filter.query
        self._install_catalog(catalog)
        self.schedules = []
        self.cursor.set_total(0)

        warnings = self.selection.restore(self.settings.selected_courses)
        for w in warnings:
            self.message.emit("warning", w)

        if query:
            self.filter.set_query(query)
        self.catalog_loaded.emit(catalog)
        return warnings

    def _task_callbacks(self, target: str) -> dict:
        def on_progress(fraction: Optional[float], text: str) -> None:
            self.progress.emit(target, fraction, text)

        def on_dispose() -> None:
            self.progress_done.emit(target)

        def on_error(exc: BaseException) -> None:
            self.message.emit("error", str(exc))

        return {"on_progress": on_progress, "on_dispose": on_dispose, "on_error": on_error}

    def load_data(self, force: bool = False) -> TaskHandle:
        return self.tasks.submit(
            "load",
            lambda report: self.source.load(force, report),
            on_done=self.apply_catalog,
            **self._task_callbacks("load"),
        )

    # ------------------------------------------------------------------
    # Selection & search
    # ------------------------------------------------------------------

    def _on_selection_changed(self, selection: SelectionSet) -> None:
        self.tree.mark_collisions(selection.collisions.colliding)
        self.selection_changed.emit(selection)

    def set_query(self, text: str) -> None:
        self.filter.set_query(text)

    def add_course(self, number: str) -> Course:
        return self.selection.add_number(number)

    def drop_course(self, course: Course) -> bool:
        return self.selection.remove(course)

    def clear_courses(self) -> bool:
        return self.selection.clear()

    def find_schedules(self) -> TaskHandle:
        if not len(self.selection):
            raise NoSelectedCourses()

        courses = self.selection.courses
        constraints = list(self.constraints)
        ratings = list(self.ratings)

        return self.tasks.submit(
            "search",
            lambda report: self.scheduler.search(courses, constraints, ratings, report),
            on_done=self.apply_schedules,
            **self._task_callbacks("search"),
        )

    def apply_schedules(self, schedules: Sequence[CandidateSchedule]) -> None:
        self.schedules = list(schedules)
        if not self.schedules:
            self.message.emit("error", NO_SCHEDULES)
        self.cursor.set_total(len(self.schedules))

    def disallow_group(self, course: Course, group: Group) -> TaskHandle:
        """Turn off one group and search again."""
        self.scheduler.disallow_group(course.number, group.number)
        return self.find_schedules()

    # ------------------------------------------------------------------
    # Current schedule
    # ------------------------------------------------------------------

    @property
    def current_schedule(self) -> CandidateSchedule:
        return self.schedules[self.cursor.current]

    def render_current(self) -> List[RenderItem]:
        schedule = self.current_schedule
        return self.projector.render_items(schedule, self.selection.courses)

    def _on_cursor_changed(self, index: Optional[int]) -> None:
        if index is None:
            self.schedule_rendered.emit([], None)
            return
        schedule = self.schedules[index]
        logger.info("Score for current schedule: %r (%r)", schedule.score, schedule.ratings)
        self.schedule_rendered.emit(self.render_current(), schedule)

    def show_alternatives(self, course: Course, group_type: Optional[str] = None) -> List[RenderItem]:
        """
        Current schedule with the given course's events replaced by all of
        its groups (optionally only groups of one type).
        """
        keep = [
            item
            for item in self.render_current()
            if not (
                item.payload["event"].course is course
                and (group_type is None or item.type_tag == group_type)
            )
        ]
        return keep + self.projector.alternative_items(course, self.selection.courses, group_type)

    def set_shown_fields(self, fields: Sequence[str]) -> None:
        self.projector.shown_fields = list(fields)
        self.settings.shown_event_data = list(fields)
        if self.cursor.is_set:
            self.schedule_rendered.emit(self.render_current(), self.current_schedule)

    def set_full_week(self, full_week: bool) -> None:
        self.settings.show_full_week = bool(full_week)
        if self.cursor.is_set:
            self.schedule_rendered.emit(self.render_current(), self.current_schedule)

    # ------------------------------------------------------------------
    # Semester & export
    # ------------------------------------------------------------------

    def set_semester(self, start: Any, end: Any) -> None:
        """
        Accepts dates or 'DD/MM/YY' text; raises MissingSemesterBounds.
        """
        self.settings.semester_start_date = coerce_semester_date(start, "semester start")
        self.settings.semester_end_date = coerce_semester_date(end, "semester end")

    def export_occurrences(self) -> List[DatedOccurrence]:
        schedule = self.current_schedule
        classes = self.projector.project(
            schedule, self.settings.semester_start_date, self.settings.semester_end_date
        )
        exams = self.projector.project_exams(self.selection.courses)
        return list(classes) + list(exams)

    def export_ical(self, path: str | Path) -> int:
        return export_occurrences_to_ics(self.export_occurrences(), path)

    # ------------------------------------------------------------------
    # Settings
    # ------------------------------------------------------------------

    def save_settings(self, path: str | Path | None = None) -> None:
        self.settings.selected_courses = self.selection.numbers()
        self.settings.shown_event_data = list(self.projector.shown_fields)
        storage.save_settings(self.settings, path)

    def import_settings(self, path: str | Path) -> List[str]:
        """
        Replace the settings with the ones stored at `path` and restore their
        selection. Returns the warnings for courses that no longer exist.
        """
        settings_path = Path(path)
        if not settings_path.exists():
            raise SettingsFileNotFound(str(settings_path))
        self.settings = storage.load_settings(settings_path)
        self.projector.shown_fields = list(self.settings.shown_event_data)

        warnings = self.selection.restore(self.settings.selected_courses)
        for w in warnings:
            self.message.emit("warning", w)
        return warnings
