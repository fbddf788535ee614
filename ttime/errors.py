"""
Exception taxonomy.

Every error raised on purpose by this package derives from TTimeError so the
CLI can turn it into a message and a non-zero exit code.
"""

from __future__ import annotations


class TTimeError(Exception):
    """Base class for all TTime errors."""


class NoCurrentSchedule(TTimeError):
    def __init__(self) -> None:
        super().__init__("No schedule is selected. Please run \"Find Schedules\" first.")


class MissingSemesterBounds(TTimeError):
    def __init__(self, detail: str = "") -> None:
        msg = "Invalid date. Please set semester start and end date first."
        if detail:
            msg = f"{msg} ({detail})"
        super().__init__(msg)


class UnknownCourseNumber(TTimeError):
    def __init__(self, number: str) -> None:
        self.number = number
        super().__init__(f'There is no course with number "{number}".')


class MalformedFilterQuery(TTimeError):
    def __init__(self, query: str, reason: str) -> None:
        self.query = query
        super().__init__(f"Malformed filter query {query!r}: {reason}")


class TaskAlreadyRunning(TTimeError):
    def __init__(self, target: str) -> None:
        self.target = target
        super().__init__(f"A {target!r} task is already running.")


class NoSelectedCourses(TTimeError):
    def __init__(self) -> None:
        super().__init__("Please select some courses first.")


class DataSourceError(TTimeError):
    """Catalog could not be downloaded or parsed."""


class SettingsFileNotFound(TTimeError):
    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__(f"Settings file not found: {path}")
