"""
Catalog tree and search filtering.

The tree mirrors the catalog (faculty rows with course rows beneath) and is
the only mutable projection over the catalog: every node carries a visible
flag and course nodes carry a collision marker.

Search rules:
- empty query: everything is visible
- query starting with a digit: course number prefix match
- anything else: case-insensitive regular expression search, first on the
  course nickname, then on the official name
- a query that is not a valid pattern matches everything (fail-open)

A faculty is visible iff one of its courses is visible.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

from ttime.errors import MalformedFilterQuery
from ttime.model import Course, CourseCatalog, Faculty
from ttime.nicknames import Nicknames
from ttime.signals import Signal

logger = logging.getLogger(__name__)

Matcher = Callable[[Course], bool]


@dataclass(eq=False)
class CatalogNode:
    """
    A faculty row (course is None) or a course row of the catalog tree.
    """

    name: str
    faculty: Optional[Faculty] = None
    course: Optional[Course] = None
    parent: Optional["CatalogNode"] = field(default=None, repr=False)
    children: List["CatalogNode"] = field(default_factory=list, repr=False)
    visible: bool = True
    collision: bool = False

    @property
    def is_course(self) -> bool:
        return self.course is not None

    @property
    def number(self) -> str:
        return self.course.number if self.course is not None else ""


class CatalogTree:
    def __init__(self, catalog: CourseCatalog) -> None:
        self.catalog = catalog
        self.roots: List[CatalogNode] = []
        self._course_nodes: dict[Course, CatalogNode] = {}

        for faculty in catalog:
            root = CatalogNode(name=faculty.name, faculty=faculty)
            for course in faculty.courses:
                child = CatalogNode(name=course.name, faculty=faculty, course=course, parent=root)
                root.children.append(child)
                self._course_nodes.setdefault(course, child)
            self.roots.append(root)

    def __iter__(self) -> Iterator[CatalogNode]:
        """Depth-first: each faculty followed by its courses."""
        for root in self.roots:
            yield root
            yield from root.children

    def __len__(self) -> int:
        return sum(1 + len(r.children) for r in self.roots)

    def course_nodes(self) -> Iterator[CatalogNode]:
        for root in self.roots:
            yield from root.children

    def node_for(self, course: Course) -> Optional[CatalogNode]:
        return self._course_nodes.get(course)

    def mark_collisions(self, colliding: set[Course]) -> None:
        for node in self.course_nodes():
            node.collision = node.course in colliding


def compile_query(query: str, nicknames: Optional[Nicknames] = None) -> Matcher:
    """
    Build a course matcher for a non-empty query.

    Raises MalformedFilterQuery if a text query is not a valid pattern.
    """
    if query[:1].isdigit():
        prefix = query

        def by_number(course: Course) -> bool:
            return course.number.startswith(prefix)

        return by_number

    try:
        pattern = re.compile(query, re.IGNORECASE)
    except re.error as e:
        raise MalformedFilterQuery(query, str(e)) from None

    def by_name(course: Course) -> bool:
        nick = nicknames.beautify(course.name) if nicknames is not None else None
        if nick and pattern.search(nick):
            return True
        return pattern.search(course.name) is not None

    return by_name


class FilterEngine:
    """
    Recomputes node visibility from the current query.
    """

    def __init__(self, tree: CatalogTree, nicknames: Optional[Nicknames] = None) -> None:
        self.tree = tree
        self.nicknames = nicknames
        self.query = ""
        self.changed = Signal()

    def _matcher_for(self, query: str) -> Optional[Matcher]:
        """None means 'match everything'."""
        if not query:
            return None
        try:
            return compile_query(query, self.nicknames)
        except MalformedFilterQuery as e:
            logger.warning("%s; showing all courses", e)
            return None

    def set_query(self, text: str) -> None:
        self.query = text or ""
        logger.debug('Starting search for "%s"', self.query)

        matcher = self._matcher_for(self.query)

        for root in self.tree.roots:
            if matcher is None:
                root.visible = True
                for child in root.children:
                    child.visible = True
                continue

            any_visible = False
            for child in root.children:
                course = child.course
                assert course is not None
                child.visible = matcher(course)
                any_visible = any_visible or child.visible
            root.visible = any_visible

        logger.debug("Search complete")
        self.changed.emit(self.query)

    def visible_courses(self) -> List[Course]:
        return [n.course for n in self.tree.course_nodes() if n.visible and n.course is not None]
