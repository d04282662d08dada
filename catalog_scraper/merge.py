"""Fold courses from many program pages into one catalog keyed by course name.

Course codes differ between programs and between the 2018 and 2023 pages, so
the whitespace-normalized title is the only join key the pages share. Two
different courses with the same title end up as one record.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Optional, Sequence

from .models import Course, StudyProgram, normalize_ws

_BACKFILL_FIELDS = ("link", "semester", "prerequisites", "description", "professors", "level")


def union_codes(existing: List[str], new_codes: Iterable[str]) -> None:
    """Append codes not yet present, keeping first-seen order."""
    for code in new_codes:
        if code and code not in existing:
            existing.append(code)


def add_study_program(course: Course, program: StudyProgram) -> bool:
    """Append ``program`` unless the course already lists that program name."""
    name = normalize_ws(program.program_name)
    if name in (normalize_ws(n) for n in course.program_names()):
        return False
    course.study_programs.append(StudyProgram(name, program.type))
    return True


class CourseIndex:
    """Running name -> course map for one aggregation run."""

    def __init__(self) -> None:
        self._courses: Dict[str, Course] = {}

    def __len__(self) -> int:
        return len(self._courses)

    def __contains__(self, name: str) -> bool:
        return normalize_ws(name) in self._courses

    def get(self, name: str) -> Optional[Course]:
        return self._courses.get(normalize_ws(name))

    def add(self, course: Course, backfill: bool = False) -> Course:
        """Merge ``course`` into the index and return the stored record.

        A new name is stored as a copy. A known name gets the new codes and any
        study program it does not list yet; existing entries are left alone.
        With ``backfill`` set, optional fields missing on the stored record are
        taken from ``course``.
        """
        key = normalize_ws(course.name)
        existing = self._courses.get(key)
        if existing is None:
            record = course.copy()
            record.name = key
            record.codes = []
            union_codes(record.codes, course.codes)
            record.study_programs = []
            for program in course.study_programs:
                add_study_program(record, program)
            self._courses[key] = record
            return record

        union_codes(existing.codes, course.codes)
        for program in course.study_programs:
            add_study_program(existing, program)
        if backfill:
            for attr in _BACKFILL_FIELDS:
                if getattr(existing, attr) is None and getattr(course, attr) is not None:
                    value = getattr(course, attr)
                    setattr(existing, attr, list(value) if isinstance(value, list) else value)
        return existing

    def extend(self, courses: Iterable[Course], backfill: bool = False) -> None:
        for course in courses:
            self.add(course, backfill=backfill)

    def finalize(self) -> List[Course]:
        """Re-normalize every program name and return the records in insertion order."""
        for course in self._courses.values():
            for program in course.study_programs:
                program.program_name = normalize_ws(program.program_name)
        return list(self._courses.values())


def combine_catalogs(*catalogs: Sequence[Course]) -> List[Course]:
    """Merge whole catalogs (e.g. 2018 then 2023) without mutating the inputs."""
    index = CourseIndex()
    for catalog in catalogs:
        index.extend(catalog, backfill=True)
    return index.finalize()


def count_name_overlaps(first: Sequence[Course], second: Sequence[Course]) -> int:
    """Number of distinct course names present in both lists (case-insensitive)."""
    first_names = {normalize_ws(c.name).lower() for c in first}
    second_names = {normalize_ws(c.name).lower() for c in second}
    return len(first_names & second_names)
