"""Records produced while scraping the study program pages."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional

MANDATORY = "Mandatory"
ELECTIVE = "Elective"

NO_PREREQUISITES = "Нема"

_WS_RE = re.compile(r"\s+")


def normalize_ws(text: Optional[str]) -> str:
    return _WS_RE.sub(" ", (text or "")).strip()


@dataclass(frozen=True)
class ProgramRef:
    url: str
    name: str


@dataclass(frozen=True)
class RawCourseRow:
    """One course row as it appears on a program page, before merging."""

    name: str
    type: str
    link: Optional[str] = None
    code: Optional[str] = None
    level: Optional[str] = None


@dataclass
class StudyProgram:
    program_name: str
    type: str

    def to_dict(self) -> Dict[str, str]:
        return {"programName": self.program_name, "type": self.type}


@dataclass
class CourseDetail:
    """Fields read from a course's own page (2023 layout only)."""

    semester: Optional[int] = None
    prerequisites: Optional[str] = None
    description: Optional[str] = None
    professors: Optional[List[str]] = None

    def is_empty(self) -> bool:
        return (
            self.semester is None
            and self.prerequisites is None
            and self.description is None
            and self.professors is None
        )


@dataclass
class Course:
    """A merged catalog entry. ``name`` is the identity inside one run."""

    name: str
    codes: List[str] = field(default_factory=list)
    link: Optional[str] = None
    study_programs: List[StudyProgram] = field(default_factory=list)
    semester: Optional[int] = None
    prerequisites: Optional[str] = None
    description: Optional[str] = None
    professors: Optional[List[str]] = None
    level: Optional[str] = None

    @classmethod
    def from_row(cls, row: RawCourseRow, program_name: str, code: Optional[str] = None) -> "Course":
        code = code or row.code
        return cls(
            name=normalize_ws(row.name),
            codes=[code] if code else [],
            link=row.link,
            study_programs=[StudyProgram(normalize_ws(program_name), row.type)],
            level=row.level,
        )

    def program_names(self) -> List[str]:
        return [sp.program_name for sp in self.study_programs]

    def apply_detail(self, detail: CourseDetail) -> None:
        if detail.semester is not None:
            self.semester = detail.semester
        if detail.prerequisites:
            self.prerequisites = detail.prerequisites
        if detail.description:
            self.description = detail.description
        if detail.professors:
            self.professors = list(detail.professors)

    def copy(self) -> "Course":
        return Course(
            name=self.name,
            codes=list(self.codes),
            link=self.link,
            study_programs=[StudyProgram(sp.program_name, sp.type) for sp in self.study_programs],
            semester=self.semester,
            prerequisites=self.prerequisites,
            description=self.description,
            professors=list(self.professors) if self.professors is not None else None,
            level=self.level,
        )

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "codes": list(self.codes),
            "name": self.name,
        }
        if self.link:
            data["link"] = self.link
        data["studyPrograms"] = [sp.to_dict() for sp in self.study_programs]
        optional = (
            ("semester", self.semester),
            ("prerequisites", self.prerequisites),
            ("description", self.description),
            ("professors", list(self.professors) if self.professors else None),
            ("level", self.level),
        )
        for key, value in optional:
            if value is not None:
                data[key] = value
        return data
