"""Scraper for the 2023 accreditation pages.

Program pages are discovered from the undergraduate studies index. Course
codes are printed inline, so a program page needs no follow-up fetches; the
merged catalog is then enriched from each course's detail page.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Optional, Sequence

from ..config import CURRENT
from ..extract import (
    MANDATORY_MARKER,
    SITE_ORIGIN,
    absolute_url,
    anchor_text,
    cell_link,
    class_xpath,
    first_anchor,
    has_marker,
    make_soup,
    parse_tree,
    row_cells,
    select_text,
    text_of,
)
from ..models import ELECTIVE, MANDATORY, NO_PREREQUISITES, Course, CourseDetail, ProgramRef, RawCourseRow, normalize_ws
from .base import CatalogSource

PROGRAM_LINK_SELECTOR = (
    "#block-views-akreditacija-2023-block-1 > div > div > div > div > div > ul > li > div > a"
)
ALT_LANGUAGE_SUFFIX = "/en"
CODE_PREFIX = "F23"
LEVEL_RE = re.compile(r"L[1-3]")
SEMESTER_RE = re.compile(r"(\d+)")
ELECTIVE_GROUP_MARKER = "Изборни предмети од група"
COURSE_TABLE_CLASSES = ("table", "table-striped", "table-bordered")
MIN_DESCRIPTION_LENGTH = 10
NONE_WORDS = ("-", "нема")

_DETAIL_TABLE = "#block-system-main > div > div > div > div:nth-child(6) > div > div:nth-child(2) > table"
SEMESTER_SELECTOR = f"{_DETAIL_TABLE} tr:nth-child(6) > td:nth-child(2) > p:nth-child(2) > span:nth-child(1)"
PROFESSORS_SELECTOR = f"{_DETAIL_TABLE} tr:nth-child(7) > td:nth-child(3) > p"
PREREQUISITES_SELECTOR = f"{_DETAIL_TABLE} tr:nth-child(8) > td:nth-child(3) > p > span"
DESCRIPTION_SELECTOR = f"{_DETAIL_TABLE} tr:nth-child(9) > td:nth-child(2) > p:nth-child(3) > span"


@dataclass(frozen=True)
class ProfessorRecognizer:
    """Splits a flattened instructor cell on repeated academic-title tokens.

    A name starts with an optional prefix (``ворн.``), a title (``проф.``),
    a degree marker (``д-р``) and runs until the next such start.
    """

    titles: Sequence[str] = ("проф.", "доц.", "асс.")
    degrees: Sequence[str] = ("д-р", "м-р")
    prefixes: Sequence[str] = ("ворн.",)
    name_chars: str = "\u0400-\u04ff"

    def pattern(self) -> "re.Pattern[str]":
        def alt(tokens: Sequence[str]) -> str:
            return "|".join(re.escape(t) for t in tokens)

        prefix = rf"(?:(?:{alt(self.prefixes)})\s+)?" if self.prefixes else ""
        head = rf"{prefix}(?:{alt(self.titles)})\s+(?:{alt(self.degrees)})"
        return re.compile(rf"({head}\s+[{self.name_chars}\s]+?)(?=\s+{head}|$)")

    def split(self, text: str) -> List[str]:
        flat = normalize_ws(text)
        if not flat or flat == "-":
            return []
        names = [normalize_ws(m.group(1)) for m in self.pattern().finditer(flat)]
        return [n for n in names if n and n != "-"]


DEFAULT_RECOGNIZER = ProfessorRecognizer()


def _course_level(code: str) -> Optional[str]:
    match = LEVEL_RE.search(code)
    return match.group(0) if match else None


def _is_course_table(table) -> bool:
    classes = (table.get("class") or "").split()
    return all(cls in classes for cls in COURSE_TABLE_CLASSES)


def parse_current_program_page(html_text: str, origin: str = SITE_ORIGIN) -> List[RawCourseRow]:
    """Collect mandatory and elective-group rows from one 2023 program page."""
    tree = parse_tree(html_text)
    if tree is None:
        return []

    rows: List[RawCourseRow] = []
    for table in tree.xpath("//table" + class_xpath(*COURSE_TABLE_CLASSES)):
        mandatory_header = has_marker((text_of(h) for h in table.xpath(".//h4")), MANDATORY_MARKER)
        column_headings = table.xpath("ancestor-or-self::*" + class_xpath("col-md-6") + "[1]//h3")
        if not (mandatory_header or column_headings):
            continue
        for tr in table.xpath(".//tr"):
            cells = row_cells(tr)
            if len(cells) < 2:
                continue
            code = "".join(span.text_content() for span in cells[0].xpath(".//span")).strip()
            name = anchor_text(cells[1])
            if not code.startswith(CODE_PREFIX) or not name:
                continue
            rows.append(
                RawCourseRow(
                    name=name,
                    type=MANDATORY,
                    link=cell_link(cells[1], origin),
                    code=code,
                    level=_course_level(code),
                )
            )

    for heading in tree.xpath("//h3"):
        if ELECTIVE_GROUP_MARKER not in text_of(heading):
            continue
        tables = [t for t in heading.itersiblings() if t.tag == "table" and _is_course_table(t)]
        if not tables:
            continue
        for tr in tables[0].xpath(".//tr"):
            if tr.xpath("./th"):
                continue
            cells = row_cells(tr)
            if len(cells) < 2:
                continue
            code = text_of(cells[0])
            name = anchor_text(cells[1]) if first_anchor(cells[1]) is not None else text_of(cells[1])
            if not code.startswith(CODE_PREFIX) or not name:
                continue
            rows.append(
                RawCourseRow(
                    name=name,
                    type=ELECTIVE,
                    link=cell_link(cells[1], origin),
                    code=code,
                    level=_course_level(code),
                )
            )
    return rows


def parse_program_links(html_text: str, origin: str = SITE_ORIGIN) -> List[ProgramRef]:
    """Program links of the 2023 index page, without the ``/en`` variants."""
    if not (html_text or "").strip():
        return []
    soup = make_soup(html_text)
    programs: List[ProgramRef] = []
    for anchor in soup.select(PROGRAM_LINK_SELECTOR):
        url = absolute_url(anchor.get("href"), origin)
        if not url or url.endswith(ALT_LANGUAGE_SUFFIX):
            continue
        programs.append(ProgramRef(url=url, name=normalize_ws(anchor.get_text())))
    return programs


def parse_course_detail(html_text: str, recognizer: ProfessorRecognizer = DEFAULT_RECOGNIZER) -> CourseDetail:
    """Read semester, professors, prerequisites and description from a course page."""
    if not (html_text or "").strip():
        return CourseDetail()
    soup = make_soup(html_text)
    detail = CourseDetail()

    semester_match = SEMESTER_RE.search(select_text(soup, SEMESTER_SELECTOR))
    if semester_match:
        detail.semester = int(semester_match.group(1))

    professors = recognizer.split(select_text(soup, PROFESSORS_SELECTOR))
    if professors:
        detail.professors = professors

    prerequisites = select_text(soup, PREREQUISITES_SELECTOR)
    if prerequisites and prerequisites.lower() not in NONE_WORDS:
        detail.prerequisites = prerequisites
    else:
        detail.prerequisites = NO_PREREQUISITES

    description = select_text(soup, DESCRIPTION_SELECTOR)
    if len(description) > MIN_DESCRIPTION_LENGTH:
        detail.description = description
    return detail


class CurrentSource(CatalogSource):
    key = CURRENT
    supports_detail = True

    def __init__(self, *args, recognizer: ProfessorRecognizer = DEFAULT_RECOGNIZER, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.recognizer = recognizer

    async def list_programs(self) -> List[ProgramRef]:
        if not self.config.base_url:
            return []
        html_text = await self.fetcher.fetch_html(self.config.base_url)
        programs = parse_program_links(html_text)
        self._log("info", f"Found {len(programs)} programs at {self.config.base_url}")
        return programs

    def parse_program_page(self, html_text: str) -> List[RawCourseRow]:
        return parse_current_program_page(html_text)

    async def scrape_program(self, program: ProgramRef) -> List[Course]:
        if program.url.endswith(ALT_LANGUAGE_SUFFIX):
            return []
        return await super().scrape_program(program)

    async def fetch_course_detail(self, link: str) -> CourseDetail:
        try:
            result = await self.fetcher.fetch(link)
            if result is None or result.status != 200:
                return CourseDetail()
            return parse_course_detail(result.body, self.recognizer)
        except Exception as exc:
            self._log("warn", f"Error scraping details for {link}: {exc!r}")
            return CourseDetail()

    async def enrich(self, courses: List[Course]) -> List[Course]:
        """Fill detail fields in place for every course that has a link."""
        with_links = [c for c in courses if c.link]
        self._log("info", f"Enriching {len(courses)} courses; {len(with_links)} have detail links")

        def detail_task(idx: int, course: Course):
            async def run() -> CourseDetail:
                self._log("info", f"Enriching: {course.name} ({idx}/{len(with_links)})")
                return await self.fetch_course_detail(course.link)

            return run

        details = await self.scheduler.run(
            [detail_task(idx, c) for idx, c in enumerate(with_links, start=1)]
        )
        missing = 0
        for course, detail in zip(with_links, details):
            if detail is None or detail.is_empty():
                missing += 1
                continue
            course.apply_detail(detail)
        if missing:
            self._log("info", f"{missing} courses without readable details")
        return courses
