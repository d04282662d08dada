"""Scraper for the 2018 accreditation pages.

Program URLs come from the config. A program page lists course names and
links only; each course code sits on the course's own page, so every row
costs one extra fetch. Those fetches go through the batch scheduler.
"""

from __future__ import annotations

from typing import List, Optional

from ..config import LEGACY
from ..extract import (
    SITE_ORIGIN,
    anchor_text,
    cell_link,
    class_xpath,
    extract_first_match,
    make_soup,
    parse_tree,
    row_cells,
    section_type,
    text_of,
)
from ..models import Course, ProgramRef, RawCourseRow
from .base import CatalogSource

# Most specific first; class names vary between course pages.
CODE_SELECTORS = (
    "div.field.field-name-field-subjectcode.field-type-text.field-label-above > div.field-items > div",
    ".field-name-field-subjectcode .field-items div",
    ".field-subjectcode .field-items div",
    "div[class*='subjectcode'] div.field-item",
    ".field-type-text .field-items div",
)
MIN_ROW_CELLS = 3


def parse_legacy_program_page(html_text: str, origin: str = SITE_ORIGIN) -> List[RawCourseRow]:
    """Read the grouped course tables of one 2018 program page."""
    tree = parse_tree(html_text)
    if tree is None:
        return []

    rows: List[RawCourseRow] = []
    processed_tables: set = set()
    for grouping in tree.xpath("//*" + class_xpath("view-grouping")):
        for table in grouping.xpath(".//table" + class_xpath("views-table")):
            if table in processed_tables:
                continue
            processed_tables.add(table)
            caption = " ".join(text_of(c) for c in table.xpath(".//caption"))
            course_type = section_type(caption)
            body_rows = table.xpath(".//tbody//tr") or table.xpath(".//tr")
            for tr in body_rows:
                cells = row_cells(tr)
                if len(cells) < MIN_ROW_CELLS:
                    continue
                name = anchor_text(cells[0])
                link = cell_link(cells[0], origin)
                if not name or not link:
                    continue
                rows.append(RawCourseRow(name=name, type=course_type, link=link))
    return rows


class LegacySource(CatalogSource):
    key = LEGACY

    async def list_programs(self) -> List[ProgramRef]:
        return self.config.programs()

    def parse_program_page(self, html_text: str) -> List[RawCourseRow]:
        return parse_legacy_program_page(html_text)

    async def resolve_course_code(self, link: str) -> Optional[str]:
        result = await self.fetcher.fetch(link)
        if result is None or result.status != 200:
            return None
        return extract_first_match(make_soup(result.body), CODE_SELECTORS)

    async def resolve_rows(self, rows: List[RawCourseRow], program: ProgramRef) -> List[Course]:
        def code_task(row: RawCourseRow):
            return lambda: self.resolve_course_code(row.link)

        codes = await self.scheduler.run([code_task(row) for row in rows])
        courses = [
            Course.from_row(row, program.name, code=code)
            for row, code in zip(rows, codes)
            if code
        ]
        dropped = len(rows) - len(courses)
        if dropped:
            self._log("info", f"{dropped} rows without a resolvable code in {program.name}")
        return courses
