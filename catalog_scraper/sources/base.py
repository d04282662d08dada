"""Common shape of the 2018 and 2023 program-page scrapers."""

from __future__ import annotations

from typing import List

from ..batching import BatchScheduler
from ..config import SourceConfig
from ..fetcher import PageFetcher
from ..log import log
from ..models import Course, CourseDetail, ProgramRef, RawCourseRow


class CatalogSource:
    """One generation of the faculty site.

    Subclasses enumerate the program pages, turn one page into raw rows and
    resolve those rows into course records. ``supports_detail`` marks sources
    that can enrich merged courses from their own detail pages.
    """

    key = ""
    supports_detail = False

    def __init__(self, config: SourceConfig, fetcher: PageFetcher, scheduler: BatchScheduler) -> None:
        self.config = config
        self.fetcher = fetcher
        self.scheduler = scheduler

    def _log(self, level: str, msg: str) -> None:
        log(level, msg, self.key)

    async def list_programs(self) -> List[ProgramRef]:
        raise NotImplementedError

    def parse_program_page(self, html_text: str) -> List[RawCourseRow]:
        raise NotImplementedError

    async def resolve_rows(self, rows: List[RawCourseRow], program: ProgramRef) -> List[Course]:
        """Rows that already carry a code become courses directly."""
        return [Course.from_row(row, program.name) for row in rows if row.code]

    async def scrape_program(self, program: ProgramRef) -> List[Course]:
        html_text = await self.fetcher.fetch_html(program.url)
        rows = self.parse_program_page(html_text)
        return await self.resolve_rows(rows, program)

    async def fetch_course_detail(self, link: str) -> CourseDetail:
        return CourseDetail()

    async def enrich(self, courses: List[Course]) -> List[Course]:
        return courses
