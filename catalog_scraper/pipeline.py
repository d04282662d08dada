"""Drive one or both source generations and write their catalogs.

Programs are scraped strictly one after another; only the per-course
follow-up fetches inside one program run concurrently. Merging happens on the
event loop after those fetches settle, so the course index needs no lock.
"""

from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import httpx

from .batching import BatchScheduler, Sleep
from .config import CURRENT, LEGACY, ScraperConfig
from .fetcher import PageFetcher
from .log import log
from .merge import CourseIndex, combine_catalogs, count_name_overlaps
from .models import Course
from .report import write_results
from .sources import CatalogSource, build_source

COMBINED = "combined"


async def scrape_source(source: CatalogSource, sleep: Sleep = asyncio.sleep) -> List[Course]:
    """Scrape every program of ``source`` into one merged, finalized catalog."""
    if not source.config.enabled:
        log("info", "Source disabled; skipping", source.key)
        return []

    programs = await source.list_programs()
    index = CourseIndex()
    total = len(programs)
    for idx, program in enumerate(programs, start=1):
        log("info", f"Scraping program ({idx}/{total}): {program.name} {program.url}", source.key)
        try:
            courses = await source.scrape_program(program)
        except Exception as exc:
            log("warn", f"Program {program.name} failed: {exc!r}", source.key)
            courses = []
        index.extend(courses)
        log("info", f"Found {len(courses)} courses in {program.name}", source.key)
        if idx < total:
            await sleep(source.config.delays.between_programs)

    catalog = index.finalize()
    if source.supports_detail:
        catalog = await source.enrich(catalog)
    return catalog


async def run_source(
    key: str,
    config: ScraperConfig,
    sleep: Sleep = asyncio.sleep,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> List[Course]:
    source_config = config.source(key)
    async with PageFetcher(source_config.http, transport=transport) as fetcher:
        scheduler = BatchScheduler.from_config(source_config.batching, source_config.delays, sleep=sleep, source=key)
        source = build_source(key, source_config, fetcher, scheduler)
        return await scrape_source(source, sleep=sleep)


async def run_scrape(
    selected: Sequence[str],
    config: ScraperConfig,
    sleep: Sleep = asyncio.sleep,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Dict[str, Dict[str, Any]]:
    """Scrape the selected generations, write their outputs and return the summaries by key."""
    output = config.output
    catalogs: Dict[str, List[Course]] = {}
    summaries: Dict[str, Dict[str, Any]] = {}

    for key in (LEGACY, CURRENT):
        if key not in selected:
            continue
        catalogs[key] = await run_source(key, config, sleep=sleep, transport=transport)
        summaries[key] = write_results(catalogs[key], output.filenames[key], output, key)

    if LEGACY in catalogs and CURRENT in catalogs:
        legacy, current = catalogs[LEGACY], catalogs[CURRENT]
        overlaps = count_name_overlaps(legacy, current)
        combined = combine_catalogs(legacy, current)
        summaries[COMBINED] = write_results(combined, output.filenames[COMBINED], output, "Combined")
        log("info", "Final results summary:")
        log("info", f"  2018 courses: {len(legacy)}")
        log("info", f"  2023 courses: {len(current)}")
        log("info", f"  Combined unique courses: {len(combined)}")
        log("info", f"  Duplicate courses by name: {overlaps}")

    return summaries
