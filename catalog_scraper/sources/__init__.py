"""Program-page scrapers, one per site generation."""

from __future__ import annotations

from typing import Dict, Type

from ..batching import BatchScheduler
from ..config import CURRENT, LEGACY, SourceConfig
from ..fetcher import PageFetcher
from .base import CatalogSource
from .current import CurrentSource
from .legacy import LegacySource

SOURCES: Dict[str, Type[CatalogSource]] = {
    LEGACY: LegacySource,
    CURRENT: CurrentSource,
}


def build_source(key: str, config: SourceConfig, fetcher: PageFetcher, scheduler: BatchScheduler) -> CatalogSource:
    try:
        source_cls = SOURCES[key]
    except KeyError:
        raise ValueError(f"Unknown source generation: {key!r}") from None
    return source_cls(config, fetcher, scheduler)


__all__ = ["CatalogSource", "CurrentSource", "LegacySource", "SOURCES", "build_source"]
