#!/usr/bin/env python3
"""Scrape the FINKI course catalog from the 2018 and/or 2023 program pages.

Writes one JSON list per generation (plus a combined list when both run) into
the configured output directory. A fatal error leaves ``scraping-error.json``
behind instead.
"""

from __future__ import annotations

import argparse
import asyncio
from pathlib import Path
from typing import List, Optional, Tuple

from .config import CURRENT, LEGACY, ConfigError, load_config, with_output_directory
from .log import log
from .pipeline import run_scrape
from .report import write_error_result


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Scrape the FINKI 2018/2023 course catalog")
    p.add_argument("--2018", "-18", dest="run_2018", action="store_true", help="Run the 2018 scraper")
    p.add_argument("--2023", "-23", dest="run_2023", action="store_true", help="Run the 2023 scraper")
    p.add_argument(
        "--both", "-b", dest="run_both", action="store_true", help="Run both scrapers and combine (default)"
    )
    p.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to config.json (default: $CATALOG_SCRAPER_CONFIG, ./config.json, repo config.json)",
    )
    p.add_argument("--output-dir", type=Path, default=None, help="Override output.directory from the config")
    return p.parse_args(argv)


def selected_sources(args: argparse.Namespace) -> Tuple[str, ...]:
    if args.run_both:
        return (LEGACY, CURRENT)
    if args.run_2018 and args.run_2023:
        return (LEGACY, CURRENT)
    if args.run_2018:
        return (LEGACY,)
    if args.run_2023:
        return (CURRENT,)
    return (LEGACY, CURRENT)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = load_config(args.config)
    except ConfigError as exc:
        log("error", f"Error loading config: {exc}")
        log("error", "Make sure config.json exists in the project root directory")
        return 1
    if args.output_dir is not None:
        config = with_output_directory(config, args.output_dir)

    selected = selected_sources(args)
    label = "Both scrapers" if len(selected) > 1 else f"{selected[0]} scraper"
    log("info", f"Selected option: {label}")

    try:
        asyncio.run(run_scrape(selected, config))
    except Exception as exc:
        log("error", f"Error during scraping: {exc!r}")
        write_error_result(config.output, str(exc) or exc.__class__.__name__)
        return 1

    log("ok", "Script execution completed successfully")
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
