"""Scrape the FINKI study program pages (2018 and 2023 accreditations) into one course catalog."""

from __future__ import annotations

__version__ = "0.1.0"
