"""Selector helpers shared by the 2018 and 2023 page parsers."""

from __future__ import annotations

from typing import Iterable, List, Optional, Sequence, Union
from urllib.parse import urljoin

from bs4 import BeautifulSoup, FeatureNotFound
from lxml import html as lh

from .models import ELECTIVE, MANDATORY

SITE_ORIGIN = "https://www.finki.ukim.mk"
MANDATORY_MARKER = "Задолжителни предмети"


def make_soup(html_text: str) -> BeautifulSoup:
    try:
        return BeautifulSoup(html_text, "lxml")
    except FeatureNotFound:
        # fall back to built-in parser
        return BeautifulSoup(html_text, "html.parser")


def parse_tree(html_text: str):
    """Parse HTML with lxml; returns ``None`` for an empty document."""
    if not (html_text or "").strip():
        return None
    try:
        return lh.fromstring(html_text)
    except ValueError:
        # str input with an XML encoding declaration
        return lh.fromstring(html_text.encode("utf-8"))


def extract_first_match(
    document: Union[BeautifulSoup, str], selectors: Sequence[str]
) -> Optional[str]:
    """Return the trimmed text of the first selector that matches with non-empty text.

    Selectors are tried in order, most specific first. A selector that matches
    only empty nodes does not stop the search.
    """
    soup = make_soup(document) if isinstance(document, str) else document
    for selector in selectors:
        node = soup.select_one(selector)
        if node is None:
            continue
        text = node.get_text().strip()
        if text:
            return text
    return None


def select_text(document: BeautifulSoup, selector: str) -> str:
    """Concatenated, trimmed text of every node matching ``selector``."""
    return "".join(node.get_text() for node in document.select(selector)).strip()


def absolute_url(href: Optional[str], origin: str = SITE_ORIGIN) -> Optional[str]:
    href = (href or "").strip()
    if not href:
        return None
    if href.startswith("http"):
        return href
    return urljoin(origin + "/", href)


def text_of(el) -> str:
    return el.text_content().strip() if el is not None else ""


def section_type(label: str, marker: str = MANDATORY_MARKER) -> str:
    """Classify a caption/heading: contains the marker -> Mandatory, else Elective."""
    return MANDATORY if marker in (label or "") else ELECTIVE


def has_marker(labels: Iterable[str], marker: str) -> bool:
    return any(marker in (label or "") for label in labels)


def row_cells(row) -> List:
    return row.xpath("./td")


def first_anchor(cell):
    anchors = cell.xpath(".//a")
    return anchors[0] if anchors else None


def cell_link(cell, origin: str = SITE_ORIGIN) -> Optional[str]:
    anchor = first_anchor(cell)
    if anchor is None:
        return None
    return absolute_url(anchor.get("href"), origin)


def anchor_text(cell) -> str:
    return text_of(first_anchor(cell))


def class_xpath(*classes: str) -> str:
    """XPath predicate matching elements that carry every class in ``classes``."""
    checks = [
        f'contains(concat(" ", normalize-space(@class), " "), " {cls} ")' for cls in classes
    ]
    return "[" + " and ".join(checks) + "]"
