from typing import Dict, List, Optional

import httpx
import pytest

from catalog_scraper.config import (
    BatchingConfig,
    DelayConfig,
    HttpConfig,
    OutputConfig,
    ScraperConfig,
    SourceConfig,
)

ORIGIN = "https://www.finki.ukim.mk"


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that only records the requested delays."""

    def __init__(self) -> None:
        self.calls: List[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class FakeSite:
    """Route table for ``httpx.MockTransport``.

    Values are an HTML string (200), a ``(status, body)`` tuple, or an httpx
    exception class to raise. Unknown URLs answer 404.
    """

    def __init__(self, pages: Optional[Dict[str, object]] = None) -> None:
        self.pages: Dict[str, object] = dict(pages or {})
        self.calls: List[str] = []
        self.headers: List[httpx.Headers] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        url = str(request.url)
        self.calls.append(url)
        self.headers.append(request.headers)
        page = self.pages.get(url)
        if page is None:
            return httpx.Response(404, text="<html><body>Not found</body></html>")
        if isinstance(page, type) and issubclass(page, Exception):
            raise page("simulated failure", request=request)
        if isinstance(page, tuple):
            status, body = page
            return httpx.Response(status, text=body)
        return httpx.Response(200, text=page)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


def page(body: str) -> str:
    return f"<html><body>{body}</body></html>"


def legacy_program_page(rows: List[tuple], caption: str = "Задолжителни предмети") -> str:
    """``rows`` are ``(name, href)`` pairs rendered as three-column rows."""
    body_rows = "".join(
        f'<tr><td><a href="{href}">{name}</a></td><td>6</td><td>З</td></tr>' for name, href in rows
    )
    return page(
        '<div class="view-grouping"><div class="view-grouping-content">'
        f'<table class="views-table cols-3"><caption>{caption}</caption>'
        "<thead><tr><th>Предмет</th><th>ЕКТС</th><th>Тип</th></tr></thead>"
        f"<tbody>{body_rows}</tbody></table></div></div>"
    )


def legacy_code_page(code: str) -> str:
    return page(
        '<div class="field field-name-field-subjectcode field-type-text field-label-above">'
        '<div class="field-label">Код:&nbsp;</div>'
        f'<div class="field-items"><div class="field-item even">{code}</div></div></div>'
    )


def detail_page(
    semester: str = "Зимски семестар 5",
    professors: str = "проф. д-р Иван Чорбев",
    prerequisites: str = "Нема",
    description: str = "Предметот ги воведува основните алгоритми и структури на податоци.",
) -> str:
    """Course page shaped like the 2023 subject pages (nine-row info table)."""
    rows = []
    for i in range(1, 10):
        if i == 6:
            rows.append(f"<tr><td>6</td><td><p>Семестар</p><p><span>{semester}</span></p></td></tr>")
        elif i == 7:
            rows.append(f"<tr><td>7</td><td>Наставници</td><td><p>{professors}</p></td></tr>")
        elif i == 8:
            rows.append(f"<tr><td>8</td><td>Предуслови</td><td><p><span>{prerequisites}</span></p></td></tr>")
        elif i == 9:
            rows.append(
                f"<tr><td>9</td><td><p>Цели</p><p>Содржина</p><p><span>{description}</span></p></td></tr>"
            )
        else:
            rows.append(f"<tr><td>{i}</td><td>ред {i}</td></tr>")
    siblings = "".join(f"<div>секција {i}</div>" for i in range(1, 6))
    return page(
        '<div id="block-system-main"><div><div>'
        f"<div>{siblings}"
        "<div><div><div>наслов</div>"
        f'<div><table class="table"><tbody>{"".join(rows)}</tbody></table></div>'
        "</div></div>"
        "</div></div></div></div>"
    )


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def http_config() -> HttpConfig:
    return HttpConfig(timeout=5.0, max_redirects=3, user_agent="catalog-tests/1.0")


@pytest.fixture
def output_config(tmp_path) -> OutputConfig:
    return OutputConfig(
        directory=tmp_path / "out",
        filenames={"2018": "c18.json", "2023": "c23.json", "combined": "all.json"},
        generate_summary=True,
    )


@pytest.fixture
def make_config(http_config, output_config):
    def _make(legacy: Optional[SourceConfig] = None, current: Optional[SourceConfig] = None) -> ScraperConfig:
        sources = {}
        if legacy is not None:
            sources["2018"] = legacy
        if current is not None:
            sources["2023"] = current
        return ScraperConfig(sources=sources, output=output_config, http=http_config)

    return _make


@pytest.fixture
def legacy_config(http_config):
    def _make(programs: List[tuple], batching: BatchingConfig = BatchingConfig()) -> SourceConfig:
        return SourceConfig(
            enabled=True,
            program_urls=tuple(url for url, _ in programs),
            program_names=tuple(name for _, name in programs),
            delays=DelayConfig(between_subjects=0.2, between_programs=1.0, between_batches=0.5),
            batching=batching,
            http=http_config,
        )

    return _make
