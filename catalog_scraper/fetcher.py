"""Async page fetching for the scrapers.

A failed fetch never raises: callers get ``None`` and treat it as "no data
for this page". No retries happen here.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Dict, Optional

import httpx

from .config import HttpConfig
from .log import log

# Browser-like headers; the faculty site serves Macedonian first.
BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,image/apng,*/*;q=0.8",
    "Accept-Language": "mk,en-US;q=0.9,en;q=0.8",
    "Accept-Encoding": "gzip, deflate",
    "Connection": "keep-alive",
    "Upgrade-Insecure-Requests": "1",
}


def accept_below_server_error(status: int) -> bool:
    """3xx/4xx pages may still carry a usable body; only 5xx is rejected."""
    return status < 500


@dataclass(frozen=True)
class FetchResult:
    status: int
    body: str


class PageFetcher:
    """Thin wrapper around one shared :class:`httpx.AsyncClient`."""

    def __init__(
        self,
        http: HttpConfig,
        accept_status: Callable[[int], bool] = accept_below_server_error,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.http = http
        self.accept_status = accept_status
        headers: Dict[str, str] = {"User-Agent": http.user_agent}
        headers.update(BROWSER_HEADERS)
        self._client = httpx.AsyncClient(
            timeout=http.timeout,
            follow_redirects=True,
            max_redirects=http.max_redirects,
            headers=headers,
            transport=transport,
        )

    async def __aenter__(self) -> "PageFetcher":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def fetch(self, url: str) -> Optional[FetchResult]:
        """GET ``url``. Returns ``None`` on network error, timeout or a rejected status."""
        try:
            resp = await self._client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            log("warn", f"Failed to fetch {url}: {exc!r}")
            return None
        if not self.accept_status(resp.status_code):
            log("warn", f"Rejected status {resp.status_code} for {url}")
            return None
        return FetchResult(status=resp.status_code, body=resp.text or "")

    async def fetch_html(self, url: str) -> str:
        """Fetch the raw HTML for a given URL, or an empty string on failure."""
        result = await self.fetch(url)
        return result.body if result is not None else ""
