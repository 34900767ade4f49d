"""
Outbound HTTP for the analyzers.

Every request carries an explicit timeout; the main page fetch raises
FetchFailure, while speed measurements and robots/sitemap probes report
failures as data so the technical analyzer can degrade a single check.
"""

import logging
import time
from dataclasses import dataclass, field
from urllib.parse import urlsplit, urlunsplit

import httpx

from siteaudit.config import Settings
from siteaudit.core.exceptions import FetchFailure, InvalidURL

logger = logging.getLogger(__name__)


def validate_url(url: str) -> str:
    """Return the normalized form of an absolute http(s) URL.

    Raises InvalidURL for anything else.
    """
    if not isinstance(url, str) or not url.strip():
        raise InvalidURL(str(url))
    try:
        parts = urlsplit(url.strip())
        _ = parts.port  # raises ValueError for a malformed port
    except ValueError:
        raise InvalidURL(url)
    if parts.scheme.lower() not in ("http", "https") or not parts.hostname:
        raise InvalidURL(url)

    netloc = parts.netloc.lower()
    path = parts.path or "/"
    return urlunsplit((parts.scheme.lower(), netloc, path, parts.query, ""))


@dataclass(frozen=True)
class FetchedPage:
    url: str
    final_url: str
    status_code: int
    html: str
    headers: dict[str, str] = field(default_factory=dict)
    elapsed_ms: int = 0


@dataclass(frozen=True)
class TimedFetch:
    """Outcome of a timed GET used as a page-speed approximation."""

    load_time_ms: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class ProbeResult:
    """Outcome of an existence probe (robots.txt, sitemap)."""

    url: str
    status_code: int | None = None
    text: str = ""
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status_code == 200


class PageFetcher:
    """httpx-based fetcher configured from settings.

    `transport` is handed to every httpx.AsyncClient it opens.
    """

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None):
        self.settings = settings
        self.transport = transport
        self.headers = {"User-Agent": settings.USER_AGENT}

    def _client(self, timeout: float) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=timeout,
            follow_redirects=True,
            max_redirects=self.settings.PAGE_FETCH_MAX_REDIRECTS,
            headers=self.headers,
            transport=self.transport,
        )

    async def fetch_page(self, url: str) -> FetchedPage:
        """Fetch the page under analysis. Any failure aborts the task."""
        normalized = validate_url(url)
        start = time.perf_counter()
        try:
            async with self._client(self.settings.PAGE_FETCH_TIMEOUT) as client:
                response = await client.get(normalized)
                response.raise_for_status()
        except httpx.TimeoutException:
            raise FetchFailure(normalized, "request timed out")
        except httpx.HTTPStatusError as e:
            raise FetchFailure(normalized, f"HTTP {e.response.status_code}")
        except httpx.HTTPError as e:
            raise FetchFailure(normalized, str(e) or type(e).__name__)

        elapsed_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(f"[FETCH] {normalized} -> {response.status_code} in {elapsed_ms}ms")
        return FetchedPage(
            url=normalized,
            final_url=str(response.url),
            status_code=response.status_code,
            html=response.text,
            headers={k.lower(): v for k, v in response.headers.items()},
            elapsed_ms=elapsed_ms,
        )

    async def timed_fetch(self, url: str) -> TimedFetch:
        """Measure wall-clock time of a full GET."""
        start = time.perf_counter()
        try:
            async with self._client(self.settings.SPEED_FETCH_TIMEOUT) as client:
                response = await client.get(url)
                response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"[FETCH] Timed fetch of {url} failed: {e!r}")
            return TimedFetch(error=str(e) or type(e).__name__)
        return TimedFetch(load_time_ms=int((time.perf_counter() - start) * 1000))

    async def probe(self, url: str) -> ProbeResult:
        """GET a well-known resource; never raises."""
        try:
            async with self._client(self.settings.PROBE_TIMEOUT) as client:
                response = await client.get(url)
        except httpx.HTTPError as e:
            logger.info(f"[FETCH] Probe {url} failed: {e!r}")
            return ProbeResult(url=url, error=str(e) or type(e).__name__)
        return ProbeResult(url=url, status_code=response.status_code, text=response.text)
