"""
Technical analyzer.

Network work (PageSpeed Insights, timed fetch, robots.txt and sitemap
probes) is done up front by `collect_technical_signals`; `analyze_technical`
only scores what was collected, so it never raises for a page that was
fetched successfully.
"""

import asyncio
import logging
import re
from dataclasses import dataclass, field
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from siteaudit.core.exceptions import ExternalServiceFailure
from siteaudit.integrations.pagespeed import PageSpeedClient, PageSpeedReport
from siteaudit.services.analyzers.common import ResultDocument, clamp_score, flatten_issues
from siteaudit.services.fetcher import PageFetcher, ProbeResult, TimedFetch

logger = logging.getLogger(__name__)

SITEMAP_PATHS = ("/sitemap.xml", "/sitemap_index.xml", "/sitemaps/sitemap.xml")

_FONT_SIZE_PX = re.compile(r"font-size:\s*(\d+)px")


@dataclass(frozen=True)
class TechnicalSignals:
    """Everything the technical analyzer needs beyond the markup itself."""

    speed_report: PageSpeedReport | None = None
    psi_error: str | None = None
    timed_fetch: TimedFetch | None = None
    robots: ProbeResult | None = None
    sitemaps: tuple[ProbeResult, ...] = ()
    response_headers: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class PageSpeedCheck(ResultDocument):
    load_time: int
    score: int
    recommendations: tuple[str, ...]
    source: str


@dataclass(frozen=True)
class MobileCheck(ResultDocument):
    responsive: bool
    score: int
    issues: tuple[str, ...]
    skipped: bool = False


@dataclass(frozen=True)
class SSLCheck(ResultDocument):
    enabled: bool
    score: int


@dataclass(frozen=True)
class MarkupCheck(ResultDocument):
    valid_html: bool
    score: int
    errors: tuple[str, ...]


@dataclass(frozen=True)
class DiscoveryCheck(ResultDocument):
    exists: bool
    accessible: bool
    issues: tuple[str, ...]
    url: str | None = None


@dataclass(frozen=True)
class TechnicalAnalysis(ResultDocument):
    page_speed: PageSpeedCheck
    mobile: MobileCheck
    ssl: SSLCheck
    structure: MarkupCheck
    robots: DiscoveryCheck
    sitemap: DiscoveryCheck
    score: int
    issues: tuple[str, ...]


async def collect_technical_signals(
    fetcher: PageFetcher,
    pagespeed: PageSpeedClient,
    url: str,
    response_headers: dict[str, str] | None = None,
) -> TechnicalSignals:
    """Run the speed measurement and discovery probes concurrently.

    A configured PageSpeed client is tried first; when it fails the error is
    kept and a timed fetch of the page is used instead.
    """
    speed_report = None
    psi_error = None
    timed = None

    async def measure_speed():
        nonlocal speed_report, psi_error, timed
        if pagespeed.configured:
            try:
                speed_report = await pagespeed.analyze(url)
                return
            except ExternalServiceFailure as e:
                psi_error = e.reason
                logger.warning(f"[TECHNICAL] PageSpeed unavailable for {url}, using timed fetch: {e.reason}")
        timed = await fetcher.timed_fetch(url)

    async def probe_sitemaps() -> tuple[ProbeResult, ...]:
        # Sequential: the first reachable location wins
        results = []
        for path in SITEMAP_PATHS:
            result = await fetcher.probe(urljoin(url, path))
            results.append(result)
            if result.ok:
                break
        return tuple(results)

    _, robots, sitemaps = await asyncio.gather(
        measure_speed(),
        fetcher.probe(urljoin(url, "/robots.txt")),
        probe_sitemaps(),
    )

    return TechnicalSignals(
        speed_report=speed_report,
        psi_error=psi_error,
        timed_fetch=timed,
        robots=robots,
        sitemaps=sitemaps,
        response_headers={k.lower(): v for k, v in (response_headers or {}).items()},
    )


def analyze_technical(
    soup: BeautifulSoup,
    html: str,
    url: str,
    signals: TechnicalSignals,
    check_mobile: bool = True,
) -> TechnicalAnalysis:
    """Score page speed, mobile readiness, TLS and markup validity.

    The overall score is the plain mean of those four sub-scores (three when
    `check_mobile` is False); robots.txt and sitemap only contribute issues.
    """
    page_speed = check_page_speed(soup, signals)
    mobile = check_mobile_friendly(soup, html) if check_mobile else MobileCheck(True, 100, (), skipped=True)
    ssl = check_ssl(url)
    structure = check_markup(soup, html)
    robots = check_robots(signals.robots)
    sitemap = check_sitemap(signals.sitemaps)

    scored = [page_speed.score, ssl.score, structure.score]
    if not mobile.skipped:
        scored.append(mobile.score)

    return TechnicalAnalysis(
        page_speed=page_speed,
        mobile=mobile,
        ssl=ssl,
        structure=structure,
        robots=robots,
        sitemap=sitemap,
        score=clamp_score(sum(scored) / len(scored)),
        issues=flatten_issues(
            page_speed.recommendations,
            mobile.issues,
            structure.errors,
            robots.issues,
            sitemap.issues,
        ),
    )


def static_speed_hints(soup: BeautifulSoup, headers: dict[str, str]) -> list[str]:
    hints = []
    if len(soup.find_all("script")) > 10:
        hints.append("Too many JavaScript files (consider bundling)")
    if len(soup.select('link[rel="stylesheet"]')) > 5:
        hints.append("Too many CSS files (consider combining)")
    if len(soup.find_all("img")) > 20:
        hints.append("Many images detected (optimize and use modern formats)")
    if not headers.get("content-encoding"):
        hints.append("Enable compression (gzip/brotli)")
    return hints


def check_page_speed(soup: BeautifulSoup, signals: TechnicalSignals) -> PageSpeedCheck:
    report = signals.speed_report
    if report is not None:
        recommendations = list(report.recommendations) or static_speed_hints(soup, signals.response_headers)
        return PageSpeedCheck(
            load_time=report.load_time_ms,
            score=clamp_score(report.performance_score),
            recommendations=tuple(recommendations),
            source="pagespeed",
        )

    recommendations = []
    if signals.psi_error:
        recommendations.append("Could not call PageSpeed API - using a simple fallback measurement")

    timed = signals.timed_fetch
    if timed is None or not timed.ok:
        recommendations.append("Could not measure page speed - site may be unreachable")
        return PageSpeedCheck(load_time=0, score=0, recommendations=tuple(recommendations), source="unavailable")

    score = 100
    if timed.load_time_ms > 3000:
        recommendations.append("Page load time is slow (>3 seconds)")
        score -= 30
    elif timed.load_time_ms > 2000:
        recommendations.append("Page load time could be improved")
        score -= 15

    return PageSpeedCheck(
        load_time=timed.load_time_ms,
        score=clamp_score(score),
        recommendations=tuple(recommendations),
        source="timed_fetch",
    )


def _small_inline_font(style: str) -> bool:
    match = _FONT_SIZE_PX.search(style)
    return bool(match) and int(match.group(1)) < 12


def check_mobile_friendly(soup: BeautifulSoup, html: str) -> MobileCheck:
    issues = []
    score = 100
    responsive = True

    viewport_tag = soup.find("meta", attrs={"name": "viewport"})
    viewport = viewport_tag.get("content") if viewport_tag else None
    if not viewport:
        issues.append("Missing viewport meta tag")
        responsive = False
        score -= 40
    elif "width=device-width" not in viewport:
        issues.append("Viewport not set to device width")
        score -= 20

    if "@media" not in html:
        issues.append("No responsive CSS media queries detected")
        score -= 30

    if len(soup.select('[width], [style*="width:"]')) > 5:
        issues.append("Many fixed-width elements detected")
        score -= 15

    if any(_small_inline_font(el["style"]) for el in soup.find_all(style=True)):
        issues.append("Small text detected (may be hard to read on mobile)")
        score -= 10

    score = clamp_score(score)
    return MobileCheck(responsive=responsive and score > 50, score=score, issues=tuple(issues))


def check_ssl(url: str) -> SSLCheck:
    enabled = url.lower().startswith("https://")
    return SSLCheck(enabled=enabled, score=100 if enabled else 0)


def check_markup(soup: BeautifulSoup, html: str) -> MarkupCheck:
    errors = []
    score = 100

    if "<!doctype" not in html.lower():
        errors.append("Missing DOCTYPE declaration")
        score -= 20

    html_tag = soup.find("html")
    if html_tag is None or not html_tag.get("lang"):
        errors.append("Missing language attribute on HTML element")
        score -= 15

    if soup.find("title") is None:
        errors.append("Missing title element")
        score -= 25

    if soup.find("meta", charset=True) is None and "charset=" not in html:
        errors.append("Missing character encoding declaration")
        score -= 10

    seen = set()
    duplicates = []
    for element in soup.find_all(id=True):
        element_id = element["id"]
        if element_id in seen and element_id not in duplicates:
            duplicates.append(element_id)
        seen.add(element_id)
    if duplicates:
        errors.append(f"Duplicate IDs found: {', '.join(duplicates)}")
        score -= len(duplicates) * 5

    without_alt = sum(1 for img in soup.find_all("img") if not img.has_attr("alt"))
    if without_alt:
        errors.append(f"{without_alt} images missing alt attributes")
        score -= min(20, without_alt * 2)

    return MarkupCheck(valid_html=not errors, score=clamp_score(score), errors=tuple(errors))


def check_robots(probe: ProbeResult | None) -> DiscoveryCheck:
    if probe is None or probe.status_code is None or probe.status_code >= 400:
        return DiscoveryCheck(
            exists=False,
            accessible=False,
            issues=("robots.txt not found or inaccessible",),
            url=probe.url if probe else None,
        )

    issues = []
    if probe.ok:
        if "User-agent:" not in probe.text:
            issues.append("robots.txt missing User-agent directive")
        if "Sitemap:" not in probe.text:
            issues.append("robots.txt missing Sitemap directive")

    return DiscoveryCheck(exists=True, accessible=probe.ok, issues=tuple(issues), url=probe.url)


def check_sitemap(probes: tuple[ProbeResult, ...]) -> DiscoveryCheck:
    found = next((p for p in probes if p.ok), None)
    if found is None:
        return DiscoveryCheck(
            exists=False,
            accessible=False,
            issues=("XML sitemap not found in common locations",),
        )

    issues = []
    if "<urlset" not in found.text and "<sitemapindex" not in found.text:
        issues.append("Sitemap format may be invalid")
    if "<loc>" not in found.text:
        issues.append("Sitemap missing URL locations")

    return DiscoveryCheck(exists=True, accessible=True, issues=tuple(issues), url=found.url)
