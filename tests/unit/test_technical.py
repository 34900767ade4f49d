"""
Unit tests for the technical analyzer.

Tests cover:
- Page speed from PageSpeed Insights, timed fetch and unreachable pages
- Mobile, TLS and markup checks
- robots.txt / sitemap probes
- Signal collection over a mocked site
"""
import httpx
import pytest
from bs4 import BeautifulSoup

from siteaudit.integrations.pagespeed import PageSpeedClient, PageSpeedReport
from siteaudit.services.analyzers.technical import (
    TechnicalSignals,
    analyze_technical,
    check_markup,
    check_mobile_friendly,
    check_page_speed,
    check_robots,
    check_sitemap,
    check_ssl,
    collect_technical_signals,
)
from siteaudit.services.fetcher import PageFetcher, ProbeResult, TimedFetch
from tests.fixtures.sample_pages import (
    PAGESPEED_RESPONSE,
    POOR_PAGE_HTML,
    ROBOTS_TXT,
    SITEMAP_XML,
    WELL_FORMED_PAGE_HTML,
)

URL = "https://example.com/"


def soup_of(html: str) -> BeautifulSoup:
    return BeautifulSoup(html, "lxml")


def healthy_signals(load_time_ms: int = 250) -> TechnicalSignals:
    return TechnicalSignals(
        timed_fetch=TimedFetch(load_time_ms=load_time_ms),
        robots=ProbeResult(url=URL + "robots.txt", status_code=200, text=ROBOTS_TXT),
        sitemaps=(ProbeResult(url=URL + "sitemap.xml", status_code=200, text=SITEMAP_XML),),
    )


class TestPageSpeed:
    """Test the page speed sub-check."""

    @pytest.mark.parametrize("load_time,expected", [
        (800, 100),
        (2000, 100),
        (2001, 85),
        (3000, 85),
        (3001, 70),
    ])
    def test_timed_fetch_thresholds(self, load_time, expected):
        result = check_page_speed(soup_of(""), healthy_signals(load_time))
        assert result.score == expected
        assert result.source == "timed_fetch"

    def test_unreachable(self):
        signals = TechnicalSignals(timed_fetch=TimedFetch(error="connection refused"))
        result = check_page_speed(soup_of(""), signals)

        assert result.score == 0
        assert result.load_time == 0
        assert result.recommendations == ("Could not measure page speed - site may be unreachable",)

    def test_pagespeed_failure_noted_before_fallback(self):
        signals = TechnicalSignals(psi_error="Rate limit exceeded", timed_fetch=TimedFetch(load_time_ms=100))
        result = check_page_speed(soup_of(""), signals)

        assert result.score == 100
        assert result.recommendations[0].startswith("Could not call PageSpeed API")

    def test_pagespeed_report(self):
        report = PageSpeedReport(
            performance_score=64,
            load_time_ms=4100,
            recommendations=["Enable text compression: Potential savings of 120 KiB"],
        )
        result = check_page_speed(soup_of(""), TechnicalSignals(speed_report=report))

        assert result.score == 64
        assert result.load_time == 4100
        assert result.source == "pagespeed"
        assert result.recommendations == ("Enable text compression: Potential savings of 120 KiB",)

    def test_static_hints_when_pagespeed_has_none(self):
        scripts = "<script></script>" * 11
        html = f"<html><head>{scripts}</head><body></body></html>"
        report = PageSpeedReport(performance_score=99, load_time_ms=900)

        result = check_page_speed(soup_of(html), TechnicalSignals(speed_report=report))

        assert result.score == 99
        assert "Too many JavaScript files (consider bundling)" in result.recommendations
        assert "Enable compression (gzip/brotli)" in result.recommendations

    def test_compression_header_suppresses_hint(self):
        report = PageSpeedReport(performance_score=99, load_time_ms=900)
        signals = TechnicalSignals(speed_report=report, response_headers={"content-encoding": "br"})

        result = check_page_speed(soup_of(""), signals)

        assert result.recommendations == ()


class TestMobile:
    """Test mobile-friendliness heuristics."""

    def test_well_formed_page(self):
        result = check_mobile_friendly(soup_of(WELL_FORMED_PAGE_HTML), WELL_FORMED_PAGE_HTML)
        assert result.score == 100
        assert result.responsive is True

    def test_missing_viewport_and_media_queries(self):
        result = check_mobile_friendly(soup_of(POOR_PAGE_HTML), POOR_PAGE_HTML)

        # -40 viewport, -30 no @media, -10 9px inline text
        assert result.score == 20
        assert result.responsive is False
        assert "Small text detected (may be hard to read on mobile)" in result.issues

    def test_viewport_not_device_width(self):
        html = '<html><head><meta name="viewport" content="initial-scale=1"><style>@media print {}</style></head></html>'
        result = check_mobile_friendly(soup_of(html), html)
        assert result.score == 80
        assert result.responsive is True

    def test_fixed_width_elements(self):
        cells = '<td width="100">x</td>' * 6
        html = f'<html><head><meta name="viewport" content="width=device-width"></head><body><style>@media x{{}}</style><table><tr>{cells}</tr></table></body></html>'
        result = check_mobile_friendly(soup_of(html), html)
        assert result.score == 85


class TestSSLAndMarkup:
    """Test TLS and markup validity checks."""

    def test_ssl(self):
        assert check_ssl("https://example.com/").score == 100
        assert check_ssl("http://example.com/").score == 0

    def test_well_formed_markup(self):
        result = check_markup(soup_of(WELL_FORMED_PAGE_HTML), WELL_FORMED_PAGE_HTML)
        assert result.score == 100
        assert result.valid_html is True

    def test_lowercase_doctype_accepted(self):
        html = '<!doctype html><html lang="en"><head><meta charset="utf-8"><title>T</title></head></html>'
        assert check_markup(soup_of(html), html).score == 100

    def test_poor_markup(self):
        result = check_markup(soup_of(POOR_PAGE_HTML), POOR_PAGE_HTML)

        # -20 doctype, -15 lang, -25 title, -10 charset, -5 duplicate id, -2 one img without alt
        assert result.score == 23
        assert "Duplicate IDs found: main" in result.errors
        assert "1 images missing alt attributes" in result.errors

    def test_missing_alt_penalty_capped(self):
        imgs = '<img src="x">' * 15
        html = f'<!DOCTYPE html><html lang="en"><head><meta charset="utf-8"><title>T</title></head><body>{imgs}</body></html>'
        assert check_markup(soup_of(html), html).score == 80


class TestDiscovery:
    """Test robots.txt and sitemap checks."""

    def test_robots_complete(self):
        result = check_robots(ProbeResult(url=URL + "robots.txt", status_code=200, text=ROBOTS_TXT))
        assert result.exists is True
        assert result.accessible is True
        assert result.issues == ()

    def test_robots_missing_directives(self):
        result = check_robots(ProbeResult(url=URL + "robots.txt", status_code=200, text="Disallow: /"))
        assert result.issues == (
            "robots.txt missing User-agent directive",
            "robots.txt missing Sitemap directive",
        )

    @pytest.mark.parametrize("probe", [
        ProbeResult(url=URL + "robots.txt", status_code=404),
        ProbeResult(url=URL + "robots.txt", error="timeout"),
        None,
    ])
    def test_robots_unavailable(self, probe):
        result = check_robots(probe)
        assert result.exists is False
        assert result.issues == ("robots.txt not found or inaccessible",)

    def test_sitemap_found_at_second_location(self):
        probes = (
            ProbeResult(url=URL + "sitemap.xml", status_code=404),
            ProbeResult(url=URL + "sitemap_index.xml", status_code=200, text="<sitemapindex><sitemap><loc>x</loc></sitemap></sitemapindex>"),
        )
        result = check_sitemap(probes)
        assert result.exists is True
        assert result.url == URL + "sitemap_index.xml"
        assert result.issues == ()

    def test_sitemap_invalid_format(self):
        result = check_sitemap((ProbeResult(url=URL + "sitemap.xml", status_code=200, text="<html></html>"),))
        assert result.issues == ("Sitemap format may be invalid", "Sitemap missing URL locations")

    def test_sitemap_missing(self):
        result = check_sitemap(())
        assert result.exists is False
        assert result.issues == ("XML sitemap not found in common locations",)


class TestAnalyzeTechnical:
    """Test the combined technical analysis."""

    def test_well_formed_page(self):
        result = analyze_technical(
            soup_of(WELL_FORMED_PAGE_HTML), WELL_FORMED_PAGE_HTML, URL, healthy_signals()
        )
        assert result.score == 100
        assert result.issues == ()

    def test_score_is_mean_of_four_checks(self):
        signals = TechnicalSignals(timed_fetch=TimedFetch(error="down"))
        result = analyze_technical(soup_of(POOR_PAGE_HTML), POOR_PAGE_HTML, "http://example.com/", signals)

        # speed 0, mobile 20, ssl 0, markup 23
        assert result.score == 11
        assert "robots.txt not found or inaccessible" in result.issues
        assert "XML sitemap not found in common locations" in result.issues

    def test_mobile_check_can_be_skipped(self):
        result = analyze_technical(
            soup_of(POOR_PAGE_HTML), POOR_PAGE_HTML, URL, healthy_signals(), check_mobile=False
        )
        # speed 100, ssl 100, markup 23
        assert result.mobile.skipped is True
        assert result.score == 74

    def test_to_dict(self):
        doc = analyze_technical(
            soup_of(WELL_FORMED_PAGE_HTML), WELL_FORMED_PAGE_HTML, URL, healthy_signals()
        ).to_dict()
        assert doc["ssl"] == {"enabled": True, "score": 100}
        assert doc["page_speed"]["recommendations"] == []


class TestCollectSignals:
    """Test network signal collection over mocked transports."""

    @pytest.mark.asyncio
    async def test_timed_fetch_without_api_key(self, settings, site_transport):
        fetcher = PageFetcher(settings, transport=site_transport)
        pagespeed = PageSpeedClient(api_key="", transport=site_transport)

        signals = await collect_technical_signals(fetcher, pagespeed, URL)

        assert signals.speed_report is None
        assert signals.psi_error is None
        assert signals.timed_fetch.ok
        assert signals.robots.ok
        assert [p.url for p in signals.sitemaps] == [URL + "sitemap.xml"]

    @pytest.mark.asyncio
    async def test_pagespeed_used_when_configured(self, settings):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "www.googleapis.com":
                assert request.url.params["url"] == URL
                return httpx.Response(200, json=PAGESPEED_RESPONSE)
            return httpx.Response(404)

        transport = httpx.MockTransport(handler)
        fetcher = PageFetcher(settings, transport=transport)
        pagespeed = PageSpeedClient(api_key="test-key", transport=transport)

        signals = await collect_technical_signals(fetcher, pagespeed, URL)

        assert signals.speed_report.performance_score == 88
        assert signals.timed_fetch is None
        assert not signals.robots.ok
        assert len(signals.sitemaps) == 3

    @pytest.mark.asyncio
    async def test_pagespeed_failure_falls_back(self, settings, site_transport):
        def handler(request: httpx.Request) -> httpx.Response:
            if request.url.host == "www.googleapis.com":
                return httpx.Response(429)
            return site_transport.handler(request)

        transport = httpx.MockTransport(handler)
        fetcher = PageFetcher(settings, transport=transport)
        pagespeed = PageSpeedClient(api_key="test-key", transport=transport)

        signals = await collect_technical_signals(fetcher, pagespeed, URL)

        assert signals.speed_report is None
        assert signals.psi_error == "Rate limit exceeded"
        assert signals.timed_fetch.ok
