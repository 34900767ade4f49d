"""
Unit tests for the PageSpeed Insights client.
"""
import httpx
import pytest

from siteaudit.core.exceptions import ExternalServiceFailure
from siteaudit.integrations.pagespeed import PageSpeedClient
from tests.fixtures.sample_pages import PAGESPEED_RESPONSE


def client_returning(response: httpx.Response, seen: list | None = None) -> PageSpeedClient:
    def handler(request: httpx.Request) -> httpx.Response:
        if seen is not None:
            seen.append(request)
        return response

    return PageSpeedClient(api_key="test-key", transport=httpx.MockTransport(handler))


class TestPageSpeedClient:
    """Test response parsing and error mapping."""

    @pytest.mark.asyncio
    async def test_parses_report(self):
        seen = []
        client = client_returning(httpx.Response(200, json=PAGESPEED_RESPONSE), seen)

        report = await client.analyze("https://example.com/")

        assert report.performance_score == 88
        assert report.load_time_ms == 3457
        assert report.recommendations == [
            "Eliminate render-blocking resources: Potential savings of 450 ms",
            "Enable text compression: Text-based resources should be served with compression.",
        ]
        assert report.metrics == {"lcp_ms": 2500, "tbt_ms": 150, "cls": 0.123, "fcp_ms": 1200}

        params = seen[0].url.params
        assert params["url"] == "https://example.com/"
        assert params["strategy"] == "mobile"
        assert params["category"] == "performance"
        assert params["key"] == "test-key"

    @pytest.mark.asyncio
    async def test_falls_back_to_first_contentful_paint(self):
        data = {
            "lighthouseResult": {
                "categories": {"performance": {"score": 0.5}},
                "audits": {"first-contentful-paint": {"numericValue": 999.5}},
            }
        }
        report = await client_returning(httpx.Response(200, json=data)).analyze("https://example.com/")

        assert report.performance_score == 50
        assert report.load_time_ms == 1000
        assert report.recommendations == []

    @pytest.mark.asyncio
    async def test_recommendations_capped(self):
        audits = {f"audit-{i}": {"score": 0.1, "title": f"Audit {i}"} for i in range(15)}
        data = {"lighthouseResult": {"categories": {"performance": {"score": 0.3}}, "audits": audits}}

        report = await client_returning(httpx.Response(200, json=data)).analyze("https://example.com/")

        assert len(report.recommendations) == 10

    @pytest.mark.asyncio
    async def test_requires_api_key(self):
        client = PageSpeedClient(api_key="")
        assert client.configured is False

        with pytest.raises(ExternalServiceFailure) as exc_info:
            await client.analyze("https://example.com/")
        assert exc_info.value.reason == "API key not configured"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status,reason", [
        (429, "Rate limit exceeded"),
        (400, "Invalid URL or request"),
        (500, "HTTP 500"),
    ])
    async def test_http_errors(self, status, reason):
        client = client_returning(httpx.Response(status))

        with pytest.raises(ExternalServiceFailure) as exc_info:
            await client.analyze("https://example.com/")
        assert exc_info.value.reason == reason

    @pytest.mark.asyncio
    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        client = PageSpeedClient(api_key="k", transport=httpx.MockTransport(handler))

        with pytest.raises(ExternalServiceFailure) as exc_info:
            await client.analyze("https://example.com/")
        assert exc_info.value.reason == "request timeout"

    @pytest.mark.asyncio
    async def test_missing_lighthouse_result(self):
        client = client_returning(httpx.Response(200, json={"error": {}}))

        with pytest.raises(ExternalServiceFailure) as exc_info:
            await client.analyze("https://example.com/")
        assert exc_info.value.reason == "no lighthouse result in response"
