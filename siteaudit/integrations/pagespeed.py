"""
Google PageSpeed Insights API client.

Provides the Lighthouse performance score and low-scoring audits used by the
technical analyzer's page-speed check.
"""
import logging
import math
from dataclasses import dataclass, field
from typing import Any

import httpx

from siteaudit.core.exceptions import ExternalServiceFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageSpeedReport:
    performance_score: int
    load_time_ms: int
    recommendations: list[str] = field(default_factory=list)
    metrics: dict[str, Any] = field(default_factory=dict)


class PageSpeedClient:
    """HTTP client for Google PageSpeed Insights API."""

    BASE_URL = "https://www.googleapis.com/pagespeedonline/v5/runPagespeed"

    # Audits scoring below this are reported as recommendations
    AUDIT_PASS_THRESHOLD = 0.9
    MAX_RECOMMENDATIONS = 10

    def __init__(
        self,
        api_key: str = "",
        timeout: float = 15,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self.transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.api_key)

    async def analyze(self, url: str, strategy: str = "mobile") -> PageSpeedReport:
        """
        Analyze a URL with PageSpeed Insights.

        Args:
            url: The URL to analyze
            strategy: 'mobile' or 'desktop'

        Returns:
            Parsed performance score, load time and recommendations

        Raises:
            ExternalServiceFailure: no key, transport error, HTTP error or a
                response without a Lighthouse result
        """
        if not self.api_key:
            raise ExternalServiceFailure("PageSpeed", "API key not configured")

        params = {
            "url": url,
            "strategy": strategy,
            "key": self.api_key,
            "category": "performance",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                logger.info(f"[PSI] Analyzing {url} ({strategy})")
                response = await client.get(self.BASE_URL, params=params)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException:
            logger.error(f"[PSI] Timeout analyzing {url}")
            raise ExternalServiceFailure("PageSpeed", "request timeout")
        except httpx.HTTPStatusError as e:
            error_msg = f"HTTP {e.response.status_code}"
            if e.response.status_code == 429:
                error_msg = "Rate limit exceeded"
            elif e.response.status_code == 400:
                error_msg = "Invalid URL or request"
            logger.error(f"[PSI] Error analyzing {url}: {error_msg}")
            raise ExternalServiceFailure("PageSpeed", error_msg)
        except (httpx.HTTPError, ValueError) as e:
            logger.error(f"[PSI] Unexpected error analyzing {url}: {e}")
            raise ExternalServiceFailure("PageSpeed", str(e))

        return self._parse_response(data)

    def _parse_response(self, data: dict) -> PageSpeedReport:
        """Parse PSI API response into a PageSpeedReport."""
        lighthouse = data.get("lighthouseResult") if isinstance(data, dict) else None
        if not lighthouse:
            raise ExternalServiceFailure("PageSpeed", "no lighthouse result in response")

        performance = lighthouse.get("categories", {}).get("performance", {})
        raw_score = performance.get("score") or 0
        audits = lighthouse.get("audits", {})

        # Time to interactive, else first contentful paint
        interactive = audits.get("interactive", {}).get("numericValue")
        fcp = audits.get("first-contentful-paint", {}).get("numericValue")
        load_time = interactive if interactive is not None else fcp

        return PageSpeedReport(
            performance_score=math.floor(raw_score * 100 + 0.5),
            load_time_ms=math.floor((load_time or 0) + 0.5),
            recommendations=self._extract_recommendations(audits),
            metrics=self._extract_metrics(audits),
        )

    def _extract_recommendations(self, audits: dict) -> list[str]:
        recommendations = []
        for audit_id, audit in audits.items():
            score = audit.get("score")
            if isinstance(score, (int, float)) and not isinstance(score, bool) \
                    and score < self.AUDIT_PASS_THRESHOLD:
                title = audit.get("title") or audit_id
                message = audit.get("displayValue") or audit.get("description") or ""
                recommendations.append(f"{title}: {message}" if message else title)
                if len(recommendations) >= self.MAX_RECOMMENDATIONS:
                    break
        return recommendations

    def _extract_metrics(self, audits: dict) -> dict[str, Any]:
        """Extract Core Web Vitals lab metrics from audits."""
        metrics = {}

        lcp = audits.get("largest-contentful-paint", {})
        if lcp.get("numericValue") is not None:
            metrics["lcp_ms"] = int(lcp["numericValue"])

        tbt = audits.get("total-blocking-time", {})
        if tbt.get("numericValue") is not None:
            metrics["tbt_ms"] = int(tbt["numericValue"])

        cls = audits.get("cumulative-layout-shift", {})
        if cls.get("numericValue") is not None:
            metrics["cls"] = round(cls["numericValue"], 3)

        fcp = audits.get("first-contentful-paint", {})
        if fcp.get("numericValue") is not None:
            metrics["fcp_ms"] = int(fcp["numericValue"])

        return metrics
