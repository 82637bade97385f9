"""
Chart Engine client - natal chart computation over HTTP.

The engine is opaque: it takes birth facts and returns placements. A chart
is computed once at onboarding and stored on the profile.
"""

import logging
from datetime import date
from typing import Optional, Protocol

import httpx
from pydantic import ValidationError

from app.config import settings
from app.content.bundle import ChartFacts

logger = logging.getLogger(__name__)

DEFAULT_BIRTH_TIME = "12:00"


class ChartEngineError(RuntimeError):
    """Raised when the chart cannot be computed."""


class ChartEngine(Protocol):
    async def compute_chart(
        self,
        name: str,
        birth_date: date,
        birth_time: Optional[str],
        birth_place: str,
        language: str,
    ) -> ChartFacts:
        ...


class HttpChartEngine:
    """Chart Engine reached at {chart_engine_url}/chart."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.chart_engine_url).rstrip("/")
        self.timeout = timeout or settings.chart_engine_timeout
        self.transport = transport

    async def compute_chart(
        self,
        name: str,
        birth_date: date,
        birth_time: Optional[str],
        birth_place: str,
        language: str,
    ) -> ChartFacts:
        payload = {
            "name": name,
            "birthDate": birth_date.isoformat(),
            "birthTime": birth_time or DEFAULT_BIRTH_TIME,
            "birthPlace": birth_place,
            "language": language,
        }

        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
            ) as client:
                response = await client.post("/chart", json=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.TimeoutException as e:
            raise ChartEngineError("Chart engine request timeout") from e
        except httpx.HTTPStatusError as e:
            raise ChartEngineError(
                f"Chart engine HTTP error: {e.response.status_code}"
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise ChartEngineError(f"Chart engine request failed: {e}") from e

        try:
            chart = ChartFacts.model_validate(data)
        except ValidationError as e:
            raise ChartEngineError(f"Malformed chart payload: {e}") from e

        logger.info(f"Chart computed for {name}: sun={chart.sun.sign}")
        return chart
