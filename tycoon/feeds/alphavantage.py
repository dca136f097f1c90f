"""
Alpha Vantage client for real-world daily price history.

Endpoint used (free tier, 5 requests/minute):
  GET /query?function=TIME_SERIES_DAILY&symbol=X&apikey=K

Everything that is not a usable close series (HTTP errors, timeouts,
rate-limit notes, malformed bodies) is raised as ``ExternalFetchFailure``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..market.errors import ExternalFetchFailure

logger = logging.getLogger(__name__)

ALPHAVANTAGE_BASE = "https://www.alphavantage.co"
TIMEOUT = 10.0
SERIES_KEY = "Time Series (Daily)"


_client: httpx.AsyncClient | None = None

async def _get_client() -> httpx.AsyncClient:
    """Get or create shared HTTP client."""
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=TIMEOUT)
    return _client


async def close_client() -> None:
    global _client
    if _client is not None:
        await _client.aclose()
        _client = None


async def _get(params: dict[str, Any], base_url: str = ALPHAVANTAGE_BASE) -> Any:
    """Issue a GET to /query and return parsed JSON."""
    client = await _get_client()
    url = f"{base_url}/query"
    logger.debug("GET %s symbol=%s", url, params.get("symbol"))
    try:
        resp = await client.get(url, params=params)
        resp.raise_for_status()
        return resp.json()
    except httpx.HTTPError as e:
        raise ExternalFetchFailure(f"{type(e).__name__}: {e}") from e
    except ValueError as e:
        raise ExternalFetchFailure(f"Malformed JSON: {e}") from e


def parse_daily_closes(data: Any, days: int = 30) -> list[float]:
    """
    Extract closing prices, oldest first, from a TIME_SERIES_DAILY body.

    Alpha Vantage returns the most recent day first.
    """
    if not isinstance(data, dict):
        raise ExternalFetchFailure("Response body is not an object")
    if "Error Message" in data:
        raise ExternalFetchFailure(data["Error Message"])
    if "Note" in data or "Information" in data:
        raise ExternalFetchFailure(f"Rate limited: {data.get('Note') or data.get('Information')}")

    series = data.get(SERIES_KEY)
    if not isinstance(series, dict) or not series:
        raise ExternalFetchFailure("No daily time series in response")

    dates = sorted(series.keys(), reverse=True)[:days]
    try:
        closes = [float(series[d]["4. close"]) for d in dates]
    except (KeyError, TypeError, ValueError) as e:
        raise ExternalFetchFailure(f"Malformed series entry: {e}") from e
    closes.reverse()
    return closes


async def get_daily_closes(
    symbol: str,
    api_key: str = "demo",
    days: int = 30,
    base_url: str = ALPHAVANTAGE_BASE,
) -> list[float]:
    """Fetch the last ``days`` daily closes for ``symbol``, oldest first."""
    data = await _get(
        {"function": "TIME_SERIES_DAILY", "symbol": symbol, "apikey": api_key},
        base_url=base_url,
    )
    return parse_daily_closes(data, days)
