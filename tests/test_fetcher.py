import asyncio

import httpx
import pytest

from tycoon.feeds import alphavantage
from tycoon.feeds.fetcher import ExternalPriceFetcher, generate_fallback_series
from tycoon.market import catalog
from tycoon.market.errors import ExternalFetchFailure


DAILY_BODY = {
    "Meta Data": {"2. Symbol": "AAPL"},
    "Time Series (Daily)": {
        "2024-05-03": {"4. close": "183.38"},
        "2024-05-02": {"4. close": "173.03"},
        "2024-05-01": {"4. close": "169.30"},
    },
}


def _fetcher_config(**overrides):
    cfg = {"api_key": "test", "timeout": 1.0, "batch_size": 5, "batch_delay": 0, "days": 30, "max_age_seconds": 3600}
    cfg.update(overrides)
    return cfg


def _use_transport(handler):
    alphavantage._client = httpx.AsyncClient(transport=httpx.MockTransport(handler))


# ── Client ───────────────────────────────────────────────────────────

def test_parse_daily_closes_oldest_first():
    assert alphavantage.parse_daily_closes(DAILY_BODY) == [169.30, 173.03, 183.38]
    assert alphavantage.parse_daily_closes(DAILY_BODY, days=2) == [173.03, 183.38]


@pytest.mark.parametrize("body", [
    {"Error Message": "Invalid API call"},
    {"Note": "Thank you for using Alpha Vantage! Our standard API rate limit is 5 calls per minute"},
    {"Meta Data": {}},
    {"Time Series (Daily)": {"2024-05-03": {"1. open": "1"}}},
    ["not", "an", "object"],
])
def test_parse_rejects_unusable_bodies(body):
    with pytest.raises(ExternalFetchFailure):
        alphavantage.parse_daily_closes(body)


def test_get_daily_closes_over_http(reset_http_client):
    def handler(request):
        assert request.url.path == "/query"
        assert request.url.params["symbol"] == "AAPL"
        assert request.url.params["function"] == "TIME_SERIES_DAILY"
        return httpx.Response(200, json=DAILY_BODY)

    _use_transport(handler)
    closes = asyncio.run(alphavantage.get_daily_closes("AAPL", api_key="k"))
    assert closes == [169.30, 173.03, 183.38]


def test_http_errors_become_fetch_failures(reset_http_client):
    _use_transport(lambda request: httpx.Response(503, text="unavailable"))
    with pytest.raises(ExternalFetchFailure):
        asyncio.run(alphavantage.get_daily_closes("AAPL"))


# ── Fallback generator ───────────────────────────────────────────────

def test_fallback_series_is_seeded_and_bounded():
    first = generate_fallback_series("AAPL")
    second = generate_fallback_series("AAPL")
    assert first == second
    assert len(first) == 30
    assert first[0] == 50 + 4 * 10
    assert min(first) >= (50 + 4 * 10) * 0.5


# ── Fetcher ──────────────────────────────────────────────────────────

def test_network_down_falls_back_for_every_company(service, reset_http_client):
    def handler(request):
        raise httpx.ConnectError("network down", request=request)

    _use_transport(handler)
    service.fetcher = ExternalPriceFetcher(_fetcher_config(), now=service.simulated_seconds)

    count = asyncio.run(service.refresh_external_history())

    assert count == len(service.state.companies)
    for company in service.state.companies.values():
        ticker = catalog.get_real_world_ticker(company.id, company.sector)
        assert company.external_history == generate_fallback_series(ticker)
        assert company.external_updated_at == service.simulated_seconds()


def test_unexpected_errors_also_fall_back():
    async def broken(ticker, **kwargs):
        raise RuntimeError("boom")

    fetcher = ExternalPriceFetcher(_fetcher_config(), fetch=broken)
    assert asyncio.run(fetcher.history_for("IBM")) == generate_fallback_series("IBM")


def test_slow_fetch_times_out_to_fallback():
    async def slow(ticker, **kwargs):
        await asyncio.sleep(5)
        return [1.0]

    fetcher = ExternalPriceFetcher(_fetcher_config(timeout=0.01), fetch=slow)
    assert asyncio.run(fetcher.history_for("XOM")) == generate_fallback_series("XOM")


def test_successful_fetch_is_cached():
    calls = []

    async def fetch(ticker, **kwargs):
        calls.append(ticker)
        return [1.0, 2.0, 3.0]

    fetcher = ExternalPriceFetcher(_fetcher_config(), fetch=fetch, now=lambda: 100.0)

    async def go():
        await fetcher.history_for("AAPL")
        return await fetcher.history_for("AAPL")

    assert asyncio.run(go()) == [1.0, 2.0, 3.0]
    assert calls == ["AAPL"]


def test_refresh_batches_with_delay(service):
    sleeps = []

    async def fake_sleep(seconds):
        sleeps.append(seconds)

    async def fetch(ticker, **kwargs):
        return [10.0, 11.0]

    companies = list(service.state.companies.values())[:5]
    fetcher = ExternalPriceFetcher(
        _fetcher_config(batch_size=2, batch_delay=1.5), fetch=fetch, sleep=fake_sleep,
    )

    results = asyncio.run(fetcher.refresh(companies))

    assert set(results) == {c.id for c in companies}
    assert sleeps == [1.5, 1.5]


def test_fresh_companies_are_skipped(service):
    async def fetch(ticker, **kwargs):
        return [10.0, 11.0]

    clock = {"now": 0.0}
    service.fetcher = ExternalPriceFetcher(_fetcher_config(), fetch=fetch, now=lambda: clock["now"])

    assert asyncio.run(service.refresh_external_history()) == len(service.state.companies)
    assert asyncio.run(service.refresh_external_history()) == 0

    clock["now"] = 3600.0
    assert asyncio.run(service.refresh_external_history()) == len(service.state.companies)


def test_refresh_does_not_touch_prices(service):
    async def fetch(ticker, **kwargs):
        raise ExternalFetchFailure("offline")

    service.fetcher = ExternalPriceFetcher(_fetcher_config(), fetch=fetch)
    before = {cid: c.current_price for cid, c in service.state.companies.items()}
    asyncio.run(service.refresh_external_history())
    assert {cid: c.current_price for cid, c in service.state.companies.items()} == before
