import asyncio
import random

import httpx
import pytest

from tycoon.feeds import alphavantage
from tycoon.feeds.fetcher import ExternalPriceFetcher
from tycoon.market.models import NewsItem
from tycoon.sim.service import MarketService


def test_snapshot_is_detached_from_live_state(service):
    snap = service.get_snapshot()
    price = snap.companies["NOVA"].current_price
    service.advance(20)
    snap.companies["NOVA"].price_history.clear()

    assert snap.companies["NOVA"].current_price == price
    assert service.state.companies["NOVA"].price_history
    assert snap.elapsed_ticks == 0
    assert service.state.elapsed_ticks == 20


def test_news_listener_and_unsubscribe(service):
    received = []
    unsubscribe = service.on_news(received.append)
    item = NewsItem(id="n1", headline="Test headline")

    service._publish(item)
    unsubscribe()
    service._publish(NewsItem(id="n2", headline="Ignored"))

    assert received == [item]
    assert service.state.news[0].id == "n2"


def test_failing_listener_does_not_break_publishing(service):
    def broken(item):
        raise RuntimeError("listener bug")

    seen = []
    service.on_news(broken)
    service.on_news(seen.append)
    service._publish(NewsItem(id="n1", headline="Still delivered"))
    assert [n.id for n in seen] == ["n1"]


def test_news_feed_is_bounded(service):
    for i in range(40):
        service._publish(NewsItem(id=str(i), headline=f"Item {i}"))
    assert len(service.state.news) == 15
    assert service.state.news[0].id == "39"


def test_watchlist_toggle(service):
    assert service.toggle_watchlist("NOVA") is True
    assert service.state.watchlist == ["NOVA"]
    assert service.toggle_watchlist("NOVA") is False
    assert service.state.watchlist == []
    with pytest.raises(ValueError):
        service.toggle_watchlist("NOPE")


def test_company_action_requires_control(service):
    result = service.take_company_action("NOVA")
    assert result.success is False
    assert service.state.companies["NOVA"].pending_impact == 0


def test_company_action_lands_on_next_tick(single_company_service):
    svc = single_company_service
    svc.ledger.balance = 50_000_000
    svc.buy("ACME", 600_000)
    acme = svc.state.companies["ACME"]

    result = svc.take_company_action("ACME")

    assert result.success is True
    assert acme.pending_impact != 0
    assert svc.state.news[0].company_id == "ACME"

    svc.tick()
    assert acme.pending_impact == 0


def test_advance_runs_whole_ticks(service):
    assert service.advance(12.7) == 12
    assert service.state.elapsed_ticks == 12
    assert service.simulated_seconds() == 720


def test_run_ticks_in_real_time(service):
    asyncio.run(service.run(duration_seconds=0.05, tick_seconds=0.01))
    assert service.state.elapsed_ticks >= 1


def test_company_action_on_unknown_company_is_programmer_error(service):
    with pytest.raises(ValueError):
        service.take_company_action("NOPE")


def test_run_closes_shared_http_client(config):
    async def fetch(ticker, **kwargs):
        return [10.0, 11.0]

    config["fetcher"]["enabled"] = True
    fetcher = ExternalPriceFetcher(config["fetcher"], fetch=fetch)
    svc = MarketService(config, rng=random.Random(11), fetcher=fetcher)
    alphavantage._client = httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(200)))
    client = alphavantage._client

    asyncio.run(svc.run(duration_seconds=0.05, tick_seconds=0.01))

    assert alphavantage._client is None
    assert client.is_closed
