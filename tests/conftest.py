import copy
import random

import pytest

from tycoon.feeds import alphavantage
from tycoon.market import catalog
from tycoon.sim.config import DEFAULT_CONFIG
from tycoon.sim.service import MarketService


@pytest.fixture
def config():
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg["fetcher"]["enabled"] = False
    cfg["fetcher"]["batch_delay"] = 0
    return cfg


@pytest.fixture
def service(config):
    return MarketService(config, rng=random.Random(42))


@pytest.fixture
def single_company_service(config):
    """Market with one plain company: 1,000,000 shares at $50."""
    definition = {
        "id": "ACME", "name": "Acme Corp", "sector": catalog.Sector.INDUSTRIAL,
        "base_price": 50.0, "total_shares": 1_000_000, "volatility": 0.02, "beta": 1.0,
    }
    rng = random.Random(7)
    state = catalog.build_market_state(rng, companies=[definition], indices=[])
    return MarketService(config, rng=rng, state=state)


@pytest.fixture
def reset_http_client():
    yield
    alphavantage._client = None
