import random

import pytest

from tycoon.market.errors import InsufficientFunds, InsufficientHoldings
from tycoon.sim.orders import is_controlled
from tycoon.sim.service import MarketService


def test_buy_debits_and_records_holding(service):
    service.ledger.balance = 10_000
    nova = service.state.companies["NOVA"]
    price = nova.current_price

    receipt = service.buy("NOVA", 10)

    assert receipt.total == pytest.approx(price * 10)
    assert service.ledger.balance == pytest.approx(10_000 - price * 10)
    assert nova.owned == 10
    assert nova.transactions[-1].type == "buy"
    holding = service.ledger.holdings["NOVA"]
    assert holding.shares == 10
    assert holding.average_price == pytest.approx(price)


def test_buy_re_averages_cost_basis(service):
    service.ledger.balance = 100_000
    nova = service.state.companies["NOVA"]
    nova.current_price = 100.0
    service.buy("NOVA", 10)
    nova.current_price = 200.0
    service.buy("NOVA", 30)

    holding = service.ledger.holdings["NOVA"]
    assert holding.shares == 40
    assert holding.total_invested == pytest.approx(7000)
    assert holding.average_price == pytest.approx(175)


def test_round_trip_restores_balance(service):
    service.ledger.balance = 5_000
    service.buy("CRWN", 20)
    service.sell("CRWN", 20)
    assert service.ledger.balance == pytest.approx(5_000)
    assert service.state.companies["CRWN"].owned == 0
    assert "CRWN" not in service.ledger.holdings


def test_partial_sell_keeps_average_price(service):
    service.ledger.balance = 100_000
    nova = service.state.companies["NOVA"]
    nova.current_price = 100.0
    service.buy("NOVA", 10)
    nova.current_price = 150.0

    receipt = service.sell("NOVA", 4)

    assert receipt.total == pytest.approx(600)
    holding = service.ledger.holdings["NOVA"]
    assert holding.shares == 6
    assert holding.average_price == pytest.approx(100)
    assert holding.total_invested == pytest.approx(600)


def test_buy_without_funds_is_rejected(service):
    service.ledger.balance = 10
    with pytest.raises(InsufficientFunds):
        service.buy("NOVA", 1)
    assert service.state.companies["NOVA"].owned == 0
    assert service.ledger.balance == 10


def test_sell_more_than_owned_is_rejected(service):
    service.ledger.balance = 10_000
    service.buy("BRGR", 3)
    with pytest.raises(InsufficientHoldings):
        service.sell("BRGR", 4)
    assert service.state.companies["BRGR"].owned == 3


@pytest.mark.parametrize("shares", [0, -1, 1.5])
def test_bad_share_counts_are_programmer_errors(service, shares):
    with pytest.raises(ValueError):
        service.buy("NOVA", shares)


def test_unknown_company_is_programmer_error(service):
    with pytest.raises(ValueError):
        service.sell("NOPE", 1)


def test_buying_majority_takes_control(single_company_service):
    svc = single_company_service
    svc.ledger.balance = 50_000_000
    acme = svc.state.companies["ACME"]
    assert acme.current_price == 50.0

    svc.buy("ACME", 600_000)
    assert acme.company_owned is True

    svc.sell("ACME", 90_000)
    assert acme.owned == 510_000
    assert acme.company_owned is False


def test_control_threshold_is_strict():
    assert is_controlled(510_001, 1_000_000)
    assert not is_controlled(510_000, 1_000_000)


def test_orders_move_pressure(single_company_service):
    svc = single_company_service
    svc.ledger.balance = 10_000_000
    acme = svc.state.companies["ACME"]

    svc.buy("ACME", 10_000)
    assert acme.buy_pressure == pytest.approx(0.05)
    assert acme.sell_pressure == 0

    svc.sell("ACME", 5_000)
    assert acme.sell_pressure == pytest.approx(0.025)
    assert acme.buy_pressure == pytest.approx(0.04)


def test_transaction_log_is_bounded(config):
    config["market"]["transaction_log_limit"] = 3
    svc = MarketService(config, rng=random.Random(3))
    svc.ledger.balance = 100_000
    for _ in range(5):
        svc.buy("MEDX", 1)
    assert len(svc.state.companies["MEDX"].transactions) == 3
    assert len(svc.ledger.transactions) == 3
    assert svc.state.companies["MEDX"].owned == 5
