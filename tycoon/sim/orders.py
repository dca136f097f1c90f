"""
Order book — fills player buy/sell orders at the current price.

Orders are all-or-nothing. Each fill moves cash through the ledger,
updates ownership on the company and nudges its buy/sell pressure so the
next tick feels the order flow.
"""

from __future__ import annotations

import logging

from ..market.errors import InsufficientHoldings
from ..market.models import Company, MarketState, TradeReceipt, Transaction
from ..market.utils import append_bounded, new_id
from .ledger import PlayerLedger

logger = logging.getLogger(__name__)

CONTROL_THRESHOLD = 0.51
PRESSURE_RAISE = 5.0
PRESSURE_RELIEF = 2.0


def is_controlled(owned: int, total_shares: int) -> bool:
    return owned > total_shares * CONTROL_THRESHOLD


class OrderBook:
    def __init__(self, state: MarketState, ledger: PlayerLedger, transaction_limit: int = 100):
        self.state = state
        self.ledger = ledger
        self.transaction_limit = transaction_limit

    def _company(self, company_id: str, shares: int) -> Company:
        company = self.state.companies.get(company_id)
        if company is None:
            raise ValueError(f"Company with ID {company_id} not found")
        if not isinstance(shares, int) or isinstance(shares, bool) or shares <= 0:
            raise ValueError(f"Share count must be a positive integer, got {shares!r}")
        return company

    def _record(self, company: Company, side: str, shares: int, price: float, total: float) -> None:
        tx = Transaction(
            id=new_id(),
            type=side,
            company_id=company.id,
            shares=shares,
            price=price,
            total=total,
        )
        append_bounded(company.transactions, tx, self.transaction_limit)
        self.ledger.record(tx)

    # ── Buy ──────────────────────────────────────────────────────────

    def buy(self, company_id: str, shares: int) -> TradeReceipt:
        company = self._company(company_id, shares)
        price = company.current_price
        total = shares * price

        self.ledger.debit(total)

        company.owned += shares
        self._record(company, "buy", shares, price, total)
        self.ledger.add_shares(company.id, shares, price, total)

        ratio = shares / company.total_shares
        company.buy_pressure += ratio * PRESSURE_RAISE
        company.sell_pressure = max(0.0, company.sell_pressure - ratio * PRESSURE_RELIEF)
        company.company_owned = is_controlled(company.owned, company.total_shares)

        logger.info(
            "Bought %d %s @ $%.2f (total $%.2f)", shares, company.id, price, total,
        )
        return TradeReceipt(
            company_id=company.id,
            side="buy",
            shares=shares,
            price=price,
            total=total,
            balance=self.ledger.balance,
            message=f"Successfully purchased {shares} shares of {company.name} for ${total:,.2f}",
        )

    # ── Sell ─────────────────────────────────────────────────────────

    def sell(self, company_id: str, shares: int) -> TradeReceipt:
        company = self._company(company_id, shares)
        if shares > company.owned:
            raise InsufficientHoldings(company.id, shares, company.owned)

        price = company.current_price
        total = shares * price

        self.ledger.credit(total)

        company.owned -= shares
        self._record(company, "sell", shares, price, total)
        self.ledger.remove_shares(company.id, shares)

        ratio = shares / company.total_shares
        company.sell_pressure += ratio * PRESSURE_RAISE
        company.buy_pressure = max(0.0, company.buy_pressure - ratio * PRESSURE_RELIEF)
        company.company_owned = is_controlled(company.owned, company.total_shares)

        logger.info(
            "Sold %d %s @ $%.2f (total $%.2f)", shares, company.id, price, total,
        )
        return TradeReceipt(
            company_id=company.id,
            side="sell",
            shares=shares,
            price=price,
            total=total,
            balance=self.ledger.balance,
            message=f"Successfully sold {shares} shares of {company.name} for ${total:,.2f}",
        )
