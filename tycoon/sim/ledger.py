"""
Player cash balance and stock holdings.

This is the collaborator the rest of the game talks to for money: the
order book, betting resolver and dividend payouts all go through
``debit`` / ``credit``.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional
import logging

from ..market.errors import InsufficientFunds
from ..market.models import Transaction
from ..market.utils import append_bounded

logger = logging.getLogger(__name__)


@dataclass
class Holding:
    """Player's position in one company."""
    company_id: str
    shares: int
    average_price: float
    total_invested: float
    purchase_date: datetime = field(default_factory=datetime.now)

    def current_value(self, current_price: float) -> float:
        return current_price * self.shares

    def unrealized_pnl(self, current_price: float) -> float:
        return self.current_value(current_price) - self.total_invested


@dataclass
class PlayerLedger:
    """Cash balance plus holdings for the single player."""
    balance: float = 1000.0
    holdings: dict[str, Holding] = field(default_factory=dict)
    transactions: list[Transaction] = field(default_factory=list)
    transaction_limit: int = 100

    def can_afford(self, amount: float) -> bool:
        return self.balance >= amount

    def debit(self, amount: float) -> float:
        """Remove ``amount`` from the balance; never lets it go negative."""
        if amount < 0:
            raise ValueError("Cannot debit a negative amount")
        if not self.can_afford(amount):
            raise InsufficientFunds(amount, self.balance)
        self.balance -= amount
        return self.balance

    def credit(self, amount: float) -> float:
        if amount < 0:
            raise ValueError("Cannot credit a negative amount")
        self.balance += amount
        return self.balance

    def add_shares(self, company_id: str, shares: int, price: float, total: float) -> Holding:
        """Record a purchase, re-averaging the cost basis."""
        existing = self.holdings.get(company_id)
        if existing is None:
            holding = Holding(
                company_id=company_id,
                shares=shares,
                average_price=price,
                total_invested=total,
            )
            self.holdings[company_id] = holding
            return holding

        existing.total_invested += total
        existing.shares += shares
        existing.average_price = existing.total_invested / existing.shares
        return existing

    def remove_shares(self, company_id: str, shares: int) -> Optional[Holding]:
        """
        Record a sale. Average price stays put; invested capital shrinks
        by the cost basis of the shares sold. Returns None once the
        position is fully closed.
        """
        existing = self.holdings.get(company_id)
        if existing is None:
            logger.warning("No holding found for %s", company_id)
            return None

        if shares >= existing.shares:
            del self.holdings[company_id]
            return None

        existing.shares -= shares
        existing.total_invested -= existing.average_price * shares
        return existing

    def record(self, transaction: Transaction) -> None:
        append_bounded(self.transactions, transaction, self.transaction_limit)

    def get_total_value(self, current_prices: dict[str, float] | None = None) -> float:
        """Cash plus holdings at ``current_prices`` (cost basis where unknown)."""
        total = self.balance
        for holding in self.holdings.values():
            if current_prices and holding.company_id in current_prices:
                total += holding.current_value(current_prices[holding.company_id])
            else:
                total += holding.total_invested
        return total
