"""
Price-direction betting.

Players wager that a company's price will be higher (``up``) or lower
(``down``) at the next snapshot than at the previous one. Snapshots are
taken every betting window. A flat price leaves bets open for the next
window; otherwise every open bet on that company settles, winners being
paid ``stake × payout_multiplier``.
"""

from __future__ import annotations

import logging
from typing import Callable

from ..market.errors import InvalidDirection
from ..market.models import Bet, BetDirection, Company, MarketState, NewsItem, Trend
from ..market.utils import new_id
from .ledger import PlayerLedger

logger = logging.getLogger(__name__)

BET_PRESSURE = 1.0


def parse_direction(direction) -> BetDirection:
    if isinstance(direction, BetDirection):
        return direction
    if isinstance(direction, str):
        try:
            return BetDirection(direction.strip().lower())
        except ValueError:
            pass
    raise InvalidDirection(direction)


def snapshot_direction(current: float, recorded: float) -> Trend:
    if current > recorded:
        return Trend.UP
    if current < recorded:
        return Trend.DOWN
    return Trend.NEUTRAL


class BettingResolver:
    def __init__(
        self,
        state: MarketState,
        ledger: PlayerLedger,
        publish: Callable[[NewsItem], None],
        window_seconds: int = 30,
        payout_multiplier: float = 1.8,
        history_limit: int = 100,
    ):
        self.state = state
        self.ledger = ledger
        self.publish = publish
        self.window_seconds = window_seconds
        self.payout_multiplier = payout_multiplier
        self.history_limit = history_limit

    # ── Placement ────────────────────────────────────────────────────

    def place_bet(self, company_id: str, direction, stake: float) -> str:
        """Debit ``stake`` and open a bet. Returns the bet id."""
        company = self.state.companies.get(company_id)
        if company is None:
            raise ValueError(f"Company with ID {company_id} not found")
        if stake <= 0:
            raise ValueError(f"Stake must be positive, got {stake!r}")
        side = parse_direction(direction)

        self.ledger.debit(stake)

        elapsed = self.state.elapsed_ticks
        bet = Bet(
            id=new_id(),
            company_id=company.id,
            direction=side,
            stake=stake,
            start_price=company.current_price,
            placed_at=elapsed,
            countdown=max(0, self.window_seconds - (elapsed - self.state.last_bet_snapshot)),
        )
        company.bet_history.append(bet)
        self._trim_history(company)

        # A bet is a small vote on order flow
        equivalent = stake / company.current_price / company.total_shares * BET_PRESSURE
        if side == BetDirection.UP:
            company.buy_pressure += equivalent
        else:
            company.sell_pressure += equivalent

        logger.info("Bet %s placed: %s %s $%.2f", bet.id, company.id, side.value, stake)
        return bet.id

    def _trim_history(self, company: Company) -> None:
        """Drop the oldest resolved bets beyond ``history_limit``; open bets always stay."""
        excess = len(company.bet_history) - self.history_limit
        if excess <= 0:
            return
        kept = []
        for bet in company.bet_history:
            if excess > 0 and bet.resolved:
                excess -= 1
                continue
            kept.append(bet)
        company.bet_history[:] = kept

    # ── Resolution ───────────────────────────────────────────────────

    def resolve(self) -> list[Bet]:
        """
        Take a snapshot of every company and settle bets where the price
        moved. Returns the bets settled by this snapshot.
        """
        now = self.state.elapsed_ticks
        settled: list[Bet] = []

        for company in self.state.companies.values():
            direction = snapshot_direction(company.current_price, company.last_recorded_price)
            if direction != Trend.NEUTRAL:
                settled.extend(self._settle(company, direction))
                company.price_change_time = now
            company.price_direction = direction
            company.last_recorded_price = company.current_price

        self.state.last_bet_snapshot = now
        if settled:
            logger.info("Snapshot at %ds settled %d bets", now, len(settled))
        return settled

    def _settle(self, company: Company, direction: Trend) -> list[Bet]:
        settled = []
        for bet in company.open_bets:
            bet.resolved = True
            bet.countdown = 0
            bet.won = bet.direction.value == direction.value
            if bet.won:
                bet.payout = bet.stake * self.payout_multiplier
                self.ledger.credit(bet.payout)
                self.publish(NewsItem(
                    id=new_id(),
                    headline=f"You won ${bet.payout:,.2f} on your {company.id} price direction bet!",
                    content=f"{company.name} moved {direction.value} since the last snapshot.",
                    impact="positive",
                    company_id=company.id,
                    is_personal=True,
                ))
            settled.append(bet)
        return settled
