"""
Price tick engine.

One ``tick`` is one simulated minute of market time:

  sentiment -> sector deltas -> per-company deltas -> indices
  -> NOW Average -> mood -> bets (when due) -> clock

The engine is the only writer of price, index, average, mood and clock
fields. News and dividend payouts raised while computing a tick are held
back and released only after the new prices are committed, so listeners
never observe a half-updated market.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Callable, Optional

from ..market import catalog, clock as market_clock
from ..market.models import Company, MarketState, NewsItem, Sector, Trend
from ..market.utils import append_bounded, clamp, new_id, percent_change, trend_from_change
from .ledger import PlayerLedger

logger = logging.getLogger(__name__)

NEWS_EVENT_CHANCE = 0.05
COMPANY_NEWS_CHANCE = 0.01
TREND_LIMIT = 0.5
PRESSURE_DECAY = 0.995
COMPANY_TREND_DEAD_ZONE = 0.0025
INDEX_TREND_DEAD_ZONE = 0.001
AVERAGE_TREND_DEAD_ZONE = 0.08  # percent
MOOD_LIMIT = 10.0
MARKET_NEWS_THRESHOLD = 1.5  # percent
DIVIDEND_BUMP = 0.005
WEEK_LENGTH = 5
FAIR_PE = 20.0


@dataclass
class CompanyUpdate:
    """New field values for one company, applied at commit time."""
    company: Company
    delta: float
    new_price: float
    price_trend: float
    volume_added: int
    recent_news: Optional[NewsItem] = None


@dataclass
class TickOutcome:
    """Everything a tick produced besides the committed state."""
    news: list[NewsItem] = field(default_factory=list)
    payouts: list[tuple[str, float]] = field(default_factory=list)


def valuation_multiplier(pe_ratio: Optional[float]) -> float:
    """Cheap stocks (low P/E) get bigger beats and softer misses."""
    if not pe_ratio or pe_ratio <= 0:
        return 1.0
    return clamp(FAIR_PE / pe_ratio, 0.5, 1.5)


def mood_label(mood: float) -> str:
    if mood > 3:
        return "bullish"
    if mood > 1:
        return "positive"
    if mood < -3:
        return "bearish"
    if mood < -1:
        return "negative"
    return "neutral"


def update_mood(mood: float, change: float) -> float:
    """Nudge mood by the NOW Average change, then mean-revert and clamp."""
    if change > 0.5:
        mood += 0.5
    elif change > 0.1:
        mood += 0.2
    elif change < -0.5:
        mood -= 0.5
    elif change < -0.1:
        mood -= 0.2
    mood *= 0.95
    return clamp(mood, -MOOD_LIMIT, MOOD_LIMIT)


class TickEngine:
    """Mutates ``state`` one simulated minute at a time."""

    def __init__(
        self,
        state: MarketState,
        ledger: PlayerLedger,
        rng: random.Random,
        config: dict,
        publish: Callable[[NewsItem], None],
        resolve_bets: Optional[Callable[[], None]] = None,
        window_seconds: int = 30,
    ):
        self.state = state
        self.ledger = ledger
        self.rng = rng
        self.publish = publish
        self.resolve_bets = resolve_bets
        self.window_seconds = window_seconds

        self.history_length = config.get("history_length", 50)
        self.price_floor = config.get("price_floor", 0.01)
        self.circuit_breaker = config.get("circuit_breaker", 0.09)
        self.average_scale = config.get("now_average_scale", 100.0)

    # ── Entry point ──────────────────────────────────────────────────

    def tick(self) -> bool:
        """
        Run one tick. Returns True when prices moved (market was open).
        """
        moved = False
        if self.state.clock.open:
            outcome = self.update_prices()
            self._release(outcome)
            moved = True

        self.state.elapsed_ticks += 1
        self._refresh_bet_countdowns()

        if (
            self.state.clock.open
            and self.resolve_bets is not None
            and self.state.elapsed_ticks - self.state.last_bet_snapshot >= self.window_seconds
        ):
            self.resolve_bets()

        if market_clock.advance_minute(self.state.clock):
            self._start_new_day()
        return moved

    # ── Price update (steps 1-10) ────────────────────────────────────

    def update_prices(self) -> TickOutcome:
        state = self.state
        outcome = TickOutcome()

        sentiment = self.rng.uniform(catalog.MARKET_SENTIMENT["min"], catalog.MARKET_SENTIMENT["max"])
        trend_factor = 0.7 * sentiment + 0.3 * (state.market_mood / 100)

        news_event = None
        if self.rng.random() < NEWS_EVENT_CHANCE:
            news_event = self.rng.choice(catalog.MARKET_NEWS_EVENTS)

        sector_deltas: dict[Sector, float] = {}
        for sector, bounds in catalog.SECTOR_TRENDS.items():
            delta = 0.6 * trend_factor + 0.4 * self.rng.uniform(bounds["min"], bounds["max"])
            if news_event and sector in news_event.sectors:
                direction = self._event_direction(news_event.impact)
                delta += direction * news_event.magnitude
                outcome.news.append(NewsItem(
                    id=new_id(),
                    headline=news_event.headline,
                    content=f"This event is moving {sector.value} sector companies.",
                    impact="positive" if direction > 0 else "negative",
                    sector=sector,
                ))
            sector_deltas[sector] = delta

        events_due = state.last_event_day != state.clock.day
        month, day_of_month = market_clock.calendar_date(state.clock.day)

        updates = [
            self._company_update(c, sector_deltas.get(c.sector, trend_factor), month, day_of_month, events_due, outcome)
            for c in state.companies.values()
        ]

        # Commit
        for u in updates:
            self._apply(u)
        if events_due:
            state.last_event_day = state.clock.day

        self._update_indices()
        change = self._update_now_average()

        state.market_mood = update_mood(state.market_mood, change)
        state.market_trend = mood_label(state.market_mood)
        state.market_status = catalog.get_market_status_message(change)

        if abs(change) > MARKET_NEWS_THRESHOLD:
            outcome.news.append(NewsItem(
                id=new_id(),
                headline=f"NOW Average {'surges' if change > 0 else 'plunges'} {abs(change):.2f}%",
                content=state.market_status,
                impact="positive" if change > 0 else "negative",
            ))
        return outcome

    def _event_direction(self, impact: str) -> int:
        if impact == "positive":
            return 1
        if impact == "negative":
            return -1
        return 1 if self.rng.random() > 0.5 else -1

    def _company_update(
        self,
        company: Company,
        sector_delta: float,
        month: int,
        day_of_month: int,
        events_due: bool,
        outcome: TickOutcome,
    ) -> CompanyUpdate:
        rng = self.rng
        delta = sector_delta
        delta += rng.uniform(-1, 1) * company.volatility * company.beta * 0.4

        fresh = delta
        delta = 0.6 * fresh + 0.4 * company.price_trend
        price_trend = clamp(0.95 * company.price_trend + 0.05 * fresh, -TREND_LIMIT, TREND_LIMIT)

        delta += (company.buy_pressure - company.sell_pressure) * 0.1

        if company.pending_impact:
            delta += company.pending_impact

        recent = None
        if company.news and rng.random() < COMPANY_NEWS_CHANCE:
            item = rng.choice(company.news)
            if rng.random() < item.probability:
                delta += item.impact
                recent = NewsItem(
                    id=new_id(),
                    headline=item.headline,
                    content=f"News specific to {company.name}.",
                    impact="positive" if item.impact > 0 else "negative",
                    company_id=company.id,
                )
                outcome.news.append(recent)

        if events_due and company.earnings and company.earnings.day == day_of_month and month in company.earnings.months:
            impact, headline = self._earnings(company)
            delta += impact
            recent = NewsItem(
                id=new_id(),
                headline=headline,
                content=f"{company.name} reported quarterly earnings.",
                impact="positive" if impact > 0 else "negative" if impact < 0 else "neutral",
                company_id=company.id,
            )
            outcome.news.append(recent)

        if events_due and company.dividend and company.dividend.day == day_of_month and month in company.dividend.months:
            delta += DIVIDEND_BUMP
            amount = company.dividend.amount
            outcome.news.append(NewsItem(
                id=new_id(),
                headline=f"{company.name} pays quarterly dividend of ${amount:.2f} per share",
                content="Shareholders of record received dividends today.",
                impact="positive",
                company_id=company.id,
            ))
            if company.owned > 0:
                payout = company.owned * amount
                outcome.payouts.append((company.id, payout))
                outcome.news.append(NewsItem(
                    id=new_id(),
                    headline=f"You received ${payout:,.2f} in dividends from {company.name}",
                    content=f"Dividend payment for {company.owned} shares at ${amount:.2f} per share.",
                    impact="positive",
                    company_id=company.id,
                    is_personal=True,
                ))

        clamped = clamp(delta, -self.circuit_breaker, self.circuit_breaker)
        if clamped != delta:
            logger.debug("Circuit breaker hit for %s (%.4f -> %.4f)", company.id, delta, clamped)
        delta = clamped

        new_price = max(self.price_floor, company.current_price * (1 + delta))
        assert math.isfinite(new_price) and new_price > 0, f"bad price for {company.id}: {new_price}"

        volume_added = math.floor(abs(delta) * company.total_shares * 0.05 * rng.uniform(0.75, 1.25))
        return CompanyUpdate(
            company=company,
            delta=delta,
            new_price=new_price,
            price_trend=price_trend,
            volume_added=volume_added,
            recent_news=recent,
        )

    def _earnings(self, company: Company) -> tuple[float, str]:
        roll = self.rng.random()
        multiplier = valuation_multiplier(company.pe_ratio)
        if roll > 0.6:
            impact = self.rng.uniform(0.02, 0.10) * multiplier
            return impact, f"{company.name} beats earnings expectations"
        if roll > 0.25:
            return self.rng.uniform(-0.01, 0.01), f"{company.name} meets earnings expectations"
        impact = -self.rng.uniform(0.02, 0.10) / multiplier
        return impact, f"{company.name} misses earnings expectations"

    def _apply(self, u: CompanyUpdate) -> None:
        c = u.company
        c.previous_price = c.current_price
        c.current_price = u.new_price
        c.percent_change = percent_change(c.current_price, c.previous_price)
        append_bounded(c.price_history, c.current_price, self.history_length)
        c.day_high = max(c.day_high, c.current_price)
        c.day_low = min(c.day_low, c.current_price)
        c.week_high = max(c.week_high, c.current_price)
        c.week_low = min(c.week_low, c.current_price)
        c.trending = trend_from_change(u.delta, COMPANY_TREND_DEAD_ZONE)
        c.volume += u.volume_added
        c.price_trend = u.price_trend
        c.pending_impact = 0.0
        c.buy_pressure *= PRESSURE_DECAY
        c.sell_pressure *= PRESSURE_DECAY
        if u.recent_news is not None:
            c.recent_news = u.recent_news

    # ── Indices and NOW Average ──────────────────────────────────────

    def _update_indices(self) -> None:
        companies = self.state.companies
        for index in self.state.indices:
            members = [companies[cid] for cid in index.companies if cid in companies]
            if not members:
                continue
            scale = index.base_value / 100
            new_value = sum(c.current_price for c in members) / len(members) * scale
            prev_value = sum(c.previous_price for c in members) / len(members) * scale

            index.previous_value = prev_value
            index.current_value = new_value
            append_bounded(index.value_history, new_value, self.history_length)
            index.percent_change = percent_change(new_value, prev_value)
            index.trending = trend_from_change(index.percent_change / 100, INDEX_TREND_DEAD_ZONE)

    def _update_now_average(self) -> float:
        avg = self.state.now_average
        new_value = catalog.now_average_value(self.state.companies.values(), self.average_scale)
        avg.previous_value = avg.current_value
        avg.current_value = new_value
        append_bounded(avg.value_history, new_value, self.history_length)
        avg.percent_change = percent_change(new_value, avg.previous_value)
        avg.trending = trend_from_change(avg.percent_change, AVERAGE_TREND_DEAD_ZONE)
        avg.description = catalog.get_market_status_message(avg.percent_change)
        return avg.percent_change

    # ── Post-commit side effects ─────────────────────────────────────

    def _release(self, outcome: TickOutcome) -> None:
        for company_id, amount in outcome.payouts:
            self.ledger.credit(amount)
            logger.info("Dividend of $%.2f paid from %s", amount, company_id)
        for item in outcome.news:
            self.publish(item)

    def _refresh_bet_countdowns(self) -> None:
        remaining = max(
            0, self.window_seconds - (self.state.elapsed_ticks - self.state.last_bet_snapshot)
        )
        for company in self.state.companies.values():
            for bet in company.open_bets:
                bet.countdown = remaining

    def _start_new_day(self) -> None:
        day = self.state.clock.day
        new_week = (day - 1) % WEEK_LENGTH == 0
        for c in self.state.companies.values():
            c.day_high = c.day_low = c.current_price
            if new_week:
                c.week_high = c.week_low = c.current_price
        logger.info("Market day %d opens (NOW Average %.2f)", day, self.state.now_average.current_value)
