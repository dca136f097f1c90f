"""
Pydantic models for market state.

Shared type definitions used by the tick engine, betting resolver, order
book and fetcher. Everything a UI needs is reachable from ``MarketState``.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class Sector(str, Enum):
    TECHNOLOGY = "technology"
    FINANCE = "finance"
    ENERGY = "energy"
    HEALTHCARE = "healthcare"
    CONSUMER = "consumer"
    INDUSTRIAL = "industrial"


class Trend(str, Enum):
    UP = "up"
    DOWN = "down"
    NEUTRAL = "neutral"


class BetDirection(str, Enum):
    UP = "up"
    DOWN = "down"


# ── Catalog entries ──────────────────────────────────────────────────

class EarningsEvent(BaseModel):
    """Quarterly earnings date on the simulated calendar."""
    day: int
    months: list[int]


class DividendEvent(BaseModel):
    """Dividend date and per-share cash amount."""
    day: int
    months: list[int]
    amount: float


class CompanyNews(BaseModel):
    """Scripted company-specific headline."""
    headline: str
    impact: float
    probability: float = 1.0


class MarketNewsEvent(BaseModel):
    """Scripted market-wide event affecting one or more sectors."""
    headline: str
    sectors: list[Sector]
    impact: str  # "positive", "negative" or "mixed"
    magnitude: float


class CompanyAction(BaseModel):
    """Action a controlling shareholder can force on a company."""
    action: str
    description: str
    impact: float


class NewsItem(BaseModel):
    """One entry in the market news feed."""
    id: str
    headline: str
    content: str = ""
    impact: str = "neutral"
    timestamp: datetime = Field(default_factory=datetime.now)
    sector: Optional[Sector] = None
    company_id: Optional[str] = None
    is_personal: bool = False


# ── Trading state ────────────────────────────────────────────────────

class Transaction(BaseModel):
    """Buy or sell record."""
    id: str
    type: str  # "buy" or "sell"
    company_id: str
    shares: int
    price: float
    total: float
    date: datetime = Field(default_factory=datetime.now)


class Bet(BaseModel):
    """Up/down wager on a company's next price snapshot."""
    id: str
    company_id: str
    direction: BetDirection
    stake: float
    start_price: float
    placed_at: int  # elapsed tick count
    countdown: int
    resolved: bool = False
    won: Optional[bool] = None
    payout: float = 0.0


class Company(BaseModel):
    """A listed company and all of its per-tick market state."""
    id: str
    name: str
    sector: Sector
    total_shares: int
    base_price: float
    volatility: float
    beta: float = 1.0
    pe_ratio: Optional[float] = None
    earnings: Optional[EarningsEvent] = None
    dividend: Optional[DividendEvent] = None
    news: list[CompanyNews] = Field(default_factory=list)

    current_price: float = 0.0
    previous_price: float = 0.0
    price_history: list[float] = Field(default_factory=list)
    percent_change: float = 0.0
    trending: Trend = Trend.NEUTRAL
    volume: int = 0
    day_high: float = 0.0
    day_low: float = 0.0
    week_high: float = 0.0
    week_low: float = 0.0

    owned: int = 0
    company_owned: bool = False
    transactions: list[Transaction] = Field(default_factory=list)

    buy_pressure: float = 0.0
    sell_pressure: float = 0.0
    price_trend: float = 0.0
    pending_impact: float = 0.0
    recent_news: Optional[NewsItem] = None

    last_recorded_price: float = 0.0
    price_direction: Trend = Trend.NEUTRAL
    price_change_time: int = 0  # tick count
    bet_history: list[Bet] = Field(default_factory=list)

    external_history: Optional[list[float]] = None
    external_updated_at: Optional[float] = None

    @property
    def market_cap(self) -> float:
        return self.current_price * self.total_shares

    @property
    def open_bets(self) -> list[Bet]:
        return [b for b in self.bet_history if not b.resolved]

    @property
    def bets_up(self) -> int:
        return sum(1 for b in self.open_bets if b.direction == BetDirection.UP)

    @property
    def bets_down(self) -> int:
        return sum(1 for b in self.open_bets if b.direction == BetDirection.DOWN)


class CompositeIndex(BaseModel):
    """Equal-weighted index over a fixed set of constituents."""
    id: str
    name: str
    companies: list[str]
    base_value: float
    current_value: float = 0.0
    previous_value: float = 0.0
    value_history: list[float] = Field(default_factory=list)
    percent_change: float = 0.0
    trending: Trend = Trend.NEUTRAL


class NowAverage(BaseModel):
    """Market-cap-weighted composite of every listed company."""
    current_value: float = 0.0
    previous_value: float = 0.0
    value_history: list[float] = Field(default_factory=list)
    percent_change: float = 0.0
    trending: Trend = Trend.NEUTRAL
    description: str = ""


class MarketClock(BaseModel):
    """Simulated trading calendar: day counter plus wall time."""
    day: int = 1
    hour: int = 9
    minute: int = 30
    open: bool = True


class MarketState(BaseModel):
    """
    The whole market in one structure.

    ``MarketService`` owns the live instance; callers only ever see the
    deep copy returned by ``get_snapshot``.
    """
    companies: dict[str, Company] = Field(default_factory=dict)
    indices: list[CompositeIndex] = Field(default_factory=list)
    now_average: NowAverage = Field(default_factory=NowAverage)
    clock: MarketClock = Field(default_factory=MarketClock)
    news: list[NewsItem] = Field(default_factory=list)
    watchlist: list[str] = Field(default_factory=list)
    market_mood: float = 0.0
    market_trend: str = "neutral"
    market_status: str = "Market Opening: Trading begins for the day"
    elapsed_ticks: int = 0  # one tick per wall second, one simulated minute each
    last_bet_snapshot: int = 0  # tick count
    last_event_day: int = 0


# ── Results returned to the UI ───────────────────────────────────────

class TradeReceipt(BaseModel):
    """Outcome of a filled buy or sell order."""
    company_id: str
    side: str
    shares: int
    price: float
    total: float
    balance: float
    message: str = ""


class ActionResult(BaseModel):
    success: bool
    message: str
