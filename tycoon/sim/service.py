"""
Market service — owns the whole market state.

The UI talks to this object only:

    svc = MarketService(load_config())
    svc.buy("NOVA", 10)
    svc.place_bet("NOVA", "up", 100)
    svc.advance(30)              # deterministic: 30 ticks, no waiting
    snap = svc.get_snapshot()

or lets it run in real time with ``await svc.run(...)``. Every mutation
goes through one lock so an order never lands in the middle of a tick.
"""

from __future__ import annotations

import asyncio
import logging
import random
import threading
from datetime import datetime, timedelta
from typing import Callable, Optional

from ..feeds import alphavantage
from ..feeds.fetcher import ExternalPriceFetcher
from ..market import catalog, clock as market_clock
from ..market.models import ActionResult, MarketState, NewsItem, TradeReceipt
from ..market.utils import new_id
from .betting import BettingResolver
from .config import DEFAULT_CONFIG, load_config
from .engine import TickEngine
from .ledger import PlayerLedger
from .orders import OrderBook

logger = logging.getLogger(__name__)

NewsCallback = Callable[[NewsItem], None]


class MarketService:
    """Single-player market: tick engine, betting, order book and fetcher."""

    def __init__(
        self,
        config: Optional[dict] = None,
        rng: Optional[random.Random] = None,
        ledger: Optional[PlayerLedger] = None,
        state: Optional[MarketState] = None,
        fetcher: Optional[ExternalPriceFetcher] = None,
    ):
        self.config = config or load_config()
        market_cfg = self.config.get("market", DEFAULT_CONFIG["market"])
        betting_cfg = self.config.get("betting", DEFAULT_CONFIG["betting"])
        player_cfg = self.config.get("player", DEFAULT_CONFIG["player"])

        self.rng = rng or random.Random(market_cfg.get("seed"))
        self.news_limit = market_cfg.get("news_limit", 15)
        self.state = state or catalog.build_market_state(self.rng, market_cfg.get("history_length", 50))
        self.ledger = ledger or PlayerLedger(
            balance=player_cfg.get("starting_balance", 1000.0),
            transaction_limit=market_cfg.get("transaction_log_limit", 100),
        )

        self._lock = threading.RLock()
        self._listeners: list[NewsCallback] = []

        window = betting_cfg.get("window_seconds", 30)
        self.betting = BettingResolver(
            self.state,
            self.ledger,
            self._publish,
            window_seconds=window,
            payout_multiplier=betting_cfg.get("payout_multiplier", 1.8),
            history_limit=betting_cfg.get("history_limit", 100),
        )
        self.engine = TickEngine(
            self.state,
            self.ledger,
            self.rng,
            market_cfg,
            self._publish,
            resolve_bets=self.betting.resolve,
            window_seconds=window,
        )
        self.orders = OrderBook(self.state, self.ledger, market_cfg.get("transaction_log_limit", 100))
        self.fetcher = fetcher or ExternalPriceFetcher(
            self.config.get("fetcher", DEFAULT_CONFIG["fetcher"]),
            now=self.simulated_seconds,
        )

    # ── News ─────────────────────────────────────────────────────────

    def on_news(self, callback: NewsCallback) -> Callable[[], None]:
        """Subscribe to news items. Returns an unsubscribe function."""
        self._listeners.append(callback)

        def unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return unsubscribe

    def _publish(self, item: NewsItem) -> None:
        self.state.news.insert(0, item)
        del self.state.news[self.news_limit:]
        logger.debug("News: %s", item.headline)
        for callback in list(self._listeners):
            try:
                callback(item)
            except Exception as e:
                logger.error("News listener %r failed: %s", callback, e)

    # ── Read side ────────────────────────────────────────────────────

    def get_snapshot(self) -> MarketState:
        """Deep copy of the current market; safe to hold across ticks."""
        with self._lock:
            return self.state.model_copy(deep=True)

    def simulated_seconds(self) -> float:
        """Market time elapsed, in simulated seconds (one tick = one minute)."""
        return self.state.elapsed_ticks * 60.0

    # ── Scheduling ───────────────────────────────────────────────────

    def tick(self) -> bool:
        with self._lock:
            return self.engine.tick()

    def advance(self, seconds: float) -> int:
        """Run one tick per whole simulated second. Returns ticks run."""
        ticks = int(seconds)
        for _ in range(ticks):
            self.tick()
        return ticks

    def resolve_bets(self):
        with self._lock:
            return self.betting.resolve()

    # ── Player actions ───────────────────────────────────────────────

    def buy(self, company_id: str, shares: int) -> TradeReceipt:
        with self._lock:
            return self.orders.buy(company_id, shares)

    def sell(self, company_id: str, shares: int) -> TradeReceipt:
        with self._lock:
            return self.orders.sell(company_id, shares)

    def place_bet(self, company_id: str, direction, stake: float) -> str:
        with self._lock:
            return self.betting.place_bet(company_id, direction, stake)

    def toggle_watchlist(self, company_id: str) -> bool:
        """Add or remove ``company_id``. Returns True if now watched."""
        with self._lock:
            if company_id not in self.state.companies:
                raise ValueError(f"Company with ID {company_id} not found")
            if company_id in self.state.watchlist:
                self.state.watchlist.remove(company_id)
                return False
            self.state.watchlist.append(company_id)
            return True

    def take_company_action(self, company_id: str) -> ActionResult:
        """
        Force a corporate action on a company the player controls. The
        impact is queued and lands on the next tick.
        """
        with self._lock:
            company = self.state.companies.get(company_id)
            if company is None:
                raise ValueError(f"Company with ID {company_id} not found")
            if not company.company_owned:
                return ActionResult(success=False, message="You don't control this company")

            action = self.rng.choice(catalog.COMPANY_ACTIONS)
            company.pending_impact += action.impact
            item = NewsItem(
                id=new_id(),
                headline=f"{company.name} {action.action}",
                content=action.description,
                impact="positive" if action.impact > 0 else "negative",
                company_id=company.id,
            )
            company.recent_news = item
            self._publish(item)
            return ActionResult(success=True, message=f"Successfully executed {action.action}")

    # ── External history ─────────────────────────────────────────────

    async def refresh_external_history(self) -> int:
        """Fetch chart-seed series; touches only the external-history fields."""
        with self._lock:
            companies = [c.model_copy() for c in self.state.companies.values()]

        results = await self.fetcher.refresh(companies)

        with self._lock:
            stamp = self.simulated_seconds()
            for company_id, series in results.items():
                company = self.state.companies.get(company_id)
                if company is not None:
                    company.external_history = list(series)
                    company.external_updated_at = stamp
        return len(results)

    async def _refresh_loop(self, interval: float) -> None:
        while True:
            try:
                await self.refresh_external_history()
            except Exception as e:
                logger.error("External history refresh failed: %s", e)
            await asyncio.sleep(interval)

    # ── Real-time loop ───────────────────────────────────────────────

    async def run(self, duration_seconds: float = 60, tick_seconds: Optional[float] = None) -> None:
        """Tick in real time for ``duration_seconds``."""
        tick_seconds = tick_seconds or self.config.get("market", {}).get("tick_seconds", 1.0)
        fetch_cfg = self.config.get("fetcher", {})

        refresher = None
        if fetch_cfg.get("enabled", True):
            refresher = asyncio.create_task(self._refresh_loop(fetch_cfg.get("refresh_interval", 3600)))

        end_time = datetime.now() + timedelta(seconds=duration_seconds)
        ticks = 0
        try:
            while datetime.now() < end_time:
                tick_start = datetime.now()
                self.tick()
                ticks += 1
                if ticks % 60 == 0:
                    logger.info(
                        "%s | NOW %.2f (%+.2f%%) | mood %.2f",
                        market_clock.format_clock(self.state.clock),
                        self.state.now_average.current_value,
                        self.state.now_average.percent_change,
                        self.state.market_mood,
                    )
                elapsed = (datetime.now() - tick_start).total_seconds()
                await asyncio.sleep(max(0, tick_seconds - elapsed))
        finally:
            if refresher is not None:
                refresher.cancel()
                try:
                    await refresher
                except asyncio.CancelledError:
                    pass
                await alphavantage.close_client()
        logger.info("Market loop stopped after %d ticks", ticks)
