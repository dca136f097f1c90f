"""
Real-time market runner.

Entry point for watching the simulation tick:
    python -m tycoon.sim.runner [--duration 120] [--tick 1] [--config config.yaml]
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from typing import Optional

from ..market import clock as market_clock
from .config import load_config
from .service import MarketService


def _print_summary(service: MarketService) -> None:
    snap = service.get_snapshot()
    avg = snap.now_average
    print(f"\n{'=' * 60}")
    print("MARKET SESSION COMPLETE")
    print(f"{'=' * 60}")
    print(f"Clock: {market_clock.format_clock(snap.clock)}")
    print(f"NOW Average: {avg.current_value:,.2f} ({avg.percent_change:+.2f}%) | {avg.description}")
    print(f"Market mood: {snap.market_mood:+.2f} ({snap.market_trend})")
    for index in snap.indices:
        print(f"  {index.name:<22} {index.current_value:>10,.2f} ({index.percent_change:+.2f}%)")
    print()
    for company in snap.companies.values():
        print(
            f"  {company.id:<5} {company.name:<28} ${company.current_price:>9,.2f} "
            f"({company.percent_change:+.2f}%) {company.trending.value}"
        )
    print(f"\nPlayer balance: ${service.ledger.balance:,.2f}")
    print(f"{'=' * 60}")


async def run(
    duration_seconds: float = 120,
    tick_seconds: Optional[float] = None,
    config_path: Optional[str] = None,
) -> MarketService:
    """High-level entry: load config, build the market, run the loop."""
    config = load_config(config_path)
    service = MarketService(config)
    service.on_news(lambda item: print(f"  [NEWS] {item.headline}"))

    print("Opening Tycoon market...\n")
    await service.run(duration_seconds=duration_seconds, tick_seconds=tick_seconds)
    _print_summary(service)
    return service


def main() -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(description="Tycoon stock market simulation")
    parser.add_argument(
        "--duration", type=float, default=120, help="Run time in seconds (default: 120)"
    )
    parser.add_argument(
        "--tick", type=float, default=None, help="Seconds per tick (default: from config)"
    )
    parser.add_argument(
        "--config", default=None, help="Config file path"
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    asyncio.run(
        run(
            duration_seconds=args.duration,
            tick_seconds=args.tick,
            config_path=args.config,
        )
    )


if __name__ == "__main__":
    main()
