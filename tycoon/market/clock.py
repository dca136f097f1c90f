"""
Simulated market clock.

One tick advances the clock by one minute. The session runs 09:30–16:00;
after close the clock keeps running until midnight, then jumps to 09:30 of
the next day. The simulated calendar has 30-day months, so ``day`` also
maps onto a month/day-of-month for earnings and dividend dates.
"""

from __future__ import annotations

from .models import MarketClock

OPEN_HOUR, OPEN_MINUTE = 9, 30
CLOSE_HOUR = 16
DAYS_PER_MONTH = 30


def is_open_at(hour: int, minute: int) -> bool:
    if hour >= CLOSE_HOUR:
        return False
    return (hour, minute) >= (OPEN_HOUR, OPEN_MINUTE)


def advance_minute(clock: MarketClock) -> bool:
    """
    Advance ``clock`` in place by one minute.

    Returns True when the advance rolled over into a new trading day.
    """
    minute = clock.minute + 1
    hour = clock.hour
    if minute >= 60:
        minute = 0
        hour += 1

    if hour >= 24:
        clock.day += 1
        clock.hour, clock.minute = OPEN_HOUR, OPEN_MINUTE
        clock.open = True
        return True

    clock.hour, clock.minute = hour, minute
    clock.open = is_open_at(hour, minute)
    return False


def calendar_date(day: int) -> tuple[int, int]:
    """Map a simulated market day (1-based) to ``(month, day_of_month)``."""
    index = day - 1
    month = (index // DAYS_PER_MONTH) % 12 + 1
    return month, index % DAYS_PER_MONTH + 1


def format_clock(clock: MarketClock) -> str:
    month, dom = calendar_date(clock.day)
    state = "OPEN" if clock.open else "CLOSED"
    return f"Day {clock.day} ({month:02d}/{dom:02d}) {clock.hour:02d}:{clock.minute:02d} {state}"
