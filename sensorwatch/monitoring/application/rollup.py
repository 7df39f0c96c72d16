"""Windowed high/low rollups over readings."""

from collections.abc import Iterable
from datetime import datetime, timedelta

from sensorwatch.monitoring.domain.models import Reading, Rollup, Rule, as_utc


def trailing_window(now: datetime, hours: int = 24) -> tuple[datetime, datetime]:
    """Return ``(start, end)`` of the window ending at ``now``."""
    end = as_utc(now)
    return end - timedelta(hours=hours), end


def rollup(readings: Iterable[Reading], window_start: datetime, window_end: datetime) -> Rollup:
    """
    Compute high/low temperature and humidity over ``[window_start, window_end]``.

    Each quantity is tracked on its own, so a reading carrying only a
    temperature contributes nothing to the humidity statistics. A quantity
    with no values in the window yields None for both high and low.
    """
    start, end = as_utc(window_start), as_utc(window_end)
    highs: dict[Rule, float | None] = {rule: None for rule in Rule}
    lows: dict[Rule, float | None] = {rule: None for rule in Rule}

    for reading in readings:
        if not start <= as_utc(reading.ts) <= end:
            continue
        for rule in Rule:
            value = reading.value_for(rule)
            if value is None:
                continue
            if highs[rule] is None or value > highs[rule]:
                highs[rule] = value
            if lows[rule] is None or value < lows[rule]:
                lows[rule] = value

    return Rollup(
        high_temp=highs[Rule.TEMP],
        low_temp=lows[Rule.TEMP],
        high_rh=highs[Rule.RH],
        low_rh=lows[Rule.RH],
    )
