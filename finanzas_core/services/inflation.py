from __future__ import annotations

import math
from typing import Optional, Sequence

# Monthly rate (percent) assumed when no inflation series has been loaded.
DEFAULT_MONTHLY_INFLATION = 0.5


def _rate(rates: Sequence[Optional[float]], idx: int) -> float:
    if idx < 0 or idx >= len(rates):
        return 0.0
    val = rates[idx]
    if val is None or math.isnan(val):
        return 0.0
    return float(val)


def cumulative_inflation(rates: Sequence[Optional[float]], start_idx: int, target_idx: int) -> float:
    """
    Compounded inflation, in percent, over months start_idx..target_idx inclusive.
    Returns 0.0 when target_idx precedes start_idx.
    """
    multiplier = 1.0
    for i in range(start_idx, target_idx + 1):
        multiplier *= 1 + _rate(rates, i) / 100
    return (multiplier - 1) * 100


def real_value(nominal: float, cumulative_percent: float) -> float:
    """Discount a future nominal amount back to today's purchasing power."""
    if cumulative_percent == 0:
        return nominal
    return nominal / (1 + cumulative_percent / 100)


def present_value(
    past_amount: float,
    from_month_idx: int,
    current_month_idx: int,
    rates: Sequence[Optional[float]],
) -> float:
    """
    Bring a past amount forward to today's money. Inflation applies from the
    month after the purchase through the current month.
    """
    if from_month_idx >= current_month_idx:
        return past_amount
    multiplier = 1.0
    for i in range(from_month_idx + 1, current_month_idx + 1):
        multiplier *= 1 + _rate(rates, i) / 100
    return past_amount * multiplier


def average_monthly_inflation(rates: Sequence[Optional[float]]) -> float:
    if not rates:
        return DEFAULT_MONTHLY_INFLATION
    return sum(_rate(rates, i) for i in range(len(rates))) / len(rates)


def estimated_annual_inflation(rates: Sequence[Optional[float]]) -> float:
    avg = average_monthly_inflation(rates)
    return (math.pow(1 + avg / 100, 12) - 1) * 100
