from __future__ import annotations

import dataclasses
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from finanzas_core.domain.models import MONTHS_PER_YEAR, ProjectionPoint, ProjectionResult, monthly_series
from finanzas_core.logging_setup import get_logger
from finanzas_core.services.inflation import cumulative_inflation, real_value

logger = get_logger("finanzas_core.services.projection")

# Error band half-width as a multiple of the savings std dev.
CURRENT_MONTH_BAND = 0.5
FUTURE_MONTH_BAND = 1.5


@dataclasses.dataclass
class _Balances:
    running_actual: float
    running_projected: float


def max_stats_month(current_month_index: int, is_current_year: bool) -> int:
    """Last month usable for averages; the running month is incomplete."""
    return max(-1, current_month_index - 1) if is_current_year else MONTHS_PER_YEAR - 1


def reliable_stat_months(start_month_index: int, current_month_index: int, is_current_year: bool) -> List[int]:
    last = max_stats_month(current_month_index, is_current_year)
    return [i for i in range(MONTHS_PER_YEAR) if start_month_index <= i <= last]


def savings_stats(net_savings: Sequence[float], months: Sequence[int]) -> Tuple[float, float]:
    """Mean and population std dev of net savings over ``months``."""
    if not months:
        return 0.0, 0.0
    values = np.array([net_savings[i] for i in months], dtype=float)
    return float(np.mean(values)), float(np.std(values))


def build_projection(
    net_savings: Sequence[float],
    opening_balance: float,
    start_month_index: int,
    current_month_index: int,
    is_current_year: bool,
    rates: Sequence[Optional[float]],
) -> ProjectionResult:
    """
    Balance trajectory for one year. Past months accumulate actual net savings;
    from the running month onward the projection advances by the average of
    completed reliable months, while the actual line keeps the partial figure.
    """
    net = monthly_series(net_savings)
    months = reliable_stat_months(start_month_index, current_month_index, is_current_year)
    avg_savings, std_dev = savings_stats(net, months)
    logger.debug(
        "projection: %d reliable months, avg=%.2f std=%.2f",
        len(months),
        avg_savings,
        std_dev,
    )

    acc = _Balances(running_actual=opening_balance, running_projected=opening_balance)
    points: List[ProjectionPoint] = []

    for i in range(MONTHS_PER_YEAR):
        inflation = cumulative_inflation(rates, start_month_index, i)
        is_past = i < current_month_index if is_current_year else True
        is_current = is_current_year and i == current_month_index

        if is_past:
            acc.running_actual += net[i]
            acc.running_projected = acc.running_actual
            points.append(
                ProjectionPoint(
                    index=i,
                    actual=acc.running_actual,
                    real_actual=real_value(acc.running_actual, inflation),
                    projected=None,
                    real_projected=None,
                    range=None,
                    is_unrecorded=i < start_month_index,
                    inflation=inflation,
                )
            )
        elif is_current:
            current_actual = acc.running_actual + net[i]
            acc.running_projected += avg_savings
            margin = std_dev * CURRENT_MONTH_BAND
            points.append(
                ProjectionPoint(
                    index=i,
                    actual=current_actual,
                    real_actual=real_value(current_actual, inflation),
                    projected=acc.running_projected,
                    real_projected=real_value(acc.running_projected, inflation),
                    range=(acc.running_projected - margin, acc.running_projected + margin),
                    is_unrecorded=False,
                    inflation=inflation,
                )
            )
            acc.running_actual = current_actual
        else:
            acc.running_projected += avg_savings
            margin = std_dev * math.sqrt(i - current_month_index) * FUTURE_MONTH_BAND
            points.append(
                ProjectionPoint(
                    index=i,
                    actual=None,
                    real_actual=None,
                    projected=acc.running_projected,
                    real_projected=real_value(acc.running_projected, inflation),
                    range=(acc.running_projected - margin, acc.running_projected + margin),
                    is_unrecorded=False,
                    inflation=inflation,
                )
            )

    return ProjectionResult(points=points, avg_savings=avg_savings, std_dev=std_dev, reliable_months=months)
