from __future__ import annotations

import dataclasses
import datetime as dt
from typing import Dict, Iterable, List, Optional, Sequence

from finanzas_core.domain.models import (
    MONTHS_PER_YEAR,
    CategoryTotal,
    DashboardSummary,
    ExpenseItem,
    IncomeItem,
    MonthlyAggregate,
    YearConfig,
)
from finanzas_core.logging_setup import get_logger
from finanzas_core.services import projection

logger = get_logger("finanzas_core.services.dashboard")


@dataclasses.dataclass(frozen=True)
class DataWindow:
    """Which months count for charts and which for statistics."""

    start_month_index: int
    current_month_index: int
    is_current_year: bool

    @classmethod
    def for_year(cls, config: YearConfig, today: dt.date) -> "DataWindow":
        # A year that has not started yet is handled like a closed year.
        return cls(
            start_month_index=config.start_month_index,
            current_month_index=today.month - 1,
            is_current_year=config.year == today.year,
        )

    @property
    def max_chart_month(self) -> int:
        return self.current_month_index if self.is_current_year else MONTHS_PER_YEAR - 1

    @property
    def max_stats_month(self) -> int:
        return projection.max_stats_month(self.current_month_index, self.is_current_year)

    def is_reliable_for_charts(self, idx: int) -> bool:
        return self.start_month_index <= idx <= self.max_chart_month

    def is_reliable_for_stats(self, idx: int) -> bool:
        return self.start_month_index <= idx <= self.max_stats_month


def monthly_aggregates(expenses: Iterable[ExpenseItem], income: Iterable[IncomeItem]) -> List[MonthlyAggregate]:
    expenses = list(expenses)
    income = list(income)
    return [
        MonthlyAggregate(
            index=i,
            expense=sum(e.amounts[i] for e in expenses),
            income=sum(r.amounts[i] for r in income),
        )
        for i in range(MONTHS_PER_YEAR)
    ]


def _mean(values: Sequence[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def category_breakdown(expenses: Iterable[ExpenseItem], window: DataWindow) -> List[CategoryTotal]:
    totals: Dict[str, float] = {}
    for item in expenses:
        reliable = sum(v for idx, v in enumerate(item.amounts) if window.is_reliable_for_charts(idx))
        if reliable > 0:
            totals[item.category] = totals.get(item.category, 0.0) + reliable
    return sorted(
        (CategoryTotal(name=k, value=v) for k, v in totals.items()),
        key=lambda c: c.value,
        reverse=True,
    )


def liquid_wealth(monthly: Sequence[MonthlyAggregate], opening_balance: float, window: DataWindow) -> float:
    """Cash on hand: every month up to and including the running one."""
    return opening_balance + sum(m.net_savings for m in monthly if m.index <= window.max_chart_month)


def stable_wealth(monthly: Sequence[MonthlyAggregate], opening_balance: float, window: DataWindow) -> float:
    """Wealth from closed months only."""
    last = window.current_month_index - 1 if window.is_current_year else MONTHS_PER_YEAR - 1
    return opening_balance + sum(m.net_savings for m in monthly if m.index <= last)


def runway_status(months: float) -> str:
    if months < 1:
        return "critical"
    if months < 3:
        return "warning"
    if months >= 6:
        return "strong"
    return "healthy"


def build_dashboard(
    expenses: Iterable[ExpenseItem],
    income: Iterable[IncomeItem],
    config: YearConfig,
    opening_balance: float,
    rates: Sequence[Optional[float]],
    today: Optional[dt.date] = None,
) -> DashboardSummary:
    """
    Recompute every dashboard figure for ``config.year`` from scratch.
    Only rows belonging to that year are considered.
    """
    today = today or dt.date.today()
    expenses = [e for e in expenses if e.year == config.year]
    income = [r for r in income if r.year == config.year]
    window = DataWindow.for_year(config, today)

    monthly = monthly_aggregates(expenses, income)
    stats = [m for m in monthly if window.is_reliable_for_stats(m.index)]
    avg_expense = _mean([m.expense for m in stats])
    avg_income = _mean([m.income for m in stats])

    proj = projection.build_projection(
        net_savings=[m.net_savings for m in monthly],
        opening_balance=opening_balance,
        start_month_index=config.start_month_index,
        current_month_index=window.current_month_index,
        is_current_year=window.is_current_year,
        rates=rates,
    )

    closed = stable_wealth(monthly, opening_balance, window)
    runway = closed / avg_expense if avg_expense > 0 else 0.0
    end_nominal, end_real = proj.end_of_year()

    logger.info(
        "dashboard %d: %d reliable months, runway %.1f months",
        config.year,
        len(stats),
        runway,
    )

    return DashboardSummary(
        year=config.year,
        monthly=monthly,
        projection=proj,
        categories=category_breakdown(expenses, window),
        avg_expense=avg_expense,
        avg_income=avg_income,
        avg_savings=proj.avg_savings,
        valid_months=len(stats),
        liquid_wealth=liquid_wealth(monthly, opening_balance, window),
        stable_wealth=closed,
        runway_months=runway,
        runway_status=runway_status(runway),
        end_year_nominal=end_nominal,
        end_year_real=end_real,
    )
