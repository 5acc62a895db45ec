import datetime as dt

from finanzas_core.domain.models import ExpenseItem, IncomeItem, YearConfig
from finanzas_core.services.dashboard import DataWindow, build_dashboard, monthly_aggregates, runway_status

TODAY = dt.date(2025, 4, 15)  # April -> month index 3


def _pad(values):
    return list(values) + [0.0] * (12 - len(values))


def _ledger():
    expenses = [
        ExpenseItem(id="e1", year=2025, category="Gastos Variables", name="Supermercado", amounts=_pad([50, 200, 200, 200, 400])),
        ExpenseItem(id="e2", year=2025, category="Servicios Básicos", name="UTE", amounts=_pad([0, 100, 100, 100, 100])),
        ExpenseItem(id="old", year=2024, category="Salud", name="CASMU", amounts=[9999.0] * 12),
    ]
    income = [IncomeItem(id="i1", year=2025, category="Ingreso Fijo", name="Sueldo", amounts=_pad([1000] * 5))]
    return expenses, income


def test_monthly_aggregates_net_savings():
    expenses, income = _ledger()
    monthly = monthly_aggregates(expenses[:2], income)
    assert len(monthly) == 12
    assert monthly[0].net_savings == 950.0
    assert monthly[4].expense == 500.0
    assert monthly[11].net_savings == 0.0
    assert monthly[0].name == "Ene"


def test_build_dashboard_current_year():
    expenses, income = _ledger()
    summary = build_dashboard(expenses, income, YearConfig(2025, start_month_index=1), 500.0, [0.0] * 12, today=TODAY)

    # stats use months 1..2 only
    assert summary.valid_months == 2
    assert summary.avg_expense == 300.0
    assert summary.avg_income == 1000.0
    assert summary.avg_savings == 700.0

    assert summary.liquid_wealth == 500 + 950 + 700 + 700 + 700
    assert summary.stable_wealth == 500 + 950 + 700 + 700
    assert abs(summary.runway_months - 9.5) < 1e-9
    assert summary.runway_status == "strong"

    assert [(c.name, c.value) for c in summary.categories] == [
        ("Gastos Variables", 600.0),
        ("Servicios Básicos", 300.0),
    ]

    assert summary.projection.points[3].projected == 2850.0 + 700.0
    assert summary.end_year_nominal == 3550.0 + 8 * 700.0
    assert summary.end_year_real == summary.end_year_nominal
    assert summary.purchasing_power_loss == 0.0


def test_inflation_reduces_real_end_of_year_wealth():
    expenses, income = _ledger()
    summary = build_dashboard(expenses, income, YearConfig(2025, 1), 500.0, [0.5] * 12, today=TODAY)
    assert summary.end_year_real < summary.end_year_nominal
    assert summary.purchasing_power_loss > 0


def test_runway_without_expenses_is_zero():
    income = [IncomeItem(id="i1", year=2025, category="Ingreso Fijo", name="Sueldo", amounts=[100.0] * 12)]
    summary = build_dashboard([], income, YearConfig(2025), 0.0, [], today=TODAY)
    assert summary.runway_months == 0.0
    assert summary.runway_status == "critical"


def test_runway_status_thresholds():
    assert runway_status(0.5) == "critical"
    assert runway_status(2) == "warning"
    assert runway_status(4) == "healthy"
    assert runway_status(6) == "strong"


def test_data_window_for_other_years():
    past = DataWindow.for_year(YearConfig(2024, 2), TODAY)
    assert not past.is_current_year
    assert past.max_chart_month == 11
    assert past.max_stats_month == 11
    assert not past.is_reliable_for_stats(1)

    future = DataWindow.for_year(YearConfig(2026, 0), TODAY)
    assert not future.is_current_year

    current = DataWindow.for_year(YearConfig(2025, 0), TODAY)
    assert current.is_reliable_for_charts(3)
    assert not current.is_reliable_for_stats(3)
