from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

from finanzas_core.domain.models import FutureSimulationConfig, FutureSimulationResult
from finanzas_core.logging_setup import get_logger
from finanzas_core.services.inflation import average_monthly_inflation, estimated_annual_inflation

logger = get_logger("finanzas_core.services.simulator")

# Annual return (percent) for the fixed investment presets.
PRESET_RETURNS = {
    "conservative": 5.0,
    "aggressive": 10.0,
}


def monthly_rate_from_annual(annual_rate: float) -> float:
    return math.pow(1 + annual_rate / 100, 1 / 12) - 1


def annuity_future_value(payment: float, monthly_rate: float, months: int) -> float:
    """Future value of ``months`` end-of-month contributions of ``payment``."""
    if monthly_rate == 0:
        return payment * months
    return payment * ((math.pow(1 + monthly_rate, months) - 1) / monthly_rate)


def simulate_future(config: FutureSimulationConfig, rates: Sequence[Optional[float]]) -> FutureSimulationResult:
    """
    Extend average monthly savings to a target month, with and without
    compounding an investment return. Targets at or before the current
    month return the current wealth unchanged.
    """
    wealth = config.current_wealth
    months_diff = (config.target_year - config.current_year) * 12 + (config.target_month - config.current_month)
    if months_diff <= 0:
        return FutureSimulationResult(
            nominal=wealth,
            real=wealth,
            invested_nominal=wealth,
            investment_profit=0.0,
            months_diff=0,
        )

    nominal = wealth + months_diff * config.avg_savings
    inflation_factor = math.pow(1 + average_monthly_inflation(rates) / 100, months_diff)
    real = nominal / inflation_factor

    invested = nominal
    profit = 0.0
    if config.enable_investment and config.annual_return_rate > 0:
        r = monthly_rate_from_annual(config.annual_return_rate)
        lump_sum = wealth * math.pow(1 + r, months_diff)
        invested = lump_sum + annuity_future_value(config.avg_savings, r, months_diff)
        profit = invested - nominal

    logger.debug(
        "simulated %d months: nominal=%.2f real=%.2f invested=%.2f",
        months_diff,
        nominal,
        real,
        invested,
    )
    return FutureSimulationResult(
        nominal=nominal,
        real=real,
        invested_nominal=invested,
        investment_profit=profit,
        months_diff=months_diff,
    )


def investment_preset(name: str, rates: Sequence[Optional[float]]) -> Tuple[bool, float]:
    """(enable_investment, annual_return_rate) for a named preset."""
    key = name.strip().lower()
    if key == "cash":
        return False, 0.0
    if key == "ui":
        # Inflation-indexed units track inflation, so they return its estimate.
        return True, round(estimated_annual_inflation(rates), 2)
    if key in PRESET_RETURNS:
        return True, PRESET_RETURNS[key]
    raise ValueError(f"Unknown investment preset: {name}")
