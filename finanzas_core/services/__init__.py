from finanzas_core.services.dashboard import build_dashboard  # noqa: F401
from finanzas_core.services.inflation import cumulative_inflation, present_value, real_value  # noqa: F401
from finanzas_core.services.price_history import product_history, variation_report  # noqa: F401
from finanzas_core.services.projection import build_projection  # noqa: F401
from finanzas_core.services.simulator import simulate_future  # noqa: F401

__all__ = [
    "build_dashboard",
    "build_projection",
    "cumulative_inflation",
    "present_value",
    "product_history",
    "real_value",
    "simulate_future",
    "variation_report",
]
