from finanzas_core.io.config import load_app_config  # noqa: F401
from finanzas_core.io.inflation import JsonInflationProvider, StaticInflationProvider  # noqa: F401
from finanzas_core.io.ledger import load_ledger  # noqa: F401
from finanzas_core.io.store import JsonStore  # noqa: F401

__all__ = ["load_app_config", "load_ledger", "JsonStore", "JsonInflationProvider", "StaticInflationProvider"]
