from __future__ import annotations

import json
from pathlib import Path
from typing import Dict, Optional, Tuple

from finanzas_core.domain.models import monthly_series
from finanzas_core.logging_setup import get_logger

logger = get_logger("finanzas_core.io.inflation")

# Estimated monthly CPI variation for Uruguay, in percent (December projected).
URUGUAY_2025_ESTIMATE: Tuple[float, ...] = (
    0.52,
    0.48,
    0.60,
    0.45,
    0.38,
    0.41,
    0.55,
    0.49,
    0.62,
    0.50,
    0.45,
    0.40,
)


class StaticInflationProvider:
    """Returns the bundled estimate for every year."""

    def __init__(self, rates: Tuple[float, ...] = URUGUAY_2025_ESTIMATE):
        self._rates = monthly_series(rates)

    def get_monthly_inflation(self, year: int) -> Tuple[float, ...]:
        return self._rates


class JsonInflationProvider:
    """
    Reads ``{"<year>": [12 rates]}`` from a JSON file. Unknown years and
    unreadable files fall back to the bundled estimate.
    """

    def __init__(self, path: str | Path, fallback: Optional[StaticInflationProvider] = None):
        self.path = Path(path)
        self.fallback = fallback or StaticInflationProvider()
        self._cache: Dict[int, Tuple[float, ...]] = {}

    def _read(self) -> Dict[str, list]:
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("could not read inflation file %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def get_monthly_inflation(self, year: int) -> Tuple[float, ...]:
        if year in self._cache:
            return self._cache[year]
        series = self._read().get(str(year))
        if series is None:
            logger.warning("no inflation data for %d, using bundled estimate", year)
            rates = self.fallback.get_monthly_inflation(year)
        else:
            rates = monthly_series(series)
        self._cache[year] = rates
        return rates


def provider_for(path: Optional[str | Path]):
    return JsonInflationProvider(path) if path else StaticInflationProvider()
