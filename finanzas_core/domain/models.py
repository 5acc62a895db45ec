from __future__ import annotations

import dataclasses
import math
from typing import Dict, Iterable, List, Optional, Tuple

MONTHS_PER_YEAR = 12

MONTH_NAMES = (
    "Enero",
    "Febrero",
    "Marzo",
    "Abril",
    "Mayo",
    "Junio",
    "Julio",
    "Agosto",
    "Septiembre",
    "Octubre",
    "Noviembre",
    "Diciembre",
)

STANDARD_CATEGORIES = (
    "Servicios Básicos",
    "Impuestos / Vivienda",
    "Salud",
    "Gastos Variables",
)

STANDARD_INCOME_CATEGORIES = (
    "Ingreso Fijo",
    "Ingreso Extra",
    "Ahorro / Inversión",
)

# Categories whose monthly cells are a breakdown of individual purchases.
CATEGORIES_WITH_BREAKDOWN = (
    "Gastos Variables",
    "Supermercado",
    "Alimentación",
    "Farmacia",
    "Feria",
)

UNCATEGORIZED_TAG = "uncategorized"


def monthly_series(values: Optional[Iterable[Optional[float]]] = None) -> Tuple[float, ...]:
    """Normalise ``values`` to exactly 12 floats; gaps and NaN become 0.0."""
    out = []
    for raw in list(values or [])[:MONTHS_PER_YEAR]:
        try:
            val = float(raw) if raw is not None else 0.0
        except (TypeError, ValueError):
            val = 0.0
        out.append(0.0 if math.isnan(val) else val)
    out.extend([0.0] * (MONTHS_PER_YEAR - len(out)))
    return tuple(out)


def check_month_index(month_index: int) -> int:
    if not 0 <= month_index < MONTHS_PER_YEAR:
        raise ValueError(f"Month index out of range: {month_index}")
    return month_index


@dataclasses.dataclass(frozen=True)
class Transaction:
    id: str
    description: str
    amount: float
    date: Optional[str] = None  # ISO timestamp; legacy rows may lack it
    product_id: Optional[str] = None
    unit_price: Optional[float] = None
    quantity: Optional[float] = None


@dataclasses.dataclass(frozen=True)
class ProductTag:
    id: str
    name: str
    emoji: str = ""


@dataclasses.dataclass(frozen=True)
class Product:
    id: str
    name: str
    default_price: float
    tag_id: str = UNCATEGORIZED_TAG
    image: Optional[str] = None


@dataclasses.dataclass(frozen=True)
class ExpenseItem:
    id: str
    year: int
    category: str
    name: str
    amounts: Tuple[float, ...] = dataclasses.field(default_factory=monthly_series)
    transactions: Dict[int, Tuple[Transaction, ...]] = dataclasses.field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amounts", monthly_series(self.amounts))
        object.__setattr__(
            self,
            "transactions",
            {int(k): tuple(v) for k, v in (self.transactions or {}).items()},
        )

    @property
    def supports_breakdown(self) -> bool:
        return any(c in self.category for c in CATEGORIES_WITH_BREAKDOWN)

    @property
    def total(self) -> float:
        return sum(self.amounts)


@dataclasses.dataclass(frozen=True)
class IncomeItem:
    id: str
    year: int
    category: str
    name: str
    amounts: Tuple[float, ...] = dataclasses.field(default_factory=monthly_series)

    def __post_init__(self) -> None:
        object.__setattr__(self, "amounts", monthly_series(self.amounts))

    @property
    def total(self) -> float:
        return sum(self.amounts)


@dataclasses.dataclass(frozen=True)
class YearConfig:
    year: int
    start_month_index: int = 0


@dataclasses.dataclass(frozen=True)
class MonthlyAggregate:
    index: int
    expense: float
    income: float

    @property
    def name(self) -> str:
        return MONTH_NAMES[self.index][:3]

    @property
    def net_savings(self) -> float:
        return self.income - self.expense


@dataclasses.dataclass
class ProjectionPoint:
    index: int
    actual: Optional[float]
    real_actual: Optional[float]
    projected: Optional[float]
    real_projected: Optional[float]
    range: Optional[Tuple[float, float]]
    is_unrecorded: bool
    inflation: float

    @property
    def name(self) -> str:
        return MONTH_NAMES[self.index][:3]


@dataclasses.dataclass
class ProjectionResult:
    points: List[ProjectionPoint]
    avg_savings: float
    std_dev: float
    reliable_months: List[int]

    def trend_line(self) -> List[float]:
        """Continuous balance path: actual in the past, projected afterwards."""
        return [p.projected if p.projected is not None else (p.actual or 0.0) for p in self.points]

    def end_of_year(self) -> Tuple[float, float]:
        """Nominal and real December wealth, projected when available."""
        last = self.points[-1]
        nominal = last.projected if last.projected is not None else last.actual
        real = last.real_projected if last.real_projected is not None else last.real_actual
        return nominal or 0.0, real or 0.0


@dataclasses.dataclass(frozen=True)
class CategoryTotal:
    name: str
    value: float


@dataclasses.dataclass
class DashboardSummary:
    year: int
    monthly: List[MonthlyAggregate]
    projection: ProjectionResult
    categories: List[CategoryTotal]
    avg_expense: float
    avg_income: float
    avg_savings: float
    valid_months: int
    liquid_wealth: float
    stable_wealth: float
    runway_months: float
    runway_status: str
    end_year_nominal: float
    end_year_real: float

    @property
    def purchasing_power_loss(self) -> float:
        return self.end_year_nominal - self.end_year_real


@dataclasses.dataclass(frozen=True)
class PricePoint:
    date: str
    price: float
    real_price: float


@dataclasses.dataclass(frozen=True)
class PriceVariation:
    product: Product
    history_count: int
    first_date: str
    last_date: str
    first_real_price: float
    last_real_price: float
    last_nominal_price: float
    variation: float


@dataclasses.dataclass
class VariationReport:
    increases: List[PriceVariation]
    drops: List[PriceVariation]
    stable: List[PriceVariation]


@dataclasses.dataclass(frozen=True)
class FutureSimulationConfig:
    target_year: int
    target_month: int
    current_year: int
    current_month: int
    current_wealth: float
    avg_savings: float
    enable_investment: bool = False
    annual_return_rate: float = 0.0


@dataclasses.dataclass
class FutureSimulationResult:
    nominal: float
    real: float
    invested_nominal: float
    investment_profit: float
    months_diff: int


@dataclasses.dataclass(frozen=True)
class ParsedExpense:
    name: str
    category: str
    amount: float
    month_index: Optional[int] = None
