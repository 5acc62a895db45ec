from finanzas_core.domain.models import (  # noqa: F401
    CategoryTotal,
    DashboardSummary,
    ExpenseItem,
    FutureSimulationConfig,
    FutureSimulationResult,
    IncomeItem,
    MonthlyAggregate,
    ParsedExpense,
    PricePoint,
    PriceVariation,
    Product,
    ProductTag,
    ProjectionPoint,
    ProjectionResult,
    Transaction,
    VariationReport,
    YearConfig,
)

__all__ = [
    "CategoryTotal",
    "DashboardSummary",
    "ExpenseItem",
    "FutureSimulationConfig",
    "FutureSimulationResult",
    "IncomeItem",
    "MonthlyAggregate",
    "ParsedExpense",
    "PricePoint",
    "PriceVariation",
    "Product",
    "ProductTag",
    "ProjectionPoint",
    "ProjectionResult",
    "Transaction",
    "VariationReport",
    "YearConfig",
]
