from __future__ import annotations

import hashlib
from pathlib import Path
from typing import List, Tuple

import pandas as pd

from finanzas_core.domain.models import MONTHS_PER_YEAR, ExpenseItem, IncomeItem
from finanzas_core.logging_setup import get_logger

logger = get_logger("finanzas_core.io.ledger")

REQUIRED_COLUMNS = {"year", "kind", "category", "name", "month", "amount"}


def _row_id(year: int, kind: str, category: str, name: str) -> str:
    return hashlib.sha1(f"{year}|{kind}|{category}|{name}".encode("utf-8")).hexdigest()[:12]


def load_ledger(csv_path: str | Path) -> Tuple[List[ExpenseItem], List[IncomeItem]]:
    """
    Load a long-format CSV (one row per amount, ``month`` 1-12) and pivot it
    into expense and income rows of 12 monthly amounts each.
    """
    path = Path(csv_path)
    if not path.exists():
        raise FileNotFoundError(path)

    df = pd.read_csv(path)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"Missing columns in ledger CSV: {missing}")

    df["kind"] = df["kind"].astype(str).str.strip().str.lower()
    df["month"] = df["month"].astype(int)
    invalid = df[(df["month"] < 1) | (df["month"] > MONTHS_PER_YEAR) | ~df["kind"].isin(["expense", "income"])]
    if not invalid.empty:
        raise ValueError(f"Invalid month or kind in ledger CSV rows: {invalid.index.tolist()}")

    pivot = (
        df.groupby(["year", "kind", "category", "name", "month"], sort=False)["amount"]
        .sum()
        .unstack("month", fill_value=0.0)
        .reindex(columns=range(1, MONTHS_PER_YEAR + 1), fill_value=0.0)
    )

    expenses: List[ExpenseItem] = []
    income: List[IncomeItem] = []
    for (year, kind, category, name), amounts in pivot.iterrows():
        values = [float(v) for v in amounts.tolist()]
        row_id = _row_id(int(year), kind, str(category), str(name))
        if kind == "expense":
            expenses.append(ExpenseItem(id=row_id, year=int(year), category=str(category), name=str(name), amounts=values))
        else:
            income.append(IncomeItem(id=row_id, year=int(year), category=str(category), name=str(name), amounts=values))

    logger.info("loaded %d expense rows and %d income rows from %s", len(expenses), len(income), path)
    return expenses, income
