from __future__ import annotations

import dataclasses
import json
from pathlib import Path
from typing import Any, Dict, List

from finanzas_core.domain.models import ExpenseItem, IncomeItem, Product, ProductTag, Transaction, YearConfig
from finanzas_core.logging_setup import get_logger

logger = get_logger("finanzas_core.io.store")


def _expense_from_dict(data: Dict[str, Any]) -> ExpenseItem:
    transactions = {
        int(month): tuple(Transaction(**tx) for tx in txs)
        for month, txs in (data.get("transactions") or {}).items()
    }
    return ExpenseItem(
        id=str(data["id"]),
        year=int(data["year"]),
        category=data["category"],
        name=data["name"],
        amounts=data.get("amounts") or [],
        transactions=transactions,
    )


def _income_from_dict(data: Dict[str, Any]) -> IncomeItem:
    return IncomeItem(
        id=str(data["id"]),
        year=int(data["year"]),
        category=data["category"],
        name=data["name"],
        amounts=data.get("amounts") or [],
    )


class JsonStore:
    """
    Local persistence: one JSON document per entity under ``root``.
    Absent documents read as empty defaults.
    """

    def __init__(self, root: str | Path):
        self.root = Path(root)

    def _path(self, name: str) -> Path:
        return self.root / f"{name}.json"

    def _load(self, name: str, default: Any) -> Any:
        path = self._path(name)
        if not path.exists():
            return default
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)

    def _save(self, name: str, payload: Any) -> None:
        path = self._path(name)
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        logger.debug("saved %s", path)

    def get_expenses(self) -> List[ExpenseItem]:
        return [_expense_from_dict(d) for d in self._load("expenses", [])]

    def save_expenses(self, items: List[ExpenseItem]) -> None:
        self._save("expenses", [dataclasses.asdict(i) for i in items])

    def get_income(self) -> List[IncomeItem]:
        return [_income_from_dict(d) for d in self._load("income", [])]

    def save_income(self, items: List[IncomeItem]) -> None:
        self._save("income", [dataclasses.asdict(i) for i in items])

    def get_opening_balance(self) -> float:
        return float(self._load("balance", {}).get("amount", 0.0))

    def save_opening_balance(self, amount: float) -> None:
        self._save("balance", {"amount": amount})

    def get_year_configs(self) -> List[YearConfig]:
        return [YearConfig(year=int(d["year"]), start_month_index=int(d.get("start_month_index", 0))) for d in self._load("year_configs", [])]

    def save_year_configs(self, configs: List[YearConfig]) -> None:
        self._save("year_configs", [dataclasses.asdict(c) for c in configs])

    def year_config_for(self, year: int) -> YearConfig:
        for cfg in self.get_year_configs():
            if cfg.year == year:
                return cfg
        return YearConfig(year=year)

    def get_products(self) -> List[Product]:
        return [Product(**d) for d in self._load("products", [])]

    def save_products(self, products: List[Product]) -> None:
        self._save("products", [dataclasses.asdict(p) for p in products])

    def get_tags(self) -> List[ProductTag]:
        return [ProductTag(**d) for d in self._load("tags", [])]

    def save_tags(self, tags: List[ProductTag]) -> None:
        self._save("tags", [dataclasses.asdict(t) for t in tags])
