"""
Ledger mutations. Every function returns new records and leaves its inputs
untouched. For expense rows, a month that owns a transaction list always has
``amounts[month] == sum(t.amount for t in transactions[month])``.
"""
from __future__ import annotations

import dataclasses
import datetime as dt
import uuid
from typing import Iterable, List, Optional, Sequence, Tuple, TypeVar

from finanzas_core.domain.models import (
    MONTHS_PER_YEAR,
    UNCATEGORIZED_TAG,
    ExpenseItem,
    IncomeItem,
    ParsedExpense,
    Product,
    Transaction,
    check_month_index,
)
from finanzas_core.logging_setup import get_logger

logger = get_logger("finanzas_core.services.ledger_ops")

LEGACY_MANUAL_DESCRIPTION = "Gasto previo (Manual)"
QUICK_ADD_DESCRIPTION = "Ingreso Rápido"

Row = TypeVar("Row", ExpenseItem, IncomeItem)


def _new_id() -> str:
    return uuid.uuid4().hex


def _with_amount(amounts: Sequence[float], month: int, value: float) -> Tuple[float, ...]:
    updated = list(amounts)
    updated[month] = value
    return tuple(updated)


def _fmt_number(value: float) -> str:
    value = float(value)
    return str(int(value)) if value.is_integer() else str(value)


def set_month_amount(item: Row, month: int, value: float) -> Row:
    """Overwrite a cell. A manual edit discards that month's breakdown."""
    check_month_index(month)
    if isinstance(item, ExpenseItem):
        transactions = {k: v for k, v in item.transactions.items() if k != month}
        return dataclasses.replace(item, amounts=_with_amount(item.amounts, month, value), transactions=transactions)
    return dataclasses.replace(item, amounts=_with_amount(item.amounts, month, value))


def replace_month_transactions(item: ExpenseItem, month: int, transactions: Iterable[Transaction]) -> ExpenseItem:
    check_month_index(month)
    txs = tuple(transactions)
    mapping = dict(item.transactions)
    mapping[month] = txs
    total = sum(t.amount for t in txs)
    return dataclasses.replace(item, amounts=_with_amount(item.amounts, month, total), transactions=mapping)


def quick_add(
    item: ExpenseItem,
    month: int,
    amount: float,
    description: str = "",
    now: Optional[dt.datetime] = None,
    quantity: Optional[float] = None,
    unit_price: Optional[float] = None,
) -> ExpenseItem:
    """
    Add a purchase to one month. Breakdown categories get a new transaction;
    fixed expenses simply accumulate.
    """
    check_month_index(month)
    if not item.supports_breakdown:
        return dataclasses.replace(item, amounts=_with_amount(item.amounts, month, item.amounts[month] + amount))

    stamp = (now or dt.datetime.now()).isoformat()
    desc = description.strip() or QUICK_ADD_DESCRIPTION
    if quantity and unit_price:
        desc = f"{description.strip() or item.name} ({_fmt_number(quantity)} x ${_fmt_number(unit_price)})"
    new_tx = Transaction(id=_new_id(), description=desc, amount=amount, date=stamp)

    existing = item.transactions.get(month)
    if existing is None and item.amounts[month] > 0:
        legacy = Transaction(
            id=f"legacy-{_new_id()}",
            description=LEGACY_MANUAL_DESCRIPTION,
            amount=item.amounts[month],
            date=stamp,
        )
        txs: List[Transaction] = [legacy, new_tx]
    else:
        txs = list(existing or ()) + [new_tx]
    return replace_month_transactions(item, month, txs)


def clean_before_start_month(items: Sequence[Row], start_month_index: int) -> Tuple[List[Row], bool]:
    """Zero every amount and drop every breakdown recorded before the first reliable month."""
    cleaned: List[Row] = []
    changed = False
    for item in items:
        stale_amounts = any(item.amounts[i] != 0 for i in range(start_month_index))
        stale_txs = isinstance(item, ExpenseItem) and any(
            m < start_month_index and txs for m, txs in item.transactions.items()
        )
        if not (stale_amounts or stale_txs):
            cleaned.append(item)
            continue
        fields = {"amounts": tuple(0.0 if i < start_month_index else v for i, v in enumerate(item.amounts))}
        if isinstance(item, ExpenseItem):
            fields["transactions"] = {m: txs for m, txs in item.transactions.items() if m >= start_month_index}
        cleaned.append(dataclasses.replace(item, **fields))
        changed = True
    if changed:
        logger.info("cleared data recorded before month %d", start_month_index)
    return cleaned, changed


def prepare_import(
    parsed: Iterable[ParsedExpense],
    default_month: int,
    start_month_index: int,
) -> Tuple[List[ParsedExpense], int]:
    """Fill missing months with ``default_month`` and drop unreliable months."""
    kept: List[ParsedExpense] = []
    skipped = 0
    for row in parsed:
        month = default_month if row.month_index is None else row.month_index
        if start_month_index <= month < MONTHS_PER_YEAR:
            kept.append(dataclasses.replace(row, month_index=month))
        else:
            skipped += 1
    return kept, skipped


def merge_parsed_expenses(
    items: Sequence[ExpenseItem],
    parsed: Iterable[ParsedExpense],
    year: int,
    now: Optional[dt.datetime] = None,
) -> List[ExpenseItem]:
    """
    Add imported rows into matching name+category rows, else create rows.
    A month that already has a breakdown gets the import as a new transaction.
    """
    stamp = (now or dt.datetime.now()).isoformat()
    merged = list(items)
    for row in parsed:
        month = check_month_index(row.month_index or 0)
        idx = next(
            (
                i
                for i, e in enumerate(merged)
                if e.year == year and e.name.lower() == row.name.lower() and e.category == row.category
            ),
            None,
        )
        if idx is not None:
            current = merged[idx]
            existing = current.transactions.get(month)
            if existing is not None:
                tx = Transaction(id=_new_id(), description=row.name, amount=row.amount, date=stamp)
                merged[idx] = replace_month_transactions(current, month, list(existing) + [tx])
                continue
            merged[idx] = dataclasses.replace(
                current,
                amounts=_with_amount(current.amounts, month, current.amounts[month] + row.amount),
            )
        else:
            amounts = [0.0] * MONTHS_PER_YEAR
            amounts[month] = row.amount
            merged.append(ExpenseItem(id=_new_id(), year=year, category=row.category, name=row.name, amounts=amounts))
    return merged


def record_catalog_purchase(
    product: Product,
    quantity: float,
    entry_date: dt.date,
    price: Optional[float] = None,
    today: Optional[dt.date] = None,
    now: Optional[dt.datetime] = None,
) -> Tuple[Transaction, Product]:
    """
    Build the transaction for buying ``quantity`` units of a catalog product.
    The product's reference price follows the paid price only for purchases
    dated today or later.
    """
    if quantity <= 0:
        raise ValueError("quantity must be greater than zero.")
    unit_price = product.default_price if price is None else price
    now = now or dt.datetime.now()
    today = today or now.date()
    stamp = dt.datetime.combine(entry_date, now.time().replace(second=0, microsecond=0))

    tx = Transaction(
        id=_new_id(),
        description=f"{product.name} ({_fmt_number(quantity)} x ${_fmt_number(unit_price)})",
        amount=unit_price * quantity,
        date=stamp.isoformat(),
        product_id=product.id,
        unit_price=unit_price,
        quantity=quantity,
    )

    if entry_date >= today and unit_price != product.default_price:
        logger.info("reference price of %s: %s -> %s", product.name, product.default_price, unit_price)
        product = dataclasses.replace(product, default_price=unit_price)
    return tx, product


def quick_create_product(term: str) -> Product:
    name = term.strip()
    if not name:
        raise ValueError("Product name must not be empty.")
    return Product(id=_new_id(), name=name, default_price=0.0, tag_id=UNCATEGORIZED_TAG)


def copy_structure_from_previous_year(items: Iterable[Row], year: int) -> List[Row]:
    """Same rows as a previous year, zeroed, with fresh ids and no breakdown."""
    copied: List[Row] = []
    for item in items:
        fields = {"id": _new_id(), "year": year, "amounts": (0.0,) * MONTHS_PER_YEAR}
        if isinstance(item, ExpenseItem):
            fields["transactions"] = {}
        copied.append(dataclasses.replace(item, **fields))
    return copied
