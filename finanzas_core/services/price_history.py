from __future__ import annotations

import re
from collections import OrderedDict
from typing import Dict, Iterable, List, Optional, Sequence

import pandas as pd

from finanzas_core.domain.models import (
    UNCATEGORIZED_TAG,
    ExpenseItem,
    PricePoint,
    PriceVariation,
    Product,
    Transaction,
    VariationReport,
)
from finanzas_core.logging_setup import get_logger
from finanzas_core.services.inflation import present_value

logger = get_logger("finanzas_core.services.price_history")

# Manual entries used to encode "Name (Qty x $Price)" in the description.
LEGACY_PRICE_PATTERN = re.compile(r"x\s*\$(\d+(?:\.\d+)?)")

# Real-price change, in percent, beyond which a product is no longer stable.
VARIATION_THRESHOLD = 1.0


def matches_product(tx: Transaction, product: Product) -> bool:
    if tx.product_id is not None and tx.product_id == product.id:
        return True
    name = product.name.strip().lower()
    return bool(name) and name in tx.description.lower()


def resolve_unit_price(tx: Transaction) -> Optional[float]:
    """Stored unit price, else the legacy ``x $N`` suffix of the description."""
    if tx.unit_price:
        return float(tx.unit_price)
    match = LEGACY_PRICE_PATTERN.search(tx.description)
    if match:
        price = float(match.group(1))
        return price or None
    return None


def product_history(
    product: Product,
    expenses: Iterable[ExpenseItem],
    rates: Sequence[Optional[float]],
    current_month_index: int,
) -> List[PricePoint]:
    """
    Time-ordered unit prices paid for ``product`` with their present value.
    Transactions lacking a timestamp or a recoverable price are skipped.
    """
    rows = []
    for item in expenses:
        for transactions in item.transactions.values():
            for tx in transactions:
                if not tx.date or not matches_product(tx, product):
                    continue
                unit_price = resolve_unit_price(tx)
                if unit_price is None:
                    logger.debug("no price for transaction %s (%r)", tx.id, tx.description)
                    continue
                try:
                    stamp = pd.Timestamp(tx.date)
                except ValueError:
                    logger.debug("bad timestamp on transaction %s: %r", tx.id, tx.date)
                    continue
                rows.append(
                    {
                        "stamp": stamp,
                        "date": tx.date,
                        "price": unit_price,
                        "real_price": present_value(unit_price, stamp.month - 1, current_month_index, rates),
                    }
                )

    if not rows:
        return []

    df = pd.DataFrame(rows)
    # Mixed naive/aware ISO strings compare in UTC.
    df["stamp"] = pd.to_datetime(df["stamp"], utc=True)
    df = df.sort_values("stamp", kind="stable")
    return [
        PricePoint(date=r.date, price=float(r.price), real_price=float(r.real_price))
        for r in df.itertuples(index=False)
    ]


def variation_pct(first: float, last: float) -> Optional[float]:
    if first == 0:
        return None
    return (last - first) / first * 100


def product_summary(history: Sequence[PricePoint], use_real: bool = False) -> Optional[Dict[str, float]]:
    """First/last value and variation for the single-product view."""
    if not history:
        return None
    first = history[0].real_price if use_real else history[0].price
    last = history[-1].real_price if use_real else history[-1].price
    variation = variation_pct(first, last)
    if variation is None:
        return None
    return {"first": first, "last": last, "variation": variation}


def variation_report(
    products: Iterable[Product],
    expenses: Iterable[ExpenseItem],
    rates: Sequence[Optional[float]],
    current_month_index: int,
) -> VariationReport:
    expenses = list(expenses)
    items: List[PriceVariation] = []
    for product in products:
        history = product_history(product, expenses, rates, current_month_index)
        if len(history) < 2:
            continue
        first, last = history[0], history[-1]
        variation = variation_pct(first.real_price, last.real_price)
        if variation is None:
            logger.debug("skipping %s: first real price is zero", product.name)
            continue
        items.append(
            PriceVariation(
                product=product,
                history_count=len(history),
                first_date=first.date,
                last_date=last.date,
                first_real_price=first.real_price,
                last_real_price=last.real_price,
                last_nominal_price=last.price,
                variation=variation,
            )
        )

    ordered = sorted(items, key=lambda i: i.variation, reverse=True)
    increases = [i for i in ordered if i.variation > VARIATION_THRESHOLD]
    drops = sorted(
        (i for i in ordered if i.variation < -VARIATION_THRESHOLD),
        key=lambda i: i.variation,
    )
    stable = [i for i in ordered if -VARIATION_THRESHOLD <= i.variation <= VARIATION_THRESHOLD]
    logger.info(
        "price analysis: %d increases, %d drops, %d stable",
        len(increases),
        len(drops),
        len(stable),
    )
    return VariationReport(increases=increases, drops=drops, stable=stable)


def search_products(products: Iterable[Product], term: str) -> List[Product]:
    needle = term.lower()
    return [p for p in products if needle in p.name.lower()]


def group_products_by_tag(products: Iterable[Product]) -> "OrderedDict[str, List[Product]]":
    grouped: "OrderedDict[str, List[Product]]" = OrderedDict()
    for p in products:
        grouped.setdefault(p.tag_id or UNCATEGORIZED_TAG, []).append(p)
    return grouped
