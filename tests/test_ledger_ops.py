import datetime as dt

import pytest

from finanzas_core.domain.models import ExpenseItem, IncomeItem, ParsedExpense, Product, Transaction
from finanzas_core.services import ledger_ops
from finanzas_core.services.price_history import product_history, resolve_unit_price

NOW = dt.datetime(2025, 4, 15, 18, 30)


def _super(amounts=None, transactions=None):
    return ExpenseItem(
        id="s1",
        year=2025,
        category="Gastos Variables",
        name="Supermercado",
        amounts=amounts or [0.0] * 12,
        transactions=transactions or {},
    )


def _assert_breakdown_consistent(item: ExpenseItem):
    for month, txs in item.transactions.items():
        assert abs(item.amounts[month] - sum(t.amount for t in txs)) < 1e-9


def test_set_month_amount_discards_that_months_breakdown():
    tx = Transaction(id="t", description="Pan", amount=50)
    item = _super([50.0, 20.0] + [0.0] * 10, {0: [tx], 1: [Transaction(id="u", description="Leche", amount=20)]})
    updated = ledger_ops.set_month_amount(item, 0, 75.0)
    assert updated.amounts[0] == 75.0
    assert 0 not in updated.transactions
    assert 1 in updated.transactions
    # input left untouched
    assert item.amounts[0] == 50.0 and 0 in item.transactions


def test_set_month_amount_rejects_bad_month():
    with pytest.raises(ValueError):
        ledger_ops.set_month_amount(_super(), 12, 1.0)


def test_replace_month_transactions_sets_total():
    txs = [Transaction(id="a", description="x", amount=10.5), Transaction(id="b", description="y", amount=4.5)]
    updated = ledger_ops.replace_month_transactions(_super(), 3, txs)
    assert updated.amounts[3] == 15.0
    _assert_breakdown_consistent(updated)


def test_quick_add_preserves_previous_manual_amount():
    item = _super([0.0, 0.0, 300.0] + [0.0] * 9)
    updated = ledger_ops.quick_add(item, 2, 50.0, "Bananas", now=NOW)
    descriptions = [t.description for t in updated.transactions[2]]
    assert descriptions == [ledger_ops.LEGACY_MANUAL_DESCRIPTION, "Bananas"]
    assert updated.amounts[2] == 350.0
    _assert_breakdown_consistent(updated)

    again = ledger_ops.quick_add(updated, 2, 25.0, now=NOW)
    assert len(again.transactions[2]) == 3
    assert again.transactions[2][-1].description == ledger_ops.QUICK_ADD_DESCRIPTION
    assert again.amounts[2] == 375.0


def test_quick_add_with_calculator_uses_legacy_price_format():
    updated = ledger_ops.quick_add(_super(), 1, 30.0, "Bananas", now=NOW, quantity=1.5, unit_price=20)
    tx = updated.transactions[1][0]
    assert tx.description == "Bananas (1.5 x $20)"
    assert resolve_unit_price(tx) == 20.0


def test_quick_add_on_fixed_expense_accumulates():
    ute = ExpenseItem(id="u", year=2025, category="Servicios Básicos", name="UTE", amounts=[100.0] * 12)
    updated = ledger_ops.quick_add(ute, 0, 40.0, now=NOW)
    assert updated.amounts[0] == 140.0
    assert updated.transactions == {}


def test_clean_before_start_month():
    items = [
        _super([10.0, 20.0, 30.0] + [0.0] * 9),
        IncomeItem(id="i", year=2025, category="Ingreso Fijo", name="Sueldo", amounts=[0.0, 0.0, 5.0] + [0.0] * 9),
    ]
    cleaned, changed = ledger_ops.clean_before_start_month(items, 2)
    assert changed
    assert cleaned[0].amounts[:3] == (0.0, 0.0, 30.0)
    assert cleaned[1] is items[1]

    _, changed_again = ledger_ops.clean_before_start_month(cleaned, 2)
    assert not changed_again


def test_prepare_import_fills_default_month_and_drops_unreliable():
    parsed = [
        ParsedExpense(name="UTE", category="Servicios Básicos", amount=2500, month_index=None),
        ParsedExpense(name="Feria", category="Gastos Variables", amount=800, month_index=0),
        ParsedExpense(name="Antel", category="Servicios Básicos", amount=1200, month_index=5),
    ]
    kept, skipped = ledger_ops.prepare_import(parsed, default_month=4, start_month_index=2)
    assert skipped == 1
    assert [(p.name, p.month_index) for p in kept] == [("UTE", 4), ("Antel", 5)]


def test_merge_parsed_expenses_adds_to_existing_or_creates():
    ute = ExpenseItem(id="u", year=2025, category="Servicios Básicos", name="UTE", amounts=[100.0] * 12)
    parsed = [
        ParsedExpense(name="ute", category="Servicios Básicos", amount=50, month_index=3),
        ParsedExpense(name="Farmacia", category="Salud", amount=700, month_index=3),
    ]
    merged = ledger_ops.merge_parsed_expenses([ute], parsed, 2025)
    assert len(merged) == 2
    assert merged[0].amounts[3] == 150.0
    assert merged[1].name == "Farmacia"
    assert merged[1].amounts[3] == 700.0
    assert ute.amounts[3] == 100.0


def test_record_catalog_purchase_updates_reference_price_only_for_today_or_later():
    leche = Product(id="p1", name="Leche", default_price=40.0)
    today = NOW.date()

    tx, updated = ledger_ops.record_catalog_purchase(leche, 2, today, price=45.0, today=today, now=NOW)
    assert tx.description == "Leche (2 x $45)"
    assert tx.amount == 90.0
    assert tx.product_id == "p1" and tx.unit_price == 45.0 and tx.quantity == 2
    assert tx.date.startswith("2025-04-15")
    assert updated.default_price == 45.0

    _, unchanged = ledger_ops.record_catalog_purchase(
        leche, 1, today - dt.timedelta(days=3), price=45.0, today=today, now=NOW
    )
    assert unchanged.default_price == 40.0

    _, same = ledger_ops.record_catalog_purchase(leche, 1, today, today=today, now=NOW)
    assert same is leche


def test_record_catalog_purchase_rejects_non_positive_quantity():
    with pytest.raises(ValueError):
        ledger_ops.record_catalog_purchase(Product(id="p", name="Pan", default_price=10), 0, NOW.date())


def test_quick_create_product():
    product = ledger_ops.quick_create_product("  Queso  ")
    assert product.name == "Queso"
    assert product.default_price == 0.0
    assert product.tag_id == "uncategorized"
    with pytest.raises(ValueError):
        ledger_ops.quick_create_product(" ")


def test_copy_structure_from_previous_year():
    previous = [_super([5.0] * 12, {0: [Transaction(id="t", description="Pan", amount=5.0)]})]
    copied = ledger_ops.copy_structure_from_previous_year(previous, 2026)
    assert copied[0].year == 2026
    assert copied[0].id != previous[0].id
    assert copied[0].amounts == (0.0,) * 12
    assert copied[0].transactions == {}


def test_clean_before_start_month_drops_breakdown_of_cleared_months():
    leche = Product(id="p1", name="Leche", default_price=40.0)
    early = Transaction(id="a", description="Leche", amount=40.0, date="2025-01-05T10:00:00", product_id="p1", unit_price=40.0)
    kept = Transaction(id="b", description="Leche", amount=45.0, date="2025-03-05T10:00:00", product_id="p1", unit_price=45.0)
    item = _super([40.0, 0.0, 45.0] + [0.0] * 9, {0: [early], 2: [kept]})

    cleaned, changed = ledger_ops.clean_before_start_month([item], 2)

    assert changed
    assert 0 not in cleaned[0].transactions
    assert cleaned[0].transactions[2] == (kept,)
    _assert_breakdown_consistent(cleaned[0])
    history = product_history(leche, cleaned, [0.0] * 12, current_month_index=3)
    assert [p.price for p in history] == [45.0]


def test_clean_before_start_month_removes_empty_amount_with_stale_breakdown():
    stale = Transaction(id="z", description="Pan", amount=0.0)
    cleaned, changed = ledger_ops.clean_before_start_month([_super(transactions={1: [stale]})], 3)
    assert changed
    assert cleaned[0].transactions == {}


def test_merge_parsed_expenses_into_month_with_breakdown_adds_transaction():
    existing = Transaction(id="t", description="Compra", amount=100.0)
    item = _super([0.0, 0.0, 0.0, 100.0] + [0.0] * 8, {3: [existing]})
    parsed = [ParsedExpense(name="supermercado", category="Gastos Variables", amount=50, month_index=3)]

    merged = ledger_ops.merge_parsed_expenses([item], parsed, 2025, now=NOW)

    assert merged[0].amounts[3] == 150.0
    assert [t.amount for t in merged[0].transactions[3]] == [100.0, 50.0]
    assert merged[0].transactions[3][1].description == "supermercado"
    _assert_breakdown_consistent(merged[0])
    assert item.transactions[3] == (existing,)
