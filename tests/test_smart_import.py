import pytest

from finanzas_core.domain.models import ExpenseItem
from finanzas_core.services import smart_import

MODEL_OUTPUT = """Claro, aquí tienes:
```json
[
  {"name": "UTE", "category": "Servicios Básicos", "amount": 2500, "monthIndex": null},
  {"name": "Feria", "category": "Gastos Variables", "amount": "800", "monthIndex": 1},
  {"name": "Raro", "category": "Salud", "amount": 10, "monthIndex": 15},
  {"name": "Sin monto", "category": "Salud"},
  "basura"
]
```"""


def test_parse_expenses_from_text_with_stub_model():
    prompts = []

    def fake_llm(prompt_value):
        prompts.append(prompt_value.to_string())
        return MODEL_OUTPUT

    rows = smart_import.parse_expenses_from_text("luz 2500, feria de febrero 800", 4, 2025, llm=fake_llm)

    assert [(r.name, r.amount, r.month_index) for r in rows] == [
        ("UTE", 2500.0, None),
        ("Feria", 800.0, 1),
        ("Raro", 10.0, None),
    ]
    assert "Mayo (Index: 4)" in prompts[0]
    assert "luz 2500" in prompts[0]


def test_non_json_answer_raises():
    with pytest.raises(smart_import.SmartImportError):
        smart_import.parse_expenses_from_text("algo", 0, 2025, llm=lambda _: "no entiendo")


def test_model_failure_raises_smart_import_error():
    def broken(_):
        raise ConnectionError("offline")

    with pytest.raises(smart_import.SmartImportError):
        smart_import.parse_expenses_from_text("algo", 0, 2025, llm=broken)


def test_empty_text_skips_the_model():
    def never(_):
        raise AssertionError("model should not be called")

    assert smart_import.parse_expenses_from_text("   ", 0, 2025, llm=never) == []


def test_build_llm_requires_token(monkeypatch):
    monkeypatch.delenv("HF_TOKEN", raising=False)
    with pytest.raises(smart_import.SmartImportError):
        smart_import.build_llm()


def test_analyze_expenses_returns_answer_or_apology():
    items = [ExpenseItem(id="e", year=2025, category="Salud", name="CASMU", amounts=[1500.0] * 12)]
    seen = []

    def advisor(prompt_value):
        seen.append(prompt_value.to_string())
        return "Gastás $1500 por mes en salud."

    assert smart_import.analyze_expenses(items, "¿Cuánto gasto en salud?", llm=advisor) == "Gastás $1500 por mes en salud."
    assert "Salud / CASMU" in seen[0]

    def broken(_):
        raise RuntimeError("boom")

    assert smart_import.analyze_expenses(items, "?", llm=broken) == smart_import.ADVISOR_UNAVAILABLE


def test_month_index_rejects_booleans_and_accepts_integral_floats():
    output = """[
      {"name": "A", "category": "Salud", "amount": 1, "monthIndex": true},
      {"name": "B", "category": "Salud", "amount": 2, "monthIndex": 4.0},
      {"name": "C", "category": "Salud", "amount": 3, "monthIndex": 4.5},
      {"name": "D", "category": "Salud", "amount": 4, "monthIndex": "3"}
    ]"""
    rows = smart_import.parse_expenses_from_text("varios", 0, 2025, llm=lambda _: output)
    assert [r.month_index for r in rows] == [None, 4, None, None]
