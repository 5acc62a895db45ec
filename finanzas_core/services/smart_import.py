from __future__ import annotations

import json
import os
from typing import Any, Iterable, List, Optional

from langchain_core.output_parsers import StrOutputParser
from langchain_core.prompts import PromptTemplate
from langchain_huggingface import HuggingFaceEndpoint

from finanzas_core.domain.models import MONTH_NAMES, MONTHS_PER_YEAR, STANDARD_CATEGORIES, ExpenseItem, ParsedExpense
from finanzas_core.logging_setup import get_logger

logger = get_logger("finanzas_core.services.smart_import")

DEFAULT_MODEL = "mistralai/Mistral-7B-Instruct-v0.2"

ADVISOR_UNAVAILABLE = (
    "Lo siento, hubo un problema al conectar con el asistente financiero. "
    "Por favor verifica tu conexión o intenta más tarde."
)

PARSE_TEMPLATE = """
Analiza el siguiente texto y extrae una lista de gastos.
Texto del usuario: "{text}"

Contexto:
- Año actual: {year}
- Mes por defecto (si no se especifica uno en el texto): {default_month_name} (Index: {default_month})
- Categorías permitidas: {categories}

Instrucciones:
1. Identifica el concepto, el monto y el mes.
2. Asigna una de las 'Categorías permitidas' basándote en el concepto.
3. Si el texto menciona explícitamente un mes (ej. "gasto de enero", "luz de febrero"), usa el índice de ese mes (0 para Enero, 11 para Diciembre).
4. Si NO menciona mes, devuelve null en 'monthIndex'.
5. Si hay moneda extranjera, prioriza Pesos Uruguayos; si no es claro deja el número crudo.
6. Devuelve SOLO un JSON array.

Ejemplo de salida JSON:
[
  {{ "name": "Supermercado", "category": "Gastos Variables", "amount": 1500, "monthIndex": 4 }},
  {{ "name": "UTE", "category": "Servicios Básicos", "amount": 2500, "monthIndex": null }}
]
"""

ADVISOR_TEMPLATE = """
Eres un asesor financiero experto y amigable especializado en economía doméstica de Uruguay.
Analiza los gastos mensuales del usuario y provee insights valiosos.

Regla de análisis:
- Ignora los meses anteriores al inicio configurado para calcular promedios.
- Ceros antes del inicio configurado son falta de registro, no gasto cero.

Responde en Markdown, de forma concisa, en pesos uruguayos ($).

Configuración de contexto: {config_text}

Datos:
{data_summary}

Pregunta del usuario: {question}
"""


class SmartImportError(RuntimeError):
    """The free-text parser could not turn the text into expense rows."""


def build_llm(model: Optional[str] = None, temperature: float = 0.2) -> HuggingFaceEndpoint:
    hf_token = os.environ.get("HF_TOKEN")
    if not hf_token:
        raise SmartImportError("HF_TOKEN is not set; AI features are unavailable.")
    return HuggingFaceEndpoint(
        repo_id=model or os.environ.get("HF_MODEL", DEFAULT_MODEL),
        huggingfacehub_api_token=hf_token,
        temperature=temperature,
        max_new_tokens=512,
    )


def _extract_json_array(raw: str) -> List[Any]:
    start, end = raw.find("["), raw.rfind("]")
    if start == -1 or end < start:
        raise SmartImportError("The model did not return a JSON array.")
    try:
        data = json.loads(raw[start : end + 1])
    except json.JSONDecodeError as exc:
        raise SmartImportError(f"Invalid JSON from model: {exc}") from exc
    return data if isinstance(data, list) else []


def _month_index(value: Any) -> Optional[int]:
    # JSON booleans are ints in Python
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not value.is_integer():
        return None
    month = int(value)
    return month if 0 <= month < MONTHS_PER_YEAR else None


def _to_parsed(item: Any) -> Optional[ParsedExpense]:
    if not isinstance(item, dict):
        return None
    try:
        amount = float(item.get("amount"))
    except (TypeError, ValueError):
        return None
    month = _month_index(item.get("monthIndex"))
    return ParsedExpense(
        name=str(item.get("name") or "").strip() or "Sin nombre",
        category=str(item.get("category") or STANDARD_CATEGORIES[-1]),
        amount=amount,
        month_index=month,
    )


def parse_expenses_from_text(text: str, default_month: int, year: int, llm=None) -> List[ParsedExpense]:
    """
    Ask the model to turn free text into candidate expense rows. ``llm`` may be
    any LangChain runnable or plain callable taking the rendered prompt.
    """
    if not text.strip():
        return []
    prompt = PromptTemplate.from_template(PARSE_TEMPLATE)
    chain = prompt | (llm or build_llm()) | StrOutputParser()
    try:
        raw = chain.invoke(
            {
                "text": text,
                "year": year,
                "default_month": default_month,
                "default_month_name": MONTH_NAMES[default_month],
                "categories": json.dumps(list(STANDARD_CATEGORIES), ensure_ascii=False),
            }
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("smart import call failed: %s", exc)
        raise SmartImportError("No se pudo procesar el texto con IA.") from exc

    rows = []
    for item in _extract_json_array(raw):
        parsed = _to_parsed(item)
        if parsed is None:
            logger.debug("discarding malformed row from model: %r", item)
            continue
        rows.append(parsed)
    logger.info("smart import produced %d rows", len(rows))
    return rows


def summarize_expenses(items: Iterable[ExpenseItem]) -> str:
    lines = []
    for item in items:
        months = ", ".join(f"{MONTH_NAMES[i]}: ${amt:g}" for i, amt in enumerate(item.amounts))
        lines.append(f"- {item.category} / {item.name}: [{months}]")
    return "\n".join(lines)


def analyze_expenses(items: Iterable[ExpenseItem], question: str, config_text: Optional[str] = None, llm=None) -> str:
    prompt = PromptTemplate.from_template(ADVISOR_TEMPLATE)
    try:
        chain = prompt | (llm or build_llm(temperature=0.4)) | StrOutputParser()
        return chain.invoke(
            {
                "config_text": config_text or "Analiza todos los datos disponibles.",
                "data_summary": summarize_expenses(items),
                "question": question,
            }
        )
    except Exception as exc:  # noqa: BLE001
        logger.error("advisor call failed: %s", exc)
        return ADVISOR_UNAVAILABLE
