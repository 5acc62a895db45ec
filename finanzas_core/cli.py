from __future__ import annotations

import dataclasses
import datetime as dt
import json
from pathlib import Path
from typing import Optional, Tuple

import typer
from rich.console import Console
from rich.table import Table

from finanzas_core.domain.models import MONTH_NAMES, DashboardSummary, FutureSimulationConfig, VariationReport
from finanzas_core.io import config as config_io
from finanzas_core.io import inflation as inflation_io
from finanzas_core.io import ledger as ledger_io
from finanzas_core.io.store import JsonStore
from finanzas_core.logging_setup import configure_logging
from finanzas_core.services import dashboard, ledger_ops, price_history, simulator

app = typer.Typer(help="Household budget engine: dashboard, price analysis and projections.")
console = Console()

_state = {"config_path": None, "data_dir": None}


@app.callback()
def main(
    config: Optional[Path] = typer.Option(None, help="JSON config file"),
    data_dir: Optional[Path] = typer.Option(None, help="Directory holding the JSON store"),
    log_level: Optional[str] = typer.Option(None, help="Logging level (DEBUG, INFO, ...)"),
):
    _state["config_path"] = config
    _state["data_dir"] = data_dir
    cfg = config_io.load_app_config(config)
    configure_logging(log_level or cfg.log_level)


def _context() -> Tuple[config_io.AppConfig, JsonStore]:
    cfg = config_io.load_app_config(_state["config_path"])
    root = _state["data_dir"] or cfg.data_dir
    return cfg, JsonStore(root)


def _parse_today(raw: Optional[str]) -> dt.date:
    if not raw:
        return dt.date.today()
    try:
        return dt.date.fromisoformat(raw)
    except ValueError as exc:
        raise typer.BadParameter(f"Invalid date: {raw}") from exc


def _money(value: Optional[float]) -> str:
    return "-" if value is None else f"${value:,.0f}"


def _dashboard_to_json(summary: DashboardSummary) -> dict:
    return {
        "year": summary.year,
        "avg_expense": summary.avg_expense,
        "avg_income": summary.avg_income,
        "avg_savings": summary.avg_savings,
        "valid_months": summary.valid_months,
        "liquid_wealth": summary.liquid_wealth,
        "stable_wealth": summary.stable_wealth,
        "runway_months": summary.runway_months,
        "runway_status": summary.runway_status,
        "end_year_nominal": summary.end_year_nominal,
        "end_year_real": summary.end_year_real,
        "purchasing_power_loss": summary.purchasing_power_loss,
        "categories": [dataclasses.asdict(c) for c in summary.categories],
        "projection": [dataclasses.asdict(p) for p in summary.projection.points],
    }


def _report_to_json(report: VariationReport) -> dict:
    def row(item):
        return {
            "product_id": item.product.id,
            "name": item.product.name,
            "history_count": item.history_count,
            "first_date": item.first_date,
            "last_date": item.last_date,
            "first_real_price": item.first_real_price,
            "last_real_price": item.last_real_price,
            "last_nominal_price": item.last_nominal_price,
            "variation": item.variation,
        }

    return {
        "increases": [row(i) for i in report.increases],
        "drops": [row(i) for i in report.drops],
        "stable": [row(i) for i in report.stable],
    }


def _build_summary(year: int, today: dt.date) -> Tuple[DashboardSummary, Tuple[float, ...]]:
    cfg, store = _context()
    rates = inflation_io.provider_for(cfg.inflation_file).get_monthly_inflation(year)
    summary = dashboard.build_dashboard(
        store.get_expenses(),
        store.get_income(),
        store.year_config_for(year),
        store.get_opening_balance(),
        rates,
        today=today,
    )
    return summary, rates


@app.command("dashboard")
def show_dashboard(
    year: Optional[int] = typer.Option(None, help="Year to analyse (defaults to the current one)"),
    real: bool = typer.Option(False, help="Show inflation-adjusted values"),
    today: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD)"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
):
    """Yearly balance projection, KPIs and category breakdown."""
    ref = _parse_today(today)
    summary, _ = _build_summary(year or ref.year, ref)
    if as_json:
        typer.echo(json.dumps(_dashboard_to_json(summary), indent=2, ensure_ascii=False))
        return

    table = Table(title=f"Proyección {summary.year}" + (" (real)" if real else ""))
    for col in ("Mes", "Actual", "Proyectado", "Rango", "Inflación"):
        table.add_column(col)
    for p in summary.projection.points:
        actual = p.real_actual if real else p.actual
        projected = p.real_projected if real else p.projected
        band = f"{_money(p.range[0])} .. {_money(p.range[1])}" if p.range else "-"
        label = f"[dim]{p.name}[/dim]" if p.is_unrecorded else p.name
        table.add_row(label, _money(actual), _money(projected), band, f"{p.inflation:.2f}%")
    console.print(table)

    end = summary.end_year_real if real else summary.end_year_nominal
    console.print(f"Patrimonio a diciembre: [bold]{_money(end)}[/bold]")
    console.print(f"Pérdida de poder de compra: {_money(summary.purchasing_power_loss)}")
    console.print(f"Ahorro actual: {_money(summary.liquid_wealth)}")
    console.print(f"Fondo de emergencia: {summary.runway_months:.1f} meses ({summary.runway_status})")
    console.print(
        f"Promedios ({summary.valid_months} meses): gasto {_money(summary.avg_expense)}, "
        f"ingreso {_money(summary.avg_income)}, ahorro {_money(summary.avg_savings)}"
    )
    for cat in summary.categories:
        console.print(f"  {cat.name}: {_money(cat.value)}")


@app.command()
def history(
    product: str = typer.Argument(..., help="Product id or name"),
    real: bool = typer.Option(False, help="Compare inflation-adjusted prices"),
    today: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD)"),
):
    """Price history of one catalog product."""
    ref = _parse_today(today)
    cfg, store = _context()
    products = store.get_products()
    match = next((p for p in products if p.id == product), None) or next(
        (p for p in products if p.name.lower() == product.lower()), None
    )
    if match is None:
        raise typer.BadParameter(f"Unknown product: {product}")

    rates = inflation_io.provider_for(cfg.inflation_file).get_monthly_inflation(ref.year)
    points = price_history.product_history(match, store.get_expenses(), rates, ref.month - 1)
    if not points:
        typer.echo(f"No hay datos históricos para {match.name}.")
        return

    table = Table(title=match.name)
    for col in ("Fecha", "Precio", "Precio real"):
        table.add_column(col)
    for pt in points:
        table.add_row(pt.date[:10], _money(pt.price), _money(pt.real_price))
    console.print(table)

    stats = price_history.product_summary(points, use_real=real)
    if stats is not None:
        console.print(f"Variación: {stats['variation']:+.1f}%")


@app.command()
def analysis(
    today: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD)"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON instead of tables"),
):
    """Catalog-wide real price variation report."""
    ref = _parse_today(today)
    cfg, store = _context()
    rates = inflation_io.provider_for(cfg.inflation_file).get_monthly_inflation(ref.year)
    report = price_history.variation_report(store.get_products(), store.get_expenses(), rates, ref.month - 1)
    if as_json:
        typer.echo(json.dumps(_report_to_json(report), indent=2, ensure_ascii=False))
        return

    for title, rows, style in (
        ("Alertas de precio", report.increases, "red"),
        ("Oportunidades", report.drops, "green"),
        ("Estables", report.stable, "white"),
    ):
        table = Table(title=title)
        for col in ("Producto", "Compras", "Último precio", "Variación real"):
            table.add_column(col)
        for item in rows:
            table.add_row(
                item.product.name,
                str(item.history_count),
                _money(item.last_nominal_price),
                f"[{style}]{item.variation:+.1f}%[/{style}]",
            )
        console.print(table)


@app.command()
def simulate(
    target_year: int = typer.Option(..., help="Target year"),
    target_month: int = typer.Option(..., min=1, max=12, help="Target month (1-12)"),
    preset: Optional[str] = typer.Option(None, help="Investment preset: cash|ui|conservative|aggressive"),
    annual_return: Optional[float] = typer.Option(None, help="Annual investment return in percent"),
    today: Optional[str] = typer.Option(None, help="Reference date (YYYY-MM-DD)"),
    as_json: bool = typer.Option(False, "--json", help="Print JSON"),
):
    """Project current wealth to a future month."""
    ref = _parse_today(today)
    summary, rates = _build_summary(ref.year, ref)

    enable, rate = False, 0.0
    if preset:
        try:
            enable, rate = simulator.investment_preset(preset, rates)
        except ValueError as exc:
            raise typer.BadParameter(str(exc)) from exc
    if annual_return is not None:
        enable, rate = annual_return > 0, annual_return

    result = simulator.simulate_future(
        FutureSimulationConfig(
            target_year=target_year,
            target_month=target_month - 1,
            current_year=ref.year,
            current_month=ref.month - 1,
            current_wealth=summary.liquid_wealth,
            avg_savings=summary.avg_savings,
            enable_investment=enable,
            annual_return_rate=rate,
        ),
        rates,
    )
    if as_json:
        typer.echo(json.dumps(dataclasses.asdict(result), indent=2))
        return
    console.print(f"Horizonte: {result.months_diff} meses hasta {MONTH_NAMES[target_month - 1]} {target_year}")
    console.print(f"Nominal: [bold]{_money(result.nominal)}[/bold] | Real: {_money(result.real)}")
    if enable:
        console.print(
            f"Invirtiendo al {rate:.2f}% anual: {_money(result.invested_nominal)} "
            f"(ganancia {_money(result.investment_profit)})"
        )


@app.command("import-text")
def import_text(
    text: str = typer.Argument(..., help="Free text describing expenses"),
    year: Optional[int] = typer.Option(None, help="Ledger year"),
    month: Optional[int] = typer.Option(None, min=1, max=12, help="Default month (1-12)"),
):
    """Parse free text with the AI model and merge it into the expense ledger."""
    from finanzas_core.services import smart_import

    cfg, store = _context()
    today = dt.date.today()
    year = year or today.year
    start = store.year_config_for(year).start_month_index
    default_month = (month - 1) if month else max(today.month - 1, start)

    try:
        llm = smart_import.build_llm(cfg.llm_model, cfg.llm_temperature)
        parsed = smart_import.parse_expenses_from_text(text, default_month, year, llm=llm)
    except smart_import.SmartImportError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    kept, skipped = ledger_ops.prepare_import(parsed, default_month, start)
    store.save_expenses(ledger_ops.merge_parsed_expenses(store.get_expenses(), kept, year))
    for row in kept:
        typer.echo(f"{MONTH_NAMES[row.month_index]}: {row.name} ({row.category}) {_money(row.amount)}")
    if skipped:
        typer.echo(f"{skipped} rows skipped (before the start month).")


@app.command("import-csv")
def import_csv(
    ledger: Path = typer.Argument(..., help="CSV with year,kind,category,name,month,amount"),
):
    """Replace the stored expense and income rows with a CSV ledger."""
    _, store = _context()
    expenses, income = ledger_io.load_ledger(ledger)
    store.save_expenses(expenses)
    store.save_income(income)
    typer.echo(f"Imported {len(expenses)} expense rows and {len(income)} income rows.")


@app.command()
def clean(
    year: int = typer.Option(..., help="Ledger year"),
    yes: bool = typer.Option(False, "--yes", help="Skip confirmation"),
):
    """Zero the expenses recorded before the year's start month."""
    _, store = _context()
    start = store.year_config_for(year).start_month_index
    if not yes:
        typer.confirm(f"Delete every expense recorded before {MONTH_NAMES[start]} {year}?", abort=True)

    expenses = store.get_expenses()
    in_year = [e for e in expenses if e.year == year]
    cleaned, changed = ledger_ops.clean_before_start_month(in_year, start)
    if not changed:
        typer.echo("No invalid data found.")
        return
    by_id = {e.id: e for e in cleaned}
    store.save_expenses([by_id.get(e.id, e) for e in expenses])
    typer.echo("Cleanup completed.")


if __name__ == "__main__":
    app()
