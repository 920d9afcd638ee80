"""CLI for the ``finance_tracker`` package.

This module is the presentation layer: a Typer console app whose commands
mirror the tracker's pages (dashboard, records list, add/edit form,
settings). Environment variables are loaded from a local ``.env`` using
``python-dotenv`` before any command runs. All business rules live in the
core modules (``validators``, ``repository``, ``search``, ``reporting``,
``settings``); this module only parses input, calls them, and prints.

Store selection
---------------
``--database-url`` (or ``DATABASE_URL``) selects the SQL store; otherwise
records live as JSON under ``--data-dir`` (or ``FINANCE_TRACKER_DATA_DIR``,
default ``./.finance_tracker``).
"""

from __future__ import annotations

import json
import sys
from dataclasses import dataclass
from datetime import date
from pathlib import Path

import typer
from dotenv import load_dotenv
from sqlalchemy.exc import SQLAlchemyError

from . import reporting
from . import settings as settings_ops
from .logging_setup import configure_logging, get_logger
from .models import BudgetStatus, Settings, SettingsChange
from .repository import RecordRepository
from .search import (
    SORT_KEYS,
    SUGGESTED_PATTERNS,
    Matcher,
    SortSpec,
    apply_filters,
    compile_pattern,
    render_amount,
)
from .storage import RecordStore, export_data, import_data, open_store
from .validators import parse_calendar_date, validate_all_fields

_logger = get_logger("finance_tracker.cli")

# ---- Display helpers ---------------------------------------------------------

_CURRENCY_SYMBOLS: dict[str, str] = {"USD": "$", "EUR": "€", "GBP": "£"}


def format_currency(amount: float, currency: str = "USD") -> str:
    symbol = _CURRENCY_SYMBOLS.get(currency.upper(), f"{currency.upper()} ")
    sign = "-" if amount < 0 else ""
    return f"{sign}{symbol}{abs(amount):,.2f}"


def format_date(value: str) -> str:
    """``2025-09-14`` -> ``Sep 14, 2025``; unparseable strings pass through."""

    d = parse_calendar_date(value)
    if d is None:
        return value
    return f"{d.strftime('%b')} {d.day}, {d.year}"


def budget_message(status: BudgetStatus, currency: str = "USD") -> str:
    if status.state == "disabled":
        return "Budget cap not set"
    pct = f"{status.percentage:.1f}%"
    if status.state == "exceeded":
        over = format_currency(abs(status.remaining), currency)
        return f"Budget exceeded by {over}! ({pct} of cap)"
    left = format_currency(status.remaining, currency)
    if status.state == "warning":
        return f"Warning: {left} remaining ({pct} of cap used)"
    return f"{left} remaining of {format_currency(status.cap, currency)} ({pct} used)"


def _highlight_cell(raw: str, width: int, matcher: Matcher | None) -> str:
    # Pad on the raw text so ANSI styling does not disturb column alignment.
    padding = " " * max(0, width - len(raw))
    if matcher is None:
        return raw + padding
    return matcher.replace_matches(raw, lambda s: typer.style(s, reverse=True)) + padding


def _fail(message: str) -> typer.Exit:
    typer.echo(f"Error: {message}", err=True)
    return typer.Exit(1)


def _parse_today(value: str | None) -> date | None:
    if value is None:
        return None
    parsed = parse_calendar_date(value.strip())
    if parsed is None:
        raise typer.BadParameter("expected YYYY-MM-DD", param_hint="--today")
    return parsed


# ---- Session context ---------------------------------------------------------


@dataclass(slots=True)
class _Session:
    store: RecordStore

    def repository(self) -> RecordRepository:
        return RecordRepository(self.store)

    def settings(self) -> Settings:
        return self.store.load_settings()


def _session(ctx: typer.Context) -> _Session:
    obj = ctx.find_root().obj
    assert isinstance(obj, _Session)  # bound by the root callback
    return obj


def _save_settings_change(ctx: typer.Context, change: SettingsChange, success: str) -> None:
    if not change.ok:
        raise _fail(change.error or "Invalid settings change")
    if not _session(ctx).store.save_settings(change.settings):
        raise _fail("Failed to save settings")
    typer.echo(success)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Track personal spending: add, search, and summarize transactions. "
        "Loads configuration from a local .env before running."
    ),
)

settings_app = typer.Typer(no_args_is_help=True, help="Show and edit settings.")
app.add_typer(settings_app, name="settings")


@app.callback()
def _root(
    ctx: typer.Context,
    data_dir: Path | None = typer.Option(
        None, help="Directory for JSON storage (falls back to FINANCE_TRACKER_DATA_DIR)."
    ),
    database_url: str | None = typer.Option(
        None, help="Use a SQL database instead of JSON files (falls back to DATABASE_URL)."
    ),
    log_level: str | None = typer.Option(
        None, help="Logging level (falls back to FINANCE_TRACKER_LOG_LEVEL)."
    ),
) -> None:
    """Root command: load ``.env``, configure logging, and open the store."""

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging(log_level)
    try:
        store = open_store(data_dir=data_dir, database_url=database_url)
    except SQLAlchemyError as e:
        _logger.error("cli:open_store_failed error=%s", e.__class__.__name__)
        raise _fail("Error opening storage") from e
    ctx.obj = _Session(store=store)


@app.command("dashboard")
def dashboard_cmd(
    ctx: typer.Context,
    today: str | None = typer.Option(None, help="Reference date YYYY-MM-DD (default: today)."),
    recent: int = typer.Option(5, min=0, help="Number of recent transactions to show."),
) -> None:
    """Totals, top category, last 7 days, category breakdown, and budget status."""

    sess = _session(ctx)
    current = sess.settings()
    currency = current.base_currency
    summary = reporting.dashboard_summary(
        sess.repository().list(), current, today=_parse_today(today), recent_limit=recent
    )

    typer.echo(f"Total records:  {summary.record_count}")
    typer.echo(f"Total amount:   {format_currency(summary.total_amount, currency)}")
    typer.echo(f"Top category:   {summary.top_category}")
    typer.echo(f"Last 7 days:    {format_currency(summary.last_7_days_total, currency)}")

    typer.echo("")
    typer.echo("By category:")
    if not summary.category_totals:
        typer.echo("  No data to display")
    else:
        peak = summary.category_totals[0].amount or 1.0
        for item in summary.category_totals:
            bar = "#" * max(1, round(item.amount / peak * 20))
            typer.echo(
                f"  {item.category:<16} {bar:<20} {format_currency(item.amount, currency)}"
            )

    typer.echo("")
    typer.echo("Recent transactions:")
    if not summary.recent_records:
        typer.echo("  No recent transactions")
    for r in summary.recent_records:
        typer.echo(
            f"  {format_date(r.date):<13} {r.description} • {r.category}  "
            f"{format_currency(r.amount, currency)}"
        )

    typer.echo("")
    typer.echo(f"Budget: {budget_message(summary.budget, currency)}")


@app.command("records")
def records_cmd(
    ctx: typer.Context,
    search: str | None = typer.Option(None, "--search", "-s", help="Regex search pattern."),
    case_sensitive: bool = typer.Option(False, "--case-sensitive", help="Match case."),
    category: str | None = typer.Option(None, "--category", "-c", help="Exact category."),
    sort: str | None = typer.Option(None, "--sort", help="Sort by date, description, or amount."),
    descending: bool = typer.Option(False, "--desc", help="Sort descending."),
) -> None:
    """List records, optionally filtered by regex and category, and sorted."""

    if sort is not None and sort not in SORT_KEYS:
        raise typer.BadParameter(f"choose one of {', '.join(SORT_KEYS)}", param_hint="--sort")

    compiled = compile_pattern(search, case_sensitive=case_sensitive)
    if not compiled.ok:
        raise _fail(compiled.error or "Invalid regex pattern")

    sess = _session(ctx)
    currency = sess.settings().base_currency
    rows = apply_filters(
        sess.repository().list(),
        matcher=compiled.matcher,
        category=category,
        sort=SortSpec(sort, not descending) if sort else None,  # type: ignore[arg-type]
    )
    if not rows:
        typer.echo("No records found")
        return

    m = compiled.matcher
    for r in rows:
        typer.echo(
            "  ".join(
                [
                    _highlight_cell(format_date(r.date), 13, m),
                    _highlight_cell(r.description, 32, m),
                    _highlight_cell(r.category, 14, m),
                    _highlight_cell(format_currency(r.amount, currency), 12, m),
                    r.id,
                ]
            )
        )
    typer.echo(f"{len(rows)} record(s)")


def _resolve_category(category: str | None, known: list[str], default: str = "") -> str | None:
    if category is not None:
        return category
    if not sys.stdin.isatty():
        return None
    from .term_ui import select_category  # prompt_toolkit only when interactive

    return select_category(known, default=default)


def _report_form_errors(errors: dict[str, str]) -> typer.Exit:
    for field_name, message in errors.items():
        typer.echo(f"  {field_name}: {message}", err=True)
    return _fail("Please fix the errors above")


@app.command("add")
def add_cmd(
    ctx: typer.Context,
    description: str = typer.Option(..., "--description", "-d", help="What the money went on."),
    amount: str = typer.Option(..., "--amount", "-a", help="Positive amount, up to 2 decimals."),
    category: str | None = typer.Option(
        None, "--category", "-c", help="Known category (prompted when omitted)."
    ),
    on: str | None = typer.Option(None, "--date", help="YYYY-MM-DD (default: today)."),
    today: str | None = typer.Option(None, hidden=True),
) -> None:
    """Add a transaction."""

    sess = _session(ctx)
    known = sess.settings().categories
    ref = _parse_today(today) or date.today()
    form = {
        "description": description,
        "amount": amount,
        "category": _resolve_category(category, known),
        "date": on if on is not None else ref.isoformat(),
    }
    validation = validate_all_fields(form, today=ref, categories=known)
    if not validation.valid or validation.values is None:
        raise _report_form_errors(validation.errors)

    result = sess.repository().add(validation.values)
    if not result.persisted:
        raise _fail("Error saving transaction. Please try again.")
    assert result.record is not None
    typer.echo(f"Transaction added successfully! ({result.record.id})")


@app.command("edit")
def edit_cmd(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Id of the transaction to edit."),
    description: str | None = typer.Option(None, "--description", "-d"),
    amount: str | None = typer.Option(None, "--amount", "-a"),
    category: str | None = typer.Option(None, "--category", "-c"),
    on: str | None = typer.Option(None, "--date"),
    today: str | None = typer.Option(None, hidden=True),
) -> None:
    """Edit a transaction; omitted fields keep their current values."""

    sess = _session(ctx)
    repo = sess.repository()
    current = repo.get_by_id(record_id)
    if current is None:
        raise _fail(f"Record not found: {record_id}")

    form = {
        "description": description if description is not None else current.description,
        "amount": amount if amount is not None else render_amount(current.amount),
        "category": category if category is not None else current.category,
        "date": on if on is not None else current.date,
    }
    validation = validate_all_fields(
        form, today=_parse_today(today), categories=sess.settings().categories
    )
    if not validation.valid or validation.values is None:
        raise _report_form_errors(validation.errors)

    result = repo.update(record_id, validation.values)
    if not result:
        raise _fail(result.error or "Error updating transaction")
    if not result.persisted:
        raise _fail("Error saving transaction. Please try again.")
    typer.echo("Transaction updated successfully!")


@app.command("delete")
def delete_cmd(
    ctx: typer.Context,
    record_id: str = typer.Argument(..., help="Id of the transaction to delete."),
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete a transaction."""

    repo = _session(ctx).repository()
    record = repo.get_by_id(record_id)
    if record is None:
        raise _fail("Error deleting transaction")
    if not yes and not typer.confirm(f"Delete '{record.description}'?"):
        raise typer.Exit(1)
    result = repo.delete(record_id)
    if not result.persisted:
        raise _fail("Error deleting transaction")
    typer.echo("Transaction deleted successfully")


@app.command("export")
def export_cmd(
    ctx: typer.Context,
    out: Path | None = typer.Option(
        None, "--out", "-o", help="Output file (default: finance-tracker-backup-<date>.json)."
    ),
) -> None:
    """Write records and settings to a JSON backup."""

    doc = export_data(_session(ctx).store)
    target = out or Path(f"finance-tracker-backup-{doc.export_date[:10]}.json")
    try:
        target.write_text(json.dumps(doc.to_json(), indent=2, ensure_ascii=False), encoding="utf-8")
    except OSError as e:
        _logger.error("cli:export_failed path=%s error=%s", target, e.__class__.__name__)
        raise _fail("Error exporting data") from e
    typer.echo(f"Data exported successfully ({len(doc.records)} records) to {target}")


@app.command("import")
def import_cmd(
    ctx: typer.Context,
    path: Path = typer.Argument(..., help="JSON backup produced by 'export'."),
) -> None:
    """Replace records (and settings, when present) from a JSON backup."""

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise _fail(f"File not found: {path}") from e
    except (OSError, UnicodeDecodeError) as e:
        raise _fail("Error reading file") from e
    except json.JSONDecodeError as e:
        raise _fail("Invalid JSON file") from e

    result = import_data(_session(ctx).store, data)
    if not result.success:
        raise _fail(f"Import failed: {result.error}")
    typer.echo(f"Successfully imported {result.count} records")


@app.command("clear")
def clear_cmd(
    ctx: typer.Context,
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip the confirmation prompt."),
) -> None:
    """Delete all transaction data (settings are kept)."""

    if not yes and not typer.confirm(
        "Are you sure you want to delete all transaction data? This action cannot be undone."
    ):
        raise typer.Exit(1)
    if not _session(ctx).store.clear_all_data():
        raise _fail("Error clearing data")
    typer.echo("All data cleared successfully")


@app.command("patterns")
def patterns_cmd() -> None:
    """Show suggested search patterns."""

    for p in SUGGESTED_PATTERNS:
        typer.echo(f"{p.name}: {p.pattern}")
        typer.echo(f"    {p.description}")


# ---- Settings sub-commands ---------------------------------------------------


@settings_app.command("show")
def settings_show_cmd(ctx: typer.Context) -> None:
    s = _session(ctx).settings()
    typer.echo(f"Base currency:  {s.base_currency}")
    rates = ", ".join(f"{code}={rate}" for code, rate in s.conversion_rates.items())
    typer.echo(f"Rates:          {rates or '-'}")
    typer.echo(f"Categories:     {', '.join(s.categories)}")
    cap = format_currency(s.budget_cap, s.base_currency) if s.budget_enabled else "disabled"
    typer.echo(f"Budget cap:     {cap}")


@settings_app.command("add-category")
def settings_add_category_cmd(
    ctx: typer.Context,
    name: str | None = typer.Argument(None, help="Category name (prompted when omitted)."),
) -> None:
    if name is None:
        if not sys.stdin.isatty():
            raise _fail("Category name is required")
        from .term_ui import prompt_new_category_name

        name = prompt_new_category_name()
        if name is None:
            raise typer.Exit(1)
    change = settings_ops.add_category(_session(ctx).settings(), name)
    _save_settings_change(ctx, change, "Category added successfully")


@settings_app.command("remove-category")
def settings_remove_category_cmd(ctx: typer.Context, name: str = typer.Argument(...)) -> None:
    change = settings_ops.remove_category(_session(ctx).settings(), name)
    _save_settings_change(ctx, change, "Category deleted successfully")


@settings_app.command("set-cap")
def settings_set_cap_cmd(ctx: typer.Context, value: str = typer.Argument(...)) -> None:
    change = settings_ops.set_budget_cap(_session(ctx).settings(), value)
    _save_settings_change(ctx, change, "Budget cap saved")


@settings_app.command("clear-cap")
def settings_clear_cap_cmd(ctx: typer.Context) -> None:
    change = settings_ops.clear_budget_cap(_session(ctx).settings())
    _save_settings_change(ctx, change, "Budget cap disabled")


def _parse_rate_pairs(pairs: list[str]) -> dict[str, str]:
    rates: dict[str, str] = {}
    for pair in pairs:
        code, sep, value = pair.partition("=")
        if not sep:
            raise typer.BadParameter(f"expected CODE=RATE, got {pair!r}", param_hint="--rate")
        rates[code.strip()] = value.strip()
    return rates


@settings_app.command("set-rates")
def settings_set_rates_cmd(
    ctx: typer.Context,
    rate: list[str] = typer.Option(..., "--rate", help="CODE=RATE, repeatable."),
) -> None:
    change = settings_ops.set_conversion_rates(_session(ctx).settings(), _parse_rate_pairs(rate))
    _save_settings_change(ctx, change, "Conversion rates saved successfully")


@settings_app.command("set-currency")
def settings_set_currency_cmd(ctx: typer.Context, code: str = typer.Argument(...)) -> None:
    change = settings_ops.set_base_currency(_session(ctx).settings(), code)
    _save_settings_change(ctx, change, "Base currency updated")


if __name__ == "__main__":  # pragma: no cover
    app()
