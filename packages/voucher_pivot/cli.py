# ruff: noqa: I001
"""CLI for the ``voucher_pivot`` package.

Command handlers (``cmd_fields``, ``cmd_pivot``, ``cmd_table``) take plain
arguments and return a process exit code; the Typer commands below are thin
wrappers around them. The root callback loads a local ``.env`` with
``python-dotenv`` and configures logging before any command runs. Report
logic lives in :mod:`voucher_pivot.pivot` and :mod:`voucher_pivot.tabular`.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.table import Table as RichTable
from typer.models import OptionInfo

from .logging_setup import configure_logging, get_logger
from .models import Dataset, PivotConfig, PivotResult, ReportDefinition

_logger = get_logger("voucher_pivot.cli")

console = Console()
err_console = Console(stderr=True)


# ---- Small module-level helpers used by CLI commands -------------------------


def _load_dataset(
    vouchers: Path,
    customers: Path | None = None,
    stockitems: Path | None = None,
    *,
    flatten_sales: bool = False,
) -> Dataset:
    """Read the record files into a :class:`Dataset`.

    With ``flatten_sales`` the vouchers are reduced to sales rows and the raw
    vouchers are kept as owners so dotted paths still resolve.
    """

    from .ingest.adapters.tally_sales import flatten_sales_vouchers
    from .ingest.utils import load_records

    raw = load_records(vouchers)
    primary = flatten_sales_vouchers(raw) if flatten_sales else raw
    return Dataset(
        primary=primary,
        customers=load_records(customers) if customers else [],
        stockitems=load_records(stockitems) if stockitems else [],
        owners=raw if flatten_sales else None,
    )


def _load_report(path: Path | None, report_id: str | None) -> ReportDefinition:
    """Load a report definition from a file or the report store.

    A file holding a bare pivot config (``rows``/``columns``/``values`` at the
    top level) is wrapped into a pivot-mode report.
    """

    if report_id:
        from .store import ReportStore

        report = ReportStore().load(report_id)
        if report is None:
            raise ValueError(f"report {report_id!r} not found")
        return report
    if path is None:
        raise ValueError("one of --report or --report-id is required")

    doc = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(doc, dict) and not ({"rows", "columns", "values"} & doc.keys()):
        return ReportDefinition.model_validate(doc)
    config = PivotConfig.model_validate(doc)
    return ReportDefinition(pivot_config=config, is_pivot_mode=True)


def _fmt(value: Any) -> str:
    if isinstance(value, float):
        if value.is_integer():
            return f"{int(value):,}"
        return f"{value:,.2f}"
    if value is None:
        return ""
    return str(value)


def _print_json(payload: Any) -> None:
    typer.echo(json.dumps(payload, ensure_ascii=False, indent=2, default=str))


def _render_pivot(result: PivotResult, config: PivotConfig) -> RichTable:
    from .grouping import key_parts

    table = RichTable(show_lines=False)
    row_headers = [a.display_label for a in config.rows] or ["Total"]
    for header in row_headers:
        table.add_column(header, style="cyan")
    for col_key in result.col_keys:
        col_label = " / ".join(key_parts(col_key))
        for vf in config.values:
            table.add_column(f"{col_label} {vf.display_label}", justify="right")
    for vf in config.values:
        table.add_column(f"Total {vf.display_label}", justify="right", style="bold")

    for row_key in result.row_keys:
        cells = result.data.get(row_key, {})
        row = list(key_parts(row_key))
        for col_key in result.col_keys:
            values = cells.get(col_key, {})
            row.extend(_fmt(values.get(vf.key)) for vf in config.values)
        row.extend(_fmt(result.totals[row_key][vf.key]) for vf in config.values)
        table.add_row(*row)

    grand = ["Grand Total"] + [""] * (len(row_headers) - 1)
    for col_key in result.col_keys:
        grand.extend(_fmt(result.col_totals[col_key][vf.key]) for vf in config.values)
    grand.extend(_fmt(result.grand_total.get(vf.key)) for vf in config.values)
    table.add_row(*grand, style="bold")
    return table


# ---- Command handlers ---------------------------------------------------------


def cmd_fields(
    vouchers: Path,
    customers: Path | None = None,
    stockitems: Path | None = None,
    *,
    flatten_sales: bool = False,
    as_json: bool = False,
) -> int:
    """Print the field catalog discovered from the record files."""

    from .catalog import build_catalog

    try:
        dataset = _load_dataset(vouchers, customers, stockitems, flatten_sales=flatten_sales)
    except (OSError, ValueError) as e:
        err_console.print(f"Error: {e}")
        return 1

    catalog = build_catalog(dataset.primary, dataset.customers, dataset.stockitems)
    if as_json:
        _print_json([f.to_dict() for f in catalog])
        return 0

    table = RichTable(title=f"{len(catalog)} fields")
    for header in ("Path", "Label", "Kind", "Level", "Default"):
        table.add_column(header)
    for f in catalog:
        table.add_row(f.path, f.label, f.kind, f.hierarchy_level, f.default_aggregation or "")
    console.print(table)
    return 0


def cmd_pivot(
    vouchers: Path,
    report_path: Path | None = None,
    *,
    report_id: str | None = None,
    customers: Path | None = None,
    stockitems: Path | None = None,
    flatten_sales: bool = False,
    as_json: bool = False,
) -> int:
    """Compute a pivot for a saved report or a bare pivot config."""

    from .pivot import recompute
    from .relationships import resolve_relationships

    try:
        dataset = _load_dataset(vouchers, customers, stockitems, flatten_sales=flatten_sales)
        report = _load_report(report_path, report_id)
    except (OSError, ValueError) as e:
        err_console.print(f"Error: {e}")
        return 1

    config = report.pivot_config
    if config is None or not config.values:
        err_console.print("Error: report has no pivot values")
        return 1

    relationships = resolve_relationships(dataset, config.selected_fields(), report.relationships)
    result = recompute(dataset, relationships, config)
    _logger.info("cli:pivot rows=%d cols=%d", len(result.row_keys), len(result.col_keys))

    if as_json:
        _print_json(result.to_dict())
        return 0
    if result.is_empty:
        console.print("[yellow]No rows produced.[/yellow]")
        return 0
    console.print(_render_pivot(result, config))
    return 0


def cmd_table(
    vouchers: Path,
    report_path: Path | None = None,
    *,
    report_id: str | None = None,
    customers: Path | None = None,
    stockitems: Path | None = None,
    flatten_sales: bool = False,
    as_json: bool = False,
) -> int:
    """Print the tabular rows of a report."""

    from .tabular import build_table

    try:
        dataset = _load_dataset(vouchers, customers, stockitems, flatten_sales=flatten_sales)
        report = _load_report(report_path, report_id)
    except (OSError, ValueError) as e:
        err_console.print(f"Error: {e}")
        return 1

    if not report.fields:
        err_console.print("Error: report selects no fields")
        return 1

    table = build_table(dataset, report)
    if as_json:
        _print_json(table.to_dict())
        return 0

    out = RichTable(title=report.title or None)
    for col in table.columns:
        out.add_column(col.label, justify="right" if col.format == "number" else "left")
    for row in table.rows:
        out.add_row(*(_fmt(row.get(col.key)) for col in table.columns))
    console.print(out)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Ad-hoc tabular and pivot reports over voucher exports. "
        "Loads a local .env before running."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Inside `Annotated` the first positional argument is an option
# name, so optional options carry their `None` default on the parameter.
VOUCHERS_OPTION: OptionInfo = typer.Option(
    ...,
    "--vouchers",
    help="JSON file of vouchers (array, or object with a vouchers/data array)",
    dir_okay=False,
)
CUSTOMERS_OPTION: OptionInfo = typer.Option(
    "--customers", help="JSON file of customer/ledger masters", dir_okay=False
)
STOCKITEMS_OPTION: OptionInfo = typer.Option(
    "--stockitems", help="JSON file of stock item masters", dir_okay=False
)
REPORT_OPTION: OptionInfo = typer.Option(
    "--report", help="Report definition or pivot config JSON file", dir_okay=False
)


@app.command("fields")
def fields_cmd(
    vouchers: Annotated[Path, VOUCHERS_OPTION],
    customers: Annotated[Path | None, CUSTOMERS_OPTION] = None,
    stockitems: Annotated[Path | None, STOCKITEMS_OPTION] = None,
    *,
    flatten_sales: bool = typer.Option(
        False, "--flatten-sales", help="Reduce vouchers to flattened sales rows first."
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit JSON instead of a table."),
) -> None:
    """List the selectable fields discovered in the records."""

    code = cmd_fields(
        vouchers, customers, stockitems, flatten_sales=flatten_sales, as_json=as_json
    )
    raise typer.Exit(code)


@app.command("pivot")
def pivot_cmd(
    vouchers: Annotated[Path, VOUCHERS_OPTION],
    report: Annotated[Path | None, REPORT_OPTION] = None,
    customers: Annotated[Path | None, CUSTOMERS_OPTION] = None,
    stockitems: Annotated[Path | None, STOCKITEMS_OPTION] = None,
    *,
    report_id: str | None = typer.Option(
        None, "--report-id", help="Load the report from the report store instead."
    ),
    flatten_sales: bool = typer.Option(
        False, "--flatten-sales", help="Reduce vouchers to flattened sales rows first."
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit the pivot model as JSON."),
) -> None:
    """Compute and print a pivot report."""

    code = cmd_pivot(
        vouchers,
        report,
        report_id=report_id,
        customers=customers,
        stockitems=stockitems,
        flatten_sales=flatten_sales,
        as_json=as_json,
    )
    raise typer.Exit(code)


@app.command("table")
def table_cmd(
    vouchers: Annotated[Path, VOUCHERS_OPTION],
    report: Annotated[Path | None, REPORT_OPTION] = None,
    customers: Annotated[Path | None, CUSTOMERS_OPTION] = None,
    stockitems: Annotated[Path | None, STOCKITEMS_OPTION] = None,
    *,
    report_id: str | None = typer.Option(
        None, "--report-id", help="Load the report from the report store instead."
    ),
    flatten_sales: bool = typer.Option(
        False, "--flatten-sales", help="Reduce vouchers to flattened sales rows first."
    ),
    as_json: bool = typer.Option(False, "--json", help="Emit rows as JSON."),
) -> None:
    """Print a tabular report."""

    code = cmd_table(
        vouchers,
        report,
        report_id=report_id,
        customers=customers,
        stockitems=stockitems,
        flatten_sales=flatten_sales,
        as_json=as_json,
    )
    raise typer.Exit(code)


@app.callback(invoke_without_command=True)
def _root(ctx: typer.Context) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)
    configure_logging()

    if ctx.invoked_subcommand is None:
        typer.echo("No subcommand provided. Use --help to see available commands.")
        raise typer.Exit(1)


if __name__ == "__main__":  # pragma: no cover
    app()
