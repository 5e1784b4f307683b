"""CLI for the ``budget_analysis`` package.

This module exposes callable command handlers (``cmd_parse``,
``cmd_categorize``, ``cmd_analyze``) and a Typer-based console interface.
Environment variables (notably ``OPENAI_API_KEY``) are loaded from a local
``.env`` using ``python-dotenv`` before delegating to command logic. Business
logic lives in ``budget_analysis.api`` and related modules.
"""

from __future__ import annotations

from collections.abc import Sequence
from decimal import Decimal
from pathlib import Path
from typing import Annotated

import typer
from dotenv import load_dotenv
from pydantic import TypeAdapter
from rich.console import Console
from rich.table import Table

from .analyzer import get_monthly_averages
from .api import PipelineState, run_pipeline
from .config import load_settings
from .ingest import parse_file
from .logging_setup import configure_logging
from .models import CATEGORY_INFO, SpendingAnalysis

console = Console()

_ANALYSIS_ADAPTER: TypeAdapter[SpendingAnalysis] = TypeAdapter(SpendingAnalysis)


# ---- Small module-level helpers used by CLI commands -------------------------


def _money(value: Decimal) -> str:
    return f"${value:,.2f}"


def _echo_errors(errors: Sequence[str]) -> None:
    for e in errors:
        typer.echo(f"Error: {e}", err=True)


def _run(paths: Sequence[Path], use_ai: bool) -> PipelineState | None:
    """Run the pipeline over ``paths``; report errors; ``None`` when empty."""

    settings = load_settings()
    if use_ai and not settings.ai_available:
        typer.echo(
            "Warning: OPENAI_API_KEY is not set; using rule-based categories.", err=True
        )
    state = run_pipeline(paths, use_ai=use_ai, settings=settings)
    _echo_errors(state.errors)
    if not state.categorized_transactions:
        typer.echo("Error: no transactions found in the given files.", err=True)
        return None
    return state


# ---- Command handlers --------------------------------------------------------


def cmd_parse(paths: Sequence[Path]) -> int:
    """Parse statements and print one ``date<TAB>amount<TAB>description`` line per row.

    Per-file diagnostics go to stderr. Returns ``1`` when no file yields a
    transaction.
    """

    found = 0
    for path in paths:
        result = parse_file(path)
        if result.bank_detected:
            typer.echo(f"{path.name}: bank detected: {result.bank_detected}", err=True)
        _echo_errors([f"{path.name}: {e}" for e in result.errors])
        for tx in result.transactions:
            typer.echo(f"{tx.date.isoformat()}\t{tx.amount}\t{tx.description}")
        found += len(result.transactions)
    return 0 if found else 1


def cmd_categorize(paths: Sequence[Path], *, use_ai: bool = False) -> int:
    """Categorize statements and print tab-separated decisions.

    Columns: ``id, date, amount, category, subcategory, confidence``.
    """

    state = _run(paths, use_ai)
    if state is None:
        return 1
    for tx in state.categorized_transactions:
        typer.echo(
            "\t".join(
                (
                    tx.id,
                    tx.date.isoformat(),
                    str(tx.amount),
                    tx.category.value,
                    tx.subcategory,
                    f"{tx.confidence:.2f}",
                )
            )
        )
    return 0


def _render_analysis(analysis: SpendingAnalysis, state: PipelineState) -> None:
    start, end = analysis.date_range.start, analysis.date_range.end
    console.print(f"[bold]Statement period:[/bold] {start.isoformat()} to {end.isoformat()}")
    if state.bank_detected:
        console.print(f"[bold]Bank:[/bold] {state.bank_detected}")
    console.print(
        f"Income [green]{_money(analysis.total_income)}[/green]  "
        f"Expenses [red]{_money(analysis.total_expenses)}[/red]  "
        f"Net {_money(analysis.net_cashflow)}"
    )

    averages = get_monthly_averages(state.categorized_transactions)
    categories = Table(title="Spending by category")
    categories.add_column("Category")
    categories.add_column("Transactions", justify="right")
    categories.add_column("Total", justify="right")
    categories.add_column("Monthly avg", justify="right")
    ranked = sorted(analysis.by_category.items(), key=lambda kv: kv[1].total, reverse=True)
    for cat, bucket in ranked:
        if bucket.count == 0:
            continue
        categories.add_row(
            CATEGORY_INFO[cat].label, str(bucket.count), _money(bucket.total), _money(averages[cat])
        )
    console.print(categories)

    if analysis.top_merchants:
        merchants = Table(title="Top merchants")
        merchants.add_column("Merchant")
        merchants.add_column("Transactions", justify="right")
        merchants.add_column("Total", justify="right")
        for m in analysis.top_merchants:
            merchants.add_row(m.name, str(m.count), _money(m.total))
        console.print(merchants)

    if analysis.recurring_expenses:
        console.print(
            f"[bold]Recurring expenses:[/bold] {len(analysis.recurring_expenses)} transactions"
        )

    for insight in analysis.insights:
        console.print(f"[cyan]{insight.type.value}[/cyan] [bold]{insight.title}[/bold]")
        console.print(f"  {insight.description}")
        if insight.action:
            console.print(f"  -> {insight.action}")


def cmd_analyze(paths: Sequence[Path], *, use_ai: bool = False, as_json: bool = False) -> int:
    """Analyze statements; print summary tables, or the analysis as JSON."""

    state = _run(paths, use_ai)
    if state is None or state.analysis is None:
        return 1
    if as_json:
        typer.echo(_ANALYSIS_ADAPTER.dump_json(state.analysis, indent=2).decode())
    else:
        _render_analysis(state.analysis, state)
    return 0


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Parse bank statements (CSV, OFX/QFX), categorize transactions and summarize "
        "spending. Loads OPENAI_API_KEY from a local .env before running."
    ),
)

FilesArg = Annotated[
    list[Path],
    typer.Argument(
        help="Statement files (.csv, .ofx, .qfx)",
        dir_okay=False,
        file_okay=True,
        exists=False,  # the handler reports unreadable files per file
    ),
]
AiOption = Annotated[
    bool, typer.Option("--ai/--no-ai", help="Categorize through the OpenAI model.")
]


@app.command("parse")
def parse_cmd(files: FilesArg) -> None:
    """Print the transactions parsed from each file."""

    raise typer.Exit(cmd_parse(files))


@app.command("categorize")
def categorize_cmd(files: FilesArg, ai: AiOption = False) -> None:
    """Print one tab-separated category decision per transaction."""

    raise typer.Exit(cmd_categorize(files, use_ai=ai))


@app.command("analyze")
def analyze_cmd(
    files: FilesArg,
    ai: AiOption = False,
    as_json: Annotated[bool, typer.Option("--json", help="Emit the analysis as JSON.")] = False,
) -> None:
    """Summarize income, spending by category, merchants and insights."""

    raise typer.Exit(cmd_analyze(files, use_ai=ai, as_json=as_json))


@app.callback()
def _root(
    log_level: Annotated[
        str | None,
        typer.Option("--log-level", help="Override BUDGET_ANALYSIS_LOG_LEVEL (e.g. DEBUG)."),
    ] = None,
) -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging once.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging(log_level)


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m budget_analysis.cli`
    app()
