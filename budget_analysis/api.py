"""Pipeline orchestration for the ``budget_analysis`` package.

Application state is an explicit, immutable :class:`PipelineState` that the
functions here take and return; nothing is kept at module level. A typical
session::

    state = run_pipeline(["jan.csv", "feb.ofx"])
    state = update_category(state, tx_id, Category.GROCERIES, "Farmers Market")
    state = add_statements(state, ["mar.csv"])   # keeps the user's edit
    state = reset()
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from os import PathLike
from pathlib import Path
from typing import NamedTuple

from .analyzer import analyze_spending
from .categorize import apply_ai_categories, categorize_transactions_with_ai
from .config import Settings
from .duplicates import dedup_key, merge_transactions
from .ingest import parse_file, parse_statement
from .logging_setup import get_logger
from .models import Category, CategorizedTransaction, ParseResult, RawTransaction, SpendingAnalysis
from .recurring import detect_recurring
from .rules import categorize_transactions, update_transaction_category

_logger = get_logger("budget_analysis.api")

# A statement is either a path on disk or an in-memory ``(filename, content)``
# pair (an upload).
type StatementInput = str | PathLike[str] | tuple[str, bytes | str]


@dataclass(frozen=True, slots=True)
class PipelineState:
    """Everything the consumer needs to render the current session."""

    raw_transactions: tuple[RawTransaction, ...] = ()
    categorized_transactions: tuple[CategorizedTransaction, ...] = ()
    analysis: SpendingAnalysis | None = None
    bank_detected: str | None = None
    errors: tuple[str, ...] = ()


class IngestResult(NamedTuple):
    transactions: list[RawTransaction]
    bank_detected: str | None
    errors: list[str]


def _parse_input(item: StatementInput) -> tuple[str, ParseResult]:
    if isinstance(item, tuple):
        name, content = item
        return name, parse_statement(content, name)
    return Path(item).name, parse_file(item)


def ingest_statements(
    files: Iterable[StatementInput],
    existing: Sequence[RawTransaction] = (),
) -> IngestResult:
    """Parse ``files`` in order and merge them into ``existing``.

    Every error is prefixed with its file name (``"jan.csv: Row 3: ..."``).
    ``bank_detected`` is the last bank any file reported.
    """

    merged: list[RawTransaction] = list(existing)
    bank: str | None = None
    errors: list[str] = []
    for item in files:
        name, result = _parse_input(item)
        if result.bank_detected:
            bank = result.bank_detected
        errors.extend(f"{name}: {e}" for e in result.errors)
        if result.transactions:
            merged = merge_transactions(merged, result.transactions)
        _logger.info(
            "ingest:file name=%s success=%s transactions=%d errors=%d",
            name,
            result.success,
            len(result.transactions),
            len(result.errors),
        )
    return IngestResult(transactions=merged, bank_detected=bank, errors=errors)


def _with_analysis(
    state: PipelineState, categorized: Sequence[CategorizedTransaction]
) -> PipelineState:
    return PipelineState(
        raw_transactions=state.raw_transactions,
        categorized_transactions=tuple(categorized),
        analysis=analyze_spending(categorized),
        bank_detected=state.bank_detected,
        errors=state.errors,
    )


def add_statements(
    state: PipelineState,
    files: Iterable[StatementInput],
    *,
    use_ai: bool = False,
    settings: Settings | None = None,
) -> PipelineState:
    """Ingest more statements into ``state``.

    Only transactions that are new after deduplication get categorized;
    previously categorized ones (and any user edits on them) are carried
    over. Recurrence detection then runs over the combined set so cadences
    spanning several statements are found. ``errors`` reflects this call
    only.
    """

    ingested = ingest_statements(files, existing=state.raw_transactions)
    known = {dedup_key(tx) for tx in state.raw_transactions}
    new_raw = [tx for tx in ingested.transactions if dedup_key(tx) not in known]

    if use_ai:
        new_categorized = categorize_transactions_with_ai(new_raw, settings=settings)
    else:
        new_categorized = categorize_transactions(new_raw)

    combined = detect_recurring(
        merge_transactions(state.categorized_transactions, new_categorized)
    )
    _logger.info(
        "pipeline:add_statements new=%d total=%d errors=%d",
        len(new_raw),
        len(combined),
        len(ingested.errors),
    )

    next_state = PipelineState(
        raw_transactions=tuple(ingested.transactions),
        categorized_transactions=state.categorized_transactions,
        analysis=state.analysis,
        bank_detected=ingested.bank_detected or state.bank_detected,
        errors=tuple(ingested.errors),
    )
    if not combined:
        return next_state
    return _with_analysis(next_state, combined)


def run_pipeline(
    files: Iterable[StatementInput],
    *,
    use_ai: bool = False,
    settings: Settings | None = None,
) -> PipelineState:
    """Run ingest → merge → categorize → recurrence → analyze from scratch."""

    return add_statements(reset(), files, use_ai=use_ai, settings=settings)


def update_category(
    state: PipelineState,
    transaction_id: str,
    category: Category | str,
    subcategory: str | None = None,
) -> PipelineState:
    """Apply a user's category edit and refresh the analysis.

    Raises ``KeyError`` for an unknown ``transaction_id``.
    """

    updated = update_transaction_category(
        state.categorized_transactions, transaction_id, category, subcategory
    )
    return _with_analysis(state, updated)


def apply_ai(state: PipelineState, *, settings: Settings | None = None) -> PipelineState:
    """Re-categorize the current set through the oracle; user edits are kept."""

    if not state.categorized_transactions:
        return state
    return _with_analysis(
        state, apply_ai_categories(state.categorized_transactions, settings=settings)
    )


def reset() -> PipelineState:
    return PipelineState()


__all__ = [
    "IngestResult",
    "PipelineState",
    "StatementInput",
    "add_statements",
    "apply_ai",
    "ingest_statements",
    "reset",
    "run_pipeline",
    "update_category",
]
