"""Delimited-text statement parser with column-role sniffing.

Bank CSV exports agree on nothing: column order, header names and sign
conventions all vary. Instead of per-bank adapters this module infers the role
of each column (date, description, amount or debit/credit, balance, type)
from its normalized header name, then parses every row independently.

Contract
--------
- A file without a date column, a description column, or a usable amount
  layout (one amount column, or both debit and credit columns) is rejected as
  a whole, with one error per missing role.
- A bad row is skipped and reported as ``Row N: ...`` (``N`` is the 1-based
  data-row number); it never fails the file.
- Zero-amount rows are not transactions and are dropped silently.
- Output transactions are sorted ascending by date.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Sequence
from dataclasses import dataclass
from typing import NamedTuple

from ..logging_setup import get_logger
from ..models import MAX_REPORTED_ERRORS, ParseResult, RawTransaction, TransactionType
from ..normalizers import parse_amount, parse_date

_logger = get_logger("budget_analysis.ingest.csv_statement")

# Ordered candidate keywords per column role. For each role the first
# candidate that appears inside any normalized header wins; among headers the
# left-most match wins.
COLUMN_CANDIDATES: dict[str, tuple[str, ...]] = {
    "date": (
        "date",
        "transaction date",
        "trans date",
        "posting date",
        "posted date",
        "txn date",
        "processed date",
    ),
    "description": (
        "description",
        "memo",
        "transaction description",
        "details",
        "narrative",
        "merchant",
        "payee",
        "name",
        "transaction",
    ),
    "amount": ("amount", "transaction amount", "trans amount", "value", "sum"),
    "debit": ("debit", "withdrawal", "withdrawals", "debits", "money out", "spent"),
    "credit": ("credit", "deposit", "deposits", "credits", "money in", "received"),
    "balance": ("balance", "running balance", "available balance", "ledger balance"),
    "type": ("type", "transaction type", "trans type"),
}

# (display name, lowercase needles, also search data rows). Matching is a
# plain substring test, so the guess is advisory only.
BANK_SIGNATURES: tuple[tuple[str, tuple[str, ...], bool], ...] = (
    ("Chase", ("chase",), True),
    ("Bank of America", ("bank of america",), True),
    ("Wells Fargo", ("wells fargo",), True),
    ("Citi", ("citi",), True),
    ("Capital One", ("capital one",), True),
    ("Discover", ("discover",), True),
    ("American Express", ("amex", "american express"), False),
    ("USAA", ("usaa",), True),
    ("Navy Federal", ("navy federal",), True),
    ("PNC", ("pnc",), True),
    ("TD Bank", ("td bank",), True),
    ("US Bank", ("us bank",), True),
    ("Ally Bank", ("ally",), True),
    ("Charles Schwab", ("schwab",), True),
    ("Fidelity", ("fidelity",), True),
    ("Venmo", ("venmo",), True),
    ("PayPal", ("paypal",), True),
)

_BANK_SAMPLE_ROWS = 5
_DELIMITERS = (",", ";", "\t", "|")


# ---------------------------------------------------------------------------
# Column mapping
# ---------------------------------------------------------------------------


def normalize_header(header: str) -> str:
    """Lowercase, trim, and drop everything but ASCII letters, digits and spaces."""

    lowered = header.lower().strip()
    return "".join(ch for ch in lowered if ch.isascii() and (ch.isalnum() or ch.isspace()))


def find_column(headers: Sequence[str], candidates: Sequence[str]) -> int | None:
    normalized = [normalize_header(h) for h in headers]
    for candidate in candidates:
        for idx, h in enumerate(normalized):
            if candidate in h:
                return idx
    return None


@dataclass(frozen=True, slots=True)
class ColumnMap:
    """Column index per role; ``None`` when the role was not found."""

    date: int | None
    description: int | None
    amount: int | None
    debit: int | None
    credit: int | None
    balance: int | None
    type: int | None

    @property
    def has_debit_credit(self) -> bool:
        return self.debit is not None and self.credit is not None

    def missing_roles(self) -> list[str]:
        errors: list[str] = []
        if self.date is None:
            errors.append("Could not find a date column")
        if self.description is None:
            errors.append("Could not find a description column")
        if self.amount is None and not self.has_debit_credit:
            errors.append("Could not find amount columns")
        return errors


def map_columns(headers: Sequence[str]) -> ColumnMap:
    found = {role: find_column(headers, cands) for role, cands in COLUMN_CANDIDATES.items()}
    amount = found["amount"]
    # "Debit Amount"/"Credit Amount" headers also satisfy the amount role;
    # prefer the split layout when both sides exist.
    if found["debit"] is not None and found["credit"] is not None:
        if amount in (found["debit"], found["credit"]):
            amount = None
    return ColumnMap(
        date=found["date"],
        description=found["description"],
        amount=amount,
        debit=found["debit"],
        credit=found["credit"],
        balance=found["balance"],
        type=found["type"],
    )


def detect_bank(headers: Sequence[str], first_rows: Sequence[Sequence[str]]) -> str | None:
    header_text = " ".join(headers).lower()
    row_text = " ".join(" ".join(r) for r in first_rows).lower()
    for name, needles, search_rows in BANK_SIGNATURES:
        for needle in needles:
            if needle in header_text or (search_rows and needle in row_text):
                return name
    return None


# ---------------------------------------------------------------------------
# Row parsing
# ---------------------------------------------------------------------------


class RowOutcome(NamedTuple):
    """Result of parsing one data row.

    Exactly one of ``transaction``/``error`` is set, or neither when the row
    is simply not a transaction (zero amount, empty debit and credit).
    """

    transaction: RawTransaction | None = None
    error: str | None = None


def _cell(cells: Sequence[str], idx: int | None) -> str:
    if idx is None or idx >= len(cells):
        return ""
    return cells[idx] or ""


def _type_from_text(text: str) -> TransactionType:
    lowered = text.lower()
    if "credit" in lowered or "deposit" in lowered:
        return TransactionType.CREDIT
    return TransactionType.DEBIT


def parse_row(
    cells: Sequence[str], columns: ColumnMap, *, sign_from_type: bool = False
) -> RowOutcome:
    """Parse one row into a :class:`RowOutcome`.

    ``sign_from_type`` is set for exports whose amount column is unsigned; the
    type column then decides the direction (debit is negative).
    """

    date_text = _cell(cells, columns.date)
    posted = parse_date(date_text)
    if posted is None:
        return RowOutcome(error=f'Invalid date "{date_text}"')

    description = _cell(cells, columns.description).strip()

    if columns.amount is not None:
        amount = parse_amount(_cell(cells, columns.amount))
        if columns.type is not None:
            tx_type = _type_from_text(_cell(cells, columns.type))
            if sign_from_type:
                amount = abs(amount) if tx_type is TransactionType.CREDIT else -abs(amount)
        else:
            tx_type = TransactionType.CREDIT if amount >= 0 else TransactionType.DEBIT
    else:
        debit = parse_amount(_cell(cells, columns.debit) or "0")
        credit = parse_amount(_cell(cells, columns.credit) or "0")
        if credit > 0:
            amount, tx_type = credit, TransactionType.CREDIT
        elif debit > 0:
            amount, tx_type = -debit, TransactionType.DEBIT
        else:
            return RowOutcome()

    if amount == 0:
        return RowOutcome()

    balance_text = _cell(cells, columns.balance)
    balance = parse_amount(balance_text) if balance_text.strip() else None

    return RowOutcome(
        transaction=RawTransaction(
            date=posted,
            description=description,
            amount=amount,
            balance=balance,
            type=tx_type,
        )
    )


# ---------------------------------------------------------------------------
# File parsing
# ---------------------------------------------------------------------------


def _detect_delimiter(text: str) -> str:
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    best = ","
    best_count = first_line.count(",")
    for delim in _DELIMITERS[1:]:
        count = first_line.count(delim)
        if count > best_count:
            best, best_count = delim, count
    return best


def _read_rows(text: str) -> list[list[str]]:
    with io.StringIO(text) as f:
        reader = csv.reader(f, delimiter=_detect_delimiter(text))
        return [row for row in reader if any(cell.strip() for cell in row)]


def parse_csv_text(text: str) -> ParseResult:
    """Parse delimited statement text into a :class:`ParseResult`."""

    rows = _read_rows(text)
    if len(rows) < 2:
        return ParseResult.failure("No data found in file")

    headers = [h.strip() for h in rows[0]]
    data_rows = rows[1:]
    bank = detect_bank(headers, data_rows[:_BANK_SAMPLE_ROWS])

    columns = map_columns(headers)
    missing = columns.missing_roles()
    if missing:
        _logger.warning("parse_csv:missing_columns headers=%r errors=%d", headers, len(missing))
        return ParseResult.failure(*missing, bank_detected=bank)

    # Unsigned amount column plus a type column: direction comes from the type.
    sign_from_type = (
        columns.amount is not None
        and columns.type is not None
        and not any(parse_amount(_cell(r, columns.amount)) < 0 for r in data_rows)
    )

    transactions: list[RawTransaction] = []
    errors: list[str] = []
    for row_no, cells in enumerate(data_rows, start=1):
        try:
            outcome = parse_row(cells, columns, sign_from_type=sign_from_type)
        except Exception as e:  # noqa: BLE001 - one bad row never fails the file
            outcome = RowOutcome(error=str(e) or e.__class__.__name__)
        if outcome.error is not None:
            _logger.warning("parse_csv:row_skipped row=%d reason=%s", row_no, outcome.error)
            errors.append(f"Row {row_no}: {outcome.error}")
        elif outcome.transaction is not None:
            transactions.append(outcome.transaction)

    transactions.sort(key=lambda t: t.date)
    _logger.info(
        "parse_csv:done rows=%d transactions=%d errors=%d bank=%s",
        len(data_rows),
        len(transactions),
        len(errors),
        bank,
    )
    return ParseResult(
        success=bool(transactions),
        transactions=tuple(transactions),
        errors=tuple(errors[:MAX_REPORTED_ERRORS]),
        bank_detected=bank,
    )


__all__ = [
    "BANK_SIGNATURES",
    "COLUMN_CANDIDATES",
    "ColumnMap",
    "RowOutcome",
    "detect_bank",
    "find_column",
    "map_columns",
    "normalize_header",
    "parse_csv_text",
    "parse_row",
]
