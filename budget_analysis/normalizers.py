"""Amount and date normalization for statement cells.

Both helpers are best effort and never raise, but they degrade differently:

- :func:`parse_amount` returns ``Decimal(0)`` for anything it cannot read, so
  a garbled amount never rejects a row on its own (zero-amount rows are
  dropped later as non-transactions).
- :func:`parse_date` returns ``None`` for anything it cannot read; callers
  treat that as a row-level error.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation

from dateutil import parser as date_parser

# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_STRIP_CHARS_RE = re.compile(r"[$€£¥,\s]")
# Leading numeric prefix, mirroring "parse as much as looks like a number".
_NUMBER_PREFIX_RE = re.compile(r"\d+(?:\.\d*)?|\.\d+")


def parse_amount(text: str | None) -> Decimal:
    """Parse a locale-formatted currency string into a signed ``Decimal``.

    Handles currency symbols, thousands separators, a leading ``+``/``-``
    sign and accounting-style parentheses (``"(123.45)"`` is ``-123.45``),
    in any combination. Returns ``Decimal(0)`` when no number can be read.
    """

    if text is None:
        return Decimal(0)
    s = _STRIP_CHARS_RE.sub("", str(text))
    negative = False

    # Peel sign markers and surrounding parentheses until stable so that
    # "-(1234.56)" and "(-1234.56)" both read as negative.
    while s:
        if s.startswith("+"):
            s = s[1:]
        elif s.startswith("-"):
            negative = True
            s = s[1:]
        elif len(s) >= 2 and s.startswith("(") and s.endswith(")"):
            negative = True
            s = s[1:-1]
        else:
            break

    m = _NUMBER_PREFIX_RE.match(s)
    if not m:
        return Decimal(0)
    try:
        d = Decimal(m.group(0))
    except InvalidOperation:
        return Decimal(0)
    return -d if negative else d


# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# Ordered (pattern, field order) table. Patterns are searched, not anchored,
# so a trailing time component ("01/05/2024 10:32") is tolerated.
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{4})"), "mdy"),  # MM/DD/YYYY
    (re.compile(r"(\d{1,2})/(\d{1,2})/(\d{2})"), "mdy"),  # MM/DD/YY
    (re.compile(r"(\d{4})-(\d{2})-(\d{2})"), "ymd"),  # YYYY-MM-DD
    (re.compile(r"(\d{1,2})-(\d{1,2})-(\d{4})"), "mdy"),  # MM-DD-YYYY
)


def _expand_year(year: int) -> int:
    if year < 100:
        return year + (1900 if year >= 50 else 2000)
    return year


def parse_date(text: str | None) -> date | None:
    """Parse a statement date string, returning ``None`` when unreadable.

    Tries ``MM/DD/YYYY``, ``MM/DD/YY``, ``YYYY-MM-DD`` and ``MM-DD-YYYY`` in
    that order. Two-digit years map to the 1900s when ``>= 50`` and to the
    2000s otherwise. A match that is not a real calendar date falls through
    to the next pattern. Anything else is handed to ``dateutil``.
    """

    if text is None:
        return None
    s = str(text).strip()
    if not s:
        return None

    for pattern, order in _DATE_PATTERNS:
        m = pattern.search(s)
        if not m:
            continue
        a, b, c = (int(g) for g in m.groups())
        if order == "ymd":
            year, month, day = a, b, c
        else:
            month, day, year = a, b, c
        try:
            return date(_expand_year(year), month, day)
        except ValueError:
            continue

    try:
        return date_parser.parse(s).date()
    except (ValueError, OverflowError):
        return None


__all__ = ["parse_amount", "parse_date"]
