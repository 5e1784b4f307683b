"""Recurring-payment detection from posting intervals.

Transactions are grouped by a normalized description key (dates and digits
stripped, so "NETFLIX.COM 01/15 #4411" and "NETFLIX.COM 02/15 #4412" share a
group). The mean gap between consecutive postings in a group picks a cadence
from :data:`CADENCES`. Memos that announce themselves as recurring
("autopay", "membership", ...) are flagged monthly as a last resort.
"""

from __future__ import annotations

import dataclasses
import re
from collections import defaultdict
from collections.abc import Sequence
from statistics import fmean

from .logging_setup import get_logger
from .models import CategorizedTransaction, RecurringFrequency

_logger = get_logger("budget_analysis.recurring")

_KEY_LENGTH = 30
_DATE_FRAGMENT_RE = re.compile(r"\d{2}/\d{2}")
_DIGITS_RE = re.compile(r"\d+")
_WHITESPACE_RE = re.compile(r"\s+")

# Inclusive (low, high) bounds on the mean gap in days.
CADENCES: tuple[tuple[RecurringFrequency, float, float], ...] = (
    (RecurringFrequency.WEEKLY, 5, 9),
    (RecurringFrequency.BIWEEKLY, 12, 18),
    (RecurringFrequency.MONTHLY, 26, 35),
    (RecurringFrequency.QUARTERLY, 85, 100),
    (RecurringFrequency.YEARLY, 350, 380),
)

_RECURRING_KEYWORDS_RE = re.compile(
    r"monthly|subscription|membership|recurring|autopay|auto pay", re.IGNORECASE
)


def normalize_description_key(description: str) -> str:
    key = _DATE_FRAGMENT_RE.sub("", description.lower())
    key = _DIGITS_RE.sub("", key)
    key = _WHITESPACE_RE.sub(" ", key).strip()
    return key[:_KEY_LENGTH]


def classify_interval(mean_gap_days: float) -> RecurringFrequency | None:
    for frequency, low, high in CADENCES:
        if low <= mean_gap_days <= high:
            return frequency
    return None


def _group_frequency(members: Sequence[CategorizedTransaction]) -> RecurringFrequency | None:
    dates = sorted(tx.date for tx in members)
    gaps = [(b - a).days for a, b in zip(dates, dates[1:])]
    if not gaps:
        return None
    return classify_interval(fmean(gaps))


def detect_recurring(
    transactions: Sequence[CategorizedTransaction],
) -> list[CategorizedTransaction]:
    """Flag recurring transactions; return a new list in input order.

    Transactions with ``user_override=True`` still count towards their
    group's interval statistics but are returned unchanged. Transactions
    already flagged recurring keep their flag.
    """

    groups: dict[str, list[int]] = defaultdict(list)
    for i, tx in enumerate(transactions):
        groups[normalize_description_key(tx.description)].append(i)

    frequencies: dict[int, RecurringFrequency] = {}
    for key, indices in groups.items():
        if len(indices) < 2:
            continue
        frequency = _group_frequency([transactions[i] for i in indices])
        if frequency is None:
            continue
        _logger.debug(
            "recurring:group key=%r members=%d frequency=%s", key, len(indices), frequency
        )
        for i in indices:
            frequencies[i] = frequency

    out: list[CategorizedTransaction] = []
    flagged = 0
    for i, tx in enumerate(transactions):
        if tx.user_override:
            out.append(tx)
            continue
        frequency = frequencies.get(i)
        if frequency is None and not tx.is_recurring and _RECURRING_KEYWORDS_RE.search(
            tx.description
        ):
            frequency = RecurringFrequency.MONTHLY
        if frequency is not None:
            tx = dataclasses.replace(tx, is_recurring=True, recurring_frequency=frequency)
            flagged += 1
        out.append(tx)

    _logger.info("recurring:done transactions=%d flagged=%d", len(out), flagged)
    return out


__all__ = ["CADENCES", "classify_interval", "detect_recurring", "normalize_description_key"]
