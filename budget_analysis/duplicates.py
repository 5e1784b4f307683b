"""Cross-upload deduplication of raw transactions.

Public surface:
- ``dedup_key``: the identity used to recognise a re-exported line.
- ``merge_transactions``: fold a new batch into an accumulated set.

The key is deliberately coarse: ``(date, amount, description[:20])``. It
catches a bank re-exporting the same line in an overlapping statement. Two
distinct purchases on the same day, for the same amount, whose descriptions
share a 20-character prefix collapse into one; a bank that rewords a
description between exports produces a duplicate. Both are known limitations.
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from decimal import Decimal
from typing import TypeVar

from .logging_setup import get_logger
from .models import RawTransaction

_logger = get_logger("budget_analysis.duplicates")

_DESCRIPTION_PREFIX = 20

type DedupKey = tuple[date, Decimal, str]

TxT = TypeVar("TxT", bound=RawTransaction)


def dedup_key(tx: RawTransaction) -> DedupKey:
    return (tx.date, tx.amount, tx.description[:_DESCRIPTION_PREFIX])


def merge_transactions(existing: Iterable[TxT], new: Iterable[TxT]) -> list[TxT]:
    """Append every transaction of ``new`` whose key is not yet present.

    Keys added earlier in the same batch count as present, so a file that
    repeats a line contributes it once. The merged list is sorted ascending
    by date; ties keep their accumulated order.
    """

    merged: list[TxT] = list(existing)
    seen: set[DedupKey] = {dedup_key(tx) for tx in merged}
    added = 0
    skipped = 0
    for tx in new:
        key = dedup_key(tx)
        if key in seen:
            skipped += 1
            continue
        seen.add(key)
        merged.append(tx)
        added += 1

    merged.sort(key=lambda t: t.date)
    _logger.debug("merge:done added=%d duplicates=%d total=%d", added, skipped, len(merged))
    return merged


__all__ = ["DedupKey", "dedup_key", "merge_transactions"]
