"""OFX/QFX statement parser.

OFX exports (and Quicken's QFX variant) are SGML-ish markup in which closing
tags for leaf elements are optional. A full SGML parse buys nothing here, so
the parser scans tags directly:

- ``<ORG>`` names the institution;
- every ``<STMTTRN>...</STMTTRN>`` block is one transaction candidate carrying
  ``<DTPOSTED>`` (``YYYYMMDD...``), ``<TRNAMT>``, ``<NAME>``/``<MEMO>`` and an
  optional ``<TRNTYPE>``.

OFX is machine generated, so a block without a usable date or amount is
skipped silently rather than reported.
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal

from ..logging_setup import get_logger
from ..models import ParseResult, RawTransaction, TransactionType
from ..normalizers import parse_amount

_logger = get_logger("budget_analysis.ingest.ofx_statement")

_ORG_RE = re.compile(r"<ORG>([^<\r\n]+)", re.IGNORECASE)
_BLOCK_RE = re.compile(r"<STMTTRN>(.*?)</STMTTRN>", re.IGNORECASE | re.DOTALL)
_DTPOSTED_RE = re.compile(r"<DTPOSTED>\s*(\d{8})", re.IGNORECASE)
_TRNAMT_RE = re.compile(r"<TRNAMT>\s*([-+]?[\d.,]+)", re.IGNORECASE)
_NAME_RE = re.compile(r"<NAME>([^<\r\n]+)", re.IGNORECASE)
_MEMO_RE = re.compile(r"<MEMO>([^<\r\n]+)", re.IGNORECASE)
_TRNTYPE_RE = re.compile(r"<TRNTYPE>\s*([^<\s]+)", re.IGNORECASE)

# TRNTYPE values that denote money coming in. Anything else is a debit.
_CREDIT_TYPES = frozenset({"CREDIT", "DEP", "DIRECTDEP", "INT", "DIV"})

_UNKNOWN_DESCRIPTION = "Unknown Transaction"


def _posted_date(raw: str) -> date | None:
    try:
        return date(int(raw[0:4]), int(raw[4:6]), int(raw[6:8]))
    except ValueError:
        return None


def _parse_block(block: str) -> RawTransaction | None:
    date_m = _DTPOSTED_RE.search(block)
    amount_m = _TRNAMT_RE.search(block)
    if not date_m or not amount_m:
        return None

    posted = _posted_date(date_m.group(1))
    amount: Decimal = parse_amount(amount_m.group(1))
    if posted is None or amount == 0:
        return None

    desc_m = _NAME_RE.search(block) or _MEMO_RE.search(block)
    description = desc_m.group(1).strip() if desc_m else ""

    type_m = _TRNTYPE_RE.search(block)
    if type_m:
        tx_type = (
            TransactionType.CREDIT
            if type_m.group(1).upper() in _CREDIT_TYPES
            else TransactionType.DEBIT
        )
    else:
        tx_type = TransactionType.CREDIT if amount >= 0 else TransactionType.DEBIT

    return RawTransaction(
        date=posted,
        description=description or _UNKNOWN_DESCRIPTION,
        amount=amount,
        type=tx_type,
    )


def parse_ofx_text(text: str) -> ParseResult:
    """Parse OFX/QFX markup into a :class:`ParseResult`."""

    org_m = _ORG_RE.search(text)
    bank = org_m.group(1).strip() if org_m else None

    blocks = _BLOCK_RE.findall(text)
    transactions = [tx for tx in (_parse_block(b) for b in blocks) if tx is not None]
    transactions.sort(key=lambda t: t.date)

    _logger.info(
        "parse_ofx:done blocks=%d transactions=%d bank=%s",
        len(blocks),
        len(transactions),
        bank,
    )
    if not transactions:
        return ParseResult.failure("No transactions found in OFX file", bank_detected=bank)
    return ParseResult(success=True, transactions=tuple(transactions), bank_detected=bank)


__all__ = ["parse_ofx_text"]
