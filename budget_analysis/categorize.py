"""AI categorization flow over the OpenAI Responses API.

Public API:
    - :func:`categorize_with_ai`
    - :func:`categorize_transactions_with_ai`
    - :func:`apply_ai_categories`

Transactions are sent in batches of :data:`BATCH_SIZE`. Each batch is an
independent request; a batch that fails for any reason (transport error,
exhausted retries, unusable response) degrades to the rule-based decisions
for exactly its own transactions, and the other batches are unaffected.

No side effects occur at import time (no client creation, no logging
handler attachment, no environment reads).
"""

from __future__ import annotations

import dataclasses
import math
import random
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import Any, NamedTuple

from openai import OpenAI

from . import prompting
from .categorization import AiDecision, align_decisions, extract_json_array, rule_decision
from .config import Settings, load_settings
from .logging_setup import get_logger
from .models import CategorizedTransaction, RawTransaction
from .recurring import detect_recurring
from .rules import new_transaction_id

# ---- Tunables ----------------------------------------------------------------

BATCH_SIZE: int = 50
_BACKOFF_SCHEDULE_SEC: tuple[float, ...] = (0.5, 2.0)
_JITTER_PCT: float = 0.20


_logger = get_logger("budget_analysis.categorize")


# ---- Internal helpers --------------------------------------------------------


def _extract_response_text(resp: Any) -> str:
    """Locate the text output of an OpenAI Responses SDK result.

    - Prefer ``resp.output_text``; fallback to ``resp.output[0].content[0].text``.
    - Raise ``ValueError`` if no text can be located.
    """

    text: str | None = getattr(resp, "output_text", None)
    if not text:
        try:
            first = resp.output[0] if getattr(resp, "output", None) else None
            content = getattr(first, "content", None)
            if content and len(content) > 0:
                txt_obj = getattr(content[0], "text", None)
                if isinstance(txt_obj, str):
                    text = txt_obj
                else:
                    # Some SDKs expose text as an object with a ``value`` string.
                    maybe_val = getattr(txt_obj, "value", None)
                    if isinstance(maybe_val, str):
                        text = maybe_val
        except Exception:  # noqa: BLE001 - tolerate SDK shape differences
            text = None
    if not text or not isinstance(text, str):
        raise ValueError("Unexpected Responses API shape; unable to locate text output")
    return text


def _batches(n_total: int, batch_size: int) -> Iterable[tuple[int, int, int]]:
    """Yield ``(batch_index, base, end)`` half-open ranges over ``n_total`` items."""

    for k in range(math.ceil(n_total / batch_size)):
        base = k * batch_size
        yield (k, base, min(base + batch_size, n_total))


def _create_client(settings: Settings) -> OpenAI:
    return OpenAI(api_key=settings.openai_api_key)


def _is_retryable(exc: BaseException) -> bool:
    """Return True only for HTTP 429 and 5xx errors.

    Parsing/validation errors (``ValueError`` from the response text) are
    terminal for the batch and never retried.
    """

    sc = getattr(exc, "status_code", None)
    if isinstance(sc, int) and (sc == 429 or 500 <= sc < 600):
        return True
    return False


def _sleep_backoff(attempt_no: int) -> None:
    if attempt_no - 1 < len(_BACKOFF_SCHEDULE_SEC):
        base = _BACKOFF_SCHEDULE_SEC[attempt_no - 1]
    else:
        base = _BACKOFF_SCHEDULE_SEC[-1]
    jitter = base * _JITTER_PCT
    delay = base + random.uniform(-jitter, jitter)
    time.sleep(max(0.0, delay))


class BatchResult(NamedTuple):
    batch_index: int
    decisions: list[AiDecision]
    fell_back: bool = False


def _request_batch(
    batch_index: int,
    batch: Sequence[RawTransaction],
    *,
    settings: Settings,
    system_instructions: str,
) -> list[AiDecision]:
    """Send one batch and return aligned decisions; raises on terminal failure."""

    user_content = prompting.build_user_content(batch)
    _logger.info(
        "ai_categorize:batch_llm batch_index=%d num_transactions=%d", batch_index, len(batch)
    )

    # Instantiate the client once per batch and reuse across retries.
    client = _create_client(settings)
    attempt = 1
    while True:
        t0 = time.perf_counter()
        try:
            resp = client.responses.create(
                model=settings.ai_model,
                instructions=system_instructions,
                input=user_content,
                max_output_tokens=settings.ai_max_output_tokens,
            )
            items = extract_json_array(_extract_response_text(resp))
            decisions = align_decisions(items, batch)
            dt_ms = (time.perf_counter() - t0) * 1000.0
            _logger.info(
                "ai_categorize:batch_done batch_index=%d num_transactions=%d latency_ms=%.2f",
                batch_index,
                len(decisions),
                dt_ms,
            )
            return decisions
        except Exception as e:  # noqa: BLE001
            dt_ms = (time.perf_counter() - t0) * 1000.0
            # Retry scope narrowed to 429/5xx only.
            if attempt >= settings.ai_max_attempts or not _is_retryable(e):
                raise
            _logger.warning(
                (
                    "ai_categorize:batch_retry batch_index=%d count=%d "
                    "latency_ms=%.2f error=%s attempt=%d"
                ),
                batch_index,
                len(batch),
                dt_ms,
                e.__class__.__name__,
                attempt,
            )
            _sleep_backoff(attempt)
            attempt += 1


def _categorize_batch(
    batch_index: int,
    batch: Sequence[RawTransaction],
    *,
    settings: Settings,
    system_instructions: str,
) -> BatchResult:
    try:
        decisions = _request_batch(
            batch_index, batch, settings=settings, system_instructions=system_instructions
        )
        return BatchResult(batch_index=batch_index, decisions=decisions)
    except Exception as e:  # noqa: BLE001 - a failed batch degrades to rules
        _logger.error(
            "ai_categorize:batch_failed batch_index=%d num_transactions=%d error=%s detail=%s",
            batch_index,
            len(batch),
            e.__class__.__name__,
            e,
        )
        return BatchResult(
            batch_index=batch_index,
            decisions=[rule_decision(tx) for tx in batch],
            fell_back=True,
        )


# ---- Public API --------------------------------------------------------------


def categorize_with_ai(
    transactions: Sequence[RawTransaction],
    *,
    settings: Settings | None = None,
) -> list[AiDecision]:
    """Return one decision per input transaction, in input order.

    Never raises for oracle problems. Without an API key every decision is
    the rule-based one and no request is made.
    """

    settings = settings or load_settings()
    items = list(transactions)
    if not items:
        return []
    if not settings.ai_available:
        _logger.warning("ai_categorize:disabled reason=no_api_key num_transactions=%d", len(items))
        return [rule_decision(tx) for tx in items]

    system_instructions = prompting.build_system_instructions()
    batches = [(k, items[base:end]) for k, base, end in _batches(len(items), BATCH_SIZE)]

    def _map_batch(index_and_batch: tuple[int, list[RawTransaction]]) -> BatchResult:
        batch_index, batch = index_and_batch
        return _categorize_batch(
            batch_index, batch, settings=settings, system_instructions=system_instructions
        )

    workers = min(settings.ai_concurrency, len(batches))
    if workers > 1:
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(_map_batch, batches))
    else:
        results = [_map_batch(b) for b in batches]

    out: list[AiDecision] = []
    for result in sorted(results, key=lambda r: r.batch_index):
        out.extend(result.decisions)
    _logger.info(
        "ai_categorize:summary batches=%d failed_batches=%d num_transactions=%d",
        len(results),
        sum(1 for r in results if r.fell_back),
        len(out),
    )
    return out


def categorize_transactions_with_ai(
    raw: Sequence[RawTransaction],
    *,
    settings: Settings | None = None,
) -> list[CategorizedTransaction]:
    """Categorize ``raw`` through the oracle, then detect recurring payments.

    The oracle's own recurring flag is OR-ed in after interval detection; it
    never clears a flag the detector set.
    """

    decisions = categorize_with_ai(raw, settings=settings)
    categorized = [
        CategorizedTransaction.from_raw(
            tx,
            id=new_transaction_id(),
            category=d.category,
            subcategory=d.subcategory,
            confidence=d.confidence,
            merchant=d.merchant,
            notes=d.notes,
        )
        for tx, d in zip(raw, decisions, strict=True)
    ]
    detected = detect_recurring(categorized)
    return [
        dataclasses.replace(tx, is_recurring=True) if d.is_recurring and not tx.is_recurring else tx
        for tx, d in zip(detected, decisions, strict=True)
    ]


def apply_ai_categories(
    transactions: Sequence[CategorizedTransaction],
    *,
    settings: Settings | None = None,
) -> list[CategorizedTransaction]:
    """Re-categorize an existing list through the oracle.

    Transactions with ``user_override`` are neither sent nor changed. Ids and
    recurring flags of the others are kept; the oracle can only add a
    recurring flag.
    """

    pending = [i for i, tx in enumerate(transactions) if not tx.user_override]
    decisions = categorize_with_ai([transactions[i] for i in pending], settings=settings)

    out = list(transactions)
    for i, d in zip(pending, decisions, strict=True):
        tx = out[i]
        out[i] = dataclasses.replace(
            tx,
            category=d.category,
            subcategory=d.subcategory,
            confidence=d.confidence,
            merchant=d.merchant,
            notes=d.notes,
            is_recurring=tx.is_recurring or d.is_recurring,
        )
    return out


__all__ = [
    "BATCH_SIZE",
    "apply_ai_categories",
    "categorize_transactions_with_ai",
    "categorize_with_ai",
]
