"""Result parsing and alignment for AI categorization.

The model is asked for a bare JSON array but in practice wraps it in prose,
code fences or an envelope object. :func:`extract_json_array` finds the
first complete array with a real JSON decoder instead of a greedy regex, and
:func:`align_decisions` validates each element independently so a single
malformed item only costs that one transaction its AI decision.
"""

from __future__ import annotations

import json
from collections.abc import Sequence
from typing import Any, NamedTuple

# Prefer Pydantic for shape/typing validation to avoid manual isinstance chains.
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from .logging_setup import get_logger
from .models import CATEGORY_INFO, Category, RawTransaction
from .rules import categorize_by_rules, extract_merchant

_logger = get_logger("budget_analysis.categorization")

MAX_AI_CONFIDENCE = 0.99


class AiDecision(NamedTuple):
    """Per-transaction result of the AI categorization path."""

    category: Category
    subcategory: str
    confidence: float
    merchant: str | None = None
    is_recurring: bool = False
    notes: str | None = None


def rule_decision(tx: RawTransaction) -> AiDecision:
    """Rule-based stand-in used wherever the model gave no usable answer."""

    d = categorize_by_rules(tx)
    return AiDecision(
        category=d.category,
        subcategory=d.subcategory,
        confidence=d.confidence,
        merchant=extract_merchant(tx.description),
    )


# ---------------------------------------------------------------------------
# Response text → JSON array
# ---------------------------------------------------------------------------


def extract_json_array(text: str) -> list[Any]:
    """Return the first syntactically complete JSON array found in ``text``.

    An object is accepted in place of an array when one of its values is a
    list (``{"results": [...]}``); that list is returned. Raises
    ``ValueError`` when nothing qualifies.
    """

    decoder = json.JSONDecoder()
    pos = 0
    while pos < len(text):
        if text[pos] not in "[{":
            pos += 1
            continue
        try:
            value, end = decoder.raw_decode(text, pos)
        except json.JSONDecodeError:
            pos += 1
            continue
        if isinstance(value, list):
            return value
        for inner in value.values():
            if isinstance(inner, list):
                return inner
        # A decoded object without a list: resume after it, not inside it.
        pos = end
    raise ValueError("No JSON array found in response")


# ---------------------------------------------------------------------------
# Item validation and alignment
# ---------------------------------------------------------------------------


class _OracleItem(BaseModel):
    """Typed view of one element of the model's array."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True, populate_by_name=True)

    index: int
    category: Category
    subcategory: str = ""
    confidence: float = Field(allow_inf_nan=False)
    merchant: str | None = None
    is_recurring: bool = Field(default=False, alias="isRecurring")
    notes: str | None = None

    @field_validator("category", mode="before")
    @classmethod
    def _normalize_category(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.strip().lower()
        return v

    @field_validator("confidence")
    @classmethod
    def _clamp_confidence(cls, v: float) -> float:
        # 1.0 is reserved for user-confirmed categories.
        return min(max(float(v), 0.0), MAX_AI_CONFIDENCE)

    @field_validator("merchant", "notes")
    @classmethod
    def _blank_to_none(cls, v: str | None) -> str | None:
        return v or None

    def to_decision(self, tx: RawTransaction) -> AiDecision:
        return AiDecision(
            category=self.category,
            subcategory=self.subcategory or CATEGORY_INFO[self.category].label,
            confidence=self.confidence,
            merchant=self.merchant or extract_merchant(tx.description),
            is_recurring=self.is_recurring,
            notes=self.notes,
        )


def align_decisions(items: Sequence[Any], batch: Sequence[RawTransaction]) -> list[AiDecision]:
    """Map the model's array back onto ``batch`` by 1-based ``index``.

    Items that fail validation, point outside the batch, or repeat an index
    already seen are ignored. Every position left without a valid item gets
    the rule-based decision.
    """

    by_position: dict[int, _OracleItem] = {}
    rejected = 0
    for raw in items:
        try:
            item = _OracleItem.model_validate(raw)
        except ValidationError:
            rejected += 1
            continue
        if not (1 <= item.index <= len(batch)) or item.index in by_position:
            rejected += 1
            continue
        by_position[item.index] = item

    out: list[AiDecision] = []
    for position, tx in enumerate(batch, start=1):
        item = by_position.get(position)
        out.append(item.to_decision(tx) if item is not None else rule_decision(tx))

    missing = len(batch) - len(by_position)
    if rejected or missing:
        _logger.warning(
            "ai_categorize:items_fallback rejected=%d missing=%d batch_size=%d",
            rejected,
            missing,
            len(batch),
        )
    return out


__all__ = [
    "MAX_AI_CONFIDENCE",
    "AiDecision",
    "align_decisions",
    "extract_json_array",
    "rule_decision",
]
