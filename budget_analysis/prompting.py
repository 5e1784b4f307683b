"""Prompt construction for transaction categorization.

This module builds:
- The system instructions for the categorization task.
- The category listing shown to the model (``- key: Label (description)``).
- The numbered transaction listing for one batch (1-based, the alignment key
  for the response).
"""

from __future__ import annotations

from collections.abc import Sequence

from .models import CATEGORY_INFO, RawTransaction


def build_system_instructions() -> str:
    """Return concise system instructions for single-label categorization."""

    return (
        "You are a financial transaction categorizer. Assign every bank transaction "
        "exactly one category key from the provided list. Never invent categories. "
        "Respond with a JSON array only, no other text."
    )


def format_category_listing() -> str:
    return "\n".join(
        f"- {cat.value}: {info.label} ({info.description})" for cat, info in CATEGORY_INFO.items()
    )


def format_transaction_line(position: int, tx: RawTransaction) -> str:
    """Render one transaction as ``N. Date: ..., Amount: $X.XX, Description: "..."``."""

    return (
        f"{position}. Date: {tx.date.isoformat()}, Amount: ${tx.amount:.2f}, "
        f'Description: "{tx.description}"'
    )


def build_user_content(batch: Sequence[RawTransaction]) -> str:
    transaction_list = "\n".join(
        format_transaction_line(i, tx) for i, tx in enumerate(batch, start=1)
    )
    return f"""Analyze these bank transactions and categorize each one.

Available categories:
{format_category_listing()}

Transactions to categorize:
{transaction_list}

For each transaction, respond with a JSON array where each element has:
- index: the transaction number (1-based)
- category: one of the category keys listed above
- subcategory: a specific subcategory (e.g., "Fast Food" for dining, "Gas" for transportation)
- confidence: 0.0-1.0 how confident you are
- merchant: the merchant name if identifiable (null if unclear)
- isRecurring: true/false if this appears to be a recurring payment
- notes: any relevant notes (null if none)

Important:
- Income transactions (positive amounts) should be categorized as "income"
- Look for subscription/recurring patterns
- Be specific with subcategories
- Use "other" only as a last resort

Respond ONLY with a valid JSON array, no other text."""


__all__ = [
    "build_system_instructions",
    "build_user_content",
    "format_category_listing",
    "format_transaction_line",
]
