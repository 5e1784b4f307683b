"""Deterministic, rule-based categorization.

This is the categorization floor: no I/O, no configuration, always
available. The oracle in :mod:`budget_analysis.categorize` falls back to it
per batch and per item.

Decision order for one transaction:

1. the first pattern of :data:`MERCHANT_PATTERNS` found (case-insensitive
   substring) in the description, at confidence 0.85;
2. for incoming money, "deposit"/"credit"/"refund" → income "Other Income"
   (0.7), or "interest" → income "Interest" (0.9);
3. otherwise ``other``/"Uncategorized" at 0.3.
"""

from __future__ import annotations

import dataclasses
import re
import uuid
from collections.abc import Iterable, Sequence

from .logging_setup import get_logger
from .models import (
    CATEGORY_INFO,
    Category,
    CategorizedTransaction,
    RawTransaction,
    RuleDecision,
)

_logger = get_logger("budget_analysis.rules")

PATTERN_CONFIDENCE = 0.85
USER_CONFIDENCE = 1.0

# Ordered (lowercase substring, category, subcategory) table. Order matters:
# the first hit wins, so more specific patterns must precede broader ones
# ("uber eats" before "uber ", "amazon prime" before "amazon").
MERCHANT_PATTERNS: tuple[tuple[str, Category, str], ...] = (
    # Income
    ("payroll", Category.INCOME, "Salary"),
    ("direct dep", Category.INCOME, "Direct Deposit"),
    ("salary", Category.INCOME, "Salary"),
    ("ach deposit", Category.INCOME, "Direct Deposit"),
    # Housing
    ("rent", Category.HOUSING, "Rent"),
    ("mortgage", Category.HOUSING, "Mortgage"),
    ("hoa", Category.HOUSING, "HOA Fees"),
    ("zillow", Category.HOUSING, "Rent"),
    # Utilities
    ("electric", Category.UTILITIES, "Electric"),
    ("power", Category.UTILITIES, "Electric"),
    ("gas bill", Category.UTILITIES, "Gas"),
    ("water bill", Category.UTILITIES, "Water"),
    ("comcast", Category.UTILITIES, "Internet"),
    ("xfinity", Category.UTILITIES, "Internet"),
    ("verizon", Category.UTILITIES, "Phone/Internet"),
    ("at&t", Category.UTILITIES, "Phone/Internet"),
    ("t-mobile", Category.UTILITIES, "Phone"),
    ("sprint", Category.UTILITIES, "Phone"),
    # Groceries
    ("walmart", Category.GROCERIES, "Supermarket"),
    ("target", Category.GROCERIES, "Supermarket"),
    ("kroger", Category.GROCERIES, "Supermarket"),
    ("safeway", Category.GROCERIES, "Supermarket"),
    ("whole foods", Category.GROCERIES, "Supermarket"),
    ("trader joe", Category.GROCERIES, "Supermarket"),
    ("costco", Category.GROCERIES, "Warehouse"),
    ("sam's club", Category.GROCERIES, "Warehouse"),
    ("aldi", Category.GROCERIES, "Supermarket"),
    ("publix", Category.GROCERIES, "Supermarket"),
    ("h-e-b", Category.GROCERIES, "Supermarket"),
    ("wegmans", Category.GROCERIES, "Supermarket"),
    # Dining
    ("mcdonald", Category.DINING, "Fast Food"),
    ("burger king", Category.DINING, "Fast Food"),
    ("wendy", Category.DINING, "Fast Food"),
    ("taco bell", Category.DINING, "Fast Food"),
    ("chipotle", Category.DINING, "Fast Casual"),
    ("panera", Category.DINING, "Fast Casual"),
    ("starbucks", Category.DINING, "Coffee"),
    ("dunkin", Category.DINING, "Coffee"),
    ("doordash", Category.DINING, "Delivery"),
    ("uber eats", Category.DINING, "Delivery"),
    ("grubhub", Category.DINING, "Delivery"),
    ("postmates", Category.DINING, "Delivery"),
    ("restaurant", Category.DINING, "Restaurant"),
    ("pizza", Category.DINING, "Restaurant"),
    # Transportation
    ("shell", Category.TRANSPORTATION, "Gas"),
    ("chevron", Category.TRANSPORTATION, "Gas"),
    ("exxon", Category.TRANSPORTATION, "Gas"),
    ("bp gas", Category.TRANSPORTATION, "Gas"),
    ("uber ", Category.TRANSPORTATION, "Rideshare"),
    ("lyft", Category.TRANSPORTATION, "Rideshare"),
    ("parking", Category.TRANSPORTATION, "Parking"),
    ("toll", Category.TRANSPORTATION, "Tolls"),
    ("ez pass", Category.TRANSPORTATION, "Tolls"),
    ("car wash", Category.TRANSPORTATION, "Car Care"),
    ("autozone", Category.TRANSPORTATION, "Car Parts"),
    # Healthcare
    ("cvs", Category.HEALTHCARE, "Pharmacy"),
    ("walgreens", Category.HEALTHCARE, "Pharmacy"),
    ("pharmacy", Category.HEALTHCARE, "Pharmacy"),
    ("doctor", Category.HEALTHCARE, "Medical"),
    ("hospital", Category.HEALTHCARE, "Medical"),
    ("dental", Category.HEALTHCARE, "Dental"),
    ("medical", Category.HEALTHCARE, "Medical"),
    # Insurance
    ("geico", Category.INSURANCE, "Auto Insurance"),
    ("state farm", Category.INSURANCE, "Insurance"),
    ("allstate", Category.INSURANCE, "Insurance"),
    ("progressive", Category.INSURANCE, "Auto Insurance"),
    ("insurance", Category.INSURANCE, "Insurance"),
    # Subscriptions
    ("netflix", Category.SUBSCRIPTIONS, "Streaming"),
    ("hulu", Category.SUBSCRIPTIONS, "Streaming"),
    ("disney+", Category.SUBSCRIPTIONS, "Streaming"),
    ("disney plus", Category.SUBSCRIPTIONS, "Streaming"),
    ("hbo", Category.SUBSCRIPTIONS, "Streaming"),
    ("spotify", Category.SUBSCRIPTIONS, "Music"),
    ("apple music", Category.SUBSCRIPTIONS, "Music"),
    ("amazon prime", Category.SUBSCRIPTIONS, "Amazon Prime"),
    ("youtube premium", Category.SUBSCRIPTIONS, "Streaming"),
    ("gym", Category.SUBSCRIPTIONS, "Fitness"),
    ("planet fitness", Category.SUBSCRIPTIONS, "Fitness"),
    ("equinox", Category.SUBSCRIPTIONS, "Fitness"),
    ("peloton", Category.SUBSCRIPTIONS, "Fitness"),
    # Shopping
    ("amazon", Category.SHOPPING, "Online Shopping"),
    ("ebay", Category.SHOPPING, "Online Shopping"),
    ("best buy", Category.SHOPPING, "Electronics"),
    ("apple store", Category.SHOPPING, "Electronics"),
    ("home depot", Category.SHOPPING, "Home Improvement"),
    ("lowes", Category.SHOPPING, "Home Improvement"),
    ("ikea", Category.SHOPPING, "Furniture"),
    ("marshalls", Category.SHOPPING, "Clothing"),
    ("tj maxx", Category.SHOPPING, "Clothing"),
    ("nordstrom", Category.SHOPPING, "Clothing"),
    ("macy", Category.SHOPPING, "Clothing"),
    ("old navy", Category.SHOPPING, "Clothing"),
    ("gap", Category.SHOPPING, "Clothing"),
    # Entertainment
    ("amc", Category.ENTERTAINMENT, "Movies"),
    ("regal", Category.ENTERTAINMENT, "Movies"),
    ("cinemark", Category.ENTERTAINMENT, "Movies"),
    ("steam", Category.ENTERTAINMENT, "Gaming"),
    ("playstation", Category.ENTERTAINMENT, "Gaming"),
    ("xbox", Category.ENTERTAINMENT, "Gaming"),
    ("ticketmaster", Category.ENTERTAINMENT, "Events"),
    ("stubhub", Category.ENTERTAINMENT, "Events"),
    # Personal care
    ("salon", Category.PERSONAL_CARE, "Hair"),
    ("spa", Category.PERSONAL_CARE, "Spa"),
    ("ulta", Category.PERSONAL_CARE, "Beauty"),
    ("sephora", Category.PERSONAL_CARE, "Beauty"),
    # Travel
    ("airline", Category.TRAVEL, "Flights"),
    ("united air", Category.TRAVEL, "Flights"),
    ("delta air", Category.TRAVEL, "Flights"),
    ("american air", Category.TRAVEL, "Flights"),
    ("southwest", Category.TRAVEL, "Flights"),
    ("hotel", Category.TRAVEL, "Lodging"),
    ("marriott", Category.TRAVEL, "Lodging"),
    ("hilton", Category.TRAVEL, "Lodging"),
    ("airbnb", Category.TRAVEL, "Lodging"),
    ("vrbo", Category.TRAVEL, "Lodging"),
    ("expedia", Category.TRAVEL, "Travel Booking"),
    ("booking.com", Category.TRAVEL, "Travel Booking"),
    # Pets
    ("petco", Category.PETS, "Pet Supplies"),
    ("petsmart", Category.PETS, "Pet Supplies"),
    ("chewy", Category.PETS, "Pet Supplies"),
    ("vet", Category.PETS, "Veterinary"),
    # Transfers
    ("transfer", Category.TRANSFERS, "Internal Transfer"),
    ("zelle", Category.TRANSFERS, "Person to Person"),
    ("venmo", Category.TRANSFERS, "Person to Person"),
    ("cash app", Category.TRANSFERS, "Person to Person"),
    # Fees
    ("overdraft", Category.FEES, "Bank Fee"),
    ("nsf fee", Category.FEES, "Bank Fee"),
    ("atm fee", Category.FEES, "ATM Fee"),
    ("monthly fee", Category.FEES, "Bank Fee"),
    ("service charge", Category.FEES, "Bank Fee"),
    # Debt
    ("credit card", Category.DEBT, "Credit Card Payment"),
    ("loan payment", Category.DEBT, "Loan Payment"),
    ("student loan", Category.DEBT, "Student Loan"),
    ("navient", Category.DEBT, "Student Loan"),
    ("nelnet", Category.DEBT, "Student Loan"),
    ("mohela", Category.DEBT, "Student Loan"),
)

# Income heuristics applied to incoming money when no pattern matched.
_INCOME_KEYWORDS: tuple[tuple[tuple[str, ...], str, float], ...] = (
    (("deposit", "credit", "refund"), "Other Income", 0.7),
    (("interest",), "Interest", 0.9),
)

FALLBACK_DECISION = RuleDecision(Category.OTHER, "Uncategorized", 0.3)


def categorize_by_rules(tx: RawTransaction) -> RuleDecision:
    """Return the rule-based decision for one transaction. Never fails."""

    desc = tx.description.lower()
    for pattern, category, subcategory in MERCHANT_PATTERNS:
        if pattern in desc:
            return RuleDecision(category, subcategory, PATTERN_CONFIDENCE)

    if tx.is_incoming:
        for keywords, subcategory, confidence in _INCOME_KEYWORDS:
            if any(k in desc for k in keywords):
                return RuleDecision(Category.INCOME, subcategory, confidence)

    return FALLBACK_DECISION


# ---------------------------------------------------------------------------
# Merchant extraction
# ---------------------------------------------------------------------------

_US_STATES = (
    "al ak az ar ca co ct de dc fl ga hi id il in ia ks ky la me md ma mi mn ms mo "
    "mt ne nv nh nj nm ny nc nd oh ok or pa ri sc sd tn tx ut vt va wa wv wi wy"
).split()

# Applied in order; each strips one kind of noise from a bank memo.
_MERCHANT_CLEANUPS: tuple[re.Pattern[str], ...] = (
    re.compile(
        r"^(pos|ach|debit|credit|check|wire|online|recurring|payment|purchase)\s*",
        re.IGNORECASE,
    ),
    re.compile(r"\s*\d{2}/\d{2}.*$"),
    re.compile(r"\s*#?\d+$"),
    re.compile(r"\s+(" + "|".join(_US_STATES) + r")$", re.IGNORECASE),
)


def extract_merchant(description: str) -> str | None:
    """Best-effort vendor name from a bank memo, or ``None``.

    >>> extract_merchant("POS STARBUCKS STORE #123 SEATTLE WA")
    'STARBUCKS STORE #123'
    """

    cleaned = description
    for pattern in _MERCHANT_CLEANUPS:
        cleaned = pattern.sub("", cleaned)
    words = cleaned.split()[:3]
    if words and len(words[0]) > 2:
        return " ".join(words)
    return None


# ---------------------------------------------------------------------------
# Categorized collections
# ---------------------------------------------------------------------------


def new_transaction_id() -> str:
    return uuid.uuid4().hex


def categorize_raw(tx: RawTransaction) -> CategorizedTransaction:
    decision = categorize_by_rules(tx)
    return CategorizedTransaction.from_raw(
        tx,
        id=new_transaction_id(),
        category=decision.category,
        subcategory=decision.subcategory,
        confidence=decision.confidence,
        merchant=extract_merchant(tx.description),
    )


def categorize_transactions(raw: Iterable[RawTransaction]) -> list[CategorizedTransaction]:
    """Categorize raw transactions by rules and run recurrence detection."""

    from .recurring import detect_recurring

    categorized = [categorize_raw(tx) for tx in raw]
    _logger.info("categorize_rules:done transactions=%d", len(categorized))
    return detect_recurring(categorized)


def recategorize(
    transactions: Sequence[CategorizedTransaction],
) -> list[CategorizedTransaction]:
    """Re-run the rule table over every transaction the user has not edited.

    Ids, merchant and recurrence flags are kept; user-overridden transactions
    are returned untouched.
    """

    out: list[CategorizedTransaction] = []
    for tx in transactions:
        if tx.user_override:
            out.append(tx)
            continue
        decision = categorize_by_rules(tx)
        out.append(
            dataclasses.replace(
                tx,
                category=decision.category,
                subcategory=decision.subcategory,
                confidence=decision.confidence,
            )
        )
    return out


def update_transaction_category(
    transactions: Sequence[CategorizedTransaction],
    transaction_id: str,
    category: Category | str,
    subcategory: str | None = None,
) -> list[CategorizedTransaction]:
    """Apply a user's category edit and pin it.

    The edited transaction gets ``user_override=True`` and ``confidence=1.0``.
    A blank ``subcategory`` becomes the category label. Raises ``KeyError``
    when ``transaction_id`` is unknown and ``ValueError`` for a category
    outside the enumeration.
    """

    cat = Category(category)
    sub = (subcategory or "").strip() or CATEGORY_INFO[cat].label
    if not any(tx.id == transaction_id for tx in transactions):
        raise KeyError(f"unknown transaction id: {transaction_id!r}")

    return [
        dataclasses.replace(
            tx,
            category=cat,
            subcategory=sub,
            confidence=USER_CONFIDENCE,
            user_override=True,
        )
        if tx.id == transaction_id
        else tx
        for tx in transactions
    ]


__all__ = [
    "FALLBACK_DECISION",
    "MERCHANT_PATTERNS",
    "PATTERN_CONFIDENCE",
    "categorize_by_rules",
    "categorize_raw",
    "categorize_transactions",
    "extract_merchant",
    "new_transaction_id",
    "recategorize",
    "update_transaction_category",
]
