"""Data models and enumerations for ``budget_analysis``.

Every record is a frozen, slotted dataclass. Pipeline stages never mutate a
record in place; they build new ones with :func:`dataclasses.replace`.

Amounts are :class:`~decimal.Decimal` so that currency values read from a
statement keep their exact precision. Dates are :class:`datetime.date`
because time-of-day carries no meaning in a bank export.
"""

from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from decimal import Decimal
from enum import StrEnum
from typing import NamedTuple

# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class Category(StrEnum):
    """Closed set of budget categories. Every transaction ends up in one."""

    INCOME = "income"
    HOUSING = "housing"
    UTILITIES = "utilities"
    GROCERIES = "groceries"
    DINING = "dining"
    TRANSPORTATION = "transportation"
    HEALTHCARE = "healthcare"
    INSURANCE = "insurance"
    DEBT = "debt"
    SAVINGS = "savings"
    INVESTMENTS = "investments"
    SHOPPING = "shopping"
    ENTERTAINMENT = "entertainment"
    SUBSCRIPTIONS = "subscriptions"
    PERSONAL_CARE = "personal_care"
    EDUCATION = "education"
    GIFTS_DONATIONS = "gifts_donations"
    TRAVEL = "travel"
    PETS = "pets"
    CHILDCARE = "childcare"
    BUSINESS = "business"
    TAXES = "taxes"
    FEES = "fees"
    TRANSFERS = "transfers"
    OTHER = "other"


class TransactionType(StrEnum):
    CREDIT = "credit"
    DEBIT = "debit"


class RecurringFrequency(StrEnum):
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    YEARLY = "yearly"


class InsightType(StrEnum):
    WARNING = "warning"
    TIP = "tip"
    POSITIVE = "positive"
    QUESTION = "question"


class CategoryInfo(NamedTuple):
    """Human-readable metadata for a :class:`Category`."""

    label: str
    description: str
    is_essential: bool


CATEGORY_INFO: dict[Category, CategoryInfo] = {
    Category.INCOME: CategoryInfo("Income", "Salary, freelance, side hustles", True),
    Category.HOUSING: CategoryInfo("Housing", "Rent, mortgage, HOA fees", True),
    Category.UTILITIES: CategoryInfo("Utilities", "Electric, gas, water, internet", True),
    Category.GROCERIES: CategoryInfo("Groceries", "Food and household essentials", True),
    Category.DINING: CategoryInfo("Dining Out", "Restaurants, takeout, coffee", False),
    Category.TRANSPORTATION: CategoryInfo("Transportation", "Gas, car payments, transit", True),
    Category.HEALTHCARE: CategoryInfo("Healthcare", "Medical bills, prescriptions", True),
    Category.INSURANCE: CategoryInfo("Insurance", "Health, auto, life, home", True),
    Category.DEBT: CategoryInfo("Debt Payments", "Credit cards, loans", True),
    Category.SAVINGS: CategoryInfo("Savings", "Emergency fund, goals", True),
    Category.INVESTMENTS: CategoryInfo("Investments", "401k, IRA, stocks", False),
    Category.SHOPPING: CategoryInfo("Shopping", "Clothes, electronics, home", False),
    Category.ENTERTAINMENT: CategoryInfo("Entertainment", "Movies, games, hobbies", False),
    Category.SUBSCRIPTIONS: CategoryInfo(
        "Subscriptions", "Streaming, software, memberships", False
    ),
    Category.PERSONAL_CARE: CategoryInfo("Personal Care", "Haircuts, gym, self-care", False),
    Category.EDUCATION: CategoryInfo("Education", "Courses, books, tuition", False),
    Category.GIFTS_DONATIONS: CategoryInfo("Gifts & Donations", "Presents, charity", False),
    Category.TRAVEL: CategoryInfo("Travel", "Flights, hotels, vacation", False),
    Category.PETS: CategoryInfo("Pets", "Food, vet, supplies", False),
    Category.CHILDCARE: CategoryInfo("Childcare", "Daycare, activities", True),
    Category.BUSINESS: CategoryInfo("Business", "Work expenses", False),
    Category.TAXES: CategoryInfo("Taxes", "Income, property taxes", True),
    Category.FEES: CategoryInfo("Fees & Charges", "Bank fees, penalties", False),
    Category.TRANSFERS: CategoryInfo("Transfers", "Account transfers", False),
    Category.OTHER: CategoryInfo("Other", "Uncategorized", False),
}


# ---------------------------------------------------------------------------
# Transactions
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True, kw_only=True)
class RawTransaction:
    """One ledger line as imported from a statement file.

    Attributes
    ----------
    date:
        Posting date of the line.
    description:
        Original memo text, kept verbatim. Normalization only ever happens in
        derived values (merchant, grouping keys).
    amount:
        Signed amount; positive is money in, negative is money out. Never zero
        for a parsed transaction.
    balance:
        Optional running balance reported by the bank (informational).
    type:
        Optional credit/debit hint from the source file.
    """

    date: dt.date
    description: str
    amount: Decimal
    balance: Decimal | None = None
    type: TransactionType | None = None

    @property
    def is_incoming(self) -> bool:
        return self.amount > 0 or self.type is TransactionType.CREDIT


@dataclass(frozen=True, slots=True, kw_only=True)
class CategorizedTransaction(RawTransaction):
    """A :class:`RawTransaction` with its category decision attached.

    ``confidence`` is ``1.0`` exactly when ``user_override`` is set; automated
    passes stay strictly below it. Once ``user_override`` is true no automated
    pass (re-categorization, oracle, recurrence detection) changes the record.
    """

    id: str
    category: Category
    subcategory: str
    confidence: float
    merchant: str | None = None
    is_recurring: bool = False
    recurring_frequency: RecurringFrequency | None = None
    user_override: bool = False
    notes: str | None = None

    @classmethod
    def from_raw(
        cls,
        raw: RawTransaction,
        *,
        id: str,
        category: Category,
        subcategory: str,
        confidence: float,
        merchant: str | None = None,
        is_recurring: bool = False,
        notes: str | None = None,
    ) -> CategorizedTransaction:
        return cls(
            date=raw.date,
            description=raw.description,
            amount=raw.amount,
            balance=raw.balance,
            type=raw.type,
            id=id,
            category=category,
            subcategory=subcategory,
            confidence=confidence,
            merchant=merchant,
            is_recurring=is_recurring,
            notes=notes,
        )

    def to_raw(self) -> RawTransaction:
        return RawTransaction(
            date=self.date,
            description=self.description,
            amount=self.amount,
            balance=self.balance,
            type=self.type,
        )


class RuleDecision(NamedTuple):
    """Category decision produced by the rule table or the oracle."""

    category: Category
    subcategory: str
    confidence: float


# ---------------------------------------------------------------------------
# Parse results
# ---------------------------------------------------------------------------

MAX_REPORTED_ERRORS = 10


@dataclass(frozen=True, slots=True)
class ParseResult:
    """Outcome of ingesting a single statement file.

    ``success`` is true when at least one transaction was extracted. ``errors``
    holds at most :data:`MAX_REPORTED_ERRORS` diagnostics. ``bank_detected``
    is an advisory guess and never affects ``success``.
    """

    success: bool
    transactions: tuple[RawTransaction, ...] = ()
    errors: tuple[str, ...] = ()
    bank_detected: str | None = None

    @classmethod
    def failure(cls, *errors: str, bank_detected: str | None = None) -> ParseResult:
        return cls(
            success=False,
            errors=tuple(errors[:MAX_REPORTED_ERRORS]),
            bank_detected=bank_detected,
        )


# ---------------------------------------------------------------------------
# Spending analysis
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class CategoryBucket:
    total: Decimal = Decimal(0)
    count: int = 0
    transactions: tuple[CategorizedTransaction, ...] = ()


@dataclass(frozen=True, slots=True)
class MerchantTotal:
    name: str
    total: Decimal
    count: int


@dataclass(frozen=True, slots=True)
class DateRange:
    start: dt.date
    end: dt.date


@dataclass(frozen=True, slots=True)
class SpendingInsight:
    type: InsightType
    title: str
    description: str
    category: Category | None = None
    amount: Decimal | None = None
    action: str | None = None


@dataclass(frozen=True, slots=True)
class SpendingAnalysis:
    """Aggregate view over a categorized transaction set.

    Derived data only: recompute it whenever the transactions change.
    ``by_category`` always contains every :class:`Category` key.
    """

    total_income: Decimal
    total_expenses: Decimal
    net_cashflow: Decimal
    by_category: dict[Category, CategoryBucket]
    recurring_expenses: tuple[CategorizedTransaction, ...]
    top_merchants: tuple[MerchantTotal, ...]
    date_range: DateRange
    insights: tuple[SpendingInsight, ...] = field(default_factory=tuple)


__all__ = [
    "CATEGORY_INFO",
    "MAX_REPORTED_ERRORS",
    "Category",
    "CategoryBucket",
    "CategoryInfo",
    "CategorizedTransaction",
    "DateRange",
    "InsightType",
    "MerchantTotal",
    "ParseResult",
    "RawTransaction",
    "RecurringFrequency",
    "RuleDecision",
    "SpendingAnalysis",
    "SpendingInsight",
    "TransactionType",
]
