"""Spending aggregation and rule-of-thumb insights.

All money arithmetic stays in :class:`~decimal.Decimal`. Amounts quoted in
insight text are whole dollars rounded half-up; percentages likewise.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Mapping, Sequence
from decimal import ROUND_HALF_UP, Decimal

from .logging_setup import get_logger
from .models import (
    Category,
    CategorizedTransaction,
    CategoryBucket,
    DateRange,
    InsightType,
    MerchantTotal,
    RecurringFrequency,
    SpendingAnalysis,
    SpendingInsight,
)

_logger = get_logger("budget_analysis.analyzer")

TOP_MERCHANTS = 10

_ZERO = Decimal(0)
_HUNDRED = Decimal(100)
_CENT = Decimal("0.01")

NEEDS: tuple[Category, ...] = (
    Category.HOUSING,
    Category.UTILITIES,
    Category.GROCERIES,
    Category.HEALTHCARE,
    Category.TRANSPORTATION,
    Category.INSURANCE,
    Category.CHILDCARE,
)
WANTS: tuple[Category, ...] = (
    Category.DINING,
    Category.SHOPPING,
    Category.ENTERTAINMENT,
    Category.SUBSCRIPTIONS,
    Category.PERSONAL_CARE,
    Category.TRAVEL,
    Category.PETS,
)


def _whole(value: Decimal) -> str:
    return str(value.quantize(Decimal(1), rounding=ROUND_HALF_UP))


def _pct(part: Decimal, whole: Decimal) -> Decimal:
    return part / whole * _HUNDRED if whole > 0 else _ZERO


def _buckets_by_category(
    transactions: Sequence[CategorizedTransaction],
) -> dict[Category, CategoryBucket]:
    members: dict[Category, list[CategorizedTransaction]] = {c: [] for c in Category}
    for tx in transactions:
        members[tx.category].append(tx)
    return {
        cat: CategoryBucket(
            total=sum((abs(tx.amount) for tx in txs), _ZERO),
            count=len(txs),
            transactions=tuple(txs),
        )
        for cat, txs in members.items()
    }


def _top_merchants(transactions: Sequence[CategorizedTransaction]) -> tuple[MerchantTotal, ...]:
    totals: dict[str, tuple[Decimal, int]] = {}
    for tx in transactions:
        if tx.merchant and tx.amount < 0:
            total, count = totals.get(tx.merchant, (_ZERO, 0))
            totals[tx.merchant] = (total + abs(tx.amount), count + 1)
    ranked = sorted(totals.items(), key=lambda kv: kv[1][0], reverse=True)
    return tuple(
        MerchantTotal(name=name, total=total, count=count)
        for name, (total, count) in ranked[:TOP_MERCHANTS]
    )


def analyze_spending(transactions: Sequence[CategorizedTransaction]) -> SpendingAnalysis:
    """Aggregate categorized transactions into a :class:`SpendingAnalysis`.

    A transaction counts as income when its category is ``income`` or its
    amount is positive; everything else is an expense. Both totals sum
    absolute amounts.
    """

    by_category = _buckets_by_category(transactions)

    if not transactions:
        today = dt.date.today()
        return SpendingAnalysis(
            total_income=_ZERO,
            total_expenses=_ZERO,
            net_cashflow=_ZERO,
            by_category=by_category,
            recurring_expenses=(),
            top_merchants=(),
            date_range=DateRange(start=today, end=today),
        )

    total_income = _ZERO
    total_expenses = _ZERO
    for tx in transactions:
        if tx.category is Category.INCOME or tx.amount > 0:
            total_income += abs(tx.amount)
        else:
            total_expenses += abs(tx.amount)

    recurring = tuple(tx for tx in transactions if tx.is_recurring and tx.amount < 0)
    dates = [tx.date for tx in transactions]

    insights = generate_insights(
        by_category,
        total_income=total_income,
        total_expenses=total_expenses,
        recurring_expenses=recurring,
    )
    _logger.info(
        "analyze:done transactions=%d income=%s expenses=%s insights=%d",
        len(transactions),
        total_income,
        total_expenses,
        len(insights),
    )
    return SpendingAnalysis(
        total_income=total_income,
        total_expenses=total_expenses,
        net_cashflow=total_income - total_expenses,
        by_category=by_category,
        recurring_expenses=recurring,
        top_merchants=_top_merchants(transactions),
        date_range=DateRange(start=min(dates), end=max(dates)),
        insights=tuple(insights),
    )


def generate_insights(
    by_category: Mapping[Category, CategoryBucket],
    *,
    total_income: Decimal,
    total_expenses: Decimal,
    recurring_expenses: Sequence[CategorizedTransaction],
) -> list[SpendingInsight]:
    """Evaluate the fixed insight battery; results keep the battery order."""

    def total(cat: Category) -> Decimal:
        return by_category[cat].total

    insights: list[SpendingInsight] = []

    dining_pct = _pct(total(Category.DINING), total_expenses)
    grocery_pct = _pct(total(Category.GROCERIES), total_expenses)
    entertainment_pct = _pct(total(Category.ENTERTAINMENT), total_expenses)
    subscriptions = total(Category.SUBSCRIPTIONS)
    fees = total(Category.FEES)

    if dining_pct > 15:
        insights.append(
            SpendingInsight(
                type=InsightType.WARNING,
                title="High Dining Spending",
                description=(
                    f"You're spending {_whole(dining_pct)}% of expenses on dining out. "
                    "The recommended max is 10-15%."
                ),
                category=Category.DINING,
                amount=total(Category.DINING),
                action="Consider meal prepping or reducing takeout orders",
            )
        )

    if subscriptions > 100:
        insights.append(
            SpendingInsight(
                type=InsightType.TIP,
                title="Subscription Audit",
                description=(
                    f"You have ${_whole(subscriptions)}/month in subscriptions. "
                    "Consider reviewing which ones you actually use."
                ),
                category=Category.SUBSCRIPTIONS,
                amount=subscriptions,
                action="Review and cancel unused subscriptions",
            )
        )

    if 5 < grocery_pct < 20:
        insights.append(
            SpendingInsight(
                type=InsightType.POSITIVE,
                title="Healthy Grocery Spending",
                description=(
                    f"Your grocery spending is {_whole(grocery_pct)}% of expenses - "
                    "well within the healthy range."
                ),
                category=Category.GROCERIES,
            )
        )

    if grocery_pct < 5 and dining_pct > 10:
        insights.append(
            SpendingInsight(
                type=InsightType.TIP,
                title="Shift Dining to Groceries",
                description=(
                    "You spend more on dining than groceries. "
                    "Cooking at home could save $200-400/month."
                ),
                action="Try meal planning and batch cooking",
            )
        )

    if total(Category.SAVINGS) == 0:
        insights.append(
            SpendingInsight(
                type=InsightType.WARNING,
                title="No Savings Detected",
                description=(
                    "We didn't see any transfers to savings. "
                    "Aim to save at least 10-20% of income."
                ),
                category=Category.SAVINGS,
                action="Set up automatic transfers to savings",
            )
        )

    if fees > 50:
        insights.append(
            SpendingInsight(
                type=InsightType.WARNING,
                title="Bank Fees Add Up",
                description=(
                    f"You paid ${_whole(fees)} in fees. Consider switching to a fee-free bank."
                ),
                category=Category.FEES,
                amount=fees,
                action="Look into online banks with no monthly fees",
            )
        )

    if total_income > total_expenses * Decimal("1.2"):
        insights.append(
            SpendingInsight(
                type=InsightType.POSITIVE,
                title="Positive Cash Flow",
                description=(
                    "You're spending less than you earn - great job! You have "
                    f"${_whole(total_income - total_expenses)} available for savings/investing."
                ),
            )
        )

    if total_expenses > total_income:
        insights.append(
            SpendingInsight(
                type=InsightType.WARNING,
                title="Spending More Than Earning",
                description=(
                    f"You spent ${_whole(total_expenses - total_income)} more than you earned. "
                    "This is unsustainable."
                ),
                action="We'll help you find areas to cut back",
            )
        )

    monthly_recurring = sum(
        (
            abs(tx.amount)
            for tx in recurring_expenses
            if tx.recurring_frequency is RecurringFrequency.MONTHLY
        ),
        _ZERO,
    )
    if monthly_recurring > 0:
        insights.append(
            SpendingInsight(
                type=InsightType.TIP,
                title="Monthly Commitments",
                description=(
                    f"You have ${_whole(monthly_recurring)} in monthly recurring expenses. "
                    "Knowing your fixed costs helps with budgeting."
                ),
                amount=monthly_recurring,
            )
        )

    if entertainment_pct > 10:
        insights.append(
            SpendingInsight(
                type=InsightType.QUESTION,
                title="Entertainment Spending",
                description=(
                    f"{_whole(entertainment_pct)}% of your spending is on entertainment. "
                    "Is this aligned with your priorities?"
                ),
                category=Category.ENTERTAINMENT,
                amount=total(Category.ENTERTAINMENT),
            )
        )

    # 50/30/20 split, relative to income.
    if total_income > 0:
        needs_pct = _pct(sum((total(c) for c in NEEDS), _ZERO), total_income)
        wants_pct = _pct(sum((total(c) for c in WANTS), _ZERO), total_income)

        if needs_pct > 55:
            insights.append(
                SpendingInsight(
                    type=InsightType.WARNING,
                    title="Needs Exceeding 50%",
                    description=(
                        f"Your essential expenses are {_whole(needs_pct)}% of income "
                        "(50/30/20 rule suggests 50%). High fixed costs limit flexibility."
                    ),
                    action="Look for ways to reduce housing or transportation costs",
                )
            )

        if wants_pct > 35:
            insights.append(
                SpendingInsight(
                    type=InsightType.TIP,
                    title="Wants Spending High",
                    description=(
                        f"Discretionary spending is {_whole(wants_pct)}% of income. "
                        "Consider if each expense brings proportional value."
                    ),
                )
            )

    return insights


def _months_spanned(start: dt.date, end: dt.date) -> int:
    return max(1, (end.year - start.year) * 12 + (end.month - start.month) + 1)


def get_monthly_averages(
    transactions: Sequence[CategorizedTransaction],
) -> dict[Category, Decimal]:
    """Per-category absolute total divided by calendar months spanned.

    The span counts both end months (Jan 31 to Feb 1 is two months). Values
    are rounded to cents; every category is present.
    """

    totals: dict[Category, Decimal] = {c: _ZERO for c in Category}
    if not transactions:
        return totals

    dates = [tx.date for tx in transactions]
    months = Decimal(_months_spanned(min(dates), max(dates)))
    for tx in transactions:
        totals[tx.category] += abs(tx.amount)
    return {
        cat: (value / months).quantize(_CENT, rounding=ROUND_HALF_UP)
        for cat, value in totals.items()
    }


__all__ = [
    "NEEDS",
    "TOP_MERCHANTS",
    "WANTS",
    "analyze_spending",
    "generate_insights",
    "get_monthly_averages",
]
