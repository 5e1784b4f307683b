from dataclasses import replace
from datetime import date
from decimal import Decimal

from budget_analysis.analyzer import analyze_spending, generate_insights, get_monthly_averages
from budget_analysis.models import (
    Category,
    CategorizedTransaction,
    CategoryBucket,
    InsightType,
    RawTransaction,
    RecurringFrequency,
)

_counter = iter(range(10_000))


def _tx(
    amount: str,
    category: Category,
    *,
    when: date = date(2024, 1, 15),
    merchant: str | None = None,
    frequency: RecurringFrequency | None = None,
) -> CategorizedTransaction:
    raw = RawTransaction(date=when, description=f"TX {category}", amount=Decimal(amount))
    tx = CategorizedTransaction.from_raw(
        raw,
        id=f"t{next(_counter)}",
        category=category,
        subcategory="Test",
        confidence=0.85,
        merchant=merchant,
        is_recurring=frequency is not None,
    )
    if frequency is not None:
        tx = replace(tx, recurring_frequency=frequency)
    return tx


def _buckets(**totals: str) -> dict[Category, CategoryBucket]:
    out = {c: CategoryBucket() for c in Category}
    for name, value in totals.items():
        out[Category(name)] = CategoryBucket(total=Decimal(value), count=1)
    return out


def _titles(insights) -> list[str]:
    return [i.title for i in insights]


def test_empty_input():
    analysis = analyze_spending([])

    assert analysis.total_income == 0
    assert analysis.total_expenses == 0
    assert analysis.insights == ()
    assert set(analysis.by_category) == set(Category)
    assert analysis.date_range.start == analysis.date_range.end == date.today()


def test_income_expense_partition_and_buckets():
    txs = [
        _tx("2500.00", Category.INCOME),
        _tx("-5.75", Category.DINING, merchant="STARBUCKS STORE"),
        _tx("-100.00", Category.GROCERIES, merchant="WHOLE FOODS MARKET"),
        # Positive amount in an expense category still counts as income.
        _tx("20.00", Category.SHOPPING),
    ]

    analysis = analyze_spending(txs)

    assert analysis.total_income == Decimal("2520.00")
    assert analysis.total_expenses == Decimal("105.75")
    assert analysis.net_cashflow == Decimal("2414.25")
    assert analysis.total_income + analysis.total_expenses == sum(abs(t.amount) for t in txs)
    assert set(analysis.by_category) == set(Category)
    assert analysis.by_category[Category.DINING].total == Decimal("5.75")
    assert analysis.by_category[Category.SHOPPING].count == 1
    assert analysis.by_category[Category.PETS] == CategoryBucket()


def test_top_merchants_ranked_by_outgoing_spend():
    txs = [_tx("-1.00", Category.SHOPPING, merchant=f"SHOP {i}") for i in range(12)]
    txs += [_tx("-50.00", Category.SHOPPING, merchant="SHOP 3")]
    txs += [_tx("75.00", Category.INCOME, merchant="EMPLOYER")]

    merchants = analyze_spending(txs).top_merchants

    assert len(merchants) == 10
    assert merchants[0].name == "SHOP 3"
    assert merchants[0].total == Decimal("51.00")
    assert merchants[0].count == 2
    assert "EMPLOYER" not in {m.name for m in merchants}


def test_recurring_expenses_and_date_range():
    txs = [
        _tx(
            "-15.49",
            Category.SUBSCRIPTIONS,
            when=date(2024, 1, 5),
            frequency=RecurringFrequency.MONTHLY,
        ),
        _tx("3000", Category.INCOME, when=date(2024, 2, 1), frequency=RecurringFrequency.BIWEEKLY),
        _tx("-4.00", Category.DINING, when=date(2024, 3, 9)),
    ]

    analysis = analyze_spending(txs)

    assert [t.amount for t in analysis.recurring_expenses] == [Decimal("-15.49")]
    assert analysis.date_range.start == date(2024, 1, 5)
    assert analysis.date_range.end == date(2024, 3, 9)
    assert "Monthly Commitments" in _titles(analysis.insights)


def test_insight_battery_order_and_text():
    buckets = _buckets(
        dining="300",
        subscriptions="120.50",
        groceries="50",
        fees="60",
        entertainment="200",
    )

    insights = generate_insights(
        buckets,
        total_income=Decimal("500"),
        total_expenses=Decimal("1000"),
        recurring_expenses=[],
    )

    assert _titles(insights) == [
        "High Dining Spending",
        "Subscription Audit",
        "No Savings Detected",
        "Bank Fees Add Up",
        "Spending More Than Earning",
        "Entertainment Spending",
        "Wants Spending High",
    ]
    dining = insights[0]
    assert dining.type is InsightType.WARNING
    assert dining.description.startswith("You're spending 30% of expenses on dining out.")
    assert dining.amount == Decimal("300")
    # Half-up whole dollars.
    assert "$121/month" in insights[1].description
    assert "$500 more than you earned" in insights[4].description


def test_grocery_and_cash_flow_insights():
    buckets = _buckets(groceries="100", savings="50", housing="800")

    insights = generate_insights(
        buckets,
        total_income=Decimal("1500"),
        total_expenses=Decimal("1000"),
        recurring_expenses=[],
    )

    assert _titles(insights) == [
        "Healthy Grocery Spending",
        "Positive Cash Flow",
        "Needs Exceeding 50%",
    ]
    assert "$500 available" in insights[1].description
    assert insights[2].description.startswith("Your essential expenses are 60% of income")


def test_shift_dining_to_groceries():
    buckets = _buckets(dining="120", groceries="10", savings="1")

    insights = generate_insights(
        buckets,
        total_income=Decimal("0"),
        total_expenses=Decimal("1000"),
        recurring_expenses=[],
    )

    assert "Shift Dining to Groceries" in _titles(insights)
    # No income: the 50/30/20 checks are skipped.
    assert "Needs Exceeding 50%" not in _titles(insights)


def test_monthly_averages_span_calendar_months():
    txs = [
        _tx("-300.00", Category.GROCERIES, when=date(2024, 1, 31)),
        _tx("-100.00", Category.GROCERIES, when=date(2024, 3, 1)),
        _tx("-10.00", Category.DINING, when=date(2024, 2, 10)),
    ]

    averages = get_monthly_averages(txs)

    assert averages[Category.GROCERIES] == Decimal("133.33")
    assert averages[Category.DINING] == Decimal("3.33")
    assert averages[Category.PETS] == Decimal("0.00")
    assert set(averages) == set(Category)


def test_monthly_averages_empty():
    averages = get_monthly_averages([])

    assert set(averages) == set(Category)
    assert all(v == 0 for v in averages.values())
