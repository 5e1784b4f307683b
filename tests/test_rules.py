from datetime import date
from decimal import Decimal

import pytest

from budget_analysis.models import Category, RawTransaction, TransactionType
from budget_analysis.rules import (
    categorize_by_rules,
    categorize_transactions,
    extract_merchant,
    recategorize,
    update_transaction_category,
)


def _raw(description: str, amount: str = "-10.00", **kw) -> RawTransaction:
    return RawTransaction(
        date=kw.pop("date", date(2024, 1, 15)),
        description=description,
        amount=Decimal(amount),
        **kw,
    )


@pytest.mark.parametrize(
    ("description", "category", "subcategory"),
    [
        ("STARBUCKS STORE #123", Category.DINING, "Coffee"),
        ("PAYROLL DEPOSIT ACME", Category.INCOME, "Salary"),
        ("UBER EATS ORDER", Category.DINING, "Delivery"),
        ("UBER TRIP HELP.UBER.COM", Category.TRANSPORTATION, "Rideshare"),
        ("AMAZON PRIME MEMBERSHIP", Category.SUBSCRIPTIONS, "Amazon Prime"),
        ("AMAZON.COM*MK1234", Category.SHOPPING, "Online Shopping"),
        ("NETFLIX.COM", Category.SUBSCRIPTIONS, "Streaming"),
        ("OVERDRAFT FEE", Category.FEES, "Bank Fee"),
        ("NAVIENT STUDENT LN", Category.DEBT, "Student Loan"),
    ],
)
def test_first_matching_pattern_wins(description, category, subcategory):
    decision = categorize_by_rules(_raw(description))

    assert (decision.category, decision.subcategory) == (category, subcategory)
    assert decision.confidence == 0.85


def test_incoming_money_heuristics():
    refund = categorize_by_rules(_raw("MERCHANT REFUND 8812", "12.00"))
    interest = categorize_by_rules(_raw("INTEREST PAID", "0.42"))

    assert (refund.category, refund.subcategory, refund.confidence) == (
        Category.INCOME,
        "Other Income",
        0.7,
    )
    assert (interest.category, interest.subcategory, interest.confidence) == (
        Category.INCOME,
        "Interest",
        0.9,
    )


def test_credit_type_counts_as_incoming():
    tx = _raw("MISC DEPOSIT", "-5.00", type=TransactionType.CREDIT)

    assert categorize_by_rules(tx).subcategory == "Other Income"


def test_outgoing_without_pattern_is_uncategorized():
    decision = categorize_by_rules(_raw("XYZZY 0042"))

    assert (decision.category, decision.subcategory, decision.confidence) == (
        Category.OTHER,
        "Uncategorized",
        0.3,
    )


@pytest.mark.parametrize(
    ("description", "expected"),
    [
        ("POS STARBUCKS STORE #123 SEATTLE WA", "STARBUCKS STORE #123"),
        ("ACH NETFLIX.COM 01/15 LOS GATOS", "NETFLIX.COM"),
        ("TRADER JOE'S #552", "TRADER JOE'S"),
        ("XY 123", None),
        ("", None),
    ],
)
def test_extract_merchant(description, expected):
    assert extract_merchant(description) == expected


def test_categorize_transactions_assigns_unique_ids_and_merchant():
    raw = [_raw("STARBUCKS STORE #123"), _raw("STARBUCKS STORE #123", date=date(2024, 1, 16))]

    out = categorize_transactions(raw)

    assert len({t.id for t in out}) == 2
    assert all(t.merchant == "STARBUCKS STORE" for t in out)
    assert all(not t.user_override for t in out)


def test_update_category_pins_override():
    txs = categorize_transactions([_raw("XYZZY 0042"), _raw("NETFLIX.COM")])
    target = txs[0].id

    updated = update_transaction_category(txs, target, Category.GROCERIES, "Farmers Market")

    edited = next(t for t in updated if t.id == target)
    assert edited.category is Category.GROCERIES
    assert edited.subcategory == "Farmers Market"
    assert edited.confidence == 1.0
    assert edited.user_override
    assert updated[1] == txs[1]


def test_update_category_blank_subcategory_uses_label():
    txs = categorize_transactions([_raw("XYZZY 0042")])

    updated = update_transaction_category(txs, txs[0].id, "pets", "  ")

    assert updated[0].category is Category.PETS
    assert updated[0].subcategory == "Pets"


def test_update_category_unknown_id_raises():
    txs = categorize_transactions([_raw("XYZZY 0042")])

    with pytest.raises(KeyError):
        update_transaction_category(txs, "nope", Category.PETS, "Vet")


def test_recategorize_leaves_overrides_untouched():
    txs = categorize_transactions([_raw("STARBUCKS STORE #123"), _raw("NETFLIX.COM")])
    txs = update_transaction_category(txs, txs[0].id, Category.GROCERIES, "Beans")

    out = recategorize(txs)

    assert out[0] == txs[0]
    assert out[1].category is Category.SUBSCRIPTIONS
    assert out[1].id == txs[1].id
