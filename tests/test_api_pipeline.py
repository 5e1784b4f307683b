from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest

import budget_analysis.categorize as categorize_mod
from budget_analysis import api
from budget_analysis.config import Settings
from budget_analysis.models import Category, RecurringFrequency
from tests.helpers.openai_stub import OpenAIStub

JAN = (
    "jan.csv",
    "Transaction Date,Description,Amount\n"
    "01/05/2024,SPOTIFY USA,-10.99\n"
    "01/15/2024,STARBUCKS STORE #123,-5.75\n"
    "01/16/2024,PAYROLL DEPOSIT ACME,2500.00\n",
)
FEB = (
    "feb.csv",
    "Transaction Date,Description,Amount\n"
    "02/04/2024,SPOTIFY USA,-10.99\n"
    "02/10/2024,WHOLE FOODS MARKET,-82.10\n",
)


def _by_description(state: api.PipelineState, description: str):
    return [t for t in state.categorized_transactions if t.description == description]


def test_run_pipeline_from_uploads():
    state = api.run_pipeline([JAN])

    assert len(state.raw_transactions) == 3
    assert len(state.categorized_transactions) == 3
    assert state.errors == ()
    assert state.analysis is not None
    assert state.analysis.total_income == Decimal("2500.00")
    assert state.analysis.total_expenses == Decimal("16.74")
    starbucks = _by_description(state, "STARBUCKS STORE #123")[0]
    assert (starbucks.category, starbucks.subcategory) == (Category.DINING, "Coffee")


def test_run_pipeline_reads_paths(tmp_path: Path):
    path = tmp_path / "jan.csv"
    path.write_text(JAN[1])

    state = api.run_pipeline([path])

    assert len(state.categorized_transactions) == 3


def test_errors_are_prefixed_with_file_name(tmp_path: Path):
    bad = ("bad.csv", "Date,Description,Amount\nsomeday,COFFEE,-3.00\n01/02/2024,TEA,-2.00\n")

    state = api.run_pipeline([bad, tmp_path / "missing.csv"])

    assert len(state.categorized_transactions) == 1
    assert state.errors[0].startswith("bad.csv: Row 1: Invalid date")
    assert state.errors[1].startswith("missing.csv: Could not read file")


def test_no_transactions_means_no_analysis():
    state = api.run_pipeline([("empty.csv", "Date,Description,Amount\n")])

    assert state.categorized_transactions == ()
    assert state.analysis is None
    assert state.errors == ("empty.csv: No data found in file",)


def test_recurrence_spans_statements():
    state = api.run_pipeline([JAN])
    assert not _by_description(state, "SPOTIFY USA")[0].is_recurring

    state = api.add_statements(state, [FEB])

    spotify = _by_description(state, "SPOTIFY USA")
    assert len(spotify) == 2
    assert all(t.recurring_frequency is RecurringFrequency.MONTHLY for t in spotify)
    assert len(state.analysis.recurring_expenses) == 2


def test_adding_the_same_statement_twice_changes_nothing():
    once = api.run_pipeline([JAN])

    twice = api.add_statements(once, [JAN])

    assert twice.raw_transactions == once.raw_transactions
    assert twice.categorized_transactions == once.categorized_transactions


def test_user_edit_survives_new_statements():
    state = api.run_pipeline([JAN])
    target = _by_description(state, "STARBUCKS STORE #123")[0]

    state = api.update_category(state, target.id, Category.GROCERIES, "Beans")
    assert state.analysis.by_category[Category.GROCERIES].total == Decimal("5.75")

    state = api.add_statements(state, [FEB])

    edited = next(t for t in state.categorized_transactions if t.id == target.id)
    assert (edited.category, edited.subcategory, edited.confidence) == (
        Category.GROCERIES,
        "Beans",
        1.0,
    )
    assert edited.user_override


def test_update_category_unknown_id():
    state = api.run_pipeline([JAN])

    with pytest.raises(KeyError):
        api.update_category(state, "does-not-exist", Category.PETS)


def test_bank_detected_is_last_reported():
    chase = (
        "chase.csv",
        "Posting Date,Description,Amount\n01/02/2024,CHASE CREDIT CRD AUTOPAY,-50.00\n",
    )

    state = api.run_pipeline([chase, FEB])

    assert state.bank_detected == "Chase"


def test_reset_clears_everything():
    assert api.reset() == api.PipelineState()


def test_apply_ai_keeps_user_edits(monkeypatch: pytest.MonkeyPatch):
    def decide(item: dict[str, Any]) -> dict[str, Any]:
        return {"category": "entertainment", "subcategory": "Music", "confidence": 0.9}

    stub = OpenAIStub(decide)
    monkeypatch.setattr(categorize_mod, "OpenAI", stub.factory())
    state = api.run_pipeline([JAN])
    payroll = _by_description(state, "PAYROLL DEPOSIT ACME")[0]
    state = api.update_category(state, payroll.id, Category.INCOME, "Salary")

    state = api.apply_ai(state, settings=Settings(openai_api_key="test-key"))

    assert _by_description(state, "PAYROLL DEPOSIT ACME")[0].category is Category.INCOME
    assert _by_description(state, "SPOTIFY USA")[0].category is Category.ENTERTAINMENT
    assert len(stub.calls) == 1
    assert "PAYROLL" not in stub.calls[0]["input"]


def test_run_pipeline_with_ai(monkeypatch: pytest.MonkeyPatch):
    def decide(item: dict[str, Any]) -> dict[str, Any]:
        return {"category": "shopping", "subcategory": "General", "confidence": 0.8}

    monkeypatch.setattr(categorize_mod, "OpenAI", OpenAIStub(decide).factory())

    state = api.run_pipeline([FEB], use_ai=True, settings=Settings(openai_api_key="test-key"))

    assert {t.category for t in state.categorized_transactions} == {Category.SHOPPING}
