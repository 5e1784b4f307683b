import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

import budget_analysis.cli as cli
from budget_analysis.cli import app

runner = CliRunner()

STATEMENT = (
    "Transaction Date,Description,Amount\n"
    "01/05/2024,SPOTIFY USA,-10.99\n"
    "01/15/2024,STARBUCKS STORE #123,-5.75\n"
    "01/16/2024,PAYROLL DEPOSIT ACME,2500.00\n"
)


@pytest.fixture(autouse=True)
def _no_global_logging(monkeypatch: pytest.MonkeyPatch) -> None:
    # The root callback would otherwise install a handler on the package logger.
    monkeypatch.setattr(cli, "configure_logging", lambda level=None: None)


@pytest.fixture
def statement(tmp_path: Path) -> Path:
    path = tmp_path / "jan.csv"
    path.write_text(STATEMENT)
    return path


@pytest.fixture
def empty_statement(tmp_path: Path) -> Path:
    path = tmp_path / "empty.csv"
    path.write_text("Transaction Date,Description,Amount\n")
    return path


def test_parse_prints_one_line_per_transaction(statement: Path):
    result = runner.invoke(app, ["parse", str(statement)])

    assert result.exit_code == 0
    assert "2024-01-15\t-5.75\tSTARBUCKS STORE #123" in result.output
    assert "2024-01-16\t2500.00\tPAYROLL DEPOSIT ACME" in result.output


def test_parse_missing_file_exits_nonzero(tmp_path: Path):
    result = runner.invoke(app, ["parse", str(tmp_path / "nope.csv")])

    assert result.exit_code == 1
    assert "nope.csv: Could not read file" in result.output


def test_categorize_prints_decisions(statement: Path):
    result = runner.invoke(app, ["categorize", str(statement)])

    assert result.exit_code == 0
    lines = [line for line in result.output.splitlines() if "\t" in line]
    assert len(lines) == 3
    assert all(len(line.split("\t")) == 6 for line in lines)
    starbucks = next(line for line in lines if "\t2024-01-15\t" in line)
    assert starbucks.endswith("\t-5.75\tdining\tCoffee\t0.85")


def test_categorize_ai_without_key_warns_and_uses_rules(statement: Path):
    result = runner.invoke(app, ["categorize", "--ai", str(statement)])

    assert result.exit_code == 0
    assert "OPENAI_API_KEY is not set" in result.output
    assert "\tdining\tCoffee\t0.85" in result.output


def test_analyze_json(statement: Path):
    result = runner.invoke(app, ["analyze", "--json", str(statement)])

    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["total_income"] == "2500.00"
    assert payload["total_expenses"] == "16.74"
    assert payload["date_range"] == {"start": "2024-01-05", "end": "2024-01-16"}
    assert payload["by_category"]["dining"]["count"] == 1
    assert "High Dining Spending" in [i["title"] for i in payload["insights"]]


def test_analyze_renders_summary(statement: Path):
    result = runner.invoke(app, ["analyze", str(statement)])

    assert result.exit_code == 0
    assert "Statement period: 2024-01-05 to 2024-01-16" in result.output
    assert "Spending by category" in result.output
    assert "High Dining Spending" in result.output


def test_analyze_without_transactions_fails(empty_statement: Path):
    result = runner.invoke(app, ["analyze", str(empty_statement)])

    assert result.exit_code == 1
    assert "no transactions found" in result.output
    assert "empty.csv: No data found in file" in result.output
