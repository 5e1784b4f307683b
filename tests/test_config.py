import io
import logging

import pytest

from budget_analysis import logging_setup
from budget_analysis.config import DEFAULT_MODEL, Settings, load_settings
from budget_analysis.logging_setup import _parse_level, get_logger


def test_defaults_without_environment():
    settings = load_settings()

    assert settings == Settings()
    assert settings.ai_model == DEFAULT_MODEL
    assert not settings.ai_available


def test_reads_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("OPENAI_API_KEY", " sk-test ")
    monkeypatch.setenv("BUDGET_AI_MODEL", "gpt-test")
    monkeypatch.setenv("BUDGET_AI_CONCURRENCY", "4")
    monkeypatch.setenv("BUDGET_AI_MAX_ATTEMPTS", "5")

    settings = load_settings()

    assert settings.openai_api_key == "sk-test"
    assert settings.ai_available
    assert settings.ai_model == "gpt-test"
    assert settings.ai_concurrency == 4
    assert settings.ai_max_attempts == 5


def test_concurrency_is_capped(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BUDGET_AI_CONCURRENCY", "64")

    assert load_settings().ai_concurrency == 8


@pytest.mark.parametrize("raw", ["zero", "0", "-2"])
def test_invalid_values_fall_back_with_warning(
    monkeypatch: pytest.MonkeyPatch, caplog: pytest.LogCaptureFixture, raw: str
):
    monkeypatch.setenv("BUDGET_AI_MAX_OUTPUT_TOKENS", raw)

    with caplog.at_level(logging.WARNING, logger="budget_analysis.config"):
        settings = load_settings()

    assert settings.ai_max_output_tokens == 4096
    assert "config:invalid_value name=BUDGET_AI_MAX_OUTPUT_TOKENS" in caplog.text


@pytest.mark.parametrize(
    ("level", "expected"),
    [
        ("debug", logging.DEBUG),
        ("WARNING", logging.WARNING),
        ("10", 10),
        (logging.ERROR, logging.ERROR),
        ("nonsense", logging.INFO),
    ],
)
def test_parse_level(level, expected):
    assert _parse_level(level) == expected


def test_parse_level_reads_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("BUDGET_ANALYSIS_LOG_LEVEL", "error")

    assert _parse_level(None) == logging.ERROR


def test_configure_logging_installs_one_handler(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setattr(logging_setup, "_CONFIGURED", False)
    pkg = logging.getLogger("budget_analysis")
    saved = (list(pkg.handlers), pkg.level, pkg.propagate)
    stream = io.StringIO()
    try:
        logging_setup.configure_logging("DEBUG", fmt="%(name)s %(message)s", stream=stream)
        logging_setup.configure_logging("ERROR", stream=io.StringIO())

        get_logger("budget_analysis.duplicates").debug("merge:done added=%d", 2)

        assert stream.getvalue() == "budget_analysis.duplicates merge:done added=2\n"
        assert not any(isinstance(h, logging.NullHandler) for h in pkg.handlers)
        assert not pkg.propagate
    finally:
        pkg.handlers[:] = saved[0]
        pkg.setLevel(saved[1])
        pkg.propagate = saved[2]
