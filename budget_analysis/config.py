"""Runtime settings resolved from environment variables.

The CLI loads a local ``.env`` (``python-dotenv``, never overriding variables
that are already set) before calling :func:`load_settings`. Library callers
may build :class:`Settings` directly instead.

Variables
---------
``OPENAI_API_KEY``
    Enables the optional AI categorization oracle when present.
``BUDGET_AI_MODEL``
    Model name for the Responses API (default ``gpt-5-mini``).
``BUDGET_AI_CONCURRENCY``
    Number of oracle batches in flight at once (default 1, capped at 8).
``BUDGET_AI_MAX_ATTEMPTS``
    Attempts per batch for retryable (429/5xx) failures (default 3).
``BUDGET_AI_MAX_OUTPUT_TOKENS``
    Output token cap per oracle call (default 4096).
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from .logging_setup import get_logger

_logger = get_logger("budget_analysis.config")

DEFAULT_MODEL = "gpt-5-mini"
_MAX_CONCURRENCY = 8


@dataclass(frozen=True, slots=True)
class Settings:
    openai_api_key: str | None = None
    ai_model: str = DEFAULT_MODEL
    ai_concurrency: int = 1
    ai_max_attempts: int = 3
    ai_max_output_tokens: int = 4096

    @property
    def ai_available(self) -> bool:
        return bool(self.openai_api_key)


def _positive_int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        value = 0
    if value <= 0:
        _logger.warning("config:invalid_value name=%s value=%r default=%d", name, raw, default)
        return default
    return value


def load_settings() -> Settings:
    """Build :class:`Settings` from the current environment."""

    api_key = (os.getenv("OPENAI_API_KEY") or "").strip() or None
    model = (os.getenv("BUDGET_AI_MODEL") or "").strip() or DEFAULT_MODEL
    concurrency = min(_positive_int_env("BUDGET_AI_CONCURRENCY", 1), _MAX_CONCURRENCY)
    return Settings(
        openai_api_key=api_key,
        ai_model=model,
        ai_concurrency=concurrency,
        ai_max_attempts=_positive_int_env("BUDGET_AI_MAX_ATTEMPTS", 3),
        ai_max_output_tokens=_positive_int_env("BUDGET_AI_MAX_OUTPUT_TOKENS", 4096),
    )


__all__ = ["DEFAULT_MODEL", "Settings", "load_settings"]
