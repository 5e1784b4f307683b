"""Pytest configuration for test isolation.

The package reads its settings (``OPENAI_API_KEY``, ``BUDGET_AI_*``,
``BUDGET_ANALYSIS_LOG_LEVEL``) from the environment, and the CLI also loads a
``.env`` from the working directory. A developer's shell or a stray ``.env``
would otherwise leak into test runs (for example, enabling real OpenAI calls),
so every test starts from a clean environment inside its own temp directory.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

_ISOLATED_PREFIXES = ("BUDGET_",)
_ISOLATED_NAMES = ("OPENAI_API_KEY",)


@pytest.fixture(autouse=True)
def _isolate_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    for name in list(os.environ):
        if name.startswith(_ISOLATED_PREFIXES) or name in _ISOLATED_NAMES:
            monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
