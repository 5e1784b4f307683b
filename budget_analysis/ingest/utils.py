"""Statement format dispatch shared by the API and the CLI.

The file extension picks the parser: ``.ofx``/``.qfx`` go to the markup
parser, everything else (``.csv`` included) to the delimited-text parser.
Neither entry point raises for bad content; every failure ends up in
:attr:`ParseResult.errors`.
"""

from __future__ import annotations

from os import PathLike
from pathlib import Path

from ..logging_setup import get_logger
from ..models import ParseResult
from .csv_statement import parse_csv_text
from .ofx_statement import parse_ofx_text

_logger = get_logger("budget_analysis.ingest")

_MARKUP_SUFFIXES = frozenset({".ofx", ".qfx"})


def decode_statement(content: bytes | str) -> str:
    if isinstance(content, str):
        return content.lstrip("\ufeff")
    # utf-8-sig drops a leading BOM; undecodable bytes are replaced, not fatal.
    return content.decode("utf-8-sig", errors="replace")


def parse_statement(content: bytes | str, filename: str) -> ParseResult:
    """Parse raw statement content, choosing the format from ``filename``."""

    suffix = Path(filename).suffix.lower()
    try:
        text = decode_statement(content)
        if suffix in _MARKUP_SUFFIXES:
            return parse_ofx_text(text)
        return parse_csv_text(text)
    except Exception as e:  # noqa: BLE001 - the parse boundary never raises
        _logger.error(
            "parse_statement:failed filename=%s error=%s", filename, e.__class__.__name__
        )
        return ParseResult.failure(str(e) or f"Failed to parse {filename}")


def parse_file(path: str | PathLike[str]) -> ParseResult:
    """Read ``path`` from disk and parse it with :func:`parse_statement`.

    I/O problems (missing file, permissions) are reported as a failed result.
    """

    p = Path(path)
    try:
        content = p.read_bytes()
    except OSError as e:
        _logger.error("parse_file:unreadable path=%s error=%s", p, e.__class__.__name__)
        return ParseResult.failure(f"Could not read file: {e.strerror or e}")
    return parse_statement(content, p.name)


__all__ = ["decode_statement", "parse_file", "parse_statement"]
