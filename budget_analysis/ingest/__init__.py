"""Statement ingestion: format dispatch plus the CSV and OFX/QFX parsers."""

from .csv_statement import parse_csv_text
from .ofx_statement import parse_ofx_text
from .utils import parse_file, parse_statement

__all__ = ["parse_csv_text", "parse_file", "parse_ofx_text", "parse_statement"]
