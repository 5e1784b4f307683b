"""Public interface for the ``budget_analysis`` package.

This module exposes the package's pipeline functions and public models/types
as the stable import surface. There is no runtime logic here, only symbol
re-exports.
"""

from .analyzer import analyze_spending, generate_insights, get_monthly_averages
from .api import (
    PipelineState,
    add_statements,
    apply_ai,
    ingest_statements,
    reset,
    run_pipeline,
    update_category,
)
from .categorize import apply_ai_categories, categorize_transactions_with_ai, categorize_with_ai
from .config import Settings, load_settings
from .duplicates import merge_transactions
from .ingest import parse_csv_text, parse_file, parse_ofx_text, parse_statement
from .models import (
    CATEGORY_INFO,
    Category,
    CategorizedTransaction,
    InsightType,
    ParseResult,
    RawTransaction,
    RecurringFrequency,
    SpendingAnalysis,
    SpendingInsight,
    TransactionType,
)
from .normalizers import parse_amount, parse_date
from .recurring import detect_recurring
from .rules import (
    categorize_by_rules,
    categorize_transactions,
    extract_merchant,
    recategorize,
    update_transaction_category,
)

__all__ = [
    # Pipeline
    "PipelineState",
    "add_statements",
    "apply_ai",
    "ingest_statements",
    "reset",
    "run_pipeline",
    "update_category",
    # Stages
    "parse_amount",
    "parse_date",
    "parse_csv_text",
    "parse_ofx_text",
    "parse_file",
    "parse_statement",
    "merge_transactions",
    "categorize_by_rules",
    "categorize_transactions",
    "extract_merchant",
    "recategorize",
    "update_transaction_category",
    "detect_recurring",
    "categorize_with_ai",
    "categorize_transactions_with_ai",
    "apply_ai_categories",
    "analyze_spending",
    "generate_insights",
    "get_monthly_averages",
    # Configuration
    "Settings",
    "load_settings",
    # Models / types
    "CATEGORY_INFO",
    "Category",
    "CategorizedTransaction",
    "InsightType",
    "ParseResult",
    "RawTransaction",
    "RecurringFrequency",
    "SpendingAnalysis",
    "SpendingInsight",
    "TransactionType",
]
