"""Public interface for the ``finance_tracker`` package.

Personal finance tracking: validated transaction records, regex search with
highlighting, dashboard aggregates with a monthly budget cap, and JSON/SQL
persistence with export and import. The CLI lives in
:mod:`finance_tracker.cli`; this module only re-exports the core surface.
"""

from .models import (
    DEFAULT_CATEGORIES,
    BudgetStatus,
    CategoryTotal,
    DashboardSummary,
    ExportDocument,
    FieldValidation,
    FormValidation,
    ImportResult,
    Settings,
    SettingsChange,
    TransactionRecord,
    WriteResult,
)
from .reporting import budget_status, dashboard_summary
from .repository import RecordRepository
from .search import Matcher, RecordBrowser, compile_pattern, highlight_text
from .storage import (
    JsonFileStore,
    MemoryStore,
    RecordStore,
    SqlStore,
    export_data,
    import_data,
    open_store,
    validate_import_data,
)
from .validators import validate_all_fields

__all__ = [
    # Models / results
    "DEFAULT_CATEGORIES",
    "TransactionRecord",
    "Settings",
    "ExportDocument",
    "FieldValidation",
    "FormValidation",
    "WriteResult",
    "ImportResult",
    "SettingsChange",
    "CategoryTotal",
    "BudgetStatus",
    "DashboardSummary",
    # Core components
    "validate_all_fields",
    "RecordRepository",
    "Matcher",
    "RecordBrowser",
    "compile_pattern",
    "highlight_text",
    "budget_status",
    "dashboard_summary",
    # Storage
    "RecordStore",
    "MemoryStore",
    "JsonFileStore",
    "SqlStore",
    "open_store",
    "export_data",
    "validate_import_data",
    "import_data",
]
