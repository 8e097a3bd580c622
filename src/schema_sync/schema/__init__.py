"""Schema model, comparison, rename detection, risk validation and snapshots.

Usage:
    from schema_sync.schema import Schema, Table, Column, Index
    from schema_sync.schema import compare_schemas, detect_renamed_tables
    from schema_sync.schema import validate_changes, load_schema
"""

from schema_sync.schema.comparator import (
    compare_schemas,
    compare_table_indexes,
    compare_tables,
    get_schema_stats,
)
from schema_sync.schema.models import (
    CheckConstraint,
    Column,
    ColumnDiff,
    Constraint,
    ForeignKeyConstraint,
    Index,
    Schema,
    SchemaDiff,
    Table,
    TableDiff,
    UniqueConstraint,
)
from schema_sync.schema.renames import (
    apply_table_renames,
    detect_renamed_tables,
    table_similarity,
)
from schema_sync.schema.snapshot import dump_schema, load_schema, parse_schema
from schema_sync.schema.validator import (
    ChangeError,
    ChangeWarning,
    ErrorType,
    Severity,
    ValidationResult,
    WarningType,
    validate_changes,
)

__all__ = [
    "Schema",
    "Table",
    "Column",
    "Index",
    "Constraint",
    "ForeignKeyConstraint",
    "UniqueConstraint",
    "CheckConstraint",
    "SchemaDiff",
    "TableDiff",
    "ColumnDiff",
    "compare_schemas",
    "compare_tables",
    "compare_table_indexes",
    "get_schema_stats",
    "detect_renamed_tables",
    "apply_table_renames",
    "table_similarity",
    "validate_changes",
    "ValidationResult",
    "ChangeWarning",
    "ChangeError",
    "WarningType",
    "ErrorType",
    "Severity",
    "load_schema",
    "parse_schema",
    "dump_schema",
]
