"""schema-sync: Compare MySQL schema snapshots and plan validated migrations.

Diffs a desired (source) schema against the current (target) schema,
suggests table renames, classifies the risk of every change and generates
ordered MySQL DDL.  Nothing here connects to a database.

Usage:
    from schema_sync import compare, load_schema

    result = compare(load_schema("desired.json"), load_schema("current.json"))
    print(result.validation.format_report())
    if not result.blocked:
        print(";\n".join(result.sql_statements()))
"""

__version__ = "0.1.0"

# Errors
from schema_sync.errors import (
    MigrationBlockedError,
    SchemaSyncError,
    SchemaValidationError,
)

# Config
from schema_sync.config.loader import load_config
from schema_sync.config.models import SyncConfig

# Schema model
from schema_sync.schema.models import (
    CheckConstraint,
    Column,
    ColumnDiff,
    ForeignKeyConstraint,
    Index,
    Schema,
    SchemaDiff,
    Table,
    TableDiff,
    UniqueConstraint,
)

# Comparison and validation
from schema_sync.schema.comparator import compare_schemas
from schema_sync.schema.renames import detect_renamed_tables
from schema_sync.schema.snapshot import dump_schema, load_schema
from schema_sync.schema.validator import ValidationResult, validate_changes

# Migration
from schema_sync.migration.plan import MigrationPlan, plan_migration

# Pipeline
from schema_sync.pipeline import ComparisonResult, compare

__all__ = [
    # Errors
    "SchemaSyncError",
    "SchemaValidationError",
    "MigrationBlockedError",
    # Config
    "load_config",
    "SyncConfig",
    # Schema model
    "Schema",
    "Table",
    "Column",
    "Index",
    "ForeignKeyConstraint",
    "UniqueConstraint",
    "CheckConstraint",
    "SchemaDiff",
    "TableDiff",
    "ColumnDiff",
    # Comparison and validation
    "compare_schemas",
    "detect_renamed_tables",
    "validate_changes",
    "ValidationResult",
    "load_schema",
    "dump_schema",
    # Migration
    "plan_migration",
    "MigrationPlan",
    # Pipeline
    "compare",
    "ComparisonResult",
]
