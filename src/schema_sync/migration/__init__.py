"""MySQL DDL generation and migration planning.

Usage:
    from schema_sync.migration import plan_migration, MigrationPlan
    from schema_sync.migration import create_table_sql, add_column_sql
"""

from schema_sync.migration.plan import (
    MigrationPlan,
    MigrationStatement,
    MigrationSummary,
    StatementType,
    plan_migration,
)
from schema_sync.migration.sql import (
    add_column_sql,
    add_constraint_sql,
    column_definition,
    create_index_sql,
    create_table_sql,
    drop_column_sql,
    drop_constraint_sql,
    drop_index_sql,
    drop_table_sql,
    modify_column_sql,
    rename_table_sql,
)

__all__ = [
    "plan_migration",
    "MigrationPlan",
    "MigrationStatement",
    "MigrationSummary",
    "StatementType",
    "create_table_sql",
    "drop_table_sql",
    "rename_table_sql",
    "add_column_sql",
    "drop_column_sql",
    "modify_column_sql",
    "column_definition",
    "create_index_sql",
    "drop_index_sql",
    "add_constraint_sql",
    "drop_constraint_sql",
]
