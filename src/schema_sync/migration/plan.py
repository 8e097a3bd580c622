"""Migration planning -- turn a schema diff into ordered DDL statements.

Statements are generated per entity by ``schema_sync.migration.sql`` and
then ordered so that every statement can run against the state left by the
ones before it:

1. RENAME TABLE (suggested renames, so later statements use the new name)
2. DROP CONSTRAINT, DROP INDEX, DROP COLUMN (dependents before columns)
3. DROP TABLE (child tables before parent tables; foreign keys that close
   a cycle between dropped tables are dropped first)
4. CREATE TABLE (parent tables before child tables)
5. ADD COLUMN, MODIFY COLUMN
6. CREATE INDEX, ADD CONSTRAINT (every table exists before an FK is added)

Usage:
    from schema_sync.migration.plan import plan_migration

    plan = plan_migration(diff, renames={"customers": "clients"})
    for sql in plan.sql_statements():
        print(sql + ";")
"""

import logging
from enum import Enum

from pydantic import BaseModel, Field

from schema_sync.migration import sql as ddl
from schema_sync.schema.models import (
    Constraint,
    ForeignKeyConstraint,
    Index,
    SchemaDiff,
    Table,
    TableDiff,
    UniqueConstraint,
)
from schema_sync.schema.renames import apply_table_renames

logger = logging.getLogger(__name__)


# ------------------------------------------------------------------
# Plan models
# ------------------------------------------------------------------


class StatementType(str, Enum):
    RENAME_TABLE = "RENAME_TABLE"
    DROP_CONSTRAINT = "DROP_CONSTRAINT"
    DROP_INDEX = "DROP_INDEX"
    DROP_COLUMN = "DROP_COLUMN"
    DROP_TABLE = "DROP_TABLE"
    CREATE_TABLE = "CREATE_TABLE"
    ADD_COLUMN = "ADD_COLUMN"
    MODIFY_COLUMN = "MODIFY_COLUMN"
    CREATE_INDEX = "CREATE_INDEX"
    ADD_CONSTRAINT = "ADD_CONSTRAINT"

    @property
    def execution_order(self) -> int:
        """Lower numbers execute first."""
        return list(StatementType).index(self)

    @property
    def is_destructive(self) -> bool:
        return self in _DESTRUCTIVE_TYPES


_DESTRUCTIVE_TYPES = {
    StatementType.DROP_TABLE,
    StatementType.DROP_COLUMN,
    StatementType.DROP_INDEX,
    StatementType.DROP_CONSTRAINT,
}


class MigrationStatement(BaseModel):
    """A single DDL statement in a migration plan."""

    sql: str
    type: StatementType
    description: str
    table_name: str = ""
    is_destructive: bool = False


class MigrationSummary(BaseModel):
    """Statement counts per category."""

    total_statements: int = 0
    destructive_count: int = 0
    tables_added: int = 0
    tables_removed: int = 0
    tables_renamed: int = 0
    tables_modified: int = 0
    columns_added: int = 0
    columns_removed: int = 0
    columns_modified: int = 0
    indexes_added: int = 0
    indexes_removed: int = 0
    constraints_added: int = 0
    constraints_removed: int = 0


class MigrationPlan(BaseModel):
    """Ordered migration statements with a summary and plain-text warnings.

    Example:
        >>> plan = MigrationPlan()
        >>> plan.has_destructive_operations
        False
    """

    statements: list[MigrationStatement] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    summary: MigrationSummary = Field(default_factory=MigrationSummary)

    @property
    def has_destructive_operations(self) -> bool:
        return self.summary.destructive_count > 0

    def sql_statements(self) -> list[str]:
        return [stmt.sql for stmt in self.statements]

    def statements_by_type(self, stmt_type: StatementType) -> list[MigrationStatement]:
        return [stmt for stmt in self.statements if stmt.type == stmt_type]

    def statements_for_table(self, table_name: str) -> list[MigrationStatement]:
        return [stmt for stmt in self.statements if stmt.table_name == table_name]

    def format_summary(self) -> str:
        """Format the plan summary as a human-readable report."""
        s = self.summary
        lines = [
            "Migration plan:",
            f"  Total statements: {s.total_statements}",
            f"  Destructive operations: {s.destructive_count}",
            f"  Tables: +{s.tables_added} -{s.tables_removed} ~{s.tables_modified}"
            + (f" (renamed {s.tables_renamed})" if s.tables_renamed else ""),
            f"  Columns: +{s.columns_added} -{s.columns_removed} ~{s.columns_modified}",
            f"  Indexes: +{s.indexes_added} -{s.indexes_removed}",
            f"  Constraints: +{s.constraints_added} -{s.constraints_removed}",
        ]
        if self.warnings:
            lines.append("\nWarnings:")
            for warning in self.warnings:
                lines.append(f"  - {warning}")
        return "\n".join(lines)


def _summarize(statements: list[MigrationStatement]) -> MigrationSummary:
    counters = {
        StatementType.CREATE_TABLE: "tables_added",
        StatementType.DROP_TABLE: "tables_removed",
        StatementType.RENAME_TABLE: "tables_renamed",
        StatementType.ADD_COLUMN: "columns_added",
        StatementType.DROP_COLUMN: "columns_removed",
        StatementType.MODIFY_COLUMN: "columns_modified",
        StatementType.CREATE_INDEX: "indexes_added",
        StatementType.DROP_INDEX: "indexes_removed",
        StatementType.ADD_CONSTRAINT: "constraints_added",
        StatementType.DROP_CONSTRAINT: "constraints_removed",
    }
    summary = MigrationSummary(total_statements=len(statements))
    modified_tables: set[str] = set()

    for stmt in statements:
        if stmt.is_destructive:
            summary.destructive_count += 1
        field_name = counters[stmt.type]
        setattr(summary, field_name, getattr(summary, field_name) + 1)
        if stmt.type in (
            StatementType.ADD_COLUMN,
            StatementType.DROP_COLUMN,
            StatementType.MODIFY_COLUMN,
        ):
            modified_tables.add(stmt.table_name)

    summary.tables_modified = len(modified_tables)
    return summary


# ------------------------------------------------------------------
# FK ordering
# ------------------------------------------------------------------


def _fk_dependencies(tables: list[Table]) -> dict[str, set[str]]:
    """Map each table to the tables it references via foreign keys."""
    dependencies: dict[str, set[str]] = {}
    for table in tables:
        dependencies[table.name] = {
            c.referenced_table
            for c in table.constraints.values()
            if isinstance(c, ForeignKeyConstraint) and c.referenced_table != table.name
        }
    return dependencies


def _topological_sort(dependencies: dict[str, set[str]], tables: list[str]) -> list[str]:
    """Topological sort of tables based on FK dependencies.

    Returns tables in forward order: parent tables first, child tables last.
    Cycles are broken by emitting the table where the cycle was detected.

    Args:
        dependencies: FK dependency graph (table -> set of referenced tables).
        tables: Table names to sort, in the order used to break ties.

    Returns:
        Tables sorted so that parent tables come before child tables.
    """
    relevant = {t: dependencies.get(t, set()) & set(tables) for t in tables}

    sorted_tables: list[str] = []
    visited: set[str] = set()
    visiting: set[str] = set()  # For cycle detection

    def visit(table: str) -> None:
        if table in visited or table in visiting:
            return
        visiting.add(table)
        for dep in sorted(relevant.get(table, set())):
            visit(dep)
        visiting.discard(table)
        visited.add(table)
        sorted_tables.append(table)

    for table in tables:
        visit(table)

    return sorted_tables


# ------------------------------------------------------------------
# Plan generation
# ------------------------------------------------------------------


class _PlanBuilder:
    """Collects statements with the keys used to order them."""

    def __init__(self) -> None:
        self._entries: list[tuple[tuple[int, int, str, int], MigrationStatement]] = []

    def add(
        self,
        stmt_type: StatementType,
        sql: str,
        description: str,
        table_name: str,
        rank: int = 0,
    ) -> None:
        stmt = MigrationStatement(
            sql=sql,
            type=stmt_type,
            description=description,
            table_name=table_name,
            is_destructive=stmt_type.is_destructive,
        )
        key = (stmt_type.execution_order, rank, table_name, len(self._entries))
        self._entries.append((key, stmt))

    def table_changes(self, table_diff: TableDiff) -> None:
        """Column and constraint statements of one modified table."""
        table = table_diff.table_name
        for column in table_diff.removed_columns:
            self.add(
                StatementType.DROP_COLUMN,
                ddl.drop_column_sql(table, column),
                f"Drop column {column.name} from table {table}",
                table,
            )
        for column in table_diff.added_columns:
            self.add(
                StatementType.ADD_COLUMN,
                ddl.add_column_sql(table, column),
                f"Add column {column.name} to table {table}",
                table,
            )
        for column_diff in table_diff.modified_columns:
            self.add(
                StatementType.MODIFY_COLUMN,
                ddl.modify_column_sql(table, column_diff),
                f"Modify column {column_diff.column_name} in table {table}",
                table,
            )

    def drop_constraint(self, constraint: Constraint) -> None:
        self.add(
            StatementType.DROP_CONSTRAINT,
            ddl.drop_constraint_sql(constraint),
            f"Drop {_kind_label(constraint)} constraint {constraint.name} "
            f"on table {constraint.table_name}",
            constraint.table_name,
        )

    def add_constraint(self, constraint: Constraint) -> None:
        self.add(
            StatementType.ADD_CONSTRAINT,
            ddl.add_constraint_sql(constraint),
            f"Add {_kind_label(constraint)} constraint {constraint.name} "
            f"to table {constraint.table_name}",
            constraint.table_name,
        )

    def drop_index(self, index: Index) -> None:
        self.add(
            StatementType.DROP_INDEX,
            ddl.drop_index_sql(index),
            f"Drop index {index.name} on table {index.table_name}",
            index.table_name,
        )

    def create_index(self, index: Index) -> None:
        self.add(
            StatementType.CREATE_INDEX,
            ddl.create_index_sql(index),
            f"Create index {index.name} on table {index.table_name}",
            index.table_name,
        )

    def statements(self) -> list[MigrationStatement]:
        return [stmt for _, stmt in sorted(self._entries, key=lambda entry: entry[0])]


def _kind_label(constraint: Constraint) -> str:
    return constraint.kind.lower().replace("_", " ")


def plan_migration(diff: SchemaDiff, renames: dict[str, str] | None = None) -> MigrationPlan:
    """Create an ordered migration plan from a schema diff.

    Args:
        diff: Diff from ``compare_schemas(source, target)``.  The caller is
            responsible for refusing to plan a diff with validation errors.
        renames: Optional ``{removed_name: added_name}`` mapping, usually from
            ``detect_renamed_tables``.  Each pair is emitted as RENAME TABLE
            plus the statements that reconcile the remaining differences,
            instead of DROP TABLE and CREATE TABLE.

    Returns:
        ``MigrationPlan`` with statements in execution order.

    Raises:
        SchemaValidationError: If an entity in the diff is structurally invalid.
        ValueError: If *renames* names a table that is not removed/added.

    Example:
        plan = plan_migration(diff)
        if plan.has_destructive_operations:
            print("Back up first!")
    """
    renames = dict(renames or {})
    # Leftover differences of renamed pairs become modified-table changes
    diff = apply_table_renames(diff, renames)
    added_by_name = {table.name: table for table in diff.added_tables}
    removed_by_name = {table.name: table for table in diff.removed_tables}

    builder = _PlanBuilder()

    # 1. Renames
    for old_name in sorted(renames):
        new_name = renames[old_name]
        builder.add(
            StatementType.RENAME_TABLE,
            ddl.rename_table_sql(old_name, new_name),
            f"Rename table {old_name} to {new_name}",
            new_name,
        )

    # 2. Dropped tables, children first
    dropped = diff.removed_tables
    drop_order = list(
        reversed(_topological_sort(_fk_dependencies(dropped), [t.name for t in dropped]))
    )
    drop_position = {name: position for position, name in enumerate(drop_order)}
    for name in drop_order:
        # FKs still pointing at a table dropped earlier (cycles) go first
        for constraint_name in sorted(removed_by_name[name].constraints):
            constraint = removed_by_name[name].constraints[constraint_name]
            if (
                isinstance(constraint, ForeignKeyConstraint)
                and constraint.referenced_table in drop_position
                and drop_position[constraint.referenced_table] < drop_position[name]
            ):
                builder.drop_constraint(constraint)
    for rank, name in enumerate(drop_order):
        builder.add(
            StatementType.DROP_TABLE,
            ddl.drop_table_sql(removed_by_name[name]),
            f"Drop table {name}",
            name,
            rank=rank,
        )

    # 3. Modified tables
    for table_diff in diff.modified_tables:
        builder.table_changes(table_diff)
    for constraint in diff.removed_constraints:
        builder.drop_constraint(constraint)
    for constraint in diff.added_constraints:
        builder.add_constraint(constraint)
    for index in diff.removed_indexes:
        builder.drop_index(index)
    for index in diff.added_indexes:
        builder.create_index(index)

    # 4. Created tables, parents first; secondary indexes and FK/CHECK constraints follow
    created = diff.added_tables
    create_order = _topological_sort(_fk_dependencies(created), [t.name for t in created])
    for rank, name in enumerate(create_order):
        table = added_by_name[name]
        builder.add(
            StatementType.CREATE_TABLE,
            ddl.create_table_sql(table),
            f"Create table {name}",
            name,
            rank=rank,
        )
        for index in table.indexes:
            if not index.is_primary:
                builder.create_index(index)
        for constraint_name in sorted(table.constraints):
            constraint = table.constraints[constraint_name]
            if not isinstance(constraint, UniqueConstraint):
                builder.add_constraint(constraint)

    statements = builder.statements()
    plan = MigrationPlan(statements=statements, summary=_summarize(statements))

    if plan.has_destructive_operations:
        plan.warnings.append(
            "This migration contains destructive operations that may result in data loss"
        )
        plan.warnings.append("Please ensure you have a backup before proceeding")

    logger.debug(
        f"Planned {plan.summary.total_statements} statements "
        f"({plan.summary.destructive_count} destructive)"
    )
    return plan
