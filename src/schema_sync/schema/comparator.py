"""Schema comparison by name identity.

Compares a source schema (desired end state) against a target schema
(current state) and produces a ``SchemaDiff``.
Pure logic -- no I/O, no database connections.

Usage:
    from schema_sync.schema.comparator import compare_schemas

    diff = compare_schemas(source, target)
    if diff.is_empty:
        print("Schemas are identical")
    for table in diff.added_tables:
        print(f"+ {table.name}")

Every loop over a name-keyed collection runs in sorted order so that the
same inputs always produce the same diff.
"""

import logging
from collections.abc import Callable
from typing import TypeVar

from schema_sync.schema.models import (
    Column,
    ColumnDiff,
    Constraint,
    Index,
    Schema,
    SchemaDiff,
    Table,
    TableDiff,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ============================================================================
# Equality helpers
# ============================================================================


def columns_equal(a: Column, b: Column) -> bool:
    """Compare two columns on name, type, nullability, default and extra.

    ``position`` is deliberately excluded.
    """
    return (
        a.name == b.name
        and a.data_type == b.data_type
        and a.is_nullable == b.is_nullable
        and a.default == b.default
        and a.extra == b.extra
    )


def indexes_equal(a: Index, b: Index) -> bool:
    """Compare two indexes on every field (column order included)."""
    return a == b


def constraints_equal(a: Constraint, b: Constraint) -> bool:
    """Compare two constraints on kind and every kind-specific field."""
    return a.kind == b.kind and a == b


# ============================================================================
# Table comparison
# ============================================================================


def compare_tables(source: Table, target: Table) -> TableDiff:
    """Compare columns and constraints of two versions of a table.

    Args:
        source: Desired version of the table.
        target: Current version of the table.

    Returns:
        ``TableDiff`` named after the source table.  Same-name constraints
        with different properties are reported as removed (target version)
        plus added (source version).

    Example:
        >>> old = Table(name="t", columns={"id": Column(name="id", data_type="int")})
        >>> new = Table(name="t", columns={"id": Column(name="id", data_type="bigint")})
        >>> compare_tables(new, old).modified_columns[0].column_name
        'id'
    """
    source_cols = set(source.columns)
    target_cols = set(target.columns)

    added_columns = [source.columns[name] for name in sorted(source_cols - target_cols)]
    removed_columns = [target.columns[name] for name in sorted(target_cols - source_cols)]

    modified_columns: list[ColumnDiff] = []
    for name in sorted(source_cols & target_cols):
        source_col = source.columns[name]
        target_col = target.columns[name]
        if not columns_equal(source_col, target_col):
            modified_columns.append(
                ColumnDiff(column_name=name, old_column=target_col, new_column=source_col)
            )

    added_constraints, removed_constraints = _compare_named(
        source.constraints, target.constraints, constraints_equal
    )

    return TableDiff(
        table_name=source.name,
        added_columns=added_columns,
        removed_columns=removed_columns,
        modified_columns=modified_columns,
        added_constraints=added_constraints,
        removed_constraints=removed_constraints,
    )


def compare_table_indexes(source: Table, target: Table) -> tuple[list[Index], list[Index]]:
    """Compare the indexes of two versions of a table.

    Returns:
        ``(added, removed)``.  A same-name index with a different structure
        appears in both lists (new version added, old version removed).
    """
    source_map = {index.name: index for index in source.indexes}
    target_map = {index.name: index for index in target.indexes}
    return _compare_named(source_map, target_map, indexes_equal)


def _compare_named(
    source_map: dict[str, T],
    target_map: dict[str, T],
    equal: Callable[[T, T], bool],
) -> tuple[list[T], list[T]]:
    """Shared added/removed/replaced logic for name-keyed collections."""
    source_names = set(source_map)
    target_names = set(target_map)

    added = [source_map[name] for name in sorted(source_names - target_names)]
    removed = [target_map[name] for name in sorted(target_names - source_names)]

    for name in sorted(source_names & target_names):
        if not equal(source_map[name], target_map[name]):
            # Treat as remove old and add new
            removed.append(target_map[name])
            added.append(source_map[name])

    return added, removed


# ============================================================================
# Schema comparison
# ============================================================================


def compare_schemas(source: Schema, target: Schema) -> SchemaDiff:
    """Compare two schemas and return their differences.

    Both schemas are expected to have passed ``validate()``; the comparison
    pipeline enforces this before calling in.

    Args:
        source: Desired end state.
        target: Current state that the migration will change.

    Returns:
        ``SchemaDiff`` where:

        - ``added_tables``: tables only in *source*
        - ``removed_tables``: tables only in *target*
        - ``modified_tables``: ``TableDiff`` for common tables whose columns
          or constraints differ (unchanged tables are omitted)
        - ``added_indexes`` / ``removed_indexes``: schema-level indexes, then
          table-level indexes of common tables
        - ``added_constraints`` / ``removed_constraints``: the constraint
          changes of ``modified_tables``, flattened

    Examples:
        >>> users = Table(name="users", columns={"id": Column(name="id", data_type="int")})
        >>> a = Schema(name="a", tables={"users": users})
        >>> compare_schemas(a, a).is_empty
        True
        >>> compare_schemas(a, Schema(name="b")).added_tables[0].name
        'users'
    """
    source_tables = set(source.tables)
    target_tables = set(target.tables)
    common_tables = sorted(source_tables & target_tables)

    added_tables = [source.tables[name] for name in sorted(source_tables - target_tables)]
    removed_tables = [target.tables[name] for name in sorted(target_tables - source_tables)]

    modified_tables: list[TableDiff] = []
    for name in common_tables:
        table_diff = compare_tables(source.tables[name], target.tables[name])
        if not table_diff.is_empty:
            modified_tables.append(table_diff)

    added_indexes, removed_indexes = _compare_named(
        source.indexes, target.indexes, indexes_equal
    )
    for name in common_tables:
        added, removed = compare_table_indexes(source.tables[name], target.tables[name])
        added_indexes.extend(added)
        removed_indexes.extend(removed)

    added_constraints: list[Constraint] = []
    removed_constraints: list[Constraint] = []
    for table_diff in modified_tables:
        added_constraints.extend(table_diff.added_constraints)
        removed_constraints.extend(table_diff.removed_constraints)

    diff = SchemaDiff(
        added_tables=added_tables,
        removed_tables=removed_tables,
        modified_tables=modified_tables,
        added_indexes=added_indexes,
        removed_indexes=removed_indexes,
        added_constraints=added_constraints,
        removed_constraints=removed_constraints,
    )

    logger.debug(
        f"Compared '{source.name}' -> '{target.name}': "
        f"+{len(added_tables)} -{len(removed_tables)} ~{len(modified_tables)} tables, "
        f"+{len(added_indexes)} -{len(removed_indexes)} indexes, "
        f"+{len(added_constraints)} -{len(removed_constraints)} constraints"
    )
    return diff


def get_schema_stats(schema: Schema) -> dict[str, int]:
    """Count tables, columns, table-level indexes and constraints in a schema."""
    return {
        "tables": len(schema.tables),
        "columns": sum(len(t.columns) for t in schema.tables.values()),
        "indexes": sum(len(t.indexes) for t in schema.tables.values()),
        "constraints": sum(len(t.constraints) for t in schema.tables.values()),
        "global_indexes": len(schema.indexes),
    }
