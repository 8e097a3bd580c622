"""MySQL DDL generation for single schema entities.

Every function takes one entity (or a table name plus one entity), checks
it with ``validate()`` and returns one DDL string without a trailing
semicolon.  Invalid input raises ``SchemaValidationError``.

Usage:
    from schema_sync.migration.sql import create_table_sql, add_column_sql

    create_table_sql(users)
    # 'CREATE TABLE `users` (\\n  `id` int NOT NULL AUTO_INCREMENT,\\n  PRIMARY KEY (`id`)\\n)'
    add_column_sql("users", Column(name="email", data_type="varchar(255)"))
    # 'ALTER TABLE `users` ADD COLUMN `email` varchar(255) NULL'
"""

import re

from schema_sync.errors import SchemaValidationError
from schema_sync.schema.models import (
    CheckConstraint,
    Column,
    ColumnDiff,
    Constraint,
    ForeignKeyConstraint,
    Index,
    Table,
    UniqueConstraint,
)

# Defaults rendered verbatim instead of as quoted string literals
_UNQUOTED_DEFAULT = re.compile(
    r"^(NULL|TRUE|FALSE|UUID\(\)|CURDATE\(\)|"
    r"(NOW|CURTIME|SYSDATE)\(\d*\)|"
    r"(CURRENT_DATE|UTC_DATE)(\(\))?|"
    r"(CURRENT_TIMESTAMP|CURRENT_TIME|LOCALTIME|LOCALTIMESTAMP|UTC_TIME|UTC_TIMESTAMP)(\(\d*\))?|"
    r"[BX]'[0-9A-F]*')$",
    re.IGNORECASE,
)


def quote_identifier(name: str) -> str:
    """Backtick-quote an identifier, doubling embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


def _column_list(columns: list[str]) -> str:
    return ", ".join(quote_identifier(col) for col in columns)


def _require_table_name(table_name: str) -> None:
    if not table_name:
        raise SchemaValidationError("table name cannot be empty", "table", table_name)


def render_default(value: str) -> str:
    """Render a DEFAULT value.

    Keywords and functions (``CURRENT_TIMESTAMP``, ``NOW()``, ``NULL``...),
    bit and hex literals (``b'0'``, ``x'1F'``) and parenthesised expressions
    are emitted as-is; anything else is quoted as a string literal.

    Examples:
        >>> render_default("CURRENT_TIMESTAMP")
        'CURRENT_TIMESTAMP'
        >>> render_default("it's")
        "'it''s'"
    """
    stripped = value.strip()
    if _UNQUOTED_DEFAULT.match(stripped):
        return stripped
    if stripped.startswith("(") and stripped.endswith(")"):
        return stripped
    return "'" + value.replace("'", "''") + "'"


def column_definition(column: Column) -> str:
    """Render a column definition (name, type, nullability, default, extra)."""
    column.validate()

    parts = [quote_identifier(column.name), column.data_type]
    parts.append("NULL" if column.is_nullable else "NOT NULL")
    if column.default is not None:
        parts.append(f"DEFAULT {render_default(column.default)}")
    # INFORMATION_SCHEMA marks expression defaults with DEFAULT_GENERATED, which is not DDL
    extra = " ".join(
        word for word in column.extra.upper().split() if word != "DEFAULT_GENERATED"
    )
    if extra:
        parts.append(extra)
    return " ".join(parts)


# ============================================================================
# Tables
# ============================================================================


def create_table_sql(table: Table) -> str:
    """CREATE TABLE with columns, the primary key and unique constraints.

    Columns are listed by position (then name).  Secondary indexes, foreign
    keys and check constraints are not inlined; they are added by separate
    statements once every new table exists.
    """
    table.validate()

    definitions = [column_definition(column) for column in table.ordered_columns()]

    primary_key = table.primary_key
    if primary_key is not None:
        definitions.append(f"PRIMARY KEY ({_column_list(primary_key.columns)})")

    for name in sorted(table.constraints):
        constraint = table.constraints[name]
        if isinstance(constraint, UniqueConstraint):
            definitions.append(
                f"UNIQUE KEY {quote_identifier(constraint.name)} "
                f"({_column_list(constraint.columns)})"
            )

    body = ",\n  ".join(definitions)
    return f"CREATE TABLE {quote_identifier(table.name)} (\n  {body}\n)"


def drop_table_sql(table: Table) -> str:
    table.validate()
    return f"DROP TABLE {quote_identifier(table.name)}"


def rename_table_sql(old_name: str, new_name: str) -> str:
    _require_table_name(old_name)
    _require_table_name(new_name)
    return f"RENAME TABLE {quote_identifier(old_name)} TO {quote_identifier(new_name)}"


# ============================================================================
# Columns
# ============================================================================


def add_column_sql(table_name: str, column: Column) -> str:
    _require_table_name(table_name)
    return f"ALTER TABLE {quote_identifier(table_name)} ADD COLUMN {column_definition(column)}"


def drop_column_sql(table_name: str, column: Column) -> str:
    _require_table_name(table_name)
    column.validate()
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"DROP COLUMN {quote_identifier(column.name)}"
    )


def modify_column_sql(table_name: str, column_diff: ColumnDiff) -> str:
    """MODIFY COLUMN rendering the new (source) definition."""
    _require_table_name(table_name)
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"MODIFY COLUMN {column_definition(column_diff.new_column)}"
    )


# ============================================================================
# Indexes
# ============================================================================


def create_index_sql(index: Index) -> str:
    """CREATE [UNIQUE] INDEX, or ADD PRIMARY KEY for a primary index."""
    index.validate()

    table = quote_identifier(index.table_name)
    columns = _column_list(index.columns)

    if index.is_primary:
        return f"ALTER TABLE {table} ADD PRIMARY KEY ({columns})"

    if index.index_type == "FULLTEXT":
        prefix = "CREATE FULLTEXT INDEX"
    elif index.is_unique:
        prefix = "CREATE UNIQUE INDEX"
    else:
        prefix = "CREATE INDEX"

    sql = f"{prefix} {quote_identifier(index.name)} ON {table} ({columns})"
    if index.index_type not in ("BTREE", "FULLTEXT"):
        sql += f" USING {index.index_type}"
    return sql


def drop_index_sql(index: Index) -> str:
    """DROP INDEX, or DROP PRIMARY KEY for a primary index."""
    index.validate()
    table = quote_identifier(index.table_name)
    if index.is_primary:
        return f"ALTER TABLE {table} DROP PRIMARY KEY"
    return f"DROP INDEX {quote_identifier(index.name)} ON {table}"


# ============================================================================
# Constraints
# ============================================================================


def add_constraint_sql(constraint: Constraint) -> str:
    """ALTER TABLE ... ADD CONSTRAINT, dispatched on the constraint kind."""
    constraint.validate()

    prefix = (
        f"ALTER TABLE {quote_identifier(constraint.table_name)} "
        f"ADD CONSTRAINT {quote_identifier(constraint.name)}"
    )

    if isinstance(constraint, ForeignKeyConstraint):
        sql = (
            f"{prefix} FOREIGN KEY ({_column_list(constraint.columns)}) "
            f"REFERENCES {quote_identifier(constraint.referenced_table)} "
            f"({_column_list(constraint.referenced_columns)})"
        )
        if constraint.on_update:
            sql += f" ON UPDATE {constraint.on_update}"
        if constraint.on_delete:
            sql += f" ON DELETE {constraint.on_delete}"
        return sql
    if isinstance(constraint, UniqueConstraint):
        return f"{prefix} UNIQUE ({_column_list(constraint.columns)})"
    if isinstance(constraint, CheckConstraint):
        return f"{prefix} CHECK ({constraint.expression})"

    raise SchemaValidationError(
        f"unsupported constraint type: {type(constraint).__name__}",
        "constraint",
        constraint.name,
    )


def drop_constraint_sql(constraint: Constraint) -> str:
    """ALTER TABLE ... DROP, using the syntax of the constraint kind."""
    constraint.validate()

    table = quote_identifier(constraint.table_name)
    name = quote_identifier(constraint.name)

    if isinstance(constraint, ForeignKeyConstraint):
        return f"ALTER TABLE {table} DROP FOREIGN KEY {name}"
    if isinstance(constraint, UniqueConstraint):
        return f"ALTER TABLE {table} DROP INDEX {name}"
    if isinstance(constraint, CheckConstraint):
        return f"ALTER TABLE {table} DROP CHECK {name}"

    raise SchemaValidationError(
        f"unsupported constraint type: {type(constraint).__name__}",
        "constraint",
        constraint.name,
    )
