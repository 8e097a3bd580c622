"""Pydantic models for MySQL schema snapshots and schema differences.

This module contains schema-domain models:
- Entity models: Column, Index, ForeignKeyConstraint, UniqueConstraint,
  CheckConstraint (the ``Constraint`` tagged union), Table, Schema
- Diff models: ColumnDiff, TableDiff, SchemaDiff

Every entity exposes ``validate()``, which raises ``SchemaValidationError``
on the first structural violation.  Validation is recursive: validating a
Schema validates every Table, which validates its Columns, Indexes and
Constraints.

Diff models are frozen -- they are built once by the comparator and only
read afterwards.
"""

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schema_sync.errors import SchemaValidationError


# ============================================================================
# Data type vocabulary
# ============================================================================


MYSQL_DATA_TYPES: frozenset[str] = frozenset(
    {
        # Numeric
        "tinyint", "smallint", "mediumint", "int", "integer", "bigint",
        "decimal", "numeric", "float", "double", "bit",
        # String
        "char", "varchar", "binary", "varbinary",
        "tinyblob", "blob", "mediumblob", "longblob",
        "tinytext", "text", "mediumtext", "longtext",
        # Date and time
        "date", "time", "datetime", "timestamp", "year",
        # JSON
        "json",
        # Enum and set
        "enum", "set",
        # Spatial
        "geometry", "point", "linestring", "polygon", "multipoint",
        "multilinestring", "multipolygon", "geometrycollection",
    }
)

INDEX_TYPES: frozenset[str] = frozenset({"BTREE", "HASH", "RTREE", "FULLTEXT"})

REFERENTIAL_ACTIONS: frozenset[str] = frozenset(
    {"", "RESTRICT", "CASCADE", "SET NULL", "NO ACTION", "SET DEFAULT"}
)

_SIZE_PATTERN = re.compile(r"\(\s*(\d+)")


def base_type(data_type: str) -> str:
    """Return the lower-cased type name without size or modifiers.

    Example:
        >>> base_type("VARCHAR(255)")
        'varchar'
        >>> base_type("int(11) unsigned")
        'int'
    """
    dt = data_type.strip().lower()
    return re.split(r"[\s(]", dt, maxsplit=1)[0]


def type_size(data_type: str) -> int | None:
    """Return the leading size/precision of a type, or None if it has none.

    ``decimal(10,2)`` yields 10; ``enum('a','b')`` and ``text`` yield None.
    """
    match = _SIZE_PATTERN.search(data_type)
    if match is None:
        return None
    return int(match.group(1))


def is_valid_data_type(data_type: str) -> bool:
    """True if the base type is part of the MySQL vocabulary."""
    return base_type(data_type) in MYSQL_DATA_TYPES


# ============================================================================
# Entity Models
# ============================================================================


class Column(BaseModel):
    """Schema for a table column.

    ``position`` is only used to order columns for display and in
    CREATE TABLE; it never takes part in comparisons.

    Example:
        >>> col = Column(name="id", data_type="int", is_nullable=False, extra="auto_increment")
        >>> col.is_auto_increment
        True
    """

    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None
    extra: str = ""
    position: int = 0

    @property
    def is_auto_increment(self) -> bool:
        return "auto_increment" in self.extra.lower()

    def validate(self) -> None:
        if not self.name:
            raise SchemaValidationError("column name cannot be empty", "column", self.name)
        if not self.data_type.strip():
            raise SchemaValidationError("column data type cannot be empty", "column", self.name)
        if not is_valid_data_type(self.data_type):
            raise SchemaValidationError(
                f"invalid MySQL data type: {self.data_type}", "column", self.name
            )
        if self.position < 0:
            raise SchemaValidationError(
                "column position must be non-negative", "column", self.name
            )


class Index(BaseModel):
    """Schema for a table index.

    Equality covers every field; the column list is compared in order, so
    ``(a, b)`` and ``(b, a)`` are different indexes.
    """

    name: str
    table_name: str
    columns: list[str] = Field(default_factory=list)
    is_unique: bool = False
    is_primary: bool = False
    index_type: str = "BTREE"

    @field_validator("index_type", mode="before")
    @classmethod
    def _normalise_index_type(cls, value: str | None) -> str:
        if not value:
            return "BTREE"
        return str(value).upper()

    def validate(self) -> None:
        if not self.name:
            raise SchemaValidationError("index name cannot be empty", "index", self.name)
        if not self.table_name:
            raise SchemaValidationError("index table name cannot be empty", "index", self.name)
        if not self.columns:
            raise SchemaValidationError(
                "index must have at least one column", "index", self.name
            )
        if self.index_type not in INDEX_TYPES:
            raise SchemaValidationError(
                f"invalid index type: {self.index_type}", "index", self.name
            )


class _ConstraintBase(BaseModel):
    """Fields and checks shared by every constraint kind."""

    name: str
    table_name: str

    @property
    def local_columns(self) -> list[str]:
        """Columns of the owning table this constraint depends on."""
        return []

    def validate(self) -> None:
        if not self.name:
            raise SchemaValidationError(
                "constraint name cannot be empty", "constraint", self.name
            )
        if not self.table_name:
            raise SchemaValidationError(
                "constraint table name cannot be empty", "constraint", self.name
            )


class ForeignKeyConstraint(_ConstraintBase):
    """FOREIGN KEY (columns) REFERENCES referenced_table (referenced_columns)."""

    kind: Literal["FOREIGN_KEY"] = "FOREIGN_KEY"
    columns: list[str] = Field(default_factory=list)
    referenced_table: str
    referenced_columns: list[str] = Field(default_factory=list)
    on_update: str = ""
    on_delete: str = ""

    @field_validator("on_update", "on_delete", mode="before")
    @classmethod
    def _normalise_action(cls, value: str | None) -> str:
        if not value:
            return ""
        return " ".join(str(value).upper().split())

    @property
    def local_columns(self) -> list[str]:
        return self.columns

    def validate(self) -> None:
        super().validate()
        if not self.columns:
            raise SchemaValidationError(
                "foreign key constraint must have at least one column",
                "constraint",
                self.name,
            )
        if not self.referenced_table:
            raise SchemaValidationError(
                "foreign key constraint must have referenced table", "constraint", self.name
            )
        if not self.referenced_columns:
            raise SchemaValidationError(
                "foreign key constraint must have referenced columns", "constraint", self.name
            )
        if len(self.columns) != len(self.referenced_columns):
            raise SchemaValidationError(
                "foreign key constraint must have same number of columns "
                "and referenced columns",
                "constraint",
                self.name,
            )
        for action in (self.on_update, self.on_delete):
            if action not in REFERENTIAL_ACTIONS:
                raise SchemaValidationError(
                    f"invalid referential action: {action}", "constraint", self.name
                )


class UniqueConstraint(_ConstraintBase):
    """UNIQUE (columns)."""

    kind: Literal["UNIQUE"] = "UNIQUE"
    columns: list[str] = Field(default_factory=list)

    @property
    def local_columns(self) -> list[str]:
        return self.columns

    def validate(self) -> None:
        super().validate()
        if not self.columns:
            raise SchemaValidationError(
                "unique constraint must have at least one column", "constraint", self.name
            )


class CheckConstraint(_ConstraintBase):
    """CHECK (expression)."""

    kind: Literal["CHECK"] = "CHECK"
    expression: str

    def validate(self) -> None:
        super().validate()
        if not self.expression.strip():
            raise SchemaValidationError(
                "check constraint must have check expression", "constraint", self.name
            )


Constraint = Annotated[
    ForeignKeyConstraint | UniqueConstraint | CheckConstraint,
    Field(discriminator="kind"),
]


class Table(BaseModel):
    """Schema for a database table."""

    name: str
    columns: dict[str, Column] = Field(default_factory=dict)
    indexes: list[Index] = Field(default_factory=list)
    constraints: dict[str, Constraint] = Field(default_factory=dict)

    def validate(self) -> None:
        if not self.name:
            raise SchemaValidationError("table name cannot be empty", "table", self.name)
        if not self.columns:
            raise SchemaValidationError(
                "table must have at least one column", "table", self.name
            )

        for key in sorted(self.columns):
            column = self.columns[key]
            try:
                column.validate()
            except SchemaValidationError as exc:
                raise exc.within("table", self.name) from None
            if column.name != key:
                raise SchemaValidationError(
                    f"column key '{key}' does not match column name '{column.name}'",
                    "table",
                    self.name,
                )

        seen_indexes: set[str] = set()
        for index in self.indexes:
            try:
                index.validate()
            except SchemaValidationError as exc:
                raise exc.within("table", self.name) from None
            if index.table_name != self.name:
                raise SchemaValidationError(
                    f"index {index.name} table name mismatch: "
                    f"expected {self.name}, got {index.table_name}",
                    "table",
                    self.name,
                )
            if index.name in seen_indexes:
                raise SchemaValidationError(
                    f"duplicate index name: {index.name}", "table", self.name
                )
            seen_indexes.add(index.name)

        for key in sorted(self.constraints):
            constraint = self.constraints[key]
            try:
                constraint.validate()
            except SchemaValidationError as exc:
                raise exc.within("table", self.name) from None
            if constraint.name != key:
                raise SchemaValidationError(
                    f"constraint key '{key}' does not match constraint name "
                    f"'{constraint.name}'",
                    "table",
                    self.name,
                )
            if constraint.table_name != self.name:
                raise SchemaValidationError(
                    f"constraint {constraint.name} table name mismatch: "
                    f"expected {self.name}, got {constraint.table_name}",
                    "table",
                    self.name,
                )

    def add_column(self, column: Column) -> None:
        """Validate and add (or replace) a column."""
        column.validate()
        self.columns[column.name] = column

    def add_index(self, index: Index) -> None:
        """Validate and append an index owned by this table."""
        index.validate()
        if index.table_name != self.name:
            raise SchemaValidationError(
                f"index table name mismatch: expected {self.name}, got {index.table_name}",
                "index",
                index.name,
            )
        self.indexes.append(index)

    def add_constraint(self, constraint: Constraint) -> None:
        """Validate and add (or replace) a constraint owned by this table."""
        constraint.validate()
        if constraint.table_name != self.name:
            raise SchemaValidationError(
                f"constraint table name mismatch: expected {self.name}, "
                f"got {constraint.table_name}",
                "constraint",
                constraint.name,
            )
        self.constraints[constraint.name] = constraint

    @property
    def primary_key(self) -> Index | None:
        for index in self.indexes:
            if index.is_primary:
                return index
        return None

    @property
    def has_primary_key(self) -> bool:
        return self.primary_key is not None

    def ordered_columns(self) -> list[Column]:
        """Columns in display order (position, then name)."""
        return sorted(self.columns.values(), key=lambda c: (c.position, c.name))


class Schema(BaseModel):
    """Complete database schema.

    Example:
        >>> schema = Schema(name="shop")
        >>> schema.validate()
        >>> schema.tables
        {}
    """

    name: str
    tables: dict[str, Table] = Field(default_factory=dict)
    indexes: dict[str, Index] = Field(default_factory=dict)  # Schema-level, unused by MySQL

    def validate(self) -> None:
        if not self.name:
            raise SchemaValidationError("schema name cannot be empty", "schema", self.name)

        for key in sorted(self.tables):
            table = self.tables[key]
            try:
                table.validate()
            except SchemaValidationError as exc:
                raise exc.within("schema", self.name) from None
            if table.name != key:
                raise SchemaValidationError(
                    f"table key '{key}' does not match table name '{table.name}'",
                    "schema",
                    self.name,
                )

        for key in sorted(self.indexes):
            try:
                self.indexes[key].validate()
            except SchemaValidationError as exc:
                raise exc.within("schema", self.name) from None

    def add_table(self, table: Table) -> None:
        """Validate and add (or replace) a table."""
        table.validate()
        self.tables[table.name] = table


# ============================================================================
# Diff Models
# ============================================================================


class ColumnDiff(BaseModel):
    """A column present on both sides with different definitions.

    ``old_column`` is the target (current) definition and ``new_column`` the
    source (desired) definition; warnings and SQL read changes old -> new.
    """

    model_config = ConfigDict(frozen=True)

    column_name: str
    old_column: Column
    new_column: Column

    @property
    def changed_fields(self) -> list[str]:
        """Names of the compared fields that differ."""
        fields = ("data_type", "is_nullable", "default", "extra")
        return [
            f for f in fields if getattr(self.old_column, f) != getattr(self.new_column, f)
        ]


class TableDiff(BaseModel):
    """Column and constraint differences for a table present in both schemas."""

    model_config = ConfigDict(frozen=True)

    table_name: str
    added_columns: list[Column] = Field(default_factory=list)
    removed_columns: list[Column] = Field(default_factory=list)
    modified_columns: list[ColumnDiff] = Field(default_factory=list)
    added_constraints: list[Constraint] = Field(default_factory=list)
    removed_constraints: list[Constraint] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not (
            self.added_columns
            or self.removed_columns
            or self.modified_columns
            or self.added_constraints
            or self.removed_constraints
        )


class SchemaDiff(BaseModel):
    """Differences between a source (desired) and target (current) schema.

    Index lists hold schema-level indexes plus the table-level indexes of
    tables present in both schemas.  Constraint lists are the table-level
    constraint changes flattened across ``modified_tables``.
    """

    model_config = ConfigDict(frozen=True)

    added_tables: list[Table] = Field(default_factory=list)
    removed_tables: list[Table] = Field(default_factory=list)
    modified_tables: list[TableDiff] = Field(default_factory=list)
    added_indexes: list[Index] = Field(default_factory=list)
    removed_indexes: list[Index] = Field(default_factory=list)
    added_constraints: list[Constraint] = Field(default_factory=list)
    removed_constraints: list[Constraint] = Field(default_factory=list)

    @property
    def change_count(self) -> int:
        """Number of top-level changes (tables, table diffs, indexes, constraints)."""
        return (
            len(self.added_tables)
            + len(self.removed_tables)
            + len(self.modified_tables)
            + len(self.added_indexes)
            + len(self.removed_indexes)
            + len(self.added_constraints)
            + len(self.removed_constraints)
        )

    @property
    def is_empty(self) -> bool:
        return self.change_count == 0

    def get_table_diff(self, table_name: str) -> TableDiff | None:
        for table_diff in self.modified_tables:
            if table_diff.table_name == table_name:
                return table_diff
        return None
