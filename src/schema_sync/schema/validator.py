"""Risk validation for a schema diff.

Classifies every change in a ``SchemaDiff`` as a warning (non-fatal,
surfaced to the operator) or an error (fatal, blocks SQL generation).
Never raises and never modifies the diff.

Usage:
    from schema_sync.schema.validator import validate_changes

    result = validate_changes(diff, source=source_schema)
    if not result.is_valid:
        print(result.format_report())
"""

import logging
from enum import Enum

from pydantic import BaseModel, Field, computed_field

from schema_sync.schema.models import (
    Column,
    ColumnDiff,
    Constraint,
    ForeignKeyConstraint,
    Schema,
    SchemaDiff,
    TableDiff,
    UniqueConstraint,
    base_type,
    type_size,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Result Models
# ============================================================================


class WarningType(str, Enum):
    DATA_LOSS = "DATA_LOSS"
    PERFORMANCE = "PERFORMANCE"
    COMPATIBILITY = "COMPATIBILITY"
    DESTRUCTIVE = "DESTRUCTIVE"
    DEPENDENCY = "DEPENDENCY"


class Severity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return _SEVERITY_ORDER.index(self)


_SEVERITY_ORDER = [Severity.LOW, Severity.MEDIUM, Severity.HIGH, Severity.CRITICAL]


class ErrorType(str, Enum):
    DEPENDENCY = "DEPENDENCY"
    INCOMPATIBLE = "INCOMPATIBLE"
    CONSTRAINT = "CONSTRAINT"


class ChangeWarning(BaseModel):
    """A potentially risky change that does not block the migration."""

    type: WarningType
    severity: Severity
    message: str
    table_name: str = ""
    column_name: str = ""
    suggestion: str = ""


class ChangeError(BaseModel):
    """A change that would make the generated SQL invalid."""

    type: ErrorType
    message: str
    table_name: str = ""
    column_name: str = ""
    object_name: str = ""  # Offending constraint or index
    details: str = ""


class ValidationResult(BaseModel):
    """Warnings and errors for a diff.

    Example:
        >>> result = ValidationResult()
        >>> result.is_valid
        True
        >>> result.summary()
        'No issues'
    """

    warnings: list[ChangeWarning] = Field(default_factory=list)
    errors: list[ChangeError] = Field(default_factory=list)

    @computed_field
    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    @property
    def error_count(self) -> int:
        return len(self.errors)

    @property
    def warning_count(self) -> int:
        return len(self.warnings)

    @property
    def highest_severity(self) -> Severity | None:
        if not self.warnings:
            return None
        return max((w.severity for w in self.warnings), key=lambda s: s.rank)

    def warnings_by_severity(self) -> dict[Severity, list[ChangeWarning]]:
        """Warnings grouped by severity, most severe first."""
        grouped: dict[Severity, list[ChangeWarning]] = {}
        for severity in reversed(_SEVERITY_ORDER):
            matching = [w for w in self.warnings if w.severity == severity]
            if matching:
                grouped[severity] = matching
        return grouped

    def summary(self) -> str:
        if not self.warnings and not self.errors:
            return "No issues"
        parts = []
        if self.errors:
            parts.append(f"{len(self.errors)} errors")
        if self.warnings:
            parts.append(f"{len(self.warnings)} warnings")
        return ", ".join(parts)

    def format_report(self) -> str:
        """Format the result as a human-readable report."""
        if not self.warnings and not self.errors:
            return "No validation issues found"

        lines: list[str] = []

        if self.errors:
            lines.append(f"Validation errors ({len(self.errors)}):")
            for error in self.errors:
                lines.append(f"  - {error.message}")
                if error.details:
                    lines.append(f"    Details: {error.details}")

        if self.warnings:
            if lines:
                lines.append("")
            lines.append(f"Validation warnings ({len(self.warnings)}):")
            for severity, warnings in self.warnings_by_severity().items():
                lines.append(f"\n  {severity.value}:")
                for warning in warnings:
                    lines.append(f"    - {warning.message}")
                    if warning.suggestion:
                        lines.append(f"      Suggestion: {warning.suggestion}")

        return "\n".join(lines)


# ============================================================================
# Type analysis
# ============================================================================


SAFE_TYPE_CONVERSIONS: dict[str, frozenset[str]] = {
    "varchar": frozenset({"text", "mediumtext", "longtext"}),
    "char": frozenset({"varchar", "text", "mediumtext", "longtext"}),
    "tinytext": frozenset({"text", "mediumtext", "longtext"}),
    "text": frozenset({"mediumtext", "longtext"}),
    "mediumtext": frozenset({"longtext"}),
    "tinyint": frozenset({"smallint", "mediumint", "int", "bigint"}),
    "smallint": frozenset({"mediumint", "int", "bigint"}),
    "mediumint": frozenset({"int", "bigint"}),
    "int": frozenset({"bigint"}),
    "float": frozenset({"double"}),
    "date": frozenset({"datetime", "timestamp"}),
    "time": frozenset({"datetime", "timestamp"}),
}


def is_lossy_type_change(old_type: str, new_type: str) -> bool:
    """True if converting *old_type* to *new_type* may lose data.

    Same base type is never lossy here (size changes are checked by
    ``is_size_reduction``).  Different base types are lossy unless the pair
    is a whitelisted widening.

    Examples:
        >>> is_lossy_type_change("varchar(255)", "text")
        False
        >>> is_lossy_type_change("text", "varchar(100)")
        True
    """
    old_base = base_type(old_type)
    new_base = base_type(new_type)
    if old_base == new_base:
        return False
    return new_base not in SAFE_TYPE_CONVERSIONS.get(old_base, frozenset())


def is_size_reduction(old_type: str, new_type: str) -> bool:
    """True if both types share a base type and the new size is smaller.

    Examples:
        >>> is_size_reduction("varchar(255)", "varchar(100)")
        True
        >>> is_size_reduction("bigint", "varchar(10)")
        False
    """
    if base_type(old_type) != base_type(new_type):
        return False
    old_size = type_size(old_type)
    new_size = type_size(new_type)
    return old_size is not None and new_size is not None and new_size < old_size


# ============================================================================
# Validation
# ============================================================================


def validate_changes(
    diff: SchemaDiff,
    source: Schema | None = None,
    renames: dict[str, str] | None = None,
) -> ValidationResult:
    """Classify the risks of a diff and detect dependency errors.

    Args:
        diff: Diff produced by ``compare_schemas(source, target)``.  When
            renames are applied, pass the diff from ``apply_table_renames``.
        source: Optional desired schema.  When given, foreign keys that
            survive unchanged in the desired schema are also checked against
            removed tables.
        renames: Applied ``{old_name: new_name}`` table renames, reported as
            renames instead of drops.

    Returns:
        ``ValidationResult``; ``is_valid`` is False when any error exists.
        Warnings never affect validity and are never truncated.
    """
    warnings: list[ChangeWarning] = []
    errors: list[ChangeError] = []

    _check_renames(renames or {}, warnings)
    _check_tables(diff, warnings)
    _check_indexes(diff, warnings, errors)
    _check_constraints(diff, warnings)
    _check_dependencies(diff, source, errors)

    result = ValidationResult(warnings=warnings, errors=errors)
    logger.debug(f"Validated diff: {result.summary()}")
    return result


def _check_renames(renames: dict[str, str], warnings: list[ChangeWarning]) -> None:
    for old_name in sorted(renames):
        new_name = renames[old_name]
        warnings.append(
            ChangeWarning(
                type=WarningType.COMPATIBILITY,
                severity=Severity.MEDIUM,
                message=f"Table '{old_name}' will be renamed to '{new_name}', keeping its data",
                table_name=new_name,
                suggestion=f"Update queries that still refer to '{old_name}'",
            )
        )


def _check_tables(diff: SchemaDiff, warnings: list[ChangeWarning]) -> None:
    for table in diff.removed_tables:
        warnings.append(
            ChangeWarning(
                type=WarningType.DATA_LOSS,
                severity=Severity.CRITICAL,
                message=f"Dropping table '{table.name}' will permanently delete all data",
                table_name=table.name,
                suggestion="Consider backing up data before proceeding",
            )
        )

    for table_diff in diff.modified_tables:
        _check_columns(table_diff, warnings)


def _check_columns(table_diff: TableDiff, warnings: list[ChangeWarning]) -> None:
    table = table_diff.table_name

    for column in table_diff.removed_columns:
        warnings.append(
            ChangeWarning(
                type=WarningType.DATA_LOSS,
                severity=Severity.HIGH,
                message=(
                    f"Dropping column '{table}.{column.name}' will permanently "
                    "delete all data in this column"
                ),
                table_name=table,
                column_name=column.name,
                suggestion="Consider backing up column data before proceeding",
            )
        )

    for column_diff in table_diff.modified_columns:
        _check_column_modification(table, column_diff, warnings)

    for column in table_diff.added_columns:
        _check_added_column(table, column, warnings)


def _check_column_modification(
    table: str, column_diff: ColumnDiff, warnings: list[ChangeWarning]
) -> None:
    old = column_diff.old_column
    new = column_diff.new_column
    name = column_diff.column_name

    if is_lossy_type_change(old.data_type, new.data_type):
        warnings.append(
            ChangeWarning(
                type=WarningType.DATA_LOSS,
                severity=Severity.HIGH,
                message=(
                    f"Changing column '{table}.{name}' from {old.data_type} "
                    f"to {new.data_type} may cause data loss"
                ),
                table_name=table,
                column_name=name,
                suggestion="Verify that existing data is compatible with the new type",
            )
        )

    if old.is_nullable and not new.is_nullable:
        warnings.append(
            ChangeWarning(
                type=WarningType.DATA_LOSS,
                severity=Severity.MEDIUM,
                message=(
                    f"Making column '{table}.{name}' NOT NULL may fail if existing "
                    "data contains NULL values"
                ),
                table_name=table,
                column_name=name,
                suggestion="Ensure no NULL values exist in this column before applying changes",
            )
        )
    elif not old.is_nullable and new.is_nullable:
        warnings.append(
            ChangeWarning(
                type=WarningType.COMPATIBILITY,
                severity=Severity.LOW,
                message=f"Column '{table}.{name}' will start accepting NULL values",
                table_name=table,
                column_name=name,
                suggestion="Verify that applications handle NULL values in this column",
            )
        )

    if old.default is not None and new.default is None:
        warnings.append(
            ChangeWarning(
                type=WarningType.COMPATIBILITY,
                severity=Severity.LOW,
                message=(
                    f"Removing default value from column '{table}.{name}' may "
                    "affect application behavior"
                ),
                table_name=table,
                column_name=name,
                suggestion="Verify that applications handle missing default values correctly",
            )
        )

    if is_size_reduction(old.data_type, new.data_type):
        warnings.append(
            ChangeWarning(
                type=WarningType.DATA_LOSS,
                severity=Severity.MEDIUM,
                message=(
                    f"Reducing size of column '{table}.{name}' from {old.data_type} "
                    f"to {new.data_type} may truncate existing data"
                ),
                table_name=table,
                column_name=name,
                suggestion="Check that all existing data fits within the new size constraints",
            )
        )


def _check_added_column(table: str, column: Column, warnings: list[ChangeWarning]) -> None:
    if not column.is_nullable and column.default is None and not column.is_auto_increment:
        warnings.append(
            ChangeWarning(
                type=WarningType.COMPATIBILITY,
                severity=Severity.MEDIUM,
                message=(
                    f"Adding NOT NULL column '{table}.{column.name}' without a default "
                    "value may fail if table contains existing data"
                ),
                table_name=table,
                column_name=column.name,
                suggestion="Consider adding a default value or making the column nullable initially",
            )
        )


def _check_indexes(
    diff: SchemaDiff, warnings: list[ChangeWarning], errors: list[ChangeError]
) -> None:
    tables_gaining_primary = {i.table_name for i in diff.added_indexes if i.is_primary}

    for index in diff.removed_indexes:
        if index.is_primary:
            if index.table_name not in tables_gaining_primary:
                errors.append(
                    ChangeError(
                        type=ErrorType.CONSTRAINT,
                        message=(
                            f"Cannot drop primary key index '{index.name}' on table "
                            f"'{index.table_name}' without adding a new one"
                        ),
                        table_name=index.table_name,
                        object_name=index.name,
                        details="Tables must have a primary key",
                    )
                )
        elif index.is_unique:
            warnings.append(
                ChangeWarning(
                    type=WarningType.COMPATIBILITY,
                    severity=Severity.MEDIUM,
                    message=f"Dropping unique index '{index.name}' will remove uniqueness constraint",
                    table_name=index.table_name,
                    suggestion="Ensure application logic handles potential duplicate values",
                )
            )

        warnings.append(
            ChangeWarning(
                type=WarningType.PERFORMANCE,
                severity=Severity.LOW,
                message=f"Dropping index '{index.name}' may impact query performance",
                table_name=index.table_name,
                suggestion="Monitor query performance after removing this index",
            )
        )

    for index in diff.added_indexes:
        warnings.append(
            ChangeWarning(
                type=WarningType.PERFORMANCE,
                severity=Severity.LOW,
                message=f"Creating index '{index.name}' may take significant time on large tables",
                table_name=index.table_name,
                suggestion="Consider creating indexes during maintenance windows",
            )
        )


def _check_constraints(diff: SchemaDiff, warnings: list[ChangeWarning]) -> None:
    for constraint in diff.removed_constraints:
        if isinstance(constraint, ForeignKeyConstraint):
            message = (
                f"Dropping foreign key constraint '{constraint.name}' removes "
                "referential integrity"
            )
            suggestion = "Ensure application logic maintains data integrity"
        elif isinstance(constraint, UniqueConstraint):
            message = f"Dropping unique constraint '{constraint.name}' allows duplicate values"
            suggestion = "Ensure application logic handles potential duplicates"
        else:
            continue
        warnings.append(
            ChangeWarning(
                type=WarningType.COMPATIBILITY,
                severity=Severity.MEDIUM,
                message=message,
                table_name=constraint.table_name,
                suggestion=suggestion,
            )
        )

    for constraint in diff.added_constraints:
        if isinstance(constraint, ForeignKeyConstraint):
            message = (
                f"Adding foreign key constraint '{constraint.name}' may fail if "
                "existing data violates referential integrity"
            )
            suggestion = "Verify that all existing data satisfies the foreign key constraint"
        elif isinstance(constraint, UniqueConstraint):
            message = (
                f"Adding unique constraint '{constraint.name}' may fail if existing "
                "data contains duplicates"
            )
            suggestion = "Ensure no duplicate values exist in the constrained columns"
        else:
            continue
        warnings.append(
            ChangeWarning(
                type=WarningType.COMPATIBILITY,
                severity=Severity.MEDIUM,
                message=message,
                table_name=constraint.table_name,
                suggestion=suggestion,
            )
        )


def _foreign_keys_to_check(
    diff: SchemaDiff, source: Schema | None
) -> list[ForeignKeyConstraint]:
    """Foreign keys that will exist after the migration, deduplicated."""
    candidates: list[Constraint] = list(diff.added_constraints)
    for table in diff.added_tables:
        candidates.extend(table.constraints[name] for name in sorted(table.constraints))
    if source is not None:
        for table_name in sorted(source.tables):
            table = source.tables[table_name]
            candidates.extend(table.constraints[name] for name in sorted(table.constraints))

    seen: set[tuple[str, str]] = set()
    foreign_keys: list[ForeignKeyConstraint] = []
    for constraint in candidates:
        key = (constraint.table_name, constraint.name)
        if isinstance(constraint, ForeignKeyConstraint) and key not in seen:
            seen.add(key)
            foreign_keys.append(constraint)
    return foreign_keys


def _check_dependencies(
    diff: SchemaDiff, source: Schema | None, errors: list[ChangeError]
) -> None:
    removed_tables = {table.name for table in diff.removed_tables}
    foreign_keys = _foreign_keys_to_check(diff, source)

    # Foreign keys pointing at a table that is being dropped
    for fk in foreign_keys:
        if fk.referenced_table in removed_tables:
            errors.append(
                ChangeError(
                    type=ErrorType.DEPENDENCY,
                    message=(
                        f"Cannot drop table '{fk.referenced_table}' because constraint "
                        f"'{fk.name}' references it"
                    ),
                    table_name=fk.referenced_table,
                    object_name=fk.name,
                    details=(
                        f"Foreign key constraint '{fk.name}' on table '{fk.table_name}' "
                        "references the table being dropped"
                    ),
                )
            )

    removed_columns = {
        (table_diff.table_name, column.name)
        for table_diff in diff.modified_tables
        for column in table_diff.removed_columns
    }
    if not removed_columns:
        return

    # Removed columns still used by added constraints or indexes on the same table
    for table_diff in diff.modified_tables:
        table = table_diff.table_name
        for column in table_diff.removed_columns:
            for constraint in diff.added_constraints:
                if constraint.table_name == table and column.name in constraint.local_columns:
                    errors.append(
                        ChangeError(
                            type=ErrorType.DEPENDENCY,
                            message=(
                                f"Cannot drop column '{table}.{column.name}' because "
                                f"constraint '{constraint.name}' references it"
                            ),
                            table_name=table,
                            column_name=column.name,
                            object_name=constraint.name,
                            details=f"Constraint '{constraint.name}' depends on column '{column.name}'",
                        )
                    )
            for index in diff.added_indexes:
                if index.table_name == table and column.name in index.columns:
                    errors.append(
                        ChangeError(
                            type=ErrorType.DEPENDENCY,
                            message=(
                                f"Cannot drop column '{table}.{column.name}' because "
                                f"index '{index.name}' references it"
                            ),
                            table_name=table,
                            column_name=column.name,
                            object_name=index.name,
                            details=f"Index '{index.name}' depends on column '{column.name}'",
                        )
                    )

    # Foreign keys pointing at a column removed from the referenced table
    for fk in foreign_keys:
        for ref_column in fk.referenced_columns:
            if (fk.referenced_table, ref_column) in removed_columns:
                errors.append(
                    ChangeError(
                        type=ErrorType.DEPENDENCY,
                        message=(
                            f"Cannot drop column '{fk.referenced_table}.{ref_column}' "
                            f"because constraint '{fk.name}' references it"
                        ),
                        table_name=fk.referenced_table,
                        column_name=ref_column,
                        object_name=fk.name,
                        details=(
                            f"Foreign key constraint '{fk.name}' on table "
                            f"'{fk.table_name}' references the column being dropped"
                        ),
                    )
                )
