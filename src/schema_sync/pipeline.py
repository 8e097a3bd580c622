"""End-to-end comparison: validate, diff, detect renames, assess risk, plan.

Usage:
    from schema_sync.pipeline import compare

    result = compare(source, target)
    print(result.validation.format_report())
    if not result.blocked:
        for sql in result.sql_statements():
            print(sql + ";")

The pipeline never prints; display is left to the caller (see ``cli``).
"""

import logging
from typing import Any

from pydantic import BaseModel, Field

from schema_sync.errors import MigrationBlockedError
from schema_sync.migration.plan import MigrationPlan, plan_migration
from schema_sync.schema.comparator import compare_schemas
from schema_sync.schema.models import Schema, SchemaDiff
from schema_sync.schema.renames import apply_table_renames, detect_renamed_tables
from schema_sync.schema.validator import ValidationResult, validate_changes

logger = logging.getLogger(__name__)


class ComparisonResult(BaseModel):
    """Everything produced by one comparison.

    ``plan`` is None when validation found errors; the diff, the warnings
    and the rename suggestions are always available.  ``renames`` are
    suggestions only unless ``renames_applied`` is set, in which case the
    validation and the plan describe RENAME TABLE instead of drop and create.
    """

    source_name: str
    target_name: str
    diff: SchemaDiff
    validation: ValidationResult
    renames: dict[str, str] = Field(default_factory=dict)
    renames_applied: bool = False
    plan: MigrationPlan | None = None

    @property
    def blocked(self) -> bool:
        return not self.validation.is_valid

    def sql_statements(self) -> list[str]:
        """DDL statements in execution order.

        Raises:
            MigrationBlockedError: If validation found errors.
        """
        if self.blocked or self.plan is None:
            raise MigrationBlockedError(self.validation.errors)
        return self.plan.sql_statements()

    def to_dict(self) -> dict[str, Any]:
        """JSON-ready record of the comparison."""
        return {
            "source": self.source_name,
            "target": self.target_name,
            "blocked": self.blocked,
            "diff": self.diff.model_dump(mode="json"),
            "validation": self.validation.model_dump(mode="json"),
            "renames": dict(self.renames),
            "renames_applied": self.renames_applied,
            "plan": self.plan.model_dump(mode="json") if self.plan is not None else None,
        }


def compare(
    source: Schema,
    target: Schema,
    *,
    detect_renames: bool = True,
    apply_renames: bool = False,
) -> ComparisonResult:
    """Compare *source* (desired) against *target* (current).

    Args:
        source: Desired end state.
        target: Current state.
        detect_renames: Suggest table renames.
        apply_renames: Plan suggested renames as RENAME TABLE instead of
            DROP TABLE and CREATE TABLE.  The validation then reports the
            rename, not the loss of the old table.

    Returns:
        ``ComparisonResult``; check ``blocked`` before asking for SQL.

    Raises:
        SchemaValidationError: If either schema is structurally invalid.
            Nothing is compared in that case.
    """
    source.validate()
    target.validate()

    diff = compare_schemas(source, target)

    renames: dict[str, str] = {}
    if detect_renames and diff.added_tables and diff.removed_tables:
        renames = detect_renamed_tables(diff.added_tables, diff.removed_tables)

    applied = renames if apply_renames else {}
    validation = validate_changes(
        apply_table_renames(diff, applied), source=source, renames=applied
    )

    plan = None
    if validation.is_valid:
        plan = plan_migration(diff, applied)
        logger.info(
            f"Compared '{source.name}' -> '{target.name}': {diff.change_count} changes, "
            f"{plan.summary.total_statements} statements, {validation.summary()}"
        )
    else:
        logger.warning(
            f"Migration from '{target.name}' to '{source.name}' blocked: "
            f"{validation.error_count} validation error(s)"
        )

    return ComparisonResult(
        source_name=source.name,
        target_name=target.name,
        diff=diff,
        validation=validation,
        renames=renames,
        renames_applied=bool(applied),
        plan=plan,
    )
