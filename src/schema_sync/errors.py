"""Exceptions raised by schema-sync.

Structural problems with an input entity raise ``SchemaValidationError``
immediately.  Dependency problems found by the risk validator are collected
into a ``ValidationResult`` instead; they only become an exception when a
caller asks a blocked comparison for its SQL (``MigrationBlockedError``).
"""

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from schema_sync.schema.validator import ChangeError


class SchemaSyncError(Exception):
    """Base class for all schema-sync errors."""

    pass


class SchemaValidationError(SchemaSyncError, ValueError):
    """Raised when a schema entity is structurally invalid.

    Attributes:
        message: Description of the first violation found.
        entity: Kind of the offending entity (``"table"``, ``"column"``, ...).
        name: Name of the offending entity.
        path: ``(entity, name)`` pairs from the outermost container down to
            the offending entity.

    Example:
        >>> err = SchemaValidationError("column name cannot be empty", "column", "")
        >>> str(err.within("table", "users"))
        "table 'users' > column '': column name cannot be empty"
    """

    def __init__(
        self,
        message: str,
        entity: str = "",
        name: str = "",
        path: tuple[tuple[str, str], ...] | None = None,
    ) -> None:
        self.message = message
        self.entity = entity
        self.name = name
        if path is None:
            path = ((entity, name),) if entity else ()
        self.path = path
        super().__init__(self._render())

    def _render(self) -> str:
        if not self.path:
            return self.message
        location = " > ".join(f"{entity} '{name}'" for entity, name in self.path)
        return f"{location}: {self.message}"

    def within(self, entity: str, name: str) -> "SchemaValidationError":
        """Return a copy of this error nested under a containing entity."""
        return SchemaValidationError(
            self.message,
            entity=self.entity,
            name=self.name,
            path=((entity, name),) + self.path,
        )


class MigrationBlockedError(SchemaSyncError):
    """Raised when SQL is requested for a change set with dependency errors."""

    def __init__(self, errors: list["ChangeError"]) -> None:
        self.errors = errors
        count = len(errors)
        noun = "error" if count == 1 else "errors"
        super().__init__(
            f"Migration blocked by {count} validation {noun}: "
            + "; ".join(error.message for error in errors)
        )
