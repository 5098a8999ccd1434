"""Exception taxonomy for template synchronization and filtered queries.

Infrastructure errors (``IntrospectionFailed``, ``MigrationError``,
``QueryExecutionFailed``) are logged and reported, never allowed to crash
the process.  Validation errors (``InvalidFilterField``) are raised before
any statement reaches the database.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from template_sync.schema.models import SchemaChangeSet


class TemplateSyncError(Exception):
    """Base class for all template-sync errors."""

    pass


class TemplateUnreadable(TemplateSyncError):
    """Raised when the template is missing, unparsable, or has no header row."""

    pass


class ProtectedColumnError(TemplateUnreadable):
    """Raised when a template header collides with a protected column."""

    def __init__(self, columns: list[str]) -> None:
        self.columns = columns
        super().__init__(
            f"Template defines protected column(s): {', '.join(columns)}"
        )


class IntrospectionFailed(TemplateSyncError):
    """Raised when the live table schema cannot be read."""

    pass


class MigrationError(TemplateSyncError):
    """Raised when a DDL statement fails mid-cycle.

    Attributes:
        applied: The part of the change-set that was applied before the
            failing statement.  Already-applied DDL is not rolled back.
    """

    def __init__(self, message: str, applied: SchemaChangeSet) -> None:
        self.applied = applied
        super().__init__(message)


class InvalidFilterField(TemplateSyncError):
    """Raised when a filter or lookup names a field outside the allow-list."""

    def __init__(self, field: str, allowed: list[str] | None = None) -> None:
        self.field = field
        self.allowed = allowed or []
        message = f"Invalid field: {field!r}"
        if self.allowed:
            message += f". Allowed fields are: {', '.join(self.allowed)}"
        super().__init__(message)


class QueryExecutionFailed(TemplateSyncError):
    """Raised when a validated query fails in the database."""

    pass
