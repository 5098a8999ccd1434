"""Pydantic models for template schemas, live schemas, and sync results.

- Template side: CanonicalSchema
- Database side: ColumnSchema, LiveSchema
- Reconciliation: SchemaChangeSet, SyncOutcome
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator


# ============================================================================
# Template Schema
# ============================================================================


class CanonicalSchema(BaseModel):
    """Ordered, de-duplicated, upper-cased column names read from a template.

    Example:
        >>> schema = CanonicalSchema(columns=("CUSTOMER_NUMBER", "STATE"))
        >>> "STATE" in schema
        True
    """

    model_config = ConfigDict(frozen=True)

    columns: tuple[str, ...] = ()

    @field_validator("columns", mode="before")
    @classmethod
    def _canonical_case(cls, value: object) -> tuple[str, ...]:
        # Upper-case and collapse duplicates, first occurrence wins
        names = (str(name).strip().upper() for name in value or () if name is not None)
        return tuple(dict.fromkeys(name for name in names if name))

    def __contains__(self, name: str) -> bool:
        return name.upper() in self.columns


# ============================================================================
# Live Schema
# ============================================================================


class ColumnSchema(BaseModel):
    """Schema for a database column.

    Example:
        >>> col = ColumnSchema(name="STATE", data_type="text")
        >>> col.is_nullable
        True
    """

    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None


class LiveSchema(BaseModel):
    """Snapshot of a table's columns, keyed by their exact database name.

    ``exists`` is False when the table has not been created yet; the
    snapshot then has no columns and the first sync cycle bootstraps it.
    """

    table: str
    exists: bool = True
    columns: dict[str, ColumnSchema] = Field(default_factory=dict)

    def normalized(self) -> dict[str, str]:
        """Map upper-cased column name to the exact database name."""
        return {name.upper(): name for name in self.columns}


# ============================================================================
# Reconciliation
# ============================================================================


class SchemaChangeSet(BaseModel):
    """Columns to add (template order) and drop (sorted) in one sync cycle."""

    add: list[str] = Field(default_factory=list)
    drop: list[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        """True if nothing needs to change."""
        return not self.add and not self.drop

    def format_report(self) -> str:
        """Format the change-set as a human-readable report."""
        if self.is_empty:
            return "Schema in sync"

        lines = ["Schema changes:"]
        if self.add:
            lines.append(f"\n  Add columns ({len(self.add)}):")
            for column in self.add:
                lines.append(f"    + {column}")
        if self.drop:
            lines.append(f"\n  Drop columns ({len(self.drop)}):")
            for column in self.drop:
                lines.append(f"    - {column}")
        return "\n".join(lines)


class SyncOutcome(BaseModel):
    """Result of one synchronization cycle.

    Attributes:
        success: True if the live schema matches the template afterwards.
        table_created: True if the cycle bootstrapped a missing table.
        applied: Changes actually applied (partial on failure).
        error: Error message if the cycle failed.
        error_type: Exception class name for failed cycles.
        template_error: True when the template itself was unreadable, so
            retrying against the same file is pointless.
    """

    success: bool = False
    table_created: bool = False
    applied: SchemaChangeSet = Field(default_factory=SchemaChangeSet)
    error: str | None = None
    error_type: str | None = None
    template_error: bool = False
