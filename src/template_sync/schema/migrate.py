"""Migration executor -- apply a schema change-set as DDL.

Additions run before drops so a renamed column (old name removed, new
name added) is never missing under both names.  New columns are nullable
``TEXT`` so existing rows stay valid.  Drops are destructive and
irreversible; each one is logged at WARNING before it runs.

DDL is not treated as transactional: each statement commits on its own,
and a failure stops the cycle without undoing earlier statements.

Usage:
    from template_sync.schema.migrate import build_migration_plan, apply_migration

    plan = build_migration_plan("customer_data", change_set)
    applied = await apply_migration(adapter, plan)
"""

import logging
from dataclasses import dataclass, field

from template_sync.adapters.base import DATABASE_ERRORS, DatabaseClient, quote_identifier
from template_sync.errors import MigrationError
from template_sync.schema.models import SchemaChangeSet

logger = logging.getLogger(__name__)

COLUMN_TYPE = "TEXT"


# ------------------------------------------------------------------
# Migration data classes
# ------------------------------------------------------------------


@dataclass
class ColumnAdd:
    """A column to be added via ALTER TABLE.

    Example:
        ColumnAdd(table="customer_data", column="STATE").to_sql()
        # 'ALTER TABLE "customer_data" ADD COLUMN IF NOT EXISTS "STATE" TEXT NULL'
    """

    table: str
    column: str

    def to_sql(self) -> str:
        """Generate ALTER TABLE ADD COLUMN statement."""
        return (
            f"ALTER TABLE {quote_identifier(self.table)} "
            f"ADD COLUMN IF NOT EXISTS {quote_identifier(self.column)} {COLUMN_TYPE} NULL"
        )


@dataclass
class ColumnDrop:
    """A column to be dropped via ALTER TABLE (data is lost)."""

    table: str
    column: str

    def to_sql(self) -> str:
        """Generate ALTER TABLE DROP COLUMN statement."""
        return (
            f"ALTER TABLE {quote_identifier(self.table)} "
            f"DROP COLUMN IF EXISTS {quote_identifier(self.column)}"
        )


@dataclass
class TableCreate:
    """Bootstrap of a missing table with its structural columns only.

    Template columns are added afterwards by ``ColumnAdd`` statements.
    """

    table: str
    primary_key: str = "id"
    audit_columns: list[str] = field(default_factory=lambda: ["created_at", "updated_at"])

    def to_sql(self) -> str:
        """Generate CREATE TABLE IF NOT EXISTS statement."""
        parts = [f"{quote_identifier(self.primary_key)} BIGSERIAL PRIMARY KEY"]
        for column in self.audit_columns:
            parts.append(f"{quote_identifier(column)} TIMESTAMPTZ NOT NULL DEFAULT now()")
        body = ",\n    ".join(parts)
        return f"CREATE TABLE IF NOT EXISTS {quote_identifier(self.table)} (\n    {body}\n)"


@dataclass
class MigrationPlan:
    """Ordered DDL for one sync cycle.

    Attributes:
        table: Target table.
        create: Table bootstrap, if the table does not exist yet.
        additions: Columns to add, in template order.
        drops: Columns to drop, run after every addition.
    """

    table: str
    create: TableCreate | None = None
    additions: list[ColumnAdd] = field(default_factory=list)
    drops: list[ColumnDrop] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        """True if there are any statements to run."""
        return bool(self.create or self.additions or self.drops)

    def statements(self) -> list[str]:
        """All statements in execution order: create, additions, drops."""
        steps: list[str] = []
        if self.create is not None:
            steps.append(self.create.to_sql())
        steps.extend(add.to_sql() for add in self.additions)
        steps.extend(drop.to_sql() for drop in self.drops)
        return steps


# ------------------------------------------------------------------
# Plan generation
# ------------------------------------------------------------------


def build_migration_plan(
    table: str,
    change_set: SchemaChangeSet,
    create: TableCreate | None = None,
) -> MigrationPlan:
    """Turn a change-set into an ordered migration plan.

    Args:
        table: Target table name.
        change_set: Output of ``diff_schema()``.
        create: Table bootstrap to run first, when the table is missing.

    Returns:
        ``MigrationPlan`` with additions ahead of drops.
    """
    return MigrationPlan(
        table=table,
        create=create,
        additions=[ColumnAdd(table=table, column=column) for column in change_set.add],
        drops=[ColumnDrop(table=table, column=column) for column in change_set.drop],
    )


# ------------------------------------------------------------------
# Plan application
# ------------------------------------------------------------------


async def apply_migration(client: DatabaseClient, plan: MigrationPlan) -> SchemaChangeSet:
    """Execute a migration plan statement by statement.

    Args:
        client: Adapter implementing ``DatabaseClient``.
        plan: Plan from ``build_migration_plan()``.

    Returns:
        The change-set actually applied (equal to the plan on success).

    Raises:
        MigrationError: If a statement fails.  ``MigrationError.applied``
            lists what ran before the failure; those changes stay in place.
    """
    applied = SchemaChangeSet()

    if plan.create is not None:
        try:
            await client.execute(plan.create.to_sql())
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to create table '{plan.table}': {e}")
            raise MigrationError(f"Failed to create table '{plan.table}': {e}", applied) from e
        logger.info(f"Created table '{plan.table}'")

    for add in plan.additions:
        try:
            await client.execute(add.to_sql())
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to add column '{add.column}' to '{plan.table}': {e}")
            raise MigrationError(
                f"Failed to add column '{add.column}' to '{plan.table}': {e}", applied
            ) from e
        applied.add.append(add.column)
        logger.info(f"Added column '{add.column}' to '{plan.table}'")

    for drop in plan.drops:
        logger.warning(
            f"Dropping column '{drop.column}' from '{plan.table}' "
            f"(destructive, column data cannot be recovered)"
        )
        try:
            await client.execute(drop.to_sql())
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to drop column '{drop.column}' from '{plan.table}': {e}")
            raise MigrationError(
                f"Failed to drop column '{drop.column}' from '{plan.table}': {e}", applied
            ) from e
        applied.drop.append(drop.column)

    return applied
