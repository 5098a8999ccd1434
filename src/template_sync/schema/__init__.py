"""Template-driven schema synchronization.

Provides the template reader (``read_template``), live introspection
(``SchemaIntrospector``), the pure differ (``diff_schema``), the
migration executor (``build_migration_plan``, ``apply_migration``), the
coalescing ``SchemaSynchronizer``, and the ``TemplateWatcher``.

Usage:
    from template_sync.schema import SchemaSynchronizer, TemplateWatcher
    from template_sync.schema import diff_schema, read_template
"""

from template_sync.schema.comparator import diff_schema
from template_sync.schema.introspector import SchemaIntrospector
from template_sync.schema.migrate import (
    ColumnAdd,
    ColumnDrop,
    MigrationPlan,
    TableCreate,
    apply_migration,
    build_migration_plan,
)
from template_sync.schema.models import (
    CanonicalSchema,
    ColumnSchema,
    LiveSchema,
    SchemaChangeSet,
    SyncOutcome,
)
from template_sync.schema.sync import SchemaSynchronizer, SyncState
from template_sync.schema.template import normalize_columns, read_template
from template_sync.schema.watcher import TemplateWatcher

__all__ = [
    "read_template",
    "normalize_columns",
    "SchemaIntrospector",
    "diff_schema",
    "build_migration_plan",
    "apply_migration",
    "MigrationPlan",
    "ColumnAdd",
    "ColumnDrop",
    "TableCreate",
    "SchemaSynchronizer",
    "SyncState",
    "TemplateWatcher",
    "CanonicalSchema",
    "ColumnSchema",
    "LiveSchema",
    "SchemaChangeSet",
    "SyncOutcome",
]
