"""template-sync: keep a table's columns in sync with a spreadsheet template.

Watches a template file, reconciles the table's columns with the
template header (add-before-drop, protected structural columns), and
offers an allow-listed, parameterized search layer over the table.

Usage:
    from template_sync import load_sync_config, get_adapter, build_service

    config = load_sync_config()
    service = build_service(config, get_adapter(config))
    await service.watcher.start()
    rows = await service.queries.search({"STATE": ["Delhi", "Haryana"]})
"""

__version__ = "0.1.0"

# Adapters
from template_sync.adapters.base import DatabaseClient
from template_sync.adapters.postgres import AsyncPostgresAdapter

# Config
from template_sync.config.loader import load_sync_config
from template_sync.config.models import (
    DatabaseProfile,
    QuerySettings,
    SyncConfig,
    TemplateSettings,
)

# Errors
from template_sync.errors import (
    IntrospectionFailed,
    InvalidFilterField,
    MigrationError,
    ProtectedColumnError,
    QueryExecutionFailed,
    TemplateSyncError,
    TemplateUnreadable,
)

# Factory
from template_sync.factory import (
    ProfileNotFoundError,
    SyncService,
    build_service,
    get_adapter,
    resolve_url,
)

# Query
from template_sync.query import FieldAllowList, FilteredQueryBuilder

# Schema
from template_sync.schema import (
    SchemaChangeSet,
    SchemaSynchronizer,
    SyncOutcome,
    TemplateWatcher,
    diff_schema,
    read_template,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncPostgresAdapter",
    # Config
    "load_sync_config",
    "SyncConfig",
    "DatabaseProfile",
    "TemplateSettings",
    "QuerySettings",
    # Errors
    "TemplateSyncError",
    "TemplateUnreadable",
    "ProtectedColumnError",
    "IntrospectionFailed",
    "MigrationError",
    "InvalidFilterField",
    "QueryExecutionFailed",
    # Factory
    "get_adapter",
    "build_service",
    "SyncService",
    "ProfileNotFoundError",
    "resolve_url",
    # Query
    "FilteredQueryBuilder",
    "FieldAllowList",
    # Schema
    "read_template",
    "diff_schema",
    "SchemaSynchronizer",
    "TemplateWatcher",
    "SchemaChangeSet",
    "SyncOutcome",
]
