"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and the async PostgreSQL adapter.

Usage:
    from template_sync.adapters import DatabaseClient, AsyncPostgresAdapter
"""

from template_sync.adapters.base import DatabaseClient
from template_sync.adapters.postgres import AsyncPostgresAdapter

__all__ = [
    "DatabaseClient",
    "AsyncPostgresAdapter",
]
