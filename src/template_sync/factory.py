"""Component factory.

Resolves the active database profile and wires the adapter, synchronizer,
watcher, and query builder from a ``SyncConfig``.  This is the only place
that reads process environment (``TEMPLATE_SYNC_PROFILE``).
"""

import os
from dataclasses import dataclass
from urllib.parse import quote

from template_sync.adapters.base import DatabaseClient
from template_sync.adapters.postgres import AsyncPostgresAdapter
from template_sync.config.models import DatabaseProfile, SyncConfig
from template_sync.query.builder import FilteredQueryBuilder
from template_sync.schema.sync import SchemaSynchronizer, SyncState
from template_sync.schema.watcher import TemplateWatcher

PROFILE_ENV_VAR = "TEMPLATE_SYNC_PROFILE"


class ProfileNotFoundError(Exception):
    """Raised when no database profile is configured."""

    pass


# ============================================================================
# Profile Resolution
# ============================================================================


def get_active_profile_name(config: SyncConfig, profile_name: str | None = None) -> str:
    """Get the active profile name.

    Priority:
    1. Explicit *profile_name*
    2. ``TEMPLATE_SYNC_PROFILE`` env var
    3. The only profile, if exactly one is configured

    Raises:
        ProfileNotFoundError: If no profile can be chosen or it is unknown.
    """
    name = profile_name or os.environ.get(PROFILE_ENV_VAR)
    if not name and len(config.profiles) == 1:
        name = next(iter(config.profiles))

    if not name:
        raise ProfileNotFoundError(
            "No database profile selected.\n"
            f"Pass --profile or set {PROFILE_ENV_VAR}.\n"
            f"Available profiles: {', '.join(config.profiles) or '(none)'}"
        )
    if name not in config.profiles:
        raise ProfileNotFoundError(
            f"Profile '{name}' not found. Available: {', '.join(config.profiles) or '(none)'}"
        )
    return name


def resolve_url(profile: DatabaseProfile) -> str:
    """Resolve profile URL with password substitution.

    Example:
        >>> resolve_url(DatabaseProfile(url="postgresql://u:[YOUR-PASSWORD]@h/db", db_password="p@ss"))
        'postgresql://u:p%40ss@h/db'
    """
    url = profile.url
    if profile.db_password and "[YOUR-PASSWORD]" in url:
        url = url.replace("[YOUR-PASSWORD]", quote(profile.db_password, safe=""))
    return url


# ============================================================================
# Component Wiring
# ============================================================================


def get_adapter(config: SyncConfig, profile_name: str | None = None) -> AsyncPostgresAdapter:
    """Create a pooled adapter for the active profile (no caching)."""
    name = get_active_profile_name(config, profile_name)
    profile = config.profiles[name]
    return AsyncPostgresAdapter(resolve_url(profile), statement_timeout=profile.statement_timeout)


@dataclass
class SyncService:
    """Everything a host application needs, sharing one adapter and state."""

    client: DatabaseClient
    synchronizer: SchemaSynchronizer
    watcher: TemplateWatcher
    queries: FilteredQueryBuilder

    async def close(self) -> None:
        """Stop watching and dispose of the connection pool."""
        try:
            await self.watcher.stop()
        finally:
            await self.client.close()


def build_service(config: SyncConfig, client: DatabaseClient) -> SyncService:
    """Wire synchronizer, watcher, and query builder around *client*."""
    synchronizer = SchemaSynchronizer(client, config.template, state=SyncState())
    return SyncService(
        client=client,
        synchronizer=synchronizer,
        watcher=TemplateWatcher(synchronizer, config.template),
        queries=FilteredQueryBuilder(client, config.template.table, config.query),
    )
