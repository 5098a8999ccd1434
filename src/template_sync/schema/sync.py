"""Schema synchronizer -- one read/diff/apply cycle, at most one at a time.

``SyncState`` is the process-wide record of synchronization: an
``asyncio.Lock`` admitting a single cycle, request/completion counters
used to coalesce triggers, and the template marker the watcher last
settled on.  It guards migration cycles only; query traffic is never
blocked by it.

Usage:
    from template_sync.schema.sync import SchemaSynchronizer

    synchronizer = SchemaSynchronizer(adapter, config.template)
    outcome = await synchronizer.start()   # initial cycle
    outcome = await synchronizer.sync()    # later triggers
"""

import asyncio
import logging

from template_sync.adapters.base import DatabaseClient
from template_sync.config.models import TemplateSettings
from template_sync.errors import (
    IntrospectionFailed,
    MigrationError,
    ProtectedColumnError,
    TemplateUnreadable,
)
from template_sync.schema.comparator import diff_schema
from template_sync.schema.introspector import SchemaIntrospector
from template_sync.schema.migrate import (
    TableCreate,
    apply_migration,
    build_migration_plan,
)
from template_sync.schema.models import CanonicalSchema, SchemaChangeSet, SyncOutcome
from template_sync.schema.template import read_template

logger = logging.getLogger(__name__)


class SyncState:
    """Process-wide synchronization state.

    Attributes:
        lock: Held for the duration of a sync cycle.
        requested: Number of sync requests received.
        completed: Highest request number satisfied by a finished cycle.
        cycles_run: Number of cycles actually executed.
        last_outcome: Outcome of the most recent cycle.
        template_marker: Template modification marker (``st_mtime_ns``)
            the watcher last settled on; ``None`` before the first cycle.
        last_failure_at: Monotonic time of the last retryable failure.
    """

    def __init__(self) -> None:
        self.lock = asyncio.Lock()
        self.requested = 0
        self.completed = 0
        self.cycles_run = 0
        self.last_outcome: SyncOutcome | None = None
        self.template_marker: int | None = None
        self.last_failure_at: float | None = None

    @property
    def in_flight(self) -> bool:
        """True while a sync cycle is running."""
        return self.lock.locked()


class SchemaSynchronizer:
    """Keeps one table's columns in line with the template header.

    Args:
        client: Adapter implementing ``DatabaseClient``.
        settings: Template path, table, and structural columns.
        state: Shared ``SyncState``; a fresh one is created if omitted.
        introspector: Override for the live schema reader.
    """

    def __init__(
        self,
        client: DatabaseClient,
        settings: TemplateSettings,
        state: SyncState | None = None,
        introspector: SchemaIntrospector | None = None,
    ) -> None:
        self._client = client
        self._settings = settings
        self.state = state or SyncState()
        self._introspector = introspector or SchemaIntrospector(client)

    async def start(self) -> SyncOutcome:
        """Run the initial cycle at service start.

        Raises:
            ProtectedColumnError: If the template defines a protected
                column.  This is a configuration error and is not retried.
        """
        try:
            self.read_template()
        except ProtectedColumnError:
            raise
        except TemplateUnreadable as e:
            # Retried on the next trigger
            logger.warning(f"Template unreadable at startup: {e}")
        return await self.sync()

    async def sync(self) -> SyncOutcome:
        """Run a sync cycle, coalescing with concurrent requests.

        A request made while a cycle is running waits for it, then runs
        one more cycle against the latest template.  Requests that pile
        up behind the same running cycle share a single follow-up cycle.

        Returns:
            ``SyncOutcome``; infrastructure and template failures are
            reported in it rather than raised.
        """
        state = self.state
        state.requested += 1
        ticket = state.requested

        async with state.lock:
            if state.completed >= ticket and state.last_outcome is not None:
                logger.debug(f"Sync request {ticket} coalesced into an earlier cycle")
                return state.last_outcome

            # Every request up to here is covered by this cycle
            generation = state.requested
            outcome = await self._run_cycle()
            state.cycles_run += 1
            state.completed = generation
            state.last_outcome = outcome
            return outcome

    def read_template(self) -> CanonicalSchema:
        """Read the canonical schema from the configured template."""
        return read_template(
            self._settings.path,
            sheet=self._settings.sheet,
            protected_columns=self._settings.protected_columns,
        )

    async def preview(self) -> SchemaChangeSet:
        """Compute the pending change-set without applying it.

        Raises:
            TemplateUnreadable: If the template cannot be read.
            IntrospectionFailed: If the live schema cannot be read.
        """
        canonical = self.read_template()
        live = await self._introspector.get_live_schema(self._settings.table)
        return diff_schema(canonical, live, self._settings.protected_columns)

    async def _run_cycle(self) -> SyncOutcome:
        table = self._settings.table

        try:
            canonical = self.read_template()
        except TemplateUnreadable as e:
            logger.error(f"Sync of '{table}' aborted, template unreadable: {e}")
            return SyncOutcome(error=str(e), error_type=type(e).__name__, template_error=True)

        try:
            live = await self._introspector.get_live_schema(table)
        except IntrospectionFailed as e:
            # Already logged by the introspector
            return SyncOutcome(error=str(e), error_type=type(e).__name__)

        change_set = diff_schema(canonical, live, self._settings.protected_columns)
        create = None
        if not live.exists:
            create = TableCreate(
                table=table,
                primary_key=self._settings.primary_key,
                audit_columns=list(self._settings.audit_columns),
            )

        plan = build_migration_plan(table, change_set, create=create)
        if not plan.has_changes:
            logger.debug(f"Table '{table}' already matches the template")
            return SyncOutcome(success=True)

        logger.info(
            f"Synchronizing '{table}': add {change_set.add or '[]'}, drop {change_set.drop or '[]'}"
        )
        try:
            applied = await apply_migration(self._client, plan)
        except MigrationError as e:
            return SyncOutcome(
                applied=e.applied,
                error=str(e),
                error_type=type(e).__name__,
            )

        logger.info(
            f"Table '{table}' synchronized: {len(applied.add)} added, {len(applied.drop)} dropped"
        )
        return SyncOutcome(success=True, table_created=create is not None, applied=applied)
