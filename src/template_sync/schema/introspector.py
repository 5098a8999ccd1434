"""Live table introspection via information_schema.

Reads the current column set of the synchronized table through the shared
``DatabaseClient`` pool.  A missing table is reported as an empty,
non-existent ``LiveSchema`` so the first sync cycle can bootstrap it.
"""

import logging

from template_sync.adapters.base import DATABASE_ERRORS, DatabaseClient
from template_sync.errors import IntrospectionFailed
from template_sync.schema.models import ColumnSchema, LiveSchema

logger = logging.getLogger(__name__)


class SchemaIntrospector:
    """Introspects one table's columns on PostgreSQL.

    Usage:
        introspector = SchemaIntrospector(adapter)
        live = await introspector.get_live_schema("customer_data")
        live.columns.keys()
    """

    def __init__(self, client: DatabaseClient, schema_name: str = "public") -> None:
        """Initialize with a database client.

        Args:
            client: Adapter implementing ``DatabaseClient``.
            schema_name: PostgreSQL schema holding the table (default: public)
        """
        self._client = client
        self._schema_name = schema_name

    async def get_live_schema(self, table: str) -> LiveSchema:
        """Snapshot the table's columns.

        Args:
            table: Table name (exact, case-sensitive).

        Returns:
            ``LiveSchema`` in ordinal order; ``exists=False`` if the table
            is missing.

        Raises:
            IntrospectionFailed: If the metadata queries fail.
        """
        try:
            columns = await self._get_columns(table)
            if not columns and not await self._table_exists(table):
                logger.info(f"Table '{table}' does not exist yet")
                return LiveSchema(table=table, exists=False)
        except DATABASE_ERRORS as e:
            logger.error(f"Failed to introspect table '{table}': {e}")
            raise IntrospectionFailed(f"Failed to introspect table '{table}': {e}") from e

        return LiveSchema(table=table, columns=columns)

    async def _get_columns(self, table: str) -> dict[str, ColumnSchema]:
        """Get columns for a table."""
        query = """
            SELECT
                column_name,
                data_type,
                is_nullable,
                column_default
            FROM information_schema.columns
            WHERE table_schema = :schema_name
              AND table_name = :table_name
            ORDER BY ordinal_position
        """
        rows = await self._client.fetch(
            query, {"schema_name": self._schema_name, "table_name": table}
        )
        columns: dict[str, ColumnSchema] = {}
        for row in rows:
            columns[row["column_name"]] = ColumnSchema(
                name=row["column_name"],
                data_type=self._normalize_data_type(row["data_type"]),
                is_nullable=(row["is_nullable"] == "YES"),
                default=row["column_default"],
            )
        return columns

    async def _table_exists(self, table: str) -> bool:
        query = """
            SELECT 1 AS found
            FROM information_schema.tables
            WHERE table_schema = :schema_name
              AND table_name = :table_name
        """
        rows = await self._client.fetch(
            query, {"schema_name": self._schema_name, "table_name": table}
        )
        return bool(rows)

    def _normalize_data_type(self, data_type: str) -> str:
        """Normalize PostgreSQL data type names.

        Maps verbose information_schema types to standard names.
        """
        type_map = {
            "character varying": "varchar",
            "character": "char",
            "timestamp with time zone": "timestamptz",
            "timestamp without time zone": "timestamp",
            "integer": "int",
            "boolean": "bool",
        }
        return type_map.get(data_type.lower(), data_type.lower())
