"""Dynamic filtered-query builder.

Builds parameterized ``SELECT`` statements over the synchronized table
from a filter request (field -> one or many values).  Values within a
field are OR-ed through ``IN (...)``; fields are AND-ed.  Every value is
a bind parameter; identifiers come from ``FieldAllowList`` entries only.

Usage:
    builder = FilteredQueryBuilder(adapter, "customer_data", config.query)

    rows = await builder.search({"STATE": ["Delhi", "Haryana"], "CITY": "Gurgaon"})
    states = await builder.distinct_values("STATE")
"""

import logging
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

from template_sync.adapters.base import DATABASE_ERRORS, DatabaseClient, quote_identifier
from template_sync.config.models import QuerySettings
from template_sync.errors import QueryExecutionFailed
from template_sync.query.fields import AllowedField, FieldAllowList

logger = logging.getLogger(__name__)

FilterValues = str | Sequence[str]
FilterRequest = Mapping[str, FilterValues]


@dataclass(frozen=True)
class BuiltQuery:
    """SQL text with named placeholders plus the values to bind."""

    sql: str
    params: dict[str, Any] = field(default_factory=dict)


def split_values(raw: FilterValues | None) -> list[str]:
    """Normalize one field's filter values to a list of strings.

    A single string is split on commas (``"Delhi,Haryana"``); a sequence
    is taken as-is.  Empty values are dropped.

    Example:
        >>> split_values("Delhi,Haryana")
        ['Delhi', 'Haryana']
        >>> split_values(["O'Brien", ""])
        ["O'Brien"]
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    else:
        items = [str(item) for item in raw if item is not None]
    return [item for item in items if item != ""]


class FilteredQueryBuilder:
    """Builds and runs allow-listed search queries against one table.

    Args:
        client: Adapter implementing ``DatabaseClient``.
        table: Table to query (validated at config load).
        settings: Allow-lists, projection, key and display columns.
    """

    def __init__(self, client: DatabaseClient, table: str, settings: QuerySettings) -> None:
        self._client = client
        self._table = quote_identifier(table)
        self._settings = settings
        self.filter_fields = FieldAllowList(settings.filter_fields)
        self.distinct_fields = FieldAllowList(
            [*settings.filter_fields, *settings.distinct_fields], strict_pattern=True
        )
        self._projection = ", ".join(quote_identifier(c) for c in settings.projection)
        self._order_by = (
            f"{quote_identifier(settings.display_column)} ASC, "
            f"{quote_identifier(settings.key_column)} ASC"
        )

    # ------------------------------------------------------------------
    # Query construction (pure)
    # ------------------------------------------------------------------

    def build_search(self, filters: FilterRequest) -> BuiltQuery:
        """Build the search query for a filter request.

        Every key is validated before any SQL is produced; one bad key
        rejects the whole request.

        Raises:
            InvalidFilterField: If a key is not on the filter allow-list.
        """
        validated: list[tuple[AllowedField, list[str]]] = [
            (self.filter_fields.validate(name), split_values(raw))
            for name, raw in filters.items()
        ]

        conditions: list[str] = []
        params: dict[str, Any] = {}
        for allowed, values in validated:
            if not values:
                continue
            placeholders: list[str] = []
            for value in values:
                param_name = f"p_{len(params)}"
                placeholders.append(f":{param_name}")
                params[param_name] = value
            conditions.append(f"{allowed.sql} IN ({', '.join(placeholders)})")

        where_clause = " WHERE " + " AND ".join(conditions) if conditions else ""
        sql = f"SELECT {self._projection} FROM {self._table}{where_clause} ORDER BY {self._order_by}"
        return BuiltQuery(sql=sql, params=params)

    def build_distinct(self, field_name: str) -> BuiltQuery:
        """Build the distinct-values query for one field.

        Raises:
            InvalidFilterField: If *field_name* is not a plain identifier
                or not on the distinct-values allow-list.
        """
        allowed = self.distinct_fields.validate(field_name)
        column = allowed.sql
        sql = (
            f'SELECT DISTINCT {column} AS "value" FROM {self._table} '
            f"WHERE {column} IS NOT NULL AND {column} <> '' "
            f'ORDER BY "value" ASC'
        )
        return BuiltQuery(sql=sql)

    def build_field_equals(self, field_name: str, value: str) -> BuiltQuery:
        """Build a single-field equality query.

        Raises:
            InvalidFilterField: If *field_name* is not on the filter allow-list.
        """
        allowed = self.filter_fields.validate(field_name)
        sql = (
            f"SELECT {self._projection} FROM {self._table} "
            f"WHERE {allowed.sql} = :p_0 ORDER BY {self._order_by}"
        )
        return BuiltQuery(sql=sql, params={"p_0": value})

    def build_key_lookup(self, key: str) -> BuiltQuery:
        """Build the lookup of one row by the key column."""
        sql = (
            f"SELECT {self._projection} FROM {self._table} "
            f"WHERE {quote_identifier(self._settings.key_column)} = :p_0 LIMIT 1"
        )
        return BuiltQuery(sql=sql, params={"p_0": key})

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def search(self, filters: FilterRequest) -> list[dict]:
        """Return rows matching all filters, ordered by display name.

        An empty request returns every row.

        Raises:
            InvalidFilterField: Before touching the database.
            QueryExecutionFailed: If the database call fails.
        """
        return await self._run(self.build_search(filters), "search")

    async def distinct_values(self, field_name: str) -> list[str]:
        """Return the sorted, non-empty distinct values of one column.

        Raises:
            InvalidFilterField: Before touching the database.
            QueryExecutionFailed: If the database call fails.
        """
        rows = await self._run(self.build_distinct(field_name), f"distinct {field_name}")
        return [row["value"] for row in rows]

    async def search_by_field(self, field_name: str, value: str) -> list[dict]:
        """Return rows where one allow-listed field equals *value*."""
        return await self._run(
            self.build_field_equals(field_name, value), f"search by {field_name}"
        )

    async def get_by_key(self, key: str) -> dict | None:
        """Return the row whose key column equals *key*, or ``None``."""
        rows = await self._run(self.build_key_lookup(key), "key lookup")
        return rows[0] if rows else None

    async def _run(self, query: BuiltQuery, label: str) -> list[dict]:
        try:
            return await self._client.fetch(query.sql, query.params)
        except DATABASE_ERRORS as e:
            # Bound values are not logged
            logger.error(f"Query '{label}' on {self._table} failed: {e}")
            raise QueryExecutionFailed(f"Query '{label}' failed: {e}") from e
