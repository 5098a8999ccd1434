"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol consumed by the introspector,
migration executor, and query builder.  All methods are ``async def``.

Usage:
    from template_sync.adapters.base import DatabaseClient

    async def do_work(client: DatabaseClient) -> None:
        rows = await client.fetch('SELECT "STATE" FROM customer_data')
        await client.execute('ALTER TABLE customer_data ADD COLUMN "CITY" TEXT')
        await client.close()
"""

from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    Statements use SQLAlchemy-style named parameters (``:p_0``).  Values
    are always passed through ``params``; only pre-validated identifiers
    may appear in the SQL text.
    """

    async def fetch(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        """Run a query and return its rows.

        Args:
            sql: SQL text with ``:name`` placeholders.
            params: Optional dict of named parameter values.

        Returns:
            List of dicts, one per row.  Empty list if no matches.

        Example:
            rows = await client.fetch(
                'SELECT * FROM customer_data WHERE "STATE" IN (:p_0, :p_1)',
                {"p_0": "Delhi", "p_1": "Haryana"},
            )
        """
        ...

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        """Execute a statement that returns no rows (DDL or DML).

        Args:
            sql: Raw SQL statement to execute.
            params: Optional dict of named parameters for the statement.

        Example:
            await client.execute(
                'ALTER TABLE customer_data ADD COLUMN "STATE" TEXT'
            )
        """
        ...

    async def close(self) -> None:
        """Close database connection and clean up resources."""
        ...


# Errors a DatabaseClient call may raise for infrastructure reasons
# (driver/connectivity failures and per-call timeouts).
DATABASE_ERRORS: tuple[type[BaseException], ...] = (
    SQLAlchemyError,
    OSError,
    TimeoutError,
)


def quote_identifier(name: str) -> str:
    """Quote a SQL identifier, doubling any embedded double quotes.

    Quoting keeps upper-case template names intact under PostgreSQL's
    case folding.  It is not a substitute for allow-list validation.

    Example:
        >>> quote_identifier("STATE")
        '"STATE"'
    """
    return '"' + name.replace('"', '""') + '"'
