"""Tests for the PostgreSQL adapter and SQL helpers."""

import asyncio
import inspect
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from template_sync.adapters.base import DATABASE_ERRORS, DatabaseClient, quote_identifier
from template_sync.adapters.postgres import AsyncPostgresAdapter, normalize_url


class TestProtocol:
    """DatabaseClient methods are async."""

    @pytest.mark.parametrize("name", ["fetch", "execute", "close"])
    def test_methods_async(self, name: str) -> None:
        assert inspect.iscoroutinefunction(getattr(DatabaseClient, name))

    def test_timeout_is_database_error(self) -> None:
        assert issubclass(asyncio.TimeoutError, DATABASE_ERRORS)


class TestQuoteIdentifier:
    def test_plain(self) -> None:
        assert quote_identifier("STATE") == '"STATE"'

    def test_embedded_quote(self) -> None:
        assert quote_identifier('a"b') == '"a""b"'


class TestNormalizeUrl:
    @pytest.mark.parametrize(
        ("url", "expected"),
        [
            ("postgres://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("postgresql://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
            ("postgresql+asyncpg://u:p@h/db", "postgresql+asyncpg://u:p@h/db"),
        ],
    )
    def test_schemes(self, url: str, expected: str) -> None:
        assert normalize_url(url) == expected


class TestAdapter:
    """Engine creation and per-call timeouts."""

    def test_engine_uses_asyncpg_url(self) -> None:
        with patch("template_sync.adapters.postgres.create_async_engine_pooled") as create:
            AsyncPostgresAdapter("postgres://u:p@localhost/db")

        assert create.call_args.args[0] == "postgresql+asyncpg://u:p@localhost/db"

    @pytest.mark.asyncio
    async def test_fetch_times_out(self) -> None:
        with patch("template_sync.adapters.postgres.create_async_engine_pooled", MagicMock()):
            adapter = AsyncPostgresAdapter("postgresql://u:p@localhost/db", statement_timeout=0.01)

        async def slow(sql, params):
            await asyncio.sleep(1)
            return []

        with patch.object(adapter, "_fetch", slow):
            with pytest.raises(asyncio.TimeoutError):
                await adapter.fetch("SELECT 1")

    @pytest.mark.asyncio
    async def test_execute_passes_params(self) -> None:
        with patch("template_sync.adapters.postgres.create_async_engine_pooled", MagicMock()):
            adapter = AsyncPostgresAdapter("postgresql://u:p@localhost/db")

        calls = []

        async def record(sql, params):
            calls.append((sql, params))

        with patch.object(adapter, "_execute", record):
            await adapter.execute("ALTER TABLE t ADD COLUMN c TEXT")

        assert calls == [("ALTER TABLE t ADD COLUMN c TEXT", {})]

    def test_serialize_row(self) -> None:
        from datetime import datetime
        from uuid import UUID

        with patch("template_sync.adapters.postgres.create_async_engine_pooled", MagicMock()):
            adapter = AsyncPostgresAdapter("postgresql://u:p@localhost/db")

        row = adapter._serialize_row(
            {
                "id": UUID("12345678-1234-5678-1234-567812345678"),
                "at": datetime(2024, 1, 2, 3, 4, 5),
                "name": "x",
            }
        )

        assert row == {
            "id": "12345678-1234-5678-1234-567812345678",
            "at": "2024-01-02T03:04:05",
            "name": "x",
        }


class TestConnection:
    """test_connection() runs SELECT 1 through fetch()."""

    def make_adapter(self) -> AsyncPostgresAdapter:
        with patch("template_sync.adapters.postgres.create_async_engine_pooled", MagicMock()):
            return AsyncPostgresAdapter("postgresql://u:p@localhost/db")

    @pytest.mark.asyncio
    async def test_alive(self) -> None:
        adapter = self.make_adapter()

        with patch.object(adapter, "fetch", AsyncMock(return_value=[{"ok": 1}])) as fetch:
            assert await adapter.test_connection() is True

        assert fetch.await_args.args[0] == "SELECT 1 AS ok"

    @pytest.mark.asyncio
    async def test_no_rows(self) -> None:
        adapter = self.make_adapter()

        with patch.object(adapter, "fetch", AsyncMock(return_value=[])):
            assert await adapter.test_connection() is False

    @pytest.mark.asyncio
    async def test_failure_propagates(self) -> None:
        adapter = self.make_adapter()

        with patch.object(adapter, "fetch", AsyncMock(side_effect=OSError("refused"))):
            with pytest.raises(OSError):
                await adapter.test_connection()
