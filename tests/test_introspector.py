"""Tests for SchemaIntrospector over the DatabaseClient protocol."""

import inspect
from unittest.mock import AsyncMock

import pytest
from conftest import FakeDatabase
from sqlalchemy.exc import OperationalError

from template_sync.errors import IntrospectionFailed
from template_sync.schema.introspector import SchemaIntrospector
from template_sync.schema.models import LiveSchema


class TestAsyncMethods:
    """Query methods are async; type normalization is sync."""

    def test_get_live_schema_is_async(self) -> None:
        assert inspect.iscoroutinefunction(SchemaIntrospector.get_live_schema)

    def test_normalize_data_type_is_sync(self) -> None:
        assert not inspect.iscoroutinefunction(SchemaIntrospector._normalize_data_type)


class TestGetLiveSchema:
    """Live schema snapshots."""

    @pytest.mark.asyncio
    async def test_columns_in_ordinal_order(self, fake_db: FakeDatabase) -> None:
        live = await SchemaIntrospector(fake_db).get_live_schema("customer_data")

        assert isinstance(live, LiveSchema)
        assert live.exists
        assert list(live.columns) == [
            "id",
            "created_at",
            "updated_at",
            "CUSTOMER_NUMBER",
            "CUSTOMER_NAME",
            "ZONE",
        ]
        assert live.columns["ZONE"].data_type == "text"
        assert live.columns["ZONE"].is_nullable

    @pytest.mark.asyncio
    async def test_missing_table_is_empty_not_error(self) -> None:
        live = await SchemaIntrospector(FakeDatabase()).get_live_schema("customer_data")

        assert not live.exists
        assert live.columns == {}

    @pytest.mark.asyncio
    async def test_query_is_parameterized(self) -> None:
        client = AsyncMock()
        client.fetch.return_value = [
            {
                "column_name": "STATE",
                "data_type": "character varying",
                "is_nullable": "NO",
                "column_default": None,
            }
        ]

        live = await SchemaIntrospector(client, schema_name="sales").get_live_schema("customer_data")

        sql, params = client.fetch.await_args.args
        assert "information_schema.columns" in sql
        assert "customer_data" not in sql
        assert params == {"schema_name": "sales", "table_name": "customer_data"}
        assert live.columns["STATE"].data_type == "varchar"
        assert not live.columns["STATE"].is_nullable

    @pytest.mark.asyncio
    async def test_failure_raises_introspection_failed(self) -> None:
        client = AsyncMock()
        client.fetch.side_effect = OperationalError("SELECT", {}, Exception("refused"))

        with pytest.raises(IntrospectionFailed, match="customer_data"):
            await SchemaIntrospector(client).get_live_schema("customer_data")


class TestNormalizeDataType:
    """Verbose information_schema type names are shortened."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("character varying", "varchar"),
            ("timestamp with time zone", "timestamptz"),
            ("TEXT", "text"),
            ("bigint", "bigint"),
        ],
    )
    def test_mapping(self, raw: str, expected: str) -> None:
        introspector = SchemaIntrospector(AsyncMock())

        assert introspector._normalize_data_type(raw) == expected
