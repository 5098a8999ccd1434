"""Shared fixtures: template files, a stateful fake database, and SQLite."""

import asyncio
import re
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from openpyxl import Workbook
from sqlalchemy import create_engine, text
from sqlalchemy.exc import OperationalError
from sqlalchemy.pool import StaticPool

from template_sync.config.models import QuerySettings, TemplateSettings

_CREATE_RE = re.compile(r'CREATE TABLE IF NOT EXISTS "([^"]+)"')
_STRUCTURAL_RE = re.compile(r'"([^"]+)" (?:BIGSERIAL|TIMESTAMPTZ)')
_ADD_RE = re.compile(r'ADD COLUMN IF NOT EXISTS "([^"]+)"')
_DROP_RE = re.compile(r'DROP COLUMN IF EXISTS "([^"]+)"')


class FakeDatabase:
    """In-memory stand-in for one PostgreSQL table's catalog.

    Understands the introspection queries and the DDL the migration
    executor generates, and records every statement it receives.
    """

    def __init__(self, table: str = "customer_data", columns: list[str] | None = None) -> None:
        self.table = table
        self.exists = columns is not None
        self.columns: list[str] = list(columns or [])
        self.executed: list[str] = []
        self.fetched: list[str] = []
        self.fail_on: str | None = None
        self.fail_fetch = False
        self.gate: asyncio.Event | None = None
        self.reached = asyncio.Event()

    async def fetch(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        self.fetched.append(sql)
        if self.fail_fetch:
            raise OperationalError(sql, params, Exception("connection refused"))
        params = params or {}
        if "information_schema.columns" in sql:
            if not self.exists or params.get("table_name") != self.table:
                return []
            return [
                {
                    "column_name": name,
                    "data_type": "text",
                    "is_nullable": "YES",
                    "column_default": None,
                }
                for name in self.columns
            ]
        if "information_schema.tables" in sql:
            found = self.exists and params.get("table_name") == self.table
            return [{"found": 1}] if found else []
        return []

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        self.reached.set()
        if self.gate is not None:
            await self.gate.wait()
        if self.fail_on and self.fail_on in sql:
            raise OperationalError(sql, params, Exception("lock timeout"))
        self.executed.append(sql)

        if match := _CREATE_RE.search(sql):
            if not self.exists:
                self.exists = True
                self.table = match.group(1)
                self.columns = _STRUCTURAL_RE.findall(sql)
        elif match := _ADD_RE.search(sql):
            if match.group(1) not in self.columns:
                self.columns.append(match.group(1))
        elif match := _DROP_RE.search(sql):
            if match.group(1) in self.columns:
                self.columns.remove(match.group(1))

    async def close(self) -> None:
        pass


class SQLiteClient:
    """``DatabaseClient`` over an in-memory SQLite engine.

    Runs the builder's real SQL so bound values are checked end to end.
    """

    def __init__(self) -> None:
        self.engine = create_engine(
            "sqlite://",
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    async def fetch(self, sql: str, params: dict[str, Any] | None = None) -> list[dict]:
        with self.engine.connect() as conn:
            result = conn.execute(text(sql), params or {})
            return [dict(row._mapping) for row in result]

    async def execute(self, sql: str, params: dict[str, Any] | None = None) -> None:
        with self.engine.begin() as conn:
            conn.execute(text(sql), params or {})

    async def close(self) -> None:
        self.engine.dispose()


CUSTOMER_COLUMNS = [
    "CUSTOMER_NUMBER",
    "CUSTOMER_NAME",
    "TALUKA",
    "T_ZONE",
    "ZONE",
    "REGION",
    "DISTIRCT",
    "CITY",
    "TERRITORY_CODE",
    "STATE",
]

CUSTOMER_ROWS = [
    {"CUSTOMER_NUMBER": "C003", "CUSTOMER_NAME": "Gupta Traders", "STATE": "Delhi", "CITY": "New Delhi", "ZONE": "North"},
    {"CUSTOMER_NUMBER": "C001", "CUSTOMER_NAME": "Arora Agro", "STATE": "Haryana", "CITY": "Gurgaon", "ZONE": "North"},
    {"CUSTOMER_NUMBER": "C002", "CUSTOMER_NAME": "O'Brien Supplies", "STATE": "Punjab", "CITY": "Ludhiana", "ZONE": "North"},
    {"CUSTOMER_NUMBER": "C004", "CUSTOMER_NAME": "Patil Farms", "STATE": "Maharashtra", "CITY": "Pune", "ZONE": "West"},
    {"CUSTOMER_NUMBER": "C005", "CUSTOMER_NAME": "Bansal Seeds", "STATE": "Haryana", "CITY": "Hisar", "ZONE": ""},
]


def write_xlsx(path: Path, *rows: list[Any], sheet: str | None = None) -> Path:
    """Write rows to a single-sheet workbook."""
    wb = Workbook()
    ws = wb.active
    if sheet:
        ws.title = sheet
    for row in rows:
        ws.append(row)
    wb.save(path)
    return path


@pytest.fixture
def template_path(tmp_path: Path) -> Path:
    """Template whose header is CUSTOMER_NUMBER, CUSTOMER_NAME, STATE."""
    return write_xlsx(
        tmp_path / "template.xlsx",
        ["CUSTOMER_NUMBER", "CUSTOMER_NAME", "STATE"],
        ["C001", "Arora Agro", "Haryana"],
    )


@pytest.fixture
def template_settings(template_path: Path) -> TemplateSettings:
    return TemplateSettings(
        path=str(template_path),
        table="customer_data",
        poll_interval=0.01,
        debounce=0.0,
        retry_interval=30.0,
    )


@pytest.fixture
def query_settings() -> QuerySettings:
    return QuerySettings()


@pytest.fixture
def fake_db() -> FakeDatabase:
    """Live table: structural columns plus CUSTOMER_NUMBER, CUSTOMER_NAME, ZONE."""
    return FakeDatabase(
        columns=["id", "created_at", "updated_at", "CUSTOMER_NUMBER", "CUSTOMER_NAME", "ZONE"]
    )


@pytest_asyncio.fixture
async def sqlite_client():
    """SQLite client seeded with a customer_data table."""
    client = SQLiteClient()
    columns = ", ".join(f'"{name}" TEXT NULL' for name in CUSTOMER_COLUMNS)
    await client.execute(f'CREATE TABLE "customer_data" ("id" INTEGER PRIMARY KEY, {columns})')
    for row in CUSTOMER_ROWS:
        names = ", ".join(f'"{name}"' for name in row)
        placeholders = ", ".join(f":{name}" for name in row)
        await client.execute(
            f'INSERT INTO "customer_data" ({names}) VALUES ({placeholders})', row
        )
    yield client
    await client.close()
