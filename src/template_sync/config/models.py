"""Pydantic models for template-sync configuration.

Every core component takes one of these models in its constructor; none of
them read process environment directly.
"""

import re

from pydantic import BaseModel, Field, field_validator

IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def _check_identifier(name: str) -> str:
    if not IDENTIFIER_PATTERN.fullmatch(name):
        raise ValueError(f"Invalid SQL identifier: {name!r}")
    return name


def _check_upper_identifiers(names: list[str]) -> list[str]:
    return [_check_identifier(name.strip()).upper() for name in names]


# ============================================================================
# Configuration Models
# ============================================================================


class DatabaseProfile(BaseModel):
    """Database connection profile from template_sync.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution
    statement_timeout: float = 30.0


class TemplateSettings(BaseModel):
    """Template location, target table, and watcher timing."""

    path: str = "template.xlsx"
    sheet: str | None = None  # None = first sheet
    table: str = "customer_data"
    primary_key: str = "id"
    audit_columns: list[str] = Field(default_factory=lambda: ["created_at", "updated_at"])
    # Additional columns that must survive template changes
    keep_columns: list[str] = Field(default_factory=list)
    poll_interval: float = 1.0
    debounce: float = 0.25
    retry_interval: float = 30.0

    @field_validator("table", "primary_key")
    @classmethod
    def _validate_name(cls, value: str) -> str:
        return _check_identifier(value.strip())

    @field_validator("audit_columns", "keep_columns")
    @classmethod
    def _validate_structural(cls, value: list[str]) -> list[str]:
        return [_check_identifier(name.strip()) for name in value]

    @property
    def protected_columns(self) -> list[str]:
        """Columns never dropped: primary key, audit timestamps, keep list."""
        return [self.primary_key, *self.audit_columns, *self.keep_columns]


class QuerySettings(BaseModel):
    """Allow-lists and projection for the filtered query builder."""

    key_column: str = "CUSTOMER_NUMBER"
    display_column: str = "CUSTOMER_NAME"
    filter_fields: list[str] = Field(
        default_factory=lambda: [
            "CUSTOMER_NAME",
            "STATE",
            "CITY",
            "REGION",
            "ZONE",
            "T_ZONE",
            "DISTIRCT",
            "TALUKA",
            "TERRITORY_CODE",
        ]
    )
    # Extra columns allowed only for distinct-value lookups
    distinct_fields: list[str] = Field(default_factory=lambda: ["CUSTOMER_NUMBER"])
    projection: list[str] = Field(
        default_factory=lambda: [
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
    )

    @field_validator("key_column", "display_column")
    @classmethod
    def _validate_column(cls, value: str) -> str:
        return _check_identifier(value.strip()).upper()

    @field_validator("filter_fields", "distinct_fields", "projection")
    @classmethod
    def _validate_columns(cls, value: list[str]) -> list[str]:
        return _check_upper_identifiers(value)


class SyncConfig(BaseModel):
    """Complete configuration from template_sync.toml."""

    profiles: dict[str, DatabaseProfile] = Field(default_factory=dict)
    template: TemplateSettings = Field(default_factory=TemplateSettings)
    query: QuerySettings = Field(default_factory=QuerySettings)
