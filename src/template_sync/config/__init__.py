"""Configuration: TOML loading and settings models.

Usage:
    >>> from template_sync.config import load_sync_config, SyncConfig
"""

from template_sync.config.loader import load_sync_config
from template_sync.config.models import (
    DatabaseProfile,
    QuerySettings,
    SyncConfig,
    TemplateSettings,
)

__all__ = [
    "load_sync_config",
    "SyncConfig",
    "DatabaseProfile",
    "TemplateSettings",
    "QuerySettings",
]
