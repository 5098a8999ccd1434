"""Allow-listed, parameterized search over the synchronized table.

Usage:
    from template_sync.query import FilteredQueryBuilder, FieldAllowList
"""

from template_sync.query.builder import (
    BuiltQuery,
    FilteredQueryBuilder,
    FilterRequest,
    split_values,
)
from template_sync.query.fields import AllowedField, FieldAllowList

__all__ = [
    "FilteredQueryBuilder",
    "BuiltQuery",
    "FilterRequest",
    "split_values",
    "FieldAllowList",
    "AllowedField",
]
