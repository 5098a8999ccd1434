"""Allow-list validation for column identifiers.

Column names cannot be bound as parameters, so they are written into the
SQL text.  The only way to obtain an ``AllowedField`` -- the value the
query builder interpolates -- is ``FieldAllowList.validate()``, and the
identifier it carries is the allow-list's own entry, never the caller's
string.
"""

import re
from collections.abc import Iterable
from dataclasses import dataclass

from template_sync.adapters.base import quote_identifier
from template_sync.errors import InvalidFilterField

# Letters, digits, underscore only
STRICT_FIELD_PATTERN = re.compile(r"[A-Za-z0-9_]+")


@dataclass(frozen=True)
class AllowedField:
    """A column name that passed allow-list validation."""

    name: str

    @property
    def sql(self) -> str:
        """Quoted identifier for use in SQL text."""
        return quote_identifier(self.name)


class FieldAllowList:
    """Fixed set of columns callers may filter or look up on.

    Matching is case-insensitive; entries are stored upper-cased.

    Example:
        >>> allow = FieldAllowList(["STATE", "CITY"])
        >>> allow.validate("state").sql
        '"STATE"'
    """

    def __init__(self, fields: Iterable[str], strict_pattern: bool = False) -> None:
        """Initialize the allow-list.

        Args:
            fields: Permitted column names (from configuration).
            strict_pattern: Also require callers' field names to match
                ``STRICT_FIELD_PATTERN`` before the membership check.
        """
        self._fields: dict[str, AllowedField] = {}
        for name in fields:
            upper = name.strip().upper()
            self._fields.setdefault(upper, AllowedField(upper))
        self._strict_pattern = strict_pattern

    @property
    def names(self) -> list[str]:
        """Allowed field names in configuration order."""
        return list(self._fields)

    def __contains__(self, field: object) -> bool:
        return isinstance(field, str) and field.strip().upper() in self._fields

    def validate(self, field: str) -> AllowedField:
        """Resolve a caller-supplied field name to its allow-list entry.

        Raises:
            InvalidFilterField: If *field* fails the pattern check or is
                not on the allow-list.
        """
        if not isinstance(field, str):
            raise InvalidFilterField(repr(field), self.names)
        if self._strict_pattern and not STRICT_FIELD_PATTERN.fullmatch(field):
            raise InvalidFilterField(field)
        allowed = self._fields.get(field.strip().upper())
        if allowed is None:
            raise InvalidFilterField(field, self.names)
        return allowed
