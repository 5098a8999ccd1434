"""Schema comparison between the template and the live table.

Pure logic -- no I/O, no database connections.

Usage:
    from template_sync.schema.comparator import diff_schema

    change_set = diff_schema(canonical, live, protected_columns=["id"])
    change_set.add   # template columns missing from the table, template order
    change_set.drop  # table columns no longer in the template, sorted
"""

from collections.abc import Iterable

from template_sync.schema.models import CanonicalSchema, LiveSchema, SchemaChangeSet


def diff_schema(
    canonical: CanonicalSchema,
    live: LiveSchema,
    protected_columns: Iterable[str] = (),
) -> SchemaChangeSet:
    """Compute the add/drop delta that reconciles *live* with *canonical*.

    Names are compared case-insensitively.  Columns in
    *protected_columns* are never dropped, whatever the template says.
    Type differences are not considered: a column present under the same
    name is left alone.

    Args:
        canonical: Column set read from the template.
        live: Snapshot of the table's current columns.
        protected_columns: Structural columns (primary key, audit
            timestamps) excluded from drops.

    Returns:
        ``SchemaChangeSet`` whose ``add`` keeps template order and whose
        ``drop`` holds exact live names in sorted order.

    Examples:
        >>> live = LiveSchema(table="t", columns={})
        >>> diff_schema(CanonicalSchema(columns=("A", "B")), live).add
        ['A', 'B']
    """
    live_names: dict[str, str] = live.normalized()
    protected: set[str] = {name.upper() for name in protected_columns}
    canonical_names: set[str] = set(canonical.columns)

    # Template order is preserved so added columns appear in template order
    to_add: list[str] = [
        column for column in canonical.columns if column not in live_names
    ]

    to_drop: list[str] = sorted(
        exact
        for upper, exact in live_names.items()
        if upper not in canonical_names and upper not in protected
    )

    return SchemaChangeSet(add=to_add, drop=to_drop)
