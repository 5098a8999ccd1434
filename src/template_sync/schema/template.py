"""Template reader: derive the canonical column set from a spreadsheet header.

The first non-empty row of the primary sheet is the header.  Names are
trimmed and upper-cased; duplicates collapse to their first occurrence.

Usage:
    from template_sync.schema.template import read_template

    schema = read_template("template.xlsx", protected_columns=["id"])
    schema.columns
    # ('CUSTOMER_NUMBER', 'CUSTOMER_NAME', 'STATE')
"""

import csv
import logging
from collections.abc import Iterable
from pathlib import Path
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from template_sync.errors import ProtectedColumnError, TemplateUnreadable
from template_sync.schema.models import CanonicalSchema

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = {".xlsx", ".xlsm", ".xltx", ".xltm"}

# PostgreSQL truncates longer identifiers (NAMEDATALEN - 1)
MAX_IDENTIFIER_BYTES = 63


def normalize_columns(header: Iterable[object]) -> tuple[str, ...]:
    """Trim, upper-case, and de-duplicate header cells.

    Empty cells are skipped.  The first occurrence of a name wins.

    Example:
        >>> normalize_columns([" state", "City", None, "STATE"])
        ('STATE', 'CITY')
    """
    seen: set[str] = set()
    columns: list[str] = []
    for cell in header:
        if cell is None:
            continue
        name = str(cell).strip().upper()
        if not name or name in seen:
            continue
        seen.add(name)
        columns.append(name)
    return tuple(columns)


def _first_row(rows: Iterable[Iterable[object]]) -> list[object]:
    for row in rows:
        values = list(row)
        if any(cell is not None and str(cell).strip() for cell in values):
            return values
    return []


def _read_excel_header(path: Path, sheet: str | None) -> list[object]:
    wb = load_workbook(path, read_only=True, data_only=True)
    try:
        ws = wb[sheet] if sheet else wb.worksheets[0]
        return _first_row(ws.iter_rows(values_only=True))
    finally:
        wb.close()


def _read_csv_header(path: Path) -> list[object]:
    with open(path, newline="", encoding="utf-8-sig") as f:
        return _first_row(csv.reader(f))


def read_template(
    path: str | Path,
    sheet: str | None = None,
    protected_columns: Iterable[str] = (),
) -> CanonicalSchema:
    """Read the template header into a ``CanonicalSchema``.

    Args:
        path: Path to an ``.xlsx`` workbook or a ``.csv`` file.
        sheet: Worksheet name.  Defaults to the first sheet.
        protected_columns: Structural column names the template must not
            define (compared case-insensitively).

    Returns:
        ``CanonicalSchema`` in template order.

    Raises:
        TemplateUnreadable: If the file is missing, unparsable, or its
            header row is empty, or a name exceeds
            the identifier length limit.
        ProtectedColumnError: If the header names a protected column.
    """
    template_path = Path(path)
    if not template_path.exists():
        raise TemplateUnreadable(f"Template not found: {template_path}")

    suffix = template_path.suffix.lower()
    try:
        if suffix in EXCEL_SUFFIXES:
            header = _read_excel_header(template_path, sheet)
        elif suffix == ".csv":
            header = _read_csv_header(template_path)
        else:
            raise TemplateUnreadable(
                f"Unsupported template format '{suffix}': {template_path.name}"
            )
    except (InvalidFileException, BadZipFile, KeyError, IndexError, OSError, UnicodeDecodeError) as e:
        raise TemplateUnreadable(f"Cannot parse template {template_path.name}: {e}") from e

    columns = normalize_columns(header)
    if not columns:
        raise TemplateUnreadable(f"Template {template_path.name} has an empty header row")

    too_long = [column for column in columns if len(column.encode("utf-8")) > MAX_IDENTIFIER_BYTES]
    if too_long:
        raise TemplateUnreadable(
            f"Template {template_path.name} has column names longer than "
            f"{MAX_IDENTIFIER_BYTES} bytes: {', '.join(too_long)}"
        )

    protected = {name.upper() for name in protected_columns}
    conflicts = [column for column in columns if column in protected]
    if conflicts:
        raise ProtectedColumnError(conflicts)

    logger.debug(f"Read {len(columns)} columns from template {template_path.name}")
    return CanonicalSchema(columns=columns)
