from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

from ..models.row_data import CanonicalRecord, RawRow

"""Record normalizer: validated RawRow -> CanonicalRecord.

Header lookup is case-insensitive and ignores surrounding whitespace, the same
tolerance the validator applies, so any header variant it accepted resolves
here. Every field is trimmed.
"""

__all__ = [
    "FIRST_NAME",
    "PHONE",
    "NOTES",
    "REQUIRED_COLUMNS",
    "canonical_key",
    "cell_text",
    "find_column",
    "normalize_row",
    "normalize_rows",
]

FIRST_NAME = "FirstName"
PHONE = "Phone"
NOTES = "Notes"
REQUIRED_COLUMNS = (FIRST_NAME, PHONE, NOTES)


def canonical_key(column: str) -> str:
    return str(column).strip().lower()


def find_column(row: Mapping[str, Any], column: str) -> Any:
    """Return the cell for `column` under any accepted header variant (None if absent)."""
    wanted = canonical_key(column)
    for key, value in row.items():
        if canonical_key(key) == wanted:
            return value
    return None


def cell_text(value: Any) -> str:
    """Render a cell as trimmed text ('' for empty cells).

    Integral floats lose their trailing '.0' (phone numbers typed as numbers
    in a spreadsheet come back as floats).
    """
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_row(row: RawRow, position: int) -> CanonicalRecord:
    """Build the canonical record for the data row at 1-based `position`."""
    return CanonicalRecord(
        first_name=cell_text(find_column(row, FIRST_NAME)),
        phone=cell_text(find_column(row, PHONE)),
        notes=cell_text(find_column(row, NOTES)),
        original_row=position,
    )


def normalize_rows(rows: Iterable[RawRow]) -> list[CanonicalRecord]:
    return [normalize_row(row, index) for index, row in enumerate(rows, start=1)]
