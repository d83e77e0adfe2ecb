from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import Any

from ..models.row_data import RawRow
from .normalizer import (
    FIRST_NAME,
    NOTES,
    PHONE,
    REQUIRED_COLUMNS,
    canonical_key,
    cell_text,
    find_column,
)

"""Schema validator for uploaded contact rows.

Fixed three-column contract (FirstName, Phone, Notes), header names matched
case-insensitively and independent of surrounding whitespace. All rules run
and every problem is collected so the caller sees the full list in one pass.
The Notes header is mandatory; only its cell content is optional.
"""

__all__ = [
    "PHONE_PATTERN",
    "ValidationResult",
    "validate_rows",
]

# 数字は ASCII のみ, 空白は NBSP 等の Unicode 空白も可
PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]+$")

EMPTY_FILE_ERROR = "File is empty or contains no valid data"


@dataclass(frozen=True)
class ValidationResult:
    valid: bool
    errors: list[str] = field(default_factory=list)


def _header_errors(columns: Sequence[str]) -> list[str]:
    errors: list[str] = []
    available = {canonical_key(c) for c in columns}
    missing = [c for c in REQUIRED_COLUMNS if c.lower() not in available]
    if missing:
        errors.append(f"Missing required columns: {', '.join(missing)}")

    required = {c.lower() for c in REQUIRED_COLUMNS}
    extra = [c for c in columns if canonical_key(c) not in required]
    if extra:
        errors.append(
            f"Unexpected columns found: {', '.join(extra)}. "
            "Only FirstName, Phone, and Notes are allowed."
        )
    return errors


def _is_text_like(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, (datetime, date, time)):
        return False
    return isinstance(value, (str, int, float))


def _row_errors(row: RawRow, row_number: int) -> list[str]:
    errors: list[str] = []

    if cell_text(find_column(row, FIRST_NAME)) == "":
        errors.append(f"Row {row_number}: FirstName is required")

    phone = cell_text(find_column(row, PHONE))
    if phone == "":
        errors.append(f"Row {row_number}: Phone is required")
    elif not PHONE_PATTERN.match(phone):
        errors.append(f"Row {row_number}: Phone number format is invalid")

    notes = find_column(row, NOTES)
    if notes is not None and notes != "" and not _is_text_like(notes):
        errors.append(f"Row {row_number}: Notes must be text")
    return errors


def validate_rows(rows: Sequence[RawRow]) -> ValidationResult:
    """Check parsed rows against the contact schema without mutating them."""
    if not rows:
        return ValidationResult(valid=False, errors=[EMPTY_FILE_ERROR])

    errors = _header_errors(list(rows[0].keys()))
    for index, row in enumerate(rows, start=1):
        errors.extend(_row_errors(row, index))
    return ValidationResult(valid=not errors, errors=errors)
