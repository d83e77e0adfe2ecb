from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""Row models for the contact upload pipeline.

RawRow is the parser output (column name -> cell value, header names verbatim).
CanonicalRecord is the validated, trimmed shape consumed by distribution.
"""

__all__ = [
    "RawRow",
    "CanonicalRecord",
]

RawRow = dict[str, Any]


@dataclass(frozen=True)
class CanonicalRecord:
    """One contact row after validation and normalization.

    original_row is the 1-based position of the row among the data rows of the
    uploaded file (header excluded).
    """
    first_name: str
    phone: str
    notes: str
    original_row: int
