from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

"""One line of the per-run upload error log."""

__all__ = [
    "ErrorRecord",
    "FILE_LEVEL_ROW",
]

FILE_LEVEL_ROW = -1  # 行に紐付かないエラー (media type, parse, roster empty, ...)

FIELD_ORDER = ("timestamp", "file", "row", "error_type", "message")


def utc_stamp(now: datetime | None = None) -> str:
    now = now or datetime.now(UTC)
    return now.astimezone(UTC).isoformat().replace("+00:00", "Z")


@dataclass(frozen=True)
class ErrorRecord:
    """A problem found while handling one upload.

    `row` is the 1-based data row of the uploaded file the problem refers to,
    or FILE_LEVEL_ROW when it concerns the file as a whole. `error_type` is the
    UPPER_SNAKE kind of the failure (PARSE_FAILURE, SCHEMA_VALIDATION_FAILURE, ...).
    """

    timestamp: str
    file: str
    row: int
    error_type: str
    message: str

    @classmethod
    def create(cls, file: str, row: int, error_type: str, message: str) -> ErrorRecord:
        return cls(timestamp=utc_stamp(), file=file, row=row, error_type=error_type, message=message)

    @property
    def is_file_level(self) -> bool:
        return self.row == FILE_LEVEL_ROW

    def to_dict(self) -> dict[str, Any]:
        return {name: getattr(self, name) for name in FIELD_ORDER}

    def to_json_line(self) -> str:
        # 固定キーのみ出力 (契約)
        return json.dumps(self.to_dict(), ensure_ascii=False)
