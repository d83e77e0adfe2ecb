from __future__ import annotations

import re
from datetime import UTC, datetime
from pathlib import Path

from ..errors import PersistenceError, SchemaValidationError, UploadError
from ..models.error_record import FILE_LEVEL_ROW, ErrorRecord

"""Per-run upload error log (JSON Lines).

Problems are buffered while an upload is handled and appended to
`logs/errors-YYYYMMDD-HHMMSS.log` (UTC, named on first write) when the run
flushes. A run without problems never creates the file.
"""

__all__ = [
    "ErrorLogBuffer",
    "LOGS_DIR",
]

LOGS_DIR = Path("./logs")
LOG_NAME_FORMAT = "errors-%Y%m%d-%H%M%S.log"

_ROW_PREFIX = re.compile(r"^Row (\d+):")


class ErrorLogBuffer:
    """Collects ErrorRecords for one run; not shared between concurrent uploads."""

    def __init__(self, logs_dir: Path | None = None) -> None:
        self.logs_dir = logs_dir if logs_dir is not None else LOGS_DIR
        self._pending: list[ErrorRecord] = []
        self._target: Path | None = None

    @property
    def file_path(self) -> Path:
        if self._target is None:
            self._target = self.logs_dir / datetime.now(UTC).strftime(LOG_NAME_FORMAT)
        return self._target

    @property
    def records(self) -> list[ErrorRecord]:
        return list(self._pending)

    def __len__(self) -> int:
        return len(self._pending)

    def append(self, record: ErrorRecord) -> None:
        self._pending.append(record)

    def record(self, file: str, error_type: str, message: str, row: int = FILE_LEVEL_ROW) -> None:
        self.append(ErrorRecord.create(file=file, row=row, error_type=error_type, message=message))

    def record_upload_error(self, file: str, error: UploadError) -> None:
        """Log a terminal upload error, one record per affected row where rows are known."""
        if isinstance(error, PersistenceError):
            self.record(file, error.error_type, str(error.cause), row=error.original_row)
        elif isinstance(error, SchemaValidationError):
            for message in error.errors:
                m = _ROW_PREFIX.match(message)
                self.record(file, error.error_type, message, row=int(m.group(1)) if m else FILE_LEVEL_ROW)
        else:
            self.record(file, error.error_type, error.detail or error.message)

    def flush(self) -> Path | None:
        """Append buffered records to the run's log file.

        Returns the file written, or None when there was nothing to write.
        """
        if not self._pending:
            return None
        target = self.file_path
        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as fh:
            fh.writelines(f"{rec.to_json_line()}\n" for rec in self._pending)
        self._pending.clear()
        return target
