from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path

"""Staged upload model.

The upload-receiving side writes the incoming document to a temporary staging
location; the pipeline owns that file from then on and removes it on every
exit path.
"""


class FileFormat(Enum):
    """Tabular source shapes accepted by the parser."""
    DELIMITED = "delimited"
    SPREADSHEET = "spreadsheet"


class UploadStatus(Enum):
    """Outcome of one submit.

    - OK: every record became a task
    - REJECTED: 400-class (bad media, parse, validation, no active agents)
    - FAILED: 500-class (persistence or unexpected failure)
    """
    OK = "ok"
    REJECTED = "rejected"
    FAILED = "failed"


@dataclass(frozen=True)
class StagedUpload:
    path: Path               # 一時保存ファイル (pipeline が削除責任を持つ)
    original_name: str       # クライアントが送ったファイル名 (provenance に記録)
    media_type: str | None = None
    size_bytes: int | None = None

    @property
    def extension(self) -> str:
        return Path(self.original_name).suffix.lower()
