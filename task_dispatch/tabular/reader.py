from __future__ import annotations

from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from ..errors import ParseError
from ..models.row_data import RawRow
from ..models.upload_file import FileFormat

"""Tabular reader: uploaded document -> ordered RawRow sequence.

- Delimited text: header row gives column names, data read in chunks
  (streaming) with every cell kept as a string.
- Spreadsheet (.xlsx): first sheet only, header row gives column names, cells
  keep their native type so non-text notes can be rejected downstream.

Column names are kept verbatim (case / surrounding whitespace preserved);
tolerance for header variants belongs to the validator and normalizer.
Any structural or decoding failure raises ParseError and no rows are returned.
"""

__all__ = [
    "CSV_MEDIA_TYPES",
    "SPREADSHEET_MEDIA_TYPES",
    "detect_format",
    "parse_upload",
    "read_delimited",
    "read_spreadsheet",
]

CSV_MEDIA_TYPES = frozenset({"text/csv"})
SPREADSHEET_MEDIA_TYPES = frozenset(
    {"application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"}
)
EXTENSION_FORMATS = {
    ".csv": FileFormat.DELIMITED,
    ".xlsx": FileFormat.SPREADSHEET,
}

CSV_CHUNK_ROWS = 1000


def detect_format(file_name: str, media_type: str | None) -> FileFormat | None:
    """Decide the source shape from the file name, then the media type.

    Returns None when the document is not a supported tabular format
    (including legacy .xls binaries).
    """
    # application/vnd.ms-excel is also sent for CSV files, so the extension wins
    ext = Path(file_name).suffix.lower()
    if ext in EXTENSION_FORMATS:
        return EXTENSION_FORMATS[ext]
    if ext == ".xls":
        return None
    if media_type in CSV_MEDIA_TYPES:
        return FileFormat.DELIMITED
    if media_type in SPREADSHEET_MEDIA_TYPES:
        return FileFormat.SPREADSHEET
    return None


def _clean_cell(value: Any) -> Any:
    """NaN / NaT -> None, numpy scalars -> Python scalars."""
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        return value
    if isinstance(value, (np.integer, np.floating, np.bool_)):
        return value.item()
    return value


def _frame_rows(df: pd.DataFrame, columns: list[str]) -> list[RawRow]:
    rows: list[RawRow] = []
    for values in df.itertuples(index=False, name=None):
        row = {col: _clean_cell(val) for col, val in zip(columns, values, strict=False)}
        if all(v is None for v in row.values()):
            continue  # 全セル空の行はスキップ
        rows.append(row)
    return rows


def read_delimited(path: Path) -> list[RawRow]:
    """Read comma-separated text. A file with no content yields no rows."""
    rows: list[RawRow] = []
    try:
        reader = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
            chunksize=CSV_CHUNK_ROWS,
        )
        with reader:
            for chunk in reader:
                # 行がヘッダより長いと pandas は先頭列を暗黙の index にする
                if not isinstance(chunk.index, pd.RangeIndex):
                    raise ParseError(detail=f"{path.name}: data rows have more fields than the header")
                columns = [str(c) for c in chunk.columns]
                rows.extend(_frame_rows(chunk, columns))
    except pd.errors.EmptyDataError:
        return []
    except (pd.errors.ParserError, UnicodeDecodeError, ValueError, OSError) as e:
        raise ParseError(detail=f"{path.name}: {e}") from e
    return rows


def read_spreadsheet(path: Path) -> list[RawRow]:
    """Read the first sheet of an .xlsx workbook."""
    try:
        df = pd.read_excel(path, sheet_name=0, header=0, dtype=object, engine="openpyxl")
    except Exception as e:  # openpyxl / zipfile raise a wide range of types for corrupt input
        raise ParseError(detail=f"{path.name}: {e}") from e
    columns = [str(c) for c in df.columns]
    return _frame_rows(df, columns)


def parse_upload(path: Path, file_format: FileFormat) -> list[RawRow]:
    if file_format is FileFormat.DELIMITED:
        return read_delimited(path)
    return read_spreadsheet(path)
