from __future__ import annotations

import csv
from io import BytesIO, StringIO
from typing import Any

import pandas as pd

"""Workbook reader.

Only the first worksheet is read. Rows come back as plain lists, header row
included, with empty cells as ``""`` (no NaN, no header inference) so the
header normalizer sees the vendor's text exactly.

Leading blank rows and columns are dropped: the header is the first row of
the used range, wherever the vendor placed the table.
"""

__all__ = [
    "WorkbookReadError",
    "read_first_sheet",
]

# 台灣廠商的 CSV 常見 Big5 (cp950)
CSV_ENCODINGS = ("utf-8-sig", "cp950")


class WorkbookReadError(Exception):
    """Raised when the uploaded bytes cannot be parsed as a spreadsheet."""


def _is_blank(value: Any) -> bool:
    return str(value).strip() == ""


def _frame_to_rows(df: pd.DataFrame) -> list[list[Any]]:
    df = df.astype(object).where(df.notna(), "")
    rows = [list(r) for r in df.itertuples(index=False, name=None)]

    # 表格可能不從 A1 開始
    first_row = next(
        (i for i, r in enumerate(rows) if not all(_is_blank(v) for v in r)), len(rows)
    )
    rows = rows[first_row:]
    if not rows:
        return []
    first_col = min(
        next((j for j, v in enumerate(r) if not _is_blank(v)), len(r)) for r in rows
    )
    return [r[first_col:] for r in rows]


def _decode_csv(buffer: bytes) -> str:
    last_error: Exception | None = None
    for encoding in CSV_ENCODINGS:
        try:
            return buffer.decode(encoding)
        except UnicodeDecodeError as e:
            last_error = e
    raise WorkbookReadError(f"unsupported csv encoding: {last_error}")


def _read_csv(buffer: bytes) -> pd.DataFrame:
    text = _decode_csv(buffer)
    # 欄數不一的列: 以最寬的列為準, 短列補空
    width = max((len(r) for r in csv.reader(StringIO(text))), default=0)
    if width == 0:
        raise pd.errors.EmptyDataError("no columns to parse")
    return pd.read_csv(
        StringIO(text),
        header=None,
        names=list(range(width)),
        dtype=str,
        keep_default_na=False,
    )


def read_first_sheet(buffer: bytes, file_name: str | None = None) -> list[list[Any]]:
    """Read the first worksheet of ``buffer`` into a list of rows.

    Parameters
    ----------
    buffer: uploaded file content
    file_name: display name; a ``.csv`` suffix selects the CSV parser
    """
    is_csv = bool(file_name) and str(file_name).lower().endswith(".csv")
    try:
        if is_csv:
            df = _read_csv(buffer)
        else:
            # keep_default_na=False: "NA" 等字串保持原樣
            df = pd.read_excel(
                BytesIO(buffer),
                sheet_name=0,
                header=None,
                dtype=object,
                keep_default_na=False,
                na_values=[],
                engine="openpyxl",
            )
    except pd.errors.EmptyDataError:
        return []
    except WorkbookReadError:
        raise
    except Exception as e:
        raise WorkbookReadError(f"cannot read workbook {file_name or '<upload>'}: {e}") from e
    return _frame_to_rows(df)
