from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Any

from .headers import HeaderMap

"""Row decoding: raw sheet row -> canonical raw fields + unknown columns.

Canonical fields are taken by column index and turned into trimmed strings;
typing happens later in the validation gate. Unknown columns are copied
verbatim (no coercion) so they can be re-processed once the alias table learns
their header.
"""

__all__ = [
    "DecodedRow",
    "cell_text",
    "is_blank_row",
    "decode_row",
]


@dataclass(frozen=True)
class DecodedRow:
    fields: dict[str, str]
    unknown: dict[str, Any] | None = None


def cell_text(value: Any) -> str:
    """Render a cell the way a user sees it in the sheet."""
    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))  # 1.0 -> "1"
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value)


def is_blank_row(row: Sequence[Any] | None) -> bool:
    if not row:
        return True
    return all(cell_text(v).strip() == "" for v in row)


def _cell(row: Sequence[Any], idx: int) -> Any:
    # 行尾空白儲存格可能被截掉
    return row[idx] if idx < len(row) else None


def decode_row(row: Sequence[Any], header_map: HeaderMap, headers: Sequence[Any]) -> DecodedRow:
    fields = {
        name: cell_text(_cell(row, idx)).strip()
        for name, idx in header_map.field_index.items()
    }

    unknown_headers = header_map.unknown_set
    unknown: dict[str, Any] = {}
    for idx, header in enumerate(headers):
        key = "" if header is None else str(header)
        if key not in unknown_headers:
            continue
        value = _cell(row, idx)
        if cell_text(value).strip() != "":
            unknown[key] = value

    return DecodedRow(fields=fields, unknown=unknown or None)
