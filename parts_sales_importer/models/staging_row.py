from __future__ import annotations

from dataclasses import dataclass
from typing import Any

"""StagingRow model.

Raw, write-once copy of one non-blank input row. Every decoded row is staged,
valid or not, so a batch can be audited or replayed after the alias table
grows.
"""

__all__ = [
    "StagingRow",
]


@dataclass(frozen=True)
class StagingRow:
    batch_id: int
    row_index: int  # 1-based, header row excluded
    data: dict[str, str]  # canonical field -> trimmed cell text
    unknown: dict[str, Any] | None = None  # original header -> raw cell value (None when empty)
