from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

"""ImportBatch domain model and ImportStatus enum.

One ImportBatch is created per uploaded file before any row is processed and
is updated exactly once at the end with the final counters.
"""

__all__ = [
    "ImportStatus",
    "ImportBatch",
]


class ImportStatus(Enum):
    """Batch lifecycle.

    State transitions: staged → transformed (only when no row error occurred).
    A batch with any row error stays STAGED.
    """
    STAGED = "STAGED"
    TRANSFORMED = "TRANSFORMED"

    @classmethod
    def for_error_count(cls, error_count: int) -> ImportStatus:
        return cls.TRANSFORMED if error_count == 0 else cls.STAGED


@dataclass(frozen=True)
class ImportBatch:
    """Metadata for a single imported file."""
    id: int | None
    report_type: str                      # 如 parts_sales
    mapping_version: str                  # alias 表版本
    file_name: str | None
    header_signature: str                 # sha256(sorted normalized headers)
    header_columns: list[str]             # 原始表頭 (左→右)
    unknown_columns: list[str]            # 未對應表頭
    status: ImportStatus = ImportStatus.STAGED
    staged_count: int = 0
    canonical_count: int = 0
    error_count: int = 0
    created_at: datetime | None = None
