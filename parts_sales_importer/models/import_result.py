from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .import_batch import ImportStatus

"""ImportResult: what the import function hands back to its caller.

The upload endpoint relays ``to_dict()`` as its JSON body, so the keys there
keep the camelCase names the web client already reads.
"""

__all__ = [
    "ImportResult",
]


@dataclass(frozen=True)
class ImportResult:
    batch_id: int
    staged_count: int
    canonical_count: int
    error_count: int
    missing_required: list[str] = field(default_factory=list)
    unknown_columns: list[str] = field(default_factory=list)
    status: ImportStatus = ImportStatus.STAGED
    header_signature: str = ""
    canonical_created: int = 0  # upsert 新增筆數
    canonical_updated: int = 0  # 覆寫既有鍵的筆數

    @property
    def is_clean(self) -> bool:
        return self.error_count == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "batchId": self.batch_id,
            "stagedCount": self.staged_count,
            "canonicalCount": self.canonical_count,
            "errorCount": self.error_count,
            "missingRequired": list(self.missing_required),
            "unknownColumns": list(self.unknown_columns),
            "status": self.status.value,
        }
