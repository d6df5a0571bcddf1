from __future__ import annotations

import json
from dataclasses import asdict, dataclass
from datetime import UTC, datetime

"""ErrorRecord model for the JSON Lines error log.

Every row that is staged but kept out of the canonical table produces one
record. Batch-level problems (missing required columns) are reported per row
too, so the log lines up one-to-one with the error counter.

The record layout is fixed by config/schemas/error_log.json (no extra keys).
"""

__all__ = [
    "ErrorRecord",
]


@dataclass(frozen=True)
class ErrorRecord:
    """Structured error record for JSON Lines logging.

    Attributes:
        timestamp: ISO8601 UTC timestamp with 'Z' suffix
        file: uploaded file name ("" when the caller gave none)
        batch_id: owning ImportBatch id
        row: 1-based data row index
        error_type: UPPER_SNAKE_CASE classification
        fields: canonical fields involved (may be empty)
        message: human readable reason
    """
    timestamp: str  # ISO8601 UTC
    file: str
    batch_id: int
    row: int
    error_type: str  # UPPER_SNAKE
    fields: list[str]
    message: str

    @staticmethod
    def create(
        file: str | None,
        batch_id: int,
        row: int,
        error_type: str,
        message: str,
        fields: list[str] | None = None,
    ) -> ErrorRecord:
        """Create a new ErrorRecord stamped with the current UTC time."""
        ts = datetime.now(UTC).isoformat().replace("+00:00", "Z")
        return ErrorRecord(
            timestamp=ts,
            file=file or "",
            batch_id=batch_id,
            row=row,
            error_type=error_type,
            fields=list(fields or []),
            message=message,
        )

    def to_json_line(self) -> str:
        # 中文表頭/訊息原樣輸出
        return json.dumps(asdict(self), ensure_ascii=False)
