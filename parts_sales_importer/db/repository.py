from __future__ import annotations

import itertools
from dataclasses import replace
from datetime import UTC, datetime
from typing import Protocol

from ..models.import_batch import ImportBatch, ImportStatus
from ..models.parts_sales_line import BusinessKey, PartsSalesLine
from ..models.staging_row import StagingRow

"""Persistence contract for the importer + in-memory implementation.

The importer only needs four writes:

- create_batch            (before the first row)
- create_staging_row      (every non-blank row)
- upsert_parts_sales_line (valid rows; atomic per business key)
- finalize_batch          (status + counters, once)

``InMemoryRepository`` backs mock mode and the unit tests; it keeps the same
unique-key semantics as the PostgreSQL tables.
"""

__all__ = [
    "RepositoryError",
    "ImportRepository",
    "InMemoryRepository",
]


class RepositoryError(Exception):
    """Raised when the persistence layer rejects a write."""


class ImportRepository(Protocol):
    def create_batch(self, batch: ImportBatch) -> int: ...

    def create_staging_row(self, row: StagingRow) -> None: ...

    def upsert_parts_sales_line(self, line: PartsSalesLine) -> bool:
        """Insert or update by business key. Returns True when a new line was created."""
        ...

    def finalize_batch(
        self,
        batch_id: int,
        *,
        status: ImportStatus,
        staged_count: int,
        canonical_count: int,
        error_count: int,
    ) -> None: ...

    def ping(self) -> bool: ...


class InMemoryRepository:
    """Dict-backed repository (mock mode / tests)."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self.batches: dict[int, ImportBatch] = {}
        self.staging_rows: list[StagingRow] = []
        self.lines: dict[BusinessKey, PartsSalesLine] = {}

    def create_batch(self, batch: ImportBatch) -> int:
        batch_id = next(self._ids)
        self.batches[batch_id] = replace(batch, id=batch_id, created_at=datetime.now(UTC))
        return batch_id

    def create_staging_row(self, row: StagingRow) -> None:
        if row.batch_id not in self.batches:
            raise RepositoryError(f"unknown batch id: {row.batch_id}")
        self.staging_rows.append(row)

    def upsert_parts_sales_line(self, line: PartsSalesLine) -> bool:
        key = line.business_key
        existing = self.lines.get(key)
        if existing is None:
            self.lines[key] = line
            return True
        # 保留最初建立的 batch_id
        self.lines[key] = replace(line, batch_id=existing.batch_id)
        return False

    def finalize_batch(
        self,
        batch_id: int,
        *,
        status: ImportStatus,
        staged_count: int,
        canonical_count: int,
        error_count: int,
    ) -> None:
        batch = self.batches.get(batch_id)
        if batch is None:
            raise RepositoryError(f"unknown batch id: {batch_id}")
        self.batches[batch_id] = replace(
            batch,
            status=status,
            staged_count=staged_count,
            canonical_count=canonical_count,
            error_count=error_count,
        )

    def ping(self) -> bool:
        return True

    def staging_rows_for(self, batch_id: int) -> list[StagingRow]:
        return [r for r in self.staging_rows if r.batch_id == batch_id]
