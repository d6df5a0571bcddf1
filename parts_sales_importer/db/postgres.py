from __future__ import annotations

import functools
import json
import logging
from typing import Any

import psycopg2
from psycopg2.extras import Json

from ..models.import_batch import ImportBatch, ImportStatus
from ..models.parts_sales_line import PartsSalesLine
from ..models.staging_row import StagingRow
from .repository import RepositoryError

"""PostgreSQL implementation of the importer repository (psycopg2).

- JSONB columns (header lists, staging data, unknown columns) are sent through
  ``psycopg2.extras.Json``; non-JSON cell values (dates) are stringified.
- The canonical write is a single ``INSERT ... ON CONFLICT DO UPDATE``
  statement, atomic per business key. Concurrent imports of the same key end
  with the last writer's values.
- ``batch_id`` on parts_sales_line keeps the batch that created the line.
"""

__all__ = [
    "SCHEMA_DDL",
    "PostgresRepository",
    "ensure_schema",
]

logger = logging.getLogger(__name__)

SCHEMA_DDL = """
CREATE TABLE IF NOT EXISTS import_batch (
    id BIGSERIAL PRIMARY KEY,
    report_type TEXT NOT NULL,
    mapping_version TEXT NOT NULL,
    file_name TEXT,
    header_signature TEXT NOT NULL,
    header_columns JSONB NOT NULL,
    unknown_columns JSONB NOT NULL,
    status TEXT NOT NULL DEFAULT 'STAGED' CHECK (status IN ('STAGED', 'TRANSFORMED')),
    staged_count INTEGER NOT NULL DEFAULT 0,
    canonical_count INTEGER NOT NULL DEFAULT 0,
    error_count INTEGER NOT NULL DEFAULT 0,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
);

CREATE INDEX IF NOT EXISTS import_batch_header_signature_idx
    ON import_batch (header_signature);

CREATE TABLE IF NOT EXISTS staging_row (
    id BIGSERIAL PRIMARY KEY,
    batch_id BIGINT NOT NULL REFERENCES import_batch (id),
    row_index INTEGER NOT NULL,
    data JSONB NOT NULL,
    unknown JSONB,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (batch_id, row_index)
);

CREATE TABLE IF NOT EXISTS parts_sales_line (
    id BIGSERIAL PRIMARY KEY,
    batch_id BIGINT NOT NULL REFERENCES import_batch (id),
    branch_code TEXT NOT NULL,
    checkout_no TEXT NOT NULL,
    item_id TEXT NOT NULL,
    work_order_no TEXT,
    work_order_key TEXT,
    part_no TEXT NOT NULL,
    part_name TEXT,
    qty NUMERIC,
    sale_amount NUMERIC,
    cost_amount NUMERIC,
    advisor_name TEXT,
    sales_name TEXT,
    created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
    UNIQUE (branch_code, checkout_no, item_id)
);

CREATE INDEX IF NOT EXISTS parts_sales_line_work_order_key_idx
    ON parts_sales_line (work_order_key);
"""

INSERT_BATCH_SQL = """
INSERT INTO import_batch (
    report_type, mapping_version, file_name, header_signature,
    header_columns, unknown_columns, status
) VALUES (%s, %s, %s, %s, %s, %s, %s)
RETURNING id
"""

INSERT_STAGING_SQL = """
INSERT INTO staging_row (batch_id, row_index, data, unknown)
VALUES (%s, %s, %s, %s)
"""

# 更新時不改 batch_id (保留最初建立的批次)
UPSERT_LINE_SQL = """
INSERT INTO parts_sales_line (
    batch_id, branch_code, checkout_no, item_id, work_order_no, work_order_key,
    part_no, part_name, qty, sale_amount, cost_amount, advisor_name, sales_name
) VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
ON CONFLICT (branch_code, checkout_no, item_id) DO UPDATE SET
    work_order_no = EXCLUDED.work_order_no,
    work_order_key = EXCLUDED.work_order_key,
    part_no = EXCLUDED.part_no,
    part_name = EXCLUDED.part_name,
    qty = EXCLUDED.qty,
    sale_amount = EXCLUDED.sale_amount,
    cost_amount = EXCLUDED.cost_amount,
    advisor_name = EXCLUDED.advisor_name,
    sales_name = EXCLUDED.sales_name,
    updated_at = now()
RETURNING (xmax = 0) AS inserted
"""

FINALIZE_BATCH_SQL = """
UPDATE import_batch
SET status = %s, staged_count = %s, canonical_count = %s, error_count = %s, updated_at = now()
WHERE id = %s
"""

_dumps = functools.partial(json.dumps, ensure_ascii=False, default=str)


def _json(value: Any) -> Json | None:
    return None if value is None else Json(value, dumps=_dumps)


def ensure_schema(cursor: Any) -> None:
    """Create the importer tables if they do not exist yet."""
    try:
        cursor.execute(SCHEMA_DDL)
    except psycopg2.Error as e:
        raise RepositoryError(f"failed creating schema: {e}") from e


class PostgresRepository:
    """Repository over a psycopg2 cursor.

    The connection is expected to run in autocommit mode (see
    ``db.connection.connect``), so every write is durable on its own and a
    batch interrupted mid-way stays visible as STAGED.
    """

    def __init__(self, cursor: Any) -> None:
        self.cursor = cursor

    def _execute(self, sql: str, params: tuple[Any, ...], what: str) -> None:
        try:
            self.cursor.execute(sql, params)
        except psycopg2.Error as e:
            raise RepositoryError(f"{what}: {e}") from e

    def _fetchone(self, what: str) -> tuple[Any, ...]:
        row = self.cursor.fetchone()
        if row is None:
            raise RepositoryError(f"{what}: no row returned")
        return row

    def create_batch(self, batch: ImportBatch) -> int:
        self._execute(
            INSERT_BATCH_SQL,
            (
                batch.report_type,
                batch.mapping_version,
                batch.file_name,
                batch.header_signature,
                _json(batch.header_columns),
                _json(batch.unknown_columns),
                batch.status.value,
            ),
            "create_batch",
        )
        batch_id = int(self._fetchone("create_batch")[0])
        logger.debug("created import_batch id=%d signature=%s", batch_id, batch.header_signature)
        return batch_id

    def create_staging_row(self, row: StagingRow) -> None:
        self._execute(
            INSERT_STAGING_SQL,
            (row.batch_id, row.row_index, _json(row.data), _json(row.unknown)),
            "create_staging_row",
        )

    def upsert_parts_sales_line(self, line: PartsSalesLine) -> bool:
        self._execute(
            UPSERT_LINE_SQL,
            (
                line.batch_id,
                line.branch_code,
                line.checkout_no,
                line.item_id,
                line.work_order_no,
                line.work_order_key,
                line.part_no,
                line.part_name,
                line.qty,
                line.sale_amount,
                line.cost_amount,
                line.advisor_name,
                line.sales_name,
            ),
            "upsert_parts_sales_line",
        )
        return bool(self._fetchone("upsert_parts_sales_line")[0])

    def finalize_batch(
        self,
        batch_id: int,
        *,
        status: ImportStatus,
        staged_count: int,
        canonical_count: int,
        error_count: int,
    ) -> None:
        self._execute(
            FINALIZE_BATCH_SQL,
            (status.value, staged_count, canonical_count, error_count, batch_id),
            "finalize_batch",
        )

    def ping(self) -> bool:
        try:
            self.cursor.execute("SELECT 1")
            row = self.cursor.fetchone()
        except psycopg2.Error as e:
            logger.debug("ping failed: %s", e)
            return False
        return bool(row) and row[0] == 1
