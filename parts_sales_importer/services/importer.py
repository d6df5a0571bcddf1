from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..config.loader import ImportConfig
from ..db.repository import ImportRepository
from ..excel.decoder import cell_text, decode_row, is_blank_row
from ..excel.headers import build_header_map, header_signature
from ..excel.reader import read_first_sheet
from ..logging.error_log import ErrorLogBuffer
from ..models.error_record import ErrorRecord
from ..models.import_batch import ImportBatch, ImportStatus
from ..models.import_result import ImportResult
from ..models.staging_row import StagingRow
from .progress import RowProgress
from .validation import missing_required_fields, validate_row

"""Batch coordinator: one uploaded sheet -> one ImportBatch.

Flow (single pass, synchronous):

1. Read the first worksheet; fewer than two rows (header + data) aborts with
   NoDataRowsError before anything is written.
2. Map headers, compute the header signature, check required columns.
3. Create the batch (STAGED) so an interrupted run leaves a visible partial
   batch rather than nothing.
4. Per non-blank row: stage it, validate it, upsert the canonical line.
5. Finalize: TRANSFORMED only when the error counter is zero.

Row problems are soft: they are counted, written to the error log and never
stop the batch.
"""

__all__ = [
    "ImportProcessingError",
    "NoDataRowsError",
    "import_parts_sales",
    "import_rows",
]

logger = logging.getLogger(__name__)


class ImportProcessingError(Exception):
    """Base exception for fatal import errors."""


class NoDataRowsError(ImportProcessingError):
    """The sheet has no data row (empty or header-only file)."""


def import_parts_sales(
    buffer: bytes,
    file_name: str | None = None,
    *,
    repository: ImportRepository,
    config: ImportConfig | None = None,
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool = False,
) -> ImportResult:
    """Import one uploaded spreadsheet.

    Args:
        buffer: file content (xlsx, or csv when ``file_name`` ends in .csv)
        file_name: display name stored on the batch
        repository: persistence layer
        config: alias table / report metadata; built-in defaults when None
        error_log: shared error log; when None a buffer is created under
            ``config.logs_directory`` and flushed at the end of the batch
        show_progress: draw a tqdm bar (TTY only)

    Raises:
        NoDataRowsError: sheet has fewer than two rows
        WorkbookReadError: bytes are not a readable spreadsheet
    """
    rows = read_first_sheet(buffer, file_name)
    return import_rows(
        rows,
        file_name=file_name,
        repository=repository,
        config=config,
        error_log=error_log,
        show_progress=show_progress,
    )


def import_rows(
    rows: Sequence[Sequence[Any]],
    *,
    file_name: str | None = None,
    repository: ImportRepository,
    config: ImportConfig | None = None,
    error_log: ErrorLogBuffer | None = None,
    show_progress: bool = False,
) -> ImportResult:
    """Run the batch protocol over rows already read from a sheet (row 0 = header)."""
    if len(rows) < 2:
        raise NoDataRowsError(f"no data rows in {file_name or 'upload'}")

    cfg = config or ImportConfig.defaults()
    headers = [cell_text(h) for h in rows[0]]
    header_map = build_header_map(headers, cfg.header_aliases)
    missing = missing_required_fields(header_map)
    signature = header_signature(header_map.normalized_headers)

    batch_id = repository.create_batch(
        ImportBatch(
            id=None,
            report_type=cfg.report_type,
            mapping_version=cfg.mapping_version,
            file_name=file_name,
            header_signature=signature,
            header_columns=headers,
            unknown_columns=list(header_map.unknown_columns),
            status=ImportStatus.STAGED,
        )
    )
    logger.info(
        "batch=%d file=%s columns=%d mapped=%d unknown=%d signature=%s",
        batch_id,
        file_name,
        len(headers),
        len(header_map.field_index),
        len(header_map.unknown_columns),
        signature[:12],
    )
    if missing:
        # 缺必填欄位: 全部只進 staging (避免污染 KPI)
        logger.warning("batch=%d missing required columns: %s", batch_id, ",".join(missing))

    owns_log = error_log is None
    if error_log is None:
        error_log = ErrorLogBuffer(cfg.logs_directory)

    staged_count = 0
    canonical_count = 0
    error_count = 0
    created = 0

    with RowProgress(len(rows) - 1, enabled=show_progress) as progress:
        for row_index in range(1, len(rows)):
            row = rows[row_index]
            progress.advance()
            if is_blank_row(row):
                continue

            decoded = decode_row(row, header_map, headers)
            repository.create_staging_row(
                StagingRow(
                    batch_id=batch_id,
                    row_index=row_index,
                    data=decoded.fields,
                    unknown=decoded.unknown,
                )
            )
            staged_count += 1

            if missing:
                error_count += 1
                error_log.append(
                    ErrorRecord.create(
                        file_name,
                        batch_id,
                        row_index,
                        "MISSING_REQUIRED_COLUMNS",
                        f"required columns not found in header: {', '.join(missing)}",
                        fields=missing,
                    )
                )
                continue

            validation = validate_row(decoded.fields)
            if validation.line is None:
                error_count += 1
                message = "; ".join(f"{e['field']}: {e['message']}" for e in validation.errors)
                logger.debug("batch=%d row=%d rejected: %s", batch_id, row_index, message)
                error_log.append(
                    ErrorRecord.create(
                        file_name,
                        batch_id,
                        row_index,
                        "ROW_VALIDATION_ERROR",
                        message,
                        fields=[e["field"] for e in validation.errors],
                    )
                )
                continue

            if repository.upsert_parts_sales_line(validation.line.to_line(batch_id)):
                created += 1
            canonical_count += 1
            progress.set_postfix(canonical=canonical_count, errors=error_count)

    status = ImportStatus.for_error_count(error_count)
    repository.finalize_batch(
        batch_id,
        status=status,
        staged_count=staged_count,
        canonical_count=canonical_count,
        error_count=error_count,
    )
    logger.info(
        "batch=%d status=%s staged=%d canonical=%d (new=%d updated=%d) errors=%d",
        batch_id,
        status.value,
        staged_count,
        canonical_count,
        created,
        canonical_count - created,
        error_count,
    )

    if owns_log:
        try:
            path = error_log.flush()
        except OSError as e:
            logger.warning("batch=%d failed writing error log: %s", batch_id, e)
        else:
            if path is not None and error_count:
                logger.info("batch=%d row errors written to %s", batch_id, path)

    return ImportResult(
        batch_id=batch_id,
        staged_count=staged_count,
        canonical_count=canonical_count,
        error_count=error_count,
        missing_required=missing,
        unknown_columns=list(header_map.unknown_columns),
        status=status,
        header_signature=signature,
        canonical_created=created,
        canonical_updated=canonical_count - created,
    )
