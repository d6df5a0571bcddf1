from __future__ import annotations

from ..models.import_result import ImportResult

"""SUMMARY line rendering.

Per file::

    SUMMARY file=<name> batch=<id> status=<STAGED|TRANSFORMED> staged=<n>
        canonical=<n> errors=<n> missing_required=<a,b|-> unknown_columns=<n>

Run totals::

    SUMMARY files=<total> transformed=<n> staged_only=<n> failed=<n> rows=<n>
        canonical=<n> errors=<n>
"""

__all__ = [
    "render_result_line",
    "render_totals_line",
]


def _names(values: list[str]) -> str:
    return ",".join(values) if values else "-"


def render_result_line(file_name: str | None, result: ImportResult) -> str:
    """Render the per-file SUMMARY line.

    Examples:
        >>> from parts_sales_importer.models import ImportResult, ImportStatus
        >>> r = ImportResult(batch_id=7, staged_count=2, canonical_count=1, error_count=1,
        ...                  missing_required=[], unknown_columns=["備註"],
        ...                  status=ImportStatus.STAGED)
        >>> render_result_line("a.xlsx", r)
        'SUMMARY file=a.xlsx batch=7 status=STAGED staged=2 canonical=1 errors=1 missing_required=- unknown_columns=1'
    """
    return (
        f"SUMMARY file={file_name or '-'} "
        f"batch={result.batch_id} "
        f"status={result.status.value} "
        f"staged={result.staged_count} "
        f"canonical={result.canonical_count} "
        f"errors={result.error_count} "
        f"missing_required={_names(result.missing_required)} "
        f"unknown_columns={len(result.unknown_columns)}"
    )


def render_totals_line(results: list[ImportResult], failed_files: int) -> str:
    transformed = sum(1 for r in results if r.is_clean)
    return (
        f"SUMMARY files={len(results) + failed_files} "
        f"transformed={transformed} "
        f"staged_only={len(results) - transformed} "
        f"failed={failed_files} "
        f"rows={sum(r.staged_count for r in results)} "
        f"canonical={sum(r.canonical_count for r in results)} "
        f"errors={sum(r.error_count for r in results)}"
    )
