"""Domain models for the parts sales importer.

ImportBatch / StagingRow / PartsSalesLine mirror the three persisted tables;
ImportResult is the value returned to callers of the import function.
"""

from .error_record import ErrorRecord
from .import_batch import ImportBatch, ImportStatus
from .import_result import ImportResult
from .parts_sales_line import BusinessKey, PartsSalesLine
from .staging_row import StagingRow

__all__ = [
    # Persisted records
    "ImportBatch",
    "ImportStatus",
    "StagingRow",
    "PartsSalesLine",
    "BusinessKey",
    # Results / logging
    "ImportResult",
    "ErrorRecord",
]
