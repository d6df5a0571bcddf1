"""Parts sales report importer.

Maps vendor spreadsheet headers onto the canonical parts sales schema, stages
every row and upserts validated lines by business key.
"""

__version__ = "0.1.0"

from .services.importer import NoDataRowsError, import_parts_sales, import_rows

__all__ = [
    "NoDataRowsError",
    "import_parts_sales",
    "import_rows",
]
