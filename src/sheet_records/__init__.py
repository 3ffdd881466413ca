"""Sheet Records - typed row records from ZIP-packaged SpreadsheetML workbooks."""

from sheet_records.config import Settings, configure_logging_from_settings
from sheet_records.models import CellKind, CellValue, Record, Row
from sheet_records.services.workbook_reader import (
    SheetRecords,
    Workbook,
    WorkbookReader,
)

__all__ = [
    "Settings",
    "configure_logging_from_settings",
    "CellKind",
    "CellValue",
    "Record",
    "Row",
    "SheetRecords",
    "Workbook",
    "WorkbookReader",
]
__version__ = "0.1.0"
