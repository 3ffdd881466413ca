"""Utilities package for the sheet records reader.

This package provides:
- Centralized exception classes (exceptions.py)
- Structured logging utilities (logging.py)
"""

from sheet_records.utils.exceptions import (
    ArchiveError,
    ArchiveFormatError,
    CentralDirectoryError,
    ConfigurationError,
    DecompressionError,
    EntryNotFoundError,
    ErrorCode,
    LocalHeaderError,
    RelationshipMissingError,
    SheetNotFoundError,
    SheetRecordsError,
    UnsupportedCompressionError,
    WorkbookError,
)
from sheet_records.utils.logging import (
    LogContext,
    StructuredLogger,
    configure_logging,
    get_logger,
    timed_operation,
)

__all__ = [
    # Exceptions
    "ArchiveError",
    "ArchiveFormatError",
    "CentralDirectoryError",
    "ConfigurationError",
    "DecompressionError",
    "EntryNotFoundError",
    "ErrorCode",
    "LocalHeaderError",
    "RelationshipMissingError",
    "SheetNotFoundError",
    "SheetRecordsError",
    "UnsupportedCompressionError",
    "WorkbookError",
    # Logging
    "LogContext",
    "StructuredLogger",
    "configure_logging",
    "get_logger",
    "timed_operation",
]
