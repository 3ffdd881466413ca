"""Centralized exception classes for the sheet records reader.

This module provides a hierarchy of custom exceptions with error codes and
structured error details so callers can tell a corrupt archive apart from a
missing sheet without parsing messages.

Exception Hierarchy:
    SheetRecordsError (base)
    ├── ArchiveError
    │   ├── ArchiveReadError
    │   ├── ArchiveTooLargeError
    │   ├── ArchiveFormatError
    │   ├── CentralDirectoryError
    │   ├── EntryNotFoundError
    │   ├── LocalHeaderError
    │   ├── UnsupportedCompressionError
    │   └── DecompressionError
    ├── WorkbookError
    │   ├── PartDecodeError
    │   ├── SheetNotFoundError
    │   └── RelationshipMissingError
    └── ConfigurationError

Error Codes:
    All errors have a unique error code (e.g., "E1003") that can be used
    for programmatic error handling and documentation.
"""

from enum import Enum
from typing import Any


class ErrorCode(str, Enum):
    """Enumeration of all error codes used by the reader.

    Error codes are grouped by category:
    - E1xxx: Archive container errors
    - E2xxx: Workbook part errors
    - E9xxx: Internal/configuration errors
    """

    # Archive errors (E1xxx)
    ARCHIVE_READ_ERROR = "E1001"
    ARCHIVE_TOO_LARGE = "E1002"
    ARCHIVE_FORMAT_ERROR = "E1003"
    CENTRAL_DIRECTORY_ERROR = "E1004"
    ENTRY_NOT_FOUND = "E1005"
    LOCAL_HEADER_ERROR = "E1006"
    UNSUPPORTED_COMPRESSION = "E1007"
    DECOMPRESSION_FAILED = "E1008"

    # Workbook errors (E2xxx)
    PART_DECODE_ERROR = "E2001"
    SHEET_NOT_FOUND = "E2002"
    RELATIONSHIP_MISSING = "E2003"

    # Internal errors (E9xxx)
    INTERNAL_ERROR = "E9001"
    CONFIGURATION_ERROR = "E9002"


class SheetRecordsError(Exception):
    """Base exception for all sheet records errors.

    All custom exceptions in the package inherit from this class.
    It provides:
    - Unique error codes for programmatic handling
    - Structured error details for logging and debugging

    Attributes:
        message: Human-readable error message.
        error_code: Unique error code from ErrorCode enum.
        details: Optional dictionary with additional error details.
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Error code from ErrorCode enum.
            details: Optional additional details about the error.
        """
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert the exception to a dictionary for reports.

        Returns:
            Dictionary with error information.
        """
        result: dict[str, Any] = {
            "error_code": self.error_code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code.value}] {self.message}"


# =============================================================================
# Archive Errors (E1xxx)
# =============================================================================


class ArchiveError(SheetRecordsError):
    """Base class for ZIP container errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.ARCHIVE_READ_ERROR,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with archive source information.

        Args:
            message: Error message.
            error_code: Error code.
            source: File name or label of the archive being read.
            details: Additional details.
        """
        details = details or {}
        if source:
            details["source"] = source
        super().__init__(message, error_code, details)
        self.source = source


class ArchiveReadError(ArchiveError):
    """Raised when the archive file cannot be read from disk."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize with the failing source.

        Args:
            message: Error message.
            source: Path of the archive.
            details: Additional details.
        """
        super().__init__(
            message,
            error_code=ErrorCode.ARCHIVE_READ_ERROR,
            source=source,
            details=details,
        )


class ArchiveTooLargeError(ArchiveError):
    """Raised when an archive exceeds the configured size limit."""

    def __init__(
        self,
        file_size: int,
        max_size: int,
        source: str | None = None,
    ) -> None:
        """Initialize with size information.

        Args:
            file_size: Actual archive size in bytes.
            max_size: Maximum allowed size in bytes.
            source: Optional archive path.
        """
        message = (
            f"Archive size ({file_size} bytes) exceeds maximum "
            f"allowed size ({max_size} bytes)"
        )
        super().__init__(
            message,
            error_code=ErrorCode.ARCHIVE_TOO_LARGE,
            source=source,
            details={"file_size_bytes": file_size, "max_size_bytes": max_size},
        )
        self.file_size = file_size
        self.max_size = max_size


class ArchiveFormatError(ArchiveError):
    """Raised when no usable end-of-central-directory record exists."""

    def __init__(
        self,
        message: str,
        source: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Error message.
            source: Optional archive label.
            details: Additional details.
        """
        super().__init__(
            message,
            error_code=ErrorCode.ARCHIVE_FORMAT_ERROR,
            source=source,
            details=details,
        )


class CentralDirectoryError(ArchiveError):
    """Raised when a central-directory header is corrupt or truncated."""

    def __init__(
        self,
        message: str,
        offset: int,
        source: str | None = None,
    ) -> None:
        """Initialize with the offending offset.

        Args:
            message: Error message.
            offset: Byte offset of the broken header.
            source: Optional archive label.
        """
        super().__init__(
            message,
            error_code=ErrorCode.CENTRAL_DIRECTORY_ERROR,
            source=source,
            details={"offset": offset},
        )
        self.offset = offset


class EntryNotFoundError(ArchiveError):
    """Raised when a requested part is not present in the archive."""

    def __init__(self, entry_name: str, source: str | None = None) -> None:
        """Initialize with the missing entry name.

        Args:
            entry_name: Name of the entry that was requested.
            source: Optional archive label.
        """
        super().__init__(
            f"Entry not found in archive: {entry_name}",
            error_code=ErrorCode.ENTRY_NOT_FOUND,
            source=source,
            details={"entry_name": entry_name},
        )
        self.entry_name = entry_name


class LocalHeaderError(ArchiveError):
    """Raised when an entry's local file header is corrupt."""

    def __init__(
        self,
        entry_name: str,
        offset: int,
        message: str | None = None,
        source: str | None = None,
    ) -> None:
        """Initialize with entry and offset information.

        Args:
            entry_name: Entry whose header failed validation.
            offset: Byte offset of the local header.
            message: Optional custom message.
            source: Optional archive label.
        """
        super().__init__(
            message or f"Invalid local file header for {entry_name}",
            error_code=ErrorCode.LOCAL_HEADER_ERROR,
            source=source,
            details={"entry_name": entry_name, "offset": offset},
        )
        self.entry_name = entry_name
        self.offset = offset


class UnsupportedCompressionError(ArchiveError):
    """Raised when an entry uses a method other than stored or deflate."""

    def __init__(
        self,
        entry_name: str,
        method: int,
        source: str | None = None,
    ) -> None:
        """Initialize with the declared compression method.

        Args:
            entry_name: Entry that declares the method.
            method: Raw compression method code.
            source: Optional archive label.
        """
        super().__init__(
            f"Unsupported compression method {method} for {entry_name}",
            error_code=ErrorCode.UNSUPPORTED_COMPRESSION,
            source=source,
            details={"entry_name": entry_name, "method": method},
        )
        self.entry_name = entry_name
        self.method = method


class DecompressionError(ArchiveError):
    """Raised when an entry payload cannot be inflated."""

    def __init__(
        self,
        entry_name: str,
        message: str,
        source: str | None = None,
    ) -> None:
        """Initialize with the entry name.

        Args:
            entry_name: Entry whose payload failed to inflate.
            message: Error message.
            source: Optional archive label.
        """
        super().__init__(
            message,
            error_code=ErrorCode.DECOMPRESSION_FAILED,
            source=source,
            details={"entry_name": entry_name},
        )
        self.entry_name = entry_name


# =============================================================================
# Workbook Errors (E2xxx)
# =============================================================================


class WorkbookError(SheetRecordsError):
    """Base class for workbook part resolution errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.SHEET_NOT_FOUND,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Error message.
            error_code: Error code.
            details: Additional details.
        """
        super().__init__(message, error_code, details)


class PartDecodeError(WorkbookError):
    """Raised when a part's bytes are not valid text."""

    def __init__(self, part_name: str, encoding: str) -> None:
        """Initialize with the undecodable part.

        Args:
            part_name: Archive path of the part.
            encoding: Encoding that was attempted.
        """
        super().__init__(
            f"Part {part_name} is not valid {encoding} text",
            error_code=ErrorCode.PART_DECODE_ERROR,
            details={"part_name": part_name, "encoding": encoding},
        )
        self.part_name = part_name


class SheetNotFoundError(WorkbookError):
    """Raised when a sheet name is not declared in the workbook."""

    def __init__(
        self,
        sheet_name: str,
        available_sheets: list[str] | None = None,
    ) -> None:
        """Initialize with the sheet name.

        Args:
            sheet_name: Sheet that was requested.
            available_sheets: Sheet names the workbook does declare.
        """
        details: dict[str, Any] = {"sheet_name": sheet_name}
        if available_sheets is not None:
            details["available_sheets"] = available_sheets
        super().__init__(
            f"Sheet '{sheet_name}' not found",
            error_code=ErrorCode.SHEET_NOT_FOUND,
            details=details,
        )
        self.sheet_name = sheet_name
        self.available_sheets = available_sheets or []


class RelationshipMissingError(WorkbookError):
    """Raised when a sheet's relationship id has no target part."""

    def __init__(self, sheet_name: str, relationship_id: str) -> None:
        """Initialize with the dangling relationship.

        Args:
            sheet_name: Sheet whose relationship could not be resolved.
            relationship_id: The relationship id without a target.
        """
        super().__init__(
            f"Relationship target missing for sheet '{sheet_name}'",
            error_code=ErrorCode.RELATIONSHIP_MISSING,
            details={"sheet_name": sheet_name, "relationship_id": relationship_id},
        )
        self.sheet_name = sheet_name
        self.relationship_id = relationship_id


# =============================================================================
# Internal Errors (E9xxx)
# =============================================================================


class ConfigurationError(SheetRecordsError):
    """Raised when reader configuration is invalid."""

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the error.

        Args:
            message: Error message.
            details: Additional details.
        """
        super().__init__(message, ErrorCode.CONFIGURATION_ERROR, details)
