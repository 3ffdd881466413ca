"""High-level workbook reading.

``WorkbookReader`` ties the decoding stages together: it indexes the
archive, decodes the manifest and shared-string table once, and then hands
out header-keyed records per sheet.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import pandas as pd

from sheet_records.config import Settings, settings
from sheet_records.models import CellValue, Record
from sheet_records.services.archive_index import Archive, load_archive, open_archive
from sheet_records.services.row_decoder import decode_sheet
from sheet_records.services.shared_strings import parse_shared_strings
from sheet_records.services.timezone_resolver import (
    TimezoneResolver,
    format_date_value,
)
from sheet_records.services.value_coercion import to_datetime
from sheet_records.services.workbook_manifest import WorkbookManifest, parse_manifest
from sheet_records.utils.exceptions import (
    EntryNotFoundError,
    RelationshipMissingError,
    SheetNotFoundError,
)
from sheet_records.utils.logging import LogContext, get_logger, timed_operation

logger = get_logger(__name__)


@dataclass
class SheetRecords:
    """Records decoded from one sheet."""

    sheet_name: str
    records: list[Record] = field(default_factory=list)

    @property
    def columns(self) -> list[str]:
        """Field names, in header order."""
        return list(self.records[0]) if self.records else []

    def to_dataframe(self) -> pd.DataFrame:
        """Return the records as a DataFrame of plain Python values."""
        rows = [
            {label: value.as_python() for label, value in record.items()}
            for record in self.records
        ]
        return pd.DataFrame(rows, columns=self.columns or None)

    def __len__(self) -> int:
        return len(self.records)


@dataclass
class Workbook:
    """A decoded workbook whose sheets can be read on demand."""

    archive: Archive
    manifest: WorkbookManifest
    shared_strings: list[str]

    @property
    def source(self) -> str | None:
        return self.archive.source

    @property
    def sheet_names(self) -> list[str]:
        return self.manifest.sheet_names

    def read_sheet(
        self, sheet_name: str, *, fallback_to_first: bool = False
    ) -> SheetRecords:
        """Decode one sheet into records.

        Args:
            sheet_name: Display name of the sheet.
            fallback_to_first: Read the first sheet instead when
                ``sheet_name`` cannot be resolved.

        Raises:
            SheetNotFoundError: If the sheet is unknown and no fallback
                applies, or the workbook declares no sheets at all.
            RelationshipMissingError: If the sheet's part cannot be resolved
                and no fallback applies.
            EntryNotFoundError: If the resolved part is missing from the
                archive and no fallback applies.
        """
        try:
            return self._read(sheet_name)
        except (
            SheetNotFoundError,
            RelationshipMissingError,
            EntryNotFoundError,
        ) as exc:
            if not fallback_to_first:
                raise
            names = self.sheet_names
            if not names:
                raise SheetNotFoundError(sheet_name, []) from exc
            logger.warning(
                "Sheet unavailable, reading first sheet instead",
                requested=sheet_name,
                fallback=names[0],
                reason=exc.message,
            )
            return self._read(names[0])

    def _read(self, sheet_name: str) -> SheetRecords:
        with LogContext(source=self.source, sheet=sheet_name):
            with timed_operation(logger, "decode_sheet") as metrics:
                records = decode_sheet(
                    self.archive, self.manifest, self.shared_strings, sheet_name
                )
                metrics.rows_decoded = len(records)
        return SheetRecords(sheet_name=sheet_name, records=records)


class WorkbookReader:
    """Load workbooks and reinterpret dates using the configured settings."""

    def __init__(self, config: Settings | None = None) -> None:
        """Initialize the reader.

        Args:
            config: Settings to use; the module-level settings by default.
        """
        self._settings = config or settings

    def load(self, path: str | Path) -> Workbook:
        """Read and decode a workbook file.

        Raises:
            ArchiveReadError: If the file cannot be read.
            ArchiveTooLargeError: If it exceeds the configured size limit.
        """
        archive = load_archive(
            path, max_size_bytes=self._settings.max_archive_size_bytes
        )
        return self._decode(archive)

    def load_bytes(self, data: bytes, source: str | None = None) -> Workbook:
        """Decode a workbook already held in memory."""
        return self._decode(open_archive(data, source=source))

    def get_sheet_names(self, path: str | Path) -> list[str]:
        """List the sheets a workbook file declares, in workbook order."""
        return self.load(path).sheet_names

    def read_records(
        self,
        path: str | Path,
        sheet_name: str,
        *,
        fallback_to_first: bool = False,
    ) -> SheetRecords:
        """Load a workbook file and decode one of its sheets."""
        return self.load(path).read_sheet(
            sheet_name, fallback_to_first=fallback_to_first
        )

    def read_date(self, value: CellValue) -> datetime | None:
        """Reinterpret a cell as a date within the configured year window."""
        return to_datetime(
            value,
            min_year=self._settings.date_min_year,
            max_year=self._settings.date_max_year,
        )

    def format_date(self, value: CellValue, zone: str | None = None) -> str:
        """Render a cell as a display date within the configured year window."""
        return format_date_value(
            value,
            zone,
            min_year=self._settings.date_min_year,
            max_year=self._settings.date_max_year,
        )

    def timezone_resolver(
        self,
        date_fields: Sequence[str],
        model_key: str,
        rendered_key: str | None = None,
    ) -> TimezoneResolver:
        """Build a resolver from the configured zones, sample cap and years.

        Args:
            date_fields: Fields holding serial dates on the model side.
            model_key: Field identifying a row on the model side.
            rendered_key: Field identifying a row on the rendered side.
        """
        return TimezoneResolver(
            self._settings.timezone_candidates_list,
            date_fields,
            model_key,
            rendered_key,
            sample_limit=self._settings.timezone_sample_limit,
            min_year=self._settings.date_min_year,
            max_year=self._settings.date_max_year,
        )

    def _decode(self, archive: Archive) -> Workbook:
        with LogContext(source=archive.source):
            with timed_operation(logger, "decode_workbook") as metrics:
                metrics.entries_indexed = len(archive)
                manifest = parse_manifest(
                    archive,
                    workbook_part=self._settings.workbook_part,
                    relationships_part=self._settings.workbook_relationships_part,
                )
                shared_strings = parse_shared_strings(
                    archive, self._settings.shared_strings_part
                )
                metrics.custom_metrics["shared_strings"] = len(shared_strings)
        logger.info(
            "Loaded workbook",
            source=archive.source,
            sheets=len(manifest.sheets),
        )
        return Workbook(
            archive=archive, manifest=manifest, shared_strings=shared_strings
        )
