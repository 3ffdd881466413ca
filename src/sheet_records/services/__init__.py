"""Decoding services for ZIP-packaged spreadsheets."""

from sheet_records.services.archive_index import Archive, load_archive, open_archive
from sheet_records.services.entry_extractor import extract_entry, extract_text
from sheet_records.services.row_decoder import decode_sheet
from sheet_records.services.shared_strings import parse_shared_strings
from sheet_records.services.timezone_resolver import TimezoneResolver, infer_timezone
from sheet_records.services.value_coercion import decode_cell, to_datetime
from sheet_records.services.workbook_manifest import WorkbookManifest, parse_manifest

__all__ = [
    "Archive",
    "TimezoneResolver",
    "WorkbookManifest",
    "decode_cell",
    "decode_sheet",
    "extract_entry",
    "extract_text",
    "infer_timezone",
    "load_archive",
    "open_archive",
    "parse_manifest",
    "parse_shared_strings",
    "to_datetime",
]
