"""Sheet part decoding into header-keyed records.

The first row that carries any cells is the header row. Every later row
becomes a ``Record`` by pairing each header's column index with the value at
the same column index in that row.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator, Sequence

from sheet_records.models import CellValue, Record, Row
from sheet_records.services.archive_index import Archive
from sheet_records.services.entry_extractor import extract_text
from sheet_records.services.value_coercion import decode_cell
from sheet_records.services.workbook_manifest import WorkbookManifest
from sheet_records.services.xml_scanner import TagKind, XmlScanner
from sheet_records.utils.logging import get_logger

logger = get_logger(__name__)

_CELL_REFERENCE_RE = re.compile(r"([A-Za-z]+)(\d+)")


def column_letters_to_index(letters: str) -> int:
    """Convert column letters to a 1-based column index.

    >>> column_letters_to_index("A"), column_letters_to_index("AA")
    (1, 27)

    Raises:
        ValueError: If ``letters`` is empty or contains non-letters.
    """
    if not letters or not letters.isascii() or not letters.isalpha():
        raise ValueError(f"Invalid column letters: {letters!r}")
    index = 0
    for char in letters.upper():
        index = index * 26 + (ord(char) - ord("A") + 1)
    return index


def split_cell_reference(reference: str) -> tuple[str, int] | None:
    """Split ``"AB12"`` into ``("AB", 12)``; None if it is not a reference."""
    match = _CELL_REFERENCE_RE.fullmatch(reference.strip())
    if match is None:
        return None
    return match.group(1).upper(), int(match.group(2))


def decode_rows(sheet_xml: str, shared_strings: Sequence[str]) -> Iterator[Row]:
    """Yield the cells of each non-empty row of a sheet part, in order.

    A cell without a usable reference takes the column after the previous
    cell of its row.
    """
    scanner = XmlScanner(sheet_xml)
    for _, row_content in scanner.iter_elements("row"):
        row: Row = {}
        previous_column = 0
        cells = XmlScanner(row_content)
        while (cell_tag := cells.next_tag("c")) is not None:
            if cell_tag.kind is TagKind.END:
                continue
            cell_xml = cells.read_element(cell_tag)
            reference = split_cell_reference(cell_tag.attribute("r") or "")
            if reference is None:
                column = previous_column + 1
            else:
                column = column_letters_to_index(reference[0])
            row[column] = decode_cell(cell_xml, shared_strings)
            previous_column = column
        if row:
            yield row


def rows_to_records(rows: Iterable[Row]) -> list[Record]:
    """Key rows by the labels of the first row.

    Columns whose header is empty are left out of every record, and rows in
    which every field is empty are dropped.
    """
    records: list[Record] = []
    headers: list[tuple[int, str]] | None = None
    blank_rows = 0

    for row in rows:
        if headers is None:
            headers = [
                (column, row[column].as_text())
                for column in sorted(row)
                if not row[column].is_empty
            ]
            continue

        record: Record = {}
        for column, label in headers:
            record[label] = row.get(column, CellValue.empty())
        if any(not value.is_empty for value in record.values()):
            records.append(record)
        else:
            blank_rows += 1

    if blank_rows:
        logger.debug("Dropped blank rows", count=blank_rows)
    return records


def decode_sheet(
    archive: Archive,
    manifest: WorkbookManifest,
    shared_strings: Sequence[str],
    sheet_name: str,
) -> list[Record]:
    """Decode one sheet of a workbook into records.

    Raises:
        SheetNotFoundError: If the workbook does not declare the sheet.
        RelationshipMissingError: If the sheet's part cannot be resolved.
        EntryNotFoundError: If the resolved part is not in the archive.
    """
    part_path = manifest.sheet_part_path(sheet_name)
    sheet_xml = extract_text(archive, part_path)
    records = rows_to_records(decode_rows(sheet_xml, shared_strings))
    logger.debug(
        "Decoded sheet", sheet=sheet_name, part=part_path, records=len(records)
    )
    return records
