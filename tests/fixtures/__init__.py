"""Test fixtures and helpers for building archives and workbooks in memory.

The archives are assembled byte by byte so that tests control every header
field, including ones a real ZIP writer would never produce.

Example usage:
    from tests.fixtures import ZipMember, build_archive, build_workbook

    data = build_archive([ZipMember("a.txt", b"hello")])
    workbook = build_workbook({"Contacts": [["Email"], ["a@example.com"]]})
"""

from __future__ import annotations

import struct
import zlib
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any
from xml.sax.saxutils import escape, quoteattr

STORED = 0
DEFLATE = 8


@dataclass
class ZipMember:
    """One member to place in a hand-built archive.

    Attributes:
        name: Entry name.
        data: Uncompressed content.
        method: Compression applied to ``data`` (0 or 8).
        declared_method: Method code written to the headers; defaults to
            ``method``. Lets tests declare codes the reader does not support.
        payload: Raw payload to store instead of compressing ``data``.
        declared_uncompressed_size: Overrides the recorded uncompressed size.
    """

    name: str
    data: bytes
    method: int = STORED
    declared_method: int | None = None
    payload: bytes | None = None
    declared_uncompressed_size: int | None = None


def deflate_raw(data: bytes) -> bytes:
    """Compress to a raw deflate stream, as ZIP members store it."""
    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    return compressor.compress(data) + compressor.flush()


def build_archive(members: Sequence[ZipMember], comment: bytes = b"") -> bytes:
    """Assemble a ZIP archive from members.

    Args:
        members: Members in archive order.
        comment: Archive comment placed after the end record.

    Returns:
        Complete archive bytes.
    """
    body = bytearray()
    central = bytearray()

    for member in members:
        name = member.name.encode("utf-8")
        if member.payload is not None:
            payload = member.payload
        elif member.method == DEFLATE:
            payload = deflate_raw(member.data)
        else:
            payload = member.data
        method = (
            member.declared_method
            if member.declared_method is not None
            else member.method
        )
        uncompressed_size = (
            member.declared_uncompressed_size
            if member.declared_uncompressed_size is not None
            else len(member.data)
        )
        crc = zlib.crc32(member.data) & 0xFFFFFFFF
        offset = len(body)

        body += struct.pack(
            "<IHHHHHIIIHH",
            0x04034B50,
            20,
            0x0800,
            method,
            0,
            0,
            crc,
            len(payload),
            uncompressed_size,
            len(name),
            0,
        )
        body += name
        body += payload

        central += struct.pack(
            "<IHHHHHHIIIHHHHHII",
            0x02014B50,
            20,
            20,
            0x0800,
            method,
            0,
            0,
            crc,
            len(payload),
            uncompressed_size,
            len(name),
            0,
            0,
            0,
            0,
            0,
            offset,
        )
        central += name

    end_record = struct.pack(
        "<IHHHHIIH",
        0x06054B50,
        0,
        0,
        len(members),
        len(members),
        len(central),
        len(body),
        len(comment),
    )
    return bytes(body + central + end_record + comment)


# =============================================================================
# Workbook builders
# =============================================================================


def column_letters(index: int) -> str:
    """Convert a 1-based column index to letters."""
    letters = ""
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def _cell_xml(reference: str, value: Any, shared: dict[str, int]) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return f'<c r="{reference}" t="b"><v>{int(value)}</v></c>'
    if isinstance(value, (int, float)):
        return f'<c r="{reference}"><v>{value!r}</v></c>'
    text = str(value)
    index = shared.setdefault(text, len(shared))
    return f'<c r="{reference}" t="s"><v>{index}</v></c>'


def sheet_xml(rows: Sequence[Sequence[Any]], shared: dict[str, int]) -> str:
    """Render rows as a worksheet part; strings go to ``shared``.

    ``None`` values produce no cell, so gaps stay sparse.
    """
    row_parts = []
    for row_number, row in enumerate(rows, start=1):
        cells = "".join(
            _cell_xml(f"{column_letters(column)}{row_number}", value, shared)
            for column, value in enumerate(row, start=1)
        )
        row_parts.append(f'<row r="{row_number}">{cells}</row>')
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        '<worksheet xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main">'
        f"<sheetData>{''.join(row_parts)}</sheetData></worksheet>"
    )


def workbook_xml(sheet_names: Sequence[str]) -> str:
    sheets = "".join(
        f"<sheet name={quoteattr(name)} sheetId=\"{i}\" r:id=\"rId{i}\"/>"
        for i, name in enumerate(sheet_names, start=1)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        '<workbook xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" '
        'xmlns:r="http://schemas.openxmlformats.org/officeDocument/2006/relationships">'
        f"<sheets>{sheets}</sheets></workbook>"
    )


def relationships_xml(targets: Sequence[str]) -> str:
    relationships = "".join(
        f'<Relationship Id="rId{i}" '
        'Type="http://schemas.openxmlformats.org/officeDocument/2006/relationships/worksheet" '
        f'Target="{target}"/>'
        for i, target in enumerate(targets, start=1)
    )
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        '<Relationships xmlns="http://schemas.openxmlformats.org/package/2006/relationships">'
        f"{relationships}</Relationships>"
    )


def shared_strings_xml(strings: Sequence[str]) -> str:
    items = "".join(f"<si><t>{escape(text)}</t></si>" for text in strings)
    return (
        '<?xml version="1.0" encoding="UTF-8" standalone="yes"?>\n'
        '<sst xmlns="http://schemas.openxmlformats.org/spreadsheetml/2006/main" '
        f'count="{len(strings)}" uniqueCount="{len(strings)}">{items}</sst>'
    )


def build_workbook(
    sheets: dict[str, Sequence[Sequence[Any]]],
    *,
    method: int = DEFLATE,
    include_shared_strings: bool = True,
) -> bytes:
    """Build a minimal workbook archive.

    Args:
        sheets: Sheet name -> rows of plain values, in workbook order.
        method: Compression used for every part.
        include_shared_strings: Write the shared-string part even if it would
            be empty.

    Returns:
        Complete archive bytes.
    """
    shared: dict[str, int] = {}
    members: list[ZipMember] = []
    targets: list[str] = []
    for i, rows in enumerate(sheets.values(), start=1):
        target = f"worksheets/sheet{i}.xml"
        targets.append(target)
        members.append(
            ZipMember(
                f"xl/{target}", sheet_xml(rows, shared).encode("utf-8"), method
            )
        )

    parts = [
        ZipMember("xl/workbook.xml", workbook_xml(list(sheets)).encode(), method),
        ZipMember(
            "xl/_rels/workbook.xml.rels",
            relationships_xml(targets).encode(),
            method,
        ),
    ]
    if include_shared_strings or shared:
        parts.append(
            ZipMember(
                "xl/sharedStrings.xml",
                shared_strings_xml(list(shared)).encode("utf-8"),
                method,
            )
        )
    return build_archive(parts + members)
