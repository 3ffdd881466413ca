"""Shared-string table decoding."""

from __future__ import annotations

from collections.abc import Sequence

from sheet_records.services.archive_index import Archive
from sheet_records.services.entry_extractor import extract_text
from sheet_records.services.xml_scanner import TagKind, XmlScanner, decode_text
from sheet_records.utils.exceptions import EntryNotFoundError
from sheet_records.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SHARED_STRINGS_PART = "xl/sharedStrings.xml"


def parse_shared_strings(
    archive: Archive, part_name: str = DEFAULT_SHARED_STRINGS_PART
) -> list[str]:
    """Decode an archive's shared-string table.

    Workbooks that only use inline strings have no table; that is not an
    error and yields an empty list.
    """
    try:
        xml = extract_text(archive, part_name)
    except EntryNotFoundError:
        logger.debug("No shared-string table", part=part_name)
        return []
    strings = parse_shared_strings_xml(xml)
    logger.debug("Parsed shared strings", part=part_name, count=len(strings))
    return strings


def parse_shared_strings_xml(xml: str) -> list[str]:
    """Decode every ``si`` entry of a shared-string part, in order."""
    scanner = XmlScanner(xml)
    return [_string_item_text(content) for _, content in scanner.iter_elements("si")]


def _string_item_text(content: str) -> str:
    # Plain entries hold one <t>; rich text splits it across <r><t> runs.
    # <rPh> carries phonetic hints that are not part of the displayed text.
    parts: list[str] = []
    scanner = XmlScanner(content)
    while (tag := scanner.next_tag("t", "rPh")) is not None:
        if tag.kind is TagKind.END:
            continue
        text = scanner.read_content(tag)
        if tag.local_name == "t":
            parts.append(decode_text(text))
    return "".join(parts)


def lookup_shared_string(table: Sequence[str], index: int) -> str:
    """Return ``table[index]``, or empty text for an out-of-range index."""
    if 0 <= index < len(table):
        return table[index]
    return ""
