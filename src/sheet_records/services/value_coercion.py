"""Cell value decoding and date reinterpretation.

A cell's declared type attribute decides, once, how its content is read.
Unusable content never raises: missing value nodes and bad shared-string
indices decode to empty text, and unparseable numbers fall back to text.

Dates are not decoded automatically. Spreadsheets store them as day counts
from their own epoch, so callers that know a column holds dates ask for the
reinterpretation with ``to_datetime``.
"""

from __future__ import annotations

import math
import re
from collections.abc import Sequence
from datetime import UTC, datetime, timedelta
from enum import Enum

import pandas as pd

from sheet_records.models import CellKind, CellValue
from sheet_records.services.shared_strings import lookup_shared_string
from sheet_records.services.xml_scanner import TagKind, XmlScanner, decode_text

# Days between the spreadsheet day zero (1899-12-30) and 1970-01-01
SERIAL_EPOCH_OFFSET_DAYS = 25569
UNIX_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECONDS_PER_DAY = 86_400_000

DEFAULT_MIN_YEAR = 1900
DEFAULT_MAX_YEAR = 2100

_INTEGER_RE = re.compile(r"[+-]?\d+")
_DECIMAL_RE = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_MAX_EXACT_FLOAT_INTEGER = 2**53


class DeclaredType(str, Enum):
    """Cell type declared by the ``t`` attribute."""

    SHARED_STRING = "s"
    INLINE_STRING = "inlineStr"
    BOOLEAN = "b"
    FORMULA_STRING = "str"
    GENERAL = "n"

    @classmethod
    def from_attribute(cls, value: str | None) -> DeclaredType:
        """Map a raw ``t`` attribute; absent or unknown types are general."""
        if value is None:
            return cls.GENERAL
        try:
            return cls(value)
        except ValueError:
            return cls.GENERAL


def parse_number(raw: str) -> int | float | None:
    """Parse decimal notation, keeping integer semantics where possible.

    Returns None for anything that is not a plain decimal number, including
    ``inf``, ``nan``, hexadecimal and underscore-separated digits.
    """
    text = raw.strip()
    if _INTEGER_RE.fullmatch(text):
        return int(text)
    if not _DECIMAL_RE.fullmatch(text):
        return None
    number = float(text)
    if not math.isfinite(number):
        return None
    if number.is_integer() and abs(number) < _MAX_EXACT_FLOAT_INTEGER:
        return int(number)
    return number


def coerce_value(
    declared: DeclaredType,
    raw_value: str | None,
    shared_strings: Sequence[str],
    inline_text: str | None = None,
) -> CellValue:
    """Turn a cell's raw content into a typed value.

    Args:
        declared: Type declared by the cell.
        raw_value: Undecoded content of the ``v`` node, None if absent.
        shared_strings: The workbook's shared-string table.
        inline_text: Undecoded inline string text, for ``inlineStr`` cells.

    Returns:
        The decoded value.
    """
    if declared is DeclaredType.INLINE_STRING:
        return CellValue.text(decode_text(inline_text or ""))

    if not raw_value:
        return CellValue.text("")
    text = decode_text(raw_value)

    if declared is DeclaredType.SHARED_STRING:
        index = parse_number(text)
        if not isinstance(index, int):
            return CellValue.text("")
        return CellValue.text(lookup_shared_string(shared_strings, index))

    if declared is DeclaredType.BOOLEAN:
        return CellValue.boolean(text.strip() == "1")

    if declared is DeclaredType.FORMULA_STRING:
        return CellValue.text(text)

    number = parse_number(text)
    if number is not None:
        return CellValue.number(number)
    return CellValue.text(text)


def decode_cell(cell_xml: str, shared_strings: Sequence[str]) -> CellValue:
    """Decode one ``<c>`` element of a sheet part.

    Args:
        cell_xml: Full text of the cell element.
        shared_strings: The workbook's shared-string table.

    Returns:
        The decoded value; an unreadable fragment decodes to empty text.
    """
    scanner = XmlScanner(cell_xml)
    cell_tag = scanner.next_tag("c")
    if cell_tag is None:
        return CellValue.text("")

    declared = DeclaredType.from_attribute(cell_tag.attribute("t"))
    content = scanner.read_content(cell_tag)
    raw_value, inline_text = _cell_parts(content)
    return coerce_value(declared, raw_value, shared_strings, inline_text)


def _cell_parts(content: str) -> tuple[str | None, str | None]:
    raw_value: str | None = None
    inline_text: str | None = None
    scanner = XmlScanner(content)
    while (tag := scanner.next_tag("v", "is")) is not None:
        if tag.kind is TagKind.END:
            continue
        inner = scanner.read_content(tag)
        if tag.local_name == "v" and raw_value is None:
            raw_value = inner
        elif tag.local_name == "is" and inline_text is None:
            inline_text = _inline_string_text(inner)
    return raw_value, inline_text


def _inline_string_text(content: str) -> str:
    parts: list[str] = []
    scanner = XmlScanner(content)
    while (tag := scanner.next_tag("t", "rPh")) is not None:
        if tag.kind is TagKind.END:
            continue
        text = scanner.read_content(tag)
        if tag.local_name == "t":
            parts.append(text)
    return "".join(parts)


# =============================================================================
# Date reinterpretation
# =============================================================================


def serial_to_datetime(
    serial: float,
    *,
    min_year: int = DEFAULT_MIN_YEAR,
    max_year: int = DEFAULT_MAX_YEAR,
) -> datetime | None:
    """Convert a spreadsheet serial day number to a UTC instant.

    Args:
        serial: Days since the spreadsheet day zero; fractions are time of day.
        min_year: Earliest acceptable calendar year.
        max_year: Latest acceptable calendar year.

    Returns:
        The instant, or None when the serial is not positive or lands
        outside ``[min_year, max_year]``.
    """
    if not math.isfinite(serial) or serial <= 0:
        return None
    # Whole milliseconds absorb float error in stored times of day.
    milliseconds = round((serial - SERIAL_EPOCH_OFFSET_DAYS) * _MILLISECONDS_PER_DAY)
    try:
        instant = UNIX_EPOCH + timedelta(milliseconds=milliseconds)
    except OverflowError:
        return None
    if not min_year <= instant.year <= max_year:
        return None
    return instant


def parse_calendar_string(text: str) -> datetime | None:
    """Parse a free-form date string; naive results are read as UTC."""
    if not text or not text.strip():
        return None
    try:
        parsed = pd.to_datetime(text.strip(), errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if parsed is None or pd.isna(parsed):
        return None
    instant = parsed.to_pydatetime()
    if instant.tzinfo is None:
        return instant.replace(tzinfo=UTC)
    return instant


def to_datetime(
    value: CellValue,
    *,
    min_year: int = DEFAULT_MIN_YEAR,
    max_year: int = DEFAULT_MAX_YEAR,
) -> datetime | None:
    """Reinterpret a decoded cell as a calendar instant.

    Numbers follow the serial day rule and are rejected outside the year
    window; text goes through generic calendar-string parsing. Booleans and
    empty cells are never dates.
    """
    if value.kind is CellKind.NUMBER and isinstance(value.value, (int, float)):
        return serial_to_datetime(
            float(value.value), min_year=min_year, max_year=max_year
        )
    if value.kind is CellKind.TEXT and isinstance(value.value, str):
        return parse_calendar_string(value.value)
    return None
