"""Dataclasses representing archive entries and decoded cell values."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any


class CompressionMethod(int, Enum):
    """ZIP compression methods the reader can extract."""

    STORED = 0
    DEFLATE = 8


@dataclass(frozen=True)
class ArchiveEntry:
    """Central-directory metadata for one archive member.

    ``compression_method`` keeps the raw method code so that entries using
    an unsupported method can still be indexed and rejected on extraction.
    """

    name: str
    compression_method: int
    compressed_size: int
    uncompressed_size: int
    local_header_offset: int

    @property
    def compression(self) -> CompressionMethod | None:
        """Supported compression method, or None for any other code."""
        try:
            return CompressionMethod(self.compression_method)
        except ValueError:
            return None


class CellKind(str, Enum):
    """Kind of value held by a decoded cell."""

    EMPTY = "empty"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class CellValue:
    """A decoded cell value tagged with its kind.

    Numbers with an integral value are stored as ``int`` and keep integer
    semantics; everything else numeric is a ``float``.
    """

    kind: CellKind
    value: str | int | float | bool | None = None

    @classmethod
    def empty(cls) -> CellValue:
        return cls(CellKind.EMPTY)

    @classmethod
    def text(cls, value: str) -> CellValue:
        return cls(CellKind.TEXT, value)

    @classmethod
    def number(cls, value: int | float) -> CellValue:
        return cls(CellKind.NUMBER, value)

    @classmethod
    def boolean(cls, value: bool) -> CellValue:
        return cls(CellKind.BOOLEAN, value)

    @property
    def is_empty(self) -> bool:
        """True for absent cells and for empty text."""
        return self.kind is CellKind.EMPTY or (
            self.kind is CellKind.TEXT and self.value == ""
        )

    @property
    def is_integer(self) -> bool:
        return self.kind is CellKind.NUMBER and isinstance(self.value, int)

    def as_text(self) -> str:
        """Render the value the way a spreadsheet export shows it."""
        if self.kind is CellKind.EMPTY or self.value is None:
            return ""
        if self.kind is CellKind.BOOLEAN:
            return "true" if self.value else "false"
        return str(self.value)

    def as_python(self) -> Any:
        """Return the plain Python value; empty cells become ``""``."""
        if self.kind is CellKind.EMPTY:
            return ""
        return self.value


Row = dict[int, CellValue]
"""Sparse mapping from 1-based column index to cell value."""

Record = dict[str, CellValue]
"""Mapping from header label to cell value for one data row."""
