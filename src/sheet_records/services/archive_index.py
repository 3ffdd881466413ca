"""ZIP central-directory indexing.

Locates the end-of-central-directory record of an in-memory ZIP archive and
reads every central-directory header into a name-keyed table of
``ArchiveEntry`` metadata. Indexing is all-or-nothing: any structural
problem raises and no partial index is returned.

Known limitation: the end record is found by scanning backwards for its
signature. If the archive comment itself contains those four bytes after the
true record start, the match inside the comment wins. The format gives no
way to disambiguate this.
"""

from __future__ import annotations

import struct
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType

from sheet_records.models import ArchiveEntry
from sheet_records.utils.exceptions import (
    ArchiveFormatError,
    ArchiveReadError,
    ArchiveTooLargeError,
    CentralDirectoryError,
)
from sheet_records.utils.logging import get_logger

logger = get_logger(__name__)

END_OF_CENTRAL_DIRECTORY_SIGNATURE = 0x06054B50
CENTRAL_DIRECTORY_SIGNATURE = 0x02014B50

# signature, disk, cd disk, disk entries, total entries, cd size, cd offset,
# comment length
_EOCD_STRUCT = struct.Struct("<IHHHHIIH")
# signature, made by, needed, flags, method, time, date, crc, compressed,
# uncompressed, name len, extra len, comment len, disk start, internal attrs,
# external attrs, local header offset
_CENTRAL_HEADER_STRUCT = struct.Struct("<IHHHHHHIIIHHHHHII")

EOCD_SIZE = _EOCD_STRUCT.size
CENTRAL_HEADER_SIZE = _CENTRAL_HEADER_STRUCT.size
MAX_COMMENT_LENGTH = 0xFFFF

_ZIP64_ENTRY_COUNT = 0xFFFF
_ZIP64_OFFSET = 0xFFFFFFFF
_UTF8_NAME_FLAG = 0x0800


@dataclass(frozen=True)
class Archive:
    """An indexed, read-only ZIP archive held in memory."""

    data: bytes
    entries: Mapping[str, ArchiveEntry] = field(default_factory=dict)
    source: str | None = None

    def names(self) -> list[str]:
        """List entry names in central-directory order."""
        return list(self.entries)

    def get(self, name: str) -> ArchiveEntry | None:
        return self.entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[ArchiveEntry]:
        return iter(self.entries.values())


def find_end_of_central_directory(data: bytes, source: str | None = None) -> int:
    """Return the offset of the end-of-central-directory record.

    Args:
        data: Complete archive bytes.
        source: Optional label used in error details.

    Returns:
        Offset of the record's signature.

    Raises:
        ArchiveFormatError: If no signature precedes the final 22 bytes.
    """
    signature = struct.pack("<I", END_OF_CENTRAL_DIRECTORY_SIGNATURE)
    last_start = len(data) - EOCD_SIZE
    if last_start < 0:
        raise ArchiveFormatError(
            "Archive is smaller than an end of central directory record",
            source=source,
            details={"size": len(data)},
        )
    search_floor = max(0, last_start - MAX_COMMENT_LENGTH)
    offset = data.rfind(signature, search_floor, last_start + len(signature))
    if offset == -1:
        raise ArchiveFormatError(
            "Unable to locate end of central directory",
            source=source,
            details={"size": len(data)},
        )
    return offset


def open_archive(data: bytes, source: str | None = None) -> Archive:
    """Index the central directory of an in-memory archive.

    Args:
        data: Complete archive bytes.
        source: Optional label (usually the file name) for logs and errors.

    Returns:
        Archive with one ``ArchiveEntry`` per member.

    Raises:
        ArchiveFormatError: If the end record is missing or declares ZIP64.
        CentralDirectoryError: If any central-directory header is corrupt.
    """
    data = bytes(data)
    eocd_offset = find_end_of_central_directory(data, source)
    (
        _signature,
        _disk,
        _cd_disk,
        _disk_entries,
        total_entries,
        _cd_size,
        cd_offset,
        _comment_length,
    ) = _EOCD_STRUCT.unpack_from(data, eocd_offset)

    if total_entries == _ZIP64_ENTRY_COUNT or cd_offset == _ZIP64_OFFSET:
        raise ArchiveFormatError(
            "ZIP64 archives are not supported",
            source=source,
            details={"entry_count": total_entries, "central_directory_offset": cd_offset},
        )

    entries: dict[str, ArchiveEntry] = {}
    offset = cd_offset
    for _ in range(total_entries):
        entry, offset = _read_central_header(data, offset, source)
        if entry.name in entries:
            logger.warning("Duplicate archive entry name", entry=entry.name)
        entries[entry.name] = entry

    logger.debug(
        "Indexed archive",
        source=source,
        entries=len(entries),
        central_directory_offset=cd_offset,
    )
    return Archive(data=data, entries=MappingProxyType(entries), source=source)


def _read_central_header(
    data: bytes, offset: int, source: str | None
) -> tuple[ArchiveEntry, int]:
    if offset + CENTRAL_HEADER_SIZE > len(data):
        raise CentralDirectoryError(
            f"Truncated central directory entry at offset {offset}",
            offset=offset,
            source=source,
        )

    (
        signature,
        _made_by,
        _needed,
        flags,
        method,
        _mod_time,
        _mod_date,
        _crc,
        compressed_size,
        uncompressed_size,
        name_length,
        extra_length,
        comment_length,
        _disk_start,
        _internal_attrs,
        _external_attrs,
        local_header_offset,
    ) = _CENTRAL_HEADER_STRUCT.unpack_from(data, offset)

    if signature != CENTRAL_DIRECTORY_SIGNATURE:
        raise CentralDirectoryError(
            f"Invalid central directory entry at offset {offset}",
            offset=offset,
            source=source,
        )

    name_start = offset + CENTRAL_HEADER_SIZE
    name_end = name_start + name_length
    if name_end > len(data):
        raise CentralDirectoryError(
            f"Entry name runs past end of archive at offset {offset}",
            offset=offset,
            source=source,
        )

    encoding = "utf-8" if flags & _UTF8_NAME_FLAG else "cp437"
    try:
        name = data[name_start:name_end].decode(encoding)
    except UnicodeDecodeError as exc:
        raise CentralDirectoryError(
            f"Undecodable entry name at offset {offset}",
            offset=offset,
            source=source,
        ) from exc

    entry = ArchiveEntry(
        name=name,
        compression_method=method,
        compressed_size=compressed_size,
        uncompressed_size=uncompressed_size,
        local_header_offset=local_header_offset,
    )
    return entry, name_end + extra_length + comment_length


def load_archive(path: str | Path, *, max_size_bytes: int | None = None) -> Archive:
    """Read an archive from disk and index it.

    Args:
        path: Location of the archive file.
        max_size_bytes: Optional upper bound on the file size.

    Returns:
        Indexed archive labelled with the file name.

    Raises:
        ArchiveReadError: If the file does not exist or cannot be read.
        ArchiveTooLargeError: If the file exceeds ``max_size_bytes``.
    """
    file_path = Path(path)
    if not file_path.is_file():
        raise ArchiveReadError(f"Archive not found: {file_path}", source=str(file_path))

    size = file_path.stat().st_size
    if max_size_bytes is not None and size > max_size_bytes:
        raise ArchiveTooLargeError(size, max_size_bytes, source=str(file_path))

    try:
        data = file_path.read_bytes()
    except OSError as exc:
        raise ArchiveReadError(
            f"Unable to read archive: {exc}", source=str(file_path)
        ) from exc

    return open_archive(data, source=file_path.name)
