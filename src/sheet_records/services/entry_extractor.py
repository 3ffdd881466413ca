"""Extraction of individual archive members.

Every part read goes through ``extract_entry``: it validates the local file
header recorded in the central directory, slices exactly the declared
compressed payload and inflates it when needed.
"""

from __future__ import annotations

import struct
import zlib

from sheet_records.models import CompressionMethod
from sheet_records.services.archive_index import Archive
from sheet_records.utils.exceptions import (
    DecompressionError,
    EntryNotFoundError,
    LocalHeaderError,
    PartDecodeError,
    UnsupportedCompressionError,
)
from sheet_records.utils.logging import get_logger

logger = get_logger(__name__)

LOCAL_HEADER_SIGNATURE = 0x04034B50

# signature, needed, flags, method, time, date, crc, compressed, uncompressed,
# name len, extra len
_LOCAL_HEADER_STRUCT = struct.Struct("<IHHHHHIIIHH")
LOCAL_HEADER_SIZE = _LOCAL_HEADER_STRUCT.size

_UTF8_BOM = "\ufeff"


def extract_entry(archive: Archive, name: str) -> bytes:
    """Return the uncompressed bytes of one archive member.

    Args:
        archive: Indexed archive.
        name: Entry name as recorded in the central directory.

    Returns:
        The member's content.

    Raises:
        EntryNotFoundError: If ``name`` is not in the archive.
        LocalHeaderError: If the local header is missing, corrupt or truncated.
        UnsupportedCompressionError: If the method is not stored or deflate.
        DecompressionError: If the deflate stream is malformed.
    """
    entry = archive.get(name)
    if entry is None:
        raise EntryNotFoundError(name, source=archive.source)

    data = archive.data
    header_offset = entry.local_header_offset
    if header_offset + LOCAL_HEADER_SIZE > len(data):
        raise LocalHeaderError(
            name,
            header_offset,
            message=f"Local file header for {name} runs past end of archive",
            source=archive.source,
        )

    fields = _LOCAL_HEADER_STRUCT.unpack_from(data, header_offset)
    signature, name_length, extra_length = fields[0], fields[9], fields[10]
    if signature != LOCAL_HEADER_SIGNATURE:
        raise LocalHeaderError(name, header_offset, source=archive.source)

    method = entry.compression
    if method is None:
        raise UnsupportedCompressionError(
            name, entry.compression_method, source=archive.source
        )

    payload_start = header_offset + LOCAL_HEADER_SIZE + name_length + extra_length
    payload_end = payload_start + entry.compressed_size
    if payload_end > len(data):
        raise LocalHeaderError(
            name,
            header_offset,
            message=f"Payload for {name} runs past end of archive",
            source=archive.source,
        )
    payload = data[payload_start:payload_end]

    if method is CompressionMethod.STORED:
        return payload

    content = _inflate(payload, name, archive.source)
    if len(content) != entry.uncompressed_size:
        raise DecompressionError(
            name,
            f"Inflated {len(content)} bytes for {name}, "
            f"expected {entry.uncompressed_size}",
            source=archive.source,
        )
    logger.debug(
        "Inflated entry",
        entry=name,
        compressed=entry.compressed_size,
        uncompressed=len(content),
    )
    return content


def _inflate(payload: bytes, name: str, source: str | None) -> bytes:
    decompressor = zlib.decompressobj(-zlib.MAX_WBITS)
    try:
        content = decompressor.decompress(payload) + decompressor.flush()
    except zlib.error as exc:
        raise DecompressionError(
            name, f"Malformed deflate stream for {name}: {exc}", source=source
        ) from exc
    if not decompressor.eof:
        raise DecompressionError(
            name, f"Truncated deflate stream for {name}", source=source
        )
    return content


def extract_text(archive: Archive, name: str, encoding: str = "utf-8") -> str:
    """Extract a member and decode it as text.

    Args:
        archive: Indexed archive.
        name: Entry name.
        encoding: Text encoding of the part.

    Returns:
        Decoded text with any leading byte-order mark removed.

    Raises:
        PartDecodeError: If the bytes are not valid in ``encoding``.
    """
    raw = extract_entry(archive, name)
    try:
        text = raw.decode(encoding)
    except UnicodeDecodeError as exc:
        raise PartDecodeError(name, encoding) from exc
    return text.removeprefix(_UTF8_BOM)
