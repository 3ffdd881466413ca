"""Workbook manifest: resolving sheet names to sheet part paths.

A sheet's display name is declared in the workbook part together with a
relationship id; the workbook's relationships part maps that id to the
sheet part's path, relative to the workbook's own directory.
"""

from __future__ import annotations

import posixpath
from dataclasses import dataclass, field

from sheet_records.services.archive_index import Archive
from sheet_records.services.entry_extractor import extract_text
from sheet_records.services.xml_scanner import TagKind, XmlScanner
from sheet_records.utils.exceptions import (
    RelationshipMissingError,
    SheetNotFoundError,
)
from sheet_records.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_WORKBOOK_PART = "xl/workbook.xml"
DEFAULT_RELATIONSHIPS_PART = "xl/_rels/workbook.xml.rels"


@dataclass(frozen=True)
class WorkbookManifest:
    """Sheet declarations and relationship targets of one workbook."""

    sheets: dict[str, str] = field(default_factory=dict)
    """Sheet display name -> relationship id, in workbook order."""

    relationships: dict[str, str] = field(default_factory=dict)
    """Relationship id -> target path as written in the relationships part."""

    parts_root: str = "xl"
    """Directory of the workbook part; relative targets resolve against it."""

    @property
    def sheet_names(self) -> list[str]:
        return list(self.sheets)

    def relationship_id(self, sheet_name: str) -> str:
        """Return the relationship id declared for ``sheet_name``.

        Raises:
            SheetNotFoundError: If the workbook does not declare the sheet.
        """
        try:
            return self.sheets[sheet_name]
        except KeyError:
            raise SheetNotFoundError(sheet_name, self.sheet_names) from None

    def sheet_part_path(self, sheet_name: str) -> str:
        """Resolve a sheet name to the archive path of its part.

        Raises:
            SheetNotFoundError: If the workbook does not declare the sheet.
            RelationshipMissingError: If the sheet's relationship has no target.
        """
        relationship_id = self.relationship_id(sheet_name)
        target = self.relationships.get(relationship_id)
        if not target:
            raise RelationshipMissingError(sheet_name, relationship_id)
        return resolve_part_path(self.parts_root, target)


def resolve_part_path(parts_root: str, target: str) -> str:
    """Turn a relationship target into an archive entry name.

    Targets beginning with ``/`` are relative to the package root; anything
    else is relative to ``parts_root``.

    >>> resolve_part_path("xl", "worksheets/sheet1.xml")
    'xl/worksheets/sheet1.xml'
    >>> resolve_part_path("xl", "/xl/worksheets/sheet1.xml")
    'xl/worksheets/sheet1.xml'
    """
    if target.startswith("/"):
        return posixpath.normpath(target).lstrip("/")
    joined = posixpath.join(parts_root, target) if parts_root else target
    return posixpath.normpath(joined)


def parse_workbook_sheets(xml: str) -> dict[str, str]:
    """Extract ``display name -> relationship id`` from a workbook part."""
    sheets: dict[str, str] = {}
    scanner = XmlScanner(xml)
    while (tag := scanner.next_tag("sheet")) is not None:
        if tag.kind is TagKind.END:
            continue
        name = tag.attribute("name")
        relationship_id = tag.attribute("r:id")
        if name is None or relationship_id is None:
            logger.debug("Skipping sheet declaration", attributes=tag.attributes)
            continue
        sheets[name] = relationship_id
    return sheets


def parse_relationships(xml: str) -> dict[str, str]:
    """Extract ``relationship id -> target`` from a relationships part."""
    relationships: dict[str, str] = {}
    scanner = XmlScanner(xml)
    while (tag := scanner.next_tag("Relationship")) is not None:
        if tag.kind is TagKind.END:
            continue
        relationship_id = tag.attribute("Id")
        target = tag.attribute("Target")
        if relationship_id is None or target is None:
            continue
        relationships[relationship_id] = target
    return relationships


def parse_manifest(
    archive: Archive,
    *,
    workbook_part: str = DEFAULT_WORKBOOK_PART,
    relationships_part: str = DEFAULT_RELATIONSHIPS_PART,
) -> WorkbookManifest:
    """Decode the workbook and relationships parts of an archive.

    Args:
        archive: Indexed workbook archive.
        workbook_part: Archive path of the workbook part.
        relationships_part: Archive path of the workbook relationships part.

    Returns:
        The workbook's manifest.

    Raises:
        EntryNotFoundError: If either part is missing.
    """
    sheets = parse_workbook_sheets(extract_text(archive, workbook_part))
    relationships = parse_relationships(extract_text(archive, relationships_part))
    logger.debug(
        "Parsed workbook manifest",
        sheets=len(sheets),
        relationships=len(relationships),
    )
    return WorkbookManifest(
        sheets=sheets,
        relationships=relationships,
        parts_root=posixpath.dirname(workbook_part),
    )
