"""Tests for the WorkbookReader facade."""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from pathlib import Path

import pandas as pd
import pytest
from openpyxl import Workbook as OpenpyxlWorkbook

from sheet_records.config import Settings
from sheet_records.models import CellKind, CellValue
from sheet_records.services.value_coercion import to_datetime
from sheet_records.services.workbook_reader import SheetRecords, WorkbookReader
from sheet_records.utils.exceptions import (
    ArchiveFormatError,
    ArchiveTooLargeError,
    EntryNotFoundError,
    RelationshipMissingError,
    SheetNotFoundError,
)
from tests.fixtures import DEFLATE, ZipMember, build_archive, relationships_xml, workbook_xml


def _save_openpyxl_workbook(path: Path) -> Path:
    wb = OpenpyxlWorkbook()
    ws = wb.active
    ws.title = "Contacts"
    ws.append(["Email", "Status", "Signed Up", "Seats", "Verified"])
    ws.append(["a@x.com", "Active", datetime(2023, 1, 1), 3, True])
    ws.append(["b@x.com", "Inactive", datetime(2023, 1, 1, 18, 0), 1.5, False])
    ws.append([None, None, None, None, None])
    ws.append(["c@x.com", "Pending & Review", None, None, None])
    summary = wb.create_sheet("Summary")
    summary["A1"] = "Total"
    summary["A2"] = 3
    wb.save(path)
    return path


class TestWorkbookReaderWithOpenpyxl:
    """End-to-end decoding of workbooks written by openpyxl."""

    def test_sheet_names(self, tmp_path: Path) -> None:
        path = _save_openpyxl_workbook(tmp_path / "contacts.xlsx")
        assert WorkbookReader().get_sheet_names(path) == ["Contacts", "Summary"]

    def test_records(self, tmp_path: Path) -> None:
        path = _save_openpyxl_workbook(tmp_path / "contacts.xlsx")

        result = WorkbookReader().read_records(path, "Contacts")

        assert len(result) == 3
        assert result.columns == ["Email", "Status", "Signed Up", "Seats", "Verified"]
        first, second, third = result.records
        assert first["Email"] == CellValue.text("a@x.com")
        assert first["Status"] == CellValue.text("Active")
        assert first["Seats"] == CellValue.number(3)
        assert first["Verified"] == CellValue.boolean(True)
        assert second["Seats"] == CellValue.number(1.5)
        assert second["Verified"] == CellValue.boolean(False)
        assert third["Status"] == CellValue.text("Pending & Review")
        assert third["Signed Up"].is_empty

    def test_dates_read_as_serials(self, tmp_path: Path) -> None:
        """Date cells decode as numbers and reinterpret on request."""
        path = _save_openpyxl_workbook(tmp_path / "contacts.xlsx")

        first, second, _ = WorkbookReader().read_records(path, "Contacts").records

        assert first["Signed Up"].kind is CellKind.NUMBER
        assert to_datetime(first["Signed Up"]) == datetime(2023, 1, 1, tzinfo=UTC)
        assert to_datetime(second["Signed Up"]) == datetime(2023, 1, 1, 18, tzinfo=UTC)

    def test_second_sheet(self, tmp_path: Path) -> None:
        path = _save_openpyxl_workbook(tmp_path / "contacts.xlsx")
        result = WorkbookReader().read_records(path, "Summary")
        assert result.records == [{"Total": CellValue.number(3)}]


class TestWorkbookReader:
    """Tests for WorkbookReader on hand-built archives."""

    def test_load_bytes(self, contacts_workbook_bytes: bytes) -> None:
        workbook = WorkbookReader().load_bytes(contacts_workbook_bytes, source="mem")

        assert workbook.source == "mem"
        assert workbook.sheet_names == ["Contacts", "Notes"]
        assert len(workbook.read_sheet("Contacts")) == 3
        assert len(workbook.read_sheet("Notes")) == 0

    def test_unknown_sheet(self, contacts_workbook_path: Path) -> None:
        with pytest.raises(SheetNotFoundError) as exc_info:
            WorkbookReader().read_records(contacts_workbook_path, "Missing")
        assert exc_info.value.available_sheets == ["Contacts", "Notes"]

    def test_fallback_to_first_sheet(
        self, contacts_workbook_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.WARNING):
            result = WorkbookReader().read_records(
                contacts_workbook_path, "Missing", fallback_to_first=True
            )

        assert result.sheet_name == "Contacts"
        assert len(result) == 3
        assert "reading first sheet instead" in caplog.text

    def test_fallback_on_dangling_relationship(self) -> None:
        data = build_archive(
            [
                ZipMember("xl/workbook.xml", workbook_xml(["First", "Broken"]).encode()),
                ZipMember(
                    "xl/_rels/workbook.xml.rels",
                    relationships_xml(["worksheets/sheet1.xml"]).encode(),
                ),
                ZipMember(
                    "xl/worksheets/sheet1.xml",
                    b'<worksheet><sheetData><row r="1"><c r="A1" t="inlineStr">'
                    b"<is><t>H</t></is></c></row><row r=\"2\"><c r=\"A2\"><v>1</v>"
                    b"</c></row></sheetData></worksheet>",
                    DEFLATE,
                ),
            ]
        )
        workbook = WorkbookReader().load_bytes(data)

        with pytest.raises(RelationshipMissingError):
            workbook.read_sheet("Broken")
        result = workbook.read_sheet("Broken", fallback_to_first=True)
        assert result.sheet_name == "First"
        assert result.records == [{"H": CellValue.number(1)}]

    def test_fallback_on_missing_sheet_part(self) -> None:
        """A relationship pointing at an absent part falls back too."""
        data = build_archive(
            [
                ZipMember("xl/workbook.xml", workbook_xml(["Out", "Broken"]).encode()),
                ZipMember(
                    "xl/_rels/workbook.xml.rels",
                    relationships_xml(
                        ["worksheets/sheet1.xml", "worksheets/missing.xml"]
                    ).encode(),
                ),
                ZipMember(
                    "xl/worksheets/sheet1.xml",
                    b'<worksheet><sheetData><row r="1"><c r="A1" t="inlineStr">'
                    b'<is><t>Email</t></is></c></row><row r="2"><c r="A2" '
                    b't="inlineStr"><is><t>a@x.com</t></is></c></row>'
                    b"</sheetData></worksheet>",
                ),
            ]
        )
        workbook = WorkbookReader().load_bytes(data)

        with pytest.raises(EntryNotFoundError) as exc_info:
            workbook.read_sheet("Broken")
        assert exc_info.value.entry_name == "xl/worksheets/missing.xml"

        result = workbook.read_sheet("Broken", fallback_to_first=True)
        assert result.sheet_name == "Out"
        assert result.records == [{"Email": CellValue.text("a@x.com")}]

    def test_fallback_without_sheets(self) -> None:
        """A workbook declaring no sheets has nothing to fall back to."""
        data = build_archive(
            [
                ZipMember("xl/workbook.xml", workbook_xml([]).encode()),
                ZipMember("xl/_rels/workbook.xml.rels", relationships_xml([]).encode()),
            ]
        )
        workbook = WorkbookReader().load_bytes(data)

        with pytest.raises(SheetNotFoundError) as exc_info:
            workbook.read_sheet("Any", fallback_to_first=True)
        assert exc_info.value.available_sheets == []

    def test_not_a_workbook(self) -> None:
        with pytest.raises(ArchiveFormatError):
            WorkbookReader().load_bytes(b"plain text, not a zip archive at all")

    def test_size_limit_from_settings(
        self, tmp_path: Path, contacts_workbook_bytes: bytes
    ) -> None:
        path = tmp_path / "big.xlsx"
        path.write_bytes(contacts_workbook_bytes + b"\x00" * (1024 * 1024))
        config = Settings(_env_file=None, max_archive_size_mb=1)

        with pytest.raises(ArchiveTooLargeError):
            WorkbookReader(config).load(path)

    def test_custom_part_paths(self) -> None:
        data = build_archive(
            [
                ZipMember("wb/book.xml", workbook_xml(["S"]).encode()),
                ZipMember("wb/rels.xml", relationships_xml(["s.xml"]).encode()),
                ZipMember(
                    "wb/s.xml",
                    b'<worksheet><sheetData><row><c t="inlineStr"><is><t>K</t></is>'
                    b"</c></row><row><c><v>2</v></c></row></sheetData></worksheet>",
                ),
            ]
        )
        config = Settings(
            _env_file=None,
            workbook_part="wb/book.xml",
            workbook_relationships_part="wb/rels.xml",
            shared_strings_part="wb/strings.xml",
        )

        result = WorkbookReader(config).load_bytes(data).read_sheet("S")

        assert result.records == [{"K": CellValue.number(2)}]


class TestWorkbookReaderDates:
    """Tests for date handling driven by settings."""

    def test_read_date_uses_year_window(self) -> None:
        narrow = Settings(_env_file=None, date_min_year=2024, date_max_year=2030)
        value = CellValue.number(44927)

        assert WorkbookReader(Settings(_env_file=None)).read_date(value) == datetime(
            2023, 1, 1, tzinfo=UTC
        )
        assert WorkbookReader(narrow).read_date(value) is None

    def test_format_date_uses_year_window(self) -> None:
        narrow = Settings(_env_file=None, date_min_year=2024, date_max_year=2030)
        value = CellValue.number(44927)

        reader = WorkbookReader(Settings(_env_file=None))
        assert reader.format_date(value, "UTC") == "01/01/2023 00:00:00"
        assert WorkbookReader(narrow).format_date(value, "UTC") == "44927"

    def test_timezone_resolver_from_settings(self) -> None:
        """The resolver takes its zones, cap and years from settings."""
        config = Settings(
            _env_file=None,
            timezone_candidates="UTC,America/Denver",
            timezone_sample_limit=7,
            date_min_year=2000,
            date_max_year=2050,
        )

        resolver = WorkbookReader(config).timezone_resolver(
            ["Start"], "Customer Email", "Email"
        )

        assert resolver.candidate_zones == ["UTC", "America/Denver"]
        assert resolver.sample_limit == 7
        assert (resolver.min_year, resolver.max_year) == (2000, 2050)
        assert resolver.date_fields == ["Start"]
        assert resolver.rendered_key == "Email"

    def test_configured_resolver_infers_zone(self) -> None:
        config = Settings(_env_file=None, timezone_candidates="UTC,America/Denver")
        reader = WorkbookReader(config)
        model = [{"Key": CellValue.text("a"), "Start": CellValue.number(44927.5)}]
        rendered = [
            {
                "Key": CellValue.text("a"),
                "Start": CellValue.text(
                    reader.format_date(CellValue.number(44927.5), "America/Denver")
                ),
            }
        ]

        assert reader.timezone_resolver(["Start"], "Key").infer(model, rendered) == (
            "America/Denver"
        )


class TestSheetRecords:
    """Tests for SheetRecords helpers."""

    def test_to_dataframe(self) -> None:
        result = SheetRecords(
            sheet_name="Contacts",
            records=[
                {"Email": CellValue.text("a@x.com"), "Seats": CellValue.number(3)},
                {"Email": CellValue.text("b@x.com"), "Seats": CellValue.empty()},
            ],
        )

        frame = result.to_dataframe()

        assert isinstance(frame, pd.DataFrame)
        assert list(frame.columns) == ["Email", "Seats"]
        assert frame["Email"].tolist() == ["a@x.com", "b@x.com"]
        assert frame["Seats"].tolist() == [3, ""]

    def test_empty(self) -> None:
        result = SheetRecords(sheet_name="Empty")
        assert result.columns == []
        assert result.to_dataframe().empty
