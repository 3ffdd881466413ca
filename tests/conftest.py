from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from sheet_records.config import Settings
from sheet_records.services.archive_index import Archive, open_archive
from sheet_records.utils.logging import clear_context
from tests.fixtures import build_workbook

CONTACT_ROWS = [
    ["Email", "Status", "Joined"],
    ["a@x.com", "Active", 44927],
    ["b@x.com", "Inactive", 44928.5],
    [None, None, None],
    ["c@x.com", None, True],
]


@pytest.fixture(autouse=True)
def _reset_log_context() -> Iterator[None]:
    clear_context()
    yield
    clear_context()


@pytest.fixture
def contacts_workbook_bytes() -> bytes:
    """Workbook with a Contacts sheet and an empty Notes sheet."""
    return build_workbook({"Contacts": CONTACT_ROWS, "Notes": [["Note"]]})


@pytest.fixture
def contacts_archive(contacts_workbook_bytes: bytes) -> Archive:
    return open_archive(contacts_workbook_bytes, source="contacts.xlsx")


@pytest.fixture
def contacts_workbook_path(tmp_path: Path, contacts_workbook_bytes: bytes) -> Path:
    path = tmp_path / "contacts.xlsx"
    path.write_bytes(contacts_workbook_bytes)
    return path


@pytest.fixture
def default_settings() -> Settings:
    """Settings built from defaults only, ignoring the environment."""
    return Settings(_env_file=None)
