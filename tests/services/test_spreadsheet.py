from __future__ import annotations

import io
import uuid
from types import SimpleNamespace
from unittest.mock import MagicMock, patch

import pandas as pd
import pytest
import requests
from django.db import IntegrityError

from src.candidates.errors import InvalidSpreadsheet
from src.candidates.services.ingestion import IngestionMetadata, IngestionResult
from src.candidates.services.spreadsheet import (
    SpreadsheetRow,
    map_headers,
    normalize_header,
    parse_spreadsheet,
    process_row,
    split_skills,
    to_direct_download_url,
)

CANDIDATE_PATH = "src.candidates.services.spreadsheet.Candidate"

CSV = (
    "Full Name,Email Address,Mobile,Years of Experience,Key Skills,Resume Link,Notes\n"
    "Jane Doe,Jane@Example.com,555-123-4567,5,Python; Django,"
    "https://drive.google.com/file/d/FILE1/view,met at meetup\n"
    ",,,,,,\n"
    "Sam Roe,,,n/a,,,\n"
)


def _response(content_type="application/pdf", ok=True, content=b"%PDF-1.4"):
    return SimpleNamespace(
        ok=ok,
        status_code=200 if ok else 404,
        headers={"Content-Type": content_type},
        content=content,
    )


@pytest.fixture
def mock_candidate():
    with patch(CANDIDATE_PATH) as mock_candidate:
        mock_candidate.objects.create.side_effect = lambda **fields: SimpleNamespace(
            id=uuid.uuid4(), **fields
        )
        yield mock_candidate


def test_normalize_header():
    assert normalize_header("  E-Mail_ID ") == "e mail id"
    assert normalize_header("*Resume   URL#") == "resume url"


def test_map_headers_ignores_unknown_columns():
    assert map_headers(["Candidate Name", "Favourite colour", "Phone Number"]) == {
        0: "name",
        2: "phone",
    }


def test_split_skills():
    assert split_skills("Python, Django;SQL | Go") == ["Python", "Django", "SQL", "Go"]
    assert split_skills(None) == []


def test_parse_csv():
    rows = parse_spreadsheet(CSV.encode(), "candidates.csv")

    assert rows == [
        SpreadsheetRow(
            name="Jane Doe",
            email="Jane@Example.com",
            phone="555-123-4567",
            experience=5,
            skills="Python; Django",
            resume_url="https://drive.google.com/file/d/FILE1/view",
        ),
        SpreadsheetRow(name="Sam Roe", experience=0),
    ]


@pytest.mark.parametrize(
    ("cell", "expected"),
    [("5 years", 5), ("3.9 yrs", 3), ("-2", 0), ("inf", 0), ("about 4", 0)],
)
def test_parse_csv_reads_leading_experience_number(cell, expected):
    data = f"Name,Email,Experience\nJane,jane@example.com,{cell}\n".encode()

    rows = parse_spreadsheet(data, "sheet.csv")

    assert rows == [SpreadsheetRow(name="Jane", email="jane@example.com", experience=expected)]


def test_parse_xlsx():
    buffer = io.BytesIO()
    pd.DataFrame(
        [["Ana Lee", "ana@example.com", 7, "Pune"]],
        columns=["Name", "Email", "Experience", "City"],
    ).to_excel(buffer, index=False)

    rows = parse_spreadsheet(buffer.getvalue(), "candidates.xlsx")

    assert rows == [
        SpreadsheetRow(name="Ana Lee", email="ana@example.com", experience=7, location="Pune")
    ]


@pytest.mark.parametrize(
    ("data", "file_name", "message"),
    [
        (b"Name,Email\n", "empty.csv", "Sheet is empty"),
        (b"Foo,Bar\n1,2\n", "nope.csv", "Could not find 'Name' or 'Email' column"),
        (b"definitely not a workbook", "broken.xlsx", "Could not read spreadsheet"),
    ],
)
def test_parse_errors(data, file_name, message):
    with pytest.raises(InvalidSpreadsheet) as exc_info:
        parse_spreadsheet(data, file_name)

    assert message in str(exc_info.value)


@pytest.mark.parametrize(
    ("url", "expected"),
    [
        (
            "https://drive.google.com/file/d/FILE1/view?usp=sharing",
            "https://drive.google.com/uc?export=download&id=FILE1&confirm=t",
        ),
        (
            "https://drive.google.com/open?id=XYZ",
            "https://drive.google.com/uc?export=download&id=XYZ&confirm=t",
        ),
        ("https://files.example.com/cv.pdf", "https://files.example.com/cv.pdf"),
    ],
)
def test_to_direct_download_url(url, expected):
    assert to_direct_download_url(url) == expected


def test_row_with_resume_goes_through_ingestion(mock_candidate):
    row = SpreadsheetRow(
        name="Jane Doe",
        email="Jane@Example.com",
        experience=5,
        skills="Python; Django",
        resume_url="https://drive.google.com/file/d/FILE1/view",
    )
    session = MagicMock()
    session.get.return_value = _response()
    service = MagicMock()
    service.ingest.return_value = IngestionResult(
        success=True,
        message="Successfully added Jane Doe",
        candidate_id="c1",
        candidate_name="Jane Doe",
    )

    result = process_row(
        row, IngestionMetadata(position="Backend"), service=service, session=session
    )

    assert result.success is True
    assert result.message == "Imported with resume"
    assert result.candidate_id == "c1"
    assert session.get.call_args.args[0] == (
        "https://drive.google.com/uc?export=download&id=FILE1&confirm=t"
    )
    data, file_name, content_type = service.ingest.call_args.args
    metadata = service.ingest.call_args.kwargs["metadata"]
    assert file_name == "Jane_Doe.pdf"
    assert content_type == "application/pdf"
    assert metadata.source == "Spreadsheet Import"
    assert metadata.email == "jane@example.com"
    assert metadata.skills == ["Python", "Django"]
    assert metadata.experience == 5
    assert metadata.position == "Backend"
    mock_candidate.objects.create.assert_not_called()


@pytest.mark.parametrize(
    "get_behaviour",
    [
        {"return_value": _response(content_type="text/html; charset=utf-8")},
        {"return_value": _response(ok=False)},
        {"side_effect": requests.Timeout("timed out")},
    ],
)
def test_unusable_resume_link_falls_back_to_direct_insert(mock_candidate, get_behaviour):
    row = SpreadsheetRow(name="Jane Doe", email="jane@example.com", resume_url="https://x.test/cv")
    session = MagicMock()
    session.get.configure_mock(**get_behaviour)
    service = MagicMock()

    result = process_row(row, service=service, session=session)

    assert result.success is True
    assert result.message == "Imported directly"
    service.ingest.assert_not_called()


def test_failed_resume_processing_falls_back_to_direct_insert(mock_candidate):
    row = SpreadsheetRow(name="Jane Doe", email="jane@example.com", resume_url="https://x.test/cv")
    session = MagicMock()
    session.get.return_value = _response()
    service = MagicMock()
    service.ingest.return_value = IngestionResult(success=False, message="Skipped")

    result = process_row(row, service=service, session=session)

    assert result.message == "Imported directly"


def test_direct_insert_maps_cells(mock_candidate):
    row = SpreadsheetRow(name="Sam Roe", email="Sam@Example.com", skills="Go|Rust")

    result = process_row(row, IngestionMetadata(position="Platform", job_opening="JO-7"))

    assert result.success is True
    assert result.candidate_name == "Sam Roe"
    fields = mock_candidate.objects.create.call_args.kwargs
    assert fields["email"] == "sam@example.com"
    assert fields["skills"] == ["Go", "Rust"]
    assert fields["role"] == "Platform"
    assert fields["experience"] == 0
    assert fields["source"] == "Spreadsheet Import"
    assert fields["job_opening"] == "JO-7"


def test_direct_insert_duplicate(mock_candidate):
    mock_candidate.objects.create.side_effect = IntegrityError("duplicate key")

    result = process_row(SpreadsheetRow(name="Sam Roe", email="sam@example.com"))

    assert result.success is False
    assert result.message == "Candidate with email sam@example.com already exists"
