import io

import pytest
from openpyxl import Workbook

from app.models.records import LinkedValue
from app.services.ingestion_service import IngestionError, IngestionService


def workbook_bytes(build) -> bytes:
    wb = Workbook()
    build(wb)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def spaces_sheet(wb):
    ws = wb.active
    ws.title = "Spaces"
    ws.append(["Company_GSID", "Video_URL", "Space_Notes", "Portal", "Success_Plan_GSID"])
    ws.append(["C-1", "Watch intro", "Visit the portal", '=HYPERLINK("https://portal.example.com","portal")', 42])
    ws["B2"].hyperlink = "https://v.example.com/1"
    ws.append([None, None, None, None, None])
    ws.append(["C-2", "https://v.example.com/2", None, None, None])
    other = wb.create_sheet("Other")
    other.append(["Company_GSID"])
    other.append(["C-9"])


def test_rows_are_read_with_hyperlinks_and_notes_html() -> None:
    workbook = IngestionService().read_workbook(workbook_bytes(spaces_sheet))

    assert workbook.worksheet == "Spaces"
    assert workbook.sheet_names == ["Spaces", "Other"]
    assert len(workbook.records) == 2
    assert workbook.hyperlink_count == 3

    first, second = workbook.records
    assert first.cells["Video_URL"] == LinkedValue(text="Watch intro", link="https://v.example.com/1")
    assert first.url("Video_URL") == "https://v.example.com/1"
    assert first.cells["Portal"] == LinkedValue(text="portal", link="https://portal.example.com")
    assert first.text("Success_Plan_GSID") == "42"

    notes_html = first.text("Space_Notes_HTML")
    assert "&lt;a href=&quot;https://portal.example.com&quot;" in notes_html
    assert "Visit the " in notes_html

    assert second.text("Company_GSID") == "C-2"
    assert second.url("Video_URL") == "https://v.example.com/2"
    assert second.text("Space_Notes_HTML") is None


def test_requested_worksheet_is_used() -> None:
    workbook = IngestionService().read_workbook(workbook_bytes(spaces_sheet), worksheet="Other")

    assert workbook.worksheet == "Other"
    assert [r.text("Company_GSID") for r in workbook.records] == ["C-9"]


def test_unknown_worksheet_falls_back_to_the_first() -> None:
    workbook = IngestionService().read_workbook(workbook_bytes(spaces_sheet), worksheet="Missing")

    assert workbook.worksheet == "Spaces"


def test_sheet_without_data_rows_is_rejected() -> None:
    def header_only(wb):
        wb.active.append(["Company_GSID", "Video_URL"])

    with pytest.raises(IngestionError, match="empty"):
        IngestionService().read_workbook(workbook_bytes(header_only))


def test_garbage_upload_is_rejected() -> None:
    with pytest.raises(IngestionError, match="Could not read workbook"):
        IngestionService().read_workbook(b"not a workbook")


def test_json_rows_get_notes_html_from_their_links() -> None:
    records = IngestionService().read_rows([
        {
            "Company_GSID": "C-1",
            "Space_Notes": "Open the portal",
            "Portal": {"text": "portal", "link": "https://portal.example.com", "hasHyperlink": True},
        },
        {"Company_GSID": "C-2", "Space_Notes": "ignored", "Space_Notes_HTML": "prebuilt"},
    ])

    assert "https://portal.example.com" in records[0].text("Space_Notes_HTML")
    assert records[1].text("Space_Notes_HTML") == "prebuilt"
