import io
import logging
import re
from dataclasses import dataclass
import pandas as pd
from openpyxl import load_workbook
from app.config import config
from app.jobs.content import process_space_notes
from app.models.records import LinkedValue, PlainValue, RowRecord

logger = logging.getLogger(__name__)

HYPERLINK_FORMULA = re.compile(r'HYPERLINK\s*\(\s*"([^"]+)"(?:\s*[,;]\s*"([^"]*)")?', re.IGNORECASE)


class IngestionError(Exception):
    pass


@dataclass
class Workbook:
    records: list[RowRecord]
    worksheet: str
    sheet_names: list[str]
    hyperlink_count: int


def _cell_link(cell):
    """
    Returns (url, display_text) for a hyperlink-bearing cell, else (None, None).
    Checks the explicit hyperlink first, then bare URLs, then HYPERLINK formulas.
    """
    if cell.hyperlink is not None and cell.hyperlink.target:
        return cell.hyperlink.target, None
    value = cell.value
    if isinstance(value, str):
        if value.startswith(("http://", "https://")):
            return value, None
        match = HYPERLINK_FORMULA.search(value) if value.startswith("=") else None
        if match:
            return match.group(1), match.group(2) or match.group(1)
    return None, None


def _plain(value):
    if value is None:
        return None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    if isinstance(value, pd.Timestamp):
        return value.isoformat()
    return value


class IngestionService:
    def read_workbook(self, content: bytes, worksheet: str = None) -> Workbook:
        """
        Loads the sheet into row records. Header row is the first row;
        fully empty rows are skipped.
        """
        try:
            wb = load_workbook(io.BytesIO(content), data_only=False)
        except Exception as e:
            raise IngestionError(f"Could not read workbook: {e}") from e

        if not wb.sheetnames:
            raise IngestionError("No worksheets found in the Excel file")

        sheet_name = worksheet if worksheet in wb.sheetnames else wb.sheetnames[0]
        ws = wb[sheet_name]

        df = pd.read_excel(io.BytesIO(content), sheet_name=sheet_name, header=0, dtype=object, engine="openpyxl")
        df = df.dropna(how="all")
        if df.empty:
            raise IngestionError("The selected worksheet appears to be empty or contains no data rows")

        logger.info(f"Loaded worksheet '{sheet_name}' into memory. Shape: {df.shape}")

        headers = [str(h) for h in df.columns]
        records = []
        hyperlink_count = 0

        for index, row in df.iterrows():
            sheet_row = index + 2
            cells = {}
            row_links = []

            for col_index, header in enumerate(headers):
                value = _plain(row.iloc[col_index])
                url, formula_text = _cell_link(ws.cell(row=sheet_row, column=col_index + 1))

                if url:
                    text = formula_text if formula_text is not None else value
                    if text is None or (isinstance(text, str) and text.startswith("=")):
                        text = url
                    cells[header] = LinkedValue(text=text, link=url)
                    row_links.append({"text": text, "url": url, "column": header})
                    hyperlink_count += 1
                else:
                    cells[header] = PlainValue(value)

            records.append(with_notes_html(RowRecord(cells), row_links))

        logger.info(f"Extracted {len(records)} records with {hyperlink_count} hyperlinks from '{sheet_name}'")
        return Workbook(records=records, worksheet=sheet_name, sheet_names=list(wb.sheetnames), hyperlink_count=hyperlink_count)

    def read_rows(self, rows: list[dict]) -> list[RowRecord]:
        """Builds records from already-parsed rows in their JSON wire form."""
        records = []
        for raw in rows:
            record = RowRecord.from_raw(raw)
            links = [
                {"text": cell.text, "url": cell.link, "column": column}
                for column, cell in record.cells.items()
                if isinstance(cell, LinkedValue)
            ]
            records.append(with_notes_html(record, links))
        return records


def with_notes_html(record: RowRecord, hyperlinks: list[dict]) -> RowRecord:
    """Adds the derived <notes column>_HTML field unless it is already present."""
    html_column = f"{config.NOTES_COLUMN}_HTML"
    notes_text = record.text(config.NOTES_COLUMN)
    if not notes_text or record.text(html_column):
        return record
    cells = dict(record.cells)
    cells[html_column] = PlainValue(process_space_notes(notes_text, hyperlinks))
    return RowRecord(cells)


ingestion_service = IngestionService()
