from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Union


@dataclass(frozen=True)
class PlainValue:
    value: Any = None


@dataclass(frozen=True)
class LinkedValue:
    text: Any
    link: str


CellValue = Union[PlainValue, LinkedValue]


def to_cell(raw: Any) -> CellValue:
    """
    Builds a cell from its wire form: either a scalar or
    {"text": ..., "link": ..., "hasHyperlink": true}.
    """
    if isinstance(raw, (PlainValue, LinkedValue)):
        return raw
    if isinstance(raw, dict) and raw.get("hasHyperlink") and raw.get("link"):
        return LinkedValue(text=raw.get("text"), link=raw["link"])
    return PlainValue(raw)


def cell_to_wire(cell: CellValue) -> Any:
    if isinstance(cell, LinkedValue):
        return {"text": cell.text, "link": cell.link, "hasHyperlink": True}
    return cell.value


def display_text(cell: Optional[CellValue]) -> Any:
    """Unwraps a cell to the value shown in the sheet."""
    if cell is None:
        return None
    if isinstance(cell, LinkedValue):
        return cell.text
    return cell.value


def link_or_text(cell: Optional[CellValue]) -> Any:
    """Unwraps a URL-typed cell, preferring the hyperlink target."""
    if isinstance(cell, LinkedValue):
        return cell.link
    return display_text(cell)


@dataclass(frozen=True)
class RowRecord:
    cells: dict[str, CellValue]

    @classmethod
    def from_raw(cls, raw: dict[str, Any]) -> "RowRecord":
        return cls(cells={key: to_cell(value) for key, value in raw.items()})

    def text(self, column: str) -> Optional[str]:
        return _clean(display_text(self.cells.get(column)))

    def url(self, column: str) -> Optional[str]:
        return _clean(link_or_text(self.cells.get(column)))

    def to_wire(self) -> dict[str, Any]:
        return {key: cell_to_wire(cell) for key, cell in self.cells.items()}


def _clean(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    text = str(value).strip()
    return text or None


class RecordStatus(str, Enum):
    SUCCESS = "Success"
    PARTIAL = "Partial"
    FAILED = "Failed"


_SEVERITY = {RecordStatus.SUCCESS: 0, RecordStatus.PARTIAL: 1, RecordStatus.FAILED: 2}


@dataclass
class RecordResult:
    company_id: Optional[str]
    record_index: int
    video_url: Optional[str] = None
    invite_email: Optional[str] = None
    status: RecordStatus = RecordStatus.SUCCESS
    messages: list[str] = field(default_factory=list)
    error: Optional[str] = None

    def add(self, message: str):
        self.messages.append(message)

    def downgrade(self, status: RecordStatus, message: Optional[str] = None):
        """Moves towards a more severe status, never back."""
        if _SEVERITY[status] > _SEVERITY[self.status]:
            self.status = status
        if message:
            self.messages.append(message)

    def fail(self, error: str, message: Optional[str] = None):
        self.error = error
        self.downgrade(RecordStatus.FAILED, message or f"Error: {error}")

    def to_wire(self) -> dict[str, Any]:
        data = {
            "Company_GSID": self.company_id,
            "Video_URL": self.video_url,
            "Invite_Email": self.invite_email,
            "status": self.status.value,
            "messages": list(self.messages),
            "recordIndex": self.record_index,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


class RecordProcessingError(Exception):
    """Raised when a record cannot be processed; carries the partial result."""

    def __init__(self, message: str, result: RecordResult):
        super().__init__(message)
        self.result = result
