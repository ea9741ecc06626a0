from __future__ import annotations

from dataclasses import asdict, dataclass, field, is_dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional, Sequence

from core.enums import LookupStatus, SheetColumn

HANDLE_MARKER = "@"


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _serialize(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    if is_dataclass(value):
        return {k: _serialize(v) for k, v in asdict(value).items()}
    if isinstance(value, (list, tuple)):
        return [_serialize(v) for v in value]
    if isinstance(value, dict):
        return {k: _serialize(v) for k, v in value.items()}
    return value


def raw_cell(row: Sequence[Any], index: int) -> str:
    """Cell text exactly as stored, empty when the cell is missing."""
    if index >= len(row):
        return ""
    value = row[index]
    if value is None:
        return ""
    return str(value)


def _cell(row: Sequence[Any], index: int) -> str:
    return raw_cell(row, index).strip()


@dataclass(slots=True)
class PaymentRecord:
    row_number: int
    identifier: str
    date: str
    handle: str
    amount: str
    raw: list[Any] = field(default_factory=list)

    @classmethod
    def from_row(cls, row: Sequence[Any], row_number: int) -> "PaymentRecord":
        return cls(
            row_number=row_number,
            identifier=_cell(row, SheetColumn.IDENTIFIER),
            date=_cell(row, SheetColumn.DATE),
            handle=_cell(row, SheetColumn.HANDLE),
            amount=_cell(row, SheetColumn.AMOUNT),
            raw=list(row),
        )

    @property
    def marked_handle(self) -> str | None:
        """Handle without the marker, or None when the cell is not a chat handle."""
        if not self.handle.startswith(HANDLE_MARKER):
            return None
        return self.handle[len(HANDLE_MARKER):]

    def handle_matches(self, requester_handle: str | None) -> bool:
        expected = self.marked_handle
        if expected is None:
            return True
        received = (requester_handle or "").strip()
        if received.startswith(HANDLE_MARKER):
            received = received[len(HANDLE_MARKER):]
        if not received:
            return False
        return expected.lower() == received.lower()

    @property
    def has_amount(self) -> bool:
        return self.amount != ""

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass(slots=True)
class LookupResult:
    status: LookupStatus
    record: Optional[PaymentRecord] = None
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return _serialize(self)


@dataclass(slots=True)
class InboundMessage:
    update_id: int | None
    chat_id: int | str
    user_id: str
    handle: str | None
    text: str
    is_start_command: bool = False
