from __future__ import annotations

import re
from typing import Any, Callable, Sequence

import httplib2
from google.auth.exceptions import GoogleAuthError
from googleapiclient.errors import HttpError

from core.enums import LookupStatus, SheetColumn
from core.errors import ConfigurationError, RecordLookupError, SheetsAuthError
from core.models import LookupResult, PaymentRecord, raw_cell

DEFAULT_CELL_RANGE = "A2:F"
FIRST_DATA_ROW = 2
_PLAIN_SHEET_NAME_RE = re.compile(r"^[A-Za-z0-9_]+$")


def build_range_name(sheet_name: str, cell_range: str = DEFAULT_CELL_RANGE) -> str:
    name = (sheet_name or "").strip()
    if not name:
        return cell_range
    if _PLAIN_SHEET_NAME_RE.match(name):
        return f"{name}!{cell_range}"
    escaped = name.replace("'", "''")
    return f"'{escaped}'!{cell_range}"


def find_first_match(rows: Sequence[Sequence[Any]], date: str, identifier: str) -> PaymentRecord | None:
    """Return the first row whose identifier matches case-insensitively and whose date matches exactly.

    Key cells are compared as stored; surrounding whitespace in the sheet is not ignored.
    """
    wanted_id = (identifier or "").strip().lower()
    wanted_date = date or ""
    for offset, row in enumerate(rows):
        if not isinstance(row, (list, tuple)) or len(row) < SheetColumn.REQUIRED_WIDTH:
            continue
        row_id = raw_cell(row, SheetColumn.IDENTIFIER)
        if not row_id:
            continue
        if row_id.lower() == wanted_id and raw_cell(row, SheetColumn.DATE) == wanted_date:
            return PaymentRecord.from_row(row, row_number=FIRST_DATA_ROW + offset)
    return None


class RecordLookup:
    def __init__(
        self,
        spreadsheet_id: str | None,
        sheet_name: str,
        client_provider: Callable[[], Any],
        cell_range: str = DEFAULT_CELL_RANGE,
    ) -> None:
        self.spreadsheet_id = (spreadsheet_id or "").strip()
        self.range_name = build_range_name(sheet_name, cell_range or DEFAULT_CELL_RANGE)
        self._client_provider = client_provider

    def find(self, date: str, identifier: str) -> PaymentRecord | None:
        rows = self._fetch_rows()
        if not rows:
            print(f"sheet-empty range={self.range_name}")
            return None
        return find_first_match(rows, date, identifier)

    def fetch_record(self, date: str, identifier: str) -> PaymentRecord | None:
        try:
            return self.find(date, identifier)
        except (ConfigurationError, SheetsAuthError, RecordLookupError) as exc:
            print(f"record-lookup-failed date={date} identifier={identifier} kind={type(exc).__name__} error={exc}")
            return None

    def lookup(self, date: str, identifier: str) -> LookupResult:
        try:
            record = self.find(date, identifier)
        except ConfigurationError as exc:
            print(f"record-lookup-misconfigured error={exc}")
            return LookupResult(status=LookupStatus.MISCONFIGURED, error=str(exc))
        except SheetsAuthError as exc:
            print(f"sheets-auth-failed date={date} identifier={identifier} error={exc}")
            return LookupResult(status=LookupStatus.UNAVAILABLE, error=str(exc))
        except RecordLookupError as exc:
            print(f"record-lookup-failed date={date} identifier={identifier} error={exc}")
            return LookupResult(status=LookupStatus.UNAVAILABLE, error=str(exc))
        if record is None:
            return LookupResult(status=LookupStatus.NOT_FOUND)
        return LookupResult(status=LookupStatus.FOUND, record=record)

    def _fetch_rows(self) -> list[list[Any]]:
        if not self.spreadsheet_id:
            raise ConfigurationError("SHEET_ID is not configured")
        client = self._client_provider()
        try:
            response = (
                client.spreadsheets()
                .values()
                .get(spreadsheetId=self.spreadsheet_id, range=self.range_name)
                .execute()
            )
        except GoogleAuthError as exc:
            raise SheetsAuthError(f"google credential exchange failed: {exc}") from exc
        except HttpError as exc:
            status = int(getattr(exc.resp, "status", 0) or 0)
            if status in {401, 403}:
                raise SheetsAuthError(f"sheets api rejected credentials: status={status}") from exc
            raise RecordLookupError(f"sheets api error: status={status}") from exc
        except (httplib2.HttpLib2Error, OSError) as exc:
            raise RecordLookupError(f"sheets api connection error: {exc}") from exc

        values = response.get("values") if isinstance(response, dict) else None
        if not isinstance(values, list):
            return []
        return values
