from __future__ import annotations

import unittest
from typing import Any
from unittest import mock

import httplib2
from google.auth.exceptions import RefreshError
from googleapiclient.errors import HttpError

from core.enums import LookupStatus
from core.errors import ConfigurationError, RecordLookupError, SheetsAuthError
from core.models import PaymentRecord
from sheets.record_lookup import RecordLookup, build_range_name, find_first_match

ROWS: list[list[Any]] = [
    ["Иванов", "Отдел", "emp001", "01.01.2023", "@alice", "5000"],
    ["Петров", "Отдел", "EMP002", "01.01.2023", "", "7000"],
    ["short", "row"],
    ["Дубль", "Отдел", "emp001", "01.01.2023", "@other", "9999"],
    ["Сидоров", "Отдел", "emp003", "02.01.2023"],
    ["Пусто", "Отдел", "", "01.01.2023", "", "1"],
]


class _FakeRequest:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.response = response
        self.error = error

    def execute(self) -> Any:
        if self.error is not None:
            raise self.error
        return self.response


class _FakeSheetsClient:
    def __init__(self, response: Any = None, error: Exception | None = None) -> None:
        self.request = _FakeRequest(response=response, error=error)
        self.calls: list[dict[str, Any]] = []

    def spreadsheets(self) -> "_FakeSheetsClient":
        return self

    def values(self) -> "_FakeSheetsClient":
        return self

    def get(self, **kwargs: Any) -> _FakeRequest:
        self.calls.append(kwargs)
        return self.request


def _http_error(status: int) -> HttpError:
    return HttpError(httplib2.Response({"status": status}), b'{"error": {}}')


def _lookup(client: _FakeSheetsClient, spreadsheet_id: str | None = "sheet-1") -> RecordLookup:
    return RecordLookup(spreadsheet_id=spreadsheet_id, sheet_name="Payroll", client_provider=lambda: client)


class FindFirstMatchTest(unittest.TestCase):
    def test_matches_identifier_case_insensitively_and_date_exactly(self) -> None:
        record = find_first_match(ROWS, "01.01.2023", "emp002")
        self.assertIsNotNone(record)
        self.assertEqual(record.identifier, "EMP002")
        self.assertEqual(record.amount, "7000")
        self.assertEqual(record.row_number, 3)

        self.assertIsNone(find_first_match(ROWS, "1.1.2023", "emp002"))
        self.assertIsNone(find_first_match(ROWS, "01.01.2023", "emp00"))

    def test_returns_first_row_when_duplicates_exist(self) -> None:
        record = find_first_match(ROWS, "01.01.2023", "EMP001")
        self.assertIsNotNone(record)
        self.assertEqual(record.handle, "@alice")
        self.assertEqual(record.row_number, 2)
        self.assertEqual(find_first_match(ROWS, "01.01.2023", "EMP001"), record)

    def test_skips_short_rows_and_rows_without_identifier(self) -> None:
        record = find_first_match(ROWS, "02.01.2023", "emp003")
        self.assertIsNotNone(record)
        self.assertEqual(record.handle, "")
        self.assertEqual(record.amount, "")
        self.assertIsNone(find_first_match(ROWS, "01.01.2023", ""))
        self.assertIsNone(find_first_match([["a", "b", "emp001"]], "01.01.2023", "emp001"))

    def test_padded_key_cells_do_not_match(self) -> None:
        padded_date = [["a", "b", "emp001", "01.01.2023 ", "@alice", "5000"]]
        padded_id = [["a", "b", " emp001", "01.01.2023", "@alice", "5000"]]

        self.assertIsNone(find_first_match(padded_date, "01.01.2023", "emp001"))
        self.assertIsNone(find_first_match(padded_id, "01.01.2023", "emp001"))

    def test_padded_display_cells_are_trimmed(self) -> None:
        record = find_first_match([["a", "b", "emp001", "01.01.2023", " @alice ", " 5000 "]], "01.01.2023", "emp001")
        self.assertIsNotNone(record)
        self.assertEqual(record.handle, "@alice")
        self.assertEqual(record.amount, "5000")

    def test_coerces_untyped_cells_to_text(self) -> None:
        record = find_first_match([[1, 2, 1001, "01.01.2023", None, 1500.5]], "01.01.2023", "1001")
        self.assertIsNotNone(record)
        self.assertEqual(record.amount, "1500.5")
        self.assertEqual(record.handle, "")


class PaymentRecordTest(unittest.TestCase):
    def test_handle_check(self) -> None:
        marked = PaymentRecord.from_row(["", "", "emp001", "01.01.2023", "@Alice", "5000"], row_number=2)
        self.assertTrue(marked.handle_matches("alice"))
        self.assertTrue(marked.handle_matches("ALICE"))
        self.assertFalse(marked.handle_matches("bob"))
        self.assertFalse(marked.handle_matches(None))

        unmarked = PaymentRecord.from_row(["", "", "emp001", "01.01.2023", "alice", "5000"], row_number=2)
        self.assertTrue(unmarked.handle_matches("bob"))
        empty = PaymentRecord.from_row(["", "", "emp001", "01.01.2023"], row_number=2)
        self.assertTrue(empty.handle_matches(None))
        self.assertFalse(empty.has_amount)


class RecordLookupTest(unittest.TestCase):
    def test_build_range_name_quotes_sheet_names_with_spaces(self) -> None:
        self.assertEqual(build_range_name("Payroll"), "Payroll!A2:F")
        self.assertEqual(build_range_name("Свод ФОТ (адрес почты)"), "'Свод ФОТ (адрес почты)'!A2:F")
        self.assertEqual(build_range_name("Bob's sheet"), "'Bob''s sheet'!A2:F")

    def test_find_reads_full_range_on_every_call(self) -> None:
        client = _FakeSheetsClient(response={"values": ROWS})
        lookup = _lookup(client)

        first = lookup.find("01.01.2023", "emp001")
        second = lookup.find("01.01.2023", "emp001")

        self.assertEqual(first, second)
        self.assertEqual(len(client.calls), 2)
        self.assertEqual(client.calls[0], {"spreadsheetId": "sheet-1", "range": "Payroll!A2:F"})

    def test_empty_sheet_is_not_found(self) -> None:
        lookup = _lookup(_FakeSheetsClient(response={}))
        self.assertIsNone(lookup.find("01.01.2023", "emp001"))
        self.assertEqual(lookup.lookup("01.01.2023", "emp001").status, LookupStatus.NOT_FOUND)

    def test_missing_spreadsheet_id_fails_fast(self) -> None:
        provider = mock.Mock()
        lookup = RecordLookup(spreadsheet_id=None, sheet_name="Payroll", client_provider=provider)
        with self.assertRaises(ConfigurationError):
            lookup.find("01.01.2023", "emp001")
        self.assertIsNone(lookup.fetch_record("01.01.2023", "emp001"))
        self.assertEqual(lookup.lookup("01.01.2023", "emp001").status, LookupStatus.MISCONFIGURED)
        provider.assert_not_called()

    def test_auth_failures_are_classified(self) -> None:
        for error in (_http_error(403), _http_error(401), RefreshError("invalid_grant")):
            with self.subTest(error=type(error).__name__):
                lookup = _lookup(_FakeSheetsClient(error=error))
                with self.assertRaises(SheetsAuthError):
                    lookup.find("01.01.2023", "emp001")
                result = lookup.lookup("01.01.2023", "emp001")
                self.assertEqual(result.status, LookupStatus.UNAVAILABLE)
                self.assertIsNone(lookup.fetch_record("01.01.2023", "emp001"))

    def test_transport_failures_surface_as_absent(self) -> None:
        for error in (_http_error(500), OSError("timed out"), httplib2.ServerNotFoundError("dns")):
            with self.subTest(error=type(error).__name__):
                lookup = _lookup(_FakeSheetsClient(error=error))
                with self.assertRaises(RecordLookupError):
                    lookup.find("01.01.2023", "emp001")
                self.assertIsNone(lookup.fetch_record("01.01.2023", "emp001"))
                self.assertEqual(lookup.lookup("01.01.2023", "emp001").status, LookupStatus.UNAVAILABLE)

    def test_client_construction_errors_are_reported(self) -> None:
        def _failing_provider() -> Any:
            raise SheetsAuthError("bad key")

        lookup = RecordLookup(spreadsheet_id="sheet-1", sheet_name="Payroll", client_provider=_failing_provider)
        self.assertIsNone(lookup.fetch_record("01.01.2023", "emp001"))
        self.assertEqual(lookup.lookup("01.01.2023", "emp001").status, LookupStatus.UNAVAILABLE)

    def test_lookup_returns_found_record(self) -> None:
        lookup = _lookup(_FakeSheetsClient(response={"values": ROWS}))
        result = lookup.lookup("01.01.2023", "emp001")
        self.assertEqual(result.status, LookupStatus.FOUND)
        self.assertEqual(result.record.amount, "5000")
        self.assertEqual(result.to_dict()["status"], "found")


if __name__ == "__main__":
    unittest.main()
