"""
Tests for the Google Sheets document store.

A fake worksheet stands in for gspread so no network access is needed.
"""

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest
from gspread.utils import a1_to_rowcol
from tenacity import wait_none

from kakeibo.services.storage import NotFoundError, StoreUnavailableError
from kakeibo.services.storage import google_sheets
from kakeibo.services.storage.google_sheets import (
    COLLECTION_SCHEMAS,
    GoogleSheetsClient,
    GoogleSheetsDocumentStore,
    MissingCredentialsError,
    decode_cell,
    encode_cell,
)


class FakeWorksheet:
    """Just enough of gspread.Worksheet for the store."""

    def __init__(self, header):
        self.rows = [list(header)]
        self.batch_calls = []

    def get_all_values(self):
        return [list(row) for row in self.rows]

    def append_row(self, values, value_input_option=None):
        self.rows.append(list(values))

    def batch_update(self, data, value_input_option=None):
        self.batch_calls.append(data)
        for entry in data:
            start = entry["range"].split(":")[0]
            row, _ = a1_to_rowcol(start)
            self.rows[row - 1] = list(entry["values"][0])

    def delete_rows(self, index):
        del self.rows[index - 1]


class FakeSheetsClient:
    def __init__(self):
        self.sheets = {}

    def get_worksheet(self, collection):
        if collection not in self.sheets:
            header = [name for name, _ in COLLECTION_SCHEMAS[collection]]
            self.sheets[collection] = FakeWorksheet(header)
        return self.sheets[collection]


@pytest.fixture
def client():
    return FakeSheetsClient()


@pytest.fixture
def sheets_store(client):
    return GoogleSheetsDocumentStore(client)


class TestCells:

    def test_encode(self):
        when = datetime(2024, 1, 5, 9, 30, tzinfo=timezone.utc)
        assert encode_cell(None) == ""
        assert encode_cell(True) == "TRUE"
        assert encode_cell(Decimal("12.50")) == "12.50"
        assert encode_cell(when) == "2024-01-05T09:30:00+00:00"

    def test_decode(self):
        assert decode_cell("", "int") is None
        assert decode_cell("3", "int") == 3
        assert decode_cell("12.50", "decimal") == Decimal("12.50")
        assert decode_cell("2024-01-05T09:30:00+00:00", "datetime").tzinfo is not None
        assert decode_cell("FALSE", "bool") is False

    def test_unparseable_cell_kept_as_text(self):
        assert decode_cell("soon", "datetime") == "soon"
        assert decode_cell("abc", "decimal") == "abc"


class TestGoogleSheetsDocumentStore:

    def test_add_and_read_back_typed_values(self, sheets_store, client):
        when = datetime(2024, 1, 5, tzinfo=timezone.utc)
        doc_id = asyncio.run(sheets_store.add("expenses", {
            "userId": "u1",
            "date": when,
            "amount": Decimal("1200"),
            "bigCategory": "食費",
        }))

        document = asyncio.run(sheets_store.get("expenses", doc_id))
        assert document["amount"] == Decimal("1200")
        assert document["date"] == when
        assert document["tags"] is None
        assert client.sheets["expenses"].rows[1][0] == doc_id

    def test_list_where(self, sheets_store):
        asyncio.run(sheets_store.add("expenses", {"userId": "u1", "amount": 1}))
        asyncio.run(sheets_store.add("expenses", {"userId": "u2", "amount": 2}))
        listed = asyncio.run(sheets_store.list_where("expenses", "userId", "u2"))
        assert [d["amount"] for d in listed] == [Decimal("2")]

    def test_update_merges_fields(self, sheets_store):
        doc_id = asyncio.run(sheets_store.add("categories", {"name": "食費", "order": 0}))
        asyncio.run(sheets_store.update("categories", doc_id, {"name": "食料品"}))
        document = asyncio.run(sheets_store.get("categories", doc_id))
        assert (document["name"], document["order"]) == ("食料品", 0)

    def test_update_missing_raises(self, sheets_store):
        with pytest.raises(NotFoundError):
            asyncio.run(sheets_store.update("categories", "nope", {"name": "x"}))

    def test_set_without_merge_replaces(self, sheets_store):
        asyncio.run(sheets_store.set("users", "u1", {"name": "太郎", "email": "t@example.com"}))
        asyncio.run(sheets_store.set("users", "u1", {"name": "花子"}, merge=False))
        document = asyncio.run(sheets_store.get("users", "u1"))
        assert document["name"] == "花子"
        assert document["email"] is None

    def test_update_many_is_one_batch(self, sheets_store, client):
        first = asyncio.run(sheets_store.add("categories", {"name": "食費", "order": 0}))
        second = asyncio.run(sheets_store.add("categories", {"name": "交通費", "order": 1}))

        asyncio.run(sheets_store.update_many("categories", {
            second: {"order": 0},
            first: {"order": 1},
        }))

        assert len(client.sheets["categories"].batch_calls) == 1
        orders = {d["id"]: d["order"] for d in asyncio.run(sheets_store.list_all("categories"))}
        assert orders == {first: 1, second: 0}

    def test_update_many_with_missing_id_writes_nothing(self, sheets_store, client):
        doc_id = asyncio.run(sheets_store.add("categories", {"name": "食費", "order": 0}))
        with pytest.raises(NotFoundError):
            asyncio.run(sheets_store.update_many("categories", {
                doc_id: {"order": 5},
                "gone": {"order": 0},
            }))
        assert client.sheets["categories"].batch_calls == []
        assert asyncio.run(sheets_store.get("categories", doc_id))["order"] == 0

    def test_delete(self, sheets_store):
        doc_id = asyncio.run(sheets_store.add("tags", {"name": "外食", "categoryId": "c1"}))
        assert asyncio.run(sheets_store.delete("tags", doc_id))
        assert not asyncio.run(sheets_store.delete("tags", doc_id))
        assert asyncio.run(sheets_store.list_all("tags")) == []


class TestHandEditedSheet:

    def test_reordered_columns_keep_rows_with_blank_first_cell(self, sheets_store, client):
        sheet = FakeWorksheet(["name", "id", "order"])
        sheet.rows += [["食費", "c1", "0"], ["", "c2", "1"], ["メモ", "", ""]]
        client.sheets["categories"] = sheet

        documents = asyncio.run(sheets_store.list_all("categories"))
        assert [d["id"] for d in documents] == ["c1", "c2"]
        assert documents[1]["name"] is None


class TestRetries:

    def test_unreachable_backend_is_not_retried_again_per_read(self, sheets_store, client):
        attempts = []

        def unavailable(collection):
            attempts.append(collection)
            raise StoreUnavailableError("no connection")

        client.get_worksheet = unavailable
        with pytest.raises(StoreUnavailableError):
            asyncio.run(sheets_store.list_all("categories"))
        assert len(attempts) == 1

    def test_failed_read_is_retried(self, sheets_store, client, monkeypatch):
        monkeypatch.setattr(GoogleSheetsDocumentStore._fetch_values.retry, "wait", wait_none())
        sheet = client.get_worksheet("categories")
        sheet.rows.append(["c1", "食費", "0"])
        real_read = sheet.get_all_values
        failures = iter([ConnectionError("reset")])

        def flaky_read():
            for error in failures:
                raise error
            return real_read()

        sheet.get_all_values = flaky_read
        assert [d["id"] for d in asyncio.run(sheets_store.list_all("categories"))] == ["c1"]

    def test_missing_credentials_fail_fast(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_SHEETS_CREDENTIALS_PATH", "/nonexistent/service_account.json")
        monkeypatch.setenv("GOOGLE_SHEETS_SPREADSHEET_ID", "sheet-id")
        attempts = []

        def missing_file(path, scopes=None):
            attempts.append(path)
            raise FileNotFoundError(path)

        monkeypatch.setattr(google_sheets.Credentials, "from_service_account_file", missing_file)
        with pytest.warns(UserWarning):
            sheets_client = GoogleSheetsClient()

        with pytest.raises(MissingCredentialsError):
            sheets_client.connect()
        assert len(attempts) == 1
