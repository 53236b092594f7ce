"""
Google Sheets Document Store

DESIGN DECISION: Google Sheets is used as the hosted storage backend because:
1. Users can view their data directly in Sheets
2. No database setup required
3. Built-in backup (Google's infrastructure)
4. Easy to export/migrate later

Each collection lives in its own worksheet: row 1 holds the field
names, every following row is one document. Cells are written RAW
as strings and decoded back through the column types below.

TRADEOFFS:
- Not suitable for high-volume data (we're fine for personal use)
- No multi-sheet transactions (batched writes stay within one sheet)
- Limited query capabilities (we filter in Python)
"""

from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from gspread.utils import rowcol_to_a1
from tenacity import retry, retry_if_not_exception_type, stop_after_attempt, wait_exponential

from kakeibo.config import get_settings
from kakeibo.services.storage.interface import (
    CollectionName,
    Document,
    DocumentStoreInterface,
    NotFoundError,
    StorageError,
    StoreUnavailableError,
    collection_name,
)
from kakeibo.services.storage.memory import generate_document_id


logger = structlog.get_logger(__name__)


class MissingCredentialsError(StoreUnavailableError):
    """The service account file isn't there; retrying won't help."""
    pass


# Column layout and cell type per collection
COLLECTION_SCHEMAS: dict[str, list[tuple[str, str]]] = {
    "categories": [
        ("id", "str"),
        ("name", "str"),
        ("order", "int"),
    ],
    "tags": [
        ("id", "str"),
        ("name", "str"),
        ("categoryId", "str"),
        ("order", "int"),
    ],
    "expenses": [
        ("id", "str"),
        ("userId", "str"),
        ("date", "datetime"),
        ("amount", "decimal"),
        ("bigCategory", "str"),
        ("tags", "str"),
        ("paymentMethod", "str"),
        ("description", "str"),
        ("createdAt", "datetime"),
        ("updatedAt", "datetime"),
    ],
    "paymentMethods": [
        ("id", "str"),
        ("name", "str"),
        ("order", "int"),
    ],
    "users": [
        ("id", "str"),
        ("name", "str"),
        ("email", "str"),
        ("updatedAt", "datetime"),
    ],
    "auditLog": [
        ("id", "str"),
        ("eventId", "str"),
        ("timestamp", "datetime"),
        ("eventType", "str"),
        ("severity", "str"),
        ("entityType", "str"),
        ("entityId", "str"),
        ("userId", "str"),
        ("correlationId", "str"),
        ("description", "str"),
        ("detailsJson", "str"),
        ("errorMessage", "str"),
        ("isUserAction", "bool"),
    ],
}


def encode_cell(value: Any) -> str:
    """Convert a document value to its RAW cell text."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def decode_cell(cell: str, kind: str) -> Any:
    """
    Convert RAW cell text back to a document value.

    Empty cells decode to None. Cells that don't parse as their
    column type are returned as-is so the model layer can decide.
    """
    if cell == "":
        return None
    try:
        if kind == "int":
            return int(Decimal(cell))
        if kind == "decimal":
            return Decimal(cell)
        if kind == "datetime":
            return datetime.fromisoformat(cell)
    except (InvalidOperation, ValueError):
        return cell
    if kind == "bool":
        return cell.strip().lower() == "true"
    return cell


class GoogleSheetsClient:
    """
    Low-level Google Sheets client wrapper.

    Handles authentication and provides retry logic for API calls.
    Worksheets are created on first use with a header row.
    """

    def __init__(self):
        self._client: Optional[gspread.Client] = None
        self._spreadsheet: Optional[gspread.Spreadsheet] = None
        self._worksheets: dict[str, gspread.Worksheet] = {}
        self._settings = get_settings().google_sheets

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_not_exception_type(MissingCredentialsError),
        reraise=True,
    )
    def connect(self) -> gspread.Client:
        """
        Establish connection to Google Sheets.

        Uses service account credentials for authentication.
        """
        if self._client is None:
            try:
                scopes = [
                    "https://www.googleapis.com/auth/spreadsheets",
                    "https://www.googleapis.com/auth/drive",
                ]
                credentials = Credentials.from_service_account_file(
                    self._settings.credentials_path,
                    scopes=scopes,
                )
                self._client = gspread.authorize(credentials)
            except FileNotFoundError:
                raise MissingCredentialsError(
                    f"Google credentials file not found: {self._settings.credentials_path}"
                )
            except Exception as e:
                raise StoreUnavailableError(f"Failed to connect to Google Sheets: {e}")

        return self._client

    def get_spreadsheet(self) -> gspread.Spreadsheet:
        """Get the configured spreadsheet."""
        if self._spreadsheet is None:
            client = self.connect()
            try:
                self._spreadsheet = client.open_by_key(
                    self._settings.spreadsheet_id
                )
            except gspread.SpreadsheetNotFound:
                raise StoreUnavailableError(
                    f"Spreadsheet not found: {self._settings.spreadsheet_id}"
                )
        return self._spreadsheet

    def get_worksheet(self, collection: str) -> gspread.Worksheet:
        """Get or create the worksheet holding a collection."""
        if collection in self._worksheets:
            return self._worksheets[collection]

        spreadsheet = self.get_spreadsheet()
        title = self._settings.sheet_name_for(collection)
        columns = [name for name, _ in COLLECTION_SCHEMAS[collection]]
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            # Create the sheet with headers
            sheet = spreadsheet.add_worksheet(
                title=title,
                rows=1000,
                cols=len(columns),
            )
            sheet.append_row(columns)
        self._worksheets[collection] = sheet
        return sheet


class GoogleSheetsDocumentStore(DocumentStoreInterface):
    """
    Google Sheets implementation of the document store.

    Documents are stored as rows; the header row maps cells to fields,
    so columns can be reordered by hand in the spreadsheet.
    """

    def __init__(self, client: Optional[GoogleSheetsClient] = None):
        self._client = client or GoogleSheetsClient()

    # ------------------------------------------------------------------
    # Row helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _schema(collection: str) -> dict[str, str]:
        try:
            return dict(COLLECTION_SCHEMAS[collection])
        except KeyError:
            raise StorageError(f"Unknown collection: {collection}")

    @staticmethod
    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _fetch_values(sheet: gspread.Worksheet) -> list[list[str]]:
        """Reads are idempotent, so they are retried."""
        return sheet.get_all_values()

    def _read_values(self, collection: str) -> tuple[gspread.Worksheet, list[str], list[list[str]]]:
        """
        Read header and data rows.

        Connecting retries on its own; only the read itself is retried here.
        """
        try:
            sheet = self._client.get_worksheet(collection)
        except StorageError:
            raise
        except Exception as e:
            raise StoreUnavailableError(f"Failed to open {collection}: {e}")
        try:
            values = self._fetch_values(sheet)
        except Exception as e:
            raise StoreUnavailableError(f"Failed to read {collection}: {e}")

        if not values:
            header = [name for name, _ in COLLECTION_SCHEMAS[collection]]
            return sheet, header, []
        return sheet, values[0], values[1:]

    def _row_to_document(self, collection: str, header: list[str], row: list[str]) -> Document:
        schema = self._schema(collection)
        document: Document = {}
        for idx, field in enumerate(header):
            if not field:
                continue
            cell = row[idx] if idx < len(row) else ""
            document[field] = decode_cell(cell, schema.get(field, "str"))
        return document

    @staticmethod
    def _document_to_row(header: list[str], document: Document) -> list[str]:
        return [encode_cell(document.get(field)) for field in header]

    @staticmethod
    def _row_range(sheet_row: int, width: int) -> str:
        return f"{rowcol_to_a1(sheet_row, 1)}:{rowcol_to_a1(sheet_row, width)}"

    def _documents(self, collection: str) -> list[Document]:
        _, header, rows = self._read_values(collection)
        id_col = header.index("id") if "id" in header else 0
        documents = []
        for row in rows:
            if len(row) <= id_col or not row[id_col]:  # Skip rows without an id
                continue
            documents.append(self._row_to_document(collection, header, row))
        return documents

    def _locate(
        self,
        collection: str,
        doc_id: str,
    ) -> tuple[gspread.Worksheet, list[str], Optional[int], Optional[Document]]:
        """Find a document's sheet row number (1-based, header is row 1)."""
        sheet, header, rows = self._read_values(collection)
        id_col = header.index("id") if "id" in header else 0
        for idx, row in enumerate(rows, start=2):
            if len(row) > id_col and row[id_col] == doc_id:
                return sheet, header, idx, self._row_to_document(collection, header, row)
        return sheet, header, None, None

    def _write_row(
        self,
        sheet: gspread.Worksheet,
        header: list[str],
        sheet_row: int,
        document: Document,
    ) -> None:
        sheet.batch_update(
            [{
                "range": self._row_range(sheet_row, len(header)),
                "values": [self._document_to_row(header, document)],
            }],
            value_input_option="RAW",
        )

    # ------------------------------------------------------------------
    # DocumentStoreInterface
    # ------------------------------------------------------------------

    async def list_all(self, collection: CollectionName) -> list[Document]:
        return self._documents(collection_name(collection))

    async def list_where(
        self,
        collection: CollectionName,
        field: str,
        value: Any,
    ) -> list[Document]:
        return [
            document
            for document in self._documents(collection_name(collection))
            if document.get(field) == value
        ]

    async def get(self, collection: CollectionName, doc_id: str) -> Optional[Document]:
        _, _, _, document = self._locate(collection_name(collection), doc_id)
        return document

    async def add(self, collection: CollectionName, data: Document) -> str:
        name = collection_name(collection)
        sheet, header, _ = self._read_values(name)
        doc_id = generate_document_id()
        document = {**data, "id": doc_id}
        try:
            sheet.append_row(self._document_to_row(header, document), value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to add to {name}: {e}")
        return doc_id

    async def set(
        self,
        collection: CollectionName,
        doc_id: str,
        data: Document,
        merge: bool = True,
    ) -> None:
        name = collection_name(collection)
        sheet, header, sheet_row, existing = self._locate(name, doc_id)
        try:
            if sheet_row is None:
                document = {**data, "id": doc_id}
                sheet.append_row(self._document_to_row(header, document), value_input_option="RAW")
                return
            base = existing if merge else {}
            self._write_row(sheet, header, sheet_row, {**base, **data, "id": doc_id})
        except Exception as e:
            raise StorageError(f"Failed to set {name}/{doc_id}: {e}")

    async def update(
        self,
        collection: CollectionName,
        doc_id: str,
        fields: Document,
    ) -> None:
        name = collection_name(collection)
        sheet, header, sheet_row, existing = self._locate(name, doc_id)
        if sheet_row is None:
            raise NotFoundError(f"{name}/{doc_id} not found")
        try:
            self._write_row(sheet, header, sheet_row, {**existing, **fields, "id": doc_id})
        except Exception as e:
            raise StorageError(f"Failed to update {name}/{doc_id}: {e}")

    async def delete(self, collection: CollectionName, doc_id: str) -> bool:
        name = collection_name(collection)
        sheet, _, sheet_row, _ = self._locate(name, doc_id)
        if sheet_row is None:
            return False
        try:
            sheet.delete_rows(sheet_row)
        except Exception as e:
            raise StorageError(f"Failed to delete {name}/{doc_id}: {e}")
        return True

    async def update_many(
        self,
        collection: CollectionName,
        updates: dict[str, Document],
    ) -> None:
        """
        Merge fields into several rows with a single batch_update request.

        All target rows are located first; if any is missing nothing
        is written.
        """
        name = collection_name(collection)
        if not updates:
            return

        sheet, header, rows = self._read_values(name)
        id_col = header.index("id") if "id" in header else 0
        located: dict[str, tuple[int, Document]] = {}
        for idx, row in enumerate(rows, start=2):
            if len(row) > id_col and row[id_col] in updates:
                located[row[id_col]] = (idx, self._row_to_document(name, header, row))

        missing = [doc_id for doc_id in updates if doc_id not in located]
        if missing:
            raise NotFoundError(f"{name} documents not found: {', '.join(missing)}")

        data = []
        for doc_id, fields in updates.items():
            sheet_row, existing = located[doc_id]
            data.append({
                "range": self._row_range(sheet_row, len(header)),
                "values": [self._document_to_row(header, {**existing, **fields, "id": doc_id})],
            })

        try:
            sheet.batch_update(data, value_input_option="RAW")
        except Exception as e:
            raise StorageError(f"Failed to batch update {name}: {e}")

        logger.debug("sheets_batch_update", collection=name, rows=len(data))
