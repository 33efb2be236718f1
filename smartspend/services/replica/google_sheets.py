"""
Google Sheets Replica Implementation

DESIGN DECISION: Google Sheets is the remote replica because:
1. The user can look at their ledger directly in Sheets
2. No server or database to run
3. Built-in backup (Google's infrastructure)

This backend talks to the spreadsheet directly with a service account
instead of going through the Apps Script web app. It implements the same
full-replace semantics the script does: on push each sheet is cleared and
rewritten, header first.

TRADEOFFS:
- Not suitable for high-volume data (fine for a personal ledger)
- No transactions across the two sheets (we write Transactions first, then Accounts)
"""

import asyncio
from typing import Callable, Optional

import gspread
import structlog
from google.oauth2.service_account import Credentials
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from smartspend.config import get_settings
from smartspend.models.ledger import LedgerSnapshot
from smartspend.services.replica.interface import (
    MalformedRemoteDataError,
    NetworkFailureError,
    RemoteReplicaClient,
    parse_remote_snapshot,
)


logger = structlog.get_logger(__name__)


# Column mappings for the Transactions sheet
TRANSACTION_COLUMNS = [
    "ID",
    "Date",
    "Amount",
    "Type",
    "Category",
    "Description",
    "AccountId",
    "TargetAccountId",
]

# Column mappings for the Accounts sheet
ACCOUNT_COLUMNS = [
    "ID",
    "Name",
    "Emoji",
]

SCOPES = [
    "https://www.googleapis.com/auth/spreadsheets",
    "https://www.googleapis.com/auth/drive",
]

_api_retry = retry(
    retry=retry_if_exception_type(gspread.exceptions.APIError),
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=1, min=2, max=10),
    reraise=True,
)


def _default_client_factory() -> gspread.Client:
    settings = get_settings().google_sheets
    try:
        credentials = Credentials.from_service_account_file(
            settings.credentials_path,
            scopes=SCOPES,
        )
    except FileNotFoundError as e:
        raise NetworkFailureError(
            f"Google credentials file not found: {settings.credentials_path}"
        ) from e
    return gspread.authorize(credentials)


class GoogleSheetsReplica(RemoteReplicaClient):
    """
    Remote replica stored in two worksheets of one spreadsheet.

    The SyncConfig url is the spreadsheet URL.
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[], gspread.Client]] = None,
        transactions_sheet_name: Optional[str] = None,
        accounts_sheet_name: Optional[str] = None,
    ):
        self._client_factory = client_factory or _default_client_factory
        self._client: Optional[gspread.Client] = None
        if transactions_sheet_name is None or accounts_sheet_name is None:
            settings = get_settings().google_sheets
            transactions_sheet_name = transactions_sheet_name or settings.transactions_sheet_name
            accounts_sheet_name = accounts_sheet_name or settings.accounts_sheet_name
        self._transactions_sheet_name = transactions_sheet_name
        self._accounts_sheet_name = accounts_sheet_name

    # -------------------------------------------------------------------------
    # Connection
    # -------------------------------------------------------------------------

    @_api_retry
    def _open(self, url: str) -> gspread.Spreadsheet:
        if self._client is None:
            self._client = self._client_factory()
        try:
            return self._client.open_by_url(url)
        except gspread.SpreadsheetNotFound as e:
            raise NetworkFailureError(f"Spreadsheet not found: {url}") from e
        except gspread.exceptions.NoValidUrlKeyFound as e:
            raise NetworkFailureError(f"Not a spreadsheet URL: {url}") from e

    def _get_or_create(self, spreadsheet: gspread.Spreadsheet, title: str, cols: int) -> gspread.Worksheet:
        try:
            return spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            return spreadsheet.add_worksheet(title=title, rows=1000, cols=cols)

    # -------------------------------------------------------------------------
    # Row mapping
    # -------------------------------------------------------------------------

    @staticmethod
    def _transaction_rows(snapshot: LedgerSnapshot) -> list[list]:
        rows = []
        for tx in snapshot.transactions:
            wire = tx.to_wire()
            rows.append([
                wire["id"],
                wire["date"],
                wire["amount"],
                wire["type"],
                wire["category"],
                wire["description"],
                wire["accountId"],
                wire.get("targetAccountId", ""),
            ])
        return rows

    @staticmethod
    def _account_rows(snapshot: LedgerSnapshot) -> list[list]:
        return [[a.id, a.name, a.emoji] for a in snapshot.accounts]

    @staticmethod
    def _cell(row: list, index: int) -> str:
        try:
            return row[index]
        except IndexError:
            return ""

    def _row_to_transaction(self, row: list) -> dict:
        amount = self._cell(row, 2)
        try:
            amount_value = float(amount)
        except (TypeError, ValueError) as e:
            raise MalformedRemoteDataError(f"Bad amount {amount!r} in row {row!r}") from e
        tx = {
            "id": self._cell(row, 0),
            "date": self._cell(row, 1),
            "amount": amount_value,
            "type": self._cell(row, 3),
            "category": self._cell(row, 4),
            "description": self._cell(row, 5),
            "accountId": self._cell(row, 6),
        }
        if self._cell(row, 7):
            tx["targetAccountId"] = self._cell(row, 7)
        return tx

    def _row_to_account(self, row: list) -> dict:
        return {
            "id": self._cell(row, 0),
            "name": self._cell(row, 1),
            "emoji": self._cell(row, 2),
        }

    # -------------------------------------------------------------------------
    # Blocking halves (run in a worker thread)
    # -------------------------------------------------------------------------

    @_api_retry
    def _replace_sheet(self, sheet: gspread.Worksheet, header: list[str], rows: list[list]) -> None:
        sheet.clear()
        sheet.append_rows([header, *rows], value_input_option="RAW")

    @_api_retry
    def _read_sheet(self, spreadsheet: gspread.Spreadsheet, title: str) -> list[list]:
        try:
            sheet = spreadsheet.worksheet(title)
        except gspread.WorksheetNotFound:
            return []
        values = sheet.get_all_values()
        # Skip header and fully empty rows
        return [row for row in values[1:] if row and any(cell != "" for cell in row)]

    def _push_blocking(self, url: str, snapshot: LedgerSnapshot) -> None:
        try:
            spreadsheet = self._open(url)
            tx_sheet = self._get_or_create(
                spreadsheet, self._transactions_sheet_name, len(TRANSACTION_COLUMNS)
            )
            self._replace_sheet(tx_sheet, TRANSACTION_COLUMNS, self._transaction_rows(snapshot))
            acc_sheet = self._get_or_create(
                spreadsheet, self._accounts_sheet_name, len(ACCOUNT_COLUMNS)
            )
            self._replace_sheet(acc_sheet, ACCOUNT_COLUMNS, self._account_rows(snapshot))
        except NetworkFailureError:
            raise
        except Exception as e:
            raise NetworkFailureError(f"Failed to push to Google Sheets: {e}") from e

    def _pull_blocking(self, url: str) -> LedgerSnapshot:
        try:
            spreadsheet = self._open(url)
            tx_rows = self._read_sheet(spreadsheet, self._transactions_sheet_name)
            acc_rows = self._read_sheet(spreadsheet, self._accounts_sheet_name)
        except NetworkFailureError:
            raise
        except Exception as e:
            raise NetworkFailureError(f"Failed to pull from Google Sheets: {e}") from e

        payload = {
            "transactions": [self._row_to_transaction(row) for row in tx_rows],
            "accounts": [self._row_to_account(row) for row in acc_rows],
        }
        return parse_remote_snapshot(payload)

    # -------------------------------------------------------------------------
    # RemoteReplicaClient
    # -------------------------------------------------------------------------

    async def push(self, url: str, snapshot: LedgerSnapshot) -> bool:
        await asyncio.to_thread(self._push_blocking, url, snapshot)
        logger.info(
            "sheets_push_completed",
            transactions=len(snapshot.transactions),
            accounts=len(snapshot.accounts),
        )
        return True

    async def pull(self, url: str) -> LedgerSnapshot:
        snapshot = await asyncio.to_thread(self._pull_blocking, url)
        logger.info(
            "sheets_pull_completed",
            transactions=len(snapshot.transactions),
            accounts=len(snapshot.accounts),
        )
        return snapshot
