"""
Apps Script Web App Replica Client

Talks to a Google Apps Script web app bound to the user's spreadsheet:

    POST <url>               {"action": "push", "transactions": [...], "accounts": [...]}
    GET  <url>?action=pull   -> {"transactions": [...], "accounts": [...]}

The script on the other side clears the Transactions/Accounts sheets and
rewrites them on every push (see APPS_SCRIPT_SOURCE).

DESIGN DECISION: requests is blocking, so every call runs in a worker
thread via asyncio.to_thread. The event loop keeps serving ledger
mutations while a push is on the wire.
"""

import asyncio
import json
from typing import Optional

import requests
import structlog

from smartspend.models.ledger import LedgerSnapshot
from smartspend.services.replica.interface import (
    MalformedRemoteDataError,
    NetworkFailureError,
    RemoteReplicaClient,
    parse_remote_snapshot,
)


logger = structlog.get_logger(__name__)


class AppsScriptReplicaClient(RemoteReplicaClient):
    """
    HTTP client for the Apps Script replica.

    In fire-and-forget mode (the default) the push response is never
    inspected: a request that does not raise counts as delivered. This
    mirrors what a browser gets from a no-cors request and is all the
    remote guarantees.
    """

    def __init__(
        self,
        timeout_seconds: float = 15.0,
        fire_and_forget: bool = True,
        session: Optional[requests.Session] = None,
    ):
        self._timeout = timeout_seconds
        self._fire_and_forget = fire_and_forget
        self._session = session or requests.Session()

    # -------------------------------------------------------------------------
    # Blocking halves (run in a worker thread)
    # -------------------------------------------------------------------------

    def _post_snapshot(self, url: str, snapshot: LedgerSnapshot) -> None:
        body = json.dumps(snapshot.to_push_payload(), ensure_ascii=False)
        try:
            response = self._session.post(
                url,
                data=body.encode("utf-8"),
                headers={"Content-Type": "application/json"},
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise NetworkFailureError(f"Push to remote replica failed: {e}") from e

        if not self._fire_and_forget:
            try:
                response.raise_for_status()
            except requests.HTTPError as e:
                raise NetworkFailureError(
                    f"Remote replica rejected push with status {response.status_code}"
                ) from e

    def _get_snapshot(self, url: str) -> LedgerSnapshot:
        try:
            response = self._session.get(
                url,
                params={"action": "pull"},
                timeout=self._timeout,
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            raise NetworkFailureError(
                f"Pull failed with status {e.response.status_code if e.response is not None else '?'}"
            ) from e
        except requests.RequestException as e:
            raise NetworkFailureError(f"Pull from remote replica failed: {e}") from e

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedRemoteDataError(f"Remote replica did not return JSON: {e}") from e

        return parse_remote_snapshot(payload)

    # -------------------------------------------------------------------------
    # RemoteReplicaClient
    # -------------------------------------------------------------------------

    async def push(self, url: str, snapshot: LedgerSnapshot) -> bool:
        await asyncio.to_thread(self._post_snapshot, url, snapshot)
        logger.info(
            "replica_push_dispatched",
            transactions=len(snapshot.transactions),
            accounts=len(snapshot.accounts),
            fire_and_forget=self._fire_and_forget,
        )
        return True

    async def pull(self, url: str) -> LedgerSnapshot:
        snapshot = await asyncio.to_thread(self._get_snapshot, url)
        logger.info(
            "replica_pull_received",
            transactions=len(snapshot.transactions),
            accounts=len(snapshot.accounts),
        )
        return snapshot


# Server half, to paste into Extensions > Apps Script of the spreadsheet
APPS_SCRIPT_SOURCE = """
function doGet(e) {
  var action = e.parameter.action;
  var ss = SpreadsheetApp.getActiveSpreadsheet();

  if (action === 'pull') {
    var txSheet = ss.getSheetByName("Transactions");
    var accSheet = ss.getSheetByName("Accounts");

    var transactions = [];
    if (txSheet) {
      var data = txSheet.getDataRange().getValues();
      data.shift();
      transactions = data.map(function(row) {
        var tx = {
          id: row[0],
          date: row[1],
          amount: Number(row[2]),
          type: row[3],
          category: row[4],
          description: row[5],
          accountId: row[6]
        };
        if (row[7]) tx.targetAccountId = row[7];
        return tx;
      });
    }

    var accounts = [];
    if (accSheet) {
      var data = accSheet.getDataRange().getValues();
      data.shift();
      accounts = data.map(function(row) {
        return { id: row[0], name: row[1], emoji: row[2] };
      });
    }

    return ContentService.createTextOutput(JSON.stringify({
      transactions: transactions,
      accounts: accounts
    })).setMimeType(ContentService.MimeType.JSON);
  }
}

function doPost(e) {
  var payload = JSON.parse(e.postData.contents);
  var ss = SpreadsheetApp.getActiveSpreadsheet();

  if (payload.action === 'push') {
    var txSheet = ss.getSheetByName("Transactions") || ss.insertSheet("Transactions");
    txSheet.clear();
    txSheet.appendRow(["ID", "Date", "Amount", "Type", "Category", "Description", "AccountId", "TargetAccountId"]);
    payload.transactions.forEach(function(t) {
      txSheet.appendRow([t.id, t.date, t.amount, t.type, t.category, t.description, t.accountId, t.targetAccountId || ""]);
    });

    var accSheet = ss.getSheetByName("Accounts") || ss.insertSheet("Accounts");
    accSheet.clear();
    accSheet.appendRow(["ID", "Name", "Emoji"]);
    payload.accounts.forEach(function(a) {
      accSheet.appendRow([a.id, a.name, a.emoji]);
    });
  }

  return ContentService.createTextOutput(JSON.stringify({status: "success"}))
    .setMimeType(ContentService.MimeType.JSON);
}
"""
