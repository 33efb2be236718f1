"""
Remote Replica Interface

DESIGN DECISION: The remote replica is a full-replace store.
- push sends the complete snapshot; the remote clears and rewrites
- pull reads the complete snapshot back

There are no sequence numbers and no conflict detection. Pushing the same
snapshot twice is the same as pushing it once; pushing a newer snapshot
simply supersedes the remote state.

IMPORTANT: a successful push only means "the request left without throwing".
Some transports (Apps Script web apps called cross-origin) never let the
client read the response, so the client cannot know whether the remote
durably applied it. We keep that contract as-is and do not pretend otherwise.
"""

from abc import ABC, abstractmethod
from typing import Any

from pydantic import ValidationError

from smartspend.models.ledger import Account, LedgerSnapshot, Transaction


class RemoteReplicaClient(ABC):
    """
    Abstract interface for a remote replica.

    Implementations must be safe to call from the event loop: blocking I/O
    belongs in a worker thread.
    """

    @abstractmethod
    async def push(self, url: str, snapshot: LedgerSnapshot) -> bool:
        """
        Replace the remote contents with the snapshot.

        Args:
            url: Configured replica endpoint
            snapshot: The full local snapshot

        Returns:
            True once the request has been dispatched

        Raises:
            NetworkFailureError: If the transport failed
        """
        pass

    @abstractmethod
    async def pull(self, url: str) -> LedgerSnapshot:
        """
        Fetch the full remote snapshot.

        Raises:
            NetworkFailureError: If the transport failed or returned a non-success status
            MalformedRemoteDataError: If the payload is missing fields or cannot be parsed
        """
        pass


def parse_remote_snapshot(payload: Any) -> LedgerSnapshot:
    """
    Turn a decoded pull payload into a snapshot, all or nothing.

    Raises:
        MalformedRemoteDataError: On any missing/null collection or bad row
    """
    if not isinstance(payload, dict):
        raise MalformedRemoteDataError(
            f"Expected a JSON object, got {type(payload).__name__}"
        )

    for key in ("transactions", "accounts"):
        if key not in payload or payload[key] is None:
            raise MalformedRemoteDataError(f"Remote payload is missing '{key}'")
        if not isinstance(payload[key], list):
            raise MalformedRemoteDataError(
                f"Remote '{key}' must be a list, got {type(payload[key]).__name__}"
            )

    try:
        accounts = [Account.model_validate(row) for row in payload["accounts"]]
        transactions = [
            Transaction.model_validate(_drop_empty_target(row))
            for row in payload["transactions"]
        ]
    except ValidationError as e:
        raise MalformedRemoteDataError(f"Remote rows failed validation: {e}") from e
    except TypeError as e:
        raise MalformedRemoteDataError(f"Remote rows have the wrong shape: {e}") from e

    return LedgerSnapshot(accounts=accounts, transactions=transactions)


def _drop_empty_target(row: Any) -> Any:
    # Spreadsheets hand back "" for an empty TargetAccountId cell
    if isinstance(row, dict) and row.get("targetAccountId") in ("", None):
        row = {k: v for k, v in row.items() if k != "targetAccountId"}
    return row


class ReplicaError(Exception):
    """Base exception for remote replica operations."""
    pass


class NetworkFailureError(ReplicaError):
    """Push/pull transport error or non-success status."""
    pass


class MalformedRemoteDataError(ReplicaError):
    """Pull payload is missing required fields or cannot be parsed."""
    pass
