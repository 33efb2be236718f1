"""In-memory replica with full-replace semantics, for tests and local development."""

import asyncio
from typing import Optional

from smartspend.models.ledger import LedgerSnapshot
from smartspend.services.replica.interface import (
    NetworkFailureError,
    RemoteReplicaClient,
    parse_remote_snapshot,
)


class InMemoryReplica(RemoteReplicaClient):
    """
    Keeps one wire-form payload per URL, exactly like the spreadsheet would.

    `fail_next` makes the next N calls raise NetworkFailureError, and
    `block` lets a test hold a push in flight until it is released.
    """

    def __init__(self):
        self._payloads: dict[str, dict] = {}
        self.push_calls: list[LedgerSnapshot] = []
        self.pull_calls = 0
        self.fail_next = 0
        self.block: Optional[asyncio.Event] = None

    def set_remote_payload(self, url: str, payload: dict) -> None:
        """Put raw (possibly malformed) data on the remote side."""
        self._payloads[url] = payload

    def remote_payload(self, url: str) -> Optional[dict]:
        return self._payloads.get(url)

    async def _maybe_fail(self) -> None:
        if self.block is not None:
            await self.block.wait()
        if self.fail_next > 0:
            self.fail_next -= 1
            raise NetworkFailureError("simulated network failure")

    async def push(self, url: str, snapshot: LedgerSnapshot) -> bool:
        self.push_calls.append(snapshot)
        await self._maybe_fail()
        payload = snapshot.to_push_payload()
        self._payloads[url] = {
            "transactions": payload["transactions"],
            "accounts": payload["accounts"],
        }
        return True

    async def pull(self, url: str) -> LedgerSnapshot:
        self.pull_calls += 1
        await self._maybe_fail()
        if url not in self._payloads:
            return LedgerSnapshot.empty()
        return parse_remote_snapshot(self._payloads[url])
