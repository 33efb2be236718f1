"""
Remote Replica Package

Full-replace remote copies of the ledger:
- AppsScriptReplicaClient: HTTP to an Apps Script web app (the wire contract)
- GoogleSheetsReplica: direct gspread access with a service account
- InMemoryReplica: for tests
"""

from smartspend.services.replica.interface import (
    MalformedRemoteDataError,
    NetworkFailureError,
    RemoteReplicaClient,
    ReplicaError,
    parse_remote_snapshot,
)
from smartspend.services.replica.apps_script import APPS_SCRIPT_SOURCE, AppsScriptReplicaClient
from smartspend.services.replica.google_sheets import GoogleSheetsReplica
from smartspend.services.replica.memory import InMemoryReplica

__all__ = [
    # Interface
    "RemoteReplicaClient",
    "parse_remote_snapshot",
    # Exceptions
    "MalformedRemoteDataError",
    "NetworkFailureError",
    "ReplicaError",
    # Implementations
    "APPS_SCRIPT_SOURCE",
    "AppsScriptReplicaClient",
    "GoogleSheetsReplica",
    "InMemoryReplica",
]
