"""Services package."""

from smartspend.services.replica import (
    AppsScriptReplicaClient,
    GoogleSheetsReplica,
    InMemoryReplica,
    MalformedRemoteDataError,
    NetworkFailureError,
    RemoteReplicaClient,
    ReplicaError,
)
from smartspend.services.storage import (
    InMemoryStorage,
    JsonFileStorage,
    LedgerStorageInterface,
    NotFoundError,
    StorageError,
    SyncConfigStorageInterface,
)

__all__ = [
    # Replica services
    "AppsScriptReplicaClient",
    "GoogleSheetsReplica",
    "InMemoryReplica",
    "MalformedRemoteDataError",
    "NetworkFailureError",
    "RemoteReplicaClient",
    "ReplicaError",
    # Storage services
    "InMemoryStorage",
    "JsonFileStorage",
    "LedgerStorageInterface",
    "NotFoundError",
    "StorageError",
    "SyncConfigStorageInterface",
]
