"""
Sync Engine — snapshot reconciliation for multi-device collections.

Components:
  tombstones  — union of deleted-id sets
  merge       — per-collection record merge with ordering authority
  reconcile   — (server_state, client_snapshot) → next_state, plus single-record writes
  gateway     — persisted state behind a single-writer section
  storage     — memory / file backends (Postgres in postgres_storage)
"""

from engine.sync.gateway import StateGateway
from engine.sync.merge import merge_collection, recency_score, sanitize
from engine.sync.reconcile import (
    InvalidRecord,
    RecordNotFound,
    find_record,
    reconcile,
    remove_record,
    update_record,
    upsert_record,
)
from engine.sync.storage import (
    FileStorage,
    MemoryStorage,
    StateStorage,
    StorageUnavailable,
    StorageWriteFailure,
)
from engine.sync.tombstones import merge_ids
from engine.sync.types import COLLECTIONS, UnknownCollection, empty_state, get_kind, normalize_state

__all__ = [
    "COLLECTIONS",
    "FileStorage",
    "InvalidRecord",
    "MemoryStorage",
    "RecordNotFound",
    "StateGateway",
    "StateStorage",
    "StorageUnavailable",
    "StorageWriteFailure",
    "UnknownCollection",
    "empty_state",
    "find_record",
    "get_kind",
    "merge_collection",
    "merge_ids",
    "normalize_state",
    "recency_score",
    "reconcile",
    "remove_record",
    "sanitize",
    "update_record",
    "upsert_record",
]
