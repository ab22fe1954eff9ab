"""
Sync Engine — Reconciliation Pipeline

(server_state, client_snapshot) → next_state  (pure, deterministic given `now`)

Order matters:
  1. merge tombstones for every collection
  2. merge every collection
  3. drop merged records whose id is tombstoned
  4. stamp lastUpdated

Filtering after merging means a deletion that already reached the server
is honoured even when a stale client still carries the record.

Single-record writes (upsert_record, update_record, remove_record) skip the
collection merge. An explicit create/update lifts the id out of the
tombstone set; a delete puts it in.
"""

from __future__ import annotations

import logging
from typing import Any

from engine.sync.merge import merge_collection
from engine.sync.tombstones import merge_ids
from engine.sync.types import (
    COLLECTIONS,
    CollectionKind,
    get_kind,
    is_valid_record,
    normalize_state,
    now_iso,
    now_ms,
)

logger = logging.getLogger(__name__)


class RecordNotFound(Exception):
    """Raised when a single-record update targets an id that does not exist."""

    pass


class InvalidRecord(Exception):
    """Raised when a single-record write is not a dict with a non-empty id."""

    pass


# ---------------------------------------------------------------------------
# Bulk reconciliation
# ---------------------------------------------------------------------------


def reconcile(
    server_state: dict[str, Any],
    client_snapshot: dict[str, Any],
    now: str | None = None,
) -> dict[str, Any]:
    """
    Merge a client snapshot into the server state.

    Args:
        server_state: Current canonical state (not mutated)
        client_snapshot: Snapshot submitted by a client (not mutated)
        now: lastUpdated value to stamp; defaults to the current UTC time

    Returns:
        The next canonical state
    """
    server = normalize_state(server_state)
    client = normalize_state(client_snapshot)

    next_state: dict[str, Any] = {}

    # 1. Complete deletion knowledge first
    tombstones: dict[str, list[Any]] = {}
    for kind in COLLECTIONS:
        tombstones[kind.name] = merge_ids(server[kind.tombstone_key], client[kind.tombstone_key])

    for kind in COLLECTIONS:
        # 2. Merge
        merged = merge_collection(
            server[kind.name],
            client[kind.name],
            heavy_field=kind.heavy_field,
            content_field=kind.content_field,
        )
        # 3. Filter
        deleted = set(tombstones[kind.name])
        next_state[kind.name] = [record for record in merged if record["id"] not in deleted]
        next_state[kind.tombstone_key] = tombstones[kind.name]

        logger.debug(
            "reconcile: %s server=%d client=%d merged=%d tombstones=%d",
            kind.name,
            len(server[kind.name]),
            len(client[kind.name]),
            len(next_state[kind.name]),
            len(tombstones[kind.name]),
        )

    next_state["lastUpdated"] = now or now_iso()
    return next_state


# ---------------------------------------------------------------------------
# Single-record writes
# ---------------------------------------------------------------------------


def _restore(state: dict[str, Any], kind: CollectionKind, record_id: Any) -> None:
    state[kind.tombstone_key] = [i for i in state[kind.tombstone_key] if i != record_id]


def _index_of(records: list[Any], record_id: Any) -> int | None:
    for index, record in enumerate(records):
        if is_valid_record(record) and record["id"] == record_id:
            return index
    return None


def find_record(state: dict[str, Any], kind_name: str, record_id: Any) -> dict[str, Any]:
    """Return a copy of one record, or raise RecordNotFound."""
    kind = get_kind(kind_name)
    records = state.get(kind.name) or []
    index = _index_of(records, record_id)
    if index is None:
        raise RecordNotFound(record_id)
    return dict(records[index])


def upsert_record(
    state: dict[str, Any],
    kind_name: str,
    record: dict[str, Any],
    now: str | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Create or replace one record by id and restore it from the tombstones.

    Replaces in place when the id exists, appends otherwise. A record
    without updatedAt is stamped with the current time.

    Returns:
        (next_state, stored_record)
    """
    kind = get_kind(kind_name)
    if not is_valid_record(record):
        raise InvalidRecord("record must be an object with a non-empty id")

    next_state = normalize_state(state)
    stored = dict(record)
    if stored.get("updatedAt") is None:
        stored["updatedAt"] = now_ms()

    records = next_state[kind.name]
    index = _index_of(records, stored["id"])
    if index is None:
        records.append(stored)
    else:
        records[index] = stored

    _restore(next_state, kind, stored["id"])
    next_state["lastUpdated"] = now or now_iso()
    return next_state, dict(stored)


def update_record(
    state: dict[str, Any],
    kind_name: str,
    record_id: Any,
    fields: dict[str, Any],
    now: str | None = None,
) -> tuple[dict[str, Any], dict[str, Any]]:
    """
    Shallow-merge fields into an existing record.

    The id never changes. updatedAt is restamped unless fields carries one.
    Raises RecordNotFound when the id is not in the collection.

    Returns:
        (next_state, stored_record)
    """
    kind = get_kind(kind_name)
    next_state = normalize_state(state)
    records = next_state[kind.name]
    index = _index_of(records, record_id)
    if index is None:
        raise RecordNotFound(record_id)

    stored = {**records[index], **fields, "id": record_id}
    if fields.get("updatedAt") is None:
        stored["updatedAt"] = now_ms()
    records[index] = stored

    _restore(next_state, kind, record_id)
    next_state["lastUpdated"] = now or now_iso()
    return next_state, dict(stored)


def remove_record(
    state: dict[str, Any],
    kind_name: str,
    record_id: Any,
    now: str | None = None,
) -> tuple[dict[str, Any], bool]:
    """
    Delete one record and tombstone its id.

    Deleting an id the server never saw still records the tombstone, so a
    client that created the record offline cannot resurrect it later.

    Returns:
        (next_state, whether a record was removed)
    """
    kind = get_kind(kind_name)
    next_state = normalize_state(state)
    records = next_state[kind.name]
    index = _index_of(records, record_id)
    if index is not None:
        del records[index]

    next_state[kind.tombstone_key] = merge_ids(next_state[kind.tombstone_key], [record_id])
    next_state["lastUpdated"] = now or now_iso()
    return next_state, index is not None
