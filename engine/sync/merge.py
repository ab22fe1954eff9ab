"""
Sync Engine — Record Merger

Merges the server's copy of a collection with a client's copy:

    merge_collection(server_items, client_items) → merged_items

Rules:
  1. Anything that is not a dict with a non-empty id is dropped first.
  2. Per id, the record with the newer updatedAt wins; on a tie the
     later-scanned record (the client's) wins.
  3. A winning edit that lacks the heavy field (e.g. an embedded image)
     inherits it from the losing record instead of deleting it.
  4. The list with the higher median updatedAt decides the order. A full
     manual reorder touches every timestamp and lifts the median; a single
     edit barely moves it. The client wins ties.
  5. Ids missing from the authoritative list are appended in the order the
     other list had them.

Pure functions. Never raise on malformed input, never mutate their inputs.
"""

from __future__ import annotations

import statistics
from typing import Any

from engine.sync.types import is_valid_record, timestamp_of


def sanitize(items: Any) -> list[dict[str, Any]]:
    """Valid records from a list-like input, in order. Anything else yields []."""
    if not isinstance(items, (list, tuple)):
        return []
    return [item for item in items if is_valid_record(item)]


def recency_score(items: list[dict[str, Any]]) -> float:
    """Median updatedAt of a list of records (0 for an empty list)."""
    if not items:
        return 0.0
    return statistics.median(timestamp_of(item) for item in items)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == {}


def _resolve(
    current: dict[str, Any],
    candidate: dict[str, Any],
    heavy_field: str | None,
    content_field: str | None,
) -> dict[str, Any]:
    """Pick the winner of two versions of one record, protecting the heavy field."""
    if timestamp_of(candidate) >= timestamp_of(current):
        winner, loser = candidate, current
    else:
        winner, loser = current, candidate

    if heavy_field is None:
        return winner
    if not _is_empty(winner.get(heavy_field)) or _is_empty(loser.get(heavy_field)):
        return winner
    # A thin payload without real content must not borrow the heavy field
    if content_field is not None and _is_empty(winner.get(content_field)):
        return winner

    merged = dict(winner)
    merged[heavy_field] = loser[heavy_field]
    return merged


def _id_order(items: list[dict[str, Any]]) -> list[Any]:
    order: list[Any] = []
    seen: set[Any] = set()
    for item in items:
        if item["id"] not in seen:
            seen.add(item["id"])
            order.append(item["id"])
    return order


def merge_collection(
    server_items: Any,
    client_items: Any,
    heavy_field: str | None = None,
    content_field: str | None = None,
) -> list[dict[str, Any]]:
    """
    Merge server and client versions of one collection.

    Args:
        server_items: The persisted collection (arbitrary values tolerated)
        client_items: The submitted collection (arbitrary values tolerated)
        heavy_field: Field copied from the losing record when the winner
            dropped it (None disables the rule)
        content_field: Field that must be populated on the winner for the
            heavy-field copy to apply (None: any winner qualifies)

    Returns:
        New list of merged records, one per id, in authoritative order
    """
    server = sanitize(server_items)
    client = sanitize(client_items)

    winners: dict[Any, dict[str, Any]] = {}
    for item in server + client:
        record_id = item["id"]
        current = winners.get(record_id)
        if current is None:
            winners[record_id] = item
        else:
            winners[record_id] = _resolve(current, item, heavy_field, content_field)

    if recency_score(client) >= recency_score(server):
        authoritative, other = client, server
    else:
        authoritative, other = server, client

    order = _id_order(authoritative)
    placed = set(order)
    order.extend(record_id for record_id in _id_order(other) if record_id not in placed)

    return [dict(winners[record_id]) for record_id in order]
