"""Tombstone sets: ids of deleted records, merged by union."""

from __future__ import annotations

from collections.abc import Iterable
from typing import Any

from engine.sync.types import is_valid_id


def merge_ids(existing_ids: Iterable[Any] | None, incoming_ids: Iterable[Any] | None) -> list[Any]:
    """
    Union two tombstone lists.

    Existing ids keep their order, new ids follow in incoming order.
    None counts as empty. Entries that cannot be record ids are dropped, so a
    malformed tombstone never raises. No id is ever removed here.
    """
    merged: list[Any] = []
    seen: set[Any] = set()
    for ids in (existing_ids or (), incoming_ids or ()):
        for record_id in ids:
            if not is_valid_id(record_id) or record_id in seen:
                continue
            seen.add(record_id)
            merged.append(record_id)
    return merged
