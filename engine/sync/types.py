"""
Sync Engine — Shared Types

Collection registry, canonical state helpers and timestamp handling used by
the merger, the pipeline and the storage gateway.

Canonical state layout (one JSON document):

    {
      "recipes": [...],            ordered records
      "groceryList": [...],        ordered records
      "deletedRecipeIds": [...],   tombstones for recipes
      "deletedGroceryIds": [...],  tombstones for groceryList
      "lastUpdated": "...Z"        set by every successful write
    }
"""

from __future__ import annotations

import copy
import math
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

# ---------------------------------------------------------------------------
# Collection registry
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class CollectionKind:
    """One tracked collection and the state keys that belong to it."""

    name: str
    tombstone_key: str
    heavy_field: str | None = None  # protected from accidental loss on merge
    content_field: str | None = None  # populated only by a genuine content edit


RECIPES = CollectionKind(
    name="recipes",
    tombstone_key="deletedRecipeIds",
    heavy_field="image",
    content_field="instructions",
)

GROCERY_LIST = CollectionKind(
    name="groceryList",
    tombstone_key="deletedGroceryIds",
)

COLLECTIONS: tuple[CollectionKind, ...] = (RECIPES, GROCERY_LIST)

_BY_NAME: dict[str, CollectionKind] = {kind.name: kind for kind in COLLECTIONS}


class UnknownCollection(Exception):
    """Raised when a collection name is not in the registry."""

    pass


def get_kind(name: str) -> CollectionKind:
    kind = _BY_NAME.get(name)
    if kind is None:
        raise UnknownCollection(name)
    return kind


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


def is_valid_id(value: Any) -> bool:
    """Non-empty string, or an int that is not a bool."""
    if isinstance(value, bool):
        return False
    if isinstance(value, str):
        return value.strip() != ""
    return isinstance(value, int)


def is_valid_record(value: Any) -> bool:
    return isinstance(value, dict) and is_valid_id(value.get("id"))


def _finite(value: float | int) -> float:
    """Float epoch ms, or 0.0 for values no float can hold."""
    try:
        value = float(value)
    except OverflowError:
        return 0.0
    return value if math.isfinite(value) else 0.0


def _parse_timestamp(raw: Any) -> float:
    if isinstance(raw, bool) or raw is None:
        return 0.0
    if isinstance(raw, (int, float)):
        return _finite(raw)
    if isinstance(raw, str):
        text = raw.strip()
        if not text:
            return 0.0
        try:
            value = float(text)
        except ValueError:
            pass
        else:
            return _finite(value)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            return 0.0
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=UTC)
        return parsed.timestamp() * 1000
    return 0.0


def timestamp_of(record: dict[str, Any]) -> float:
    """
    Last-modified time of a record in epoch milliseconds.

    Missing or unreadable values count as 0 (the epoch), so untimestamped
    records lose every freshness comparison against timestamped ones.
    """
    return _parse_timestamp(record.get("updatedAt"))


# ---------------------------------------------------------------------------
# Canonical state
# ---------------------------------------------------------------------------


def empty_state() -> dict[str, Any]:
    """Fresh canonical state with every collection and tombstone set empty."""
    state: dict[str, Any] = {}
    for kind in COLLECTIONS:
        state[kind.name] = []
        state[kind.tombstone_key] = []
    return state


def normalize_state(raw: Any) -> dict[str, Any]:
    """
    Deep-copy a stored or submitted state into canonical shape.

    Missing or non-list collection/tombstone fields become empty lists so
    documents written before tombstones existed still load.
    Unknown top-level keys are dropped.
    """
    source = raw if isinstance(raw, dict) else {}
    state: dict[str, Any] = {}
    for kind in COLLECTIONS:
        items = source.get(kind.name)
        ids = source.get(kind.tombstone_key)
        state[kind.name] = copy.deepcopy(items) if isinstance(items, list) else []
        state[kind.tombstone_key] = list(ids) if isinstance(ids, list) else []
    if isinstance(source.get("lastUpdated"), str):
        state["lastUpdated"] = source["lastUpdated"]
    return state


def now_iso() -> str:
    """Current UTC time as ISO 8601 string with milliseconds."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def now_ms() -> int:
    """Current UTC time in epoch milliseconds."""
    return int(datetime.now(UTC).timestamp() * 1000)
