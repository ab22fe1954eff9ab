"""
Sync service — runs the reconciliation pipeline against the store gateway.

Every write goes through gateway.exclusive(): load, apply the pure
engine function, save. If save raises, nothing is committed and the
error propagates to the route.
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from fastapi import Request

from engine.sync import (
    COLLECTIONS,
    StateGateway,
    find_record,
    get_kind,
    reconcile,
    remove_record,
    update_record,
    upsert_record,
)

logger = logging.getLogger(__name__)


def _resolve_id(state: dict[str, Any], kind_name: str, raw_id: Any) -> Any:
    """
    Map an id taken from a URL path onto the id stored in the collection.

    Paths are always strings; records and tombstones created with integer
    ids still match.
    """
    kind = get_kind(kind_name)
    for record in state.get(kind.name) or []:
        if isinstance(record, dict) and str(record.get("id")) == str(raw_id):
            return record["id"]
    for deleted_id in state.get(kind.tombstone_key) or []:
        if str(deleted_id) == str(raw_id):
            return deleted_id
    return raw_id


class SyncService:
    """Snapshot sync plus single-record create/update/delete."""

    def __init__(self, gateway: StateGateway):
        self.gateway = gateway

    # -- reads --

    async def pull(self) -> dict[str, Any]:
        """Current canonical state."""
        return await self.gateway.load()

    async def list_records(self, kind_name: str) -> list[dict[str, Any]]:
        kind = get_kind(kind_name)
        state = await self.gateway.load()
        return state[kind.name]

    async def get_record(self, kind_name: str, record_id: Any) -> dict[str, Any]:
        """Raises RecordNotFound."""
        state = await self.gateway.load()
        return find_record(state, kind_name, _resolve_id(state, kind_name, record_id))

    # -- snapshot exchange --

    async def push(self, snapshot: dict[str, Any]) -> dict[str, Any]:
        """
        Reconcile a client snapshot into the canonical state.

        Returns:
            The new canonical state, already persisted

        Raises:
            StorageWriteFailure: the merge was not committed
        """
        async with self.gateway.exclusive():
            server_state = await self.gateway.load()
            next_state = reconcile(server_state, snapshot)
            await self.gateway.save(next_state)

        logger.info(
            "sync: reconciled snapshot (%s)",
            ", ".join(
                f"{kind.name}={len(next_state[kind.name])}/{len(next_state[kind.tombstone_key])} deleted"
                for kind in COLLECTIONS
            ),
        )
        return next_state

    # -- single-record writes --

    async def create_record(self, kind_name: str, fields: dict[str, Any]) -> dict[str, Any]:
        """Create (or overwrite) a record. Assigns a uuid4 id when none is given."""
        get_kind(kind_name)
        record = dict(fields)
        if record.get("id") in (None, ""):
            record["id"] = str(uuid.uuid4())

        async with self.gateway.exclusive():
            state = await self.gateway.load()
            next_state, stored = upsert_record(state, kind_name, record)
            await self.gateway.save(next_state)

        logger.info("sync: created %s/%s", kind_name, stored["id"])
        return stored

    async def replace_record(self, kind_name: str, record_id: Any, fields: dict[str, Any]) -> dict[str, Any]:
        """Create-or-replace a record at a fixed id."""
        get_kind(kind_name)
        async with self.gateway.exclusive():
            state = await self.gateway.load()
            resolved = _resolve_id(state, kind_name, record_id)
            next_state, stored = upsert_record(state, kind_name, {**fields, "id": resolved})
            await self.gateway.save(next_state)

        logger.info("sync: replaced %s/%s", kind_name, resolved)
        return stored

    async def patch_record(self, kind_name: str, record_id: Any, fields: dict[str, Any]) -> dict[str, Any]:
        """Partial update. Raises RecordNotFound."""
        get_kind(kind_name)
        changes = {key: value for key, value in fields.items() if key != "id"}
        async with self.gateway.exclusive():
            state = await self.gateway.load()
            resolved = _resolve_id(state, kind_name, record_id)
            next_state, stored = update_record(state, kind_name, resolved, changes)
            await self.gateway.save(next_state)

        logger.info("sync: updated %s/%s", kind_name, resolved)
        return stored

    async def delete_record(self, kind_name: str, record_id: Any) -> tuple[Any, bool, str]:
        """
        Delete a record and tombstone its id.

        Returns:
            (resolved id, whether a record was removed, new lastUpdated)
        """
        get_kind(kind_name)
        async with self.gateway.exclusive():
            state = await self.gateway.load()
            resolved = _resolve_id(state, kind_name, record_id)
            next_state, removed = remove_record(state, kind_name, resolved)
            await self.gateway.save(next_state)

        logger.info("sync: deleted %s/%s (present=%s)", kind_name, resolved, removed)
        return resolved, removed, next_state["lastUpdated"]


def get_sync_service(request: Request) -> SyncService:
    """FastAPI dependency: the service created in the app lifespan."""
    return request.app.state.sync_service
