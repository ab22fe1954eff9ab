"""
Sync Engine — Store Gateway

Owns the persisted canonical state:

  initialize  — write an empty state if the medium holds none yet
  load        — read + normalize; an unreadable store yields an empty state
  save        — durable write; failures propagate
  exclusive   — single-writer critical section for read-modify-write cycles

Every write path must run load → merge → save inside one exclusive()
block, otherwise two submissions can both read state S and one of them
silently overwrites the other.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from engine.sync.storage import StateStorage, StorageUnavailable, StorageWriteFailure
from engine.sync.types import empty_state, normalize_state

logger = logging.getLogger(__name__)


class StateGateway:
    """
    Durable read/write of the canonical state behind one asyncio lock.

    One instance per process, created at startup and injected into the
    sync service. The lock is not reentrant: do not nest exclusive().
    """

    def __init__(self, storage: StateStorage):
        self._storage = storage
        self._lock = asyncio.Lock()

    @property
    def storage(self) -> StateStorage:
        return self._storage

    @property
    def locked(self) -> bool:
        """True while some caller is inside exclusive()."""
        return self._lock.locked()

    @asynccontextmanager
    async def exclusive(self) -> AsyncIterator[StateGateway]:
        """
        Hold the single-writer section for the duration of the block.

        Released on every exit path, including cancellation.

        Usage:
            async with gateway.exclusive():
                state = await gateway.load()
                await gateway.save(reconcile(state, snapshot))
        """
        async with self._lock:
            yield self

    # -- initialize --

    async def initialize(self) -> None:
        """Bootstrap the medium with an empty state on first start."""
        async with self.exclusive():
            try:
                existing = await self._storage.read()
            except StorageUnavailable as e:
                # Leave an unreadable store untouched for manual recovery
                logger.error("gateway: stored state unreadable at startup: %s", e)
                return
            if existing is None:
                await self.save(empty_state())
                logger.info("gateway: initialized empty state")

    # -- load --

    async def load(self) -> dict[str, Any]:
        """
        Read the canonical state.

        Falls back to an empty state when the store cannot be read. The
        fallback is not written back; the next successful save replaces
        whatever the store held.
        """
        try:
            raw = await self._storage.read()
        except StorageUnavailable as e:
            logger.error("gateway: error reading state, returning empty state: %s", e)
            return empty_state()
        if raw is None:
            return empty_state()
        return normalize_state(raw)

    # -- save --

    async def save(self, state: dict[str, Any]) -> None:
        """Write the canonical state. Raises StorageWriteFailure."""
        try:
            await self._storage.write(state)
        except StorageWriteFailure:
            logger.exception("gateway: error writing state")
            raise
        except Exception as e:
            logger.exception("gateway: error writing state")
            raise StorageWriteFailure(str(e)) from e

    async def close(self) -> None:
        await self._storage.close()
