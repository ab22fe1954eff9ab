"""
PostgresStorage adapter for the sync engine.

Implements the StateStorage protocol using Postgres as the backend.
Expects a pool whose connections carry the JSONB codec (see backend.db).
The whole canonical state lives in a single JSONB row of sync_state.
"""

from __future__ import annotations

from typing import Any

import asyncpg

from engine.sync.storage import StateStorage, StorageUnavailable, StorageWriteFailure

STATE_ROW_ID = 1


class PostgresStorage(StateStorage):
    """
    Postgres-based storage for the canonical state.

    Uses one table:
    - sync_state: id (always 1), data JSONB, updated_at
    """

    def __init__(self, pool: asyncpg.Pool):
        self.pool = pool

    async def read(self) -> dict[str, Any] | None:
        """Fetch the state row. Returns None if it has not been written yet."""
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT data FROM sync_state WHERE id = $1",
                    STATE_ROW_ID,
                )
        except (asyncpg.PostgresError, OSError) as e:
            raise StorageUnavailable(f"cannot read sync_state: {e}") from e

        if row is None:
            return None
        data = row["data"]
        if not isinstance(data, dict):
            raise StorageUnavailable("sync_state does not hold a JSON object")
        return data

    async def write(self, state: dict[str, Any]) -> None:
        """Upsert the state row in one transaction."""
        try:
            async with self.pool.acquire() as conn:
                async with conn.transaction():
                    await conn.execute(
                        """
                        INSERT INTO sync_state (id, data, updated_at)
                        VALUES ($1, $2, now())
                        ON CONFLICT (id)
                        DO UPDATE SET data = EXCLUDED.data, updated_at = now()
                        """,
                        STATE_ROW_ID,
                        state,
                    )
        except (asyncpg.PostgresError, OSError, TypeError, ValueError) as e:
            raise StorageWriteFailure(f"cannot write sync_state: {e}") from e
