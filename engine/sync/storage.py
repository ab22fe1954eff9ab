"""
Storage backends for the canonical state document.

The gateway only needs two operations:
  read()       → the stored document, or None when nothing was written yet
  write(state) → replace the stored document atomically

Backends raise StorageUnavailable when the document cannot be read and
StorageWriteFailure when it cannot be durably written.
"""

from __future__ import annotations

import asyncio
import copy
import json
import os
import tempfile
from pathlib import Path
from typing import Any


class StorageUnavailable(Exception):
    """The stored document exists but cannot be read or parsed."""

    pass


class StorageWriteFailure(Exception):
    """The document could not be durably written."""

    pass


class StateStorage:
    """
    Abstract storage interface.
    Implement with a file or Postgres for production, or in-memory for tests.
    """

    async def read(self) -> dict[str, Any] | None:
        """Fetch the state document. Returns None if nothing is stored."""
        raise NotImplementedError

    async def write(self, state: dict[str, Any]) -> None:
        """Replace the state document."""
        raise NotImplementedError

    async def close(self) -> None:
        """Release backend resources."""
        return None


class MemoryStorage(StateStorage):
    """In-memory storage for testing."""

    def __init__(self, state: dict[str, Any] | None = None) -> None:
        self.state: dict[str, Any] | None = copy.deepcopy(state)
        self.fail_reads = False
        self.fail_writes = False
        self.writes = 0

    async def read(self) -> dict[str, Any] | None:
        if self.fail_reads:
            raise StorageUnavailable("memory storage read failure")
        return copy.deepcopy(self.state)

    async def write(self, state: dict[str, Any]) -> None:
        if self.fail_writes:
            raise StorageWriteFailure("memory storage write failure")
        self.state = copy.deepcopy(state)
        self.writes += 1


class FileStorage(StateStorage):
    """
    JSON file storage.

    Writes go to a temporary file in the same directory which is fsynced
    and then renamed over the target, so readers never see a partial file.
    Blocking file I/O runs in a worker thread.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    async def read(self) -> dict[str, Any] | None:
        return await asyncio.to_thread(self._read_sync)

    async def write(self, state: dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_sync, state)

    def _read_sync(self) -> dict[str, Any] | None:
        try:
            content = self.path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageUnavailable(f"cannot read {self.path}: {e}") from e

        # ValueError covers undecodable bytes as well as malformed JSON
        try:
            data = json.loads(content.decode("utf-8"))
        except (ValueError, RecursionError) as e:
            raise StorageUnavailable(f"invalid JSON in {self.path}: {e}") from e
        if not isinstance(data, dict):
            raise StorageUnavailable(f"{self.path} does not hold a JSON object")
        return data

    def _write_sync(self, state: dict[str, Any]) -> None:
        try:
            payload = json.dumps(state, indent=2, ensure_ascii=False)
        except (TypeError, ValueError) as e:
            raise StorageWriteFailure(f"state is not JSON serializable: {e}") from e

        tmp_name: str | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, self.path)
            tmp_name = None
        except OSError as e:
            raise StorageWriteFailure(f"cannot write {self.path}: {e}") from e
        finally:
            if tmp_name is not None:
                try:
                    os.unlink(tmp_name)
                except OSError:
                    pass
