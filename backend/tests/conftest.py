"""
Pytest configuration and fixtures for recipe sync backend tests.

Routes are exercised through the ASGI app with the sync service swapped
for one backed by MemoryStorage, so no files or database are touched.
"""

from __future__ import annotations

import httpx
import pytest_asyncio

from backend.main import app
from backend.services.sync_service import SyncService, get_sync_service
from engine.sync import MemoryStorage, StateGateway


@pytest_asyncio.fixture
async def storage():
    """Fresh in-memory storage, bootstrapped like a first start."""
    memory = MemoryStorage()
    await StateGateway(memory).initialize()
    return memory


@pytest_asyncio.fixture
async def service(storage):
    return SyncService(StateGateway(storage))


@pytest_asyncio.fixture
async def async_client(service):
    """Async HTTP client against the ASGI app."""
    app.dependency_overrides[get_sync_service] = lambda: service
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
    ) as client:
        yield client
    app.dependency_overrides.clear()
