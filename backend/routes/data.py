"""Snapshot sync routes — pull and push the full canonical state."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from backend.models.sync import SyncSnapshotRequest, SyncStateResponse
from backend.services.sync_service import SyncService, get_sync_service
from engine.sync import StorageWriteFailure

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/data", tags=["sync"])


@router.get("", status_code=200)
async def get_data(service: SyncService = Depends(get_sync_service)) -> SyncStateResponse:
    """Return the canonical state."""
    state = await service.pull()
    return SyncStateResponse(**state)


@router.post("", status_code=200)
async def post_data(
    req: SyncSnapshotRequest,
    service: SyncService = Depends(get_sync_service),
) -> SyncStateResponse:
    """
    Reconcile a client snapshot with the server state.

    Tombstones are unioned, collections merged record by record, then
    tombstoned ids are filtered out. The merged state is persisted and
    returned; the client should adopt it as its new local state.
    """
    try:
        state = await service.push(req.model_dump())
    except StorageWriteFailure:
        raise
    except Exception:
        logger.exception("sync: unexpected error while reconciling snapshot")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Failed to save data")
    return SyncStateResponse(**state)
