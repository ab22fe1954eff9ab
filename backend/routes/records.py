"""Single-record routes — list, get, create, replace, update, delete."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, status

from backend.models.sync import DeleteRecordResponse, RecordRequest
from backend.services.sync_service import SyncService, get_sync_service
from engine.sync import InvalidRecord, RecordNotFound, UnknownCollection

router = APIRouter(prefix="/api", tags=["records"])


def _unknown_collection(collection: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Unknown collection: {collection}")


def _not_found() -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Record not found.")


@router.get("/{collection}", status_code=200)
async def list_records(
    collection: str,
    service: SyncService = Depends(get_sync_service),
) -> list[Any]:
    """List a collection in display order."""
    try:
        return await service.list_records(collection)
    except UnknownCollection:
        raise _unknown_collection(collection)


@router.get("/{collection}/{record_id}", status_code=200)
async def get_record(
    collection: str,
    record_id: str,
    service: SyncService = Depends(get_sync_service),
) -> dict[str, Any]:
    """Get a single record by id."""
    try:
        return await service.get_record(collection, record_id)
    except UnknownCollection:
        raise _unknown_collection(collection)
    except RecordNotFound:
        raise _not_found()


@router.post("/{collection}", status_code=201)
async def create_record(
    collection: str,
    req: RecordRequest,
    service: SyncService = Depends(get_sync_service),
) -> dict[str, Any]:
    """
    Create a record.

    The server assigns a uuid4 id when the body has none. Creating an id
    that was deleted earlier restores it.
    """
    try:
        return await service.create_record(collection, req.fields())
    except UnknownCollection:
        raise _unknown_collection(collection)
    except InvalidRecord as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.put("/{collection}/{record_id}", status_code=200)
async def replace_record(
    collection: str,
    record_id: str,
    req: RecordRequest,
    service: SyncService = Depends(get_sync_service),
) -> dict[str, Any]:
    """Create or replace the record at record_id (restores a deleted id)."""
    try:
        return await service.replace_record(collection, record_id, req.fields())
    except UnknownCollection:
        raise _unknown_collection(collection)
    except InvalidRecord as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.patch("/{collection}/{record_id}", status_code=200)
async def update_record(
    collection: str,
    record_id: str,
    req: RecordRequest,
    service: SyncService = Depends(get_sync_service),
) -> dict[str, Any]:
    """Update some fields of an existing record."""
    try:
        return await service.patch_record(collection, record_id, req.fields())
    except UnknownCollection:
        raise _unknown_collection(collection)
    except RecordNotFound:
        raise _not_found()


@router.delete("/{collection}/{record_id}", status_code=200)
async def delete_record(
    collection: str,
    record_id: str,
    service: SyncService = Depends(get_sync_service),
) -> DeleteRecordResponse:
    """Delete a record. The id is tombstoned even if the record is unknown."""
    try:
        resolved, removed, last_updated = await service.delete_record(collection, record_id)
    except UnknownCollection:
        raise _unknown_collection(collection)
    return DeleteRecordResponse(id=str(resolved), removed=removed, lastUpdated=last_updated)
