"""
Pydantic models for recipe sync.

All data shapes defined here. No imports from services or routes.
"""

from backend.models.sync import (
    DeleteRecordResponse,
    RecordRequest,
    SyncSnapshotRequest,
    SyncStateResponse,
)

__all__ = [
    # Snapshot exchange
    "SyncSnapshotRequest",
    "SyncStateResponse",
    # Single-record writes
    "RecordRequest",
    "DeleteRecordResponse",
]
