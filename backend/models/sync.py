"""Sync models — snapshot exchange and single-record payloads."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SyncSnapshotRequest(BaseModel):
    """
    What a client sends to POST /data.

    Only the top-level shape is checked here. Elements are left as-is;
    the record merger drops anything that is not a valid record.
    """

    model_config = ConfigDict(extra="ignore")

    recipes: list[Any]
    groceryList: list[Any]
    deletedRecipeIds: list[Any]
    deletedGroceryIds: list[Any]


class SyncStateResponse(BaseModel):
    """Canonical state as returned by GET/POST /data."""

    recipes: list[Any] = Field(default_factory=list)
    groceryList: list[Any] = Field(default_factory=list)
    deletedRecipeIds: list[Any] = Field(default_factory=list)
    deletedGroceryIds: list[Any] = Field(default_factory=list)
    lastUpdated: str | None = None


class RecordRequest(BaseModel):
    """
    A single record write (POST/PUT/PATCH /api/{collection}).

    Arbitrary content fields are kept. id is optional on create; the
    server assigns one when it is missing.
    """

    model_config = ConfigDict(extra="allow")

    id: str | int | None = None
    updatedAt: int | float | str | None = None

    def fields(self) -> dict[str, Any]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class DeleteRecordResponse(BaseModel):
    """What DELETE /api/{collection}/{id} returns."""

    id: str
    removed: bool
    lastUpdated: str
