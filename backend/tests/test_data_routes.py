"""Integration tests for the snapshot sync routes (GET/POST /data)."""

from __future__ import annotations

import asyncio
import json
import logging

import pytest

from backend.config import settings

pytestmark = pytest.mark.asyncio


def snapshot(recipes=(), grocery=(), deleted_recipes=(), deleted_grocery=()):
    return {
        "recipes": list(recipes),
        "groceryList": list(grocery),
        "deletedRecipeIds": list(deleted_recipes),
        "deletedGroceryIds": list(deleted_grocery),
    }


# ── GET /data ──────────────────────────────────────────────────────────────


class TestGetData:
    async def test_empty_state(self, async_client):
        res = await async_client.get("/data")
        assert res.status_code == 200
        body = res.json()
        assert body["recipes"] == []
        assert body["groceryList"] == []
        assert body["deletedRecipeIds"] == []
        assert body["deletedGroceryIds"] == []

    async def test_unreadable_store_serves_empty_state(self, async_client, storage):
        storage.state = {**snapshot(recipes=[{"id": "r1"}])}
        storage.fail_reads = True
        res = await async_client.get("/data")
        assert res.status_code == 200
        assert res.json()["recipes"] == []


# ── POST /data ─────────────────────────────────────────────────────────────


class TestPostData:
    async def test_merges_and_persists(self, async_client, storage):
        res = await async_client.post(
            "/data",
            json=snapshot(recipes=[{"id": "r1", "title": "Soup", "updatedAt": 1}], grocery=[{"id": "g1"}]),
        )
        assert res.status_code == 200
        body = res.json()
        assert [r["id"] for r in body["recipes"]] == ["r1"]
        assert body["lastUpdated"].endswith("Z")
        assert storage.state["recipes"] == [{"id": "r1", "title": "Soup", "updatedAt": 1}]
        assert storage.state["groceryList"] == [{"id": "g1"}]

    async def test_missing_array_is_client_error(self, async_client, storage):
        writes_before = storage.writes
        res = await async_client.post("/data", json={"recipes": [], "groceryList": []})
        assert res.status_code == 400
        assert storage.writes == writes_before

    async def test_wrong_type_is_client_error(self, async_client):
        body = snapshot()
        body["recipes"] = {"id": "r1"}
        res = await async_client.post("/data", json=body)
        assert res.status_code == 400

    async def test_non_object_body_is_client_error(self, async_client):
        res = await async_client.post("/data", json=[1, 2, 3])
        assert res.status_code == 400

    async def test_malformed_elements_ignored(self, async_client):
        res = await async_client.post(
            "/data",
            json=snapshot(recipes=[None, 42, {}, {"title": "no id"}, {"id": "ok"}], deleted_recipes=[None, {}]),
        )
        assert res.status_code == 200
        assert [r["id"] for r in res.json()["recipes"]] == ["ok"]
        assert res.json()["deletedRecipeIds"] == []

    async def test_write_failure_reports_500_and_commits_nothing(self, async_client, storage):
        storage.fail_writes = True
        res = await async_client.post("/data", json=snapshot(recipes=[{"id": "r1"}]))
        assert res.status_code == 500
        assert res.json() == {"detail": "Failed to save data"}
        assert storage.state["recipes"] == []

    async def test_unexpected_error_logged_and_reported(self, async_client, service, monkeypatch, caplog):
        async def broken_push(_snapshot):
            raise RuntimeError("merge exploded")

        monkeypatch.setattr(service, "push", broken_push)
        with caplog.at_level(logging.ERROR, logger="backend.routes.data"):
            res = await async_client.post("/data", json=snapshot(recipes=[{"id": "r1"}]))
        assert res.status_code == 500
        assert res.json() == {"detail": "Failed to save data"}
        assert any(record.exc_info and "merge exploded" in str(record.exc_info[1]) for record in caplog.records)

    async def test_body_too_large(self, async_client, monkeypatch):
        monkeypatch.setattr(settings, "MAX_BODY_BYTES", 32)
        res = await async_client.post("/data", json=snapshot(recipes=[{"id": "x" * 64}]))
        assert res.status_code == 413

    async def test_chunked_body_too_large(self, async_client, monkeypatch, storage):
        monkeypatch.setattr(settings, "MAX_BODY_BYTES", 32)
        payload = json.dumps(snapshot(recipes=[{"id": "x" * 200}])).encode()

        async def chunks():
            for start in range(0, len(payload), 16):
                yield payload[start : start + 16]

        res = await async_client.post("/data", content=chunks(), headers={"content-type": "application/json"})
        assert res.status_code == 413
        assert storage.state["recipes"] == []

    async def test_chunked_body_within_limit_reaches_route(self, async_client):
        payload = json.dumps(snapshot(recipes=[{"id": "r1", "updatedAt": 1}])).encode()

        async def chunks():
            yield payload[:10]
            yield payload[10:]

        res = await async_client.post("/data", content=chunks(), headers={"content-type": "application/json"})
        assert res.status_code == 200
        assert [r["id"] for r in res.json()["recipes"]] == ["r1"]

    async def test_extra_top_level_fields_ignored(self, async_client):
        res = await async_client.post("/data", json={**snapshot(), "lastUpdated": "whenever", "device": "phone"})
        assert res.status_code == 200
        assert "device" not in res.json()


# ── multi-device scenarios ─────────────────────────────────────────────────


class TestDevices:
    async def test_deletion_survives_stale_device(self, async_client):
        both = snapshot(recipes=[{"id": "r1", "updatedAt": 1}, {"id": "r2", "updatedAt": 1}])
        await async_client.post("/data", json=both)

        # Device A deletes r1
        res = await async_client.post(
            "/data",
            json=snapshot(recipes=[{"id": "r2", "updatedAt": 1}], deleted_recipes=["r1"]),
        )
        assert [r["id"] for r in res.json()["recipes"]] == ["r2"]

        # Device B syncs its stale copy, which still has r1
        res = await async_client.post("/data", json=both)
        assert [r["id"] for r in res.json()["recipes"]] == ["r2"]
        assert res.json()["deletedRecipeIds"] == ["r1"]

    async def test_image_not_lost_to_stale_cache(self, async_client):
        await async_client.post(
            "/data",
            json=snapshot(recipes=[{"id": "r1", "instructions": "old", "image": "data:image/png;base64,AAA", "updatedAt": 1}]),
        )
        res = await async_client.post(
            "/data",
            json=snapshot(recipes=[{"id": "r1", "instructions": "new", "updatedAt": 2}]),
        )
        recipe = res.json()["recipes"][0]
        assert recipe["instructions"] == "new"
        assert recipe["image"] == "data:image/png;base64,AAA"

    async def test_concurrent_pushes_lose_nothing(self, async_client):
        pushes = [
            async_client.post("/data", json=snapshot(grocery=[{"id": f"g{n}", "updatedAt": n}]))
            for n in range(10)
        ]
        results = await asyncio.gather(*pushes)
        assert all(res.status_code == 200 for res in results)

        res = await async_client.get("/data")
        assert sorted(item["id"] for item in res.json()["groceryList"]) == sorted(f"g{n}" for n in range(10))
