"""Startup/shutdown with the file backend: bootstrap, sync, persisted document."""

from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from backend.config import settings, validate_settings
from backend.main import app


@pytest.fixture
def data_file(tmp_path, monkeypatch):
    path = tmp_path / "data.json"
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "file")
    monkeypatch.setattr(settings, "DATA_FILE", str(path))
    return path


def test_first_start_writes_empty_document(data_file):
    with TestClient(app):
        pass
    assert json.loads(data_file.read_text(encoding="utf-8")) == {
        "recipes": [],
        "groceryList": [],
        "deletedRecipeIds": [],
        "deletedGroceryIds": [],
    }


def test_existing_document_kept(data_file):
    data_file.write_text(json.dumps({"recipes": [{"id": "r1"}], "groceryList": []}), encoding="utf-8")
    with TestClient(app) as client:
        res = client.get("/data")
    assert res.json()["recipes"] == [{"id": "r1"}]
    assert res.json()["deletedRecipeIds"] == []


def test_sync_persists_to_file(data_file):
    with TestClient(app) as client:
        res = client.post(
            "/data",
            json={
                "recipes": [{"id": "r1", "updatedAt": 1}],
                "groceryList": [],
                "deletedRecipeIds": [],
                "deletedGroceryIds": ["g1"],
            },
        )
    assert res.status_code == 200
    stored = json.loads(data_file.read_text(encoding="utf-8"))
    assert stored["recipes"] == [{"id": "r1", "updatedAt": 1}]
    assert stored["deletedGroceryIds"] == ["g1"]
    assert stored["lastUpdated"] == res.json()["lastUpdated"]


def test_corrupt_document_left_alone(data_file):
    data_file.write_text("{broken", encoding="utf-8")
    with TestClient(app) as client:
        res = client.get("/data")
    assert res.status_code == 200
    assert res.json()["recipes"] == []
    assert data_file.read_text(encoding="utf-8") == "{broken"


def test_undecodable_document_left_alone(data_file):
    data_file.write_bytes(b"\xff\xfe garbage")
    with TestClient(app) as client:
        res = client.get("/data")
    assert res.status_code == 200
    assert res.json()["recipes"] == []
    assert data_file.read_bytes() == b"\xff\xfe garbage"


def test_unknown_backend_rejected(monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "floppy")
    with pytest.raises(RuntimeError):
        validate_settings()


def test_postgres_requires_database_url(monkeypatch):
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "postgres")
    monkeypatch.setattr(settings, "DATABASE_URL", "")
    with pytest.raises(RuntimeError, match="DATABASE_URL"):
        validate_settings()
