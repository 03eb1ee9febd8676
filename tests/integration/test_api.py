"""
End-to-end tests for the HTTP API against a temp SQLite file and the in-memory store.
"""

import json
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from scholarvault.catalog.verification import MESSAGE_CONFIRMED
from scholarvault.models import (
    DatabaseConfig,
    LoggingConfig,
    SettingsConfig,
    StorageBackend,
    StorageConfig,
)
from scholarvault.web.app import create_app

PDF_BYTES = b"%PDF-1.7 quantum resistance in lattice schemes"
METADATA = {
    "title": "Quantum Resistance",
    "author": "Ada Lovelace",
    "abstract": "Lattice schemes under quantum attack.",
    "keywords": ["pqc"],
}


@pytest.fixture
def client(db_path, storage_handle, memory_store):
    settings = SettingsConfig(
        storage=StorageConfig(backend=StorageBackend.MEMORY),
        database=DatabaseConfig(path=db_path),
        logging=LoggingConfig(audit_dir=None),
    )
    app = create_app(settings=settings, storage=storage_handle)
    with TestClient(app) as test_client:
        yield test_client


def _upload(client, content=PDF_BYTES, metadata=None, path="/papers"):
    return client.post(
        path,
        files={"file": ("paper.pdf", content, "application/pdf")},
        data={"metadata": json.dumps(metadata or METADATA)},
    )


def test_health(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "storage": "memory"}


def test_upload_returns_created_record(client) -> None:
    response = _upload(client)

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["message"] == "Paper uploaded successfully"
    paper = body["data"]
    assert paper["version"] == 1
    assert paper["isVerified"] is False
    assert paper["fileSize"] == len(PDF_BYTES)
    assert paper["fileType"] == "application/pdf"
    assert paper["CID"].startswith("bafk")
    assert "parentCID" not in paper


def test_upload_missing_fields(client) -> None:
    response = _upload(client, metadata={"title": "Only title"})

    assert response.status_code == 400
    body = response.json()
    assert body["success"] is False
    assert body["error"] == "Missing required fields: author, abstract"
    assert [d["field"] for d in body["details"]] == ["author", "abstract"]


def test_upload_without_file(client) -> None:
    response = client.post("/papers", data={"metadata": json.dumps(METADATA)})

    assert response.status_code == 400
    assert response.json()["error"] == "No file provided"


def test_upload_bad_metadata_json(client) -> None:
    response = client.post(
        "/papers",
        files={"file": ("paper.pdf", PDF_BYTES, "application/pdf")},
        data={"metadata": "{not json"},
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid metadata JSON"


def test_upload_storage_outage(client, memory_store) -> None:
    memory_store.available = False

    response = _upload(client)

    assert response.status_code == 500
    assert response.json()["error"].startswith("Unable to connect to the storage network")
    assert client.get("/papers").json()["data"]["total"] == 0


def test_search_and_get(client) -> None:
    created = _upload(client).json()["data"]
    _upload(
        client,
        content=b"other",
        metadata={"title": "Graphs", "author": "Euler", "abstract": "Bridges."},
    )

    response = client.get("/papers", params={"query": "QUANTUM", "limit": 5})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["total"] == 1
    assert data["page"] == 1
    assert data["limit"] == 5
    assert [p["id"] for p in data["papers"]] == [created["id"]]

    response = client.get(f"/papers/{created['id']}")
    assert response.status_code == 200
    assert response.json()["data"] == created


def test_search_rejects_bad_paging(client) -> None:
    assert client.get("/papers", params={"page": 0}).status_code == 400
    assert client.get("/papers", params={"limit": 101}).status_code == 400


def test_get_unknown_paper(client) -> None:
    response = client.get("/papers/nope")

    assert response.status_code == 404
    assert response.json() == {"success": False, "error": "Paper not found"}


def test_verify_and_proofs(client, memory_store) -> None:
    paper = _upload(client).json()["data"]

    response = client.post(f"/papers/{paper['id']}/verify")
    assert response.status_code == 200
    outcome = response.json()["data"]
    assert outcome == {"isValid": True, "message": MESSAGE_CONFIRMED, "reason": "confirmed"}

    verified = client.get("/papers", params={"verified": "true"}).json()["data"]
    assert [p["id"] for p in verified["papers"]] == [paper["id"]]

    memory_store.available = False
    outcome = client.post(f"/papers/{paper['id']}/verify").json()["data"]
    assert outcome["isValid"] is False
    assert outcome["reason"] == "connectivity"

    proofs = client.get(f"/papers/{paper['id']}/proofs").json()["data"]
    assert [p["isValid"] for p in proofs] == [True, False]
    assert all(p["paperId"] == paper["id"] for p in proofs)


def test_verify_unknown_paper(client) -> None:
    response = client.post("/papers/nope/verify")
    assert response.status_code == 404


def test_versions(client) -> None:
    v1 = _upload(client).json()["data"]

    response = _upload(client, content=b"revised", path=f"/papers/{v1['id']}/versions")
    assert response.status_code == 201
    v2 = response.json()["data"]
    assert v2["version"] == 2
    assert v2["parentCID"] == v1["CID"]
    assert v2["parentId"] == v1["id"]

    chain = client.get(f"/papers/{v2['id']}/versions").json()["data"]
    assert [p["id"] for p in chain] == [v2["id"], v1["id"]]


def test_download(client) -> None:
    paper = _upload(client).json()["data"]

    response = client.get(f"/papers/{paper['id']}/download")

    assert response.status_code == 200
    assert response.content == PDF_BYTES
    assert response.headers["content-type"] == "application/pdf"
    assert response.headers["x-content-cid"] == paper["CID"]
    assert 'filename="Quantum_Resistance.pdf"' in response.headers["content-disposition"]


def test_unexpected_error_keeps_envelope_and_cors_headers(client, monkeypatch) -> None:
    monkeypatch.setattr(
        "scholarvault.web.app.CatalogService.get_by_id",
        AsyncMock(side_effect=RuntimeError("database exploded")),
    )

    response = client.get("/papers/anything", headers={"Origin": "https://ui.example"})

    assert response.status_code == 500
    assert response.json() == {"success": False, "error": "database exploded"}
    assert response.headers["access-control-allow-origin"] == "*"
