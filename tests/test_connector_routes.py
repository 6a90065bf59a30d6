"""
Tests for the HTTP endpoints: login, health and the connector
"""

import json
import sys
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import database
import server
from token_codec import EncodePathToken


@pytest.fixture
def client(tmp_path, monkeypatch):
    """Server running against a config file in a temporary directory"""
    config_file = tmp_path / "config.json"
    config_file.write_text(json.dumps({
        "root_path": str(tmp_path / "files"),
        "chunk_path": str(tmp_path / "chunks"),
        "database_path": str(tmp_path / "database" / "filekeep.db"),
        "allowed_mime_types": None
    }))
    monkeypatch.setenv("FILEKEEP_CONFIG", str(config_file))

    with TestClient(server.app) as test_client:
        database.db_manager.CreateUser("carol", "carol-password", "Standard User")
        database.db_manager.CreateUser("viewer", "viewer-password", "Read-Only")
        yield test_client


def Login(client, username="carol", password="carol-password") -> dict:
    response = client.post("/auth/login", json={"username": username, "password": password})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


def test_startup_prepares_storage(client, tmp_path):
    assert (tmp_path / "files").is_dir()
    assert (tmp_path / "files" / ".trash").is_dir()
    assert (tmp_path / "chunks").is_dir()
    assert (tmp_path / "database" / "filekeep.db").exists()


def test_login_rejects_bad_password(client):
    response = client.post("/auth/login", json={"username": "carol", "password": "wrong"})
    assert response.status_code == 401


def test_connector_requires_token(client):
    response = client.get("/connector", params={"cmd": "open"})
    assert response.status_code in (401, 403)


def test_open_upload_download(client):
    headers = Login(client)

    response = client.post(
        "/connector",
        data={"cmd": "upload", "target": ""},
        files={"upload[]": ("hello.txt", b"hello", "text/plain")},
        headers=headers
    )
    assert response.status_code == 200
    assert response.json()["added"][0]["name"] == "hello.txt"

    response = client.get("/connector", params={"cmd": "open", "target": ""}, headers=headers)
    assert response.status_code == 200
    names = [entry["name"] for entry in response.json()["files"]]
    assert "hello.txt" in names

    response = client.get(
        "/connector",
        params={"cmd": "download", "target": EncodePathToken("hello.txt")},
        headers=headers
    )
    assert response.status_code == 200
    assert response.content == b"hello"
    assert response.headers["content-type"] == "application/octet-stream"
    assert response.headers["content-disposition"] == 'attachment; filename="hello.txt"'
    assert response.headers["content-length"] == "5"
    assert "no-cache" in response.headers["cache-control"]


def test_delete_with_list_parameters(client, tmp_path):
    headers = Login(client)
    (tmp_path / "files" / "a.txt").write_text("a")
    (tmp_path / "files" / "b.txt").write_text("b")
    tokens = [EncodePathToken("a.txt"), EncodePathToken("b.txt")]

    response = client.post("/connector", data={"cmd": "delete", "targets[]": tokens}, headers=headers)
    assert response.status_code == 200
    assert response.json() == {"removed": tokens}
    assert (tmp_path / "files" / ".trash" / "a.txt").exists()

    response = client.post(
        "/connector",
        data={"cmd": "restore", "hashes[]": [EncodePathToken(".trash/a.txt")]},
        headers=headers
    )
    assert response.json()["success"] == 1
    assert (tmp_path / "files" / "a.txt").exists()


def test_error_payloads(client):
    headers = Login(client)

    response = client.get("/connector", params={"cmd": "bogus"}, headers=headers)
    assert response.status_code == 400
    assert response.json() == {"error": "Unknown command: bogus", "code": 400}

    response = client.get("/connector", params={"cmd": "open", "target": "Li4vZXRj"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["code"] == 403


def test_read_only_role(client):
    headers = Login(client, "viewer", "viewer-password")

    response = client.get("/connector", params={"cmd": "open"}, headers=headers)
    assert response.status_code == 200
    assert "quota" in response.json()

    response = client.post("/connector", data={"cmd": "mkdir", "name": "x"}, headers=headers)
    assert response.status_code == 403
    assert response.json()["error"] == "Permission denied"
