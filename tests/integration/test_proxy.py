from __future__ import annotations

from types import SimpleNamespace

import pytest
import requests
from fastapi.testclient import TestClient

from recruitdesk.api import routes


def test_proxy_requires_session_cookie(client: TestClient, bearer_headers: dict[str, str]) -> None:
    response = client.post("/api/internal/proxy", json={"path": "/api/vacancies"}, headers=bearer_headers)
    assert response.status_code == 401


def test_proxy_rejects_paths_outside_allow_list(admin_client: TestClient) -> None:
    response = admin_client.post("/api/internal/proxy", json={"path": "/api/auth/admin"})
    assert response.status_code == 403
    assert response.json() == {"error": "Path not allowed"}

    response = admin_client.post("/api/internal/proxy", json={"path": "https://evil.example.com/api/vacancies"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid path"


def test_proxy_forwards_with_server_bearer(admin_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    calls = []

    def fake_request(method, url, **kwargs):
        calls.append((method, url, kwargs))
        return SimpleNamespace(content=b'[{"id": 1}]', status_code=200, headers={"content-type": "application/json"})

    monkeypatch.setattr(routes.requests, "request", fake_request)
    response = admin_client.post(
        "/api/internal/proxy",
        json={
            "path": "/api/applications?page=2",
            "method": "GET",
            "headers": {"Authorization": "Bearer client-supplied", "X-Trace": "1"},
        },
    )
    assert response.status_code == 200
    assert response.json() == [{"id": 1}]

    method, url, kwargs = calls[0]
    assert method == "GET"
    assert url == "http://testserver/api/applications?page=2"
    assert kwargs["headers"]["Authorization"] == "Bearer machine-token"
    assert kwargs["headers"]["X-Trace"] == "1"
    assert kwargs["timeout"] == 30


def test_proxy_upstream_failure(admin_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    def broken(method, url, **kwargs):
        raise requests.ConnectionError("refused")

    monkeypatch.setattr(routes.requests, "request", broken)
    response = admin_client.post("/api/internal/proxy", json={"path": "/api/admin/stats"})
    assert response.status_code == 500
    assert response.json() == {"error": "Proxy request failed"}
