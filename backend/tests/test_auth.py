from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

import certigest.auth as auth_module
from certigest.config import settings
from certigest.main import create_app


def _configure_auth() -> None:
    settings.auth_enabled = True
    settings.auth_issuer = "https://auth.example.org/realms/certigest"
    settings.auth_audience = "certigest-api"


def test_protected_routes_require_bearer_token_when_auth_enabled(isolated_settings: None) -> None:
    _configure_auth()
    app = create_app()
    with TestClient(app) as client:
        response = client.post("/entities", json={"name": "Auth Required", "cnpj": "12345678000195"})
        assert response.status_code == 401
        assert response.json()["detail"] == "Missing bearer token."

        assert client.get("/dashboard").status_code == 401
        assert client.post("/entities/any/cycles/2025-03/dossier").status_code == 401


def test_public_routes_stay_open_when_auth_enabled(isolated_settings: None) -> None:
    _configure_auth()
    app = create_app()
    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert client.get("/catalog").status_code == 200


def test_protected_routes_accept_valid_bearer_token_when_auth_enabled(
    isolated_settings: None,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    _configure_auth()
    monkeypatch.setattr(
        auth_module,
        "decode_and_validate_token",
        lambda token: {"sub": "user-123", "aud": "certigest-api"},
    )

    app = create_app()
    with TestClient(app) as client:
        response = client.post(
            "/entities",
            json={"name": "Auth Success", "cnpj": "12345678000195"},
            headers={"Authorization": "Bearer test-token"},
        )
        assert response.status_code == 200
        assert "id" in response.json()


def test_missing_issuer_is_reported_as_misconfiguration(isolated_settings: None) -> None:
    _configure_auth()
    settings.auth_issuer = ""
    app = create_app()
    with TestClient(app) as client:
        response = client.get("/entities", headers={"Authorization": "Bearer test-token"})
        assert response.status_code == 503
