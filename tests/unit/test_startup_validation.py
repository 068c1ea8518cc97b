"""Tests for startup validation and the application lifespan."""

import pytest
from fastapi.testclient import TestClient

from src.core.config import settings
from src.main import app, validate_startup_configuration


def test_startup_accepts_defaults() -> None:
    """Test the default configuration passes validation."""
    validate_startup_configuration()


def test_startup_fails_with_unknown_timezone(monkeypatch) -> None:
    """Test that startup fails when the default timezone is not an IANA zone."""
    monkeypatch.setattr(settings, "default_timezone", "Nowhere/Atlantis")

    with pytest.raises(ValueError, match="Unknown timezone"):
        validate_startup_configuration()


def test_production_requires_logfire_token(monkeypatch) -> None:
    """Test that production startup needs a Logfire token."""
    monkeypatch.setattr(settings, "environment", "production")
    monkeypatch.setattr(settings, "logfire_token", None)

    with pytest.raises(ValueError, match="LOGFIRE_TOKEN"):
        validate_startup_configuration()


def test_lifespan_initializes_database(tmp_path, monkeypatch) -> None:
    """Test the app starts against a fresh database and serves requests."""
    monkeypatch.setattr(settings, "sqlite_db_path", str(tmp_path / "startup.db"))
    monkeypatch.setattr(settings, "enable_scheduler", False)

    with TestClient(app) as client:
        created = client.post("/api/tasks", json={"title": "Stretch"}, headers={"X-User-Id": "alice"})
        listed = client.get("/api/tasks", headers={"X-User-Id": "alice"})

    assert created.status_code == 201
    assert [task["title"] for task in listed.json()] == ["Stretch"]
    assert (tmp_path / "startup.db").exists()
