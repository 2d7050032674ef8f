"""
Pytest configuration and fixtures: in-memory backend and API client.
"""
import pytest
from fastapi.testclient import TestClient

from glassblog.app import create_app
from glassblog.backend import Backend, Storage
from glassblog.config import Settings


@pytest.fixture
def settings(tmp_path):
    return Settings(
        db_url="sqlite://",
        upload_dir=tmp_path / "uploads",
        public_url="http://testserver",
        refresh_interval=0,
        log_level="WARNING",
    )


@pytest.fixture
def backend():
    return Backend.from_url("sqlite://")


@pytest.fixture
def storage(tmp_path):
    return Storage(tmp_path / "uploads", "http://testserver/uploads")


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers(client):
    """Bearer header of a signed-in admin."""
    r = client.post('/auth/login', json={'username': 'admin', 'password': '1234'})
    assert r.status_code == 200, f"Login failed: {r.text}"
    return {'Authorization': f"Bearer {r.json()['token']}"}
