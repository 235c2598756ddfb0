# tests/conftest.py

from __future__ import annotations

from pathlib import Path

import pytest

from app import create_app
from auth_store import AuthStore
from config import Settings
from demo_data import seed_demo_data
from storage import MemoryStorage
from task_store import TaskStore

from .fakes import NOW, FakeClock


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def storage() -> MemoryStorage:
    return MemoryStorage()


@pytest.fixture()
def seeded_storage(storage: MemoryStorage) -> MemoryStorage:
    """MemoryStorage holding the demo user and its eight tasks, seeded at NOW."""
    seed_demo_data(storage, now=NOW)
    return storage


@pytest.fixture()
def task_store(seeded_storage: MemoryStorage, clock: FakeClock) -> TaskStore:
    return TaskStore(seeded_storage, clock=clock)


@pytest.fixture()
def auth_store(seeded_storage: MemoryStorage, clock: FakeClock) -> AuthStore:
    return AuthStore(seeded_storage, clock=clock)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings built directly rather than from the environment,
    so web tests never touch a developer's .env or database.
    """
    return Settings(
        secret_key="test-secret",
        database_uri=f"sqlite:///{tmp_path / 'taskflow.db'}",
        data_dir=tmp_path,
        page_size=8,
        max_page_size=50,
        query_delay_ms=0,
        seed_demo=True,
    )


@pytest.fixture()
def app(settings: Settings):
    app = create_app(settings)
    app.config["TESTING"] = True
    return app


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def demo_client(client):
    """Test client with the demo user logged in."""
    resp = client.post("/api/auth/login", json={"username": "demo", "password": "demo"})
    assert resp.status_code == 200
    return client
