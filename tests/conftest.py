"""
tests/conftest.py -- Shared test fixtures for the SSO service tests.

This module provides:
  - storage: a file-backed SQLite Storage in the test's tmp_path
  - test_app: a provisioned tenant App (with its signing secret)
  - service: an AuthService over that storage, bcrypt cost 4 for speed
  - patched_client: opens a TestClient whose lifespan wires the fixtures above
    into app.state, restoring the real lifespan on exit
  - api_client: (client, test_app) from patched_client

Design: a SQLite *file* per test rather than a shared-memory URI. The
concurrency tests register from many threads at once; shared-cache in-memory
databases answer concurrent writers with "database table is locked" instead of
waiting, while a WAL file database with a busy timeout serializes them the way
a real deployment does.
"""

from __future__ import annotations

import logging
from collections.abc import Generator, Iterator
from contextlib import asynccontextmanager, contextmanager
from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from api.main import app as fastapi_app
from auth.models import App
from auth.service import AuthService
from auth.store import Storage
from core.config import Settings

TEST_TTL_SECONDS = 3600
TEST_ROUNDS = 4  # bcrypt minimum; production default is 12
TEST_SECRET = "test-app-secret-0123456789abcdef0123456789"
OTHER_SECRET = "other-app-secret-fedcba9876543210fedcba98"


@pytest.fixture
def storage(tmp_path) -> Generator[Storage, None, None]:
    s = Storage(f"sqlite:///{tmp_path / 'sso.db'}")
    yield s
    s.close()


@pytest.fixture
def test_app(storage: Storage) -> App:
    app_id = storage.save_app("test-app", TEST_SECRET)
    return storage.app(app_id)


@pytest.fixture
def other_app(storage: Storage) -> App:
    app_id = storage.save_app("other-app", OTHER_SECRET)
    return storage.app(app_id)


@pytest.fixture
def service(storage: Storage) -> AuthService:
    return AuthService(
        logging.getLogger("sso.test"),
        storage,
        storage,
        storage,
        token_ttl=timedelta(seconds=TEST_TTL_SECONDS),
        password_rounds=TEST_ROUNDS,
    )


def _patch_lifespan(settings: Settings, storage: Storage, service: AuthService):
    """Return an async context manager that replaces the real lifespan.

    Wires the per-test storage and service into app.state so TestClient
    routes never touch the configured database.
    """

    @asynccontextmanager
    async def test_lifespan(app):
        app.state.settings = settings
        app.state.storage = storage
        app.state.auth_service = service
        yield

    return test_lifespan


@pytest.fixture
def patched_client(storage: Storage, service: AuthService):
    """Return a context manager that opens a TestClient over the real FastAPI app.

    The app's lifespan is swapped for one that wires the per-test fixtures
    into app.state, and the real lifespan is put back when the client closes.
    """
    settings = Settings(
        storage_url="sqlite://",
        bcrypt_rounds=TEST_ROUNDS,
        token_ttl_seconds=TEST_TTL_SECONDS,
    )

    @contextmanager
    def open_client() -> Iterator[TestClient]:
        original_lifespan = fastapi_app.router.lifespan_context
        fastapi_app.router.lifespan_context = _patch_lifespan(settings, storage, service)
        try:
            with TestClient(fastapi_app, raise_server_exceptions=False) as client:
                yield client
        finally:
            fastapi_app.router.lifespan_context = original_lifespan

    return open_client


@pytest.fixture
def api_client(patched_client, test_app: App) -> Generator[tuple[TestClient, App], None, None]:
    """Yield (client, test_app) for API integration tests.

    Tests hit real route handlers, dependencies and exception handlers.
    """
    with patched_client() as client:
        yield client, test_app
