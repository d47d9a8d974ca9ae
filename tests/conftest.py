"""Shared fixtures: an app on a throwaway SQLite file and a few registered users."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy.engine import Engine

from freelancehub.db.database import build_engine
from freelancehub.main import create_app
from tests.helpers import register_user


@pytest.fixture()
def engine(tmp_path: Path) -> Iterator[Engine]:
    # A file database, so worker threads get their own connections.
    engine = build_engine(f"sqlite:///{tmp_path / 'freelancehub.db'}", timeout_seconds=10.0)
    yield engine
    engine.dispose()


@pytest.fixture()
def app(engine: Engine) -> FastAPI:
    return create_app(engine)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    """Entering the client runs the lifespan: tables are created and the hub bound."""
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture()
def owner(client: TestClient) -> dict[str, Any]:
    return register_user(client, email="olivia@example.com", role="client", first_name="Olivia")


@pytest.fixture()
def other_client(client: TestClient) -> dict[str, Any]:
    return register_user(client, email="carol@example.com", role="client", first_name="Carol")


@pytest.fixture()
def alice(client: TestClient) -> dict[str, Any]:
    return register_user(client, email="alice@example.com", role="freelancer", first_name="Alice")


@pytest.fixture()
def bob(client: TestClient) -> dict[str, Any]:
    return register_user(client, email="bob@example.com", role="freelancer", first_name="Bob")
