from __future__ import annotations

from typing import Iterator

import pytest
from fastapi import FastAPI

from backend.app.main import app, get_network_db
from backend.app.seed import build_bootstrap_admin, initial_network_data
from backend.app.services.local_store import LocalRecordStore
from backend.app.services.network_db import NetworkDatabase
from backend.app.services.settings_store import LocalSettings

MEMORY_URL = "sqlite+pysqlite:///:memory:"


@pytest.fixture()
def network_db(tmp_path) -> NetworkDatabase:
    """Arquivo de dados do servidor em uma pasta temporária."""

    database = NetworkDatabase(
        tmp_path / "network_db.json",
        initial_network_data(build_bootstrap_admin()),
    )
    database.load()
    return database


@pytest.fixture()
def server_app(network_db) -> Iterator[FastAPI]:
    """App do servidor com a dependência de dados sobrescrita."""

    app.dependency_overrides[get_network_db] = lambda: network_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture()
def local_store() -> Iterator[LocalRecordStore]:
    store = LocalRecordStore(MEMORY_URL)
    store.initialize()
    yield store
    store.close()


@pytest.fixture()
def settings(tmp_path) -> LocalSettings:
    return LocalSettings(tmp_path / "settings.json")
