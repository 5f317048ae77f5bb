"""Shared fixtures for the translator test suite."""
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

import auth
import routes
from history import HistoryStore
from storage import MemoryStore


@pytest.fixture()
def kv():
    return MemoryStore()


@pytest.fixture()
def store(kv):
    return HistoryStore(kv)


@pytest.fixture()
def client(store, monkeypatch):
    """API client over an in-memory history store, with no password set."""
    monkeypatch.setattr(routes, "_history_store", store)
    monkeypatch.setattr(auth, "APP_PASSWORD", "")
    auth._rate_buckets.clear()

    app = FastAPI()
    app.include_router(routes.router)
    with TestClient(app) as test_client:
        yield test_client
