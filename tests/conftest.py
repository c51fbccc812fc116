"""
conftest.py — shared pytest fixtures
Adds the repo root to sys.path so `seoscope.*` imports resolve correctly
regardless of where pytest is invoked from, and keeps the test session off
MongoDB (reports go to the in-memory store).
"""

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

os.environ["MONGO_URI"] = ""
os.environ.setdefault("APP_SECRET_KEY", "test-secret")

import pytest
from aiohttp.test_utils import TestServer
from fastapi.testclient import TestClient

from seoscope.main import app
from seoscope.utils import db_results
from seoscope.utils.auth import create_access_token


@pytest.fixture(scope="session")
def client():
    """Synchronous API client; no real analysis unless a test lets it through."""
    with TestClient(app) as c:
        yield c


@pytest.fixture(autouse=True)
def clear_memory_store():
    db_results._mem.clear()
    yield
    db_results._mem.clear()


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {create_access_token({'sub': 'user-1'})}"}


@pytest.fixture
def other_auth_headers():
    return {"Authorization": f"Bearer {create_access_token({'sub': 'user-2'})}"}


@pytest.fixture
def serve():
    """Start an in-process aiohttp server for an aiohttp.web.Application."""
    @asynccontextmanager
    async def _serve(web_app):
        server = TestServer(web_app)
        await server.start_server()
        try:
            yield server
        finally:
            await server.close()
    return _serve


@pytest.fixture
def closed_port_url():
    """http:// URL on a local port nothing listens on."""
    import socket
    with socket.socket() as s:
        s.bind(("127.0.0.1", 0))
        port = s.getsockname()[1]
    return f"http://127.0.0.1:{port}"
