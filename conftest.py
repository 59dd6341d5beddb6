import pytest
from fastapi.testclient import TestClient

from valuetracker import storage
from valuetracker.app import create_app

EXT = "ext-A"


@pytest.fixture(autouse=True)
def isolated_cwd(tmp_path, monkeypatch):
    """Run every test in a fresh working directory so ./db/ starts empty."""
    monkeypatch.chdir(tmp_path)
    yield tmp_path


@pytest.fixture
def store():
    """An open Store for EXT, closed after the test."""
    s = storage.Store.create(EXT)
    yield s
    s.close()


@pytest.fixture
def registry():
    r = storage.Registry()
    yield r
    r.close_all()


@pytest.fixture
def client():
    """TestClient on an app with the plugin mounted at the root."""
    with TestClient(create_app(prefix="")) as c:
        yield c
