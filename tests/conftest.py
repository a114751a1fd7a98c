import pytest
from fastapi.testclient import TestClient

from todo_api.main import create_app
from todo_api.settings import Settings


@pytest.fixture
def make_client(tmp_path):
    """
    Factory building a TestClient over a fresh app backed by a temporary
    SQLite file. Keyword arguments override Settings fields.
    """
    apps = []

    def _make(**overrides):
        overrides.setdefault("database_url", f"sqlite:///{tmp_path / 'todos.db'}")
        app = create_app(Settings(**overrides))
        apps.append(app)
        return TestClient(app)

    yield _make
    for app in apps:
        app.state.database.dispose()


@pytest.fixture
def client(make_client):
    return make_client()
