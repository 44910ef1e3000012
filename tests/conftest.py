"""Shared test fixtures for projectflow package."""

import asyncio
import json

import pytest

from projectflow.core.config import AppSettings, get_paths
from projectflow.core.kvstore import EventBus, LocalStore
from projectflow.store.backends import LocalBackend, RelationalBackend
from projectflow.store.datastore import DataStore
from projectflow.store.gateway import RelationalGateway
from projectflow.store.models import Course, Link, Project


@pytest.fixture
def temp_dir(tmp_path):
    """Provide a temporary directory."""
    return tmp_path


@pytest.fixture
def sample_json_file(tmp_path):
    """Create a sample JSON file for testing."""
    data = {"key": "value", "number": 42}
    file_path = tmp_path / "sample.json"
    file_path.write_text(json.dumps(data))
    return file_path


@pytest.fixture
def mock_root(tmp_path, monkeypatch):
    """Create a mock data root with a .projectflow/ directory."""
    data_dir = tmp_path / ".projectflow"
    data_dir.mkdir()
    (data_dir / "cache").mkdir()
    (data_dir / "blobs").mkdir()
    (data_dir / "backups").mkdir()
    (data_dir / "exports").mkdir()

    monkeypatch.delenv("PROJECTFLOW_ROOT", raising=False)
    monkeypatch.delenv("PROJECTFLOW_PIN", raising=False)

    from projectflow.core import config
    # Clear the lru_cache first
    config.get_root.cache_clear()
    monkeypatch.setattr(config, "get_root", lambda: tmp_path)

    return tmp_path


@pytest.fixture
def paths(mock_root):
    return get_paths(mock_root)


@pytest.fixture
def settings():
    return AppSettings()


@pytest.fixture
def kv(tmp_path):
    """A local key-value store with a private event bus."""
    return LocalStore(tmp_path / "kv.json", bus=EventBus())


@pytest.fixture
def gateway(tmp_path):
    return RelationalGateway(tmp_path / "test.db")


@pytest.fixture(params=["local", "sqlite"])
def backend(request, tmp_path):
    """Both storage strategies, empty."""
    if request.param == "local":
        return LocalBackend(LocalStore(tmp_path / "kv.json", bus=EventBus()))
    return RelationalBackend(RelationalGateway(tmp_path / "test.db"))


@pytest.fixture
def sample_project():
    return Project(
        id="idea-1",
        data={
            "title": "Budget tracker",
            "description": "Track monthly spending",
            "requirements": ["Import CSV", "Charts"],
            "links": [{"title": "Docs", "url": "https://example.com/docs"}],
            "progress": 40,
            "tags": ["finance", "python"],
            "notes": [],
        },
    )


@pytest.fixture
def sample_course():
    return Course(id="course-1", data={"name": "Linear Algebra", "completed": False, "links": [], "notes": []})


@pytest.fixture
def sample_link():
    return Link(id="link-1", data={"title": "Python docs", "url": "https://docs.python.org"})


@pytest.fixture
def loaded_store(backend):
    """A loaded DataStore over each backend."""
    store = DataStore(backend)
    assert asyncio.run(store.load())
    return store
