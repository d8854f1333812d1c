import os

import pytest
from fastapi.testclient import TestClient

# Never reach a real store from tests
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")

from src.api.gateway import Gateway, StoreConfig, get_gateway  # noqa: E402
from src.api.main import app  # noqa: E402
from src.api.repositories import InMemoryRepository  # noqa: E402

ADMIN_ID = "user_admin"
ADMIN_HEADERS = {"X-User-Id": ADMIN_ID}
RESTRICTED_KEY = "anon-key"
ELEVATED_KEY = "service-key"
TEST_CONFIG = StoreConfig(
    url="https://store.test", restricted_key=RESTRICTED_KEY, elevated_key=ELEVATED_KEY
)


class RecordingFactory:
    """Repository factory that remembers which credential each handle was opened with."""

    def __init__(self, repo):
        self.repo = repo
        self.keys = []

    def __call__(self, url, key):
        self.keys.append(key)
        return self.repo


@pytest.fixture
def repo():
    return InMemoryRepository()


@pytest.fixture
def factory(repo):
    return RecordingFactory(repo)


@pytest.fixture
def client(factory, monkeypatch):
    monkeypatch.setenv("ADMIN_USER_IDS", f" {ADMIN_ID} , other_admin")
    monkeypatch.delenv("CALLER_ID_HEADER", raising=False)
    app.dependency_overrides[get_gateway] = lambda: Gateway(TEST_CONFIG, factory)
    yield TestClient(app)
    app.dependency_overrides.clear()
