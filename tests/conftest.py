import pytest
from fastapi.testclient import TestClient

from pastebin.config import Settings
from pastebin.database import InMemoryStorage
from pastebin.main import create_app

PREFIX = "http://paste.test/"
FIREFOX = "Mozilla/5.0 (X11; Linux x86_64; rv:115.0) Gecko/20100101 Firefox/115.0"
PNG = (
    b"\x89PNG\r\n\x1a\n"
    b"\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00"
    b"\x1f\x15\xc4\x89"
)


@pytest.fixture
def settings():
    s = Settings()
    s.STORAGE_BACKEND = "memory"
    s.APP_DOMAIN = "http://paste.test"
    s.DEFAULT_TTL_SECONDS = 3600
    return s


@pytest.fixture
def storage():
    return InMemoryStorage()


@pytest.fixture
def client(storage, settings):
    return TestClient(create_app(storage, settings))
