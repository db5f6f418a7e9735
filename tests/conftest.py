# tests/conftest.py
import os
import tempfile

from tests._helpers import TEST_SECRET, auth_header, register

# Settings are read at import time; give the module-level app something harmless.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SECRET_KEY", TEST_SECRET)
os.environ.setdefault("UPLOAD_DIR", tempfile.mkdtemp(prefix="medireminder-uploads-"))

import pytest
from fastapi.testclient import TestClient

from medireminder.config.settings import Settings
from medireminder.main import create_app


@pytest.fixture
def settings(tmp_path):
    return Settings(
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        secret_key=TEST_SECRET,
        upload_dir=tmp_path / "uploads",
        public_base_url="http://testserver",
    )


@pytest.fixture
def upload_dir(settings):
    return settings.upload_dir.resolve()


@pytest.fixture
def client(settings):
    with TestClient(create_app(settings)) as c:
        yield c


@pytest.fixture
def ana(client):
    data = register(client)
    return {"user": data["user"], "headers": auth_header(data["token"])}


@pytest.fixture
def bob(client):
    data = register(client, name="Bob", email="bob@y.com", password="secret2")
    return {"user": data["user"], "headers": auth_header(data["token"])}
