"""
Pytest configuration and shared fixtures.
"""

import os
import tempfile
from pathlib import Path

import pytest

# Set test environment before the app reads its configuration
_TMP_ROOT = Path(tempfile.mkdtemp(prefix="trustify-tests-"))
os.environ["TRUSTIFY_ROOT"] = str(_TMP_ROOT)
os.environ["USE_SQL"] = "false"
os.environ["SECRET_KEY"] = "test-secret-key-that-is-long-enough-0123456789"
os.environ.pop("REDIS_URL", None)
os.environ.pop("SENTRY_DSN", None)
for _name in ("DATA_DIR", "UPLOAD_DIR", "WEB_DIR"):
    os.environ.pop(_name, None)

from fastapi.testclient import TestClient  # noqa: E402

from trustify import config  # noqa: E402
from trustify.main import app  # noqa: E402
from trustify.storage import JsonStore, get_store  # noqa: E402
from tests.helpers import image_bytes, make_image  # noqa: E402


@pytest.fixture
def sample_image():
    return make_image()


@pytest.fixture
def sample_png(sample_image):
    return image_bytes(sample_image)


@pytest.fixture
def store(tmp_path):
    return JsonStore(tmp_path / "data")


@pytest.fixture
def upload_dir():
    return config.UPLOAD_DIR


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


@pytest.fixture
def brand_token(client):
    client.post("/api/signup", json={"email": "brand@example.com", "password": "s3cret-pass", "role": "brand"})
    resp = client.post("/api/login", json={"email": "brand@example.com", "password": "s3cret-pass"})
    return resp.json()["token"]
