"""
Shared fixtures for the test suite.

Every test that needs the HTTP surface gets its own SQLite database file and a
media relay whose Cloudinary uploader is replaced by FakeMediaHost.
"""

import itertools
import os
from collections.abc import Iterator
from pathlib import Path

import cloudinary.exceptions
import cloudinary.uploader
import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

os.environ.setdefault("LOG_LEVEL", "WARNING")

from app.config import Settings  # noqa: E402
from app.services.media_relay import MediaRelay  # noqa: E402

ACCESS_SECRET = "test-access-secret"
REFRESH_SECRET = "test-refresh-secret"


class FakeMediaHost:
    """Stands in for cloudinary.uploader and records what was sent to it."""

    def __init__(self):
        self.uploads: list[dict] = []
        self.destroyed: list[str] = []
        self.fail_uploads = False
        self._counter = itertools.count(1)

    def upload(self, file, **options):
        self.uploads.append(
            {"path": Path(file), "content": Path(file).read_bytes(), "options": options}
        )
        if self.fail_uploads:
            raise cloudinary.exceptions.Error("boom")
        public_id = f"asset_{next(self._counter)}"
        url = f"http://res.cloudinary.com/demo/image/upload/v1/{public_id}.png"
        return {
            "public_id": public_id,
            "resource_type": "image",
            "url": url,
            "secure_url": url.replace("http://", "https://"),
        }

    def destroy(self, public_id, **options):
        self.destroyed.append(public_id)
        return {"result": "ok"}


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        _env_file=None,
        app_env="development",
        database_url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}",
        access_token_secret=ACCESS_SECRET,
        refresh_token_secret=REFRESH_SECRET,
        access_token_expiry="15m",
        refresh_token_expiry="10d",
        cloudinary_cloud_name="demo",
        cloudinary_api_key="key",
        cloudinary_api_secret="secret",
        upload_temp_dir=str(tmp_path / "temp"),
    )


@pytest.fixture
def media_host(monkeypatch) -> FakeMediaHost:
    host = FakeMediaHost()
    monkeypatch.setattr(cloudinary.uploader, "upload", host.upload)
    monkeypatch.setattr(cloudinary.uploader, "destroy", host.destroy)
    return host


@pytest.fixture
def media_relay(settings: Settings, media_host: FakeMediaHost) -> MediaRelay:
    return MediaRelay(settings)


@pytest.fixture
def app(settings: Settings, media_relay: MediaRelay) -> FastAPI:
    """
    Create a new application instance for the test.
    """
    # Import the factory function here to ensure it's fresh for the test.
    from main import create_app

    return create_app(settings, media_relay=media_relay)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    """
    Test client running the application's lifespan (engine + tables).
    """
    with TestClient(app) as c:
        yield c

