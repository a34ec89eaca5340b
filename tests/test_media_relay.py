import io

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
import pytest
from fastapi import UploadFile

from app.services.media_relay import MediaRelay, public_id_from_url, stage_upload


@pytest.fixture
def staged_file(tmp_path):
    path = tmp_path / "avatar-1-2.png"
    path.write_bytes(b"\x89PNG fake image")
    return path


def test_relay_configures_cloudinary_from_settings(media_relay):
    config = cloudinary.config()
    assert config.cloud_name == "demo"
    assert config.api_key == "key"
    assert config.api_secret == "secret"


@pytest.mark.asyncio
async def test_upload_without_path_returns_none(media_relay, media_host):
    assert await media_relay.upload(None) is None
    assert media_host.uploads == []


@pytest.mark.asyncio
async def test_upload_returns_url_and_removes_temp_file(media_relay, media_host, staged_file):
    media = await media_relay.upload(staged_file)

    assert media is not None
    assert media.url == "http://res.cloudinary.com/demo/image/upload/v1/asset_1.png"
    assert media.public_id == "asset_1"
    assert media.resource_type == "image"
    assert not staged_file.exists()

    sent = media_host.uploads[0]
    assert sent["path"] == staged_file
    assert sent["content"] == b"\x89PNG fake image"
    assert sent["options"]["resource_type"] == "auto"


@pytest.mark.asyncio
async def test_failed_upload_returns_none_and_still_removes_temp_file(
    media_relay, media_host, staged_file
):
    media_host.fail_uploads = True

    assert await media_relay.upload(staged_file) is None
    assert not staged_file.exists()


@pytest.mark.asyncio
async def test_unreachable_host_returns_none(media_relay, monkeypatch, staged_file):
    def refuse(file, **options):
        raise cloudinary.exceptions.GeneralError("Unexpected error - connection refused")

    monkeypatch.setattr(cloudinary.uploader, "upload", refuse)

    assert await media_relay.upload(staged_file) is None
    assert not staged_file.exists()


@pytest.mark.asyncio
async def test_unconfigured_relay_skips_upload(settings, media_host, staged_file):
    settings.cloudinary_api_secret = None
    relay = MediaRelay(settings)

    assert await relay.upload(staged_file) is None
    assert media_host.uploads == []
    assert not staged_file.exists()
    assert await relay.destroy("asset_1") is False


@pytest.mark.asyncio
async def test_destroy_forwards_public_id(media_relay, media_host):
    assert await media_relay.destroy("folder/asset_9", "image") is True
    assert media_host.destroyed == ["folder/asset_9"]


@pytest.mark.asyncio
async def test_destroy_failure_is_reported_as_false(media_relay, monkeypatch):
    def broken(public_id, **options):
        raise cloudinary.exceptions.NotFound("Resource not found")

    monkeypatch.setattr(cloudinary.uploader, "destroy", broken)
    assert await media_relay.destroy("gone") is False


@pytest.mark.parametrize(
    "url, expected",
    [
        (
            "http://res.cloudinary.com/demo/image/upload/v1712/avatars/me.png",
            ("avatars/me", "image"),
        ),
        ("https://res.cloudinary.com/demo/video/upload/clip.mp4", ("clip", "video")),
        ("https://example.com/me.png", None),
        (None, None),
    ],
)
def test_public_id_from_url(url, expected):
    assert public_id_from_url(url) == expected


@pytest.mark.asyncio
async def test_stage_upload_writes_named_file(tmp_path):
    upload = UploadFile(file=io.BytesIO(b"hello"), filename="Holiday Pic.JPG")

    staged = await stage_upload(upload, tmp_path / "temp", "avatar")

    assert staged.parent == tmp_path / "temp"
    assert staged.name.startswith("avatar-")
    assert staged.suffix == ".jpg"
    assert staged.read_bytes() == b"hello"


@pytest.mark.asyncio
async def test_stage_upload_without_file(tmp_path):
    assert await stage_upload(None, tmp_path) is None
