"""
Media relay: forwards locally staged uploads to Cloudinary.

Incoming files are first written to a temp directory (stage_upload), then
MediaRelay.upload pushes them to the asset host and always deletes the local
copy. Upload failures are logged and reported as None so each caller decides
whether missing media is fatal.
"""

import re
import secrets
import shutil
import time
from dataclasses import dataclass
from pathlib import Path

import cloudinary
import cloudinary.exceptions
import cloudinary.uploader
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool

from app.config import Settings
from app.utils.logger import setup_logger

logger = setup_logger("media_relay")

_DELIVERY_URL_PATTERN = re.compile(
    r"/(?P<resource_type>image|video|raw)/upload/(?:v\d+/)?(?P<public_id>.+?)(?:\.[A-Za-z0-9]+)?$"
)


@dataclass(frozen=True)
class UploadedMedia:
    url: str
    public_id: str | None
    resource_type: str | None


def public_id_from_url(url: str | None) -> tuple[str, str] | None:
    """Return (public_id, resource_type) for a Cloudinary delivery URL."""
    if not url:
        return None
    match = _DELIVERY_URL_PATTERN.search(url)
    if not match:
        return None
    return match.group("public_id"), match.group("resource_type")


async def stage_upload(
    upload: UploadFile | None, temp_dir: str | Path, field: str = "upload"
) -> Path | None:
    """Write an incoming multipart file to the temp directory."""
    if upload is None or not upload.filename:
        return None

    directory = Path(temp_dir)
    directory.mkdir(parents=True, exist_ok=True)
    suffix = Path(upload.filename).suffix.lower()
    staged = directory / (
        f"{field}-{int(time.time() * 1000)}-{secrets.randbelow(10**9)}{suffix}"
    )
    with staged.open("wb") as buffer:
        await run_in_threadpool(shutil.copyfileobj, upload.file, buffer)
    return staged


def discard_staged(*paths: str | Path | None) -> None:
    """Remove staged files the relay did not consume."""
    for path in paths:
        if path:
            Path(path).unlink(missing_ok=True)


class MediaRelay:
    def __init__(self, settings: Settings):
        self.timeout = settings.media_upload_timeout
        self.configured = settings.media_configured
        if self.configured:
            cloudinary.config(
                cloud_name=settings.cloudinary_cloud_name,
                api_key=settings.cloudinary_api_key,
                api_secret=settings.cloudinary_api_secret,
                secure=True,
            )

    async def upload(self, local_path: str | Path | None) -> UploadedMedia | None:
        """Upload a staged file (resource type detected by the host)."""
        if not local_path:
            return None

        path = Path(local_path)
        try:
            if not self.configured:
                logger.error("Media upload skipped: Cloudinary credentials missing")
                return None

            body = await run_in_threadpool(
                cloudinary.uploader.upload,
                str(path),
                resource_type="auto",
                timeout=self.timeout,
            )
            url = body.get("url") or body.get("secure_url")
            if not url:
                logger.warning(f"Media host accepted {path.name} but returned no URL")
                return None

            logger.info(f"Uploaded {path.name} as {body.get('public_id')}")
            return UploadedMedia(
                url=url,
                public_id=body.get("public_id"),
                resource_type=body.get("resource_type"),
            )
        except cloudinary.exceptions.Error as e:
            logger.warning(f"Media host rejected {path.name}: {e}")
            return None
        except OSError as e:
            logger.warning(f"Error uploading {path.name}: {e}")
            return None
        finally:
            path.unlink(missing_ok=True)

    async def destroy(self, public_id: str | None, resource_type: str | None = None) -> bool:
        """Best-effort removal of a previously uploaded asset."""
        if not public_id or not self.configured:
            return False

        try:
            body = await run_in_threadpool(
                cloudinary.uploader.destroy,
                public_id,
                resource_type=resource_type or "image",
                timeout=self.timeout,
            )
        except (cloudinary.exceptions.Error, OSError) as e:
            logger.warning(f"Could not delete remote asset {public_id}: {e}")
            return False

        removed = body.get("result") == "ok"
        if removed:
            logger.info(f"Deleted remote asset {public_id}")
        return removed
