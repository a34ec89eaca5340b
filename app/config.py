"""
Centralized configuration management using pydantic-settings.

A single Settings instance is built at startup (see main.create_app) and handed
to the token issuer, the media relay and the database connector.
"""

import json
import re
from datetime import timedelta
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

from app.utils.logger import setup_logger

load_dotenv(override=False)

logger = setup_logger("core_config")

DEV_ACCESS_TOKEN_SECRET = "dev-access-token-secret-change-me"
DEV_REFRESH_TOKEN_SECRET = "dev-refresh-token-secret-change-me"

_DURATION_PATTERN = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$")
_DURATION_UNITS = {
    "": "seconds",
    "s": "seconds",
    "m": "minutes",
    "h": "hours",
    "d": "days",
    "w": "weeks",
}


def parse_duration(value: str | int | timedelta) -> timedelta:
    """Parse expiry values such as "15m", "1d", "10d" or "3600" (seconds)."""
    if isinstance(value, timedelta):
        return value
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _DURATION_PATTERN.match(str(value).lower())
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(**{_DURATION_UNITS[unit]: int(amount)})


class Settings(BaseSettings):
    """
    Application settings managed by pydantic-settings.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
        populate_by_name=True,
        env_prefix="",
    )

    app_env: str = Field(
        default="development",
        alias="APP_ENV",
        description="Deployment mode; 'production' enables secure cookies",
    )

    # ===== Database =====
    database_url: str | None = Field(
        default=None,
        alias="DATABASE_URL",
        description="Async SQLAlchemy URL for the credential store",
    )

    # ===== Tokens =====
    access_token_secret: str = Field(
        default=DEV_ACCESS_TOKEN_SECRET,
        alias="ACCESS_TOKEN_SECRET",
        description="HMAC secret for access tokens",
    )
    access_token_expiry: timedelta = Field(
        default=timedelta(days=1),
        alias="ACCESS_TOKEN_EXPIRY",
        description="Access token lifetime, e.g. '15m' or '1d'",
    )
    refresh_token_secret: str = Field(
        default=DEV_REFRESH_TOKEN_SECRET,
        alias="REFRESH_TOKEN_SECRET",
        description="HMAC secret for refresh tokens",
    )
    refresh_token_expiry: timedelta = Field(
        default=timedelta(days=10),
        alias="REFRESH_TOKEN_EXPIRY",
        description="Refresh token lifetime, e.g. '10d'",
    )
    jwt_algorithm: str = Field(default="HS256", alias="JWT_ALGORITHM")

    login_require_all_identifiers: bool = Field(
        default=True,
        alias="LOGIN_REQUIRE_ALL_IDENTIFIERS",
        description="Require email AND username on login; false accepts either one",
    )

    # ===== Media host =====
    cloudinary_cloud_name: str | None = Field(
        default=None, alias="CLOUDINARY_CLOUD_NAME"
    )
    cloudinary_api_key: str | None = Field(default=None, alias="CLOUDINARY_API_KEY")
    cloudinary_api_secret: str | None = Field(
        default=None, alias="CLOUDINARY_API_SECRET"
    )
    media_upload_timeout: float = Field(
        default=60.0,
        alias="MEDIA_UPLOAD_TIMEOUT",
        description="Timeout in seconds for a single upload to the media host",
    )
    upload_temp_dir: str = Field(
        default="public/temp",
        alias="UPLOAD_TEMP_DIR",
        description="Where incoming files are staged before relaying them",
    )

    # ===== Server Configuration =====
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")

    server_host: str = Field(
        default="0.0.0.0", alias="SERVER_HOST", description="Server host address"
    )

    server_port: int = Field(
        default=8000, alias="PORT", description="Server port number"
    )

    server_workers: int = Field(
        default=1, alias="SERVER_WORKERS", description="Number of uvicorn workers"
    )

    max_json_body_bytes: int = Field(
        default=16 * 1024,
        alias="MAX_JSON_BODY_BYTES",
        description="Largest accepted non-multipart request body",
    )

    # ===== CORS Configuration =====
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:5173",
            "http://localhost:3000",
        ],
        alias="CORS_ORIGIN",
        description="Allowed origins: one origin, a comma-separated list or a JSON list",
    )

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def parse_origins(cls, v):
        if not isinstance(v, str):
            return v
        v = v.strip()
        if v.startswith("["):
            return json.loads(v)
        return [origin.strip() for origin in v.split(",") if origin.strip()]

    @field_validator("access_token_expiry", "refresh_token_expiry", mode="before")
    @classmethod
    def parse_expiry(cls, v):
        return parse_duration(v)

    @model_validator(mode="after")
    def validate_settings(self) -> "Settings":
        """Validate settings and log warnings for missing critical configurations."""
        default_secrets = (
            self.access_token_secret == DEV_ACCESS_TOKEN_SECRET
            or self.refresh_token_secret == DEV_REFRESH_TOKEN_SECRET
        )
        if default_secrets:
            if self.is_production:
                raise ValueError(
                    "ACCESS_TOKEN_SECRET and REFRESH_TOKEN_SECRET must be set in production"
                )
            logger.warning("Token secrets are using development defaults.")

        if self.access_token_secret == self.refresh_token_secret:
            logger.warning("Access and refresh tokens share the same secret.")

        if not self.database_url:
            logger.warning("DATABASE_URL environment variable not set.")

        if not self.media_configured:
            logger.warning(
                "Cloudinary credentials are not set; media uploads will fail."
            )

        return self

    @property
    def is_production(self) -> bool:
        return self.app_env.lower() == "production"

    @property
    def media_configured(self) -> bool:
        return bool(
            self.cloudinary_cloud_name
            and self.cloudinary_api_key
            and self.cloudinary_api_secret
        )
