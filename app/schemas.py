from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Snake-case attributes, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    def dump(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


# ----- Requests -----


class UserLogin(CamelModel):
    email: str | None = Field(default=None, description="Account email")
    username: str | None = Field(default=None, description="Account username")
    password: str | None = Field(default=None, description="Account password")


class RefreshTokenRequest(CamelModel):
    refresh_token: str | None = Field(
        default=None, description="Refresh token when it is not sent as a cookie"
    )


class ChangePasswordRequest(CamelModel):
    current_password: str | None = None
    new_password: str | None = None


# ----- Read models -----


class UserProfile(CamelModel):
    """Public profile of the account; never carries the secret or refresh token."""

    id: UUID = Field(..., alias="_id")
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str | None = None
    # Raw stored ids; unresolvable ones are skipped when history is expanded
    watch_history: list[str] = Field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("watch_history", mode="before")
    @classmethod
    def stringify_ids(cls, v):
        return [str(item) for item in v or []]


class ChannelProfile(CamelModel):
    id: UUID = Field(..., alias="_id")
    username: str
    email: str
    full_name: str
    avatar: str
    cover_image: str | None = None
    subscribers_count: int = 0
    channels_subscribed_to_count: int = 0
    is_subscribed: bool = False


class VideoOwner(CamelModel):
    id: UUID = Field(..., alias="_id")
    username: str
    full_name: str
    avatar: str


class WatchHistoryVideo(CamelModel):
    id: UUID = Field(..., alias="_id")
    video_file: str
    thumbnail: str
    title: str
    description: str
    duration: float
    views: int
    is_published: bool
    owner: VideoOwner | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


# ----- Envelopes -----


class ApiResponse(CamelModel):
    status_code: int
    data: Any = None
    message: str = "Success"
    success: bool = True


class ApiErrorResponse(CamelModel):
    status_code: int
    data: None = None
    message: str = "Something went wrong"
    success: bool = False
    errors: list[Any] = Field(default_factory=list)
