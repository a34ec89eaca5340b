# Account operations: registration, sessions, password and profile media, read models

from pathlib import Path

from sqlalchemy.exc import IntegrityError

from app.db_handlers import UserDBHandler
from app.models import User
from app.schemas import ChannelProfile, UserProfile, WatchHistoryVideo
from app.services.context import AuthContext
from app.services.media_relay import MediaRelay, UploadedMedia, public_id_from_url
from app.services.results import ErrorKind, ServiceResult
from app.services.token_issuer import TokenIssuer, subject_id
from app.utils.auth import password_too_long, verify_password
from app.utils.logger import setup_logger

logger = setup_logger(__name__)

UNAUTHORIZED_REQUEST = "Unauthorized request"
PASSWORD_TOO_LONG = "Password must be at most 72 bytes"


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _profile(user: User) -> dict:
    return UserProfile.model_validate(user).dump()


class AccountService:
    def __init__(
        self,
        token_issuer: TokenIssuer,
        media_relay: MediaRelay,
        user_db_handler: UserDBHandler | None = None,
        login_require_all_identifiers: bool = True,
    ):
        self.token_issuer = token_issuer
        self.media_relay = media_relay
        self.db_handler = user_db_handler or UserDBHandler()
        self.login_require_all_identifiers = login_require_all_identifiers

    async def _user_from_access_token(
        self, access_token: str | None
    ) -> tuple[User | None, ServiceResult | None]:
        # Shared prologue of the operations that take a raw access token
        if not access_token:
            return None, ServiceResult.failure(
                ErrorKind.AUTHENTICATION, UNAUTHORIZED_REQUEST
            )
        claims = self.token_issuer.verify_access_token(access_token)
        user_id = subject_id(claims) if claims else None
        if user_id is None:
            return None, ServiceResult.failure(
                ErrorKind.AUTHENTICATION, "Invalid or expired access token"
            )
        user = await self.db_handler.get(user_id)
        if user is None:
            return None, ServiceResult.failure(ErrorKind.NOT_FOUND, "User not found")
        return user, None

    async def _discard_remote(self, media: UploadedMedia | None):
        if media is not None:
            await self.media_relay.destroy(media.public_id, media.resource_type)

    async def register(
        self,
        username: str | None,
        email: str | None,
        full_name: str | None,
        password: str | None,
        avatar_path: str | Path | None,
        cover_path: str | Path | None = None,
    ) -> ServiceResult:
        if any(_blank(field) for field in (username, email, full_name, password)):
            return ServiceResult.failure(ErrorKind.VALIDATION, "All fields are required")
        if password_too_long(password):
            return ServiceResult.failure(ErrorKind.VALIDATION, PASSWORD_TOO_LONG)

        existing_user = await self.db_handler.get_by_username_or_email(
            username=username, email=email
        )
        if existing_user:
            return ServiceResult.failure(
                ErrorKind.CONFLICT, "User with same email or username already exists"
            )

        if not avatar_path:
            return ServiceResult.failure(ErrorKind.VALIDATION, "Avatar file is required")

        avatar = await self.media_relay.upload(avatar_path)
        cover_image = await self.media_relay.upload(cover_path)
        if avatar is None:
            await self._discard_remote(cover_image)
            return ServiceResult.failure(ErrorKind.UPSTREAM, "Error uploading avatar")

        try:
            user = await self.db_handler.create_user(
                username=username,
                email=email,
                full_name=full_name,
                password=password,
                avatar=avatar.url,
                cover_image=cover_image.url if cover_image else None,
            )
        except IntegrityError:
            # Lost a race against a concurrent registration with the same identity
            await self._discard_remote(avatar)
            await self._discard_remote(cover_image)
            return ServiceResult.failure(
                ErrorKind.CONFLICT, "User with same email or username already exists"
            )

        logger.info(f"Registered user {user.username} ({user.id})")
        return ServiceResult.success(_profile(user), "User registered successfully")

    async def login(
        self, email: str | None, username: str | None, password: str | None
    ) -> ServiceResult:
        if self.login_require_all_identifiers:
            missing = _blank(email) or _blank(username) or _blank(password)
            message = "Username, email and password are required"
        else:
            missing = (_blank(email) and _blank(username)) or _blank(password)
            message = "Username or email and password are required"
        if missing:
            return ServiceResult.failure(ErrorKind.VALIDATION, message)

        user = await self.db_handler.get_by_username_or_email(
            username=username, email=email
        )
        if user is None:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, "User does not exist")

        if not verify_password(password, user.hashed_password):
            logger.warning(f"Failed login for user {user.username}")
            return ServiceResult.failure(
                ErrorKind.AUTHENTICATION, "Invalid user credentials"
            )

        profile = _profile(user)
        tokens = self.token_issuer.issue_pair(user)
        await self.db_handler.set_refresh_token(user.id, tokens.refresh_token)
        logger.info(f"User {user.username} logged in")

        return ServiceResult.success(
            {"user": profile, "refreshToken": tokens.refresh_token},
            "User logged in successfully",
            session=tokens,
        )

    async def logout(self, ctx: AuthContext) -> ServiceResult:
        await self.db_handler.set_refresh_token(ctx.user_id, None)
        logger.info(f"User {ctx.user.username} logged out")
        return ServiceResult.success(
            None, "User logged out successfully", end_session=True
        )

    async def refresh_access_token(self, refresh_token: str | None) -> ServiceResult:
        if not refresh_token:
            return ServiceResult.failure(
                ErrorKind.VALIDATION, "Refresh token is required"
            )

        claims = self.token_issuer.verify_refresh_token(refresh_token)
        user_id = subject_id(claims) if claims else None
        if user_id is None:
            return ServiceResult.failure(
                ErrorKind.AUTHENTICATION, "Invalid or expired refresh token"
            )

        user = await self.db_handler.get(user_id)
        if user is None:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, "User not found")

        reused = ServiceResult.failure(
            ErrorKind.AUTHENTICATION, "Refresh token is expired or used"
        )
        if user.refresh_token != refresh_token:
            logger.warning(f"Superseded refresh token presented for user {user.id}")
            return reused

        tokens = self.token_issuer.issue_pair(user)
        rotated = await self.db_handler.rotate_refresh_token(
            user.id, refresh_token, tokens.refresh_token
        )
        if not rotated:
            logger.warning(f"Concurrent refresh lost the rotation for user {user.id}")
            return reused

        logger.info(f"Rotated refresh token for user {user.id}")
        return ServiceResult.success(
            {"refreshToken": tokens.refresh_token},
            "Access token refreshed",
            session=tokens,
        )

    async def update_password(
        self,
        current_password: str | None,
        new_password: str | None,
        access_token: str | None,
    ) -> ServiceResult:
        if not current_password or not new_password:
            return ServiceResult.failure(
                ErrorKind.VALIDATION, "Current and new password are required"
            )

        user, failure = await self._user_from_access_token(access_token)
        if failure:
            return failure

        if not verify_password(current_password, user.hashed_password):
            return ServiceResult.failure(
                ErrorKind.AUTHENTICATION, "Invalid current password"
            )
        if password_too_long(new_password):
            return ServiceResult.failure(ErrorKind.VALIDATION, PASSWORD_TOO_LONG)

        await self.db_handler.set_password(user, new_password)
        logger.info(f"Password changed for user {user.id}")
        return ServiceResult.success(None, "Password changed successfully")

    async def get_current_user(self, access_token: str | None) -> ServiceResult:
        user, failure = await self._user_from_access_token(access_token)
        if failure:
            return failure
        return ServiceResult.success(_profile(user), "User fetched successfully")

    async def _replace_media(
        self,
        access_token: str | None,
        file_path: str | Path | None,
        *,
        field: str,
        label: str,
    ) -> ServiceResult:
        if not access_token:
            return ServiceResult.failure(ErrorKind.AUTHENTICATION, UNAUTHORIZED_REQUEST)
        if not file_path:
            return ServiceResult.failure(ErrorKind.VALIDATION, f"{label} file is missing")

        user, failure = await self._user_from_access_token(access_token)
        if failure:
            return failure

        media = await self.media_relay.upload(file_path)
        if media is None:
            return ServiceResult.failure(ErrorKind.UPSTREAM, f"Error uploading {label.lower()}")

        previous_url = getattr(user, field)
        user = await self.db_handler.update(user, {field: media.url})

        previous = public_id_from_url(previous_url)
        if previous and previous_url != media.url:
            await self.media_relay.destroy(*previous)

        logger.info(f"Updated {field} for user {user.id}")
        return ServiceResult.success(
            {"user": _profile(user)}, f"{label} updated successfully"
        )

    async def update_avatar(
        self, access_token: str | None, file_path: str | Path | None
    ) -> ServiceResult:
        return await self._replace_media(
            access_token, file_path, field="avatar", label="Avatar"
        )

    async def update_cover(
        self, access_token: str | None, file_path: str | Path | None
    ) -> ServiceResult:
        return await self._replace_media(
            access_token, file_path, field="cover_image", label="Cover image"
        )

    async def get_user_channel_profile(
        self, username: str | None, ctx: AuthContext | None
    ) -> ServiceResult:
        if _blank(username):
            return ServiceResult.failure(ErrorKind.VALIDATION, "Username is missing")

        viewer_id = ctx.user_id if ctx else None
        channel = await self.db_handler.get_channel_profile(username, viewer_id)
        if channel is None:
            return ServiceResult.failure(ErrorKind.NOT_FOUND, "Channel does not exist")

        return ServiceResult.success(
            ChannelProfile.model_validate(channel).dump(),
            "User channel fetched successfully",
        )

    async def get_watch_history(self, ctx: AuthContext) -> ServiceResult:
        videos = await self.db_handler.get_watch_history(ctx.user_id)
        history = [WatchHistoryVideo.model_validate(video).dump() for video in videos]
        return ServiceResult.success(
            {"watchHistory": history}, "Watch history fetched successfully"
        )
