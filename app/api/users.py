"""
User account API routes.

Registration, login/logout, token refresh, password change, profile media
updates, and the channel / watch-history read models. Every route answers with
the standard envelope produced by app.api.responses.render_result.
"""

from fastapi import APIRouter, Body, Depends, File, Form, Request, UploadFile, status

from app.api.responses import REFRESH_TOKEN_COOKIE, render_result
from app.config import Settings
from app.dependencies.auth import (
    get_access_token,
    get_account_service,
    get_current_user,
    get_settings,
)
from app.schemas import ChangePasswordRequest, RefreshTokenRequest, UserLogin
from app.services.account_service import AccountService
from app.services.context import AuthContext
from app.services.media_relay import discard_staged, stage_upload

router = APIRouter(prefix="/user", tags=["Users"])


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register_user(
    username: str | None = Form(None),
    email: str | None = Form(None),
    full_name: str | None = Form(None, alias="fullName"),
    password: str | None = Form(None),
    avatar: UploadFile | None = File(None),
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    """Create an account; avatar is required, cover image optional."""
    avatar_path = await stage_upload(avatar, settings.upload_temp_dir, "avatar")
    cover_path = await stage_upload(cover_image, settings.upload_temp_dir, "coverImage")
    try:
        result = await service.register(
            username, email, full_name, password, avatar_path, cover_path
        )
    finally:
        discard_staged(avatar_path, cover_path)

    return render_result(
        result,
        secure_cookies=settings.is_production,
        success_status=status.HTTP_201_CREATED,
    )


@router.post("/login")
async def login_user(
    credentials: UserLogin,
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    """Authenticate and start a session (cookies + refresh token in body)."""
    result = await service.login(
        credentials.email, credentials.username, credentials.password
    )
    return render_result(result, secure_cookies=settings.is_production)


@router.post("/logout")
async def logout_user(
    ctx: AuthContext = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    result = await service.logout(ctx)
    return render_result(result, secure_cookies=settings.is_production)


@router.post("/refresh-token")
async def refresh_access_token(
    request: Request,
    payload: RefreshTokenRequest | None = Body(None),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    """Rotate the session; the cookie wins over the body when both are sent."""
    refresh_token = request.cookies.get(REFRESH_TOKEN_COOKIE) or (
        payload.refresh_token if payload else None
    )
    result = await service.refresh_access_token(refresh_token)
    return render_result(result, secure_cookies=settings.is_production)


@router.post("/change-password")
async def change_password(
    payload: ChangePasswordRequest,
    access_token: str | None = Depends(get_access_token),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    result = await service.update_password(
        payload.current_password, payload.new_password, access_token
    )
    return render_result(result, secure_cookies=settings.is_production)


@router.get("/current-user")
async def current_user(
    access_token: str | None = Depends(get_access_token),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    result = await service.get_current_user(access_token)
    return render_result(result, secure_cookies=settings.is_production)


@router.patch("/avatar")
async def update_avatar(
    avatar: UploadFile | None = File(None),
    access_token: str | None = Depends(get_access_token),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    avatar_path = await stage_upload(avatar, settings.upload_temp_dir, "avatar")
    try:
        result = await service.update_avatar(access_token, avatar_path)
    finally:
        discard_staged(avatar_path)
    return render_result(result, secure_cookies=settings.is_production)


@router.patch("/cover-image")
async def update_cover_image(
    cover_image: UploadFile | None = File(None, alias="coverImage"),
    access_token: str | None = Depends(get_access_token),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    cover_path = await stage_upload(cover_image, settings.upload_temp_dir, "coverImage")
    try:
        result = await service.update_cover(access_token, cover_path)
    finally:
        discard_staged(cover_path)
    return render_result(result, secure_cookies=settings.is_production)


@router.get("/c/{username}")
async def get_user_channel_profile(
    username: str,
    ctx: AuthContext = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    result = await service.get_user_channel_profile(username, ctx)
    return render_result(result, secure_cookies=settings.is_production)


@router.get("/history")
async def get_watch_history(
    ctx: AuthContext = Depends(get_current_user),
    settings: Settings = Depends(get_settings),
    service: AccountService = Depends(get_account_service),
):
    result = await service.get_watch_history(ctx)
    return render_result(result, secure_cookies=settings.is_production)
