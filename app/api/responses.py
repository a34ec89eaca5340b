"""
Envelope rendering: the single place where operation results become HTTP
responses, status codes and session cookies.
"""

from typing import Any

from fastapi import status
from fastapi.responses import JSONResponse

from app.schemas import ApiErrorResponse, ApiResponse
from app.services.results import ErrorKind, ServiceResult
from app.services.token_issuer import SessionTokens

ACCESS_TOKEN_COOKIE = "accessToken"
REFRESH_TOKEN_COOKIE = "refreshToken"

ERROR_STATUS = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONFLICT: status.HTTP_409_CONFLICT,
    ErrorKind.UPSTREAM: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(
    status_code: int,
    message: str,
    errors: list[Any] | None = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ApiErrorResponse(status_code=status_code, message=message, errors=errors or [])
    return JSONResponse(status_code=status_code, content=body.dump(), headers=headers)


def _set_session_cookies(response: JSONResponse, tokens: SessionTokens, secure: bool):
    for name, value, ttl in (
        (ACCESS_TOKEN_COOKIE, tokens.access_token, tokens.access_ttl),
        (REFRESH_TOKEN_COOKIE, tokens.refresh_token, tokens.refresh_ttl),
    ):
        response.set_cookie(
            name,
            value,
            httponly=True,
            secure=secure,
            samesite="lax",
            max_age=int(ttl.total_seconds()),
            path="/",
        )


def _clear_session_cookies(response: JSONResponse, secure: bool):
    for name in (ACCESS_TOKEN_COOKIE, REFRESH_TOKEN_COOKIE):
        response.delete_cookie(
            name, httponly=True, secure=secure, samesite="lax", path="/"
        )


def render_result(
    result: ServiceResult,
    *,
    secure_cookies: bool,
    success_status: int = status.HTTP_200_OK,
) -> JSONResponse:
    """Turn a ServiceResult into the JSON envelope (and cookies)."""
    if not result.ok:
        return error_response(ERROR_STATUS[result.error.kind], result.error.message)

    body = ApiResponse(
        status_code=success_status, data=result.data, message=result.message
    )
    response = JSONResponse(status_code=success_status, content=body.dump())
    if result.session is not None:
        _set_session_cookies(response, result.session, secure_cookies)
    if result.end_session:
        _clear_session_cookies(response, secure_cookies)
    return response
