"""
Authentication dependencies for FastAPI route protection.

The bearer credential is taken from the `accessToken` cookie first and the
`Authorization: Bearer` header second.
"""

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import SQLAlchemyError

from app.api.responses import ACCESS_TOKEN_COOKIE
from app.config import Settings
from app.db_handlers import UserDBHandler
from app.services.account_service import AccountService
from app.services.context import AuthContext
from app.services.token_issuer import TokenIssuer, subject_id
from app.utils.logger import setup_logger

logger = setup_logger("dependencies.auth")

# Header extraction only; a missing header is not an error here
security = HTTPBearer(auto_error=False)


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_token_issuer(request: Request) -> TokenIssuer:
    return request.app.state.token_issuer


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service


async def get_access_token(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> str | None:
    """Raw access token from cookie or header, not yet verified."""
    token = request.cookies.get(ACCESS_TOKEN_COOKIE)
    if token:
        return token
    if credentials is not None:
        return credentials.credentials
    return None


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Unauthorized request",
        headers={"WWW-Authenticate": "Bearer"},
    )


async def get_current_user(
    access_token: str | None = Depends(get_access_token),
    token_issuer: TokenIssuer = Depends(get_token_issuer),
) -> AuthContext:
    """
    Request guard: verify the access token and resolve the user it names.

    Every failure is reported as the same 401 so callers cannot tell a bad
    signature from a deleted account.
    """
    if not access_token:
        raise _unauthorized()

    claims = token_issuer.verify_access_token(access_token)
    user_id = subject_id(claims) if claims else None
    if user_id is None:
        raise _unauthorized()

    try:
        user = await UserDBHandler().get(user_id)
    except SQLAlchemyError as e:
        logger.error(f"Could not resolve user {user_id} for request guard: {e}")
        raise _unauthorized() from e

    if user is None:
        logger.warning(f"Access token names a missing user {user_id}")
        raise _unauthorized()

    return AuthContext(user=user)
