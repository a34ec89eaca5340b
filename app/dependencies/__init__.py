from app.dependencies.auth import (
    get_access_token,
    get_account_service,
    get_current_user,
    get_settings,
    get_token_issuer,
)

__all__ = [
    "get_access_token",
    "get_account_service",
    "get_current_user",
    "get_settings",
    "get_token_issuer",
]
