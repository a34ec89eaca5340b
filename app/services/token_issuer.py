"""
Token issuer for the two classes of bearer credentials.

Access and refresh tokens are HS256 JWTs signed with independent secrets and
lifetimes. Verification checks signature, expiry and the token type claim;
whether a refresh token is still the user's current one is decided by the
account operations against the stored value.
"""

import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from app.config import Settings
from app.models import User
from app.utils.logger import setup_logger

logger = setup_logger("token_issuer")

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


@dataclass(frozen=True)
class SigningContext:
    secret: str
    ttl: timedelta
    token_type: str
    algorithm: str = "HS256"


@dataclass(frozen=True)
class SessionTokens:
    access_token: str
    refresh_token: str
    access_ttl: timedelta
    refresh_ttl: timedelta


class TokenIssuer:
    def __init__(self, settings: Settings):
        self.access_context = SigningContext(
            secret=settings.access_token_secret,
            ttl=settings.access_token_expiry,
            token_type=ACCESS_TOKEN_TYPE,
            algorithm=settings.jwt_algorithm,
        )
        self.refresh_context = SigningContext(
            secret=settings.refresh_token_secret,
            ttl=settings.refresh_token_expiry,
            token_type=REFRESH_TOKEN_TYPE,
            algorithm=settings.jwt_algorithm,
        )

    @staticmethod
    def _encode(context: SigningContext, claims: dict[str, Any]) -> str:
        now = datetime.now(UTC)
        to_encode = dict(claims)
        to_encode.update(
            {
                "type": context.token_type,
                # Unique per token so two tokens minted in the same second differ
                "jti": uuid.uuid4().hex,
                "iat": now,
                "exp": now + context.ttl,
            }
        )
        return jwt.encode(to_encode, context.secret, algorithm=context.algorithm)

    @staticmethod
    def _decode(context: SigningContext, token: str) -> dict[str, Any] | None:
        try:
            payload = jwt.decode(token, context.secret, algorithms=[context.algorithm])
        except JWTError as e:
            logger.debug(f"Rejected {context.token_type} token: {e}")
            return None
        if payload.get("type") != context.token_type or not payload.get("sub"):
            logger.debug(f"Rejected {context.token_type} token: wrong type or subject")
            return None
        return payload

    def issue_access_token(self, user: User) -> str:
        return self._encode(
            self.access_context,
            {
                "sub": str(user.id),
                "username": user.username,
                "email": user.email,
                "fullName": user.full_name,
            },
        )

    def issue_refresh_token(self, user: User) -> str:
        return self._encode(self.refresh_context, {"sub": str(user.id)})

    def issue_pair(self, user: User) -> SessionTokens:
        return SessionTokens(
            access_token=self.issue_access_token(user),
            refresh_token=self.issue_refresh_token(user),
            access_ttl=self.access_context.ttl,
            refresh_ttl=self.refresh_context.ttl,
        )

    def verify_access_token(self, token: str) -> dict[str, Any] | None:
        return self._decode(self.access_context, token)

    def verify_refresh_token(self, token: str) -> dict[str, Any] | None:
        return self._decode(self.refresh_context, token)


def subject_id(claims: dict[str, Any]) -> uuid.UUID | None:
    """Extract the user id carried in the "sub" claim."""
    try:
        return uuid.UUID(str(claims.get("sub")))
    except ValueError:
        return None
