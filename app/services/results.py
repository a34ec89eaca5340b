"""
Result type returned by every account operation.

An operation either succeeds with a payload or fails with a typed error; the
HTTP layer is the only place that turns error kinds into status codes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

from app.services.token_issuer import SessionTokens


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    UPSTREAM = "upstream"


@dataclass(frozen=True)
class ServiceError:
    kind: ErrorKind
    message: str


@dataclass(frozen=True)
class ServiceResult:
    data: Any = None
    message: str = "Success"
    error: ServiceError | None = None
    # Tokens the HTTP layer should hand out as cookies
    session: SessionTokens | None = None
    # Clear both session cookies
    end_session: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, data: Any = None, message: str = "Success", **kwargs) -> "ServiceResult":
        return cls(data=data, message=message, **kwargs)

    @classmethod
    def failure(cls, kind: ErrorKind, message: str) -> "ServiceResult":
        return cls(message=message, error=ServiceError(kind=kind, message=message))
