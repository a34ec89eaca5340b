from dataclasses import dataclass

from app.models import User


@dataclass(frozen=True)
class AuthContext:
    """Identity resolved by the request guard for the current request."""

    user: User

    @property
    def user_id(self):
        return self.user.id
