"""
User model: identity, credentials, profile media and session state.

Architecture:
    User ─┬─ owns → Video
          ├─ subscribes to → User (via Subscription)
          └─ watch_history → [Video ids]

Key Features:
    - bcrypt-hashed secret, never serialized
    - Lower-cased unique username and email
    - Single active refresh token per user (NULL means logged out)
    - Ordered watch history kept as a JSON array of video ids
"""

from sqlalchemy import JSON, Column, Index, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, UUIDMixin


class User(Base, UUIDMixin, TimestampMixin):
    """
    Registered account of the video platform.

    The refresh_token column always holds the token most recently issued to
    the user; presenting any other refresh token is treated as reuse.
    """

    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_username", "username", unique=True),
        Index("ix_users_email", "email", unique=True),
    )

    username = Column(
        String(50),
        nullable=False,
        comment="Lower-cased unique handle, also the channel name",
    )
    email = Column(
        String(255),
        nullable=False,
        comment="Lower-cased unique email address",
    )
    full_name = Column(String(100), nullable=False, comment="Display name")
    hashed_password = Column(
        String(255),
        nullable=False,
        comment="Bcrypt hashed password for secure authentication",
    )
    avatar = Column(String(512), nullable=False, comment="Remote avatar URL")
    cover_image = Column(String(512), nullable=True, comment="Remote cover URL")
    refresh_token = Column(
        Text,
        nullable=True,
        comment="Most recently issued refresh token; NULL when logged out",
    )
    watch_history = Column(
        JSON,
        nullable=False,
        default=list,
        comment="Ordered list of watched video ids (oldest first)",
    )

    videos = relationship(
        "Video",
        back_populates="owner",
        doc="Videos uploaded by this user",
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
