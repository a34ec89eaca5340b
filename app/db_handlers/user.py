from __future__ import annotations

import uuid
from typing import Any

from sqlalchemy import func, literal, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from app.db_handlers.base import BaseDBHandler, check_local_db
from app.models import Subscription, User, Video
from app.utils.auth import get_password_hash
from app.utils.logger import setup_logger

logger = setup_logger("db_handlers.user")


def normalize_username(username: str) -> str:
    return username.strip().lower()


def normalize_email(email: str) -> str:
    return email.strip().lower()


class UserDBHandler(BaseDBHandler[User]):
    def __init__(self):
        super().__init__(User)

    @check_local_db
    async def get_by_username_or_email(
        self,
        username: str | None = None,
        email: str | None = None,
        *,
        db: AsyncSession = None,
    ) -> User | None:
        """Get the first user matching either the username or the email."""
        conditions = []
        if username:
            conditions.append(User.username == normalize_username(username))
        if email:
            conditions.append(User.email == normalize_email(email))
        if not conditions:
            return None

        stmt = select(User).where(or_(*conditions)).order_by(User.created_at)
        result = await db.execute(stmt)
        return result.scalars().first()

    @check_local_db
    async def create_user(
        self,
        *,
        username: str,
        email: str,
        full_name: str,
        password: str,
        avatar: str,
        cover_image: str | None = None,
        db: AsyncSession = None,
    ) -> User:
        """Insert a new user, hashing the password on the way in."""
        return await self.create(
            {
                "username": normalize_username(username),
                "email": normalize_email(email),
                "full_name": full_name.strip(),
                "hashed_password": get_password_hash(password),
                "avatar": avatar,
                "cover_image": cover_image,
                "watch_history": [],
            },
            db=db,
        )

    @check_local_db
    async def set_password(
        self, user: User, new_password: str, *, db: AsyncSession = None
    ) -> User:
        """Re-hash and store a new password."""
        return await self.update(
            user, {"hashed_password": get_password_hash(new_password)}, db=db
        )

    @check_local_db
    async def set_refresh_token(
        self, user_id: uuid.UUID, token: str | None, *, db: AsyncSession = None
    ) -> bool:
        """Overwrite the stored refresh token (None ends the session)."""
        stmt = update(User).where(User.id == user_id).values(refresh_token=token)
        result = await db.execute(stmt)
        return result.rowcount == 1

    @check_local_db
    async def rotate_refresh_token(
        self,
        user_id: uuid.UUID,
        expected_token: str,
        new_token: str,
        *,
        db: AsyncSession = None,
    ) -> bool:
        """
        Compare-and-swap the refresh token.

        Only succeeds while the stored value still equals expected_token, so of
        two concurrent rotations with the same token exactly one wins.
        """
        stmt = (
            update(User)
            .where(User.id == user_id, User.refresh_token == expected_token)
            .values(refresh_token=new_token)
        )
        result = await db.execute(stmt)
        return result.rowcount == 1

    @check_local_db
    async def get_channel_profile(
        self,
        username: str,
        viewer_id: uuid.UUID | None,
        *,
        db: AsyncSession = None,
    ) -> dict[str, Any] | None:
        """
        Channel read model: public profile plus subscription counters.

        subscribers_count counts edges where the user is the channel,
        channels_subscribed_to_count counts edges where the user is the
        subscriber, and is_subscribed tells whether viewer_id follows it.
        """
        subscribers_count = (
            select(func.count(Subscription.id))
            .where(Subscription.channel_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        subscribed_to_count = (
            select(func.count(Subscription.id))
            .where(Subscription.subscriber_id == User.id)
            .correlate(User)
            .scalar_subquery()
        )
        if viewer_id is not None:
            is_subscribed = (
                select(Subscription.id)
                .where(
                    Subscription.channel_id == User.id,
                    Subscription.subscriber_id == viewer_id,
                )
                .correlate(User)
                .exists()
            )
        else:
            is_subscribed = literal(False)

        stmt = select(
            User.id,
            User.username,
            User.email,
            User.full_name,
            User.avatar,
            User.cover_image,
            subscribers_count.label("subscribers_count"),
            subscribed_to_count.label("channels_subscribed_to_count"),
            is_subscribed.label("is_subscribed"),
        ).where(User.username == normalize_username(username))

        result = await db.execute(stmt)
        row = result.mappings().first()
        if row is None:
            return None
        profile = dict(row)
        profile["is_subscribed"] = bool(profile["is_subscribed"])
        return profile

    @check_local_db
    async def get_watch_history(
        self, user_id: uuid.UUID, *, db: AsyncSession = None
    ) -> list[Video]:
        """
        Resolve the user's watch history into videos with their owners loaded.

        Videos come back in watch-history order; ids that no longer resolve
        to a video are skipped.
        """
        user = await self.get(user_id, db=db)
        if user is None or not user.watch_history:
            return []

        video_ids = []
        for raw_id in user.watch_history:
            try:
                video_ids.append(uuid.UUID(str(raw_id)))
            except ValueError:
                logger.warning(f"Skipping malformed watch history id {raw_id!r}")

        stmt = (
            select(Video)
            .where(Video.id.in_(video_ids))
            .options(selectinload(Video.owner))
        )
        result = await db.execute(stmt)
        videos_by_id = {video.id: video for video in result.scalars().all()}
        return [videos_by_id[vid] for vid in video_ids if vid in videos_by_id]
