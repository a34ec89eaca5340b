"""
Subscription edge between a subscriber and a channel (both users).

Subscriptions are created elsewhere; this service only counts them when
building channel profiles.
"""

from sqlalchemy import Column, ForeignKey, Index

from app.models.base import Base, TimestampMixin, UUIDMixin


class Subscription(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "subscriptions"
    __table_args__ = (
        Index("ix_subscriptions_channel_id", "channel_id"),
        Index("ix_subscriptions_subscriber_id", "subscriber_id"),
    )

    subscriber_id = Column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="User who subscribes",
    )
    channel_id = Column(
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="User being subscribed to",
    )

    def __repr__(self):
        return (
            f"<Subscription(subscriber_id={self.subscriber_id}, "
            f"channel_id={self.channel_id})>"
        )
