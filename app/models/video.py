"""
Video model. Videos are published by another subsystem; this service only
reads them to resolve watch history.
"""

from sqlalchemy import Boolean, Column, Float, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from app.models.base import Base, TimestampMixin, UUIDMixin


class Video(Base, UUIDMixin, TimestampMixin):
    __tablename__ = "videos"

    video_file = Column(String(512), nullable=False, comment="Remote video URL")
    thumbnail = Column(String(512), nullable=False, comment="Remote thumbnail URL")
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False, default="")
    duration = Column(Float, nullable=False, default=0.0, comment="Seconds")
    views = Column(Integer, nullable=False, default=0)
    is_published = Column(Boolean, nullable=False, default=True)
    owner_id = Column(ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    owner = relationship("User", back_populates="videos")

    def __repr__(self):
        return f"<Video(id={self.id}, title='{self.title}')>"
