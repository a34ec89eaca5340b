"""
Database models for the VideoTube accounts service.

Architecture: User → (Subscription edges, owned Videos, watch history).
"""

from app.models.subscription import Subscription
from app.models.user import User
from app.models.video import Video

__all__ = [
    "User",
    "Video",
    "Subscription",
]
