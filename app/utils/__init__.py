"""
Common utilities for the VideoTube accounts service: password hashing and
logging.
"""

from app.utils.auth import get_password_hash, password_too_long, verify_password
from app.utils.logger import setup_logger

__all__ = [
    # Authentication utilities
    "get_password_hash",
    "password_too_long",
    "verify_password",
    # Logging utilities
    "setup_logger",
]
