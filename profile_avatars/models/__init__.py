"""Database models for the profile avatar service."""

from .db import DEFAULT_AVATAR, Base, User

__all__ = ["Base", "User", "DEFAULT_AVATAR"]
