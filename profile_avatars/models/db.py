"""SQLAlchemy database models."""

from sqlalchemy import Column, Integer, String
from sqlalchemy.orm import declarative_base

# Create the declarative base
Base = declarative_base()

# Avatar key of every user without a custom avatar
DEFAULT_AVATAR = "default_avatar.jpg"


class User(Base):
    """User record as seen by the avatar service.

    Only the columns the avatar pipeline reads or writes are mapped. The
    ``avatar`` column always holds a storage key; users without a custom
    image carry ``DEFAULT_AVATAR`` rather than NULL.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)

    email = Column(String(320), nullable=False, default="")

    name = Column(String(255), nullable=False)

    # Storage key of the current avatar
    avatar = Column(String(512), nullable=False, default=DEFAULT_AVATAR)

    def __init__(self, **kwargs):
        kwargs.setdefault("email", "")
        kwargs.setdefault("avatar", DEFAULT_AVATAR)
        super().__init__(**kwargs)

    def __repr__(self) -> str:
        return f"<User(id={self.id}, name={self.name}, avatar={self.avatar})>"

    @property
    def has_custom_avatar(self) -> bool:
        """True when the avatar key points at a stored object."""
        return bool(self.avatar and self.avatar.strip()) and self.avatar != DEFAULT_AVATAR
