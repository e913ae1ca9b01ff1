"""Repository implementations for data access."""

from .user import InMemoryUserRepository, UserDBRepository, UserRepository

__all__ = [
    "UserRepository",
    "InMemoryUserRepository",
    "UserDBRepository",
]
