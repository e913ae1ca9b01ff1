"""User repository for loading and saving avatar records."""

import logging
from typing import Optional, Protocol

from sqlalchemy.orm import Session

from profile_avatars.models import User

logger = logging.getLogger(__name__)


class UserRepository(Protocol):
    """Interface for user record storage.

    The avatar service only needs to look users up by id and write them
    back after changing their avatar key.
    """

    def find_by_id(self, user_id: int) -> Optional[User]:
        """Get a user by id.

        Args:
            user_id: Identifier of the user.

        Returns:
            Optional[User]: The user, or None if it does not exist.
        """
        ...

    def save(self, user: User) -> User:
        """Persist a new or modified user.

        Args:
            user: The user to store.

        Returns:
            User: The stored user, with its id assigned.
        """
        ...


class InMemoryUserRepository(UserRepository):
    """In-memory implementation of UserRepository.

    Stores users in a dictionary keyed by id. Data is lost on restart;
    suitable for development and tests.
    """

    def __init__(self):
        """Initialize the in-memory repository."""
        self._storage: dict[int, User] = {}
        self._next_id = 1
        logger.info("Initialized InMemoryUserRepository")

    def find_by_id(self, user_id: int) -> Optional[User]:
        user = self._storage.get(user_id)
        logger.debug(f"Lookup user {user_id}: {'found' if user else 'missing'}")
        return user

    def save(self, user: User) -> User:
        if user.id is None:
            user.id = self._next_id
        self._next_id = max(self._next_id, user.id + 1)
        self._storage[user.id] = user
        logger.debug(f"Saved user {user.id} with avatar {user.avatar}")
        return user

    def count(self) -> int:
        return len(self._storage)

    def clear(self) -> None:
        """Clear all users. Mainly useful for tests."""
        self._storage.clear()
        self._next_id = 1
        logger.debug("Cleared all users from repository")


class UserDBRepository(UserRepository):
    """SQLAlchemy-based implementation of UserRepository."""

    def __init__(self, db: Session):
        """Initialize the repository with a database session.

        Args:
            db: SQLAlchemy session for database operations
        """
        self.db = db

    def find_by_id(self, user_id: int) -> Optional[User]:
        return self.db.get(User, user_id)

    def save(self, user: User) -> User:
        try:
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        except Exception as e:
            self.db.rollback()
            logger.error(f"Failed to save user {user.id}: {e}")
            raise

        logger.info(f"Saved user {user.id} with avatar {user.avatar}")
        return user
