"""FastAPI dependency injection configuration."""

import logging

from fastapi import Depends
from sqlalchemy.orm import Session

from config import get_settings
from profile_avatars.avatar_service import AvatarService
from profile_avatars.db import get_db
from profile_avatars.image_client import (
    GravatarClient,
    InitialsAvatarClient,
    create_gravatar_client,
    create_initials_client,
)
from profile_avatars.repositories import (
    InMemoryUserRepository,
    UserDBRepository,
    UserRepository,
)
from profile_avatars.storage import StorageBackend, create_storage_backend

logger = logging.getLogger(__name__)


# Process-wide instances, built during application startup and kept for the process lifetime
_in_memory_repository: InMemoryUserRepository | None = None
_storage_backend: StorageBackend | None = None
_gravatar_client: GravatarClient | None = None
_initials_client: InitialsAvatarClient | None = None


def get_user_repository(db: Session = Depends(get_db)) -> UserRepository:
    """Get the user repository selected by the USER_STORAGE setting.

    - "memory": Uses InMemoryUserRepository (data lost on restart)
    - "database": Uses UserDBRepository (data persisted in database)

    Args:
        db: Database session (only used for database user storage)

    Returns:
        UserRepository: The configured user repository instance
    """
    settings = get_settings()

    if settings.user_storage == "database":
        return UserDBRepository(db)

    global _in_memory_repository
    if _in_memory_repository is None:
        _in_memory_repository = InMemoryUserRepository()
        logger.info("Created in-memory repository for user records")
    return _in_memory_repository


def get_storage_backend() -> StorageBackend:
    """Get the storage backend selected by the STORAGE_TYPE setting.

    The backend is built once; later calls return the same instance even if
    settings change.
    """
    global _storage_backend

    if _storage_backend is None:
        settings = get_settings()
        _storage_backend = create_storage_backend(settings)
        logger.info(f"Created storage backend: {type(_storage_backend).__name__}")

    return _storage_backend


def get_gravatar_client() -> GravatarClient:
    global _gravatar_client
    if _gravatar_client is None:
        _gravatar_client = create_gravatar_client(get_settings())
    return _gravatar_client


def get_initials_client() -> InitialsAvatarClient:
    global _initials_client
    if _initials_client is None:
        _initials_client = create_initials_client(get_settings())
    return _initials_client


def get_avatar_service(
    storage: StorageBackend = Depends(get_storage_backend),
    user_repository: UserRepository = Depends(get_user_repository),
    gravatar: GravatarClient = Depends(get_gravatar_client),
    initials: InitialsAvatarClient = Depends(get_initials_client),
) -> AvatarService:
    """Assemble an AvatarService from the shared collaborators."""
    return AvatarService(storage, user_repository, gravatar, initials)
