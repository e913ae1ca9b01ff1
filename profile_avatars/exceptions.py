"""Exception hierarchy for the avatar service."""

from typing import Optional


class AvatarError(Exception):
    """Base exception for all avatar service errors."""

    def __init__(self, message: str, details: Optional[dict[str, str]] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(AvatarError):
    """Raised when the storage configuration is invalid or incomplete."""
    pass


class ValidationError(AvatarError):
    """Base class for user-correctable input errors."""
    pass


class UnsupportedMediaTypeError(ValidationError):
    """Raised when an upload's content type is not an accepted image type."""

    def __init__(self, *allowed: str, content_type: Optional[str] = None) -> None:
        self.allowed = list(allowed)
        self.content_type = content_type
        super().__init__(
            f"Unsupported media type {content_type!r}. Allowed: {', '.join(self.allowed)}",
            details={"allowed": ",".join(self.allowed)},
        )


class NotFoundError(AvatarError):
    """Raised when a blob or a user does not exist."""
    pass


class UserNotFoundError(NotFoundError):
    """Raised when no user record matches the requested id."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(f"User {user_id} not found.", details={"user_id": str(user_id)})


class StorageError(AvatarError):
    """Base exception for storage backend failures."""
    pass


class BlobNotFoundError(StorageError, NotFoundError):
    """Raised when no stored object exists at a path."""
    pass


class PermissionOrMissingError(StorageError):
    """Raised when the backend refuses a delete or the target is absent."""
    pass


class UnexpectedStorageError(StorageError):
    """Raised for any other storage transport failure."""
    pass


class InvalidStoragePathError(StorageError, ValidationError):
    """Raised when a storage key is empty or points outside the storage root."""
    pass


class UpstreamServiceError(AvatarError):
    """Raised when the initials-image generator cannot produce an avatar."""
    pass


class NoAvatarToDeleteError(AvatarError):
    """Raised when deleting the avatar of a user who only has the default one."""

    def __init__(self, user_id: int) -> None:
        self.user_id = user_id
        super().__init__(
            f"User {user_id} has no avatar to remove.",
            details={"user_id": str(user_id)},
        )


class AvatarStorageUnavailableError(AvatarError):
    """Raised when the storage backend fails while removing an avatar."""
    pass
