"""Avatar resolution: validated uploads, generated defaults and deletion."""
import logging
from typing import BinaryIO

from profile_avatars.exceptions import (
    AvatarStorageUnavailableError,
    NoAvatarToDeleteError,
    UnsupportedMediaTypeError,
    UserNotFoundError,
)
from profile_avatars.image_client import GravatarClient, InitialsAvatarClient
from profile_avatars.models import DEFAULT_AVATAR, User
from profile_avatars.repositories import UserRepository
from profile_avatars.storage import StorageBackend, StoredImage

logger = logging.getLogger(__name__)

FOLDER = "avatars"

CONTENT_TYPE_EXTENSIONS = {
    "image/jpeg": "jpg",
    "image/png": "png",
}


def storage_path(user_id: object, extension: str = "png") -> str:
    """Canonical storage key of a user's avatar."""
    return f"{FOLDER}/{user_id}/avatar.{extension}"


def extension_for(content_type: str | None) -> str:
    """Map an accepted image content type to its file extension.

    Raises:
        UnsupportedMediaTypeError: For anything but JPEG or PNG.
    """
    try:
        return CONTENT_TYPE_EXTENSIONS[content_type]
    except KeyError:
        raise UnsupportedMediaTypeError("jpg", "png", content_type=content_type) from None


class AvatarService:
    """Produces, stores and removes user avatars.

    Uploads are best effort: anything that goes wrong leaves the user with
    the default avatar. Default generation and deletion fail loudly instead.
    """

    DEFAULT_AVATAR = DEFAULT_AVATAR

    def __init__(
        self,
        storage: StorageBackend,
        user_repository: UserRepository,
        gravatar: GravatarClient,
        initials: InitialsAvatarClient,
    ):
        self.storage = storage
        self.user_repository = user_repository
        self.gravatar = gravatar
        self.initials = initials

    def save(self, user_id: int, avatar: StoredImage) -> str:
        """Store an uploaded avatar.

        Args:
            user_id: Owner of the avatar.
            avatar: Uploaded image.

        Returns:
            str: Storage key of the new avatar, or ``DEFAULT_AVATAR`` if the
            upload was rejected or could not be stored. The caller persists
            the key on the user.
        """
        try:
            extension = extension_for(avatar.content_type)
            path = storage_path(user_id, extension)
            self.storage.save(user_id, path, avatar)
        except Exception:
            logger.error(f"Error saving avatar for user {user_id}. Using default.", exc_info=True)
            return DEFAULT_AVATAR

        logger.info(f"Stored avatar for user {user_id} at {path}")
        return path

    def save_default_avatar(self, user: User) -> str:
        """Generate and store an avatar for a user who has not uploaded one.

        Gravatar is tried first when the user has an email address; the
        initials generator is the fallback.

        Returns:
            str: Storage key of the generated avatar.

        Raises:
            UpstreamServiceError: If the initials generator fails.
            StorageError: If the generated image cannot be stored.
        """
        avatar_bytes = None
        if user.email and user.email.strip():
            avatar_bytes = self.gravatar.fetch(user.email)

        if avatar_bytes is None:
            avatar_bytes = self.initials.render(user.name)

        image = StoredImage.from_bytes(avatar_bytes)
        path = self.storage.save(user.id, storage_path(user.id), image)
        logger.info(f"Stored default avatar for user {user.id} at {path}")
        return path

    def delete_user_avatar(self, user_id: int) -> None:
        """Remove a user's avatar and reset them to the default one.

        The remote delete and the user update are separate steps; if saving
        the user fails after the delete, the record keeps pointing at the
        removed object.

        Raises:
            UserNotFoundError: If the user does not exist.
            NoAvatarToDeleteError: If the user only has the default avatar.
            AvatarStorageUnavailableError: If the backend delete fails.
        """
        user = self.user_repository.find_by_id(user_id)
        if user is None:
            raise UserNotFoundError(user_id)

        avatar_path = user.avatar
        if not user.has_custom_avatar:
            raise NoAvatarToDeleteError(user_id)

        try:
            self.storage.remove(avatar_path)
        except Exception as e:
            logger.error(
                f"Failed to delete stored avatar for user {user_id}. Path: {avatar_path}",
                exc_info=True,
            )
            raise AvatarStorageUnavailableError(
                "Storage failure while deleting the avatar. "
                "Check the storage credentials and bucket permissions; see logs for details.",
                details={"user_id": str(user_id), "path": avatar_path},
            ) from e

        user.avatar = DEFAULT_AVATAR
        self.user_repository.save(user)
        logger.info(f"Deleted avatar {avatar_path} of user {user_id}")

    def load(self, name: str) -> BinaryIO:
        return self.storage.load(name)

    def url_for(self, path: str) -> str:
        return self.storage.url_for(path)

    def avatar_url(self, user: User) -> str:
        """Public URL of the user's current avatar."""
        return self.url_for(user.avatar)
