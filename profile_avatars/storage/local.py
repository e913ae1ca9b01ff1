"""Local filesystem implementation of StorageBackend."""
import logging
import os
import tempfile
from pathlib import Path
from typing import BinaryIO, Optional

from config import get_settings
from profile_avatars.exceptions import (
    BlobNotFoundError,
    InvalidStoragePathError,
    PermissionOrMissingError,
    StorageError,
    UnexpectedStorageError,
)

from .base import StorageBackend, StoredImage, unescape_path

logger = logging.getLogger(__name__)


class LocalDiskBackend(StorageBackend):
    """Local filesystem storage implementation.

    Stores each key as a file below a configurable root directory. Keys map
    directly to relative paths, so ``avatars/7/avatar.png`` lands in
    ``<root>/avatars/7/avatar.png``. There is no visibility step; anything
    written is served by whatever exposes ``base_url``.
    """

    def __init__(
        self,
        storage_root: Optional[str | Path] = None,
        base_url: Optional[str] = None,
    ):
        """Initialize local storage backend.

        Args:
            storage_root: Root directory for stored files.
                         If not provided, uses the configured storage root from settings.
            base_url: Public base URL for stored keys.
                      If not provided, uses the configured base URL from settings.
        """
        settings = get_settings()

        if storage_root is not None:
            self.storage_root = Path(storage_root)
        else:
            self.storage_root = settings.storage_root

        self.base_url = base_url if base_url is not None else settings.storage_base_url

        self._ensure_storage_dir()
        logger.info(f"Initialized LocalDiskBackend with root: {self.storage_root}")

    def _ensure_storage_dir(self) -> None:
        """Ensure the storage directory exists."""
        try:
            self.storage_root.mkdir(parents=True, exist_ok=True)
            logger.debug(f"Ensured storage directory exists: {self.storage_root}")
        except OSError as e:
            logger.error(f"Failed to create storage directory: {e}")
            raise StorageError(f"Failed to create storage directory: {e}") from e

    def _resolve(self, path: str) -> Path:
        """Map a storage key to a file below the root, rejecting escapes."""
        if not path:
            raise InvalidStoragePathError("Storage path cannot be empty")

        root = self.storage_root.resolve()
        target = (root / path).resolve()
        if target != root and root not in target.parents:
            raise InvalidStoragePathError(
                f"Path '{path}' escapes the storage root", details={"path": path}
            )
        return target

    def save(self, owner_id: object, path: str, blob: StoredImage) -> str:
        """Write ``blob`` to ``<root>/<path>``.

        The content goes to a temporary file in the target directory first and
        is then renamed over the destination, so readers never see a partial
        file.
        """
        target = self._resolve(path)
        tmp_name = None

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=target.parent, prefix=".upload-")
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(blob.content)
            os.replace(tmp_name, target)
        except OSError as e:
            if tmp_name is not None and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            logger.error(f"Failed to save file '{path}' for user {owner_id}: {e}")
            raise StorageError(f"Failed to save file '{path}' to local storage: {e}") from e

        logger.debug(
            f"Saved {blob.size} bytes ({blob.content_type}) for user {owner_id} to: {target}"
        )
        return path

    def load(self, path: str) -> BinaryIO:
        file_path = self._resolve(unescape_path(path))

        try:
            stream = open(file_path, "rb")
        except FileNotFoundError as e:
            logger.warning(f"File not found: {path}")
            raise BlobNotFoundError(f"File not found: {path}") from e
        except OSError as e:
            logger.error(f"Failed to read file {file_path}: {e}")
            raise UnexpectedStorageError(f"Failed to read file '{path}': {e}") from e

        logger.debug(f"Opened file for reading: {file_path}")
        return stream

    def remove(self, path: str) -> None:
        file_path = self._resolve(path)

        try:
            file_path.unlink()
        except (FileNotFoundError, PermissionError) as e:
            logger.error(
                f"Local delete refused for '{path}': errno={e.errno}, error={type(e).__name__}"
            )
            raise PermissionOrMissingError(
                f"Failed to delete '{path}': permission denied or file not found."
            ) from e
        except OSError as e:
            logger.error(f"Unexpected error deleting file '{path}': {e}", exc_info=True)
            raise UnexpectedStorageError(f"Unexpected error deleting '{path}'.") from e

        logger.info(f"Deleted file: {file_path}")

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"
