"""Storage backend interface for avatar persistence."""

import io
from dataclasses import dataclass
from typing import BinaryIO, Optional, Protocol, runtime_checkable

# Stand-in for "/" used by callers that cannot pass nested keys in a single URL segment
PATH_SEPARATOR_ESCAPE = "-S-"

DEFAULT_CONTENT_TYPE = "application/octet-stream"


def unescape_path(path: str) -> str:
    """Rewrite escaped separators in ``path`` to ``/``."""
    return path.replace(PATH_SEPARATOR_ESCAPE, "/")


@dataclass(frozen=True)
class StoredImage:
    """A named blob of image bytes with its content type.

    Used both for files uploaded by users and for avatars generated by the
    service, so that both reach the storage backend through the same path.
    """

    filename: str
    content_type: Optional[str]
    content: bytes

    @classmethod
    def from_bytes(
        cls,
        content: bytes,
        filename: str = "avatar.png",
        content_type: str = "image/png",
    ) -> "StoredImage":
        return cls(filename=filename, content_type=content_type, content=content)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def is_empty(self) -> bool:
        return not self.content

    def open(self) -> BinaryIO:
        """Return a fresh readable stream over the content."""
        return io.BytesIO(self.content)


@dataclass(frozen=True)
class BlobMetadata:
    """Informational metadata attached to a blob when it is written."""

    content_type: str
    content_length: int
    owner_id: str
    original_filename: Optional[str]

    @classmethod
    def for_blob(cls, owner_id: object, blob: StoredImage) -> "BlobMetadata":
        return cls(
            content_type=blob.content_type or DEFAULT_CONTENT_TYPE,
            content_length=blob.size,
            owner_id=str(owner_id),
            original_filename=blob.filename,
        )

    def as_user_metadata(self) -> dict[str, str]:
        """Key/value pairs suitable for object store user metadata."""
        metadata = {"userId": self.owner_id}
        if self.original_filename:
            metadata["originalFileName"] = self.original_filename
        return metadata


@runtime_checkable
class StorageBackend(Protocol):
    """Abstract interface for avatar storage operations.

    Implementations persist named blobs and expose them under a public base
    URL. Exactly one implementation is active per process.
    """

    def save(self, owner_id: object, path: str, blob: StoredImage) -> str:
        """Store ``blob`` under ``path``.

        Args:
            owner_id: Identifier of the user that owns the blob.
            path: Storage key to write.
            blob: Content and content type to store.

        Returns:
            str: The storage key the blob was written to.

        Raises:
            StorageError: If the blob cannot be stored. Nothing is left
                readable at ``path`` in that case.
        """
        ...

    def load(self, path: str) -> BinaryIO:
        """Open a stored blob for reading.

        Raises:
            BlobNotFoundError: If nothing is stored at ``path``.
            UnexpectedStorageError: For any other failure.
        """
        ...

    def remove(self, path: str) -> None:
        """Delete a stored blob.

        Raises:
            PermissionOrMissingError: If the backend refuses the delete or
                the blob does not exist.
            UnexpectedStorageError: For any other failure.
        """
        ...

    def url_for(self, key: str) -> str:
        """Public URL of ``key``. Performs no I/O."""
        ...
