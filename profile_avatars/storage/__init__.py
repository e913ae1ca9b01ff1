"""Storage backends for avatar persistence."""

import logging

from config import Settings
from profile_avatars.exceptions import ConfigurationError

from .base import BlobMetadata, StorageBackend, StoredImage
from .local import LocalDiskBackend
from .s3 import ObjectStoreBackend

logger = logging.getLogger(__name__)


def create_storage_backend(settings: Settings) -> StorageBackend:
    """Factory function to create the storage backend selected by settings.

    Args:
        settings: Application settings

    Returns:
        StorageBackend instance (either ObjectStoreBackend or LocalDiskBackend)

    Raises:
        ConfigurationError: If s3 storage is selected without a bucket.
    """
    if settings.storage_type == "s3":
        if not settings.s3_bucket:
            raise ConfigurationError("S3_BUCKET must be set when STORAGE_TYPE is 's3'")
        logger.info(
            "Creating ObjectStoreBackend with "
            + ("static credentials" if settings.has_static_credentials else "default credential chain")
        )
        return ObjectStoreBackend(
            bucket=settings.s3_bucket,
            base_url=settings.storage_base_url,
            region=settings.aws_region,
            access_key=settings.aws_access_key,
            secret_key=settings.aws_secret_key,
        )

    logger.info("Creating LocalDiskBackend")
    return LocalDiskBackend(
        storage_root=settings.storage_root,
        base_url=settings.storage_base_url,
    )


__all__ = [
    "BlobMetadata",
    "LocalDiskBackend",
    "ObjectStoreBackend",
    "StorageBackend",
    "StoredImage",
    "create_storage_backend",
]
