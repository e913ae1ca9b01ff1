"""S3 object store implementation of StorageBackend."""
import logging
from typing import Any, BinaryIO, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from profile_avatars.exceptions import (
    BlobNotFoundError,
    PermissionOrMissingError,
    StorageError,
    UnexpectedStorageError,
)

from .base import BlobMetadata, StorageBackend, StoredImage, unescape_path

logger = logging.getLogger(__name__)

PUBLIC_READ_ACL = "public-read"
_MISSING_CODES = {"NoSuchKey", "404", "NotFound"}


def create_s3_client(
    region: str,
    access_key: str = "",
    secret_key: str = "",
) -> Any:
    """Build an S3 client for ``region``.

    Explicit credentials are used only when both halves are non-empty;
    otherwise boto3's default credential chain applies.
    """
    if access_key and secret_key:
        session = boto3.session.Session(
            aws_access_key_id=access_key,
            aws_secret_access_key=secret_key,
            region_name=region,
        )
    else:
        session = boto3.session.Session(region_name=region)
    return session.client("s3")


def _error_fields(error: ClientError) -> tuple[Optional[int], str, str]:
    status = error.response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    err = error.response.get("Error", {})
    return status, str(err.get("Code", "")), str(err.get("Message", ""))


class ObjectStoreBackend(StorageBackend):
    """Stores avatars as publicly readable objects in a single S3 bucket.

    The client is created once and shared by every request; boto3 clients
    are safe to use from multiple threads.
    """

    def __init__(
        self,
        bucket: str,
        base_url: str,
        region: str = "us-east-1",
        access_key: str = "",
        secret_key: str = "",
        client: Any = None,
    ):
        """Initialize the object store backend.

        Args:
            bucket: Bucket that holds every avatar object.
            base_url: Public base URL for stored keys.
            region: AWS region of the bucket.
            access_key: Optional explicit access key.
            secret_key: Optional explicit secret key.
            client: Pre-built S3 client, mainly for tests.
        """
        if not bucket:
            raise ValueError("S3 bucket must be set for object storage")

        self.bucket = bucket
        self.base_url = base_url
        self.client = client if client is not None else create_s3_client(
            region, access_key, secret_key
        )
        logger.info(f"Initialized ObjectStoreBackend for bucket {bucket} in {region}")

    def save(self, owner_id: object, path: str, blob: StoredImage) -> str:
        """Upload ``blob`` and then mark it publicly readable.

        ``upload_fileobj`` returns only once the transfer has finished, so
        the ACL is never applied to a partially written object.
        """
        meta = BlobMetadata.for_blob(owner_id, blob)

        try:
            self.client.upload_fileobj(
                blob.open(),
                self.bucket,
                path,
                ExtraArgs={
                    "ContentType": meta.content_type,
                    "Metadata": meta.as_user_metadata(),
                },
            )
        except Exception as e:
            logger.error(f"Failed to upload '{path}' for user {owner_id}: {e}")
            raise StorageError(f"Failed to save file '{path}' to S3: {e}") from e

        try:
            self.client.put_object_acl(Bucket=self.bucket, Key=path, ACL=PUBLIC_READ_ACL)
        except Exception as e:
            logger.error(f"Failed to make '{path}' public for user {owner_id}: {e}")
            self._discard(path)
            raise StorageError(f"Failed to save file '{path}' to S3: {e}") from e

        logger.info(f"Uploaded {meta.content_length} bytes to s3://{self.bucket}/{path}")
        return path

    def _discard(self, path: str) -> None:
        """Remove an object whose upload could not be completed, best effort."""
        try:
            self.client.delete_object(Bucket=self.bucket, Key=path)
        except Exception as e:
            logger.warning(f"Could not remove private object s3://{self.bucket}/{path}: {e}")

    def load(self, path: str) -> BinaryIO:
        key = unescape_path(path)

        try:
            response = self.client.get_object(Bucket=self.bucket, Key=key)
        except ClientError as e:
            status, code, message = _error_fields(e)
            if code in _MISSING_CODES or status == 404:
                logger.warning(f"Object not found: s3://{self.bucket}/{key}")
                raise BlobNotFoundError(f"File not found: {key}") from e
            logger.error(f"S3 GET failed for {key}: status={status}, code={code}, message={message}")
            raise UnexpectedStorageError(f"Failed to read '{key}' from S3: {message}") from e
        except BotoCoreError as e:
            logger.error(f"S3 GET failed for {key}: {e}")
            raise UnexpectedStorageError(f"Failed to read '{key}' from S3: {e}") from e

        return response["Body"]

    def remove(self, path: str) -> None:
        try:
            self.client.delete_object(Bucket=self.bucket, Key=path)
        except ClientError as e:
            status, code, message = _error_fields(e)
            logger.error(
                f"S3 delete refused: Status Code: {status}, Error Code: {code}, Message: {message}"
            )
            raise PermissionOrMissingError(
                "S3 delete failed: permission denied or object not found.",
                details={"path": path, "status": str(status), "code": code},
            ) from e
        except Exception as e:
            logger.error(f"Unexpected error deleting '{path}' from S3: {e}", exc_info=True)
            raise UnexpectedStorageError(f"Unexpected error deleting '{path}' from S3.") from e

        logger.info(f"Deleted s3://{self.bucket}/{path}")

    def url_for(self, key: str) -> str:
        return f"{self.base_url}/{key}"
