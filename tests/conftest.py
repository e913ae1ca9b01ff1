"""Shared fixtures for the avatar service tests."""
import io
import os

# Keep the app off the on-disk database; must run before settings are cached
os.environ.setdefault("USER_STORAGE", "memory")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

import httpx
import pytest
from PIL import Image

from profile_avatars.image_client import GravatarClient, InitialsAvatarClient
from profile_avatars.models import User
from profile_avatars.repositories import InMemoryUserRepository
from profile_avatars.storage import LocalDiskBackend, StoredImage


def create_test_image(fmt: str = "JPEG", size: int = 10, seed: int = 0) -> bytes:
    """Create a small test image.

    Args:
        fmt: Pillow format name ("JPEG" or "PNG").
        size: Edge length in pixels.
        seed: Seed for generating different colored images.

    Returns:
        bytes: Encoded image data.
    """
    color = ((seed * 50) % 256, (seed * 100) % 256, (seed * 150) % 256)
    img = Image.new("RGB", (size, size), color=color)

    img_bytes = io.BytesIO()
    img.save(img_bytes, format=fmt)
    return img_bytes.getvalue()


@pytest.fixture
def jpeg_bytes():
    return create_test_image("JPEG")


@pytest.fixture
def png_bytes():
    return create_test_image("PNG", seed=3)


@pytest.fixture
def jpeg_upload(jpeg_bytes):
    return StoredImage(filename="me.jpg", content_type="image/jpeg", content=jpeg_bytes)


@pytest.fixture
def png_upload(png_bytes):
    return StoredImage(filename="me.png", content_type="image/png", content=png_bytes)


@pytest.fixture
def local_backend(tmp_path):
    """Create a LocalDiskBackend with temporary directory."""
    return LocalDiskBackend(
        storage_root=tmp_path / "files",
        base_url="http://testserver/files",
    )


@pytest.fixture
def user_repository():
    return InMemoryUserRepository()


@pytest.fixture
def user(user_repository):
    return user_repository.save(User(name="Ada Lovelace", email="Ada@Example.com "))


def mock_http_client(handler) -> httpx.Client:
    """httpx client whose requests are answered by ``handler``."""
    return httpx.Client(transport=httpx.MockTransport(handler))


@pytest.fixture
def mock_http():
    return mock_http_client


@pytest.fixture
def gravatar_requests():
    return []


@pytest.fixture
def initials_requests():
    return []


@pytest.fixture
def gravatar_factory(gravatar_requests):
    """Build a GravatarClient answering with a fixed status and body."""
    def factory(status_code: int = 404, content: bytes = b"") -> GravatarClient:
        def handler(request: httpx.Request) -> httpx.Response:
            gravatar_requests.append(request)
            return httpx.Response(status_code, content=content)

        return GravatarClient(
            "https://gravatar.test/avatar",
            http_client=mock_http_client(handler),
        )
    return factory


@pytest.fixture
def initials_factory(initials_requests):
    """Build an InitialsAvatarClient answering with a fixed status and body."""
    def factory(status_code: int = 200, content: bytes = b"initials-png") -> InitialsAvatarClient:
        def handler(request: httpx.Request) -> httpx.Response:
            initials_requests.append(request)
            return httpx.Response(status_code, content=content)

        return InitialsAvatarClient(
            "https://initials.test/api",
            http_client=mock_http_client(handler),
        )
    return factory
