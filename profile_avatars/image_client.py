"""Clients for the remote services that supply default avatar images."""
import hashlib
import logging
import time
from typing import Optional
from urllib.parse import quote_plus

import httpx

from config import Settings
from profile_avatars.exceptions import UpstreamServiceError

logger = logging.getLogger(__name__)


def md5_hex(value: str) -> str:
    """Lowercase hex MD5 digest of ``value``."""
    return hashlib.md5(value.encode("utf-8")).hexdigest()


def gravatar_hash(email: str) -> str:
    """Hash Gravatar uses to identify an email address."""
    return md5_hex(email.strip().lower())


def _build_http_client(timeout: Optional[float]) -> httpx.Client:
    # Only pass a timeout when configured; httpx treats None as "no timeout"
    if timeout is None:
        return httpx.Client()
    return httpx.Client(timeout=timeout)


class GravatarClient:
    """Looks up the image a user registered for their email on Gravatar.

    A miss is not an error: the service is asked to answer 404 instead of a
    generic placeholder, and that answer (like any transport failure) is
    reported as ``None``.
    """

    def __init__(
        self,
        base_url: str,
        size: int = 200,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.size = size
        self.http_client = http_client or httpx.Client()

    def url_for(self, email: str) -> str:
        return f"{self.base_url}/{gravatar_hash(email)}?d=404&s={self.size}"

    def fetch(self, email: str) -> Optional[bytes]:
        """Fetch the Gravatar image for ``email``.

        Returns:
            The image bytes, or None when Gravatar has no image, answers with
            an empty body, or cannot be reached.
        """
        url = self.url_for(email)
        logger.debug(f"Requesting Gravatar image: {url}")

        try:
            response = self.http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning(f"Gravatar not found or failed ({e}). Falling back to initials avatar.")
            return None

        if not response.content:
            logger.warning("Gravatar returned an empty image. Falling back to initials avatar.")
            return None

        return response.content


class InitialsAvatarClient:
    """Renders a user's initials on a randomly coloured square (UI Avatars)."""

    def __init__(
        self,
        base_url: str,
        size: int = 200,
        http_client: Optional[httpx.Client] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.size = size
        self.http_client = http_client or httpx.Client()

    def url_for(self, name: str) -> str:
        return (
            f"{self.base_url}/?name={quote_plus(name)}"
            f"&size={self.size}&background=random&color=ffffff&format=png"
        )

    def render(self, name: str) -> bytes:
        """Generate a PNG avatar for ``name``.

        Raises:
            UpstreamServiceError: If the generator is unreachable or answers
                with a non-2xx status or an empty body.
        """
        url = self.url_for(name)
        start_time = time.time()

        try:
            response = self.http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Initials avatar generation failed: {e}")
            raise UpstreamServiceError(
                "Avatar generation service is unavailable.",
                details={"url": url},
            ) from e

        if not response.content:
            logger.error(f"Initials avatar generator returned an empty body for {url}")
            raise UpstreamServiceError(
                "Avatar generation service returned no image.",
                details={"url": url},
            )

        elapsed_time = time.time() - start_time
        logger.info(
            f"Initials avatar generated in {elapsed_time:.2f}s, {len(response.content)} bytes"
        )
        return response.content


def create_gravatar_client(settings: Settings) -> GravatarClient:
    return GravatarClient(
        settings.gravatar_url,
        size=settings.avatar_size,
        http_client=_build_http_client(settings.avatar_service_timeout),
    )


def create_initials_client(settings: Settings) -> InitialsAvatarClient:
    return InitialsAvatarClient(
        settings.ui_avatars_url,
        size=settings.avatar_size,
        http_client=_build_http_client(settings.avatar_service_timeout),
    )
