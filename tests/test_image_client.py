"""Unit tests for the remote avatar image clients."""

import hashlib
from unittest.mock import Mock

import httpx
import pytest

from config import Settings
from profile_avatars.exceptions import UpstreamServiceError
from profile_avatars.image_client import (
    GravatarClient,
    InitialsAvatarClient,
    create_gravatar_client,
    create_initials_client,
    gravatar_hash,
    md5_hex,
)


def test_md5_hex():
    assert md5_hex("") == "d41d8cd98f00b204e9800998ecf8427e"


def test_gravatar_hash_normalizes_email():
    expected = hashlib.md5(b"ada@example.com").hexdigest()

    assert gravatar_hash("  Ada@Example.COM ") == expected
    assert gravatar_hash("ada@example.com") == expected


class TestGravatarClient:

    def test_url(self):
        client = GravatarClient("https://gravatar.test/avatar/", http_client=Mock())

        url = client.url_for("ada@example.com")
        assert url == f"https://gravatar.test/avatar/{md5_hex('ada@example.com')}?d=404&s=200"

    def test_fetch_found(self, gravatar_factory, gravatar_requests):
        client = gravatar_factory(200, b"gravatar-bytes")

        assert client.fetch("Ada@Example.com") == b"gravatar-bytes"

        request = gravatar_requests[0]
        assert request.url.path == f"/avatar/{md5_hex('ada@example.com')}"
        assert request.url.params["d"] == "404"
        assert request.url.params["s"] == "200"

    def test_fetch_not_found_returns_none(self, gravatar_factory, caplog):
        client = gravatar_factory(404)

        with caplog.at_level("WARNING"):
            assert client.fetch("nobody@example.com") is None

        assert "Gravatar not found" in caplog.text

    def test_fetch_empty_body_returns_none(self, gravatar_factory, caplog):
        client = gravatar_factory(200, b"")

        with caplog.at_level("WARNING"):
            assert client.fetch("ada@example.com") is None

        assert "empty image" in caplog.text

    def test_fetch_network_error_returns_none(self, mock_http):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client = GravatarClient("https://gravatar.test/avatar", http_client=mock_http(handler))

        assert client.fetch("ada@example.com") is None


class TestInitialsAvatarClient:

    def test_url_escapes_name(self):
        client = InitialsAvatarClient("https://initials.test/api", http_client=Mock())

        assert client.url_for("Ada Lovelace") == (
            "https://initials.test/api/?name=Ada+Lovelace"
            "&size=200&background=random&color=ffffff&format=png"
        )

    def test_render(self, initials_factory, initials_requests):
        client = initials_factory(200, b"png-bytes")

        assert client.render("Ada Lovelace") == b"png-bytes"

        params = initials_requests[0].url.params
        assert params["name"] == "Ada Lovelace"
        assert params["size"] == "200"
        assert params["background"] == "random"
        assert params["color"] == "ffffff"
        assert params["format"] == "png"

    @pytest.mark.parametrize("status_code", [404, 500, 503])
    def test_render_error_status(self, initials_factory, status_code):
        client = initials_factory(status_code)

        with pytest.raises(UpstreamServiceError) as exc_info:
            client.render("Ada")

        assert isinstance(exc_info.value.__cause__, httpx.HTTPStatusError)

    def test_render_empty_body(self, initials_factory):
        client = initials_factory(200, b"")

        with pytest.raises(UpstreamServiceError, match="no image"):
            client.render("Ada")

    def test_render_network_error(self, mock_http):
        def handler(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        client = InitialsAvatarClient("https://initials.test/api", http_client=mock_http(handler))

        with pytest.raises(UpstreamServiceError, match="unavailable"):
            client.render("Ada")


class TestFactories:

    def test_clients_use_settings(self):
        settings = Settings(
            _env_file=None,
            gravatar_url="https://g.test/avatar",
            ui_avatars_url="https://u.test/api",
            avatar_size=128,
            avatar_service_timeout=3.0,
        )

        gravatar = create_gravatar_client(settings)
        initials = create_initials_client(settings)

        assert gravatar.base_url == "https://g.test/avatar"
        assert gravatar.size == 128
        assert gravatar.http_client.timeout.connect == 3.0
        assert initials.base_url == "https://u.test/api"
        assert initials.url_for("A").endswith("size=128&background=random&color=ffffff&format=png")

    def test_default_timeout_left_to_httpx(self):
        gravatar = create_gravatar_client(Settings(_env_file=None))

        assert gravatar.http_client.timeout == httpx.Timeout(5.0)
