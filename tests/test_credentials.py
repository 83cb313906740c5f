"""
Credential Tests
================

Tests for API key and OAuth credential providers.
"""

import asyncio
import json
import time
from urllib.parse import parse_qs

import httpx
import pytest

from yt_chat_fetcher.auth.credentials import (
    AnonymousCredentials,
    ApiKeyCredentials,
    Credential,
    OAuthCredentials,
    OAuthToken,
)
from yt_chat_fetcher.errors import ConfigError, ConnectError


@pytest.fixture
def token_path(tmp_path):
    return tmp_path / "token.json"


def _write_token(path, expires_at, access_token="old-access"):
    path.write_text(json.dumps({
        "access_token": access_token,
        "refresh_token": "refresh-1",
        "token_type": "Bearer",
        "expires_at": expires_at,
    }), encoding="utf-8")


def _provider(path, handler):
    return OAuthCredentials(
        path,
        client_id="client",
        client_secret="secret",
        token_endpoint="https://oauth.test/token",
        transport=httpx.MockTransport(handler),
    )


class TestCredential:
    """Tests for Credential headers."""

    def test_api_key_header(self):
        assert Credential(api_key="k").headers() == {"x-goog-api-key": "k"}

    def test_bearer_header(self):
        assert Credential(bearer_token="t").headers() == {"Authorization": "Bearer t"}

    def test_anonymous(self):
        assert Credential().headers() == {}
        assert asyncio.run(AnonymousCredentials().get()) == Credential()

    def test_repr_hides_secret(self):
        assert "k-secret" not in repr(Credential(api_key="k-secret"))


class TestApiKeyCredentials:
    """Tests for ApiKeyCredentials."""

    def test_key_is_stripped(self, tmp_path):
        path = tmp_path / "key.txt"
        path.write_text("  my-key\n", encoding="utf-8")

        assert asyncio.run(ApiKeyCredentials(path).get()).api_key == "my-key"

    def test_key_file_reread_on_every_get(self, tmp_path):
        path = tmp_path / "key.txt"
        path.write_text("first", encoding="utf-8")
        provider = ApiKeyCredentials(path)

        assert asyncio.run(provider.get()).api_key == "first"
        path.write_text("second", encoding="utf-8")
        assert asyncio.run(provider.get()).api_key == "second"

    def test_missing_file_is_config_error_at_startup(self, tmp_path):
        with pytest.raises(ConfigError):
            ApiKeyCredentials(tmp_path / "missing.txt").read_key()

    def test_empty_file_is_config_error(self, tmp_path):
        path = tmp_path / "key.txt"
        path.write_text("\n", encoding="utf-8")
        with pytest.raises(ConfigError):
            ApiKeyCredentials(path).read_key()

    def test_missing_file_on_reconnect_is_connect_error(self, tmp_path):
        with pytest.raises(ConnectError):
            asyncio.run(ApiKeyCredentials(tmp_path / "missing.txt").get())


class TestOAuthToken:
    """Tests for OAuthToken."""

    def test_expiry_margin(self):
        token = OAuthToken(access_token="a", refresh_token="r", expires_at=1000)

        assert token.is_expired(now=950)
        assert not token.is_expired(now=900)

    def test_invalid_file_is_config_error(self, token_path):
        token_path.write_text("{}", encoding="utf-8")
        with pytest.raises(ConfigError):
            OAuthToken.load(token_path)


class TestOAuthCredentials:
    """Tests for OAuthCredentials."""

    def test_valid_token_used_without_refresh(self, token_path):
        _write_token(token_path, int(time.time()) + 3600)

        def handler(request):
            raise AssertionError("refresh not expected")

        credential = asyncio.run(_provider(token_path, handler).get())

        assert credential.bearer_token == "old-access"

    def test_expired_token_is_refreshed_and_saved(self, token_path):
        _write_token(token_path, 0)
        seen = {}

        def handler(request):
            seen["form"] = parse_qs(request.content.decode("utf-8"))
            return httpx.Response(200, json={
                "access_token": "new-access",
                "expires_in": 3600,
                "token_type": "Bearer",
            })

        credential = asyncio.run(_provider(token_path, handler).get())

        assert credential.bearer_token == "new-access"
        assert seen["form"]["grant_type"] == ["refresh_token"]
        assert seen["form"]["refresh_token"] == ["refresh-1"]

        saved = OAuthToken.load(token_path)
        assert saved.access_token == "new-access"
        assert saved.refresh_token == "refresh-1"
        assert not saved.is_expired()

    def test_refresh_rejected_is_connect_error(self, token_path):
        _write_token(token_path, 0)
        provider = _provider(
            token_path,
            lambda request: httpx.Response(400, json={"error": "invalid_grant"}),
        )

        with pytest.raises(ConnectError) as exc_info:
            asyncio.run(provider.get())
        assert exc_info.value.status_code == 400

    def test_malformed_refresh_response_is_connect_error(self, token_path):
        _write_token(token_path, 0)
        provider = _provider(token_path, lambda request: httpx.Response(200, json={}))

        with pytest.raises(ConnectError):
            asyncio.run(provider.get())

    def test_missing_token_file_is_config_error(self, token_path):
        provider = _provider(token_path, lambda request: httpx.Response(500))
        with pytest.raises(ConfigError):
            provider.load()
