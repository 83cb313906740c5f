"""
Resolver Tests
==============

Tests for looking up the live chat ID of a video.
"""

import asyncio

import httpx
import pytest

from yt_chat_fetcher.auth.credentials import Credential
from yt_chat_fetcher.errors import (
    ConfigError,
    StreamNotLiveError,
    TransportError,
    VideoNotFoundError,
)
from yt_chat_fetcher.resolver import VIDEOS_PATH, resolve_live_chat_id


REST = "https://rest.test"


def _resolve(handler, video_id="dQw4w9WgXcQ", credential=None):
    return asyncio.run(resolve_live_chat_id(
        REST,
        video_id,
        credential,
        transport=httpx.MockTransport(handler),
    ))


def _videos(*items):
    return {"kind": "youtube#videoListResponse", "items": list(items)}


class TestResolveLiveChatId:
    """Tests for resolve_live_chat_id."""

    def test_returns_active_chat_id(self, chat_id):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json=_videos(
                {"liveStreamingDetails": {"activeLiveChatId": chat_id}}
            ))

        assert _resolve(handler, credential=Credential(api_key="k")) == chat_id

        request = seen["request"]
        assert request.url.path == VIDEOS_PATH
        assert request.url.params["id"] == "dQw4w9WgXcQ"
        assert request.url.params["part"] == "liveStreamingDetails"
        assert request.url.params["key"] == "k"

    def test_oauth_credential_sent_as_header(self, chat_id):
        seen = {}

        def handler(request):
            seen["request"] = request
            return httpx.Response(200, json=_videos(
                {"liveStreamingDetails": {"activeLiveChatId": chat_id}}
            ))

        _resolve(handler, credential=Credential(bearer_token="tok"))

        assert seen["request"].headers["Authorization"] == "Bearer tok"
        assert "key" not in seen["request"].url.params

    def test_no_items_is_not_found(self):
        with pytest.raises(VideoNotFoundError) as exc_info:
            _resolve(lambda request: httpx.Response(200, json=_videos()))
        assert isinstance(exc_info.value, ConfigError)

    def test_404_is_not_found(self):
        with pytest.raises(VideoNotFoundError):
            _resolve(lambda request: httpx.Response(404))

    def test_not_a_live_video(self):
        with pytest.raises(StreamNotLiveError):
            _resolve(lambda request: httpx.Response(200, json=_videos({"id": "v"})))

    def test_stream_not_active(self):
        handler = lambda request: httpx.Response(200, json=_videos(
            {"liveStreamingDetails": {"actualEndTime": "2026-01-01T00:00:00Z"}}
        ))
        with pytest.raises(StreamNotLiveError):
            _resolve(handler)

    def test_server_error_is_transport_error(self):
        with pytest.raises(TransportError):
            _resolve(lambda request: httpx.Response(500, text="backend error"))

    def test_invalid_json_is_transport_error(self):
        with pytest.raises(TransportError):
            _resolve(lambda request: httpx.Response(200, text="<html>"))

    def test_network_failure_is_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(TransportError):
            _resolve(handler)
