"""
Test Configuration
==================

Pytest fixtures and test configuration for yt-chat-fetcher.
"""

import pytest


CHAT_ID = "Cg0KC2RRdzR3OVdnWGNR"


def _message(text: str, chat_id: str = CHAT_ID, author: str = "viewer") -> dict:
    return {
        "kind": "youtube#liveChatMessage",
        "id": f"LCC.{text}",
        "snippet": {
            "type": "textMessageEvent",
            "liveChatId": chat_id,
            "displayMessage": text,
            "publishedAt": "2026-10-17T12:00:00Z",
        },
        "authorDetails": {"channelId": "UC123", "displayName": author},
    }


@pytest.fixture
def chat_id():
    """The live chat ID used by sample payloads."""
    return CHAT_ID


@pytest.fixture
def sample_batch_payload():
    """Provide a sample server response for testing."""
    return {
        "kind": "youtube#liveChatMessageListResponse",
        "etag": "abc123",
        "nextPageToken": "token-1",
        "pollingIntervalMillis": 1000,
        "items": [_message("hello"), _message("world", author="other")],
    }


@pytest.fixture
def make_batch():
    """
    Factory for Batch objects.

    make_batch("a", "m1")  -> batch with token "a" and one message "m1"
    make_batch("b")        -> empty (heartbeat) batch with token "b"
    """
    from yt_chat_fetcher.models.batch import Batch

    def factory(token, *texts, chat_id=CHAT_ID):
        return Batch.model_validate({
            "kind": "youtube#liveChatMessageListResponse",
            "nextPageToken": token,
            "items": [_message(text, chat_id=chat_id) for text in texts],
        })

    return factory


@pytest.fixture
def log_path(tmp_path):
    """Path for a resume log inside a temporary directory."""
    return tmp_path / "chat.jsonl"
