"""
Model Tests
===========

Tests for Cursor and Batch.
"""

import json

import pytest

from yt_chat_fetcher.models import Batch, Cursor, SessionState


class TestCursor:
    """Tests for the Cursor value object."""

    def test_fresh_cursor_has_no_token(self):
        cursor = Cursor(stream_id="chat")
        assert cursor.page_token is None

    def test_advance_returns_new_cursor(self):
        cursor = Cursor(stream_id="chat", page_token="a")
        advanced = cursor.advance("b")

        assert advanced == Cursor(stream_id="chat", page_token="b")
        assert cursor.page_token == "a"

    def test_cursor_is_immutable(self):
        cursor = Cursor(stream_id="chat")
        with pytest.raises(AttributeError):
            cursor.page_token = "x"


class TestBatch:
    """Tests for Batch parsing and serialization."""

    def test_parse_server_payload(self, sample_batch_payload, chat_id):
        batch = Batch.model_validate(sample_batch_payload)

        assert batch.next_page_token == "token-1"
        assert len(batch.items) == 2
        assert batch.items[0].snippet.display_message == "hello"
        assert batch.items[1].author_details.display_name == "other"
        assert batch.stream_id == chat_id
        assert not batch.is_empty

    def test_unknown_fields_survive_round_trip(self, sample_batch_payload):
        batch = Batch.model_validate(sample_batch_payload)
        data = json.loads(batch.to_json())

        assert data["etag"] == "abc123"
        assert data["pollingIntervalMillis"] == 1000
        assert data["items"][0]["snippet"]["type"] == "textMessageEvent"
        assert data["nextPageToken"] == "token-1"

    def test_serialized_as_single_line(self, sample_batch_payload):
        line = Batch.model_validate(sample_batch_payload).to_json()
        assert "\n" not in line

    def test_snake_case_keys_accepted(self):
        batch = Batch.from_json(json.dumps({
            "next_page_token": "t",
            "items": [{"snippet": {"live_chat_id": "chat"}}],
        }))

        assert batch.next_page_token == "t"
        assert batch.stream_id == "chat"

    def test_empty_batch(self):
        batch = Batch.model_validate({"nextPageToken": "t", "items": []})

        assert batch.is_empty
        assert batch.stream_id is None

    def test_missing_items_defaults_to_empty(self):
        batch = Batch.model_validate({"nextPageToken": "t"})
        assert batch.items == []


class TestSessionState:
    """Tests for the state enum."""

    def test_values(self):
        assert SessionState.DISCONNECTED.value == "DISCONNECTED"
        assert SessionState.RECONNECT_PENDING.value == "RECONNECT_PENDING"
        assert SessionState.TERMINATED.value == "TERMINATED"
