"""
Stream Decoder
==============

Turns raw stream payloads into validated Batch objects.

A server-streaming response over HTTP arrives as one JSON array whose
elements trickle in over time:

    [{"nextPageToken": "a", "items": [...]}
    ,{"nextPageToken": "b", "items": []}
    ]

JsonStreamDecoder extracts each top-level object as soon as its closing
brace arrives. It also accepts concatenated or newline-delimited objects.

Design Rules:
    - Brace matching is string and escape aware
    - Anything other than objects, commas, brackets or whitespace between
      objects is a TransportError
    - A server error object ({"error": {...}}) is a TransportError
"""

import json
from typing import Any, Dict, List

from pydantic import ValidationError

from yt_chat_fetcher.errors import TransportError
from yt_chat_fetcher.models.batch import Batch


# Separators allowed between top-level objects
_SEPARATORS = frozenset(" \t\r\n[],")

DEFAULT_MAX_PENDING = 16 * 1024 * 1024


def batch_from_document(doc: Any) -> Batch:
    """
    Validate one decoded JSON document as a Batch.

    Raises:
        TransportError: For error payloads or documents that are not batches
    """
    if not isinstance(doc, dict):
        raise TransportError(f"Expected a JSON object, got {type(doc).__name__}")

    if "error" in doc:
        error = doc["error"]
        if isinstance(error, dict):
            message = error.get("message") or error.get("status") or "unknown error"
        else:
            message = str(error)
        raise TransportError(f"Server sent error: {message}", {"error": error})

    try:
        return Batch.model_validate(doc)
    except ValidationError as e:
        raise TransportError(f"Invalid batch payload: {e}") from e


def parse_batch(raw: str) -> Batch:
    """Parse a single JSON document (one WebSocket frame) as a Batch."""
    try:
        doc = json.loads(raw)
    except json.JSONDecodeError as e:
        raise TransportError(f"Failed to parse batch JSON: {e}") from e
    return batch_from_document(doc)


class JsonStreamDecoder:
    """
    Incremental decoder for a stream of top-level JSON objects.

    Example:
        decoder = JsonStreamDecoder()
        for chunk in chunks:
            for doc in decoder.feed(chunk):
                handle(doc)
        if decoder.pending:
            raise TransportError("truncated")
    """

    def __init__(self, max_pending: int = DEFAULT_MAX_PENDING) -> None:
        """
        Initialize decoder.

        Args:
            max_pending: Maximum characters buffered for one object
        """
        self.max_pending = max_pending
        self._parts: List[str] = []
        self._pending_size: int = 0
        self._depth: int = 0
        self._in_string: bool = False
        self._escape: bool = False

    @property
    def pending(self) -> bool:
        """Whether a partially received object is buffered."""
        return self._depth > 0

    def feed(self, text: str) -> List[Dict[str, Any]]:
        """
        Consume a chunk of text.

        Args:
            text: Next chunk of the stream

        Returns:
            Objects completed by this chunk, in order
        """
        docs: List[Dict[str, Any]] = []
        start = 0 if self._depth else None

        for i, ch in enumerate(text):
            if self._depth == 0:
                if ch in _SEPARATORS:
                    continue
                if ch != "{":
                    raise TransportError(
                        f"Unexpected character {ch!r} between stream messages"
                    )
                self._depth = 1
                start = i
                continue

            if self._in_string:
                if self._escape:
                    self._escape = False
                elif ch == "\\":
                    self._escape = True
                elif ch == '"':
                    self._in_string = False
                continue

            if ch == '"':
                self._in_string = True
            elif ch in "{[":
                self._depth += 1
            elif ch in "}]":
                self._depth -= 1
                if self._depth == 0:
                    self._parts.append(text[start:i + 1])
                    docs.append(self._decode("".join(self._parts)))
                    self._parts = []
                    self._pending_size = 0
                    start = None

        if self._depth and start is not None:
            tail = text[start:]
            self._parts.append(tail)
            self._pending_size += len(tail)
            if self._pending_size > self.max_pending:
                raise TransportError(
                    f"Stream message exceeds {self.max_pending} characters"
                )

        return docs

    def _decode(self, raw: str) -> Dict[str, Any]:
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise TransportError(f"Failed to parse stream message: {e}") from e
