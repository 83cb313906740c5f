"""
Data Models
===========

Types shared across the fetcher.

Models:
    - Cursor: Stream ID plus continuation token
    - Batch: One server response (messages + next page token)
    - ChatMessage, MessageSnippet, AuthorDetails: Message payload parts
    - SessionState: Resilience manager lifecycle states
"""

from yt_chat_fetcher.models.batch import AuthorDetails, Batch, ChatMessage, MessageSnippet
from yt_chat_fetcher.models.cursor import Cursor
from yt_chat_fetcher.models.state import SessionState

__all__ = [
    "Cursor",
    "Batch",
    "ChatMessage",
    "MessageSnippet",
    "AuthorDetails",
    "SessionState",
]
