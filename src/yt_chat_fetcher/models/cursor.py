"""
Cursor
======

Resumable position in a paginated live chat stream.

Design Rules:
    - stream_id is fixed for the lifetime of the process
    - page_token is opaque and passed back to the server unchanged
    - Never persisted on its own; rebuilt from the resume log
"""

from dataclasses import dataclass, replace
from typing import Optional


@dataclass(frozen=True, slots=True)
class Cursor:
    """
    Stream identifier plus continuation token.

    Attributes:
        stream_id: Live chat ID the session is scoped to
        page_token: Token from the last received batch (None on fresh start)
    """

    stream_id: str
    page_token: Optional[str] = None

    def advance(self, page_token: Optional[str]) -> "Cursor":
        """Return a cursor pointing at ``page_token`` for the same stream."""
        return replace(self, page_token=page_token)
