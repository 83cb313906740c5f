"""
Batch Message Schema
====================

Pydantic models for the live chat messages delivered by the server.

One server response (``youtube#liveChatMessageListResponse``) is a Batch:
a list of chat messages plus the token for the next request.

Input Contract (camelCase, as sent by the server):
    {
        "kind": "youtube#liveChatMessageListResponse",
        "nextPageToken": "GO3p...",
        "items": [
            {
                "kind": "youtube#liveChatMessage",
                "id": "LCC.abc",
                "snippet": {"liveChatId": "Cg0KC...", "displayMessage": "hi"},
                "authorDetails": {"displayName": "viewer"}
            }
        ]
    }

Design Rules:
    - Unknown fields are kept, so the resume log holds the full payload
    - snake_case keys are accepted on input (older log files)
    - Serialized back with camelCase keys, one line per batch
"""

from typing import List, Optional

from pydantic import BaseModel, Field


class MessageSnippet(BaseModel):
    """Message body and the chat it belongs to."""

    live_chat_id: Optional[str] = Field(
        default=None,
        alias="liveChatId",
        description="ID of the live chat the message was posted to",
    )

    display_message: Optional[str] = Field(
        default=None,
        alias="displayMessage",
        description="Rendered message text",
    )

    published_at: Optional[str] = Field(
        default=None,
        alias="publishedAt",
        description="RFC 3339 timestamp of the message",
    )

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True
        extra = "allow"


class AuthorDetails(BaseModel):
    """Author of a chat message."""

    channel_id: Optional[str] = Field(default=None, alias="channelId")
    display_name: Optional[str] = Field(default=None, alias="displayName")

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True
        extra = "allow"


class ChatMessage(BaseModel):
    """A single live chat message."""

    kind: Optional[str] = Field(default=None)
    id: Optional[str] = Field(default=None)
    snippet: Optional[MessageSnippet] = Field(default=None)
    author_details: Optional[AuthorDetails] = Field(
        default=None,
        alias="authorDetails",
    )

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True
        extra = "allow"


class Batch(BaseModel):
    """
    One server-delivered unit of the stream.

    An empty ``items`` list is a heartbeat: it still carries a valid
    page token but is never written to the resume log.

    Attributes:
        kind: Resource kind reported by the server
        items: Chat messages in delivery order (may be empty)
        next_page_token: Token to request the following page
    """

    kind: Optional[str] = Field(
        default=None,
        description="Resource kind (youtube#liveChatMessageListResponse)",
    )

    items: List[ChatMessage] = Field(
        default_factory=list,
        description="Chat messages in server delivery order",
    )

    next_page_token: Optional[str] = Field(
        default=None,
        alias="nextPageToken",
        description="Opaque continuation token for the next request",
    )

    class Config:
        """Pydantic model configuration."""

        populate_by_name = True
        extra = "allow"
        json_schema_extra = {
            "example": {
                "kind": "youtube#liveChatMessageListResponse",
                "nextPageToken": "GO3pl6yG_YADELbD8Mv_-4ID",
                "items": [
                    {
                        "id": "LCC.abc",
                        "snippet": {
                            "liveChatId": "Cg0KC2RRdzR3OVdnWGNR",
                            "displayMessage": "hello",
                        },
                        "authorDetails": {"displayName": "viewer"},
                    }
                ],
            }
        }

    @property
    def is_empty(self) -> bool:
        """Whether this batch is a heartbeat with no messages."""
        return not self.items

    @property
    def stream_id(self) -> Optional[str]:
        """Live chat ID embedded in the first message, if any."""
        if not self.items or self.items[0].snippet is None:
            return None
        return self.items[0].snippet.live_chat_id

    def to_json(self) -> str:
        """Serialize as a single JSON line (no trailing newline)."""
        return self.model_dump_json(by_alias=True, exclude_none=True)

    @classmethod
    def from_json(cls, raw: str) -> "Batch":
        """Parse a batch from a JSON document."""
        return cls.model_validate_json(raw)
