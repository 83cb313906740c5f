"""
yt-chat-fetcher
===============

Resilient live chat fetcher for YouTube streams.

This package consumes the server-streamed live chat feed of a video,
persists every non-empty batch to an append-only JSONL log, and keeps
pagination continuity across reconnects and process restarts.

Components:
    - models: Cursor, Batch and session state types
    - storage: Resume log (append-only JSONL) and console output
    - stream: Transport sessions (HTTP, WebSocket) and the resilience manager
    - auth: Credential providers (API key, OAuth token file)
    - resolver: Video ID to live chat ID lookup
    - cancellation: Signal-driven cancellation gate

Example:
    yt-chat-fetcher --video-id dQw4w9WgXcQ --output-file chat.jsonl
    yt-chat-fetcher --resume --output-file chat.jsonl
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
