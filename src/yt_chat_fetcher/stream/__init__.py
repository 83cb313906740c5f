"""
Stream Module
=============

Transport sessions and the resilience manager.

This module provides the streaming layer of the fetcher:
    - TransportSession: One open connection (HTTP or WebSocket)
    - JsonStreamDecoder: Incremental decoder for streamed JSON batches
    - ResilienceManager: Connect / consume / reconnect state machine

Example:
    from yt_chat_fetcher.stream import ResilienceManager, make_opener

    manager = ResilienceManager(
        cursor=cursor,
        log=log,
        opener=make_opener("https://youtube.googleapis.com"),
        credentials=credentials,
        gate=gate,
    )
    await manager.run()
"""

from yt_chat_fetcher.stream.decoder import JsonStreamDecoder, batch_from_document, parse_batch
from yt_chat_fetcher.stream.manager import ManagerMetrics, ResilienceManager
from yt_chat_fetcher.stream.session import (
    SessionOpener,
    SessionOptions,
    TransportSession,
    make_opener,
    normalize_endpoint,
    open_session,
)


__all__ = [
    "JsonStreamDecoder",
    "batch_from_document",
    "parse_batch",
    "ManagerMetrics",
    "ResilienceManager",
    "SessionOpener",
    "SessionOptions",
    "TransportSession",
    "make_opener",
    "normalize_endpoint",
    "open_session",
]
