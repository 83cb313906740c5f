"""
Transport Session
=================

One live server-streaming connection bound to one Cursor.

A session is opened with the cursor's stream ID and (when present) its
page token. ``next()`` suspends until the server delivers a batch, closes
the stream, or fails:

    batch = await session.next()
    if batch is None:
        ...  # end of stream: normal, reconnect later

Transports are picked by endpoint scheme:
    - http:// / https://  → HttpStreamSession (httpx)
    - ws:// / wss://      → WebSocketSession (websockets)
    - bare host:port      → https://
"""

import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol
from urllib.parse import urlsplit

from yt_chat_fetcher.auth.credentials import Credential
from yt_chat_fetcher.errors import ConfigError
from yt_chat_fetcher.models.batch import Batch
from yt_chat_fetcher.models.cursor import Cursor


logger = logging.getLogger(__name__)


STREAM_PATH = "/youtube/v3/liveChat/messages/stream"

DEFAULT_PARTS = ("snippet", "authorDetails")


class TransportSession(Protocol):
    """A single open stream connection."""

    async def next(self) -> Optional[Batch]:
        """Next batch, or None when the server closed the stream."""
        ...

    async def aclose(self) -> None:
        """Release the underlying connection."""
        ...


SessionOpener = Callable[[Cursor, Credential], Awaitable[TransportSession]]


@dataclass
class SessionOptions:
    """
    Request and timeout options shared by all transports.

    Attributes:
        connect_timeout: Seconds allowed to establish the connection
        read_timeout: Seconds allowed between batches (None = no limit)
        parts: Resource parts to request
        max_results: Optional page size hint
        hl: Optional display language
        profile_image_size: Optional author image size
        http_transport: Optional httpx transport (tests)
    """

    connect_timeout: float = 10.0
    read_timeout: Optional[float] = None
    parts: tuple = DEFAULT_PARTS
    max_results: Optional[int] = None
    hl: Optional[str] = None
    profile_image_size: Optional[int] = None
    http_transport: Any = None


def request_params(cursor: Cursor, options: SessionOptions) -> Dict[str, str]:
    """
    Query parameters for a stream request.

    ``pageToken`` is omitted entirely on a fresh start.
    """
    params = {
        "liveChatId": cursor.stream_id,
        "part": ",".join(options.parts),
    }
    if cursor.page_token:
        params["pageToken"] = cursor.page_token
    if options.max_results is not None:
        params["maxResults"] = str(options.max_results)
    if options.hl:
        params["hl"] = options.hl
    if options.profile_image_size is not None:
        params["profileImageSize"] = str(options.profile_image_size)
    return params


def normalize_endpoint(address: str) -> str:
    """
    Normalize a server address to a URL.

    Addresses without a scheme default to https://.
    """
    address = address.strip()
    if not address:
        raise ConfigError("Server address must not be empty")
    if "://" not in address:
        address = f"https://{address}"
    scheme = urlsplit(address).scheme.lower()
    if scheme not in ("http", "https", "ws", "wss"):
        raise ConfigError(f"Unsupported server address scheme: {scheme}")
    return address.rstrip("/")


async def open_session(
    endpoint: str,
    cursor: Cursor,
    credential: Credential,
    options: Optional[SessionOptions] = None,
) -> TransportSession:
    """
    Open a session on the transport matching the endpoint scheme.

    Raises:
        ConnectError: If the connection cannot be established
    """
    # Transport modules import from this one
    options = options or SessionOptions()
    scheme = urlsplit(endpoint).scheme.lower()

    if scheme in ("ws", "wss"):
        from yt_chat_fetcher.stream.ws_session import WebSocketSession
        return await WebSocketSession.open(endpoint, cursor, credential, options)

    from yt_chat_fetcher.stream.http_session import HttpStreamSession
    return await HttpStreamSession.open(endpoint, cursor, credential, options)


def make_opener(endpoint: str, options: Optional[SessionOptions] = None) -> SessionOpener:
    """Bind an endpoint and options into a SessionOpener."""
    endpoint = normalize_endpoint(endpoint)
    logger.info(f"Stream endpoint: {endpoint}")
    return partial(open_session, endpoint, options=options or SessionOptions())
