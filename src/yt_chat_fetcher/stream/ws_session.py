"""
WebSocket Stream Session
========================

Server-streaming over a WebSocket (relays, local mock servers).

The stream ID and page token go in the query string of the handshake
URL; each text frame from the server is one batch.

Failure Mapping:
    - Refused / bad URI / rejected handshake / open timeout → ConnectError
    - Close with an error code / read timeout / bad frame   → TransportError
    - Normal close (1000/1001)                              → None
"""

import asyncio
import logging
from typing import Optional
from urllib.parse import urlencode

from websockets.asyncio.client import ClientConnection, connect
from websockets.exceptions import (
    ConnectionClosedError,
    ConnectionClosedOK,
    InvalidHandshake,
    InvalidStatus,
    InvalidURI,
)

from yt_chat_fetcher.auth.credentials import Credential
from yt_chat_fetcher.errors import ConnectError, TransportError
from yt_chat_fetcher.models.batch import Batch
from yt_chat_fetcher.models.cursor import Cursor
from yt_chat_fetcher.stream.decoder import parse_batch
from yt_chat_fetcher.stream.session import SessionOptions, request_params


logger = logging.getLogger(__name__)


class WebSocketSession:
    """
    One open WebSocket connection.

    Attributes:
        url: Handshake URL including the query string
        read_timeout: Seconds allowed between frames (None = no limit)
    """

    def __init__(
        self,
        websocket: ClientConnection,
        url: str,
        read_timeout: Optional[float] = None,
    ) -> None:
        self.url = url
        self.read_timeout = read_timeout
        self._websocket = websocket

    @classmethod
    async def open(
        cls,
        endpoint: str,
        cursor: Cursor,
        credential: Credential,
        options: SessionOptions,
    ) -> "WebSocketSession":
        """
        Perform the WebSocket handshake.

        Raises:
            ConnectError: If the handshake cannot be completed
        """
        separator = "&" if "?" in endpoint else "?"
        url = f"{endpoint}{separator}{urlencode(request_params(cursor, options))}"

        try:
            websocket = await connect(
                url,
                additional_headers=credential.headers(),
                open_timeout=options.connect_timeout,
                ping_interval=20,
                ping_timeout=10,
                close_timeout=5,
            )
        except InvalidStatus as e:
            raise ConnectError(
                f"Server rejected stream request: {e}",
                endpoint=endpoint,
                status_code=e.response.status_code,
            ) from e
        except (InvalidURI, InvalidHandshake, OSError, asyncio.TimeoutError) as e:
            raise ConnectError(f"Failed to connect: {e}", endpoint=endpoint) from e

        logger.info(f"Connected to stream: {endpoint}")
        return cls(websocket, url, options.read_timeout)

    async def next(self) -> Optional[Batch]:
        """
        Wait for the next frame.

        Returns:
            Next batch, or None on a normal close

        Raises:
            TransportError: On abnormal close, timeout or an invalid frame
        """
        try:
            if self.read_timeout:
                raw = await asyncio.wait_for(self._websocket.recv(), self.read_timeout)
            else:
                raw = await self._websocket.recv()
        except ConnectionClosedOK:
            logger.info("Connection closed normally")
            return None
        except ConnectionClosedError as e:
            raise TransportError(f"Connection closed with error: {e}") from e
        except asyncio.TimeoutError as e:
            raise TransportError(
                f"No batch received within {self.read_timeout}s"
            ) from e

        if isinstance(raw, bytes):
            try:
                raw = raw.decode("utf-8")
            except UnicodeDecodeError as e:
                raise TransportError(f"Binary frame is not UTF-8: {e}") from e

        return parse_batch(raw)

    async def aclose(self) -> None:
        """Close the connection."""
        await self._websocket.close()

    async def __aenter__(self) -> "WebSocketSession":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
