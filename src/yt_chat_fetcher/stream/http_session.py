"""
HTTP Stream Session
===================

Server-streaming over HTTP(S) with httpx.

The stream endpoint keeps the response open and writes one JSON object
per batch as the server produces it. The body is decoded incrementally
with JsonStreamDecoder.

Failure Mapping:
    - Connection refused / DNS / TLS / connect timeout → ConnectError
    - HTTP status >= 400 on the initial response     → ConnectError
    - Read timeout / reset / truncated or bad body   → TransportError
    - Body ends cleanly                               → None (end of stream)
"""

import logging
from collections import deque
from typing import AsyncIterator, Deque, Optional

import httpx

from yt_chat_fetcher.auth.credentials import Credential
from yt_chat_fetcher.errors import ConnectError, TransportError
from yt_chat_fetcher.models.batch import Batch
from yt_chat_fetcher.models.cursor import Cursor
from yt_chat_fetcher.stream.decoder import JsonStreamDecoder, batch_from_document
from yt_chat_fetcher.stream.session import STREAM_PATH, SessionOptions, request_params


logger = logging.getLogger(__name__)


class HttpStreamSession:
    """
    One open streaming HTTP response.

    Attributes:
        endpoint: Base URL the session is connected to
        batches_received: Batches decoded from this response
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        response: httpx.Response,
        endpoint: str,
    ) -> None:
        self.endpoint = endpoint
        self.batches_received: int = 0
        self._client = client
        self._response = response
        self._chunks: AsyncIterator[str] = response.aiter_text()
        self._decoder = JsonStreamDecoder()
        self._ready: Deque[Batch] = deque()
        self._closed: bool = False

    @classmethod
    async def open(
        cls,
        endpoint: str,
        cursor: Cursor,
        credential: Credential,
        options: SessionOptions,
    ) -> "HttpStreamSession":
        """
        Send the stream request and wait for the response headers.

        Raises:
            ConnectError: If the request fails or is rejected
        """
        client = httpx.AsyncClient(
            base_url=endpoint,
            timeout=httpx.Timeout(options.read_timeout, connect=options.connect_timeout),
            transport=options.http_transport,
        )
        request = client.build_request(
            "GET",
            STREAM_PATH,
            params=request_params(cursor, options),
            headers=credential.headers(),
        )

        try:
            response = await client.send(request, stream=True)
        except httpx.HTTPError as e:
            await client.aclose()
            raise ConnectError(f"Failed to connect: {e}", endpoint=endpoint) from e
        except BaseException:
            await client.aclose()
            raise

        if response.is_error:
            try:
                body = (await response.aread()).decode("utf-8", errors="replace")
            except httpx.HTTPError:
                body = ""
            finally:
                await response.aclose()
                await client.aclose()
            raise ConnectError(
                f"Server rejected stream request (status {response.status_code})",
                endpoint=endpoint,
                status_code=response.status_code,
                response_body=body[:500] or None,
            )

        logger.info(f"Connected to stream: {endpoint}")
        return cls(client, response, endpoint)

    async def next(self) -> Optional[Batch]:
        """
        Wait for the next batch.

        Returns:
            Next batch, or None when the server ended the response

        Raises:
            TransportError: On read failure or an invalid payload
        """
        while not self._ready:
            if self._closed:
                return None
            try:
                chunk = await self._chunks.__anext__()
            except StopAsyncIteration:
                if self._decoder.pending:
                    raise TransportError("Stream closed in the middle of a message")
                return None
            except httpx.TimeoutException as e:
                raise TransportError(f"Timed out waiting for batch: {e}") from e
            except httpx.HTTPError as e:
                raise TransportError(f"Stream read failed: {e}") from e

            for doc in self._decoder.feed(chunk):
                self._ready.append(batch_from_document(doc))

        self.batches_received += 1
        return self._ready.popleft()

    async def aclose(self) -> None:
        """Close the response and the client."""
        if self._closed:
            return
        self._closed = True
        try:
            await self._response.aclose()
        finally:
            await self._client.aclose()

    async def __aenter__(self) -> "HttpStreamSession":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()
