"""
Live Chat Resolver
==================

Maps a video ID to the ID of its active live chat.

Performs a single ``videos.list`` call against the Data API REST
endpoint. Every failure is fatal at startup; there is no retry loop here.

Errors:
    - VideoNotFoundError: No such video (404 or empty ``items``)
    - StreamNotLiveError: Video has no live details or no active chat
    - TransportError: Network failure or any other HTTP error
"""

import logging
from typing import Optional

import httpx

from yt_chat_fetcher.auth.credentials import Credential
from yt_chat_fetcher.errors import StreamNotLiveError, TransportError, VideoNotFoundError


logger = logging.getLogger(__name__)


VIDEOS_PATH = "/youtube/v3/videos"


async def resolve_live_chat_id(
    rest_api_address: str,
    video_id: str,
    credential: Optional[Credential] = None,
    timeout: float = 30.0,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> str:
    """
    Fetch the active live chat ID of a video.

    Args:
        rest_api_address: Base URL of the REST API
        video_id: Human-facing video ID
        credential: Credential to attach (API key as ``key=``, OAuth as header)
        timeout: Request timeout in seconds
        transport: Optional httpx transport (tests)

    Returns:
        The live chat ID
    """
    params = {"part": "liveStreamingDetails", "id": video_id}
    headers = {}
    if credential is not None:
        if credential.api_key:
            params["key"] = credential.api_key
        else:
            headers.update(credential.headers())

    url = rest_api_address.rstrip("/") + VIDEOS_PATH
    logger.info(f"Fetching chat ID from REST API at: {rest_api_address}")

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(url, params=params, headers=headers)
    except httpx.HTTPError as e:
        raise TransportError(
            f"Failed to fetch video data: {e}", {"video_id": video_id}
        ) from e

    if response.status_code == 404:
        raise VideoNotFoundError(video_id)
    if response.is_error:
        raise TransportError(
            f"Failed to fetch video data (status {response.status_code})",
            {"video_id": video_id, "response_body": response.text[:500]},
        )

    try:
        body = response.json()
    except ValueError as e:
        raise TransportError(
            f"Invalid JSON from videos endpoint: {e}", {"video_id": video_id}
        ) from e

    items = body.get("items") if isinstance(body, dict) else None
    if not isinstance(items, list):
        raise TransportError(
            "Response missing 'items' array", {"video_id": video_id}
        )
    if not items:
        raise VideoNotFoundError(video_id)

    details = items[0].get("liveStreamingDetails")
    if not details:
        raise StreamNotLiveError(video_id, "not a live video")

    chat_id = details.get("activeLiveChatId")
    if not chat_id:
        raise StreamNotLiveError(video_id, "stream may not be active")

    logger.info(f"Got chat ID: {chat_id}")
    return str(chat_id)
