"""
Error Taxonomy
==============

Closed set of error kinds raised by the fetcher.

Callers branch on ``error.kind`` (or the exception class), never on
message text.

Kinds:
    - CONNECT: A session could not be established (retried)
    - TRANSPORT: A live session failed mid-stream (retried)
    - IO: The resume log could not be read or written (fatal)
    - CONFIG: Invalid startup configuration (fatal)

End of stream is NOT an error; sessions report it by returning None.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """
    Machine-readable error kinds.

    Attributes:
        CONNECT: Failed to open a transport session
        TRANSPORT: Failure while reading from an open session
        IO: Local storage failure on the resume log
        CONFIG: Invalid or inconsistent configuration
    """

    CONNECT = "CONNECT"
    TRANSPORT = "TRANSPORT"
    IO = "IO"
    CONFIG = "CONFIG"


class FetcherError(Exception):
    """Base exception for all fetcher errors."""

    kind: ErrorKind

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# Stream Lifecycle Errors (recovered by the resilience manager)
# =============================================================================

class ConnectError(FetcherError):
    """Raised when a transport session cannot be opened."""

    kind = ErrorKind.CONNECT

    def __init__(
        self,
        message: str,
        endpoint: Optional[str] = None,
        status_code: Optional[int] = None,
        **kwargs
    ):
        details = {
            k: v for k, v in
            {"endpoint": endpoint, "status_code": status_code, **kwargs}.items()
            if v is not None
        }
        super().__init__(message, details)
        self.endpoint = endpoint
        self.status_code = status_code


class TransportError(FetcherError):
    """Raised when an open session fails (timeout, reset, bad payload)."""

    kind = ErrorKind.TRANSPORT


# =============================================================================
# Fatal Errors
# =============================================================================

class IoError(FetcherError):
    """Raised when the resume log cannot be read or written."""

    kind = ErrorKind.IO

    def __init__(self, message: str, path: Optional[str] = None, **kwargs):
        details = {"path": path, **kwargs} if path else dict(kwargs)
        super().__init__(message, details)
        self.path = path


class ConfigError(FetcherError):
    """Raised when startup configuration is invalid."""

    kind = ErrorKind.CONFIG


class VideoNotFoundError(ConfigError):
    """Raised when the requested video does not exist."""

    def __init__(self, video_id: str):
        super().__init__(
            f"No video found with the given ID: {video_id}",
            {"video_id": video_id},
        )
        self.video_id = video_id


class StreamNotLiveError(ConfigError):
    """Raised when the video has no active live chat."""

    def __init__(self, video_id: str, reason: str):
        super().__init__(
            f"Video {video_id} has no active live chat: {reason}",
            {"video_id": video_id},
        )
        self.video_id = video_id
