"""
Credential Providers
====================

Supply the credential attached to every request.

The resilience manager calls ``get()`` before EVERY session open and
never caches the result, so a refreshed OAuth token (or a rotated API key
file) is picked up on the next reconnect.

Providers:
    - AnonymousCredentials: No authentication
    - ApiKeyCredentials: API key read from a file (x-goog-api-key header)
    - OAuthCredentials: OAuth token file, refreshed when close to expiry

Note:
    Obtaining the first OAuth token (authorization code + PKCE) is out of
    scope. OAuthCredentials requires an existing token file.
"""

import json
import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

import httpx
from pydantic import BaseModel, Field, ValidationError

from yt_chat_fetcher.errors import ConfigError, ConnectError


logger = logging.getLogger(__name__)


DEFAULT_TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"

# Tokens expiring within this window are refreshed before use
EXPIRY_MARGIN_SECONDS = 60


@dataclass(frozen=True)
class Credential:
    """
    A credential ready to be attached to a request.

    Attributes:
        api_key: API key (sent as x-goog-api-key, or key= for REST)
        bearer_token: OAuth access token (sent as Authorization: Bearer)
    """

    api_key: Optional[str] = None
    bearer_token: Optional[str] = None

    def headers(self) -> Dict[str, str]:
        """Request headers carrying this credential."""
        if self.api_key:
            return {"x-goog-api-key": self.api_key}
        if self.bearer_token:
            return {"Authorization": f"Bearer {self.bearer_token}"}
        return {}

    def __repr__(self) -> str:
        kind = "api_key" if self.api_key else "bearer" if self.bearer_token else "anonymous"
        return f"Credential({kind})"


class CredentialProvider(Protocol):
    """Source of credentials, queried before every session open."""

    async def get(self) -> Credential:
        ...


class AnonymousCredentials:
    """Provider for endpoints that need no authentication."""

    async def get(self) -> Credential:
        return Credential()


class ApiKeyCredentials:
    """
    API key read from a file.

    The file is re-read on every ``get()`` so a rotated key is used on
    the next reconnect.
    """

    def __init__(self, path: Union[str, Path]) -> None:
        self.path = Path(path)

    def read_key(self) -> str:
        """Read and validate the key file."""
        try:
            key = self.path.read_text(encoding="utf-8").strip()
        except OSError as e:
            raise ConfigError(
                f"Failed to read API key file '{self.path}': {e}"
            ) from e
        if not key:
            raise ConfigError(f"API key file '{self.path}' is empty")
        return key

    async def get(self) -> Credential:
        try:
            return Credential(api_key=self.read_key())
        except ConfigError as e:
            # Readable at startup but not now: retry on the next reconnect
            raise ConnectError(str(e)) from e


# =============================================================================
# OAuth
# =============================================================================

class OAuthToken(BaseModel):
    """
    Persisted OAuth token.

    Attributes:
        access_token: Token for API requests
        refresh_token: Token used to obtain new access tokens
        token_type: Usually "Bearer"
        expires_at: Expiry as UNIX timestamp (seconds)
    """

    access_token: str = Field(..., description="Access token for API requests")
    refresh_token: str = Field(..., description="Refresh token")
    token_type: str = Field(default="Bearer", description="Token type")
    expires_at: int = Field(..., ge=0, description="Expiry UNIX timestamp")

    def is_expired(self, now: Optional[float] = None) -> bool:
        """Whether the token is expired or expires within the margin."""
        now = time.time() if now is None else now
        return now + EXPIRY_MARGIN_SECONDS >= self.expires_at

    @classmethod
    def load(cls, path: Union[str, Path]) -> "OAuthToken":
        """Load a token file."""
        try:
            raw = Path(path).read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Failed to read OAuth token file '{path}': {e}") from e
        try:
            return cls.model_validate_json(raw)
        except ValidationError as e:
            raise ConfigError(f"Failed to parse OAuth token file '{path}': {e}") from e

    def save(self, path: Union[str, Path]) -> None:
        """Write the token file readable by the owner only."""
        path = Path(path)
        path.write_text(json.dumps(self.model_dump(), indent=2), encoding="utf-8")
        if os.name == "posix":
            os.chmod(path, 0o600)


class OAuthCredentials:
    """
    OAuth access token from a token file, refreshed when near expiry.

    Example:
        provider = OAuthCredentials(
            "token.json",
            client_id="...apps.googleusercontent.com",
            client_secret="...",
        )
        credential = await provider.get()
    """

    def __init__(
        self,
        token_path: Union[str, Path],
        client_id: str,
        client_secret: str,
        token_endpoint: str = DEFAULT_TOKEN_ENDPOINT,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Initialize OAuth provider.

        Args:
            token_path: Path of the JSON token file
            client_id: OAuth client ID (needed for refresh)
            client_secret: OAuth client secret (needed for refresh)
            token_endpoint: Token refresh endpoint
            timeout: HTTP timeout for refresh requests
            transport: Optional httpx transport (tests)
        """
        self.token_path = Path(token_path)
        self.client_id = client_id
        self.client_secret = client_secret
        self.token_endpoint = token_endpoint
        self.timeout = timeout
        self._transport = transport
        self._token: Optional[OAuthToken] = None

    def load(self) -> OAuthToken:
        """Load the token file (fails with ConfigError)."""
        if not self.token_path.exists():
            raise ConfigError(
                f"OAuth token file '{self.token_path}' does not exist. "
                "Authorize the application first to create it."
            )
        self._token = OAuthToken.load(self.token_path)
        return self._token

    async def get(self) -> Credential:
        if self._token is None:
            self.load()

        if self._token.is_expired():
            logger.info("Access token expired, refreshing...")
            await self.refresh()

        return Credential(bearer_token=self._token.access_token)

    async def refresh(self) -> None:
        """
        Exchange the refresh token for a new access token.

        Raises:
            ConnectError: If the token endpoint fails or answers badly
        """
        current = self._token or self.load()
        data = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "refresh_token": current.refresh_token,
            "grant_type": "refresh_token",
        }

        try:
            async with httpx.AsyncClient(
                timeout=self.timeout, transport=self._transport
            ) as client:
                response = await client.post(self.token_endpoint, data=data)
        except httpx.HTTPError as e:
            raise ConnectError(
                f"Failed to refresh OAuth token: {e}", endpoint=self.token_endpoint
            ) from e

        if response.is_error:
            raise ConnectError(
                f"Failed to refresh OAuth token: {response.text[:500]}",
                endpoint=self.token_endpoint,
                status_code=response.status_code,
            )

        try:
            body = response.json()
            access_token = str(body["access_token"])
            expires_in = int(body["expires_in"])
        except (ValueError, KeyError, TypeError) as e:
            raise ConnectError(
                f"Invalid OAuth refresh response: {e}", endpoint=self.token_endpoint
            ) from e

        self._token = OAuthToken(
            access_token=access_token,
            refresh_token=current.refresh_token,
            token_type=body.get("token_type") or "Bearer",
            expires_at=int(time.time()) + expires_in,
        )

        try:
            self._token.save(self.token_path)
        except OSError as e:
            logger.warning(f"Failed to save refreshed OAuth token: {e}")

        logger.info("OAuth token refreshed successfully")
