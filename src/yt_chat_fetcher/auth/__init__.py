"""
Auth Module
===========

Credential providers queried before every session open.
"""

from yt_chat_fetcher.auth.credentials import (
    AnonymousCredentials,
    ApiKeyCredentials,
    Credential,
    CredentialProvider,
    OAuthCredentials,
    OAuthToken,
)


__all__ = [
    "AnonymousCredentials",
    "ApiKeyCredentials",
    "Credential",
    "CredentialProvider",
    "OAuthCredentials",
    "OAuthToken",
]
