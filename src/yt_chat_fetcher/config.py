"""
Fetcher Configuration
=====================

This module handles configuration loading for the live chat fetcher.

Configuration Sources (in order of precedence):
    1. Command-line flags (applied by cli.py)
    2. Environment variables
    3. config.yaml file
    4. Default values (lowest priority)

Environment Variable Mapping:
    SERVER_ADDRESS        -> stream.server_address
    REST_API_ADDRESS      -> stream.rest_api_address
    YTCF_RECONNECT_WAIT   -> stream.reconnect_wait_seconds
    YTCF_OUTPUT_FILE      -> output.path
    YTCF_API_KEY_PATH     -> auth.api_key_path
    YTCF_OAUTH_TOKEN_PATH -> auth.oauth_token_path
    OAUTH_CLIENT_ID       -> auth.oauth_client_id
    OAUTH_CLIENT_SECRET   -> auth.oauth_client_secret
    YTCF_LOG_LEVEL        -> logging.level

Example:
    from yt_chat_fetcher.config import load_config, setup_logging

    settings = load_config("config.yaml")
    setup_logging(settings)
    print(settings.stream.server_address)
"""

import os
import logging
from pathlib import Path
from typing import Optional, Tuple

import yaml
from pydantic import BaseModel, Field, ValidationError

from yt_chat_fetcher.errors import ConfigError


logger = logging.getLogger(__name__)


# =============================================================================
# Configuration Models
# =============================================================================

class StreamConfig(BaseModel):
    """Stream endpoint and reconnection configuration."""

    server_address: str = Field(
        default="https://youtube.googleapis.com",
        description="Streaming endpoint (http(s):// or ws(s)://)",
    )
    rest_api_address: str = Field(
        default="https://www.googleapis.com",
        description="REST API base URL used to resolve the live chat ID",
    )
    reconnect_wait_seconds: float = Field(
        default=5.0,
        ge=0,
        description="Fixed wait before each reconnection attempt",
    )
    connect_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for establishing a stream connection",
    )
    read_timeout_seconds: Optional[float] = Field(
        default=None,
        gt=0,
        description="Maximum silence between batches (None = no limit)",
    )
    fail_fast_initial_connect: bool = Field(
        default=True,
        description="Exit if the first connection attempt fails",
    )
    parts: Tuple[str, ...] = Field(
        default=("snippet", "authorDetails"),
        description="Resource parts requested for each message",
    )
    max_results: Optional[int] = Field(
        default=None,
        ge=1,
        description="Page size hint sent to the server",
    )
    hl: Optional[str] = Field(default=None, description="Display language")
    profile_image_size: Optional[int] = Field(
        default=None,
        ge=16,
        le=720,
        description="Author profile image size in pixels",
    )


class OutputConfig(BaseModel):
    """Resume log configuration."""

    path: Optional[str] = Field(
        default=None,
        description="JSONL output file (stdout when unset)",
    )
    resume: bool = Field(
        default=False,
        description="Resume from the last record of the output file",
    )
    fsync: bool = Field(
        default=True,
        description="fsync the output file after every batch",
    )


class AuthConfig(BaseModel):
    """Credential configuration."""

    api_key_path: Optional[str] = Field(
        default=None,
        description="File containing the API key",
    )
    oauth_token_path: Optional[str] = Field(
        default=None,
        description="OAuth token JSON file",
    )
    oauth_client_id: Optional[str] = Field(default=None, description="OAuth client ID")
    oauth_client_secret: Optional[str] = Field(
        default=None,
        description="OAuth client secret",
    )
    token_endpoint: str = Field(
        default="https://oauth2.googleapis.com/token",
        description="OAuth token refresh endpoint",
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(default="INFO", description="Log level")
    format: str = Field(default="text", description="Log format: json or text")


class Settings(BaseModel):
    """
    Main settings class for the fetcher.

    Loads configuration from YAML file and environment variables.
    Environment variables take precedence over file values.
    """

    video_id: Optional[str] = Field(
        default=None,
        description="Video whose live chat is fetched",
    )
    stream: StreamConfig = Field(default_factory=StreamConfig)
    output: OutputConfig = Field(default_factory=OutputConfig)
    auth: AuthConfig = Field(default_factory=AuthConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def validate_startup(self) -> None:
        """
        Check cross-field rules before anything connects.

        Raises:
            ConfigError: On the first violated rule
        """
        if not self.output.resume and not self.video_id:
            raise ConfigError("Either --video-id or --resume must be specified")

        if self.output.resume and not self.output.path:
            raise ConfigError("--output-file must be specified when using --resume")

        if self.auth.api_key_path and self.auth.oauth_token_path:
            raise ConfigError(
                "--api-key-path and --oauth-token-path are mutually exclusive"
            )

        if self.auth.oauth_token_path:
            if not Path(self.auth.oauth_token_path).exists():
                raise ConfigError(
                    f"OAuth token file '{self.auth.oauth_token_path}' does not exist"
                )
            if not (self.auth.oauth_client_id and self.auth.oauth_client_secret):
                raise ConfigError(
                    "--oauth-client-id and --oauth-client-secret are required "
                    "to refresh OAuth tokens"
                )


# =============================================================================
# Configuration Loading
# =============================================================================

def load_config(config_path: Optional[str] = None) -> Settings:
    """
    Load configuration from YAML file and environment variables.

    Priority (highest to lowest):
        1. Environment variables
        2. YAML config file
        3. Default values

    Args:
        config_path: Path to config.yaml. If None, searches common locations.

    Returns:
        Settings: Loaded configuration

    Raises:
        ConfigError: If the file cannot be parsed or values are invalid
    """
    if config_path is not None and not Path(config_path).exists():
        raise ConfigError(f"Config file not found: {config_path}")

    # Find config file
    if config_path is None:
        for path in (Path("config.yaml"), Path("config.yml")):
            if path.exists():
                config_path = str(path)
                break

    # Load from YAML if exists
    config_data = {}
    if config_path:
        logger.info(f"Loading config from: {config_path}")
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            raise ConfigError(f"Failed to load config file '{config_path}': {e}") from e
        if not isinstance(config_data, dict):
            raise ConfigError(f"Config file '{config_path}' must contain a mapping")

    # Apply environment variable overrides
    _apply_env_overrides(config_data)

    try:
        return Settings.model_validate(config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def _apply_env_overrides(config_data: dict) -> None:
    """Apply environment variable overrides to config data."""

    # Stream settings
    if env_server := os.environ.get("SERVER_ADDRESS"):
        config_data.setdefault("stream", {})["server_address"] = env_server
    if env_rest := os.environ.get("REST_API_ADDRESS"):
        config_data.setdefault("stream", {})["rest_api_address"] = env_rest
    if env_wait := os.environ.get("YTCF_RECONNECT_WAIT"):
        config_data.setdefault("stream", {})["reconnect_wait_seconds"] = env_wait

    # Output settings
    if env_output := os.environ.get("YTCF_OUTPUT_FILE"):
        config_data.setdefault("output", {})["path"] = env_output

    # Auth settings
    if env_key := os.environ.get("YTCF_API_KEY_PATH"):
        config_data.setdefault("auth", {})["api_key_path"] = env_key
    if env_token := os.environ.get("YTCF_OAUTH_TOKEN_PATH"):
        config_data.setdefault("auth", {})["oauth_token_path"] = env_token
    if env_client := os.environ.get("OAUTH_CLIENT_ID"):
        config_data.setdefault("auth", {})["oauth_client_id"] = env_client
    if env_secret := os.environ.get("OAUTH_CLIENT_SECRET"):
        config_data.setdefault("auth", {})["oauth_client_secret"] = env_secret

    # Logging settings
    if env_log := os.environ.get("YTCF_LOG_LEVEL"):
        config_data.setdefault("logging", {})["level"] = env_log


def setup_logging(settings: Settings) -> None:
    """Configure logging based on settings (stderr; stdout carries batches)."""
    log_level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    if settings.logging.format == "json":
        log_format = '{"time": "%(asctime)s", "level": "%(levelname)s", "module": "%(name)s", "message": "%(message)s"}'
    else:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=log_level,
        format=log_format,
        datefmt="%Y-%m-%dT%H:%M:%S",
        force=True,
    )
