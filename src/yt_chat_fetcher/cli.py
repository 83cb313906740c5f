"""
Command Line Entry Point
========================

Wires configuration, bootstrap and the resilience manager together.

Startup:
    1. Load config (YAML + environment), apply command-line flags
    2. Validate flag combinations (ConfigError on conflict)
    3. Build the credential provider
    4. Resolve the cursor: resume from the output file, or look up the
       live chat ID of --video-id
    5. Run the resilience manager until SIGINT / SIGTERM

Exit Codes:
    0 - Stopped by a signal
    1 - Fatal error (configuration, resolution, initial connect, output file)
    2 - Invalid command-line usage (argparse)

Usage:
    yt-chat-fetcher --video-id VIDEO --api-key-path key.txt --output-file chat.jsonl
    yt-chat-fetcher --resume --output-file chat.jsonl --api-key-path key.txt
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional, Union

from yt_chat_fetcher import __version__
from yt_chat_fetcher.auth.credentials import (
    AnonymousCredentials,
    ApiKeyCredentials,
    CredentialProvider,
    OAuthCredentials,
)
from yt_chat_fetcher.cancellation import CancellationGate
from yt_chat_fetcher.config import Settings, load_config, setup_logging
from yt_chat_fetcher.errors import ConfigError, FetcherError
from yt_chat_fetcher.models.cursor import Cursor
from yt_chat_fetcher.resolver import resolve_live_chat_id
from yt_chat_fetcher.storage.resume_log import ConsoleLog, ResumeLog
from yt_chat_fetcher.stream.manager import ResilienceManager
from yt_chat_fetcher.stream.session import SessionOptions, make_opener


logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="yt-chat-fetcher",
        description="Stream live chat messages from a YouTube video",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--video-id",
        help="Video ID to fetch chat from (optional with --resume)",
    )
    parser.add_argument("--api-key-path", help="File containing the API key")
    parser.add_argument("--oauth-token-path", help="OAuth token JSON file")
    parser.add_argument("--oauth-client-id", help="OAuth client ID (token refresh)")
    parser.add_argument("--oauth-client-secret", help="OAuth client secret (token refresh)")
    parser.add_argument(
        "--reconnect-wait-secs",
        type=float,
        help="Seconds to wait before reconnecting (default: 5)",
    )
    parser.add_argument(
        "--output-file",
        help="Append batches to this file, one JSON object per line",
    )
    parser.add_argument(
        "--resume",
        action="store_true",
        help="Resume from the last batch in the output file",
    )
    parser.add_argument("--config", help="Path to config.yaml")
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
    return parser


def apply_args(settings: Settings, args: argparse.Namespace) -> Settings:
    """Overlay command-line flags on loaded settings."""
    if args.video_id:
        settings.video_id = args.video_id
    if args.api_key_path:
        settings.auth.api_key_path = args.api_key_path
    if args.oauth_token_path:
        settings.auth.oauth_token_path = args.oauth_token_path
    if args.oauth_client_id:
        settings.auth.oauth_client_id = args.oauth_client_id
    if args.oauth_client_secret:
        settings.auth.oauth_client_secret = args.oauth_client_secret
    if args.reconnect_wait_secs is not None:
        if args.reconnect_wait_secs < 0:
            raise ConfigError("--reconnect-wait-secs must be >= 0")
        settings.stream.reconnect_wait_seconds = args.reconnect_wait_secs
    if args.output_file:
        settings.output.path = args.output_file
    if args.resume:
        settings.output.resume = True
    if args.log_level:
        settings.logging.level = args.log_level
    return settings


def build_credentials(settings: Settings) -> CredentialProvider:
    """
    Create the credential provider named by the settings.

    Credentials are checked here so a bad key or token file fails at
    startup rather than on the first connect.
    """
    auth = settings.auth
    if auth.api_key_path:
        logger.info(f"Reading API key from: {auth.api_key_path}")
        provider = ApiKeyCredentials(auth.api_key_path)
        provider.read_key()
        return provider

    if auth.oauth_token_path:
        logger.info(f"Using OAuth token from: {auth.oauth_token_path}")
        provider = OAuthCredentials(
            auth.oauth_token_path,
            client_id=auth.oauth_client_id,
            client_secret=auth.oauth_client_secret,
            token_endpoint=auth.token_endpoint,
        )
        provider.load()
        return provider

    logger.warning("No credentials configured, connecting anonymously")
    return AnonymousCredentials()


async def bootstrap_cursor(
    settings: Settings,
    credentials: CredentialProvider,
    log: Union[ResumeLog, ConsoleLog],
) -> Cursor:
    """
    Resolve the starting cursor.

    Resume and fresh start are mutually exclusive: an empty or unreadable
    log with --resume is a ConfigError, never a silent fresh start.
    """
    if settings.output.resume:
        cursor = log.recover_last()
        if cursor is None:
            raise ConfigError(
                f"Nothing to resume from in '{settings.output.path}'"
            )
        if settings.video_id:
            logger.info("Resuming from output file, --video-id is ignored")
        return cursor

    logger.info(f"Using video ID: {settings.video_id}")
    credential = await credentials.get()
    chat_id = await resolve_live_chat_id(
        settings.stream.rest_api_address,
        settings.video_id,
        credential,
    )
    return Cursor(stream_id=chat_id)


async def run(settings: Settings) -> int:
    """Run the fetcher until cancelled. Returns the exit code."""
    settings.validate_startup()
    credentials = build_credentials(settings)

    if settings.output.path:
        log = ResumeLog(settings.output.path, fsync=settings.output.fsync)
    else:
        log = ConsoleLog()

    cursor = await bootstrap_cursor(settings, credentials, log)

    stream = settings.stream
    opener = make_opener(
        stream.server_address,
        SessionOptions(
            connect_timeout=stream.connect_timeout_seconds,
            read_timeout=stream.read_timeout_seconds,
            parts=tuple(stream.parts),
            max_results=stream.max_results,
            hl=stream.hl,
            profile_image_size=stream.profile_image_size,
        ),
    )

    gate = CancellationGate()
    gate.install_signal_handlers()
    try:
        with log:
            manager = ResilienceManager(
                cursor=cursor,
                log=log,
                opener=opener,
                credentials=credentials,
                gate=gate,
                reconnect_wait=stream.reconnect_wait_seconds,
                fail_fast=stream.fail_fast_initial_connect,
            )
            await manager.run()
    finally:
        gate.remove_signal_handlers()

    logger.info("Shutdown complete")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    args = build_parser().parse_args(argv)

    try:
        settings = apply_args(load_config(args.config), args)
    except ConfigError as e:
        setup_logging(Settings())
        logger.error(f"Fatal {e.kind.value} error: {e}")
        return 1

    setup_logging(settings)

    try:
        return asyncio.run(run(settings))
    except FetcherError as e:
        logger.error(f"Fatal {e.kind.value} error: {e}")
        return 1
    except KeyboardInterrupt:
        logger.info("Interrupted during startup")
        return 130


if __name__ == "__main__":
    sys.exit(main())
