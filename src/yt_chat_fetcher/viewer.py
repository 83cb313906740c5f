"""
Chat Log Viewer
===============

Renders a resume log (or stdin) as readable chat lines:

    [display name] message text

Lines that are not valid batches are skipped, including an incomplete
last line still being written by a running fetcher.

Usage:
    yt-chat-view chat.jsonl
    yt-chat-view --follow chat.jsonl
    yt-chat-fetcher --video-id VIDEO | yt-chat-view
"""

import argparse
import sys
import time
from typing import Iterable, Iterator, List, Optional, TextIO

from pydantic import ValidationError

from yt_chat_fetcher.models.batch import Batch


CYAN = "\033[36m"
RESET = "\033[0m"


def format_batch(batch: Batch, color: bool = True) -> List[str]:
    """Format every message of a batch as one display line."""
    lines = []
    for item in batch.items:
        name = "unknown"
        if item.author_details and item.author_details.display_name:
            name = item.author_details.display_name
        message = ""
        if item.snippet and item.snippet.display_message:
            message = item.snippet.display_message
        if color:
            lines.append(f"{CYAN}[{name}]{RESET} {message}")
        else:
            lines.append(f"[{name}] {message}")
    return lines


def render_lines(lines: Iterable[str], color: bool = True) -> Iterator[str]:
    """Yield display lines for every well-formed batch line."""
    for line in lines:
        if not line.strip():
            continue
        try:
            batch = Batch.from_json(line)
        except (ValidationError, ValueError):
            continue
        yield from format_batch(batch, color=color)


def follow(stream: TextIO, interval: float = 0.5) -> Iterator[str]:
    """
    Yield complete lines from a growing file, like ``tail -f``.

    A trailing line without a newline is held back until it is finished.
    """
    partial = ""
    while True:
        chunk = stream.readline()
        if not chunk:
            time.sleep(interval)
            continue
        partial += chunk
        if partial.endswith("\n"):
            yield partial
            partial = ""


def main(argv: Optional[List[str]] = None) -> int:
    """Console script entry point."""
    parser = argparse.ArgumentParser(
        prog="yt-chat-view",
        description="Render a live chat log as readable lines",
    )
    parser.add_argument("file", nargs="?", help="Log file (default: stdin)")
    parser.add_argument("-f", "--follow", action="store_true", help="Keep reading as the file grows")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI colors")
    args = parser.parse_args(argv)

    color = not args.no_color and sys.stdout.isatty()

    try:
        if args.file:
            with open(args.file, "r", encoding="utf-8", errors="replace") as f:
                source = follow(f) if args.follow else f
                for line in render_lines(source, color=color):
                    print(line, flush=True)
        else:
            for line in render_lines(sys.stdin, color=color):
                print(line, flush=True)
    except KeyboardInterrupt:
        pass
    except OSError as e:
        print(f"yt-chat-view: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
