"""
Resume Log
==========

Append-only JSONL record of delivered batches.

Each non-empty batch is written as one line and flushed to disk before
``append`` returns. On restart, the last line of the file is enough to
rebuild the cursor: its ``nextPageToken`` is the page token and the
``liveChatId`` of its first message is the stream ID.

Design Rules:
    - Opened in append mode, never rewritten in place
    - A missing file is an empty log, not an error
    - A malformed last line means "no resume point", not a crash
    - No locking: one process per log file

Example:
    log = ResumeLog("chat.jsonl")
    cursor = log.recover_last()

    with log:
        log.append(batch)
"""

import logging
import os
import sys
from pathlib import Path
from typing import Optional, Protocol, TextIO, Union

from pydantic import ValidationError

from yt_chat_fetcher.errors import IoError
from yt_chat_fetcher.models.batch import Batch
from yt_chat_fetcher.models.cursor import Cursor


logger = logging.getLogger(__name__)


class BatchLog(Protocol):
    """Anything the resilience manager can append batches to."""

    def append(self, batch: Batch) -> None:
        ...


def parse_resume_record(line: str) -> Optional[Cursor]:
    """
    Parse the cursor implied by one resume record.

    Args:
        line: One JSON line from the log

    Returns:
        Cursor, or None if the line is malformed or has no stream ID
    """
    try:
        batch = Batch.from_json(line)
    except (ValidationError, ValueError) as e:
        logger.warning(f"Failed to parse resume record: {e}")
        return None

    stream_id = batch.stream_id
    if not stream_id:
        logger.warning("Could not extract live chat ID from resume record")
        return None

    return Cursor(stream_id=stream_id, page_token=batch.next_page_token)


class ResumeLog:
    """
    Durable append-only batch log backed by a single file.

    Attributes:
        path: Location of the JSONL file
        fsync: Whether to fsync after every append
        appended: Number of batches appended by this instance
    """

    def __init__(self, path: Union[str, Path], fsync: bool = True) -> None:
        """
        Initialize resume log.

        Args:
            path: Log file path (created on open if missing)
            fsync: Force data to disk after every append
        """
        self.path = Path(path)
        self.fsync = fsync
        self.appended: int = 0
        self._file: Optional[TextIO] = None

    def open(self) -> None:
        """Open the log for appending, creating it if needed."""
        if self._file is not None:
            return
        try:
            self._file = open(self.path, "a", encoding="utf-8")
            # Terminate a partial line left by a crash so the next record
            # starts on its own line.
            if self._file.tell() > 0 and not self._ends_with_newline():
                logger.warning("Output file ends with an incomplete line")
                self._file.write("\n")
                self._file.flush()
        except OSError as e:
            raise IoError(
                f"Failed to open output file: {e}", path=str(self.path)
            ) from e
        logger.info(f"Output file: {self.path}")

    def close(self) -> None:
        """Close the underlying file."""
        if self._file is not None:
            self._file.close()
            self._file = None

    def _ends_with_newline(self) -> bool:
        with open(self.path, "rb") as f:
            f.seek(-1, os.SEEK_END)
            return f.read(1) == b"\n"

    def append(self, batch: Batch) -> None:
        """
        Append one batch and make it durable before returning.

        Args:
            batch: Batch to record

        Raises:
            IoError: If the write, flush or fsync fails
        """
        if self._file is None:
            self.open()

        try:
            self._file.write(batch.to_json() + "\n")
            self._file.flush()
            if self.fsync:
                os.fsync(self._file.fileno())
        except OSError as e:
            raise IoError(
                f"Failed to write batch to output file: {e}", path=str(self.path)
            ) from e

        self.appended += 1

    def read_last_line(self) -> Optional[str]:
        """
        Read the last non-blank line of the log.

        Returns:
            The line, or None if the file is absent or has no content
        """
        try:
            with open(self.path, "r", encoding="utf-8", errors="replace") as f:
                last_line = None
                for line in f:
                    if line.strip():
                        last_line = line.strip()
                return last_line
        except FileNotFoundError:
            return None
        except OSError as e:
            raise IoError(
                f"Failed to read output file: {e}", path=str(self.path)
            ) from e

    def recover_last(self) -> Optional[Cursor]:
        """
        Recover the cursor implied by the last record.

        Returns:
            Cursor, or None when there is nothing to resume from

        Raises:
            IoError: On read failures other than a missing file
        """
        logger.info(f"Attempting to resume from: {self.path}")

        last_line = self.read_last_line()
        if last_line is None:
            logger.info("Output file is empty or does not exist yet")
            return None

        cursor = parse_resume_record(last_line)
        if cursor is not None:
            logger.info(f"Resuming with chat ID: {cursor.stream_id}")
            if cursor.page_token:
                logger.info(f"Resuming from page token: {cursor.page_token}")
        return cursor

    def __enter__(self) -> "ResumeLog":
        self.open()
        return self

    def __exit__(self, *args) -> None:
        self.close()


class ConsoleLog:
    """
    Writes batches to a text stream (stdout by default).

    Used when no output file is configured. Nothing can be recovered
    from it.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self._stream = stream
        self.appended: int = 0

    def append(self, batch: Batch) -> None:
        """Write one batch as a JSON line and flush."""
        stream = self._stream or sys.stdout
        try:
            stream.write(batch.to_json() + "\n")
            stream.flush()
        except OSError as e:
            raise IoError(f"Failed to write batch to stdout: {e}") from e
        self.appended += 1

    def open(self) -> None:
        pass

    def close(self) -> None:
        pass

    def __enter__(self) -> "ConsoleLog":
        return self

    def __exit__(self, *args) -> None:
        pass
