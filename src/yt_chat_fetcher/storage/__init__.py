"""
Storage Module
==============

Durable batch output.

    - ResumeLog: Append-only JSONL file with last-record recovery
    - ConsoleLog: Same line format on stdout (no recovery)
"""

from yt_chat_fetcher.storage.resume_log import (
    BatchLog,
    ConsoleLog,
    ResumeLog,
    parse_resume_record,
)


__all__ = [
    "BatchLog",
    "ConsoleLog",
    "ResumeLog",
    "parse_resume_record",
]
