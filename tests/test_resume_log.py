"""
Resume Log Tests
================

Tests for append durability and last-record recovery.
"""

import io
import json

import pytest

from yt_chat_fetcher.errors import ErrorKind, IoError
from yt_chat_fetcher.models import Cursor
from yt_chat_fetcher.storage import ConsoleLog, ResumeLog, parse_resume_record


class TestAppend:
    """Tests for ResumeLog.append."""

    def test_append_writes_one_line_per_batch(self, log_path, make_batch):
        with ResumeLog(log_path) as log:
            log.append(make_batch("a", "m1"))
            log.append(make_batch("b", "m2", "m3"))

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert len(lines) == 2
        assert json.loads(lines[0])["nextPageToken"] == "a"
        assert len(json.loads(lines[1])["items"]) == 2
        assert log.appended == 2

    def test_append_is_visible_before_close(self, log_path, make_batch):
        log = ResumeLog(log_path, fsync=False)
        log.open()
        log.append(make_batch("a", "m1"))

        # A second reader sees the record while the writer is still open
        assert ResumeLog(log_path).recover_last().page_token == "a"
        log.close()

    def test_append_opens_lazily(self, log_path, make_batch):
        log = ResumeLog(log_path)
        log.append(make_batch("a", "m1"))
        log.close()

        assert log_path.exists()

    def test_existing_content_is_kept(self, log_path, make_batch):
        log_path.write_text(make_batch("old", "m0").to_json() + "\n", encoding="utf-8")

        with ResumeLog(log_path) as log:
            log.append(make_batch("new", "m1"))

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert [json.loads(line)["nextPageToken"] for line in lines] == ["old", "new"]

    def test_partial_last_line_is_terminated_on_open(self, log_path, make_batch):
        log_path.write_text(
            make_batch("a", "m1").to_json() + "\n" + '{"nextPageTok',
            encoding="utf-8",
        )

        with ResumeLog(log_path) as log:
            log.append(make_batch("b", "m2"))

        lines = log_path.read_text(encoding="utf-8").splitlines()
        assert lines[1] == '{"nextPageTok'
        assert json.loads(lines[2])["nextPageToken"] == "b"
        assert ResumeLog(log_path).recover_last().page_token == "b"

    def test_open_failure_is_io_error(self, tmp_path):
        log = ResumeLog(tmp_path / "missing-dir" / "chat.jsonl")

        with pytest.raises(IoError) as exc_info:
            log.open()
        assert exc_info.value.kind is ErrorKind.IO


class TestRecoverLast:
    """Tests for ResumeLog.recover_last."""

    def test_missing_file_is_none(self, log_path):
        assert ResumeLog(log_path).recover_last() is None

    def test_empty_file_is_none(self, log_path):
        log_path.write_text("", encoding="utf-8")
        assert ResumeLog(log_path).recover_last() is None

    def test_last_record_wins(self, log_path, make_batch, chat_id):
        with ResumeLog(log_path) as log:
            log.append(make_batch("a", "m1"))
            log.append(make_batch("b", "m2"))

        assert ResumeLog(log_path).recover_last() == Cursor(stream_id=chat_id, page_token="b")

    def test_blank_lines_are_skipped(self, log_path, make_batch, chat_id):
        log_path.write_text(
            make_batch("a", "m1").to_json() + "\n\n   \n",
            encoding="utf-8",
        )
        assert ResumeLog(log_path).recover_last() == Cursor(stream_id=chat_id, page_token="a")

    def test_malformed_last_line_is_none(self, log_path, make_batch):
        log_path.write_text(
            make_batch("a", "m1").to_json() + '\n{"items": [',
            encoding="utf-8",
        )
        assert ResumeLog(log_path).recover_last() is None

    def test_last_line_without_stream_id_is_none(self, log_path):
        log_path.write_text('{"nextPageToken": "a", "items": []}\n', encoding="utf-8")
        assert ResumeLog(log_path).recover_last() is None

    def test_record_without_token_resumes_from_start(self, log_path, chat_id):
        log_path.write_text(
            json.dumps({"items": [{"snippet": {"liveChatId": chat_id}}]}) + "\n",
            encoding="utf-8",
        )
        assert ResumeLog(log_path).recover_last() == Cursor(stream_id=chat_id)

    def test_directory_is_io_error(self, tmp_path):
        with pytest.raises(IoError):
            ResumeLog(tmp_path).recover_last()

    def test_replaying_any_prefix_matches_its_last_line(self, log_path, make_batch):
        tokens = ["a", "b", "c", "d"]
        with ResumeLog(log_path) as log:
            for token in tokens:
                log.append(make_batch(token, f"m-{token}"))
        lines = log_path.read_text(encoding="utf-8").splitlines(keepends=True)

        for n in range(1, len(lines) + 1):
            log_path.write_text("".join(lines[:n]), encoding="utf-8")
            recovered = ResumeLog(log_path).recover_last()
            assert recovered == parse_resume_record(lines[n - 1])
            assert recovered.page_token == tokens[n - 1]


class TestConsoleLog:
    """Tests for stdout output."""

    def test_writes_json_lines(self, make_batch):
        stream = io.StringIO()
        log = ConsoleLog(stream)

        log.append(make_batch("a", "m1"))
        log.append(make_batch("b", "m2"))

        lines = stream.getvalue().splitlines()
        assert [json.loads(line)["nextPageToken"] for line in lines] == ["a", "b"]
        assert log.appended == 2
