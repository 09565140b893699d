"""Tests for structured logging helpers."""
import json
import logging
import sys

from frcsync.core.logging import (
    ColoredFormatter,
    JSONFormatter,
    clear_correlation_id,
    get_sync_run_id,
    set_correlation_id,
    sync_run_context,
)


def make_record(msg="hello", level=logging.WARNING, **extra):
    record = logging.LogRecord("frcsync.test", level, __file__, 1, msg, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:

    def test_event_tag_lands_under_extra(self):
        output = json.loads(JSONFormatter().format(make_record(event="frc_api_not_found", status_code=404)))

        assert output["level"] == "WARNING"
        assert output["logger"] == "frcsync.test"
        assert output["message"] == "hello"
        assert output["extra"] == {"event": "frc_api_not_found", "status_code": 404}

    def test_run_and_correlation_ids_included(self):
        token = set_correlation_id("req-1")
        try:
            with sync_run_context("run-42"):
                output = json.loads(JSONFormatter().format(make_record()))
        finally:
            clear_correlation_id(token)

        assert output["sync_run_id"] == "run-42"
        assert output["correlation_id"] == "req-1"

    def test_exception_included(self):
        try:
            raise ValueError("bad")
        except ValueError:
            record = make_record(level=logging.ERROR)
            record.exc_info = sys.exc_info()

        output = json.loads(JSONFormatter().format(record))

        assert "ValueError: bad" in output["exception"]


class TestSyncRunContext:

    def test_generates_and_resets_id(self):
        assert get_sync_run_id() == ""

        with sync_run_context() as run_id:
            assert run_id
            assert get_sync_run_id() == run_id

        assert get_sync_run_id() == ""

    def test_colored_formatter_shows_event_and_run(self):
        with sync_run_context("abc"):
            line = ColoredFormatter().format(make_record(event="sync_completed"))

        assert "event=sync_completed" in line
        assert "sync_run_id=abc" in line
