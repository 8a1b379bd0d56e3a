"""Tests for logging configuration."""

import json
import logging
import sys

from autonomy.logging_config import JSONFormatter, build_logging_config, setup_logging


def _record(**extra):
    record = logging.LogRecord(
        name="autonomy.scheduling.scheduler",
        level=logging.WARNING,
        pathname=__file__,
        lineno=10,
        msg="Loop %s failed",
        args=("content_loop",),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestJSONFormatter:
    """Tests for JSONFormatter."""

    def test_formats_message_and_context(self):
        line = JSONFormatter().format(_record(loop_id="content_loop", agent_id="content"))
        entry = json.loads(line)

        assert entry["message"] == "Loop content_loop failed"
        assert entry["level"] == "WARNING"
        assert entry["loop_id"] == "content_loop"
        assert entry["agent_id"] == "content"
        assert "task_id" not in entry

    def test_includes_exception(self):
        try:
            raise RuntimeError("boom")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        entry = json.loads(JSONFormatter().format(record))
        assert "RuntimeError: boom" in entry["exception"]


class TestSetupLogging:
    """Tests for build_logging_config() and setup_logging()."""

    def test_file_only(self, tmp_path):
        config = build_logging_config("debug", str(tmp_path / "app.log"), console=False)
        assert list(config["handlers"]) == ["file"]
        assert config["root"] == {"level": "DEBUG", "handlers": ["file"]}
        assert config["loggers"]["aiosqlite"] == {"level": "WARNING"}

    def test_setup_writes_json_lines(self, tmp_path):
        log_file = tmp_path / "logs" / "app.log"
        setup_logging(log_level="INFO", log_file=str(log_file), console=False)
        try:
            logging.getLogger("autonomy.test").info("hello", extra={"task_id": "t1"})
            for handler in logging.getLogger().handlers:
                handler.flush()

            entry = json.loads(log_file.read_text(encoding="utf-8").strip().splitlines()[-1])
            assert entry["message"] == "hello"
            assert entry["task_id"] == "t1"
        finally:
            for handler in list(logging.getLogger().handlers):
                logging.getLogger().removeHandler(handler)
                handler.close()
