"""Unit tests for the activity log and the logging plumbing behind it."""

from __future__ import annotations

import logging
import re

from lagprobe.ui.activity_log import (
    ActivityLog,
    ActivityLogHandler,
    configure_logging,
    reset_logging,
)


class TestActivityLog:
    def test_lines_are_timestamped(self):
        log = ActivityLog()
        log.add("hello")
        (line,) = log.tail(1)
        assert re.fullmatch(r"\[\d\d:\d\d:\d\d\.\d{3}\] hello", line.text)
        assert line.level == logging.INFO

    def test_capacity_drops_oldest(self):
        log = ActivityLog(capacity=3)
        for i in range(5):
            log.add(f"line {i}")
        assert len(log) == 3
        assert log.total == 5
        assert [line.text.split("] ", 1)[1] for line in log.tail(3)] == [
            "line 2",
            "line 3",
            "line 4",
        ]

    def test_tail(self):
        log = ActivityLog()
        for i in range(4):
            log.add(str(i))
        assert [line.text[-1] for line in log.tail(2)] == ["2", "3"]
        assert log.tail(0) == []
        assert len(log.tail(10)) == 4

    def test_resize_keeps_five_screens(self):
        log = ActivityLog()
        log.resize(30)
        assert log.capacity == 125
        log.resize(8)
        assert log.capacity == 50

    def test_resize_keeps_newest_lines(self):
        log = ActivityLog()
        log.resize(40)
        for i in range(100):
            log.add(str(i))
        log.resize(10)
        assert len(log) == 50
        assert log.tail(1)[0].text.endswith(" 99")


class TestLoggingPlumbing:
    def test_handler_forwards_records(self):
        log = ActivityLog()
        logger = logging.getLogger("lagprobe.test.handler")
        handler = ActivityLogHandler(log)
        logger.addHandler(handler)
        logger.setLevel(logging.DEBUG)
        try:
            logger.warning("disk at %d%%", 93)
        finally:
            logger.removeHandler(handler)
            logger.setLevel(logging.NOTSET)
        (line,) = log.tail(1)
        assert line.text.endswith("disk at 93%")
        assert line.level == logging.WARNING

    def test_configure_and_reset(self, config, tmp_path):
        log_file = tmp_path / "logs" / "lagprobe.log"
        cfg = config.model_copy(update={"log_file": log_file, "log_level": "DEBUG"})
        log = ActivityLog()
        handlers = configure_logging(cfg, log)
        try:
            assert len(handlers) == 2
            logging.getLogger("lagprobe.core.producer").debug("Inserted record #%d", 1)
        finally:
            reset_logging(handlers)

        assert log.tail(1)[0].text.endswith("Inserted record #1")
        assert "Inserted record #1" in log_file.read_text(encoding="utf-8")
        root = logging.getLogger("lagprobe")
        assert not any(isinstance(h, ActivityLogHandler) for h in root.handlers)
        assert root.level == logging.NOTSET

    def test_level_filters(self, config):
        log = ActivityLog()
        handlers = configure_logging(config.model_copy(update={"log_level": "WARNING"}), log)
        try:
            logging.getLogger("lagprobe.x").info("quiet")
            logging.getLogger("lagprobe.x").warning("loud")
        finally:
            reset_logging(handlers)
        assert [line.text.split("] ", 1)[1] for line in log.tail(5)] == ["loud"]
